"""
Admin configuration for accounts app.
Role/manager filters and visual indicators.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _
from django.utils.html import format_html

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom User admin with email authentication and role management.
    """

    # List display
    list_display = (
        'email', 'full_name_display', 'role_display',
        'manager', 'is_active_display', 'created_at'
    )
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('email', 'first_name', 'last_name')
    ordering = ('first_name', 'last_name')
    list_per_page = 25

    # Fieldsets for edit view
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        (_('Personal Info'), {'fields': ('first_name', 'last_name')}),
        (_('Organization'), {'fields': ('role', 'manager', 'created_by')}),
        (_('Permissions'), {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',),
        }),
        (_('Important dates'), {
            'fields': ('last_login', 'created_at', 'updated_at'),
        }),
    )

    # Fieldsets for add view
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'email', 'first_name', 'last_name',
                'password1', 'password2', 'role', 'manager'
            ),
        }),
    )

    readonly_fields = ('created_at', 'updated_at', 'last_login')

    actions = ['deactivate_users', 'activate_users']

    # Custom display methods
    def full_name_display(self, obj):
        """Display full name."""
        return obj.get_full_name() or '-'
    full_name_display.short_description = 'Name'
    full_name_display.admin_order_field = 'first_name'

    def role_display(self, obj):
        """Display role with color coding."""
        colors = {
            'admin': '#7C3AED',    # Purple
            'manager': '#2563EB',  # Blue
            'user': '#059669',     # Green
        }
        color = colors.get(obj.role, '#6B7280')
        return format_html(
            '<span style="background-color: {}; color: white; padding: 2px 8px; '
            'border-radius: 4px; font-size: 11px; font-weight: 500;">{}</span>',
            color, obj.get_role_display()
        )
    role_display.short_description = 'Role'
    role_display.admin_order_field = 'role'

    def is_active_display(self, obj):
        """Display active status."""
        if obj.is_active:
            return format_html('<span style="color: #059669;">{}</span> Active', '●')
        return format_html('<span style="color: #DC2626;">{}</span> Inactive', '●')
    is_active_display.short_description = 'Status'
    is_active_display.admin_order_field = 'is_active'

    def get_queryset(self, request):
        """Optimize queryset with select_related."""
        return super().get_queryset(request).select_related('manager')

    # Admin actions
    def deactivate_users(self, request, queryset):
        """Deactivate selected users (soft delete) and end their sessions."""
        from .services import invalidate_user_sessions
        count = 0
        for user in queryset.exclude(pk=request.user.pk):
            user.is_active = False
            user.save(update_fields=['is_active', 'updated_at'])
            invalidate_user_sessions(user)
            count += 1
        self.message_user(request, f'{count} user(s) deactivated.')
    deactivate_users.short_description = 'Deactivate selected users'

    def activate_users(self, request, queryset):
        """Activate selected users."""
        count = queryset.update(is_active=True)
        self.message_user(request, f'{count} user(s) activated.')
    activate_users.short_description = 'Activate selected users'
