"""
Admin configuration for activity_log app.
"""

from django.contrib import admin
from .models import ActivityLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    """Read-only admin for ActivityLog."""

    list_display = (
        'action', 'actor', 'target_type', 'target_id',
        'description_preview', 'ip_address', 'created_at'
    )
    list_filter = ('action', 'target_type', 'created_at')
    search_fields = (
        'description', 'actor__email', 'actor__first_name', 'actor__last_name'
    )
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'

    readonly_fields = (
        'actor', 'action', 'target_type', 'target_id', 'description',
        'metadata', 'ip_address', 'user_agent', 'created_at'
    )

    def description_preview(self, obj):
        """Show truncated description."""
        return obj.description[:80] + '...' if len(obj.description) > 80 else obj.description
    description_preview.short_description = 'Description'

    def has_add_permission(self, request):
        """Prevent manual creation of activity logs."""
        return False

    def has_change_permission(self, request, obj=None):
        """Prevent editing of activity logs."""
        return False

    def has_delete_permission(self, request, obj=None):
        """Prevent deletion of activity logs."""
        return False

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('actor')
