"""
Admin configuration for tasks app.
"""

from django.contrib import admin
from django.utils.html import format_html
from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """Admin for Task model."""

    list_display = (
        'title', 'project', 'assigned_to', 'assigned_by',
        'status_display', 'priority_display', 'due_date',
        'is_overdue_display', 'created_at'
    )
    list_filter = ('status', 'priority', 'created_at', 'due_date')
    search_fields = ('title', 'description', 'project__title')
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'

    readonly_fields = ('created_at', 'updated_at', 'completed_at')

    fieldsets = (
        (None, {
            'fields': ('title', 'description', 'project')
        }),
        ('Assignment', {
            'fields': ('assigned_to', 'assigned_by')
        }),
        ('Status & Priority', {
            'fields': ('status', 'priority', 'due_date')
        }),
        ('Effort', {
            'fields': ('estimated_hours', 'actual_hours'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at', 'completed_at'),
            'classes': ('collapse',),
        }),
    )

    def get_queryset(self, request):
        """Optimize with select_related."""
        return super().get_queryset(request).select_related(
            'project', 'assigned_to', 'assigned_by'
        )

    def status_display(self, obj):
        """Display status with color coding."""
        colors = {
            'pending': '#FFA500',      # Orange
            'in-progress': '#3498db',  # Blue
            'completed': '#27ae60',    # Green
        }
        color = colors.get(obj.status, '#000')
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color, obj.get_status_display()
        )
    status_display.short_description = 'Status'
    status_display.admin_order_field = 'status'

    def priority_display(self, obj):
        """Display priority with color coding."""
        colors = {
            'low': '#95a5a6',
            'medium': '#3498db',
            'high': '#e67e22',
        }
        color = colors.get(obj.priority, '#000')
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color, obj.get_priority_display()
        )
    priority_display.short_description = 'Priority'
    priority_display.admin_order_field = 'priority'

    def is_overdue_display(self, obj):
        """Display overdue status."""
        if obj.is_overdue:
            return format_html('<span style="color: red;">⚠️ OVERDUE</span>')
        return ''
    is_overdue_display.short_description = 'Overdue'
