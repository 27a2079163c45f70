"""
Admin configuration for system_settings app.
"""

from django.contrib import admin
from .models import SystemSettings


@admin.register(SystemSettings)
class SystemSettingsAdmin(admin.ModelAdmin):
    """Admin for the settings singleton."""

    fieldsets = (
        ('Notifications', {
            'fields': (
                'email_notifications', 'task_deadline_reminder', 'deadline_reminder_days',
                'project_status_updates', 'status_change_notification',
                'new_project_assignment', 'weekly_reports', 'weekly_report_day',
                'overdue_tasks', 'team_updates', 'system_updates',
            )
        }),
        ('Project Defaults', {
            'fields': (
                'default_project_priority', 'default_project_status',
                'auto_assign_deadline', 'default_deadline_days',
            )
        }),
        ('Task Defaults', {
            'fields': ('default_task_priority', 'require_estimated_hours')
        }),
        ('System', {
            'fields': ('allow_self_registration', 'last_updated_by', 'updated_at')
        }),
    )
    readonly_fields = ('last_updated_by', 'updated_at')

    def has_add_permission(self, request):
        """Only one row ever exists."""
        return not SystemSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
