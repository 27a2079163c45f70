"""
Admin configuration for notifications app.
"""

from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Read-only view of delivered notifications."""

    list_display = ('title', 'recipient', 'type', 'priority', 'is_read', 'email_sent', 'created_at')
    list_filter = ('type', 'priority', 'is_read', 'email_sent', 'created_at')
    search_fields = ('title', 'message', 'recipient__email')
    ordering = ('-created_at',)
    date_hierarchy = 'created_at'

    def get_queryset(self, request):
        return super().get_queryset(request).select_related(
            'recipient', 'sender', 'related_project', 'related_task'
        )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
