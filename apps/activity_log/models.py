"""
Activity log model for the audit trail.

One append-only entry is written for every successful mutation of an
account, project or task, plus every login and logout. Entries are never
updated or deleted by the application.
"""

from django.conf import settings
from django.db import models


class ActivityLog(models.Model):
    """
    Audit log entry.

    `target_id` is a plain integer so the entry outlives the deleted
    project or task it describes.
    """

    class Action(models.TextChoices):
        USER_CREATED = 'user_created', 'User Created'
        USER_UPDATED = 'user_updated', 'User Updated'
        USER_DELETED = 'user_deleted', 'User Deleted'
        PROJECT_CREATED = 'project_created', 'Project Created'
        PROJECT_UPDATED = 'project_updated', 'Project Updated'
        PROJECT_DELETED = 'project_deleted', 'Project Deleted'
        PROJECT_STATUS_CHANGED = 'project_status_changed', 'Project Status Changed'
        TASK_CREATED = 'task_created', 'Task Created'
        TASK_UPDATED = 'task_updated', 'Task Updated'
        TASK_DELETED = 'task_deleted', 'Task Deleted'
        TASK_STATUS_CHANGED = 'task_status_changed', 'Task Status Changed'
        LOGIN = 'login', 'Login'
        LOGOUT = 'logout', 'Logout'

    class TargetType(models.TextChoices):
        USER = 'user', 'User'
        PROJECT = 'project', 'Project'
        TASK = 'task', 'Task'
        SYSTEM = 'system', 'System'

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='activities',
        help_text='User who performed the action'
    )
    action = models.CharField(
        max_length=30,
        choices=Action.choices,
        db_index=True,
    )
    target_type = models.CharField(
        max_length=10,
        choices=TargetType.choices,
    )
    target_id = models.PositiveBigIntegerField(null=True, blank=True)
    description = models.TextField(
        help_text='Human-readable description of the change'
    )
    metadata = models.JSONField(default=dict, blank=True)

    # Request context
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'activity'
        verbose_name_plural = 'activities'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['actor', '-created_at'], name='activity_actor_created_idx'),
            models.Index(fields=['action', '-created_at'], name='activity_action_created_idx'),
            models.Index(fields=['target_type', 'target_id'], name='activity_target_idx'),
        ]

    def __str__(self):
        return f"{self.get_action_display()} by {self.actor}"
