"""
In-app notification model.

A notification is written once and afterwards only its read flag and its
email-sent flag ever change. Recipients delete their own notifications.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone


class Notification(models.Model):

    class Type(models.TextChoices):
        TASK_DEADLINE_REMINDER = 'task_deadline_reminder', 'Task Deadline Reminder'
        TASK_OVERDUE = 'task_overdue', 'Task Overdue'
        PROJECT_STATUS_CHANGE = 'project_status_change', 'Project Status Change'
        PROJECT_ASSIGNMENT = 'project_assignment', 'Project Assignment'
        TASK_ASSIGNMENT = 'task_assignment', 'Task Assignment'
        TASK_COMPLETION = 'task_completion', 'Task Completion'
        WEEKLY_REPORT = 'weekly_report', 'Weekly Report'
        SYSTEM_UPDATE = 'system_update', 'System Update'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        URGENT = 'urgent', 'Urgent'

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sent_notifications',
    )
    type = models.CharField(max_length=30, choices=Type.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()

    related_project = models.ForeignKey(
        'projects.Project',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications',
    )
    related_task = models.ForeignKey(
        'tasks.Task',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications',
    )

    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )

    # Read state
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    # Email delivery state
    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', '-created_at'], name='notif_recipient_created_idx'),
            models.Index(fields=['recipient', 'is_read'], name='notif_recipient_read_idx'),
            # Backs the deduplication lookup used by the scheduled sweeps
            models.Index(fields=['type', 'related_task'], name='notif_type_task_idx'),
        ]

    def __str__(self):
        return f"{self.get_type_display()} for {self.recipient}: {self.title}"
