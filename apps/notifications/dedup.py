"""
Deduplication windows for the scheduled sweeps.

A sweep skips a task when the same recipient already received the same
notification type about the same task within the window:
- deadline reminders: the last 24 hours
- overdue alerts: the current calendar day in settings.TIME_ZONE
"""

from datetime import timedelta

from django.utils import timezone

from .models import Notification

REMINDER_WINDOW = timedelta(hours=24)


def window_start(notification_type, now):
    """Earliest created_at that still counts as a duplicate."""
    if notification_type == Notification.Type.TASK_DEADLINE_REMINDER:
        return now - REMINDER_WINDOW
    if notification_type == Notification.Type.TASK_OVERDUE:
        local_now = timezone.localtime(now)
        return local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    raise ValueError(f'No deduplication window for {notification_type}')


def already_notified(recipient, notification_type, task, now):
    return Notification.objects.filter(
        recipient=recipient,
        type=notification_type,
        related_task=task,
        created_at__gte=window_start(notification_type, now),
    ).exists()
