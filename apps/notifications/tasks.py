"""
Scheduled jobs for notifications app.

Background sweeps:
- check_deadline_reminders: hourly 8 AM to 6 PM, tasks due within the
  reminder window
- check_overdue_tasks: every 6 hours, tasks past their due date
- send_weekly_reports: daily at 9 AM, only acts on the configured weekday

Each sweep can be called with no arguments (the scheduler does that) and
returns the number of notifications it created. Every task or account is
processed on its own: one failure is logged and the sweep moves on.
"""

import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.reports.services import get_weekly_summary
from apps.system_settings.services import settings_service as default_settings_service
from apps.tasks.models import Task

from .dedup import already_notified
from .events import format_day
from .models import Notification
from .services import create_notification

logger = logging.getLogger(__name__)

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


def _open_tasks():
    return (
        Task.objects
        .exclude(status=Task.Status.COMPLETED)
        .filter(assigned_to__is_active=True)
        .select_related('assigned_to', 'project')
    )


def check_deadline_reminders(now=None, settings_service=None):
    """
    Remind assignees of tasks due within `deadline_reminder_days`.

    At most one reminder per task and assignee in any 24 hours.
    """
    service = settings_service or default_settings_service
    settings_row = service.get()

    if not settings_row.task_deadline_reminder:
        logger.debug('Deadline reminders disabled; skipping sweep')
        return 0

    now = now or timezone.now()
    horizon = now + timedelta(days=settings_row.deadline_reminder_days)
    tasks = _open_tasks().filter(due_date__gte=now, due_date__lte=horizon)

    sent = 0
    for task in tasks:
        try:
            with transaction.atomic():
                if already_notified(task.assigned_to, Notification.Type.TASK_DEADLINE_REMINDER, task, now):
                    logger.debug(f'Reminder for task {task.pk} already sent in the last 24 hours')
                    continue

                create_notification(
                    recipient=task.assigned_to,
                    type=Notification.Type.TASK_DEADLINE_REMINDER,
                    title=f'Deadline Reminder: {task.title}',
                    message=(
                        f'Your task "{task.title}" is due on {format_day(task.due_date)}. '
                        f'Project: {task.project.title}'
                    ),
                    related_task=task,
                    related_project=task.project,
                    priority=Notification.Priority.HIGH,
                    settings_service=service,
                    created_at=now,
                )
                sent += 1
        except Exception:
            logger.exception(f'Deadline reminder failed for task {task.pk}')

    logger.info(f'Deadline reminder sweep created {sent} notification(s)')
    return sent


def check_overdue_tasks(now=None, settings_service=None):
    """
    Alert assignees of tasks past their due date.

    At most one alert per task and assignee per calendar day.
    """
    service = settings_service or default_settings_service
    settings_row = service.get()

    if not settings_row.overdue_tasks:
        logger.debug('Overdue notifications disabled; skipping sweep')
        return 0

    now = now or timezone.now()
    tasks = _open_tasks().filter(due_date__lt=now)

    sent = 0
    for task in tasks:
        try:
            with transaction.atomic():
                if already_notified(task.assigned_to, Notification.Type.TASK_OVERDUE, task, now):
                    logger.debug(f'Overdue alert for task {task.pk} already sent today')
                    continue

                create_notification(
                    recipient=task.assigned_to,
                    type=Notification.Type.TASK_OVERDUE,
                    title=f'Overdue Task: {task.title}',
                    message=(
                        f'Your task "{task.title}" was due on {format_day(task.due_date)}. '
                        f'Please update the status or deadline. Project: {task.project.title}'
                    ),
                    related_task=task,
                    related_project=task.project,
                    priority=Notification.Priority.URGENT,
                    settings_service=service,
                    created_at=now,
                )
                sent += 1
        except Exception:
            logger.exception(f'Overdue notification failed for task {task.pk}')

    logger.info(f'Overdue sweep created {sent} notification(s)')
    return sent


def format_weekly_report(summary):
    return (
        f"This week's summary: {summary['completed_tasks']} task(s) completed, "
        f"{summary['active_projects']} active project(s), "
        f"{summary['completion_rate']}% overall completion rate. Keep up the great work!"
    )


def send_weekly_reports(now=None, settings_service=None):
    """
    Send every active manager and user their weekly summary.

    Runs daily; does nothing unless today (in TIME_ZONE) is the configured
    `weekly_report_day`.
    """
    service = settings_service or default_settings_service
    settings_row = service.get()

    if not settings_row.weekly_reports:
        logger.debug('Weekly reports disabled; skipping')
        return 0

    now = now or timezone.now()
    today = WEEKDAYS[timezone.localtime(now).weekday()]
    if today != settings_row.weekly_report_day:
        logger.debug(f'Today is {today}; weekly reports go out on {settings_row.weekly_report_day}')
        return 0

    User = get_user_model()
    recipients = User.objects.filter(
        is_active=True,
        role__in=[User.Role.MANAGER, User.Role.USER],
    )

    sent = 0
    for user in recipients:
        try:
            with transaction.atomic():
                summary = get_weekly_summary(user, now)
                create_notification(
                    recipient=user,
                    type=Notification.Type.WEEKLY_REPORT,
                    title='Weekly Progress Report',
                    message=format_weekly_report(summary),
                    metadata={'summary': summary},
                    settings_service=service,
                    created_at=now,
                )
                sent += 1
        except Exception:
            logger.exception(f'Weekly report failed for user {user.pk}')

    logger.info(f'Weekly reports sent to {sent} user(s)')
    return sent
