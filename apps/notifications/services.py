"""
Service layer for notifications app.

Notification dispatch:
- create_notification: persist an in-app notification, then email it if
  system settings allow that type
- should_send_email: the per-type email eligibility table
- render_notification_email / send_notification_email: template + transport

Read side (always scoped to the recipient):
- list, unread count, mark read, mark all read, delete
"""

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags

from apps.core.exceptions import NotFoundError, TransientDispatchError
from apps.system_settings.services import settings_service as default_settings_service

from .models import Notification

logger = logging.getLogger(__name__)

Type = Notification.Type


# =============================================================================
# Email eligibility
# =============================================================================

def _toggle(field_name):
    def rule(settings_row, recipient):
        return getattr(settings_row, field_name)
    return rule


def _always(settings_row, recipient):
    return True


def _team_update(settings_row, recipient):
    # Completion updates only ever go out by email to managers
    return settings_row.team_updates and recipient.role == recipient.Role.MANAGER


EMAIL_RULES = {
    Type.TASK_DEADLINE_REMINDER: _toggle('task_deadline_reminder'),
    Type.TASK_OVERDUE: _toggle('overdue_tasks'),
    Type.PROJECT_STATUS_CHANGE: _toggle('project_status_updates'),
    Type.PROJECT_ASSIGNMENT: _toggle('project_status_updates'),
    Type.WEEKLY_REPORT: _toggle('weekly_reports'),
    Type.TASK_COMPLETION: _team_update,
    Type.SYSTEM_UPDATE: _toggle('system_updates'),
    Type.TASK_ASSIGNMENT: _always,
}


# =============================================================================
# Email templates: type -> (subject pattern, template)
# =============================================================================

GENERIC_TEMPLATE = ('{title}', 'notifications/emails/generic.html')

EMAIL_TEMPLATES = {
    Type.TASK_DEADLINE_REMINDER: (
        'Task Deadline Reminder - {title}', 'notifications/emails/deadline_reminder.html'),
    Type.TASK_OVERDUE: (
        'Overdue Task - {title}', 'notifications/emails/task_overdue.html'),
    Type.PROJECT_STATUS_CHANGE: (
        'Project Status Update - {title}', 'notifications/emails/project_update.html'),
    Type.PROJECT_ASSIGNMENT: (
        'Project Assignment - {title}', 'notifications/emails/project_update.html'),
    Type.TASK_ASSIGNMENT: (
        'New Task Assigned - {title}', 'notifications/emails/task_assignment.html'),
    Type.WEEKLY_REPORT: (
        'Weekly Progress Report - {date}', 'notifications/emails/weekly_report.html'),
    Type.TASK_COMPLETION: GENERIC_TEMPLATE,
    Type.SYSTEM_UPDATE: GENERIC_TEMPLATE,
}

# Frontend page each email links to
ACTION_PATHS = {
    Type.TASK_DEADLINE_REMINDER: '/tasks',
    Type.TASK_OVERDUE: '/tasks',
    Type.TASK_ASSIGNMENT: '/tasks',
    Type.TASK_COMPLETION: '/tasks',
    Type.PROJECT_STATUS_CHANGE: '/projects',
    Type.PROJECT_ASSIGNMENT: '/projects',
    Type.WEEKLY_REPORT: '/dashboard',
    Type.SYSTEM_UPDATE: '/notifications',
}


def _check_exhaustive(table, table_name):
    missing = set(Type.values) - set(table)
    if missing:
        raise ImproperlyConfigured(
            f'{table_name} has no entry for notification type(s): {", ".join(sorted(missing))}'
        )


_check_exhaustive(EMAIL_RULES, 'EMAIL_RULES')
_check_exhaustive(EMAIL_TEMPLATES, 'EMAIL_TEMPLATES')
_check_exhaustive(ACTION_PATHS, 'ACTION_PATHS')


def should_send_email(recipient, notification_type, settings_service=None):
    """
    Decide whether a notification of this type is emailed to `recipient`.

    The master `email_notifications` toggle wins over every per-type toggle.
    Types without a rule are emailed.
    """
    settings_row = (settings_service or default_settings_service).get()

    if not settings_row.email_notifications:
        return False

    rule = EMAIL_RULES.get(notification_type)
    if rule is None:
        return True
    return bool(rule(settings_row, recipient))


def render_notification_email(notification):
    """
    Render a notification into an email.

    Returns:
        tuple: (subject, html_body, text_body)
    """
    subject_pattern, template_name = EMAIL_TEMPLATES.get(notification.type, GENERIC_TEMPLATE)
    frontend_url = settings.FRONTEND_URL.rstrip('/')

    subject = subject_pattern.format(
        title=notification.title,
        date=timezone.localdate().strftime('%m/%d/%Y'),
    )
    context = {
        'notification': notification,
        'recipient': notification.recipient,
        'summary': (notification.metadata or {}).get('summary'),
        'frontend_url': frontend_url,
        'action_url': frontend_url + ACTION_PATHS.get(notification.type, '/notifications'),
    }

    html_content = render_to_string(template_name, context)
    text_content = strip_tags(html_content).strip()
    return subject, html_content, text_content


def _transport_send(subject, text_content, html_content, to_email):
    """Hand one message to the configured email backend."""
    try:
        connection = get_connection(timeout=settings.EMAIL_TIMEOUT)
        email = EmailMultiAlternatives(
            subject=subject,
            body=text_content,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[to_email],
            connection=connection,
        )
        email.attach_alternative(html_content, 'text/html')
        email.send()
    except Exception as e:
        raise TransientDispatchError(str(e)) from e


def send_notification_email(notification):
    """
    Email a stored notification to its recipient.

    Failures (including timeouts) are logged and reported as False; they
    never propagate to the caller.

    Returns:
        bool: True if the email was handed to the transport
    """
    recipient = notification.recipient
    if not recipient.email:
        return False

    try:
        subject, html_content, text_content = render_notification_email(notification)
    except Exception as e:
        logger.error(f'Failed to render {notification.type} email for {recipient.email}: {e}')
        return False

    try:
        _transport_send(subject, text_content, html_content, recipient.email)
    except TransientDispatchError as e:
        logger.error(f'Failed to send {notification.type} email to {recipient.email}: {e}')
        return False

    now = timezone.now()
    Notification.objects.filter(pk=notification.pk).update(email_sent=True, email_sent_at=now)
    notification.email_sent = True
    notification.email_sent_at = now
    logger.debug(f'Sent {notification.type} email to {recipient.email}')
    return True


# =============================================================================
# Dispatch
# =============================================================================

def create_notification(
    recipient,
    type: str,
    title: str,
    message: str,
    sender=None,
    related_project=None,
    related_task=None,
    priority: str = Notification.Priority.MEDIUM,
    metadata=None,
    settings_service=None,
    created_at=None,
):
    """
    Persist a notification and email it when settings allow.

    Args:
        recipient: User receiving the notification
        type: One of Notification.Type
        title: Short title (required)
        message: Body text (required)
        sender: Optional User who caused it
        related_project: Optional Project
        related_task: Optional Task
        priority: low/medium/high/urgent (default: medium)
        metadata: Optional dict stored with the notification
        settings_service: Settings accessor (defaults to the database one)
        created_at: Override the creation time (sweeps pass their clock)

    Returns:
        Created Notification instance

    Raises:
        ValidationError: If type, priority, title or message is invalid
    """
    errors = {}
    if type not in Type.values:
        errors['type'] = [f'Unknown notification type: {type}']
    if priority not in Notification.Priority.values:
        errors['priority'] = [f'Unknown priority: {priority}']
    if not title or not str(title).strip():
        errors['title'] = ['Notification title is required.']
    elif len(str(title)) > Notification._meta.get_field('title').max_length:
        errors['title'] = ['Notification title is too long.']
    if not message or not str(message).strip():
        errors['message'] = ['Notification message is required.']
    if errors:
        raise ValidationError(errors)

    notification = Notification.objects.create(
        recipient=recipient,
        sender=sender,
        type=type,
        title=str(title).strip(),
        message=str(message).strip(),
        related_project=related_project,
        related_task=related_task,
        priority=priority,
        metadata=metadata or {},
        created_at=created_at or timezone.now(),
    )

    try:
        eligible = should_send_email(recipient, type, settings_service=settings_service)
    except Exception as e:
        logger.error(f'Could not evaluate email eligibility for notification {notification.pk}: {e}')
        return notification

    if eligible:
        send_notification_email(notification)
    else:
        logger.debug(f'Email skipped for {type} notification to {recipient.email}')

    return notification


def send_test_email(actor):
    """Create a system_update notification to the acting admin."""
    return create_notification(
        recipient=actor,
        sender=actor,
        type=Type.SYSTEM_UPDATE,
        title='Test Email Notification',
        message='This is a test email to verify that email notifications are working correctly.',
        priority=Notification.Priority.LOW,
    )


# =============================================================================
# Read side
# =============================================================================

def notifications_for(user, unread_only=False):
    """Notifications addressed to `user`, newest first."""
    queryset = Notification.objects.filter(recipient=user).select_related(
        'sender', 'related_project', 'related_task'
    )
    if unread_only:
        queryset = queryset.filter(is_read=False)
    return queryset


def get_notification(user, pk):
    """Another user's notification is reported as missing."""
    try:
        return notifications_for(user).get(pk=pk)
    except (Notification.DoesNotExist, ValueError):
        raise NotFoundError('Notification not found.')


def unread_count(user):
    return Notification.objects.filter(recipient=user, is_read=False).count()


def mark_read(user, pk):
    notification = get_notification(user, pk)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['is_read', 'read_at'])
    return notification


def mark_all_read(user):
    """Returns the number of notifications that changed."""
    return Notification.objects.filter(recipient=user, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )


def delete_notification(user, pk):
    notification = get_notification(user, pk)
    notification.delete()
