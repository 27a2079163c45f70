"""
Notification dispatch: email eligibility, templates, transport failures and
the recipient-scoped read side.
"""

from unittest import mock

import pytest
from django.core.exceptions import ValidationError

from apps.core.exceptions import NotFoundError
from apps.notifications import services
from apps.notifications.models import Notification
from apps.system_settings.services import InMemorySettingsService

Type = Notification.Type


# =============================================================================
# Email eligibility
# =============================================================================

@pytest.mark.parametrize('notification_type', Type.values)
def test_master_switch_off_blocks_every_type(manager, notification_type):
    service = InMemorySettingsService(email_notifications=False)
    assert services.should_send_email(manager, notification_type, settings_service=service) is False


def test_task_assignment_emails_regardless_of_toggles(user):
    service = InMemorySettingsService(
        task_deadline_reminder=False, overdue_tasks=False, project_status_updates=False,
        weekly_reports=False, team_updates=False, system_updates=False,
    )
    assert services.should_send_email(user, Type.TASK_ASSIGNMENT, settings_service=service)


def test_task_completion_emails_managers_only(manager, user, settings_service):
    assert services.should_send_email(manager, Type.TASK_COMPLETION, settings_service=settings_service)
    assert not services.should_send_email(user, Type.TASK_COMPLETION, settings_service=settings_service)


def test_task_completion_respects_team_updates(manager):
    service = InMemorySettingsService(team_updates=False)
    assert not services.should_send_email(manager, Type.TASK_COMPLETION, settings_service=service)


@pytest.mark.parametrize('notification_type, toggle', [
    (Type.TASK_DEADLINE_REMINDER, 'task_deadline_reminder'),
    (Type.TASK_OVERDUE, 'overdue_tasks'),
    (Type.PROJECT_STATUS_CHANGE, 'project_status_updates'),
    (Type.PROJECT_ASSIGNMENT, 'project_status_updates'),
    (Type.WEEKLY_REPORT, 'weekly_reports'),
    (Type.SYSTEM_UPDATE, 'system_updates'),
])
def test_per_type_toggles(user, notification_type, toggle):
    on = InMemorySettingsService()
    off = InMemorySettingsService(**{toggle: False})
    assert services.should_send_email(user, notification_type, settings_service=on)
    assert not services.should_send_email(user, notification_type, settings_service=off)


def test_unlisted_type_is_emailed(user, settings_service):
    assert services.should_send_email(user, 'brand_new_type', settings_service=settings_service)


def test_every_type_has_a_rule_a_template_and_a_link():
    assert set(services.EMAIL_RULES) == set(Type.values)
    assert set(services.EMAIL_TEMPLATES) == set(Type.values)
    assert set(services.ACTION_PATHS) == set(Type.values)


# =============================================================================
# create_notification
# =============================================================================

def test_create_notification_persists_and_emails(user, task, settings_service, mailoutbox):
    notification = services.create_notification(
        recipient=user,
        type=Type.TASK_ASSIGNMENT,
        title='New Task Assignment: Build landing page',
        message='You have a new task.',
        related_task=task,
        settings_service=settings_service,
    )

    notification.refresh_from_db()
    assert notification.email_sent is True
    assert notification.email_sent_at is not None
    assert notification.is_read is False

    assert len(mailoutbox) == 1
    email = mailoutbox[0]
    assert email.to == [user.email]
    assert email.subject == 'New Task Assigned - New Task Assignment: Build landing page'
    assert email.alternatives[0][1] == 'text/html'
    assert '<' not in email.body


def test_ineligible_notification_is_stored_without_email(user, mailoutbox):
    service = InMemorySettingsService(email_notifications=False)
    notification = services.create_notification(
        recipient=user, type=Type.SYSTEM_UPDATE, title='Maintenance', message='Tonight.',
        settings_service=service,
    )

    assert Notification.objects.filter(pk=notification.pk, email_sent=False).exists()
    assert mailoutbox == []


def test_transport_failure_keeps_notification(user, settings_service, mailoutbox):
    with mock.patch.object(services.EmailMultiAlternatives, 'send', side_effect=OSError('smtp down')):
        notification = services.create_notification(
            recipient=user, type=Type.TASK_ASSIGNMENT, title='Task', message='Do it.',
            settings_service=settings_service,
        )

    notification.refresh_from_db()
    assert notification.email_sent is False
    assert notification.email_sent_at is None


def test_render_failure_keeps_notification(user, settings_service, mailoutbox):
    with mock.patch.object(services, 'render_to_string', side_effect=RuntimeError('template broke')):
        notification = services.create_notification(
            recipient=user, type=Type.TASK_ASSIGNMENT, title='Task', message='Do it.',
            settings_service=settings_service,
        )

    notification.refresh_from_db()
    assert notification.email_sent is False
    assert notification.email_sent_at is None
    assert mailoutbox == []


def test_eligibility_failure_keeps_notification(user, mailoutbox):
    broken = mock.Mock()
    broken.get.side_effect = RuntimeError('settings unavailable')

    notification = services.create_notification(
        recipient=user, type=Type.SYSTEM_UPDATE, title='Hello', message='World',
        settings_service=broken,
    )

    assert Notification.objects.filter(pk=notification.pk).exists()
    assert mailoutbox == []


def test_unknown_type_is_rejected(user, settings_service):
    with pytest.raises(ValidationError) as excinfo:
        services.create_notification(
            recipient=user, type='carrier_pigeon', title='x', message='y',
            settings_service=settings_service,
        )
    assert 'type' in excinfo.value.message_dict
    assert not Notification.objects.exists()


def test_blank_title_and_bad_priority_are_rejected(user, settings_service):
    with pytest.raises(ValidationError) as excinfo:
        services.create_notification(
            recipient=user, type=Type.SYSTEM_UPDATE, title='  ', message='y',
            priority='critical', settings_service=settings_service,
        )
    assert set(excinfo.value.message_dict) == {'title', 'priority'}


def test_send_test_email(admin, mailoutbox):
    notification = services.send_test_email(admin)

    assert notification.type == Type.SYSTEM_UPDATE
    assert notification.title == 'Test Email Notification'
    assert len(mailoutbox) == 1


# =============================================================================
# Templates
# =============================================================================

@pytest.mark.parametrize('notification_type', Type.values)
def test_every_type_renders(user, notification_type):
    notification = Notification(
        recipient=user, type=notification_type,
        title='Quarterly Launch', message='Something happened.',
    )

    subject, html, text = services.render_notification_email(notification)

    assert subject
    assert 'Quarterly Launch' in html or notification_type == Type.WEEKLY_REPORT
    assert '<' not in text
    assert 'Project Tracker Team' in text


def test_weekly_report_renders_summary(user):
    notification = Notification(
        recipient=user, type=Type.WEEKLY_REPORT, title='Weekly Progress Report',
        message='summary',
        metadata={'summary': {
            'completed_tasks': 3, 'total_tasks': 4, 'active_projects': 2, 'completion_rate': 75,
        }},
    )

    subject, html, text = services.render_notification_email(notification)

    assert subject.startswith('Weekly Progress Report - ')
    assert 'Tasks completed: 3' in text
    assert 'Completion rate: 75%' in text


def test_email_links_to_frontend(user, settings):
    settings.FRONTEND_URL = 'https://tracker.example.com/'
    notification = Notification(recipient=user, type=Type.TASK_OVERDUE, title='Late', message='Late.')

    _, html, _ = services.render_notification_email(notification)

    assert 'https://tracker.example.com/tasks' in html


# =============================================================================
# Read side
# =============================================================================

def _notify(recipient, title='Ping'):
    return Notification.objects.create(
        recipient=recipient, type=Type.SYSTEM_UPDATE, title=title, message='msg',
    )


def test_mark_read_and_counts(user):
    first = _notify(user, 'one')
    _notify(user, 'two')
    assert services.unread_count(user) == 2

    services.mark_read(user, first.pk)
    first.refresh_from_db()
    assert first.is_read and first.read_at is not None
    assert services.unread_count(user) == 1
    assert list(services.notifications_for(user, unread_only=True).values_list('title', flat=True)) == ['two']

    assert services.mark_all_read(user) == 1
    assert services.unread_count(user) == 0


def test_other_users_notification_is_not_found(user, manager):
    notification = _notify(manager)

    with pytest.raises(NotFoundError):
        services.mark_read(user, notification.pk)
    with pytest.raises(NotFoundError):
        services.delete_notification(user, notification.pk)

    assert Notification.objects.filter(pk=notification.pk).exists()


def test_delete_own_notification(user):
    notification = _notify(user)
    services.delete_notification(user, notification.pk)
    assert not Notification.objects.filter(pk=notification.pk).exists()
