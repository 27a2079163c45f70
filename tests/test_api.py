"""
JSON API: authentication, status codes (401/403/404/405), role-scoped
listings and one end-to-end workflow across accounts, projects, tasks and
notifications.
"""

import datetime
import json

import pytest
from django.test import Client
from django.urls import reverse
from django.utils import timezone

from apps.accounts.models import User
from apps.activity_log.models import ActivityLog
from apps.notifications.models import Notification
from apps.projects.models import Project
from apps.system_settings.models import SystemSettings
from apps.tasks.models import Task

PASSWORD = 'Tracker-Pass-2024!'


def send(client, method, url, data=None):
    return getattr(client, method)(
        url,
        data=json.dumps(data or {}),
        content_type='application/json',
    )


def post(client, url, data=None):
    return send(client, 'post', url, data)


def put(client, url, data=None):
    return send(client, 'put', url, data)


def due_in(days):
    return (timezone.now() + datetime.timedelta(days=days)).isoformat()


# =============================================================================
# Request handling
# =============================================================================

@pytest.mark.django_db
@pytest.mark.parametrize('url_name', [
    'auth:me', 'accounts:user_list', 'projects:project_list', 'tasks:task_list',
    'notifications:notification_list', 'activity_log:activity_list',
    'system_settings:settings_detail', 'reports:reports',
])
def test_anonymous_gets_401(client, url_name):
    response = client.get(reverse(url_name))

    assert response.status_code == 401
    assert response.json()['message'] == 'Authentication required.'


def test_wrong_method_is_405(user_client):
    response = user_client.delete(reverse('tasks:task_list'))

    assert response.status_code == 405
    assert response['Allow'] == 'GET, POST'


def test_malformed_json_is_400(admin_client):
    response = admin_client.post(reverse('projects:project_list'), data='{oops', content_type='application/json')
    assert response.status_code == 400


# =============================================================================
# Authentication
# =============================================================================

def test_login_and_me(user):
    client = Client()

    response = post(client, reverse('auth:login'), {'email': 'UMA.USER@example.com', 'password': PASSWORD})

    assert response.status_code == 200
    assert response.json()['user']['email'] == user.email
    assert ActivityLog.objects.filter(actor=user, action=ActivityLog.Action.LOGIN).count() == 1

    me = client.get(reverse('auth:me'))
    assert me.status_code == 200
    assert me.json()['user']['id'] == user.pk


@pytest.mark.parametrize('payload, status', [
    ({'email': 'uma.user@example.com', 'password': 'wrong'}, 401),
    ({'email': 'nobody@example.com', 'password': PASSWORD}, 401),
    ({'email': 'uma.user@example.com'}, 400),
])
def test_login_failures(user, payload, status):
    response = post(Client(), reverse('auth:login'), payload)

    assert response.status_code == status
    assert not ActivityLog.objects.exists()


def test_inactive_account_cannot_log_in(user):
    user.is_active = False
    user.save()

    response = post(Client(), reverse('auth:login'), {'email': user.email, 'password': PASSWORD})
    assert response.status_code == 401


def test_logout(user_client, user):
    response = post(user_client, reverse('auth:logout'))

    assert response.status_code == 200
    assert ActivityLog.objects.get().action == ActivityLog.Action.LOGOUT
    assert user_client.get(reverse('auth:me')).status_code == 401


def test_registration_closed_then_open(db):
    payload = {
        'email': 'walk.in@example.com', 'password': 'Velvet-Harbor-41',
        'first_name': 'Walk', 'last_name': 'In',
    }

    closed = post(Client(), reverse('auth:register'), payload)
    assert closed.status_code == 403
    assert closed.json()['reason'] == 'registration_closed'

    row = SystemSettings.load()
    row.allow_self_registration = True
    row.save()

    opened = post(Client(), reverse('auth:register'), payload)
    assert opened.status_code == 201
    assert opened.json()['user']['role'] == 'user'


# =============================================================================
# Users
# =============================================================================

def test_manager_lists_own_team(manager_client, manager, user, outsider):
    response = manager_client.get(reverse('accounts:user_list'))

    assert response.status_code == 200
    assert {item['id'] for item in response.json()['users']} == {manager.pk, user.pk}


def test_admin_filters_users(admin_client, manager, other_manager, user):
    response = admin_client.get(reverse('accounts:user_list'), {'role': 'manager', 'search': 'otto'})
    assert [item['id'] for item in response.json()['users']] == [other_manager.pk]


def test_user_detail_403_vs_404(manager_client, outsider):
    assert manager_client.get(reverse('accounts:user_detail', args=[outsider.pk])).status_code == 403
    assert manager_client.get(reverse('accounts:user_detail', args=[99999])).status_code == 404


def test_manager_creates_team_member(manager_client, manager):
    response = post(manager_client, reverse('accounts:user_list'), {
        'email': 'nate.new@example.com', 'password': 'Quartz-Meadow-62',
        'first_name': 'Nate', 'last_name': 'New',
    })

    assert response.status_code == 201
    body = response.json()
    assert body['message'] == 'User created successfully'
    assert body['user']['manager'] == manager.pk


def test_manager_cannot_promote(manager_client, user):
    response = put(manager_client, reverse('accounts:user_detail', args=[user.pk]), {'role': 'manager'})

    assert response.status_code == 403
    assert response.json()['reason'] == 'field_not_permitted'


def test_create_user_validation_errors(admin_client):
    response = post(admin_client, reverse('accounts:user_list'), {'email': 'not-an-email'})

    assert response.status_code == 400
    assert 'password' in response.json()['errors']


def test_delete_deactivates(admin_client, user):
    response = admin_client.delete(reverse('accounts:user_detail', args=[user.pk]))

    assert response.status_code == 200
    assert response.json()['message'] == 'User deactivated successfully'
    assert User.objects.get(pk=user.pk).is_active is False


def test_password_change_keeps_session(user_client, user):
    response = put(user_client, reverse('accounts:password_change', args=[user.pk]), {
        'current_password': PASSWORD, 'new_password': 'Fresh-Password-2025',
    })

    assert response.status_code == 200
    assert user_client.get(reverse('auth:me')).status_code == 200


# =============================================================================
# Projects
# =============================================================================

def test_users_cannot_list_projects(user_client, project):
    response = user_client.get(reverse('projects:project_list'))

    assert response.status_code == 403
    assert response.json()['reason'] == 'role_not_permitted'


def test_manager_lists_own_projects(manager_client, project, other_project):
    response = manager_client.get(reverse('projects:project_list'))

    assert [item['id'] for item in response.json()['projects']] == [project.pk]
    assert response.json()['pagination'] == {'current': 1, 'pages': 1, 'total': 1}


def test_project_list_filters(admin_client, project, other_project):
    response = admin_client.get(reverse('projects:project_list'), {'status': 'in-progress'})
    assert [item['id'] for item in response.json()['projects']] == [project.pk]

    bad = admin_client.get(reverse('projects:project_list'), {'status': 'sleeping'})
    assert bad.status_code == 400


def test_project_detail_403_vs_404(manager_client, other_project):
    forbidden = manager_client.get(reverse('projects:project_detail', args=[other_project.pk]))
    assert forbidden.status_code == 403
    assert forbidden.json()['reason'] == 'not_project_owner'

    assert manager_client.get(reverse('projects:project_detail', args=[99999])).status_code == 404


def test_admin_creates_project(admin_client, manager):
    response = post(admin_client, reverse('projects:project_list'), {
        'title': 'Mobile App', 'assigned_to': manager.pk, 'priority': 'high',
    })

    assert response.status_code == 201
    assert response.json()['project']['assigned_to']['id'] == manager.pk
    assert Notification.objects.filter(recipient=manager, type='project_assignment').exists()


def test_manager_cannot_create_project(manager_client, manager):
    response = post(manager_client, reverse('projects:project_list'), {
        'title': 'Side Quest', 'assigned_to': manager.pk,
    })
    assert response.status_code == 403


def test_manager_deletes_own_project(manager_client, project, task):
    response = manager_client.delete(reverse('projects:project_detail', args=[project.pk]))

    assert response.status_code == 200
    assert not Project.objects.exists()
    assert not Task.objects.exists()


# =============================================================================
# Tasks
# =============================================================================

def test_task_lists_are_role_scoped(admin_client, manager_client, user_client, task, other_project,
                                    outsider, other_manager):
    Task.objects.create(
        title='Elsewhere', project=other_project, assigned_to=outsider,
        assigned_by=other_manager, due_date=timezone.now() + datetime.timedelta(days=2),
    )

    def titles(client):
        return {item['title'] for item in client.get(reverse('tasks:task_list')).json()['tasks']}

    assert titles(admin_client) == {'Build landing page', 'Elsewhere'}
    assert titles(manager_client) == {'Build landing page'}
    assert titles(user_client) == {'Build landing page'}


def test_task_list_filters(user_client, task):
    overdue = user_client.get(reverse('tasks:task_list'), {'deadline': 'overdue'})
    assert overdue.json()['tasks'] == []

    pending = user_client.get(reverse('tasks:task_list'), {'status': 'pending'})
    assert [item['id'] for item in pending.json()['tasks']] == [task.pk]

    bad = user_client.get(reverse('tasks:task_list'), {'deadline': 'someday'})
    assert bad.status_code == 400


def test_manager_creates_task(manager_client, project, user):
    response = post(manager_client, reverse('tasks:task_list'), {
        'project': project.pk, 'assigned_to': user.pk, 'title': 'Draft copy',
        'due_date': due_in(4), 'estimated_hours': 3,
    })

    assert response.status_code == 201
    body = response.json()['task']
    assert body['estimated_hours'] == 3.0
    assert body['is_overdue'] is False


def test_task_creation_errors(manager_client, project, other_project, user, outsider):
    outside_team = post(manager_client, reverse('tasks:task_list'), {
        'project': project.pk, 'assigned_to': outsider.pk, 'title': 'x',
        'due_date': due_in(1), 'estimated_hours': 1,
    })
    assert outside_team.status_code == 403
    assert outside_team.json()['reason'] == 'assignee_not_in_team'

    missing_project = post(manager_client, reverse('tasks:task_list'), {
        'project': 99999, 'assigned_to': user.pk,
    })
    assert missing_project.status_code == 404

    no_hours = post(manager_client, reverse('tasks:task_list'), {
        'project': project.pk, 'assigned_to': user.pk, 'title': 'x', 'due_date': due_in(1),
    })
    assert no_hours.status_code == 400
    assert 'estimated_hours' in no_hours.json()['errors']


def test_assignee_updates_status_only(user_client, task):
    url = reverse('tasks:task_detail', args=[task.pk])

    done = put(user_client, url, {'status': 'completed', 'actual_hours': 7.5})
    assert done.status_code == 200
    assert done.json()['task']['completed_at'] is not None
    assert done.json()['task']['actual_hours'] == 7.5

    renamed = put(user_client, url, {'title': 'Renamed'})
    assert renamed.status_code == 403
    assert renamed.json()['reason'] == 'field_not_permitted'


def test_task_detail_403_vs_404(user_client, task, make_user, manager):
    stranger = make_user('sam.stranger@example.com', User.Role.USER, manager=manager)
    client = Client()
    client.force_login(stranger)

    assert client.get(reverse('tasks:task_detail', args=[task.pk])).status_code == 403
    assert user_client.get(reverse('tasks:task_detail', args=[99999])).status_code == 404


def test_assignee_cannot_delete_task(user_client, task):
    response = user_client.delete(reverse('tasks:task_detail', args=[task.pk]))
    assert response.status_code == 403
    assert Task.objects.filter(pk=task.pk).exists()


def test_project_tasks_access(user_client, manager_client, task, project, outsider):
    url = reverse('tasks:project_tasks', args=[project.pk])

    assert [item['id'] for item in user_client.get(url).json()['tasks']] == [task.pk]
    assert manager_client.get(url).status_code == 200

    client = Client()
    client.force_login(outsider)
    denied = client.get(url)
    assert denied.status_code == 403
    assert denied.json()['reason'] == 'not_assignee'

    assert user_client.get(reverse('tasks:project_tasks', args=[99999])).status_code == 404


# =============================================================================
# Notifications
# =============================================================================

def _notify(recipient, title='Ping'):
    return Notification.objects.create(
        recipient=recipient, type=Notification.Type.SYSTEM_UPDATE, title=title, message='msg',
    )


def test_notification_inbox(user_client, user, manager):
    mine = _notify(user, 'mine')
    _notify(user, 'also mine')
    _notify(manager, 'not mine')

    listing = user_client.get(reverse('notifications:notification_list')).json()
    assert {item['title'] for item in listing['notifications']} == {'mine', 'also mine'}
    assert listing['unread_count'] == 2

    read = put(user_client, reverse('notifications:mark_read', args=[mine.pk]))
    assert read.json()['notification']['is_read'] is True
    assert user_client.get(reverse('notifications:unread_count')).json() == {'count': 1}

    unread = user_client.get(reverse('notifications:notification_list'), {'unread_only': 'true'}).json()
    assert [item['title'] for item in unread['notifications']] == ['also mine']

    assert put(user_client, reverse('notifications:mark_all_read')).json()['updated'] == 1


def test_other_users_notification_is_404(user_client, manager):
    theirs = _notify(manager)

    assert put(user_client, reverse('notifications:mark_read', args=[theirs.pk])).status_code == 404
    assert user_client.delete(reverse('notifications:notification_delete', args=[theirs.pk])).status_code == 404


def test_delete_notification(user_client, user):
    notification = _notify(user)

    response = user_client.delete(reverse('notifications:notification_delete', args=[notification.pk]))

    assert response.status_code == 200
    assert not Notification.objects.exists()


def test_test_email_is_admin_only(admin_client, user_client, mailoutbox):
    assert post(user_client, reverse('notifications:test_email')).status_code == 403

    response = post(admin_client, reverse('notifications:test_email'))
    assert response.status_code == 200
    assert response.json()['email_sent'] is True
    assert len(mailoutbox) == 1


def test_scheduler_endpoints(admin_client, manager_client):
    status = admin_client.get(reverse('notifications:scheduler_status'))
    assert status.status_code == 200
    assert set(status.json()['jobs']) == {'deadline-reminders', 'overdue-notifications', 'weekly-reports'}

    assert manager_client.get(reverse('notifications:scheduler_status')).status_code == 403

    run = post(admin_client, reverse('notifications:scheduler_run', args=['overdue-notifications']))
    assert run.status_code == 200
    assert run.json()['result'] == 0

    unknown = post(admin_client, reverse('notifications:scheduler_run', args=['nope']))
    assert unknown.status_code == 404


# =============================================================================
# Reports
# =============================================================================

def test_reports_by_role(admin_client, manager_client, user_client, task):
    assert user_client.get(reverse('reports:reports')).status_code == 403

    manager_report = manager_client.get(reverse('reports:reports')).json()
    assert manager_report['overview']['total_projects'] == 1
    assert manager_report['user_stats'] == []

    admin_report = admin_client.get(reverse('reports:reports')).json()
    assert admin_report['project_stats'][0]['total_tasks'] == 1
    assert len(admin_report['user_stats']) == 2


# =============================================================================
# End to end
# =============================================================================

def test_project_workflow(admin_client, admin):
    manager_response = post(admin_client, reverse('accounts:user_list'), {
        'email': 'max.manager@example.com', 'password': 'Orbit-Lantern-58',
        'first_name': 'Max', 'last_name': 'Manager', 'role': 'manager',
    })
    assert manager_response.status_code == 201
    manager_id = manager_response.json()['user']['id']

    project_response = post(admin_client, reverse('projects:project_list'), {
        'title': 'Launch', 'assigned_to': manager_id, 'end_date': '2030-01-31',
    })
    assert project_response.status_code == 201
    project_id = project_response.json()['project']['id']

    manager = Client()
    assert post(manager, reverse('auth:login'), {
        'email': 'max.manager@example.com', 'password': 'Orbit-Lantern-58',
    }).status_code == 200

    member_response = post(manager, reverse('accounts:user_list'), {
        'email': 'tia.team@example.com', 'password': 'Copper-Falcon-93',
        'first_name': 'Tia', 'last_name': 'Team',
    })
    member_id = member_response.json()['user']['id']

    task_response = post(manager, reverse('tasks:task_list'), {
        'project': project_id, 'assigned_to': member_id, 'title': 'Ship it',
        'due_date': due_in(2), 'estimated_hours': 5,
    })
    assert task_response.status_code == 201
    task_id = task_response.json()['task']['id']

    member = Client()
    post(member, reverse('auth:login'), {'email': 'tia.team@example.com', 'password': 'Copper-Falcon-93'})
    inbox = member.get(reverse('notifications:notification_list')).json()
    assert [item['type'] for item in inbox['notifications']] == ['task_assignment']

    assert put(member, reverse('tasks:task_detail', args=[task_id]), {'status': 'completed'}).status_code == 200

    manager_inbox = manager.get(reverse('notifications:notification_list')).json()
    assert {item['type'] for item in manager_inbox['notifications']} == {
        'project_assignment', 'task_completion',
    }

    actions = list(ActivityLog.objects.order_by('id').values_list('action', flat=True))
    assert actions == [
        'user_created', 'project_created', 'login', 'user_created',
        'task_created', 'login', 'task_status_changed',
    ]
