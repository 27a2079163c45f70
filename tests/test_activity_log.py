"""
Activity log: recording, failure isolation, role scoping and the list/stats
endpoints.
"""

from unittest import mock

import pytest
from django.test import RequestFactory
from django.urls import reverse

from apps.accounts.services import update_account
from apps.activity_log.models import ActivityLog
from apps.activity_log.services import (
    activity_stats, get_client_ip, record_activity, scoped_activities,
)

Action = ActivityLog.Action
Target = ActivityLog.TargetType


def log(actor, action=Action.TASK_UPDATED, description='did something', **extra):
    return record_activity(actor=actor, action=action, target_type=Target.TASK,
                           description=description, **extra)


# =============================================================================
# Recording
# =============================================================================

def test_record_captures_request_context(user):
    request = RequestFactory().post(
        '/api/tasks/1/',
        HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1',
        HTTP_USER_AGENT='pytest-agent',
    )

    entry = log(user, target_id=1, metadata={'fields': ['status']}, request=request)

    assert entry.ip_address == '203.0.113.9'
    assert entry.user_agent == 'pytest-agent'
    assert entry.metadata == {'fields': ['status']}


def test_client_ip_falls_back_to_remote_addr():
    request = RequestFactory().get('/', REMOTE_ADDR='198.51.100.7')
    assert get_client_ip(request) == '198.51.100.7'


def test_record_failure_returns_none(user):
    with mock.patch.object(ActivityLog.objects, 'create', side_effect=RuntimeError('disk full')):
        assert log(user) is None


def test_failed_audit_write_keeps_the_change(user):
    with mock.patch.object(ActivityLog.objects, 'create', side_effect=RuntimeError('disk full')):
        update_account(user, user, {'first_name': 'Still'})

    user.refresh_from_db()
    assert user.first_name == 'Still'
    assert not ActivityLog.objects.exists()


# =============================================================================
# Scoping
# =============================================================================

def test_scoping_by_role(admin, manager, user, outsider):
    log(admin, description='admin entry')
    log(manager, description='manager entry')
    log(user, description='team entry')
    log(outsider, description='other team entry')

    def descriptions(actor):
        return set(scoped_activities(actor).values_list('description', flat=True))

    assert descriptions(admin) == {'admin entry', 'manager entry', 'team entry', 'other team entry'}
    assert descriptions(manager) == {'manager entry', 'team entry'}
    assert descriptions(user) == {'team entry'}


def test_stats_counts_most_frequent_first(admin, user):
    log(user, Action.TASK_UPDATED)
    log(user, Action.TASK_UPDATED)
    log(user, Action.LOGIN)

    stats = activity_stats(admin, recent_limit=2)

    assert stats['by_action'] == [
        {'action': Action.TASK_UPDATED, 'count': 2},
        {'action': Action.LOGIN, 'count': 1},
    ]
    assert len(stats['recent']) == 2


# =============================================================================
# Endpoints
# =============================================================================

def test_list_filters_by_action(admin_client, user):
    log(user, Action.TASK_UPDATED)
    log(user, Action.LOGIN, description='logged in')

    response = admin_client.get(reverse('activity_log:activity_list'), {'action': 'login'})

    assert response.status_code == 200
    body = response.json()
    assert [item['description'] for item in body['activities']] == ['logged in']
    assert body['pagination']['total'] == 1
    assert body['activities'][0]['actor']['email'] == user.email


def test_list_search(admin_client, user):
    log(user, description='renamed the roadmap')
    log(user, description='closed a ticket')

    response = admin_client.get(reverse('activity_log:activity_list'), {'search': 'roadmap'})

    assert [item['description'] for item in response.json()['activities']] == ['renamed the roadmap']


def test_list_rejects_bad_filter(admin_client):
    response = admin_client.get(reverse('activity_log:activity_list'), {'action': 'teleported'})

    assert response.status_code == 400
    assert 'action' in response.json()['errors']


def test_user_sees_only_own_entries(user_client, user, manager):
    log(manager, description='manager entry')
    log(user, description='mine')

    response = user_client.get(reverse('activity_log:activity_list'))

    assert [item['description'] for item in response.json()['activities']] == ['mine']


@pytest.mark.parametrize('client_fixture, expected', [
    ('admin_client', 200),
    ('manager_client', 200),
    ('user_client', 403),
])
def test_stats_endpoint_roles(request, client_fixture, expected):
    client = request.getfixturevalue(client_fixture)
    response = client.get(reverse('activity_log:activity_stats'))
    assert response.status_code == expected
