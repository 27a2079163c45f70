"""
System settings: singleton row, validation, form defaults and the admin-only
settings endpoint.
"""

import json

import pytest
from django.core.exceptions import ValidationError
from django.urls import reverse

from apps.system_settings.models import SystemSettings
from apps.system_settings.services import (
    InMemorySettingsService, SettingsService, defaults_for,
)


# =============================================================================
# Service
# =============================================================================

@pytest.mark.django_db
def test_load_creates_single_row():
    first = SystemSettings.load()
    second = SystemSettings.load()

    assert first.pk == second.pk == SystemSettings.SINGLETON_PK
    assert SystemSettings.objects.count() == 1
    assert first.email_notifications is True
    assert first.weekly_report_day == SystemSettings.Weekday.FRIDAY
    assert first.allow_self_registration is False


@pytest.mark.django_db
def test_row_cannot_be_deleted():
    row = SystemSettings.load()
    row.delete()
    assert SystemSettings.objects.count() == 1


def test_update_records_actor(admin):
    service = SettingsService()
    row = service.update({'deadline_reminder_days': 5, 'weekly_report_day': 'monday'}, admin)

    assert row.last_updated_by == admin
    reloaded = service.reload()
    assert reloaded.deadline_reminder_days == 5
    assert reloaded.weekly_report_day == 'monday'


def test_unknown_setting_rejected(admin):
    with pytest.raises(ValidationError) as excinfo:
        SettingsService().update({'launch_rockets': True}, admin)
    assert excinfo.value.message_dict == {'launch_rockets': ['Unknown setting.']}


def test_read_only_fields_rejected(admin):
    with pytest.raises(ValidationError) as excinfo:
        SettingsService().update({'last_updated_by': admin.pk}, admin)
    assert 'last_updated_by' in excinfo.value.message_dict


@pytest.mark.parametrize('changes, field', [
    ({'weekly_report_day': 'someday'}, 'weekly_report_day'),
    ({'default_project_priority': 'urgent'}, 'default_project_priority'),
    ({'default_project_status': 'completed'}, 'default_project_status'),
])
def test_invalid_values_rejected(changes, field):
    with pytest.raises(ValidationError) as excinfo:
        InMemorySettingsService(**changes)
    assert field in excinfo.value.message_dict


def test_in_memory_service_never_touches_the_database(django_assert_num_queries, admin):
    service = InMemorySettingsService(team_updates=False)
    with django_assert_num_queries(0):
        assert service.get().team_updates is False
        service.update({'team_updates': True}, admin)
        assert service.reload().team_updates is True


def test_defaults_for_project_and_task():
    row = SystemSettings(default_project_priority='high', auto_assign_deadline=True,
                         default_deadline_days=14, require_estimated_hours=False)

    assert defaults_for(row, 'project') == {
        'priority': 'high', 'status': 'pending', 'auto_deadline': True, 'deadline_days': 14,
    }
    assert defaults_for(row, 'task') == {
        'priority': 'medium', 'status': 'pending', 'require_hours': False,
    }
    with pytest.raises(ValidationError):
        defaults_for(row, 'invoice')


# =============================================================================
# Endpoints
# =============================================================================

def test_admin_reads_settings(admin_client):
    response = admin_client.get(reverse('system_settings:settings_detail'))

    assert response.status_code == 200
    body = response.json()['settings']
    assert body['email_notifications'] is True
    assert body['default_deadline_days'] == 7


def test_admin_updates_settings(admin_client, admin):
    response = admin_client.put(
        reverse('system_settings:settings_detail'),
        data=json.dumps({'weekly_reports': False}),
        content_type='application/json',
    )

    assert response.status_code == 200
    assert response.json()['settings']['weekly_reports'] is False
    assert response.json()['settings']['last_updated_by'] == admin.pk
    assert SystemSettings.load().weekly_reports is False


def test_invalid_update_is_400(admin_client):
    response = admin_client.put(
        reverse('system_settings:settings_detail'),
        data=json.dumps({'default_deadline_days': 'soon'}),
        content_type='application/json',
    )

    assert response.status_code == 400
    assert 'default_deadline_days' in response.json()['errors']


@pytest.mark.parametrize('client_fixture', ['manager_client', 'user_client'])
def test_settings_are_admin_only(request, client_fixture):
    client = request.getfixturevalue(client_fixture)
    response = client.get(reverse('system_settings:settings_detail'))

    assert response.status_code == 403
    assert response.json()['reason'] == 'role_not_permitted'


def test_defaults_endpoint_open_to_any_account(manager_client):
    response = manager_client.get(reverse('system_settings:settings_defaults'), {'type': 'task'})

    assert response.status_code == 200
    assert response.json()['require_hours'] is True


def test_defaults_endpoint_rejects_unknown_type(manager_client):
    response = manager_client.get(reverse('system_settings:settings_defaults'), {'type': 'other'})
    assert response.status_code == 400
