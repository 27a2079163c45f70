"""
Trigger registry: scheduling lifecycle, manual fires, re-entry and error
isolation, plus the run_job management command.
"""

from io import StringIO
from types import SimpleNamespace
from unittest import mock

import pytest
from django.core.management import CommandError, call_command

from apps.notifications import scheduler
from apps.notifications.scheduler import (
    TriggerRegistry, TriggerState, UnknownTriggerError, is_serving_process,
)


class FakeScheduler:
    """Stands in for BackgroundScheduler; records jobs without a thread."""

    def __init__(self, timezone=None):
        self.timezone = timezone
        self.running = False
        self.jobs = {}

    def add_job(self, func, trigger=None, id=None, name=None, **options):
        job = SimpleNamespace(id=id, func=func, trigger=trigger, options=options, next_run_time=None)
        self.jobs[id] = job
        return job

    def start(self):
        self.running = True

    def remove_all_jobs(self):
        self.jobs.clear()

    def shutdown(self, wait=True):
        self.running = False


@pytest.fixture
def fake_schedulers():
    created = []

    def factory(timezone=None):
        instance = FakeScheduler(timezone)
        created.append(instance)
        return instance

    factory.created = created
    return factory


@pytest.fixture
def registry(fake_schedulers):
    registry = TriggerRegistry(timezone_name='America/New_York', scheduler_factory=fake_schedulers)
    registry.register('alpha', lambda: 1, '0 8-18 * * *')
    registry.register('beta', lambda: 2, '0 */6 * * *')
    return registry


# =============================================================================
# Registration
# =============================================================================

def test_duplicate_name_is_rejected(registry):
    with pytest.raises(ValueError):
        registry.register('alpha', lambda: 0, '0 9 * * *')


def test_malformed_cron_is_rejected(registry):
    with pytest.raises(ValueError):
        registry.register('gamma', lambda: 0, 'every hour')
    assert 'gamma' not in registry.names


def test_unknown_trigger(registry):
    with pytest.raises(UnknownTriggerError) as excinfo:
        registry.fire('nope')
    assert str(excinfo.value) == 'Unknown job: nope'


# =============================================================================
# Lifecycle
# =============================================================================

def test_start_schedules_every_trigger(registry, fake_schedulers):
    registry.start()

    sched = fake_schedulers.created[0]
    assert sched.timezone == 'America/New_York'
    assert sched.running and registry.is_running
    assert set(sched.jobs) == {'alpha', 'beta'}
    assert sched.jobs['alpha'].options['max_instances'] == 1
    assert sched.jobs['alpha'].options['coalesce'] is True
    assert {info['state'] for info in registry.status().values()} == {TriggerState.SCHEDULED}


def test_start_twice_does_not_duplicate_jobs(registry, fake_schedulers):
    registry.start()
    registry.start()

    assert len(fake_schedulers.created) == 1
    assert len(fake_schedulers.created[0].jobs) == 2


def test_stop_all(registry, fake_schedulers):
    registry.start()
    registry.stop_all()

    assert not registry.is_running
    assert fake_schedulers.created[0].jobs == {}
    assert all(info['state'] == TriggerState.OFF for info in registry.status().values())
    assert all(info['scheduled'] is False for info in registry.status().values())


def test_restart_after_stop(registry, fake_schedulers):
    registry.start()
    registry.stop_all()
    registry.start()

    assert registry.is_running
    assert len(fake_schedulers.created) == 2


def test_real_scheduler_reports_next_run():
    registry = TriggerRegistry(timezone_name='America/New_York')
    registry.register('alpha', lambda: 1, '0 9 * * *')
    try:
        registry.start()
        assert registry.is_running
        assert registry.status()['alpha']['next_run_at'] is not None
    finally:
        registry.stop_all()
    assert not registry.is_running


# =============================================================================
# Manual fire
# =============================================================================

@pytest.mark.django_db
def test_fire_runs_handler_and_restores_state(registry):
    assert registry.fire('alpha') == 1
    info = registry.status()['alpha']
    assert info['state'] == TriggerState.OFF
    assert info['last_result'] == 1
    assert info['last_run_at'] is not None
    assert info['last_error'] is None

    registry.start()
    assert registry.fire('beta') == 2
    assert registry.get('beta').state == TriggerState.SCHEDULED


@pytest.mark.django_db
def test_state_is_running_during_handler(registry):
    seen = []
    registry.register('watched', lambda: seen.append(registry.get('watched').state), '0 9 * * *')

    registry.fire('watched')

    assert seen == [TriggerState.RUNNING]


@pytest.mark.django_db
def test_reentrant_fire_is_skipped(registry):
    inner = []

    def handler():
        inner.append(registry.fire('nested'))
        return 'outer'

    registry.register('nested', handler, '0 9 * * *')

    assert registry.fire('nested') == 'outer'
    assert inner == [None]


@pytest.mark.django_db
def test_handler_error_is_isolated(registry):
    def explode():
        raise RuntimeError('boom')

    registry.register('broken', explode, '0 9 * * *')
    registry.start()

    assert registry.fire('broken') is None
    trigger = registry.get('broken')
    assert trigger.last_error == 'boom'
    assert trigger.state == TriggerState.SCHEDULED

    # the trigger can still run, and the others are untouched
    assert registry.fire('alpha') == 1
    assert registry.fire('broken') is None


def test_connections_are_recycled_around_each_run(registry):
    def explode():
        raise RuntimeError('boom')

    registry.register('broken', explode, '0 9 * * *')

    with mock.patch.object(scheduler, 'close_old_connections') as recycle:
        registry.fire('alpha')
        assert recycle.call_count == 2
        registry.fire('broken')
        assert recycle.call_count == 4


# =============================================================================
# Process wiring
# =============================================================================

@pytest.mark.parametrize('argv, environ, expected', [
    (['manage.py', 'migrate'], {}, False),
    (['manage.py', 'run_job', 'weekly-reports'], {}, False),
    (['manage.py'], {}, False),
    (['manage.py', 'runserver'], {}, False),
    (['manage.py', 'runserver'], {'RUN_MAIN': 'true'}, True),
    (['manage.py', 'runserver', '--noreload'], {}, True),
    (['/venv/bin/django-admin', 'migrate'], {}, False),
    (['/venv/bin/django-admin', 'runserver', '--noreload'], {}, True),
    (['/venv/lib/python3.12/site-packages/django/__main__.py', 'migrate'], {}, False),
    (['/venv/lib/python3.12/site-packages/django/__main__.py', 'runserver'], {'RUN_MAIN': 'true'}, True),
    (['/venv/bin/gunicorn', 'config.wsgi'], {}, True),
    (['/venv/lib/python3.12/site-packages/gunicorn/__main__.py', 'config.wsgi'], {}, True),
])
def test_is_serving_process(argv, environ, expected):
    assert is_serving_process(argv=argv, environ=environ) is expected


def test_start_scheduler_respects_setting(settings):
    settings.ENABLE_SCHEDULER = False
    assert scheduler.start_scheduler() is None


def test_build_registry_has_the_three_jobs(settings):
    registry = scheduler.build_registry()

    assert registry.names == [
        scheduler.DEADLINE_REMINDERS,
        scheduler.OVERDUE_NOTIFICATIONS,
        scheduler.WEEKLY_REPORTS,
    ]
    assert registry.status()[scheduler.WEEKLY_REPORTS]['cron'] == settings.NOTIFICATION_SCHEDULES['weekly-reports']


# =============================================================================
# run_job command
# =============================================================================

@pytest.mark.django_db
def test_run_job_command():
    out = StringIO()
    call_command('run_job', 'overdue-notifications', stdout=out)
    assert '✓ overdue-notifications finished: 0 notification(s) created' in out.getvalue()


@pytest.mark.django_db
def test_run_job_lists_jobs():
    out = StringIO()
    call_command('run_job', '--list', stdout=out)
    assert 'deadline-reminders' in out.getvalue()


def test_run_job_unknown():
    with pytest.raises(CommandError):
        call_command('run_job', 'nope')
