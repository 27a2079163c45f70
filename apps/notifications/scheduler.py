"""
In-process trigger registry for the notification sweeps.

Each Trigger pairs a named handler with a cron expression. The registry
drives them with APScheduler's BackgroundScheduler in settings.TIME_ZONE and
also lets an admin (or `manage.py run_job`) fire a trigger by hand.

Trigger states: off -> scheduled -> running -> scheduled. A manual fire
runs the handler out of band and restores whatever state the trigger was in.

Single-process only: each process that starts the registry runs its own
schedule.
"""

import logging
import os
import sys
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from django.conf import settings
from django.db import close_old_connections, connection
from django.utils import timezone

from apps.core.exceptions import SchedulerHandlerError

from . import tasks

logger = logging.getLogger(__name__)


class UnknownTriggerError(LookupError):
    """No trigger is registered under the requested name."""

    def __init__(self, name):
        super().__init__(f'Unknown job: {name}')
        self.name = name


def _recycle_connections():
    """
    Drop stale database connections around a job.

    Jobs run on scheduler threads, outside the request cycle that normally
    does this. A connection inside an open transaction is left alone.
    """
    if not connection.in_atomic_block:
        close_old_connections()


class TriggerState:
    OFF = 'off'
    SCHEDULED = 'scheduled'
    RUNNING = 'running'


class Trigger:
    """A named, cron-scheduled handler with a re-entry guard."""

    def __init__(self, name, handler, cron, timezone_name=None):
        self.name = name
        self.handler = handler
        self.cron = cron
        self.timezone_name = timezone_name or settings.TIME_ZONE

        self.state = TriggerState.OFF
        self.last_run_at = None
        self.last_result = None
        self.last_error = None
        self.job = None

        self._lock = threading.Lock()

    def build_cron_trigger(self):
        return CronTrigger.from_crontab(self.cron, timezone=self.timezone_name)

    def _invoke(self):
        _recycle_connections()
        try:
            return self.handler()
        except Exception as e:
            raise SchedulerHandlerError(self.name, e) from e
        finally:
            _recycle_connections()

    def run(self):
        """
        Run the handler once.

        Skips (returns None) if this trigger is already running. Handler
        failures are logged and kept in `last_error`; they never escape.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning(f'Job {self.name} is already running; skipping this run')
            return None

        previous_state = self.state
        self.state = TriggerState.RUNNING
        result = None
        try:
            logger.info(f'Running job {self.name}')
            result = self._invoke()
            self.last_result = result
            self.last_error = None
        except SchedulerHandlerError as e:
            logger.exception(f'Job {self.name} failed')
            self.last_error = str(e.original)
        finally:
            self.last_run_at = timezone.now()
            # stop_all may have switched the trigger off mid-run
            if self.state == TriggerState.RUNNING:
                self.state = previous_state
            self._lock.release()

        return result

    def next_run_at(self):
        if self.job is None:
            return None
        return getattr(self.job, 'next_run_time', None)

    def as_dict(self):
        next_run = self.next_run_at()
        return {
            'name': self.name,
            'cron': self.cron,
            'timezone': self.timezone_name,
            'state': self.state,
            'running': self.state == TriggerState.RUNNING,
            'scheduled': self.state != TriggerState.OFF,
            'next_run_at': next_run.isoformat() if next_run else None,
            'last_run_at': self.last_run_at.isoformat() if self.last_run_at else None,
            'last_result': self.last_result,
            'last_error': self.last_error,
        }


class TriggerRegistry:
    """
    Holds the triggers and the APScheduler instance that drives them.

    Usage:
        registry = TriggerRegistry()
        registry.register('deadline-reminders', check_deadline_reminders, '0 8-18 * * *')
        registry.start()
    """

    def __init__(self, timezone_name=None, scheduler_factory=None):
        self.timezone_name = timezone_name or settings.TIME_ZONE
        self._scheduler_factory = scheduler_factory or BackgroundScheduler
        self._scheduler = None
        self._triggers = {}

    def register(self, name, handler, cron):
        if name in self._triggers:
            raise ValueError(f'Job {name} is already registered')
        trigger = Trigger(name, handler, cron, self.timezone_name)
        # Fail at registration, not at start, on a malformed expression
        trigger.build_cron_trigger()
        self._triggers[name] = trigger
        return trigger

    def get(self, name):
        try:
            return self._triggers[name]
        except KeyError:
            raise UnknownTriggerError(name)

    @property
    def names(self):
        return list(self._triggers)

    @property
    def is_running(self):
        return self._scheduler is not None and self._scheduler.running

    def start(self):
        """Schedule every trigger that is off and start the scheduler."""
        if self._scheduler is None:
            self._scheduler = self._scheduler_factory(timezone=self.timezone_name)

        for trigger in self._triggers.values():
            if trigger.state != TriggerState.OFF:
                continue
            trigger.job = self._scheduler.add_job(
                trigger.run,
                trigger=trigger.build_cron_trigger(),
                id=trigger.name,
                name=trigger.name,
                replace_existing=True,
                max_instances=1,      # Prevent overlapping runs
                coalesce=True,        # Merge missed runs if server was down
            )
            trigger.state = TriggerState.SCHEDULED
            logger.info(f'Scheduled job {trigger.name} ({trigger.cron}, {self.timezone_name})')

        if not self._scheduler.running:
            self._scheduler.start()

    def stop_all(self):
        """Cancel every job and shut the scheduler down."""
        if self._scheduler is not None:
            self._scheduler.remove_all_jobs()
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        for trigger in self._triggers.values():
            trigger.state = TriggerState.OFF
            trigger.job = None
            logger.info(f'Stopped job {trigger.name}')

    def status(self):
        return {name: trigger.as_dict() for name, trigger in self._triggers.items()}

    def fire(self, name):
        """
        Run one trigger's handler now.

        Returns:
            The handler's result, or None if skipped or failed

        Raises:
            UnknownTriggerError: No trigger with that name
        """
        return self.get(name).run()


# =============================================================================
# Process-wide registry
# =============================================================================

DEADLINE_REMINDERS = 'deadline-reminders'
OVERDUE_NOTIFICATIONS = 'overdue-notifications'
WEEKLY_REPORTS = 'weekly-reports'

_registry = None
_registry_lock = threading.Lock()


def build_registry():
    schedules = settings.NOTIFICATION_SCHEDULES
    registry = TriggerRegistry()
    registry.register(DEADLINE_REMINDERS, tasks.check_deadline_reminders, schedules[DEADLINE_REMINDERS])
    registry.register(OVERDUE_NOTIFICATIONS, tasks.check_overdue_tasks, schedules[OVERDUE_NOTIFICATIONS])
    registry.register(WEEKLY_REPORTS, tasks.send_weekly_reports, schedules[WEEKLY_REPORTS])
    return registry


def get_registry():
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = build_registry()
        return _registry


DJANGO_COMMAND_NAMES = ('manage.py', 'django-admin', 'django-admin.py')


def _is_django_command(program):
    """manage.py, django-admin, or python -m django."""
    name = os.path.basename(program)
    if name == '__main__.py':
        return os.path.basename(os.path.dirname(program)) == 'django'
    return name in DJANGO_COMMAND_NAMES


def is_serving_process(argv=None, environ=None):
    """
    False for one-off management commands and for the runserver
    autoreloader's watcher process.
    """
    argv = sys.argv if argv is None else argv
    environ = os.environ if environ is None else environ

    if argv and _is_django_command(argv[0]):
        if len(argv) < 2 or argv[1] != 'runserver':
            return False
        if '--noreload' not in argv and environ.get('RUN_MAIN') != 'true':
            return False
    return True


def start_scheduler():
    """
    Start the notification scheduler.

    - Respects ENABLE_SCHEDULER setting
    - Prevents double start
    """
    if not getattr(settings, 'ENABLE_SCHEDULER', False):
        logger.info('Notification scheduler disabled via settings (ENABLE_SCHEDULER=False)')
        return None

    registry = get_registry()
    if registry.is_running:
        logger.info('Notification scheduler already running, skipping initialization')
        return registry

    registry.start()
    logger.info(f'Notification scheduler started with jobs: {", ".join(registry.names)}')
    return registry
