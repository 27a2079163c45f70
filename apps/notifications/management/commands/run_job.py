"""
Management command to run one notification job immediately.

Runs the same handler the scheduler would, in this process, without
waiting for its cron time.

Usage:
    python manage.py run_job deadline-reminders
    python manage.py run_job --list
"""
from django.core.management.base import BaseCommand, CommandError

from apps.notifications.scheduler import UnknownTriggerError, get_registry


class Command(BaseCommand):
    help = 'Run a notification job (deadline reminders, overdue checks, weekly reports) now'

    def add_arguments(self, parser):
        parser.add_argument('job', nargs='?', help='Name of the job to run')
        parser.add_argument(
            '--list',
            action='store_true',
            help='List registered jobs and their schedules',
        )

    def handle(self, *args, **options):
        registry = get_registry()

        if options['list'] or not options['job']:
            self.stdout.write('\nRegistered jobs:')
            for name, info in registry.status().items():
                self.stdout.write(f'  • {name:<24} → {info["cron"]} ({info["timezone"]})')
            self.stdout.write('')
            return

        name = options['job']
        try:
            trigger = registry.get(name)
        except UnknownTriggerError as e:
            raise CommandError(f'{e}. Available jobs: {", ".join(registry.names)}')

        self.stdout.write(f'\nRunning {name}...')
        result = registry.fire(name)

        if trigger.last_error:
            raise CommandError(f'{name} failed: {trigger.last_error}')

        self.stdout.write(
            self.style.SUCCESS(f'✓ {name} finished: {result or 0} notification(s) created')
        )
