"""
Settings accessor.

Everything that consults system settings (email eligibility, the scheduled
sweeps, project/task defaults) goes through a settings service instead of
reading the row directly, so tests can hand in an InMemorySettingsService.
"""

import logging

from django.core.exceptions import ValidationError

from .models import SystemSettings

logger = logging.getLogger(__name__)

READ_ONLY_FIELDS = {'id', 'last_updated_by', 'created_at', 'updated_at'}

EDITABLE_FIELDS = frozenset(
    field.name for field in SystemSettings._meta.concrete_fields
    if field.name not in READ_ONLY_FIELDS
)


def apply_changes(instance, changes):
    """
    Validate and apply `changes` to a SystemSettings instance in place.

    Raises:
        ValidationError: unknown field names or invalid values
    """
    if not isinstance(changes, dict):
        raise ValidationError('Settings changes must be an object.')

    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError({name: ['Unknown setting.'] for name in unknown})

    for name, value in changes.items():
        setattr(instance, name, value)

    # clean_fields converts and validates each value (choices, ranges, types)
    instance.clean_fields(exclude=list(READ_ONLY_FIELDS))
    return instance


def defaults_for(settings_row, kind):
    """
    Defaults the client uses to pre-fill new project/task forms.

    Args:
        settings_row: SystemSettings instance
        kind: 'project' or 'task'
    """
    if kind == 'project':
        return {
            'priority': settings_row.default_project_priority,
            'status': settings_row.default_project_status,
            'auto_deadline': settings_row.auto_assign_deadline,
            'deadline_days': settings_row.default_deadline_days,
        }
    if kind == 'task':
        return {
            'priority': settings_row.default_task_priority,
            'status': 'pending',
            'require_hours': settings_row.require_estimated_hours,
        }
    raise ValidationError({'type': ['Must be "project" or "task".']})


class SettingsService:
    """Database-backed settings accessor."""

    def get(self):
        """Current settings; the row is created with defaults on first call."""
        return SystemSettings.load()

    def reload(self):
        """Re-read the row. `get()` never caches, so this is the same read."""
        return self.get()

    def update(self, changes, actor):
        """
        Apply `changes` and record who made them.

        Returns:
            The saved SystemSettings instance
        """
        instance = apply_changes(self.get(), changes)
        instance.last_updated_by = actor
        instance.save()
        logger.info(f'System settings updated by {actor}: {sorted(changes)}')
        return instance


class InMemorySettingsService:
    """
    Settings accessor that never touches the database.

    Usage in tests:
        service = InMemorySettingsService(email_notifications=False)
        check_deadline_reminders(settings_service=service)
    """

    def __init__(self, **overrides):
        self._settings = apply_changes(SystemSettings(), overrides)

    def get(self):
        return self._settings

    def reload(self):
        return self._settings

    def update(self, changes, actor):
        apply_changes(self._settings, changes)
        self._settings.last_updated_by = actor
        return self._settings


settings_service = SettingsService()
