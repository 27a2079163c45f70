"""
Service layer for projects app.

Services:
- create_project: admin creates a project and assigns it to a manager
- update_project: whitelisted field changes, reassignment by admins only
- delete_project: hard delete (tasks go with it)

Each successful call records exactly one activity entry. Notifications are
sent after the change is committed.
"""

import datetime

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.accounts.permissions import (
    PROJECT_ADMIN_FIELDS, Action, Reason, allowed_update_fields, can_access,
)
from apps.activity_log.models import ActivityLog
from apps.activity_log.services import record_activity
from apps.core.coerce import to_date, to_pk
from apps.core.exceptions import AuthorizationError
from apps.notifications.events import notify_project_assigned, notify_project_status_changed
from apps.system_settings.services import settings_service as default_settings_service

from .models import Project

User = get_user_model()


def _authorize(actor, action, project, message):
    decision = can_access(actor, action, project)
    if not decision:
        raise AuthorizationError(message, reason=decision.reason)


def _forbid_fields(actor, project, changes):
    allowed = allowed_update_fields(actor, project)
    forbidden = sorted(set(changes) - allowed)
    if forbidden:
        raise AuthorizationError(
            f'You cannot change: {", ".join(forbidden)}.',
            reason=Reason.FIELD_NOT_PERMITTED,
        )


def resolve_manager(value):
    """Projects can only be assigned to active managers."""
    pk = to_pk(value, 'assigned_to')
    if pk is None:
        raise ValidationError({'assigned_to': ['A manager is required.']})

    manager = User.objects.filter(pk=pk).first()
    if manager is None or not manager.is_active:
        raise ValidationError({'assigned_to': ['Invalid user assignment.']})
    if not manager.is_manager():
        raise ValidationError({'assigned_to': ['Projects can only be assigned to managers.']})
    return manager


def _apply(project, changes):
    if 'title' in changes:
        project.title = str(changes['title'] or '').strip()
    if 'description' in changes:
        project.description = str(changes['description'] or '').strip()
    if 'status' in changes:
        project.status = changes['status']
    if 'priority' in changes:
        project.priority = changes['priority']
    if 'start_date' in changes:
        project.start_date = to_date(changes['start_date'], 'start_date')
    if 'end_date' in changes:
        project.end_date = to_date(changes['end_date'], 'end_date')
    if 'assigned_to' in changes:
        project.assigned_to = resolve_manager(changes['assigned_to'])


def create_project(actor, data, request=None, settings_service=None):
    """
    Create a project (admin only).

    Args:
        actor: User creating the project
        data: dict with title, assigned_to (manager id) and optionally
            description, status, priority, start_date, end_date
        request: Optional HttpRequest for the activity entry
        settings_service: Settings accessor for defaults and notification toggles

    Returns:
        Created Project instance

    Raises:
        AuthorizationError: If the actor may not create projects
        ValidationError: If required fields are missing or invalid
    """
    _authorize(actor, Action.CREATE, Project(created_by=actor),
               'Only admins can create projects.')

    settings_row = (settings_service or default_settings_service).get()

    project = Project(
        created_by=actor,
        priority=settings_row.default_project_priority,
        status=settings_row.default_project_status,
    )
    changes = {key: value for key, value in data.items() if key in PROJECT_ADMIN_FIELDS}
    changes.setdefault('assigned_to', None)
    _apply(project, changes)

    if settings_row.auto_assign_deadline and project.end_date is None:
        start = project.start_date or timezone.localdate()
        project.end_date = start + datetime.timedelta(days=settings_row.default_deadline_days)

    project.full_clean()

    with transaction.atomic():
        project.save()
        record_activity(
            actor=actor,
            action=ActivityLog.Action.PROJECT_CREATED,
            target_type=ActivityLog.TargetType.PROJECT,
            target_id=project.pk,
            description=(
                f'{actor.role} {actor.get_full_name()} created project "{project.title}" '
                f'assigned to {project.assigned_to.get_full_name()}'
            ),
            metadata={'assigned_to': project.assigned_to_id, 'priority': project.priority},
            request=request,
        )

    notify_project_assigned(project, actor, settings_service=settings_service)
    return project


def update_project(actor, project, changes, request=None, settings_service=None):
    """
    Update a project.

    Admins may change any field including the manager; the owning manager
    may change everything except the assignment.

    Raises:
        AuthorizationError: If the actor may not update this project or
            touches a field outside their whitelist
        ValidationError: If validation fails
    """
    _authorize(actor, Action.UPDATE, project, "You don't have permission to update this project.")
    _forbid_fields(actor, project, changes)

    old_status = project.status
    old_manager_id = project.assigned_to_id

    _apply(project, changes)
    project.full_clean()

    status_changed = project.status != old_status
    reassigned = project.assigned_to_id != old_manager_id

    with transaction.atomic():
        project.save()
        if status_changed:
            action = ActivityLog.Action.PROJECT_STATUS_CHANGED
            description = (
                f'{actor.get_full_name()} changed project "{project.title}" status '
                f'from {old_status} to {project.status}'
            )
        else:
            action = ActivityLog.Action.PROJECT_UPDATED
            description = f'{actor.get_full_name()} updated project "{project.title}"'
        record_activity(
            actor=actor,
            action=action,
            target_type=ActivityLog.TargetType.PROJECT,
            target_id=project.pk,
            description=description,
            metadata={'fields': sorted(changes)},
            request=request,
        )

    if reassigned:
        notify_project_assigned(project, actor, settings_service=settings_service)
    if status_changed:
        notify_project_status_changed(project, actor, old_status, settings_service=settings_service)

    return project


def delete_project(actor, project, request=None):
    """
    Hard delete a project and its tasks.

    Raises:
        AuthorizationError: If the actor is neither an admin nor the owning manager
    """
    _authorize(actor, Action.DELETE, project, "You don't have permission to delete this project.")

    project_id = project.pk
    title = project.title
    task_count = project.tasks.count()

    with transaction.atomic():
        project.delete()
        record_activity(
            actor=actor,
            action=ActivityLog.Action.PROJECT_DELETED,
            target_type=ActivityLog.TargetType.PROJECT,
            target_id=project_id,
            description=f'{actor.get_full_name()} deleted project "{title}"',
            metadata={'deleted_tasks': task_count},
            request=request,
        )
