"""
Service layer for tasks app.

All business logic for task operations is centralized here, so views,
management commands and tests share the same rules.

Services:
- create_task: manager (or admin) creates a task in a project they own
- update_task: whitelisted field changes per role, status workflow bookkeeping
- delete_task: hard delete

Each successful call records exactly one activity entry; denied or invalid
calls record nothing. Notifications go out after the change is committed.
"""

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.accounts.permissions import (
    TASK_ADMIN_FIELDS, Action, Reason, allowed_update_fields, can_access,
)
from apps.activity_log.models import ActivityLog
from apps.activity_log.services import record_activity
from apps.core.coerce import to_datetime, to_decimal, to_pk
from apps.core.exceptions import AuthorizationError, NotFoundError
from apps.notifications.events import notify_task_assigned, notify_task_status_changed
from apps.projects.models import Project
from apps.system_settings.services import settings_service as default_settings_service

from .models import Task

User = get_user_model()


def _authorize(actor, action, resource, message):
    decision = can_access(actor, action, resource)
    if not decision:
        raise AuthorizationError(message, reason=decision.reason)


def resolve_assignee(value):
    """Tasks can only be assigned to active accounts with the user role."""
    pk = to_pk(value, 'assigned_to')
    if pk is None:
        raise ValidationError({'assigned_to': ['An assignee is required.']})

    assignee = User.objects.filter(pk=pk).first()
    if assignee is None or not assignee.is_active or not assignee.is_regular_user():
        raise ValidationError({'assigned_to': ['Invalid user assignment.']})
    return assignee


def _apply(task, changes):
    """Copy request values onto the task, converting JSON types."""
    if 'title' in changes:
        task.title = str(changes['title'] or '').strip()
    if 'description' in changes:
        task.description = str(changes['description'] or '').strip()
    if 'status' in changes:
        task.status = changes['status']
    if 'priority' in changes:
        task.priority = changes['priority']
    if 'due_date' in changes:
        task.due_date = to_datetime(changes['due_date'], 'due_date')
    if 'estimated_hours' in changes:
        task.estimated_hours = to_decimal(changes['estimated_hours'], 'estimated_hours')
    if 'actual_hours' in changes:
        task.actual_hours = to_decimal(changes['actual_hours'], 'actual_hours') or 0
    if 'assigned_to' in changes:
        task.assigned_to = resolve_assignee(changes['assigned_to'])


def _track_completion(task, old_status):
    if task.status == Task.Status.COMPLETED and old_status != Task.Status.COMPLETED:
        task.completed_at = timezone.now()
    elif task.status != Task.Status.COMPLETED:
        task.completed_at = None


def create_task(actor, data, request=None, settings_service=None):
    """
    Central task creation function.

    Args:
        actor: User creating the task (manager who owns the project, or admin)
        data: dict with project, assigned_to, title, due_date and optionally
            description, priority, estimated_hours
        request: Optional HttpRequest for the activity entry
        settings_service: Settings accessor for task defaults

    Returns:
        Created Task instance

    Raises:
        NotFoundError: If the project does not exist
        AuthorizationError: If the actor does not own the project or the
            assignee is outside their team
        ValidationError: If required fields are missing or invalid
    """
    project_id = to_pk(data.get('project'), 'project')
    if project_id is None:
        raise ValidationError({'project': ['A project is required.']})
    project = Project.objects.select_related('assigned_to').filter(pk=project_id).first()
    if project is None:
        raise NotFoundError('Project not found.')

    # Plain users never create tasks; managers only inside their own projects
    if actor.is_regular_user():
        raise AuthorizationError('Only managers can create tasks.', reason=Reason.ROLE_NOT_PERMITTED)
    if not can_access(actor, Action.READ, project):
        raise AuthorizationError('You can only create tasks for your assigned projects.',
                                 reason=Reason.NOT_PROJECT_OWNER)

    settings_row = (settings_service or default_settings_service).get()

    task = Task(
        project=project,
        assigned_by=actor,
        priority=settings_row.default_task_priority,
        status=Task.Status.PENDING,
    )
    changes = {key: value for key, value in data.items() if key in TASK_ADMIN_FIELDS}
    changes.setdefault('assigned_to', None)
    changes.pop('actual_hours', None)
    changes.pop('status', None)
    _apply(task, changes)

    _authorize(actor, Action.CREATE, task,
               'You can only assign tasks to users in your team.')

    errors = {}
    if not task.title:
        errors['title'] = ['Task title is required.']
    if task.due_date is None:
        errors['due_date'] = ['A due date is required.']
    if settings_row.require_estimated_hours and task.estimated_hours is None:
        errors['estimated_hours'] = ['Estimated hours are required.']
    if errors:
        raise ValidationError(errors)

    task.full_clean()

    with transaction.atomic():
        task.save()
        record_activity(
            actor=actor,
            action=ActivityLog.Action.TASK_CREATED,
            target_type=ActivityLog.TargetType.TASK,
            target_id=task.pk,
            description=(
                f'{actor.get_full_name()} created task "{task.title}" in project '
                f'"{project.title}" and assigned it to {task.assigned_to.get_full_name()}'
            ),
            metadata={
                'project': project.pk,
                'assigned_to': task.assigned_to_id,
                'priority': task.priority,
            },
            request=request,
        )

    notify_task_assigned(task, actor, settings_service=settings_service)
    return task


def update_task(actor, task, changes, request=None, settings_service=None):
    """
    Update task fields with activity logging.

    Field whitelist by role:
    - Admin: every field, including reassignment
    - Manager owning the project: title, description, status, priority,
      due_date, estimated_hours
    - Assignee: status and actual_hours

    Returns:
        Updated Task instance

    Raises:
        AuthorizationError: If the actor may not update this task or touches
            a field outside their whitelist
        ValidationError: If validation fails
    """
    _authorize(actor, Action.UPDATE, task, "You don't have permission to update this task.")

    allowed = allowed_update_fields(actor, task)
    forbidden = sorted(set(changes) - allowed)
    if forbidden:
        raise AuthorizationError(
            f'You cannot change: {", ".join(forbidden)}.',
            reason=Reason.FIELD_NOT_PERMITTED,
        )

    old_status = task.status
    old_assignee_id = task.assigned_to_id

    _apply(task, changes)
    if not task.title:
        raise ValidationError({'title': ['Task title cannot be empty.']})
    if task.due_date is None:
        raise ValidationError({'due_date': ['A due date is required.']})
    _track_completion(task, old_status)
    task.full_clean()

    status_changed = task.status != old_status
    reassigned = task.assigned_to_id != old_assignee_id

    with transaction.atomic():
        task.save()
        if status_changed:
            action = ActivityLog.Action.TASK_STATUS_CHANGED
            description = (
                f'{actor.get_full_name()} changed task "{task.title}" status '
                f'from {old_status} to {task.status}'
            )
        else:
            action = ActivityLog.Action.TASK_UPDATED
            description = f'{actor.get_full_name()} updated task "{task.title}"'
        record_activity(
            actor=actor,
            action=action,
            target_type=ActivityLog.TargetType.TASK,
            target_id=task.pk,
            description=description,
            metadata={'fields': sorted(changes), 'project': task.project_id},
            request=request,
        )

    if reassigned:
        notify_task_assigned(task, actor, settings_service=settings_service)
    if status_changed:
        notify_task_status_changed(task, actor, old_status, settings_service=settings_service)

    return task


def delete_task(actor, task, request=None):
    """
    Hard delete a task.

    Raises:
        AuthorizationError: If the actor is neither an admin nor the manager
            of the task's project
    """
    _authorize(actor, Action.DELETE, task, "You don't have permission to delete this task.")

    task_id = task.pk
    title = task.title
    project_id = task.project_id

    with transaction.atomic():
        task.delete()
        record_activity(
            actor=actor,
            action=ActivityLog.Action.TASK_DELETED,
            target_type=ActivityLog.TargetType.TASK,
            target_id=task_id,
            description=f'{actor.get_full_name()} deleted task "{title}"',
            metadata={'project': project_id},
            request=request,
        )
