"""
Notifications raised by project and task changes.

Called by the project and task services after their transaction commits.
These are best-effort: a failure is logged and the already-committed change
stands.
"""

import logging

from django.utils import timezone

from apps.system_settings.services import settings_service as default_settings_service

from .models import Notification
from .services import create_notification

logger = logging.getLogger(__name__)


def format_day(value):
    """Render a date/datetime as M/D/YYYY in the configured timezone."""
    if value is None:
        return 'Not specified'
    if hasattr(value, 'hour'):
        value = timezone.localtime(value)
    return f'{value.month}/{value.day}/{value.year}'


def _dispatch(**kwargs):
    try:
        return create_notification(**kwargs)
    except Exception as e:
        logger.error(
            f'Failed to create {kwargs.get("type")} notification for {kwargs.get("recipient")}: {e}'
        )
        return None


# =============================================================================
# Tasks
# =============================================================================

def notify_task_assigned(task, actor, settings_service=None):
    """Tell the assignee about a new task."""
    return _dispatch(
        recipient=task.assigned_to,
        sender=actor,
        type=Notification.Type.TASK_ASSIGNMENT,
        title=f'New Task Assignment: {task.title}',
        message=(
            f'You have been assigned a new task "{task.title}" in project '
            f'"{task.project.title}". Due date: {format_day(task.due_date)}'
        ),
        related_task=task,
        related_project=task.project,
        priority=(
            Notification.Priority.HIGH if task.priority == task.Priority.HIGH
            else Notification.Priority.MEDIUM
        ),
        settings_service=settings_service,
    )


def notify_task_status_changed(task, actor, old_status, settings_service=None):
    """
    Status change notifications.

    - Changed by someone other than the assignee: the assignee is told.
    - Completed by the assignee: the project's manager is told.

    Returns:
        list of created notifications
    """
    created = []

    if task.assigned_to_id != actor.pk:
        created.append(_dispatch(
            recipient=task.assigned_to,
            sender=actor,
            type=Notification.Type.TASK_COMPLETION,
            title=f'Task Status Updated: {task.title}',
            message=(
                f'Your task "{task.title}" status has been changed from "{old_status}" '
                f'to "{task.status}" by {actor.get_full_name()}.'
            ),
            related_task=task,
            related_project=task.project,
            settings_service=settings_service,
        ))

    project = task.project
    if (task.status == task.Status.COMPLETED
            and actor.is_regular_user()
            and project.assigned_to_id != actor.pk):
        created.append(_dispatch(
            recipient=project.assigned_to,
            sender=actor,
            type=Notification.Type.TASK_COMPLETION,
            title=f'Task Completed: {task.title}',
            message=(
                f'{actor.get_full_name()} has completed the task "{task.title}" '
                f'in project "{project.title}".'
            ),
            related_task=task,
            related_project=project,
            settings_service=settings_service,
        ))

    return [n for n in created if n is not None]


# =============================================================================
# Projects
# =============================================================================

def _settings_row(settings_service):
    return (settings_service or default_settings_service).get()


def notify_project_assigned(project, actor, settings_service=None):
    """Tell the manager a project was assigned to them."""
    if not _settings_row(settings_service).new_project_assignment:
        logger.debug(f'Project assignment notification disabled; skipping project {project.pk}')
        return None

    return _dispatch(
        recipient=project.assigned_to,
        sender=actor,
        type=Notification.Type.PROJECT_ASSIGNMENT,
        title=f'New Project Assignment: {project.title}',
        message=(
            f'You have been assigned to manage the project "{project.title}" '
            f'by {actor.get_full_name()}. Deadline: {format_day(project.end_date)}'
        ),
        related_project=project,
        priority=(
            Notification.Priority.HIGH if project.priority == project.Priority.HIGH
            else Notification.Priority.MEDIUM
        ),
        settings_service=settings_service,
    )


def notify_project_status_changed(project, actor, old_status, settings_service=None):
    """
    Tell the other party about a project status change.

    The manager hears about changes made by anyone else; the creating admin
    hears about changes made by the manager.
    """
    if not _settings_row(settings_service).status_change_notification:
        logger.debug(f'Status change notification disabled; skipping project {project.pk}')
        return None

    if project.assigned_to_id != actor.pk:
        recipient = project.assigned_to
    elif project.created_by_id != actor.pk:
        recipient = project.created_by
    else:
        return None

    return _dispatch(
        recipient=recipient,
        sender=actor,
        type=Notification.Type.PROJECT_STATUS_CHANGE,
        title=f'Project Status Changed: {project.title}',
        message=(
            f'The status of project "{project.title}" was changed from "{old_status}" '
            f'to "{project.status}" by {actor.get_full_name()}.'
        ),
        related_project=project,
        settings_service=settings_service,
    )
