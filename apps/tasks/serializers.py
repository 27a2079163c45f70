"""
JSON representations of tasks.
"""

from apps.accounts.serializers import account_summary
from apps.core.http import isoformat
from apps.projects.serializers import project_summary


def _hours(value):
    return float(value) if value is not None else None


def serialize_task(task):
    return {
        'id': task.pk,
        'title': task.title,
        'description': task.description,
        'status': task.status,
        'priority': task.priority,
        'due_date': isoformat(task.due_date),
        'estimated_hours': _hours(task.estimated_hours),
        'actual_hours': _hours(task.actual_hours),
        'is_overdue': task.is_overdue,
        'project': project_summary(task.project),
        'assigned_to': account_summary(task.assigned_to),
        'assigned_by': account_summary(task.assigned_by),
        'created_at': isoformat(task.created_at),
        'updated_at': isoformat(task.updated_at),
        'completed_at': isoformat(task.completed_at),
    }
