"""
JSON representations of projects.
"""

from apps.accounts.serializers import account_summary
from apps.core.http import isoformat


def project_summary(project):
    if project is None:
        return None
    return {'id': project.pk, 'title': project.title, 'status': project.status}


def serialize_project(project):
    return {
        'id': project.pk,
        'title': project.title,
        'description': project.description,
        'status': project.status,
        'priority': project.priority,
        'start_date': isoformat(project.start_date),
        'end_date': isoformat(project.end_date),
        'assigned_to': account_summary(project.assigned_to),
        'created_by': account_summary(project.created_by),
        'created_at': isoformat(project.created_at),
        'updated_at': isoformat(project.updated_at),
    }
