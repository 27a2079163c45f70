"""
Service layer for reports app.

- get_weekly_summary: the per-account numbers behind the weekly report email
- get_overview: the reports page for admins and managers (overview counts,
  per-project progress, per-account breakdown for admins)
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.utils import timezone

from apps.projects.models import Project
from apps.tasks.models import Task


def percentage(part, total):
    """Integer percentage rounded half up; 0 when total is 0."""
    if not total:
        return 0
    return (part * 200 + total) // (2 * total)


def _average_days(completed_tasks):
    durations = [
        (task.completed_at - task.created_at).total_seconds() / 86400
        for task in completed_tasks
        if task.completed_at and task.created_at
    ]
    if not durations:
        return 0
    return int(sum(durations) / len(durations) + 0.5)


def get_weekly_summary(user, now=None):
    """
    Weekly numbers for one account.

    Returns:
        dict: completed_tasks (completed in the last 7 days), total_tasks
        (all assigned), active_projects (in-progress projects the account
        manages or has tasks in), completion_rate (percent, half up)
    """
    now = now or timezone.now()
    week_ago = now - timedelta(days=7)

    assigned = Task.objects.filter(assigned_to=user)
    completed_tasks = assigned.filter(
        status=Task.Status.COMPLETED,
        completed_at__gte=week_ago,
    ).count()
    total_tasks = assigned.count()
    active_projects = Project.objects.filter(
        Q(assigned_to=user) | Q(tasks__assigned_to=user),
        status=Project.Status.IN_PROGRESS,
    ).distinct().count()

    return {
        'completed_tasks': completed_tasks,
        'total_tasks': total_tasks,
        'active_projects': active_projects,
        'completion_rate': percentage(completed_tasks, total_tasks),
    }


def get_overview(actor, start_date=None, end_date=None, manager_id=None):
    """
    Reports overview for an admin or manager.

    Args:
        actor: Admin or manager requesting the report
        start_date / end_date: Optional dates bounding created_at
        manager_id: Admin only, narrow to one manager's projects

    Returns:
        dict with 'overview', 'project_stats' and 'user_stats'
    """
    User = get_user_model()

    projects = Project.objects.select_related('assigned_to')
    if actor.is_manager():
        projects = projects.filter(assigned_to=actor)
    elif manager_id:
        projects = projects.filter(assigned_to_id=manager_id)

    tasks = Task.objects.all()
    if actor.is_manager() or manager_id:
        tasks = tasks.filter(project__in=projects)

    if start_date:
        projects = projects.filter(created_at__date__gte=start_date)
        tasks = tasks.filter(created_at__date__gte=start_date)
    if end_date:
        projects = projects.filter(created_at__date__lte=end_date)
        tasks = tasks.filter(created_at__date__lte=end_date)

    completed = tasks.filter(status=Task.Status.COMPLETED)

    overview = {
        'total_projects': projects.count(),
        'completed_tasks': completed.count(),
        'active_users': User.objects.filter(is_active=True).count(),
        'avg_completion_days': _average_days(completed.only('created_at', 'completed_at')),
    }

    project_stats = []
    annotated = projects.annotate(
        total_tasks=Count('tasks'),
        completed_tasks=Count('tasks', filter=Q(tasks__status=Task.Status.COMPLETED)),
    )
    for project in annotated:
        project_stats.append({
            'id': project.pk,
            'title': project.title,
            'manager': project.assigned_to.get_full_name(),
            'total_tasks': project.total_tasks,
            'completed_tasks': project.completed_tasks,
            'progress': percentage(project.completed_tasks, project.total_tasks),
            'status': project.status,
        })

    user_stats = []
    if actor.is_admin():
        accounts = User.objects.filter(
            is_active=True,
            role__in=[User.Role.MANAGER, User.Role.USER],
        )
        for account in accounts:
            account_tasks = tasks.filter(assigned_to=account)
            account_completed = account_tasks.filter(status=Task.Status.COMPLETED)
            user_stats.append({
                'id': account.pk,
                'name': account.get_full_name(),
                'role': account.role,
                'completed_tasks': account_completed.count(),
                'in_progress_tasks': account_tasks.filter(status=Task.Status.IN_PROGRESS).count(),
                'total_tasks': account_tasks.count(),
                'avg_completion_days': _average_days(account_completed.only('created_at', 'completed_at')),
            })

    return {
        'overview': overview,
        'project_stats': project_stats,
        'user_stats': user_stats,
    }
