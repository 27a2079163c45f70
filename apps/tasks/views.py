"""
Views for tasks app.

Includes:
- Task list (role scoped) and creation
- Tasks of one project
- Task detail, update and delete
"""

from django.http import JsonResponse

from apps.accounts.permissions import Action, Reason, can_access, visible_tasks
from apps.core.exceptions import AuthorizationError
from apps.core.http import api_view, filtered_queryset, get_or_not_found, paginate
from apps.projects.models import Project

from .filters import TaskFilter
from .models import Task
from .serializers import serialize_task
from .services import create_task, delete_task, update_task


def _load_task(request, pk, action):
    task = get_or_not_found(
        Task.objects.select_related('project', 'assigned_to', 'assigned_by'),
        'Task not found.',
        pk=pk,
    )
    decision = can_access(request.user, action, task)
    if not decision:
        raise AuthorizationError("You don't have access to this task.", reason=decision.reason)
    return task


def _task_page(request, queryset):
    filterset = TaskFilter(request.GET, queryset=queryset)
    items, pagination = paginate(request, filtered_queryset(filterset), serialize_task)
    return JsonResponse({'tasks': items, 'pagination': pagination})


@api_view(['GET', 'POST'])
def task_collection(request):
    """
    GET: admins see every task, managers the tasks of their projects,
    users the tasks assigned to them.
    POST: create a task.
    """
    if request.method == 'POST':
        task = create_task(request.user, request.data, request=request)
        return JsonResponse({
            'message': 'Task created successfully',
            'task': serialize_task(task),
        }, status=201)

    return _task_page(request, visible_tasks(request.user))


@api_view(['GET'])
def project_tasks(request, project_id):
    """Tasks of one project, still limited to what the caller may see."""
    project = get_or_not_found(Project.objects.all(), 'Project not found.', pk=project_id)
    if not request.user.is_regular_user():
        decision = can_access(request.user, Action.READ, project)
        if not decision:
            raise AuthorizationError('Access denied to this project.', reason=decision.reason)
    elif not project.tasks.filter(assigned_to=request.user).exists():
        raise AuthorizationError('Access denied to this project.', reason=Reason.NOT_ASSIGNEE)

    return _task_page(request, visible_tasks(request.user).filter(project=project))


@api_view(['GET', 'PUT', 'DELETE'])
def task_detail(request, pk):
    if request.method == 'GET':
        task = _load_task(request, pk, Action.READ)
        return JsonResponse({'task': serialize_task(task)})

    if request.method == 'PUT':
        task = _load_task(request, pk, Action.UPDATE)
        task = update_task(request.user, task, request.data, request=request)
        return JsonResponse({
            'message': 'Task updated successfully',
            'task': serialize_task(task),
        })

    task = _load_task(request, pk, Action.DELETE)
    delete_task(request.user, task, request=request)
    return JsonResponse({'message': 'Task deleted successfully'})
