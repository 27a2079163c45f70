"""
Views for projects app.

Missing projects are 404; projects the caller may not touch are 403.
"""

from django.http import JsonResponse

from apps.accounts.permissions import Action, Reason, can_access, visible_projects
from apps.core.exceptions import AuthorizationError
from apps.core.http import api_view, filtered_queryset, get_or_not_found, paginate

from .filters import ProjectFilter
from .models import Project
from .serializers import serialize_project
from .services import create_project, delete_project, update_project


def _load_project(request, pk, action):
    project = get_or_not_found(
        Project.objects.select_related('assigned_to', 'created_by'),
        'Project not found.',
        pk=pk,
    )
    decision = can_access(request.user, action, project)
    if not decision:
        raise AuthorizationError('Access denied to this project.', reason=decision.reason)
    return project


@api_view(['GET', 'POST'])
def project_collection(request):
    """
    GET: projects visible to the caller (admins all, managers their own).
    POST: create a project (admin only).
    """
    if request.method == 'POST':
        project = create_project(request.user, request.data, request=request)
        return JsonResponse({
            'message': 'Project created successfully',
            'project': serialize_project(project),
        }, status=201)

    if request.user.is_regular_user():
        raise AuthorizationError('Users cannot list projects.', reason=Reason.ROLE_NOT_PERMITTED)

    filterset = ProjectFilter(request.GET, queryset=visible_projects(request.user))
    items, pagination = paginate(request, filtered_queryset(filterset), serialize_project)
    return JsonResponse({'projects': items, 'pagination': pagination})


@api_view(['GET', 'PUT', 'DELETE'])
def project_detail(request, pk):
    if request.method == 'GET':
        project = _load_project(request, pk, Action.READ)
        return JsonResponse({'project': serialize_project(project)})

    if request.method == 'PUT':
        project = _load_project(request, pk, Action.UPDATE)
        project = update_project(request.user, project, request.data, request=request)
        return JsonResponse({
            'message': 'Project updated successfully',
            'project': serialize_project(project),
        })

    project = _load_project(request, pk, Action.DELETE)
    delete_project(request.user, project, request=request)
    return JsonResponse({'message': 'Project deleted successfully'})
