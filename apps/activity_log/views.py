"""
Views for activity_log app.
"""

from django.http import JsonResponse

from apps.accounts.permissions import Reason
from apps.accounts.serializers import account_summary
from apps.core.exceptions import AuthorizationError
from apps.core.http import api_view, filtered_queryset, isoformat, paginate

from .filters import ActivityFilter
from .services import activity_stats, scoped_activities


def serialize_activity(entry):
    return {
        'id': entry.pk,
        'actor': account_summary(entry.actor),
        'action': entry.action,
        'target_type': entry.target_type,
        'target_id': entry.target_id,
        'description': entry.description,
        'metadata': entry.metadata,
        'ip_address': entry.ip_address,
        'user_agent': entry.user_agent,
        'created_at': isoformat(entry.created_at),
    }


@api_view(['GET'])
def activity_list(request):
    """Role-scoped, filterable, paginated activity list."""
    filterset = ActivityFilter(request.GET, queryset=scoped_activities(request.user))
    items, pagination = paginate(request, filtered_queryset(filterset), serialize_activity)
    return JsonResponse({'activities': items, 'pagination': pagination})


@api_view(['GET'])
def activity_stats_view(request):
    """Counts by action and the latest entries (admin and manager only)."""
    if request.user.is_regular_user():
        raise AuthorizationError('Only admins and managers can view activity statistics.',
                                 reason=Reason.ROLE_NOT_PERMITTED)

    stats = activity_stats(request.user)
    return JsonResponse({
        'by_action': stats['by_action'],
        'recent': [serialize_activity(entry) for entry in stats['recent']],
    })
