"""
Views for reports app.
"""

from django.http import JsonResponse

from apps.accounts.permissions import Reason
from apps.core.coerce import to_date, to_pk
from apps.core.exceptions import AuthorizationError
from apps.core.http import api_view

from .services import get_overview


@api_view(['GET'])
def reports_view(request):
    """Reports overview (admins and managers only)."""
    if request.user.is_regular_user():
        raise AuthorizationError('Only admins and managers can view reports.',
                                 reason=Reason.ROLE_NOT_PERMITTED)

    report = get_overview(
        request.user,
        start_date=to_date(request.GET.get('start_date'), 'start_date'),
        end_date=to_date(request.GET.get('end_date'), 'end_date'),
        manager_id=to_pk(request.GET.get('manager_id'), 'manager_id'),
    )
    return JsonResponse(report)
