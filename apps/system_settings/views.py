"""
Views for system_settings app.
"""

from django.http import JsonResponse

from apps.accounts.permissions import Reason
from apps.core.exceptions import AuthorizationError
from apps.core.http import api_view, isoformat

from .services import EDITABLE_FIELDS, defaults_for, settings_service


def serialize_settings(row):
    data = {name: getattr(row, name) for name in sorted(EDITABLE_FIELDS)}
    data['last_updated_by'] = row.last_updated_by_id
    data['updated_at'] = isoformat(row.updated_at)
    return data


def _require_admin(user):
    if not user.is_admin():
        raise AuthorizationError('Only admins can manage system settings.',
                                 reason=Reason.ROLE_NOT_PERMITTED)


@api_view(['GET', 'PUT'])
def settings_detail(request):
    """Read or update system settings (admin only)."""
    _require_admin(request.user)

    if request.method == 'PUT':
        row = settings_service.update(request.data, request.user)
        return JsonResponse({
            'message': 'Settings updated successfully',
            'settings': serialize_settings(row),
        })

    return JsonResponse({'settings': serialize_settings(settings_service.get())})


@api_view(['GET'])
def settings_defaults(request):
    """Form defaults for new projects (?type=project) or tasks (?type=task)."""
    kind = request.GET.get('type', '')
    return JsonResponse(defaults_for(settings_service.get(), kind))
