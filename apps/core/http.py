"""
JSON view helpers.

Every API view is wrapped in `api_view`, which:
- returns 401 JSON for anonymous requests (never a login redirect)
- rejects unexpected HTTP methods with 405
- parses a JSON request body into `request.data`
- translates service-layer exceptions into JSON error responses
"""

import json
import logging
from functools import wraps

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.paginator import EmptyPage, PageNotAnInteger, Paginator
from django.http import JsonResponse

from .exceptions import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


def json_error(message, status, **extra):
    """Build an error response in the shape the SPA expects."""
    payload = {'message': message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def _validation_payload(exc):
    if hasattr(exc, 'message_dict'):
        return {'errors': exc.message_dict}
    return {'errors': exc.messages}


def _parse_body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError('Request body must be valid JSON.')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


def api_view(methods=('GET',), login_required=True):
    """
    Decorator for JSON API views.

    Usage:
        @api_view(['GET', 'POST'])
        def project_collection(request): ...
    """
    allowed = [m.upper() for m in methods]

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if request.method not in allowed:
                response = json_error('Method not allowed.', 405)
                response['Allow'] = ', '.join(allowed)
                return response

            if login_required and not request.user.is_authenticated:
                return json_error('Authentication required.', 401)

            try:
                request.data = _parse_body(request) if request.method in ('POST', 'PUT', 'PATCH') else {}
                return view_func(request, *args, **kwargs)
            except AuthorizationError as exc:
                return json_error(exc.message, 403, reason=exc.reason)
            except NotFoundError as exc:
                return json_error(exc.message, 404)
            except ValidationError as exc:
                return json_error('Validation failed.', 400, **_validation_payload(exc))

        return wrapper
    return decorator


def get_or_not_found(queryset, message='Not found.', **lookup):
    """Like get_object_or_404, but raises the API's NotFoundError."""
    try:
        return queryset.get(**lookup)
    except (queryset.model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(message)


def paginate(request, queryset, serializer):
    """
    Paginate a queryset using ?page= and ?limit= query params.

    Returns (items, pagination_dict) with the same shape for every list.
    """
    try:
        limit = int(request.GET.get('limit', settings.API_PAGE_SIZE))
    except ValueError:
        limit = settings.API_PAGE_SIZE
    limit = max(1, min(limit, 100))

    paginator = Paginator(queryset, limit)
    page = request.GET.get('page', 1)

    try:
        page_obj = paginator.page(page)
    except PageNotAnInteger:
        page_obj = paginator.page(1)
    except EmptyPage:
        page_obj = paginator.page(paginator.num_pages)

    items = [serializer(obj) for obj in page_obj.object_list]
    return items, {
        'current': page_obj.number,
        'pages': paginator.num_pages,
        'total': paginator.count,
    }


def isoformat(value):
    """Serialize an optional date/datetime for JSON."""
    return value.isoformat() if value else None


def filtered_queryset(filterset):
    """Return `filterset.qs`, or raise ValidationError for bad query params."""
    if not filterset.is_valid():
        raise ValidationError({
            field: list(errors) for field, errors in filterset.errors.items()
        })
    return filterset.qs
