"""
Views for notifications app.

Includes:
- The caller's notifications (list, unread count, mark read, delete)
- Test email (admin only)
- Scheduler status and manual job runs (admin only)
"""

from django.http import JsonResponse

from apps.accounts.permissions import Reason
from apps.accounts.serializers import account_summary
from apps.core.exceptions import AuthorizationError, NotFoundError
from apps.core.http import api_view, isoformat, paginate

from . import services
from .scheduler import UnknownTriggerError, get_registry


def serialize_notification(notification):
    return {
        'id': notification.pk,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'priority': notification.priority,
        'sender': account_summary(notification.sender),
        'related_project': notification.related_project_id,
        'related_task': notification.related_task_id,
        'is_read': notification.is_read,
        'read_at': isoformat(notification.read_at),
        'email_sent': notification.email_sent,
        'email_sent_at': isoformat(notification.email_sent_at),
        'metadata': notification.metadata,
        'created_at': isoformat(notification.created_at),
    }


def _require_admin(user, message):
    if not user.is_admin():
        raise AuthorizationError(message, reason=Reason.ROLE_NOT_PERMITTED)


# =============================================================================
# Inbox
# =============================================================================

@api_view(['GET'])
def notification_list(request):
    """The caller's notifications, newest first (?unread_only=true)."""
    unread_only = request.GET.get('unread_only', '').lower() in ('1', 'true', 'yes')
    queryset = services.notifications_for(request.user, unread_only=unread_only)

    items, pagination = paginate(request, queryset, serialize_notification)
    return JsonResponse({
        'notifications': items,
        'pagination': pagination,
        'unread_count': services.unread_count(request.user),
    })


@api_view(['GET'])
def unread_count_view(request):
    return JsonResponse({'count': services.unread_count(request.user)})


@api_view(['PUT'])
def mark_read_view(request, pk):
    notification = services.mark_read(request.user, pk)
    return JsonResponse({
        'message': 'Notification marked as read',
        'notification': serialize_notification(notification),
    })


@api_view(['PUT'])
def mark_all_read_view(request):
    updated = services.mark_all_read(request.user)
    return JsonResponse({'message': 'All notifications marked as read', 'updated': updated})


@api_view(['DELETE'])
def notification_delete(request, pk):
    services.delete_notification(request.user, pk)
    return JsonResponse({'message': 'Notification deleted'})


@api_view(['POST'])
def test_email_view(request):
    """Send the caller a test notification email (admin only)."""
    _require_admin(request.user, 'Only admins can send test emails.')

    notification = services.send_test_email(request.user)
    return JsonResponse({
        'message': 'Test email sent' if notification.email_sent else 'Test notification created; email not sent',
        'email_sent': notification.email_sent,
        'notification': serialize_notification(notification),
    })


# =============================================================================
# Scheduler
# =============================================================================

@api_view(['GET'])
def scheduler_status(request):
    _require_admin(request.user, 'Only admins can view the scheduler.')

    registry = get_registry()
    return JsonResponse({'running': registry.is_running, 'jobs': registry.status()})


@api_view(['POST'])
def scheduler_run(request, job):
    """Fire one job now, outside its schedule (admin only)."""
    _require_admin(request.user, 'Only admins can run scheduled jobs.')

    registry = get_registry()
    try:
        trigger = registry.get(job)
    except UnknownTriggerError as e:
        raise NotFoundError(str(e))

    result = registry.fire(job)
    return JsonResponse({
        'message': f'Job {job} finished' if trigger.last_error is None else f'Job {job} failed',
        'result': result,
        'job': trigger.as_dict(),
    })
