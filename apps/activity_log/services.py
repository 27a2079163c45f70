"""
Activity recording and role-scoped reads.

`record_activity` is called by the account, project and task services right
after a mutation succeeds. A failure to write the audit entry is logged and
never undoes the mutation.
"""

import logging

from django.db import transaction
from django.db.models import Count, Q

from .models import ActivityLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """First hop of X-Forwarded-For, else REMOTE_ADDR."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return request.META.get('REMOTE_ADDR') or None


def record_activity(actor, action, target_type, description,
                    target_id=None, metadata=None, request=None):
    """
    Append an activity log entry.

    Args:
        actor: User who performed the action
        action: One of ActivityLog.Action
        target_type: One of ActivityLog.TargetType
        description: Human-readable description
        target_id: Optional primary key of the target
        metadata: Optional dict of extra detail
        request: Optional HttpRequest for IP address and user agent

    Returns:
        The created ActivityLog, or None if the write failed
    """
    ip_address = None
    user_agent = ''
    if request is not None:
        ip_address = get_client_ip(request)
        user_agent = request.META.get('HTTP_USER_AGENT', '')[:255]

    try:
        # Savepoint so a failed insert does not poison the caller's transaction
        with transaction.atomic():
            return ActivityLog.objects.create(
                actor=actor,
                action=action,
                target_type=target_type,
                target_id=target_id,
                description=description,
                metadata=metadata or {},
                ip_address=ip_address,
                user_agent=user_agent,
            )
    except Exception as e:
        logger.error(f'Failed to record activity {action} for {actor}: {e}')
        return None


def scoped_activities(actor):
    """
    Activity entries the actor may read.

    - Admin: everything
    - Manager: their own entries plus those of accounts they manage or created
    - User: their own entries
    """
    queryset = ActivityLog.objects.select_related('actor')

    if actor.is_admin():
        return queryset
    if actor.is_manager():
        return queryset.filter(
            Q(actor=actor) |
            Q(actor__manager=actor) |
            Q(actor__created_by=actor)
        ).distinct()
    return queryset.filter(actor=actor)


def activity_stats(actor, recent_limit=10):
    """
    Counts per action (most frequent first) plus the most recent entries.

    Returns:
        dict with 'by_action' (list of {'action', 'count'}) and 'recent'
        (list of ActivityLog)
    """
    queryset = scoped_activities(actor)

    by_action = list(
        queryset.order_by()
        .values('action')
        .annotate(count=Count('id'))
        .order_by('-count', 'action')
    )
    recent = list(queryset[:recent_limit])

    return {
        'by_action': by_action,
        'recent': recent,
    }
