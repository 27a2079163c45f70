"""
Activity log filters using django-filter.

Query parameters accepted by the activity list endpoint:
- action: one of ActivityLog.Action
- target_type / target_id: narrow to one kind of target or one object
- actor: id of the acting user
- date_from / date_to: created on or after / on or before (YYYY-MM-DD)
- search: description or actor name/email
"""

import django_filters
from django.db.models import Q

from .models import ActivityLog


class ActivityFilter(django_filters.FilterSet):
    """
    Filter for the activity list.

    Usage in views:
        filterset = ActivityFilter(request.GET, queryset=scoped_activities(user))
        activities = filterset.qs
    """

    action = django_filters.ChoiceFilter(choices=ActivityLog.Action.choices)
    target_type = django_filters.ChoiceFilter(choices=ActivityLog.TargetType.choices)
    target_id = django_filters.NumberFilter()
    actor = django_filters.NumberFilter(field_name='actor_id')

    date_from = django_filters.DateFilter(
        field_name='created_at',
        lookup_expr='date__gte',
    )
    date_to = django_filters.DateFilter(
        field_name='created_at',
        lookup_expr='date__lte',
    )

    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = ActivityLog
        fields = ['action', 'target_type', 'target_id', 'actor', 'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        """
        Search across description and actor name/email.
        Case-insensitive partial matching.
        """
        if not value:
            return queryset

        return queryset.filter(
            Q(description__icontains=value) |
            Q(actor__first_name__icontains=value) |
            Q(actor__last_name__icontains=value) |
            Q(actor__email__icontains=value)
        )
