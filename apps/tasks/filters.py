"""
Task filters using django-filter.

Query parameters accepted by the task list endpoints:
- status / priority: one or more values (?status=pending&status=in-progress)
- project / assigned_to: ids
- deadline: today, this_week or overdue
- search: title and description
"""

import django_filters
from django.db.models import Q
from django.utils import timezone
from datetime import timedelta

from .models import Task


class TaskFilter(django_filters.FilterSet):
    """
    Task filter for list views.

    Usage in views:
        filterset = TaskFilter(request.GET, queryset=visible_tasks(user))
        tasks = filterset.qs
    """

    search = django_filters.CharFilter(method='filter_search')

    status = django_filters.MultipleChoiceFilter(choices=Task.Status.choices)
    priority = django_filters.MultipleChoiceFilter(choices=Task.Priority.choices)

    project = django_filters.NumberFilter(field_name='project_id')
    assigned_to = django_filters.NumberFilter(field_name='assigned_to_id')

    deadline = django_filters.ChoiceFilter(
        method='filter_deadline',
        choices=[
            ('today', 'Due Today'),
            ('this_week', 'Due This Week'),
            ('overdue', 'Overdue'),
        ],
    )

    class Meta:
        model = Task
        fields = ['search', 'status', 'priority', 'project', 'assigned_to', 'deadline']

    def filter_search(self, queryset, name, value):
        """
        Search across title and description.
        Case-insensitive partial matching.
        """
        if not value:
            return queryset

        return queryset.filter(
            Q(title__icontains=value) |
            Q(description__icontains=value)
        )

    def filter_deadline(self, queryset, name, value):
        """Filter by predefined deadline windows (local calendar days)."""
        now = timezone.now()
        today_start = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)

        if value == 'today':
            return queryset.filter(due_date__gte=today_start, due_date__lt=today_start + timedelta(days=1))

        if value == 'this_week':
            week_start = today_start - timedelta(days=today_start.weekday())
            return queryset.filter(due_date__gte=week_start, due_date__lt=week_start + timedelta(days=7))

        if value == 'overdue':
            return queryset.filter(due_date__lt=now).exclude(status=Task.Status.COMPLETED)

        return queryset
