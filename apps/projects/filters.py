"""
Project filters using django-filter.
"""

import django_filters
from django.db.models import Q

from .models import Project


class ProjectFilter(django_filters.FilterSet):
    """Status, priority, manager and free-text search for the project list."""

    status = django_filters.MultipleChoiceFilter(choices=Project.Status.choices)
    priority = django_filters.MultipleChoiceFilter(choices=Project.Priority.choices)
    assigned_to = django_filters.NumberFilter(field_name='assigned_to_id')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Project
        fields = ['status', 'priority', 'assigned_to', 'search']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(Q(title__icontains=value) | Q(description__icontains=value))
