"""
Admin configuration for projects app.
"""

from django.contrib import admin
from django.db.models import Count

from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    """Admin for Project model."""

    list_display = (
        'title', 'assigned_to', 'created_by', 'status', 'priority',
        'start_date', 'end_date', 'task_count', 'created_at'
    )
    list_filter = ('status', 'priority', 'created_at')
    search_fields = ('title', 'description', 'assigned_to__email')
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'updated_at')

    def get_queryset(self, request):
        return super().get_queryset(request).select_related(
            'assigned_to', 'created_by'
        ).annotate(num_tasks=Count('tasks'))

    def task_count(self, obj):
        return obj.num_tasks
    task_count.short_description = 'Tasks'
    task_count.admin_order_field = 'num_tasks'
