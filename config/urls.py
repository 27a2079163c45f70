"""
URL configuration for project_tracker project.

Every app serves JSON under /api/; the Django admin stays at /admin/.
"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings

urlpatterns = [
    path('admin/', admin.site.urls),

    # API
    path('api/auth/', include('apps.accounts.auth_urls', namespace='auth')),
    path('api/users/', include('apps.accounts.urls', namespace='accounts')),
    path('api/projects/', include('apps.projects.urls', namespace='projects')),
    path('api/tasks/', include('apps.tasks.urls', namespace='tasks')),
    path('api/notifications/', include('apps.notifications.urls', namespace='notifications')),
    path('api/activities/', include('apps.activity_log.urls', namespace='activity_log')),
    path('api/settings/', include('apps.system_settings.urls', namespace='system_settings')),
    path('api/reports/', include('apps.reports.urls', namespace='reports')),
]

if settings.DEBUG and 'debug_toolbar' in settings.INSTALLED_APPS:
    import debug_toolbar
    urlpatterns = [
        path('__debug__/', include(debug_toolbar.urls)),
    ] + urlpatterns

# Admin site customization
admin.site.site_header = 'Project Tracker Administration'
admin.site.site_title = 'Project Tracker Admin'
admin.site.index_title = 'Welcome to Project Tracker Admin'
