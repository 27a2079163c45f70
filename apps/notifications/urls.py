"""
URL configuration for notifications app.
"""

from django.urls import path
from . import views

app_name = 'notifications'

urlpatterns = [
    path('', views.notification_list, name='notification_list'),
    path('unread-count/', views.unread_count_view, name='unread_count'),
    path('read-all/', views.mark_all_read_view, name='mark_all_read'),
    path('test-email/', views.test_email_view, name='test_email'),
    path('scheduler/', views.scheduler_status, name='scheduler_status'),
    path('scheduler/<str:job>/run/', views.scheduler_run, name='scheduler_run'),
    path('<int:pk>/read/', views.mark_read_view, name='mark_read'),
    path('<int:pk>/', views.notification_delete, name='notification_delete'),
]
