"""
URL configuration for tasks app.
"""

from django.urls import path
from . import views

app_name = 'tasks'

urlpatterns = [
    path('', views.task_collection, name='task_list'),
    path('project/<int:project_id>/', views.project_tasks, name='project_tasks'),
    path('<int:pk>/', views.task_detail, name='task_detail'),
]
