"""
URL configuration for projects app.
"""

from django.urls import path
from . import views

app_name = 'projects'

urlpatterns = [
    path('', views.project_collection, name='project_list'),
    path('<int:pk>/', views.project_detail, name='project_detail'),
]
