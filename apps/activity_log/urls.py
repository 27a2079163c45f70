"""
URL configuration for activity_log app.
"""

from django.urls import path
from . import views

app_name = 'activity_log'

urlpatterns = [
    path('', views.activity_list, name='activity_list'),
    path('stats/', views.activity_stats_view, name='activity_stats'),
]
