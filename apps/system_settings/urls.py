"""
URL configuration for system_settings app.
"""

from django.urls import path
from . import views

app_name = 'system_settings'

urlpatterns = [
    path('', views.settings_detail, name='settings_detail'),
    path('defaults/', views.settings_defaults, name='settings_defaults'),
]
