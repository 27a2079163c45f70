"""
URL configuration for accounts app (user management).
"""

from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('', views.user_collection, name='user_list'),
    path('<int:pk>/', views.user_detail, name='user_detail'),
    path('<int:pk>/password/', views.password_change_view, name='password_change'),
]
