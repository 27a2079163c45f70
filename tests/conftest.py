"""
Shared fixtures for the test suite.

Accounts:
- admin
- manager (owns `project`), other_manager
- user (in manager's team), outsider (in other_manager's team)
"""

import datetime
from decimal import Decimal

import pytest
from django.test import Client
from django.utils import timezone

from apps.accounts.models import User
from apps.projects.models import Project
from apps.system_settings.services import InMemorySettingsService
from apps.tasks.models import Task

PASSWORD = 'Tracker-Pass-2024!'


def make_account(email, role, **extra):
    first, _, last = email.split('@')[0].partition('.')
    return User.objects.create_user(
        email=email,
        password=PASSWORD,
        first_name=first.title(),
        last_name=(last or 'Tester').title(),
        role=role,
        **extra,
    )


def login_client(account):
    client = Client()
    client.force_login(account)
    return client


@pytest.fixture
def admin(db):
    return make_account('ada.admin@example.com', User.Role.ADMIN)


@pytest.fixture
def manager(db, admin):
    return make_account('mona.manager@example.com', User.Role.MANAGER, created_by=admin)


@pytest.fixture
def other_manager(db, admin):
    return make_account('otto.manager@example.com', User.Role.MANAGER, created_by=admin)


@pytest.fixture
def user(db, manager):
    return make_account('uma.user@example.com', User.Role.USER, manager=manager, created_by=manager)


@pytest.fixture
def outsider(db, other_manager):
    return make_account(
        'oscar.user@example.com', User.Role.USER,
        manager=other_manager, created_by=other_manager,
    )


@pytest.fixture
def project(db, admin, manager):
    return Project.objects.create(
        title='Website Redesign',
        description='New marketing site',
        assigned_to=manager,
        created_by=admin,
        status=Project.Status.IN_PROGRESS,
    )


@pytest.fixture
def other_project(db, admin, other_manager):
    return Project.objects.create(
        title='Data Migration',
        assigned_to=other_manager,
        created_by=admin,
    )


@pytest.fixture
def task(db, project, manager, user):
    return Task.objects.create(
        title='Build landing page',
        project=project,
        assigned_to=user,
        assigned_by=manager,
        due_date=timezone.now() + datetime.timedelta(days=5),
        estimated_hours=Decimal('8'),
    )


@pytest.fixture
def settings_service():
    """In-memory settings with every default."""
    return InMemorySettingsService()


@pytest.fixture
def admin_client(admin):
    return login_client(admin)


@pytest.fixture
def manager_client(manager):
    return login_client(manager)


@pytest.fixture
def user_client(user):
    return login_client(user)


@pytest.fixture
def make_user(db):
    """Factory for extra accounts: make_user('name@example.com', 'user', manager=...)."""
    return make_account
