"""
Views for accounts app.

Includes:
- Authentication views (login, logout, register, current user)
- User management views (admin and manager)
- Password change
"""

import logging

from django.contrib.auth import (
    authenticate, get_user_model, login, logout, update_session_auth_hash,
)
from django.db.models import Q
from django.http import JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie

from apps.core.exceptions import AuthorizationError
from apps.core.http import api_view, get_or_not_found, json_error, paginate

from .permissions import Action, can_access, visible_accounts
from .serializers import serialize_account
from .services import (
    change_password, create_account, deactivate_account, record_login,
    record_logout, register_account, update_account,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def _load_account(request, pk, action):
    account = get_or_not_found(User.objects.all(), 'User not found.', pk=pk)
    decision = can_access(request.user, action, account)
    if not decision:
        raise AuthorizationError('Access denied. Cannot manage this user.', reason=decision.reason)
    return account


# =============================================================================
# Authentication Views
# =============================================================================

@ensure_csrf_cookie
@api_view(['POST'], login_required=False)
def login_view(request):
    """Email + password login. Inactive accounts cannot log in."""
    email = str(request.data.get('email') or '').strip()
    password = request.data.get('password') or ''
    if not email or not password:
        return json_error('Email and password are required.', 400)

    user = authenticate(request, username=email, password=password)
    if user is None:
        logger.info(f'Failed login attempt for {email}')
        return json_error('Invalid email or password.', 401)

    login(request, user)
    record_login(user, request=request)
    return JsonResponse({'message': 'Login successful', 'user': serialize_account(user)})


@api_view(['POST'])
def logout_view(request):
    user = request.user
    record_logout(user, request=request)
    logout(request)
    return JsonResponse({'message': 'Logout successful'})


@api_view(['POST'], login_required=False)
def register_view(request):
    """Self registration, only while enabled in system settings."""
    user = register_account(request.data, request=request)
    return JsonResponse({'message': 'Registration successful', 'user': serialize_account(user)}, status=201)


@ensure_csrf_cookie
@api_view(['GET'])
def me_view(request):
    return JsonResponse({'user': serialize_account(request.user)})


# =============================================================================
# User Management Views
# =============================================================================

@api_view(['GET', 'POST'])
def user_collection(request):
    """
    GET: accounts visible to the caller, filterable by ?role, ?is_active, ?search.
    POST: create an account.
    """
    if request.method == 'POST':
        account = create_account(request.user, request.data, request=request)
        return JsonResponse({
            'message': 'User created successfully',
            'user': serialize_account(account),
        }, status=201)

    queryset = visible_accounts(request.user)

    role = request.GET.get('role')
    if role:
        queryset = queryset.filter(role=role)

    is_active = request.GET.get('is_active')
    if is_active in ('true', 'false'):
        queryset = queryset.filter(is_active=is_active == 'true')

    search = request.GET.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(first_name__icontains=search) |
            Q(last_name__icontains=search) |
            Q(email__icontains=search)
        )

    items, pagination = paginate(request, queryset.order_by('first_name', 'last_name', 'pk'), serialize_account)
    return JsonResponse({'users': items, 'pagination': pagination})


@api_view(['GET', 'PUT', 'DELETE'])
def user_detail(request, pk):
    """Read, update or deactivate one account."""
    if request.method == 'GET':
        account = _load_account(request, pk, Action.READ)
        return JsonResponse({'user': serialize_account(account)})

    if request.method == 'PUT':
        account = _load_account(request, pk, Action.UPDATE)
        account = update_account(request.user, account, request.data, request=request)
        return JsonResponse({'message': 'User updated successfully', 'user': serialize_account(account)})

    account = _load_account(request, pk, Action.DELETE)
    deactivate_account(request.user, account, request=request)
    return JsonResponse({'message': 'User deactivated successfully'})


@api_view(['PUT'])
def password_change_view(request, pk):
    """Change the caller's own password; the session stays valid."""
    account = get_or_not_found(User.objects.all(), 'User not found.', pk=pk)
    change_password(
        request.user,
        account,
        request.data.get('current_password'),
        request.data.get('new_password'),
        request=request,
    )
    update_session_auth_hash(request, account)
    return JsonResponse({'message': 'Password updated successfully'})
