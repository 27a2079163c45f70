"""
Service layer for accounts app.

Centralized business logic for:
- Account creation (admin creates managers/users, manager creates users)
- Self registration (when enabled in system settings)
- Account updates and soft deletion (deactivation)
- Password change (self only)
- Session management
- Login/logout audit entries
"""

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.contrib.sessions.models import Session
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.activity_log.models import ActivityLog
from apps.activity_log.services import record_activity
from apps.core.coerce import to_pk
from apps.core.exceptions import AuthorizationError
from apps.system_settings.services import settings_service as default_settings_service

from .permissions import Action, Reason, allowed_update_fields, can_access

logger = logging.getLogger(__name__)

User = get_user_model()


def _authorize(actor, action, account, message):
    decision = can_access(actor, action, account)
    if not decision:
        raise AuthorizationError(message, reason=decision.reason)


def _normalize_email(value):
    return str(value or '').strip().lower()


def _check_password(password, account, field='password'):
    if not password:
        raise ValidationError({field: ['A password is required.']})
    try:
        validate_password(password, account)
    except ValidationError as e:
        raise ValidationError({field: e.messages})


def resolve_manager(value):
    """A direct manager must be an active manager account (or None)."""
    pk = to_pk(value, 'manager')
    if pk is None:
        return None
    manager = User.objects.filter(pk=pk, is_active=True, role=User.Role.MANAGER).first()
    if manager is None:
        raise ValidationError({'manager': ['Manager must be an active manager account.']})
    return manager


def invalidate_user_sessions(user):
    """
    Invalidate all sessions for a user.
    Called when the user is deactivated.

    Args:
        user: User instance

    Returns:
        int: Number of sessions invalidated
    """
    count = 0
    for session in Session.objects.filter(expire_date__gte=timezone.now()):
        try:
            session_data = session.get_decoded()
        except Exception:
            logger.debug(f'Skipping undecodable session {session.pk}')
            continue
        if session_data.get('_auth_user_id') == str(user.pk):
            session.delete()
            count += 1
    return count


# =============================================================================
# Create
# =============================================================================

def create_account(actor, data, request=None):
    """
    Create a new account.

    Admins create managers and users (optionally giving a user a manager);
    managers create users, who are placed in the manager's team.

    Args:
        actor: User creating the account
        data: dict with email, password, first_name, last_name, role and,
            for admins, an optional manager id
        request: Optional HttpRequest for the activity entry

    Returns:
        Created User instance

    Raises:
        AuthorizationError: If the actor may not create an account with that role
        ValidationError: If fields are missing or invalid, or the email is taken
    """
    role = data.get('role') or User.Role.USER

    account = User(
        email=_normalize_email(data.get('email')),
        first_name=str(data.get('first_name') or '').strip(),
        last_name=str(data.get('last_name') or '').strip(),
        role=role,
        created_by=actor,
    )
    _authorize(actor, Action.CREATE, account, 'Managers can only create users.')

    if role not in (User.Role.MANAGER, User.Role.USER):
        raise ValidationError({'role': ['Invalid role specified.']})

    if actor.is_manager():
        account.manager = actor
    elif role == User.Role.USER:
        account.manager = resolve_manager(data.get('manager'))

    _check_password(data.get('password'), account)
    account.set_password(data['password'])
    account.full_clean()

    with transaction.atomic():
        account.save()
        record_activity(
            actor=actor,
            action=ActivityLog.Action.USER_CREATED,
            target_type=ActivityLog.TargetType.USER,
            target_id=account.pk,
            description=(
                f'{actor.role} {actor.get_full_name()} created user '
                f'{account.get_full_name()} with role {account.role}'
            ),
            metadata={'target_role': account.role, 'created_by_role': actor.role},
            request=request,
        )

    logger.info(f'Account {account.email} created by {actor.email}')
    return account


def register_account(data, request=None, settings_service=None):
    """
    Self registration as a plain user.

    Raises:
        AuthorizationError: If self registration is disabled
        ValidationError: If fields are missing or invalid
    """
    settings_row = (settings_service or default_settings_service).get()
    if not settings_row.allow_self_registration:
        raise AuthorizationError('Self registration is disabled.',
                                 reason=Reason.REGISTRATION_CLOSED)

    account = User(
        email=_normalize_email(data.get('email')),
        first_name=str(data.get('first_name') or '').strip(),
        last_name=str(data.get('last_name') or '').strip(),
        role=User.Role.USER,
    )
    _check_password(data.get('password'), account)
    account.set_password(data['password'])
    account.full_clean()

    with transaction.atomic():
        account.save()
        record_activity(
            actor=account,
            action=ActivityLog.Action.USER_CREATED,
            target_type=ActivityLog.TargetType.USER,
            target_id=account.pk,
            description=f'{account.get_full_name()} registered',
            metadata={'self_registration': True},
            request=request,
        )

    return account


# =============================================================================
# Update / deactivate
# =============================================================================

def update_account(actor, account, changes, request=None):
    """
    Update account fields.

    Field whitelist:
    - Admin: names, email, role, manager, is_active
    - Manager (own team): names, email, is_active
    - Self: names, email

    Raises:
        AuthorizationError: If the actor may not update this account or
            touches a field outside their whitelist
        ValidationError: If validation fails
    """
    _authorize(actor, Action.UPDATE, account, 'Access denied. Cannot manage this user.')

    allowed = allowed_update_fields(actor, account)
    forbidden = sorted(set(changes) - allowed)
    if forbidden:
        raise AuthorizationError(
            f'You cannot change: {", ".join(forbidden)}.',
            reason=Reason.FIELD_NOT_PERMITTED,
        )

    if 'first_name' in changes:
        account.first_name = str(changes['first_name'] or '').strip()
    if 'last_name' in changes:
        account.last_name = str(changes['last_name'] or '').strip()
    if 'email' in changes:
        account.email = _normalize_email(changes['email'])
    if 'role' in changes:
        account.role = changes['role']
    if 'manager' in changes:
        account.manager = resolve_manager(changes['manager'])
    if 'is_active' in changes:
        if not isinstance(changes['is_active'], bool):
            raise ValidationError({'is_active': ['Must be true or false.']})
        if account.pk == actor.pk and not changes['is_active']:
            raise ValidationError({'is_active': ['You cannot deactivate your own account.']})
        account.is_active = changes['is_active']

    account.full_clean()

    with transaction.atomic():
        account.save()
        record_activity(
            actor=actor,
            action=ActivityLog.Action.USER_UPDATED,
            target_type=ActivityLog.TargetType.USER,
            target_id=account.pk,
            description=f'{actor.role} {actor.get_full_name()} updated user {account.get_full_name()}',
            metadata={'updated_fields': sorted(changes)},
            request=request,
        )

    if not account.is_active:
        invalidate_user_sessions(account)
    return account


def deactivate_account(actor, account, request=None):
    """
    Soft delete: the account stays for history but can no longer log in
    or be assigned work.

    Returns:
        int: Number of sessions invalidated
    """
    _authorize(actor, Action.DELETE, account, 'Access denied. Cannot manage this user.')
    if account.pk == actor.pk:
        raise ValidationError('You cannot deactivate your own account.')

    with transaction.atomic():
        account.is_active = False
        account.save(update_fields=['is_active', 'updated_at'])
        record_activity(
            actor=actor,
            action=ActivityLog.Action.USER_DELETED,
            target_type=ActivityLog.TargetType.USER,
            target_id=account.pk,
            description=f'{actor.role} {actor.get_full_name()} deactivated user {account.get_full_name()}',
            request=request,
        )

    return invalidate_user_sessions(account)


def change_password(actor, account, current_password, new_password, request=None):
    """
    Change a password. Only the account owner may do this.

    Raises:
        AuthorizationError: If actor is not the account owner
        ValidationError: If the current password is wrong or the new one is weak
    """
    if account.pk != actor.pk:
        raise AuthorizationError('You can only change your own password.', reason=Reason.NOT_SELF)

    if not current_password or not account.check_password(current_password):
        raise ValidationError({'current_password': ['Current password is incorrect.']})
    _check_password(new_password, account, field='new_password')

    with transaction.atomic():
        account.set_password(new_password)
        account.save(update_fields=['password', 'updated_at'])
        record_activity(
            actor=actor,
            action=ActivityLog.Action.USER_UPDATED,
            target_type=ActivityLog.TargetType.USER,
            target_id=account.pk,
            description=f'User {account.get_full_name()} changed their password',
            metadata={'action': 'password_change'},
            request=request,
        )

    return account


# =============================================================================
# Audit
# =============================================================================

def record_login(user, request=None):
    return record_activity(
        actor=user,
        action=ActivityLog.Action.LOGIN,
        target_type=ActivityLog.TargetType.SYSTEM,
        description=f'{user.get_full_name()} logged in',
        request=request,
    )


def record_logout(user, request=None):
    return record_activity(
        actor=user,
        action=ActivityLog.Action.LOGOUT,
        target_type=ActivityLog.TargetType.SYSTEM,
        description=f'{user.get_full_name()} logged out',
        request=request,
    )
