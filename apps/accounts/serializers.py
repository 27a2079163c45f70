"""
JSON representations of accounts.
"""

from apps.core.http import isoformat


def account_summary(user):
    """Compact form embedded in other resources."""
    if user is None:
        return None
    return {
        'id': user.pk,
        'name': user.get_full_name(),
        'email': user.email,
        'role': user.role,
    }


def serialize_account(user):
    return {
        'id': user.pk,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'name': user.get_full_name(),
        'role': user.role,
        'is_active': user.is_active,
        'manager': user.manager_id,
        'created_by': user.created_by_id,
        'created_at': isoformat(user.created_at),
        'updated_at': isoformat(user.updated_at),
    }
