"""
Permission model for accounts, projects and tasks.

Role-based access control:
- Admin: full access to everything
- Manager: projects assigned to them, tasks inside those projects,
  accounts they manage or created (plus themselves)
- User: tasks assigned to them and their own account

`can_access` is a pure function: it never writes, never raises and
returns a `Decision` that is truthy when the action is allowed and carries
a machine-readable reason either way.
"""

from django.db.models import Q


class Action:
    READ = 'read'
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'

    ALL = (READ, CREATE, UPDATE, DELETE)


class Reason:
    ADMIN = 'admin'
    ALLOWED = 'allowed'
    NOT_AUTHENTICATED = 'not_authenticated'
    ROLE_NOT_PERMITTED = 'role_not_permitted'
    NOT_PROJECT_OWNER = 'not_project_owner'
    ASSIGNEE_NOT_IN_TEAM = 'assignee_not_in_team'
    FIELD_NOT_PERMITTED = 'field_not_permitted'
    NOT_ASSIGNEE = 'not_assignee'
    NOT_IN_TEAM = 'not_in_team'
    NOT_SELF = 'not_self'
    REGISTRATION_CLOSED = 'registration_closed'
    UNKNOWN_RESOURCE = 'unknown_resource'
    UNKNOWN_ACTION = 'unknown_action'


class Decision:
    """Outcome of a permission check."""

    __slots__ = ('allowed', 'reason')

    def __init__(self, allowed, reason):
        self.allowed = allowed
        self.reason = reason

    def __bool__(self):
        return self.allowed

    def __eq__(self, other):
        if isinstance(other, Decision):
            return (self.allowed, self.reason) == (other.allowed, other.reason)
        return NotImplemented

    def __hash__(self):
        return hash((self.allowed, self.reason))

    def __repr__(self):
        verdict = 'allow' if self.allowed else 'deny'
        return f'<Decision {verdict}: {self.reason}>'


def allow(reason=Reason.ALLOWED):
    return Decision(True, reason)


def deny(reason):
    return Decision(False, reason)


# =============================================================================
# Field whitelists for updates
# =============================================================================

TASK_ADMIN_FIELDS = frozenset({
    'title', 'description', 'status', 'priority', 'due_date',
    'estimated_hours', 'actual_hours', 'assigned_to',
})
TASK_MANAGER_FIELDS = frozenset({
    'title', 'description', 'status', 'priority', 'due_date', 'estimated_hours',
})
TASK_ASSIGNEE_FIELDS = frozenset({'status', 'actual_hours'})

PROJECT_ADMIN_FIELDS = frozenset({
    'title', 'description', 'status', 'priority', 'start_date', 'end_date',
    'assigned_to',
})
# Managers can edit their project but never reassign it
PROJECT_MANAGER_FIELDS = PROJECT_ADMIN_FIELDS - {'assigned_to'}

ACCOUNT_ADMIN_FIELDS = frozenset({
    'first_name', 'last_name', 'email', 'role', 'manager', 'is_active',
})
ACCOUNT_MANAGER_FIELDS = frozenset({'first_name', 'last_name', 'email', 'is_active'})
ACCOUNT_SELF_FIELDS = frozenset({'first_name', 'last_name', 'email'})


# =============================================================================
# Access checks
# =============================================================================

def _is_usable_actor(actor):
    return (
        actor is not None
        and getattr(actor, 'is_authenticated', False)
        and getattr(actor, 'is_active', False)
        and getattr(actor, 'pk', None) is not None
    )


def _check_project(actor, action, project):
    if not actor.is_manager():
        return deny(Reason.ROLE_NOT_PERMITTED)
    if action == Action.CREATE:
        # Only admins create projects
        return deny(Reason.ROLE_NOT_PERMITTED)
    if project.assigned_to_id == actor.pk:
        return allow()
    return deny(Reason.NOT_PROJECT_OWNER)


def _check_task(actor, action, task):
    if actor.is_manager():
        if task.project_id is None or task.project.assigned_to_id != actor.pk:
            return deny(Reason.NOT_PROJECT_OWNER)
        if action == Action.CREATE:
            assignee = task.assigned_to if task.assigned_to_id else None
            if assignee is None or not assignee.is_managed_by(actor):
                return deny(Reason.ASSIGNEE_NOT_IN_TEAM)
        return allow()

    # Plain users only ever see and progress their own tasks
    if action in (Action.CREATE, Action.DELETE):
        return deny(Reason.ROLE_NOT_PERMITTED)
    if task.assigned_to_id == actor.pk:
        return allow()
    return deny(Reason.NOT_ASSIGNEE)


def _check_account(actor, action, account):
    if account.pk is not None and account.pk == actor.pk:
        if action in (Action.READ, Action.UPDATE):
            return allow()
        return deny(Reason.ROLE_NOT_PERMITTED)

    if not actor.is_manager():
        return deny(Reason.ROLE_NOT_PERMITTED)

    if action == Action.CREATE:
        # Managers only ever create plain users, who then join their team
        if account.role != account.Role.USER:
            return deny(Reason.ROLE_NOT_PERMITTED)
        return allow()

    if account.is_managed_by(actor):
        return allow()
    return deny(Reason.NOT_IN_TEAM)


_CHECKS = {
    'project': _check_project,
    'task': _check_task,
    'user': _check_account,
}


def can_access(actor, action, resource):
    """
    Decide whether `actor` may perform `action` on `resource`.

    Args:
        actor: The acting account (may be anonymous or None)
        action: One of Action.ALL
        resource: A Project, Task or User instance. For CREATE this is the
            unsaved instance with its relations already set.

    Returns:
        Decision
    """
    if not _is_usable_actor(actor):
        return deny(Reason.NOT_AUTHENTICATED)
    if action not in Action.ALL:
        return deny(Reason.UNKNOWN_ACTION)

    meta = getattr(resource, '_meta', None)
    check = _CHECKS.get(getattr(meta, 'model_name', None))
    if check is None:
        return deny(Reason.UNKNOWN_RESOURCE)

    if actor.is_admin():
        return allow(Reason.ADMIN)

    return check(actor, action, resource)


def allowed_update_fields(actor, resource):
    """
    Return the set of fields `actor` may change on `resource`.

    An empty set means the actor may not update the resource at all.
    """
    if not can_access(actor, Action.UPDATE, resource):
        return frozenset()

    model_name = resource._meta.model_name

    if model_name == 'task':
        if actor.is_admin():
            return TASK_ADMIN_FIELDS
        if actor.is_manager():
            return TASK_MANAGER_FIELDS
        return TASK_ASSIGNEE_FIELDS

    if model_name == 'project':
        return PROJECT_ADMIN_FIELDS if actor.is_admin() else PROJECT_MANAGER_FIELDS

    if model_name == 'user':
        if actor.is_admin():
            return ACCOUNT_ADMIN_FIELDS
        if resource.pk == actor.pk:
            return ACCOUNT_SELF_FIELDS
        return ACCOUNT_MANAGER_FIELDS

    return frozenset()


# =============================================================================
# Visibility (list endpoints)
# =============================================================================

def visible_accounts(actor):
    """Queryset of accounts the actor may list."""
    from .models import User

    if not _is_usable_actor(actor):
        return User.objects.none()
    if actor.is_admin():
        return User.objects.all()
    if actor.is_manager():
        return User.objects.filter(
            Q(pk=actor.pk) | Q(manager=actor) | Q(created_by=actor)
        ).distinct()
    return User.objects.filter(pk=actor.pk)


def visible_projects(actor):
    """Queryset of projects the actor may list. Plain users see none."""
    from apps.projects.models import Project

    queryset = Project.objects.select_related('assigned_to', 'created_by')
    if not _is_usable_actor(actor):
        return queryset.none()
    if actor.is_admin():
        return queryset
    if actor.is_manager():
        return queryset.filter(assigned_to=actor)
    return queryset.none()


def visible_tasks(actor):
    """Queryset of tasks the actor may list."""
    from apps.tasks.models import Task

    queryset = Task.objects.select_related('project', 'assigned_to', 'assigned_by')
    if not _is_usable_actor(actor):
        return queryset.none()
    if actor.is_admin():
        return queryset
    if actor.is_manager():
        return queryset.filter(project__assigned_to=actor)
    return queryset.filter(assigned_to=actor)
