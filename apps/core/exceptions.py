"""
Error taxonomy shared by every app.

- AuthorizationError: the resource exists but the actor may not touch it (403)
- NotFoundError: the resource does not exist or is hidden from the actor (404)
- TransientDispatchError: mail/store failure inside background work, recovered locally
- SchedulerHandlerError: anything escaping a scheduled handler, caught at the trigger

Validation failures use django.core.exceptions.ValidationError directly.
"""

from django.core.exceptions import PermissionDenied


class AuthorizationError(PermissionDenied):
    """
    Raised when the permission model denies an action.

    `reason` is the machine-readable deny code from the permission model,
    so callers and tests can tell *why* access was refused.
    """

    def __init__(self, message="You don't have permission to perform this action.", reason=None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class NotFoundError(Exception):
    """Raised when a looked-up resource does not exist (or is out of scope)."""

    def __init__(self, message='Not found.'):
        super().__init__(message)
        self.message = message


class TransientDispatchError(Exception):
    """A best-effort side effect (email send, sweep unit) failed."""


class SchedulerHandlerError(Exception):
    """Wraps an exception that escaped a scheduled trigger handler."""

    def __init__(self, trigger_name, original):
        super().__init__(f'Trigger "{trigger_name}" failed: {original!r}')
        self.trigger_name = trigger_name
        self.original = original
