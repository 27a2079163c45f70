"""
Custom authentication backend for email-based login.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

User = get_user_model()


class EmailAuthBackend(ModelBackend):
    """
    Authenticate using email address instead of username.

    Deactivated accounts (soft deleted) can never authenticate, and a session
    belonging to an account that was deactivated afterwards stops resolving.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Authenticate a user by email and password.

        Args:
            request: The HTTP request
            username: Actually the email address (Django's default parameter name)
            password: The password to verify

        Returns:
            User object if authentication succeeds, None otherwise
        """
        # Allow email to be passed as either 'username' or 'email'
        email = kwargs.get('email') or username

        if email is None or password is None:
            return None

        email = email.lower().strip()

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            # Run the default password hasher to mitigate timing attacks
            User().set_password(password)
            return None

        if not user.is_active:
            return None

        if user.check_password(password):
            return user
        return None

    def get_user(self, user_id):
        """
        Retrieve a user by their primary key.
        """
        try:
            user = User.objects.get(pk=user_id)
            return user if self.user_can_authenticate(user) else None
        except User.DoesNotExist:
            return None
