"""
Authentication backend letting marketplace users sign in with their email.

Logins go through the JWT login endpoint, not Django's session login(), so
the backend stamps last_login itself and records why an attempt failed.
The API answers every failure the same way; the reason only reaches the log.
"""

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.contrib.auth.models import update_last_login

logger = logging.getLogger(__name__)

User = get_user_model()


def _client_ip(request):
    if request is None:
        return '-'
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '-')


class EmailBackend(ModelBackend):
    """
    Authenticate against User.email (case-insensitive).

    Inactive accounts are refused the same way ModelBackend refuses them.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Args:
            request: HTTP request object (may be None outside a request)
            username: Email address (named username for compatibility with authenticate())
            password: User password
            **kwargs: May carry `email` instead of `username`

        Returns:
            User if the credentials match an active account, None otherwise
        """
        email = kwargs.get('email', username)

        if not email or password is None:
            return None

        email = email.strip().lower()

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            # Hash once anyway so unknown emails take as long as wrong passwords
            User().set_password(password)
            self._log_failure(request, email, 'unknown email')
            return None

        if not user.check_password(password):
            self._log_failure(request, email, 'wrong password')
            return None

        if not self.user_can_authenticate(user):
            self._log_failure(request, email, 'inactive account')
            return None

        update_last_login(None, user)
        return user

    def get_user(self, user_id):
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
        return user if self.user_can_authenticate(user) else None

    def _log_failure(self, request, email, reason):
        logger.warning(
            f"Failed login attempt. Email: {email}, Reason: {reason}, IP: {_client_ip(request)}"
        )
