"""
Auth error taxonomy.

Every expected failure of the credential/session lifecycle is an
``AuthError``.  Route handlers never build HTTP errors themselves; the
exception handlers in ``api.errors`` map these classes to status codes.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for expected, non-transient auth failures."""

    default_message = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateAccountError(AuthError):
    default_message = "User with this email already exists"


class InvalidCredentialsError(AuthError):
    default_message = "Invalid credentials"


class AccountDisabledError(AuthError):
    default_message = "Account is disabled"


class UserNotFoundError(AuthError):
    default_message = "User not found"


class InvalidOrExpiredTokenError(AuthError):
    default_message = "Invalid or expired token"


class MissingTokenError(AuthError):
    default_message = "No token provided"


class InvalidTokenError(AuthError):
    """Raised by ``TokenCodec.verify``; the reason is kept for debug logs only."""

    default_message = "Invalid token"
