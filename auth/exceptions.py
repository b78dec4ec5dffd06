"""Typed exceptions for auth failures.

The session, lockout and event components never raise these; they return
safe defaults. The exceptions belong to the login orchestration layer.
"""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidCredentialsError(AuthError):
    """
    Credentials were rejected.

    Raised by the authenticate callable passed to AuthService.login.
    """


class AccountLockedError(AuthError):
    """Too many failed logins. Client should wait before retrying."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Account locked. Retry after {retry_after_seconds} seconds.")


class SessionExpiredError(AuthError):
    """Session has expired and user must re-authenticate."""
