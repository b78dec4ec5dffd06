"""Authentication service - orchestrates login, session gate and logout.

Credential checking is delegated to an `authenticate` callable supplied by
the caller; this layer only sequences lockout checks, attempt tracking,
session creation and event logging.
"""

import logging
import math
import re
from collections.abc import Callable

from auth.config import AuthConfig
from auth.exceptions import AccountLockedError, AuthError, SessionExpiredError
from auth.login_attempts import LoginAttemptTracker
from auth.security_logger import SecurityEvent, SecurityEventLogger
from auth.session import SessionManager
from auth.types import LoginResult, Session, SessionCheck, SecurityStatus
from utils.timezone import now_ms

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_PATTERN.match(email) is not None


def format_lockout_time(milliseconds: int) -> str:
    """Remaining lockout as whole minutes, rounded up: "1 minute", "15 minutes"."""
    minutes = math.ceil(milliseconds / 60000)
    if minutes == 1:
        return "1 minute"
    return f"{minutes} minutes"


class AuthService:
    """Orchestrates the client authentication flow.

    Handles:
    - Login (lockout check, failure tracking, session creation)
    - Session gate checks (expiry warning, refresh)
    - Logout
    - Security status aggregation
    """

    def __init__(
        self,
        config: AuthConfig,
        session_manager: SessionManager,
        login_tracker: LoginAttemptTracker,
        security_logger: SecurityEventLogger,
        clock: Callable[[], int] = now_ms,
    ):
        self._config = config
        self._clock = clock
        self._session_manager = session_manager
        self._login_tracker = login_tracker
        self._security_logger = security_logger

    def login(self, email: str, authenticate: Callable[[str], str]) -> LoginResult:
        """Run one login attempt.

        Flow:
        1. Normalize and validate the email
        2. Refuse while the email is locked out
        3. Call authenticate(email) -> user_id
        4. On AuthError: record the failure, report lockout or remaining attempts
        5. On success: clear failures, create the session

        Authentication failures are reported in the result, never raised.
        """
        email = (email or "").strip().lower()

        if not is_valid_email(email):
            return LoginResult(success=False, error="Please enter a valid email address")

        lockout = self._login_tracker.is_locked_out(email)
        if lockout.locked:
            logger.info("Login refused: identifier locked out")
            self._security_logger.log_event(
                SecurityEvent.LOGIN_BLOCKED_LOCKOUT,
                {"email": email},
            )
            return LoginResult(
                success=False,
                lockout=lockout,
                error=f"Too many failed attempts. Try again in {format_lockout_time(lockout.remaining_time)}.",
            )

        self._security_logger.log_event(SecurityEvent.LOGIN_ATTEMPT, {"email": email})

        try:
            user_id = authenticate(email)
        except AuthError as e:
            return self._handle_failed_login(email, str(e))

        self._login_tracker.clear_attempts(email)
        session = self._session_manager.create_session(user_id, email)
        logger.info(f"Login succeeded for user {user_id}")

        self._security_logger.log_event(SecurityEvent.LOGIN_SUCCESS, {"email": email})
        self._security_logger.log_event(SecurityEvent.SESSION_CREATED, {"userId": user_id})

        return LoginResult(success=True, session=session)

    def _handle_failed_login(self, email: str, reason: str) -> LoginResult:
        attempt = self._login_tracker.record_failed_attempt(email)

        self._security_logger.log_event(
            SecurityEvent.LOGIN_FAILED,
            {
                "email": email,
                "reason": reason,
                "attemptsRemaining": attempt.attempts_remaining,
            },
        )

        if attempt.locked:
            self._security_logger.log_event(SecurityEvent.ACCOUNT_LOCKED, {"email": email})
            lockout_ms = self._config.lockout_duration_ms
            return LoginResult(
                success=False,
                attempt=attempt,
                lockout=self._login_tracker.is_locked_out(email),
                error=f"Too many failed attempts. Account locked for {format_lockout_time(lockout_ms)}.",
            )

        warning = None
        remaining = attempt.attempts_remaining
        if remaining is not None and remaining <= self._config.low_attempts_warning:
            warning = f"{remaining} login attempts remaining before lockout."

        return LoginResult(
            success=False,
            attempt=attempt,
            warning=warning,
            error=reason or "Login failed. Please check your credentials.",
        )

    def require_not_locked(self, email: str) -> None:
        """Raise AccountLockedError if email is locked out."""
        lockout = self._login_tracker.is_locked_out(email.strip().lower())
        if lockout.locked:
            raise AccountLockedError(retry_after_seconds=max(math.ceil(lockout.remaining_time / 1000), 1))

    def require_session(self) -> Session:
        """Return the valid session or raise SessionExpiredError."""
        session = self._session_manager.get_session()
        if session is None:
            raise SessionExpiredError("No valid session")
        return session

    def check_session(self) -> SessionCheck:
        """One session gate pass: expire, warn, or refresh.

        The warning fields describe the session as found, before any refresh.
        """
        session = self._session_manager.get_session()

        if session is None:
            self._security_logger.log_event(SecurityEvent.SESSION_EXPIRED)
            self._session_manager.clear_session()
            return SessionCheck(expired=True)

        remaining = session.expires_at - self._clock()
        show_warning = 0 < remaining < self._config.session_warning_ms

        if self._session_manager.needs_refresh():
            refreshed = self._session_manager.refresh_session()
            if refreshed is None:
                self._security_logger.log_event(SecurityEvent.SESSION_REFRESH_FAILED)
                return SessionCheck(expired=True)

            self._security_logger.log_event(SecurityEvent.SESSION_REFRESHED)
            return SessionCheck(
                session=refreshed,
                refreshed=True,
                show_timeout_warning=show_warning,
                time_remaining=remaining,
            )

        return SessionCheck(
            session=session,
            show_timeout_warning=show_warning,
            time_remaining=remaining,
        )

    def logout(self) -> None:
        self._security_logger.log_event(SecurityEvent.USER_LOGOUT)
        self._session_manager.clear_session()

    def is_session_expiring_soon(self) -> bool:
        return self._session_manager.needs_refresh()

    def get_security_status(self) -> SecurityStatus:
        """Session state, five newest security events and the device id."""
        session_info = self._session_manager.get_session_info()
        return SecurityStatus(
            has_active_session=session_info is not None,
            session_info=session_info,
            recent_security_events=self._security_logger.get_recent_events(5),
            device_id=self._session_manager.get_device_id(),
        )
