"""Security event logging for the client audit trail.

Events are kept newest first in the long-lived store, capped at
max_security_events. Overflow drops the oldest by insertion order.
Logging never raises into the caller.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from auth.config import AuthConfig
from auth.types import SecurityEventRecord
from clients.storage import KeyValueStore, read_json, write_json
from utils.timezone import now_ms

logger = logging.getLogger(__name__)


class SecurityEvent(Enum):
    """Security event types emitted by the login and session flows."""

    LOGIN_PAGE_VISITED = "login_page_visited"
    LOGIN_ATTEMPT = "login_attempt"
    LOGIN_BLOCKED_LOCKOUT = "login_blocked_lockout"
    LOGIN_FAILED = "login_failed"
    LOGIN_SUCCESS = "login_success"
    OAUTH_LOGIN_INITIATED = "oauth_login_initiated"
    ACCOUNT_LOCKED = "account_locked"
    SESSION_CREATED = "session_created"
    SESSION_REFRESHED = "session_refreshed"
    SESSION_REFRESH_FAILED = "session_refresh_failed"
    SESSION_EXPIRED = "session_expired"
    USER_LOGOUT = "user_logout"
    LOGOUT_ALL_DEVICES = "logout_all_devices"


@dataclass(frozen=True)
class ClientContext:
    """Where events come from. Merged into every event's details."""

    user_agent: str = "unknown"
    url: str = ""


class SecurityEventLogger:
    """Append-only, capped security event log."""

    def __init__(
        self,
        store: KeyValueStore,
        config: AuthConfig,
        context: ClientContext | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self._clock = clock
        self._context = context or ClientContext()
        self.max_events = config.max_security_events
        self.events_key = config.storage_key("security_events")

    def set_context(self, context: ClientContext) -> None:
        self._context = context

    def _load_events(self) -> list:
        """Stored events, or [] when missing. Unparsable or non-list logs are dropped."""
        try:
            events = read_json(self._store, self.events_key)
        except ValueError as e:
            logger.warning(f"Discarding corrupted security event log: {e}")
            return []
        return events if isinstance(events, list) else []

    def log_event(
        self,
        event_type: SecurityEvent | str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Prepend an event and trim the log. Storage errors are swallowed."""
        type_value = event_type.value if isinstance(event_type, SecurityEvent) else str(event_type)
        try:
            events = self._load_events()

            record = SecurityEventRecord(
                type=type_value,
                timestamp=self._clock(),
                details={
                    **(details or {}),
                    "userAgent": self._context.user_agent,
                    "url": self._context.url,
                },
            )

            events.insert(0, record.to_storage())
            write_json(self._store, self.events_key, events[: self.max_events])

            logger.debug(f"Security event: {type_value}")
        except Exception as e:
            logger.warning(f"Security event {type_value} not stored: {e}")

    def get_recent_events(self, count: int = 10) -> list[SecurityEventRecord]:
        """Newest events first. Empty list if the log is missing or unreadable."""
        try:
            events = read_json(self._store, self.events_key)
            if not events:
                return []

            return [SecurityEventRecord.from_storage(e) for e in events[:count]]
        except Exception as e:
            logger.warning(f"Security event read failed: {e}")
            return []

    def clear_events(self) -> None:
        try:
            self._store.remove(self.events_key)
        except Exception as e:
            logger.warning(f"Security event log not cleared: {e}")
