"""Client session lifecycle management.

The active session lives in the short-lived store; the device id and the
last-activity stamp live in the long-lived store. Expiry and inactivity are
evaluated lazily against the injected clock, never by timers.
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError

from auth.config import AuthConfig
from auth.security import generate_secure_token
from auth.types import Session, SessionInfo
from clients.storage import KeyValueStore, read_json, write_json
from utils.timezone import ms_to_iso, now_ms

logger = logging.getLogger(__name__)


class SessionManager:
    """Session lifecycle: creation, validation, refresh, device binding.

    A session is valid iff it has not passed expires_at, the persisted
    last-activity stamp is within the inactivity timeout, and its device id
    matches this client's device id.
    """

    def __init__(
        self,
        short_store: KeyValueStore,
        long_store: KeyValueStore,
        config: AuthConfig,
        clock: Callable[[], int] = now_ms,
        token_factory: Callable[[int], str] = generate_secure_token,
    ):
        self._short = short_store
        self._long = long_store
        self._config = config
        self._clock = clock
        self._token_factory = token_factory

        self.session_key = config.storage_key("session")
        self.last_activity_key = config.storage_key("last_activity")
        self.device_id_key = config.storage_key("device_id")

        self.init_device_id()

    def init_device_id(self) -> str:
        """Return the stored device id, minting and persisting one if absent."""
        device_id = self._long.get(self.device_id_key)
        if not device_id:
            device_id = self._token_factory(16)
            self._long.set(self.device_id_key, device_id)
            logger.info("Device id initialized")
        return device_id

    def get_device_id(self) -> str:
        return self._long.get(self.device_id_key) or self.init_device_id()

    def create_session(self, user_id: str, user_email: str) -> Session:
        """Create and persist a new session, replacing any existing one."""
        now = self._clock()
        session = Session(
            id=self._token_factory(32),
            user_id=user_id,
            user_email=user_email,
            device_id=self.get_device_id(),
            created_at=now,
            expires_at=now + self._config.session_max_age_ms,
            last_activity=now,
        )

        write_json(self._short, self.session_key, session.to_storage())
        self.update_last_activity()
        logger.info(f"Session created for user {user_id}")

        return session

    def get_session(self) -> Session | None:
        """Load the current session.

        Returns None if absent, corrupted or invalid. Corrupted and invalid
        records are removed. Never raises.
        """
        try:
            data = read_json(self._short, self.session_key)
            if data is None:
                return None

            session = Session.from_storage(data)

            if not self.is_session_valid(session):
                self.clear_session()
                return None

            return session
        except (ValueError, ValidationError) as e:
            logger.warning(f"Discarding corrupted session record: {e}")
            self._clear_quietly()
            return None
        except Exception as e:
            logger.warning(f"Session read failed: {e}")
            self._clear_quietly()
            return None

    def is_session_valid(self, session: Session | None) -> bool:
        if session is None:
            return False

        now = self._clock()

        if now > session.expires_at:
            return False

        if now - self._read_last_activity() > self._config.session_inactivity_timeout_ms:
            return False

        if session.device_id != self.get_device_id():
            return False

        return True

    def needs_refresh(self) -> bool:
        """True if a valid session exists and expires within the refresh threshold."""
        session = self.get_session()
        if session is None:
            return False

        time_remaining = session.expires_at - self._clock()
        return time_remaining < self._config.session_refresh_threshold_ms

    def refresh_session(self) -> Session | None:
        """Extend expiry to a full max age. Returns None (no writes) without a session."""
        session = self.get_session()
        if session is None:
            return None

        now = self._clock()
        refreshed = session.model_copy(
            update={
                "expires_at": now + self._config.session_max_age_ms,
                "last_activity": now,
            }
        )

        write_json(self._short, self.session_key, refreshed.to_storage())
        self.update_last_activity()

        return refreshed

    def update_last_activity(self) -> None:
        """Stamp the current time as the last user activity."""
        self._long.set(self.last_activity_key, str(self._clock()))

    def clear_session(self) -> None:
        """Remove the session and its last-activity stamp."""
        self._short.remove(self.session_key)
        self._long.remove(self.last_activity_key)
        logger.info("Session cleared")

    def get_session_info(self) -> SessionInfo | None:
        """Display projection of the current session, or None."""
        session = self.get_session()
        if session is None:
            return None

        try:
            created_at = ms_to_iso(session.created_at)
            last_activity = ms_to_iso(self._read_last_activity())
        except (OverflowError, ValueError) as e:
            logger.warning(f"Discarding session with out-of-range timestamp: {e}")
            self._clear_quietly()
            return None

        return SessionInfo(
            is_valid=True,
            expires_in=max(0, session.expires_at - self._clock()),
            created_at=created_at,
            last_activity=last_activity,
        )

    def _read_last_activity(self) -> int:
        """Persisted last-activity stamp; 0 when missing, unparsable or in the future."""
        raw = self._long.get(self.last_activity_key)
        try:
            last_activity = int(raw or "0")
        except ValueError:
            return 0
        return last_activity if last_activity <= self._clock() else 0

    def _clear_quietly(self) -> None:
        try:
            self.clear_session()
        except Exception as e:
            logger.warning(f"Session clear failed: {e}")


class ActivityThrottle:
    """
    Forwards user interaction to SessionManager.update_last_activity at most
    once per interval, to avoid a storage write on every keystroke.

    Usage:
        throttle = ActivityThrottle(session_manager, config)
        throttle.touch()  # call from input handlers
    """

    def __init__(
        self,
        session_manager: SessionManager,
        config: AuthConfig,
        clock: Callable[[], int] = now_ms,
    ):
        self._session_manager = session_manager
        self._interval_ms = config.activity_update_interval_seconds * 1000
        self._clock = clock
        self._last_update: int | None = None

    def touch(self) -> bool:
        """Record activity. Returns True if a write happened."""
        now = self._clock()
        if self._last_update is not None and now - self._last_update <= self._interval_ms:
            return False

        self._last_update = now
        self._session_manager.update_last_activity()
        return True
