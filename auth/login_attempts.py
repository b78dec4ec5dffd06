"""Failed-login tracking with lockout.

Sliding window evaluated at read time: timestamps older than the window are
pruned whenever an identifier is read or written, and an expired lockout is
deleted the next time it is checked. There is no background cleanup.

Storage faults never block a login: reads degrade to "no attempts, not
locked" and recording a failure fails open. Stored maps that do not parse
are deleted so the next write starts clean.
"""

import logging
from collections.abc import Callable

from auth.config import AuthConfig
from auth.types import AttemptResult, LockoutStatus
from clients.storage import KeyValueStore, read_json, write_json
from utils.timezone import now_ms

logger = logging.getLogger(__name__)


def hash_identifier(identifier: str) -> str:
    """
    32-bit rolling hash of an identifier, as signed hex.

    Keeps raw emails out of client storage. NOT a security boundary:
    collisions are possible and the hash is trivially reversible by
    brute force. Output matches the original client's keys, e.g. "0" for "".
    """
    h = 0
    encoded = identifier.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h << 5) - h + code_unit
        h = (h + 2**31) % 2**32 - 2**31  # wrap to signed 32-bit
    return format(h, "x")


class LoginAttemptTracker:
    """Per-identifier failed login tracking backed by the long-lived store."""

    def __init__(
        self,
        store: KeyValueStore,
        config: AuthConfig,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self._config = config
        self._clock = clock

        self.attempts_key = config.storage_key("login_attempts")
        self.lockout_key = config.storage_key("lockout_until")

    def hash_identifier(self, identifier: str) -> str:
        return hash_identifier(identifier)

    def _in_window(self, timestamps: list, now: int) -> list[int]:
        window = self._config.attempt_window_ms
        return [t for t in timestamps if isinstance(t, (int, float)) and now - t < window]

    def _load_map(self, key: str) -> dict:
        """Stored hash map, or {} when missing.

        A value that does not parse as a JSON object is deleted so the next
        write starts clean. Store I/O errors propagate to the caller.
        """
        try:
            data = read_json(self._store, key)
        except ValueError as e:
            logger.warning(f"Discarding corrupted {key}: {e}")
            self._store.remove(key)
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Discarding {key}: expected object, got {type(data).__name__}")
            self._store.remove(key)
            return {}
        return data

    def _history(self, attempts: dict, identifier_hash: str) -> list:
        history = attempts.get(identifier_hash)
        return history if isinstance(history, list) else []

    def get_attempts(self, identifier: str) -> list[int]:
        """Failure timestamps for identifier within the current window."""
        try:
            attempts = self._load_map(self.attempts_key)
            return self._in_window(self._history(attempts, self.hash_identifier(identifier)), self._clock())
        except Exception as e:
            logger.warning(f"Login attempt read failed: {e}")
            return []

    def record_failed_attempt(self, identifier: str) -> AttemptResult:
        """Record a failure and lock the identifier once the threshold is hit.

        Fails open: any storage error returns an unlocked result with the
        full attempt allowance.
        """
        max_attempts = self._config.max_login_attempts
        try:
            attempts = self._load_map(self.attempts_key)
            identifier_hash = self.hash_identifier(identifier)
            now = self._clock()

            history = self._history(attempts, identifier_hash) + [now]
            history = self._in_window(history, now)
            attempts[identifier_hash] = history

            write_json(self._store, self.attempts_key, attempts)

            if len(history) >= max_attempts:
                lockout_until = self.set_lockout(identifier)
                logger.info(f"Identifier {identifier_hash} locked out after {len(history)} failures")
                return AttemptResult(
                    locked=True,
                    lockout_until=lockout_until,
                    attempts=len(history),
                )

            return AttemptResult(
                locked=False,
                attempts_remaining=max_attempts - len(history),
                attempts=len(history),
            )
        except Exception as e:
            logger.warning(f"Recording failed login attempt failed, allowing login: {e}")
            return AttemptResult(locked=False, attempts_remaining=max_attempts)

    def clear_attempts(self, identifier: str) -> None:
        """Forget failures and any lockout for identifier (after a successful login)."""
        try:
            attempts = self._load_map(self.attempts_key)
            if attempts.pop(self.hash_identifier(identifier), None) is not None:
                write_json(self._store, self.attempts_key, attempts)
        except Exception as e:
            logger.warning(f"Clearing login attempts failed: {e}")

        self.clear_lockout(identifier)

    def set_lockout(self, identifier: str) -> int:
        """Lock identifier for the lockout duration. Returns the lockout expiry."""
        lockout_until = self._clock() + self._config.lockout_duration_ms
        try:
            lockouts = self._load_map(self.lockout_key)
            lockouts[self.hash_identifier(identifier)] = lockout_until
            write_json(self._store, self.lockout_key, lockouts)
        except Exception as e:
            logger.warning(f"Setting lockout failed: {e}")
        return lockout_until

    def clear_lockout(self, identifier: str) -> None:
        try:
            lockouts = self._load_map(self.lockout_key)
            if lockouts.pop(self.hash_identifier(identifier), None) is not None:
                write_json(self._store, self.lockout_key, lockouts)
        except Exception as e:
            logger.warning(f"Clearing lockout failed: {e}")

    def is_locked_out(self, identifier: str) -> LockoutStatus:
        """Current lockout state. Expired or malformed lockouts are deleted on read."""
        try:
            lockouts = self._load_map(self.lockout_key)
            lockout_until = lockouts.get(self.hash_identifier(identifier))

            if lockout_until is None:
                return LockoutStatus(locked=False)

            now = self._clock()
            if isinstance(lockout_until, (int, float)) and now < lockout_until:
                return LockoutStatus(
                    locked=True,
                    lockout_until=lockout_until,
                    remaining_time=lockout_until - now,
                )

            self.clear_lockout(identifier)
            return LockoutStatus(locked=False)
        except Exception as e:
            logger.warning(f"Lockout check failed: {e}")
            return LockoutStatus(locked=False)
