"""Authentication configuration."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_ENV_PREFIX = "AUTH_"


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    All durations are in their natural units (minutes for short durations,
    hours for longer ones) to make configuration intuitive. Components work
    in epoch milliseconds, so each duration has a derived *_ms property.
    """

    # Session settings
    session_max_age_hours: int = Field(
        default=24,
        description="Absolute session lifetime in hours",
        ge=1,
        le=720,
    )
    session_refresh_threshold_minutes: int = Field(
        default=30,
        description="Refresh session if less than this many minutes remaining",
        ge=1,
    )
    session_inactivity_timeout_minutes: int = Field(
        default=30,
        description="Session is invalid after this long without activity",
        ge=1,
        le=1440,
    )
    session_warning_minutes: int = Field(
        default=5,
        description="Show a timeout warning when this many minutes remain",
        ge=1,
    )
    activity_update_interval_seconds: int = Field(
        default=30,
        description="Minimum spacing between last-activity writes",
        ge=0,
    )

    # Login lockout
    max_login_attempts: int = Field(
        default=5,
        description="Failed logins per identifier before lockout",
        ge=1,
        le=20,
    )
    lockout_duration_minutes: int = Field(
        default=15,
        description="Lockout duration once the threshold is hit",
        ge=1,
        le=1440,
    )
    attempt_window_minutes: int = Field(
        default=15,
        description="Sliding window for counting failed logins",
        ge=1,
        le=1440,
    )
    low_attempts_warning: int = Field(
        default=2,
        description="Warn the user once remaining attempts drop to this",
        ge=0,
    )

    # Security event log
    max_security_events: int = Field(
        default=100,
        description="Security events kept before the oldest are dropped",
        ge=1,
        le=10000,
    )

    # Storage
    key_namespace: str = Field(
        default="omnimind",
        description="Prefix for every storage key",
        min_length=1,
    )

    @property
    def session_max_age_ms(self) -> int:
        return self.session_max_age_hours * 3600 * 1000

    @property
    def session_refresh_threshold_ms(self) -> int:
        return self.session_refresh_threshold_minutes * 60 * 1000

    @property
    def session_inactivity_timeout_ms(self) -> int:
        return self.session_inactivity_timeout_minutes * 60 * 1000

    @property
    def session_warning_ms(self) -> int:
        return self.session_warning_minutes * 60 * 1000

    @property
    def lockout_duration_ms(self) -> int:
        return self.lockout_duration_minutes * 60 * 1000

    @property
    def attempt_window_ms(self) -> int:
        return self.attempt_window_minutes * 60 * 1000

    def storage_key(self, name: str) -> str:
        """Namespaced storage key, e.g. "omnimind_session"."""
        return f"{self.key_namespace}_{name}"

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> "AuthConfig":
        """
        Build config from AUTH_* environment variables.

        Loads a .env file first (existing environment wins). Unset variables
        keep their defaults; out-of-range values raise pydantic.ValidationError.

        Example: AUTH_MAX_LOGIN_ATTEMPTS=3 -> max_login_attempts=3
        """
        load_dotenv(dotenv_path)
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{_ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw
        return cls(**values)


def get_valkey_url() -> str:
    """
    Valkey connection URL for the long-lived store.

    Raises ValueError if VALKEY_URL is not set.
    """
    load_dotenv()
    url = os.getenv("VALKEY_URL")
    if not url:
        raise ValueError("VALKEY_URL environment variable is required")
    return url
