"""Pydantic models for auth domain.

Timestamps are epoch milliseconds. Persisted payloads use the camelCase
field names of the original client so stored state stays readable by it.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _StoredModel(BaseModel):
    """Base for models persisted as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_storage(cls, data: Any):
        """Raises pydantic.ValidationError on malformed payloads."""
        return cls.model_validate(data)


class Session(_StoredModel):
    """One authenticated client session."""

    id: str = Field(..., description="Opaque random session token")
    user_id: str
    user_email: str
    device_id: str
    created_at: int
    expires_at: int
    last_activity: int


class SecurityEventRecord(_StoredModel):
    """A logged security event. details always carries userAgent and url."""

    type: str
    timestamp: int
    details: dict[str, Any] = Field(default_factory=dict)


class SessionInfo(BaseModel):
    """Read-only session projection for display."""

    is_valid: bool
    expires_in: int = Field(..., description="Milliseconds until expiry, never negative")
    created_at: str
    last_activity: str


class AttemptResult(BaseModel):
    """Outcome of recording a failed login."""

    locked: bool  # Required - no default
    lockout_until: int | None = None
    attempts_remaining: int | None = None
    attempts: int | None = None


class LockoutStatus(BaseModel):
    """Whether an identifier is currently locked out."""

    locked: bool
    lockout_until: int | None = None
    remaining_time: int | None = None


class SecurityStatus(BaseModel):
    """Aggregated security state for a status panel."""

    has_active_session: bool
    session_info: SessionInfo | None = None
    recent_security_events: list[SecurityEventRecord] = Field(default_factory=list)
    device_id: str


class LoginResult(BaseModel):
    """Outcome of AuthService.login."""

    success: bool
    session: Session | None = None
    lockout: LockoutStatus | None = None
    attempt: AttemptResult | None = None
    warning: str | None = None
    error: str | None = None


class SessionCheck(BaseModel):
    """Outcome of one session gate check."""

    session: Session | None = None
    expired: bool = False
    refreshed: bool = False
    show_timeout_warning: bool = False
    time_remaining: int | None = None
