"""Shared test fixtures for the client auth test suite."""

import os

import pytest

from auth.config import AuthConfig
from auth.login_attempts import LoginAttemptTracker
from auth.security_logger import ClientContext, SecurityEventLogger
from auth.service import AuthService
from auth.session import SessionManager
from clients.storage import MemoryStore


# =============================================================================
# TEST CONSTANTS
# =============================================================================

TEST_USER_ID = "user-0001"
TEST_USER_EMAIL = "user@example.com"

# Arbitrary fixed start time (2024-01-01T00:00:00Z) so tests never depend on the wall clock
T0 = 1_704_067_200_000

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


class FakeClock:
    """Mutable epoch-millisecond clock."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis

    def set(self, millis: int) -> None:
        self.now = millis


class FailingStore:
    """Store whose every operation raises, to exercise fail-safe paths."""

    def __init__(self, exc: Exception | None = None):
        self._exc = exc or OSError("storage unavailable")

    def get(self, key):
        raise self._exc

    def set(self, key, value):
        raise self._exc

    def remove(self, key):
        raise self._exc


class CountingStore(MemoryStore):
    """MemoryStore that counts writes and removals."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)

    def remove(self, key):
        self.writes += 1
        super().remove(key)


# =============================================================================
# CORE FIXTURES
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> AuthConfig:
    """Default config: 24h sessions, 30min inactivity, 5 attempts / 15 min."""
    return AuthConfig()


@pytest.fixture
def short_store() -> MemoryStore:
    """Session-scoped store (one per test)."""
    return MemoryStore()


@pytest.fixture
def long_store() -> MemoryStore:
    """Persistent store (one per test)."""
    return MemoryStore()


@pytest.fixture
def session_manager(short_store, long_store, config, clock) -> SessionManager:
    return SessionManager(short_store, long_store, config, clock=clock)


@pytest.fixture
def login_tracker(long_store, config, clock) -> LoginAttemptTracker:
    return LoginAttemptTracker(long_store, config, clock=clock)


@pytest.fixture
def client_context() -> ClientContext:
    return ClientContext(user_agent="pytest-agent/1.0", url="https://app.test/login")


@pytest.fixture
def security_logger(long_store, config, clock, client_context) -> SecurityEventLogger:
    return SecurityEventLogger(long_store, config, context=client_context, clock=clock)


@pytest.fixture
def auth_service(config, session_manager, login_tracker, security_logger, clock) -> AuthService:
    return AuthService(config, session_manager, login_tracker, security_logger, clock=clock)


# =============================================================================
# VALKEY FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def valkey():
    """Session-scoped ValkeyClient. Skips unless VALKEY_URL is set."""
    url = os.getenv("VALKEY_URL")
    if not url:
        pytest.skip("VALKEY_URL not set")

    from clients.valkey_client import ValkeyClient

    client = ValkeyClient(url, key_prefix="test:")
    yield client
    client.close()


# =============================================================================
# FAULT INJECTION FIXTURES
# =============================================================================


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def counting_store() -> CountingStore:
    return CountingStore()
