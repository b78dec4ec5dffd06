"""Tests for SessionManager - session lifecycle, expiry and device binding."""

import json

import pytest

from auth.session import ActivityThrottle, SessionManager
from auth.types import Session
from clients.storage import MemoryStore, write_json

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


def store_session(short_store, session: Session) -> None:
    write_json(short_store, "omnimind_session", session.to_storage())


class TestDeviceId:
    """Device id is minted once per long-lived store."""

    def test_constructor_persists_device_id(self, session_manager, long_store):
        device_id = long_store.get("omnimind_device_id")

        assert device_id
        assert session_manager.get_device_id() == device_id

    def test_device_id_is_32_hex_chars(self, session_manager):
        device_id = session_manager.get_device_id()

        assert len(device_id) == 32
        int(device_id, 16)

    def test_existing_device_id_is_kept(self, short_store, long_store, config, clock):
        long_store.set("omnimind_device_id", "existing-device")

        manager = SessionManager(short_store, long_store, config, clock=clock)

        assert manager.init_device_id() == "existing-device"
        assert manager.get_device_id() == "existing-device"

    def test_second_manager_shares_device_id(self, session_manager, long_store, config, clock):
        """A new instance over the same persistent store sees the same device."""
        other = SessionManager(MemoryStore(), long_store, config, clock=clock)

        assert other.get_device_id() == session_manager.get_device_id()

    def test_get_device_id_reinitializes_when_removed(self, session_manager, long_store):
        long_store.remove("omnimind_device_id")

        device_id = session_manager.get_device_id()

        assert device_id
        assert long_store.get("omnimind_device_id") == device_id


class TestCreateSession:
    """Test session creation."""

    def test_returns_session_with_token(self, session_manager):
        session = session_manager.create_session("u1", "u1@example.com")

        assert len(session.id) == 64

    def test_session_fields(self, session_manager, clock, config):
        session = session_manager.create_session("u1", "u1@example.com")

        assert session.user_id == "u1"
        assert session.user_email == "u1@example.com"
        assert session.device_id == session_manager.get_device_id()
        assert session.created_at == clock.now
        assert session.last_activity == clock.now
        assert session.expires_at == clock.now + config.session_max_age_ms

    def test_expires_after_24_hours_by_default(self, session_manager, clock):
        session = session_manager.create_session("u1", "u1@example.com")

        assert session.expires_at - session.created_at == 24 * HOUR_MS

    def test_different_sessions_get_different_ids(self, session_manager):
        first = session_manager.create_session("u1", "u1@example.com")
        second = session_manager.create_session("u2", "u2@example.com")

        assert first.id != second.id

    def test_persists_camel_case_record(self, session_manager, short_store):
        session = session_manager.create_session("u1", "u1@example.com")

        stored = json.loads(short_store.get("omnimind_session"))

        assert stored["id"] == session.id
        assert stored["userId"] == "u1"
        assert stored["userEmail"] == "u1@example.com"
        assert stored["expiresAt"] == session.expires_at
        assert set(stored) == {
            "id", "userId", "userEmail", "deviceId", "createdAt", "expiresAt", "lastActivity",
        }

    def test_stamps_last_activity(self, session_manager, long_store, clock):
        session_manager.create_session("u1", "u1@example.com")

        assert long_store.get("omnimind_last_activity") == str(clock.now)

    def test_new_session_replaces_old(self, session_manager):
        session_manager.create_session("u1", "u1@example.com")
        second = session_manager.create_session("u2", "u2@example.com")

        assert session_manager.get_session().id == second.id

    def test_created_session_is_immediately_valid(self, session_manager):
        session_manager.create_session("u1", "u1@example.com")

        assert session_manager.is_session_valid(session_manager.get_session()) is True


class TestGetSession:
    """Reading the session is fail-safe: anything wrong means no session."""

    def test_returns_none_when_absent(self, session_manager):
        assert session_manager.get_session() is None

    def test_round_trips_created_session(self, session_manager):
        created = session_manager.create_session("u1", "u1@example.com")

        assert session_manager.get_session() == created

    def test_corrupted_json_returns_none_and_clears(self, session_manager, short_store, long_store):
        session_manager.create_session("u1", "u1@example.com")
        short_store.set("omnimind_session", "{not json")

        assert session_manager.get_session() is None
        assert short_store.get("omnimind_session") is None
        assert long_store.get("omnimind_last_activity") is None

    def test_malformed_payload_returns_none_and_clears(self, session_manager, short_store):
        short_store.set("omnimind_session", json.dumps({"id": "abc"}))

        assert session_manager.get_session() is None
        assert short_store.get("omnimind_session") is None

    def test_non_object_payload_returns_none(self, session_manager, short_store):
        short_store.set("omnimind_session", "[1, 2, 3]")

        assert session_manager.get_session() is None
        assert short_store.get("omnimind_session") is None

    def test_expired_session_returns_none_and_clears(self, session_manager, short_store, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        store_session(short_store, session.model_copy(update={"expires_at": clock.now - 1}))

        assert session_manager.get_session() is None
        assert short_store.get("omnimind_session") is None

    def test_storage_failure_returns_none(self, failing_store, long_store, config, clock):
        manager = SessionManager(failing_store, long_store, config, clock=clock)

        assert manager.get_session() is None


class TestIsSessionValid:
    """Expiry, inactivity and device binding."""

    def test_none_is_invalid(self, session_manager):
        assert session_manager.is_session_valid(None) is False

    def test_valid_at_exact_expiry(self, session_manager, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        session = session.model_copy(update={"expires_at": clock.now})

        assert session_manager.is_session_valid(session) is True

    def test_invalid_past_expiry(self, session_manager, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        session = session.model_copy(update={"expires_at": clock.now - 1})

        assert session_manager.is_session_valid(session) is False

    def test_valid_at_inactivity_limit(self, session_manager, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        clock.advance(30 * MINUTE_MS)

        assert session_manager.is_session_valid(session) is True

    def test_invalid_after_inactivity(self, session_manager, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        clock.advance(30 * MINUTE_MS + 1)

        assert session_manager.is_session_valid(session) is False

    def test_activity_keeps_session_alive(self, session_manager, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        clock.advance(20 * MINUTE_MS)
        session_manager.update_last_activity()
        clock.advance(20 * MINUTE_MS)

        assert session_manager.is_session_valid(session) is True

    def test_missing_last_activity_is_inactive(self, session_manager, long_store):
        session = session_manager.create_session("u1", "u1@example.com")
        long_store.remove("omnimind_last_activity")

        assert session_manager.is_session_valid(session) is False

    def test_garbage_last_activity_is_inactive(self, session_manager, long_store):
        session = session_manager.create_session("u1", "u1@example.com")
        long_store.set("omnimind_last_activity", "yesterday")

        assert session_manager.is_session_valid(session) is False

    def test_future_last_activity_is_inactive(self, session_manager, long_store):
        session = session_manager.create_session("u1", "u1@example.com")
        long_store.set("omnimind_last_activity", "999999999999999999")

        assert session_manager.is_session_valid(session) is False
        assert session_manager.get_session() is None

    def test_other_device_is_invalid(self, session_manager, long_store):
        """Session bound to device A checked while the device is B."""
        long_store.set("omnimind_device_id", "device-a")
        session = session_manager.create_session("u1", "u1@example.com")
        assert session.device_id == "device-a"

        long_store.set("omnimind_device_id", "device-b")

        assert session_manager.is_session_valid(session) is False
        assert session_manager.get_session() is None


class TestNeedsRefresh:
    """Refresh is due when under 30 minutes remain."""

    def test_false_without_session(self, session_manager):
        assert session_manager.needs_refresh() is False

    def test_false_for_fresh_session(self, session_manager):
        session_manager.create_session("u1", "u1@example.com")

        assert session_manager.needs_refresh() is False

    def test_true_near_expiry(self, session_manager, short_store, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        store_session(short_store, session.model_copy(update={"expires_at": clock.now + 29 * MINUTE_MS}))

        assert session_manager.needs_refresh() is True

    def test_false_at_threshold(self, session_manager, short_store, clock):
        session = session_manager.create_session("u1", "u1@example.com")
        store_session(short_store, session.model_copy(update={"expires_at": clock.now + 30 * MINUTE_MS}))

        assert session_manager.needs_refresh() is False


class TestRefreshSession:
    """Refresh pushes expiry to a full max age."""

    def test_extends_expiry_and_activity(self, session_manager, long_store, clock, config):
        session = session_manager.create_session("u1", "u1@example.com")
        clock.advance(10 * MINUTE_MS)

        refreshed = session_manager.refresh_session()

        assert refreshed.expires_at > session.expires_at
        assert refreshed.expires_at == clock.now + config.session_max_age_ms
        assert refreshed.last_activity == clock.now
        assert refreshed.id == session.id
        assert long_store.get("omnimind_last_activity") == str(clock.now)

    def test_persists_refreshed_session(self, session_manager, clock):
        session_manager.create_session("u1", "u1@example.com")
        clock.advance(MINUTE_MS)

        refreshed = session_manager.refresh_session()

        assert session_manager.get_session() == refreshed

    def test_without_session_returns_none_and_writes_nothing(self, counting_store, long_store, config, clock):
        manager = SessionManager(counting_store, long_store, config, clock=clock)
        long_before = {key: long_store.get(key) for key in long_store.keys()}

        assert manager.refresh_session() is None
        assert counting_store.writes == 0
        assert {key: long_store.get(key) for key in long_store.keys()} == long_before


class TestClearSession:
    """Logout / invalidation."""

    def test_removes_session_and_activity(self, session_manager, short_store, long_store):
        session_manager.create_session("u1", "u1@example.com")

        session_manager.clear_session()

        assert short_store.get("omnimind_session") is None
        assert long_store.get("omnimind_last_activity") is None
        assert session_manager.get_session() is None

    def test_keeps_device_id(self, session_manager, long_store):
        device_id = session_manager.get_device_id()
        session_manager.create_session("u1", "u1@example.com")

        session_manager.clear_session()

        assert long_store.get("omnimind_device_id") == device_id

    def test_clear_without_session_does_not_error(self, session_manager):
        session_manager.clear_session()


class TestGetSessionInfo:
    """Display projection."""

    def test_none_without_session(self, session_manager):
        assert session_manager.get_session_info() is None

    def test_reports_remaining_and_timestamps(self, session_manager, clock):
        session_manager.create_session("u1", "u1@example.com")
        clock.advance(5 * MINUTE_MS)

        info = session_manager.get_session_info()

        assert info.is_valid is True
        assert info.expires_in == 24 * HOUR_MS - 5 * MINUTE_MS
        assert info.created_at == "2024-01-01T00:00:00.000Z"
        assert info.last_activity == "2024-01-01T00:00:00.000Z"

    def test_future_last_activity_reports_no_session(self, session_manager, long_store):
        session_manager.create_session("u1", "u1@example.com")
        long_store.set("omnimind_last_activity", "999999999999999999")

        assert session_manager.get_session_info() is None

    def test_out_of_range_created_at_reports_no_session(self, session_manager, short_store):
        session = session_manager.create_session("u1", "u1@example.com")
        store_session(short_store, session.model_copy(update={"created_at": 10**18}))

        assert session_manager.get_session_info() is None
        assert short_store.get("omnimind_session") is None


class TestNamespace:
    """Storage keys follow the configured namespace."""

    def test_custom_namespace(self, short_store, long_store, clock):
        from auth.config import AuthConfig

        manager = SessionManager(short_store, long_store, AuthConfig(key_namespace="acme"), clock=clock)
        manager.create_session("u1", "u1@example.com")

        assert short_store.get("acme_session") is not None
        assert long_store.get("acme_device_id") is not None
        assert short_store.get("omnimind_session") is None


class TestActivityThrottle:
    """Activity writes are spaced by the configured interval."""

    @pytest.fixture
    def throttle(self, session_manager, config, clock):
        return ActivityThrottle(session_manager, config, clock=clock)

    def test_first_touch_writes(self, throttle, long_store, clock):
        assert throttle.touch() is True
        assert long_store.get("omnimind_last_activity") == str(clock.now)

    def test_touch_within_interval_is_skipped(self, throttle, long_store, clock):
        throttle.touch()
        first = long_store.get("omnimind_last_activity")
        clock.advance(30 * 1000)

        assert throttle.touch() is False
        assert long_store.get("omnimind_last_activity") == first

    def test_touch_after_interval_writes(self, throttle, long_store, clock):
        throttle.touch()
        clock.advance(30 * 1000 + 1)

        assert throttle.touch() is True
        assert long_store.get("omnimind_last_activity") == str(clock.now)
