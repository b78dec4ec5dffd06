"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, now_ms, from_ms, ms_to_iso
