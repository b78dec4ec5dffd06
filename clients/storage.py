"""
Key-value storage port shared by the session, lockout and event components.

Two lifetimes are used:
- short-lived: lives as long as the client process (one browser tab in the
  original client). MemoryStore covers this.
- long-lived: survives restarts. ValkeyClient covers this.

Values are always strings; callers JSON-encode structured payloads.
"""

import json
import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal string key-value store."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete key. Missing keys are not an error."""
        ...


class MemoryStore:
    """
    In-process store backed by a dict.

    Usage:
        store = MemoryStore()
        store.set("key", "value")
        store.get("key")  # "value"
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"MemoryStore values must be str, got {type(value).__name__}")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        """Drop every key (end of the client lifetime)."""
        self._data.clear()
        logger.info("MemoryStore cleared")

    def keys(self) -> list[str]:
        return list(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


def read_json(store: KeyValueStore, key: str):
    """
    Read and deserialize a JSON value.

    Returns None if the key doesn't exist.
    Raises ValueError if the value is not valid JSON.
    """
    value = store.get(key)
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in key '{key}': {e}")


def write_json(store: KeyValueStore, key: str, value: dict | list) -> None:
    """Serialize value as compact JSON and store it under key."""
    store.set(key, json.dumps(value, separators=(",", ":")))
