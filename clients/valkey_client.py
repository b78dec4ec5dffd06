"""
Valkey (Redis-compatible) client used as the long-lived key-value store.

Simple wrapper around redis-py. Connection URL from the environment.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Redis-compatible client for Valkey implementing the KeyValueStore port.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0", key_prefix="tenant-a:")
        client.set("key", "value")
        value = client.get("key")  # Returns None if missing
    """

    def __init__(self, url: str, key_prefix: str = ""):
        """
        Initialize Valkey connection.

        Args:
            url: Redis-compatible connection URL (e.g., redis://localhost:6379/0)
            key_prefix: Prepended to every key, to share one database between
                several independent clients.

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._prefix = key_prefix
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def ping(self) -> bool:
        """
        Health check.

        Returns True if Valkey responds.
        Raises redis.ConnectionError if unreachable.
        """
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        """
        Get value by key.

        Returns None if key doesn't exist (not an error).
        Raises on connection failure.
        """
        return self._client.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        """Set key to value. No expiry; staleness is judged by the components."""
        self._client.set(self._key(key), value)

    def remove(self, key: str) -> None:
        """Delete key. Safe to call for a missing key."""
        self._client.delete(self._key(key))

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
