"""Abstract base class for cache service providers.

Defines the contract for the key-value cache that sits in front of every
gallery read query.  Values are pre-serialized text blobs (JSON produced by
the query service); deserialization is the caller's responsibility.
Implementations may use an in-memory dict, Redis, or any other store with
per-key expiry and glob-pattern deletion.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ICacheProvider(ABC):
    """Contract for key-value cache services.

    All operations are async to allow for network-backed stores (e.g. Redis)
    without blocking the event loop.  Backend failures are raised as
    :class:`~wallpaperverse.utils.errors.CacheError`.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Retrieve the value stored under *key*.

        Returns
        -------
        str or None
            The cached text if present and not expired; ``None`` otherwise.
        """

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store *value* under *key* with an optional time-to-live.

        Parameters
        ----------
        key:
            The cache key.
        value:
            Serialized text to store.
        ttl:
            Time-to-live in seconds.  ``None`` uses the provider default.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the entry stored under *key*.  No-op if absent."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present in the cache and not expired."""

    @abstractmethod
    async def clear_pattern(self, pattern: str) -> int:
        """Delete every key matching the glob *pattern*.

        Parameters
        ----------
        pattern:
            Shell-style wildcard pattern, e.g. ``"trending_wallpapers_*"``.

        Returns
        -------
        int
            Number of keys removed.
        """

    @abstractmethod
    async def cleanup(self) -> int:
        """Purge expired or orphaned entries.  Returns the number removed."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return ``True`` if the backend is reachable."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
