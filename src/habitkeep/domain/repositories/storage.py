"""Key/value storage protocol."""

from __future__ import annotations

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """Asynchronous get/set-by-key service holding opaque string values."""

    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None when absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...
