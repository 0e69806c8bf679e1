"""
Storage backend protocol.
Implementations: LocalStorageBackend
"""
from __future__ import annotations

from typing import Protocol


class StorageBackend(Protocol):
    """
    Protocol for file storage backends holding user assets (avatars).
    """

    async def upload(self, key: str, data: bytes) -> str:
        """Store bytes under key; returns the key."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete a file. Returns True if deleted, False if not found."""
        ...

    async def exists(self, key: str) -> bool:
        """Check if file exists."""
        ...
