"""
Local filesystem storage backend implementation.
"""

from __future__ import annotations

import aiofiles
import aiofiles.os
from pathlib import Path


class LocalStorageBackend:
    """
    Local filesystem storage backend.

    Usage:
        storage = LocalStorageBackend(base_path="./uploads")

        await storage.upload("avatars/123.jpg", image_bytes)
        exists = await storage.exists("avatars/123.jpg")
        await storage.delete("avatars/123.jpg")
    """

    def __init__(self, base_path: str = "./uploads"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _full_path(self, key: str) -> Path:
        """Get full filesystem path for key."""
        # Prevent path traversal attacks
        safe_key = key.lstrip("/").replace("..", "")
        return self.base_path / safe_key

    async def upload(self, key: str, data: bytes) -> str:
        """Write a file, creating parent directories."""
        full_path = self._full_path(key)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(full_path, "wb") as f:
            await f.write(data)
        return key

    async def delete(self, key: str) -> bool:
        """Delete a file."""
        full_path = self._full_path(key)
        if not full_path.exists():
            return False
        await aiofiles.os.remove(full_path)
        return True

    async def exists(self, key: str) -> bool:
        """Check if file exists."""
        return self._full_path(key).exists()
