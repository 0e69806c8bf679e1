"""
Avatar asset cleanup.
"""

import asyncio
from pathlib import PurePosixPath

import structlog

from clubaccess.core.interfaces.storage import StorageBackend

logger = structlog.get_logger()


class AvatarCleaner:
    """
    Deletes replaced avatar files, best effort.

    Only keys inside the avatar subtree of the storage backend are ever
    touched; anything else is logged and skipped.

    Usage:
        cleaner = AvatarCleaner(LocalStorageBackend("./uploads"), prefix="avatars")
        cleaner.schedule("avatars/old.jpg")  # after the update committed
    """

    def __init__(self, storage: StorageBackend, prefix: str = "avatars"):
        self.storage = storage
        self.prefix = prefix.strip("/")
        self._tasks: set[asyncio.Task] = set()

    def key_for(self, path: str | None) -> str | None:
        """Storage key for a managed avatar path, else None."""
        if not path:
            return None
        candidate = PurePosixPath(path.strip().lstrip("/"))
        parts = candidate.parts
        if ".." in parts or len(parts) < 2 or parts[0] != self.prefix:
            return None
        return str(candidate)

    async def delete(self, path: str) -> bool:
        key = self.key_for(path)
        if key is None:
            logger.warning("Refusing to delete asset outside avatar subtree", path=path)
            return False
        try:
            deleted = await self.storage.delete(key)
        except OSError as e:
            logger.warning("Avatar cleanup failed", key=key, error=str(e))
            return False
        logger.debug("Avatar removed", key=key, deleted=deleted)
        return deleted

    def schedule(self, path: str | None) -> asyncio.Task | None:
        """Fire-and-forget deletion; returns the task (tests await it)."""
        if not path:
            return None
        task = asyncio.create_task(self.delete(path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for scheduled deletions (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
