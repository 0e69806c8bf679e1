"""
Repository pattern for data access.
"""

from clubaccess.repositories.base import BaseRepository

__all__ = ["BaseRepository"]
