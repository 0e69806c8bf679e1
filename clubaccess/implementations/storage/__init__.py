"""
Storage backend implementations.
"""

from .local import LocalStorageBackend

__all__ = ["LocalStorageBackend"]
