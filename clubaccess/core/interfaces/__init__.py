"""
Protocols for pluggable backends.
"""

from .storage import StorageBackend

__all__ = ["StorageBackend"]
