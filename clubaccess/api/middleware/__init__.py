"""Middleware package."""

from clubaccess.api.middleware.request_id import RequestIdMiddleware, get_request_id
from clubaccess.api.middleware.logging import LoggingMiddleware

__all__ = [
    "RequestIdMiddleware",
    "LoggingMiddleware",
    "get_request_id",
]
