"""Utility functions."""

from clubaccess.utils.timezone import UTC, utc_now, utc_today, to_utc

__all__ = ["UTC", "utc_now", "utc_today", "to_utc"]
