"""
Database models for the SQL link store.

Only the SQL backend uses these; the Redis and in-memory backends work
directly with the ``ShortLink`` record from ``shortlink_app.store.models``.
"""

from .short_link import ShortLinkRow

__all__ = ["ShortLinkRow"]
