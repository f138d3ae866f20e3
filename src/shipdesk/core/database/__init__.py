"""Database layer - session management, base models, and mixins."""

from shipdesk.core.database.base import (
    Base,
    IntegerIDMixin,
    TimestampMixin,
    UUIDMixin,
)
from shipdesk.core.database.session import (
    async_engine,
    async_session_factory,
    get_db,
)


__all__ = [
    "Base",
    "IntegerIDMixin",
    "TimestampMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "get_db",
]
