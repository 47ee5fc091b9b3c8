"""Custom SQLAlchemy types for cross-database compatibility"""
from datetime import datetime, timezone

from sqlalchemy import TypeDecorator, DateTime


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as naive UTC.

    SQLite drops tzinfo on the way out, so values are normalised to UTC
    before binding and tagged as UTC again when loaded. Microseconds survive
    the round-trip on every backend.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            # Naive values are assumed to already be UTC
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
