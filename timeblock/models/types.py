"""Column types and enums shared by the table models."""
from datetime import datetime
from enum import Enum

import pytz
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from timeblock.services.time_normalizer import as_utc


class UTCDateTime(TypeDecorator):
    """DateTime column that always stores UTC and always returns aware UTC values.

    SQLite drops tzinfo on the way back, so values are re-tagged on load.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else as_utc(value)

    def process_result_value(self, value, dialect):
        return None if value is None else as_utc(value)


class TaskStatus(str, Enum):
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


def utc_timestamp() -> datetime:
    """Default factory for created_at columns."""
    return datetime.now(pytz.UTC)
