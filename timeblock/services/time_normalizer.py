"""Time normalization onto a single absolute (UTC) timeline."""
from datetime import date, datetime, timedelta
from typing import Optional, Union
import logging

import pytz
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from timeblock.config import DEFAULT_TIMEZONE
from timeblock.errors import InvalidTimestamp

logger = logging.getLogger(__name__)

InstantInput = Union[datetime, date, str, int, float]


def utc_now() -> datetime:
    """The only place the engine reads the wall clock."""
    return datetime.now(pytz.UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from storage, convert aware ones."""
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def month_start(instant: datetime) -> datetime:
    return instant.astimezone(pytz.UTC).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def month_end(instant: datetime) -> datetime:
    """Last microsecond of the UTC calendar month containing ``instant``."""
    return month_start(instant) + relativedelta(months=1) - timedelta(microseconds=1)


def _zone(name: str):
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise InvalidTimestamp(f"Unknown time zone: {name}", {"tz": name})


def _localize(naive: datetime, zone) -> datetime:
    """Interpret a naive wall-clock time in ``zone``; DST folds and gaps are rejected."""
    try:
        return zone.localize(naive, is_dst=None).astimezone(pytz.UTC)
    except pytz.AmbiguousTimeError:
        raise InvalidTimestamp(
            f"Ambiguous wall-clock time {naive.isoformat()} in {zone.zone}",
            {"value": naive.isoformat(), "tz": zone.zone},
        )
    except pytz.NonExistentTimeError:
        raise InvalidTimestamp(
            f"Nonexistent wall-clock time {naive.isoformat()} in {zone.zone}",
            {"value": naive.isoformat(), "tz": zone.zone},
        )


def normalize(instant: InstantInput, default_tz: Optional[str] = None) -> datetime:
    """
    Convert any supported representation of time into an aware UTC datetime.

    Args:
        instant: aware/naive datetime, date, ISO-8601 string or epoch seconds
        default_tz: zone for input without an offset (DEFAULT_TIMEZONE if None)

    Returns:
        UTC-aware datetime

    Raises:
        InvalidTimestamp: unparsable, unsupported or ambiguous input
    """
    zone = _zone(default_tz or DEFAULT_TIMEZONE)

    # bool is an int subclass and never a timestamp
    if isinstance(instant, bool) or instant is None:
        raise InvalidTimestamp(f"Unsupported timestamp value: {instant!r}", {"value": repr(instant)})

    if isinstance(instant, datetime):
        if instant.tzinfo is None:
            return _localize(instant, zone)
        return instant.astimezone(pytz.UTC)

    if isinstance(instant, date):
        return _localize(datetime(instant.year, instant.month, instant.day), zone)

    if isinstance(instant, (int, float)):
        try:
            return datetime.fromtimestamp(instant, pytz.UTC)
        except (OverflowError, OSError, ValueError):
            raise InvalidTimestamp(f"Epoch value out of range: {instant}", {"value": instant})

    if isinstance(instant, str):
        text = instant.strip()
        if not text:
            raise InvalidTimestamp("Empty timestamp string", {"value": instant})
        try:
            parsed = date_parser.isoparse(text)
        except (ValueError, OverflowError):
            logger.debug(f"Rejected timestamp string: {instant!r}")
            raise InvalidTimestamp(f"Unparsable timestamp: {instant}", {"value": instant})
        if parsed.tzinfo is None:
            return _localize(parsed, zone)
        return parsed.astimezone(pytz.UTC)

    raise InvalidTimestamp(
        f"Unsupported timestamp type: {type(instant).__name__}",
        {"type": type(instant).__name__},
    )
