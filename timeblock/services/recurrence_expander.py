"""
Recurrence expansion.

Turns a recurrence rule plus the head occurrence's start into the concrete
start instants of the generated occurrences. The output is a finite list
because every instance is persisted as its own row; the materialization
horizon bounds rules without an end date.
"""

from datetime import datetime, time, timedelta
from typing import Iterator, List, Optional
import logging

import pytz

from timeblock.config import MATERIALIZATION_HORIZON_DAYS
from timeblock.models.recurrence_rule import RecurrenceRule
from timeblock.models.types import Frequency
from timeblock.services.time_normalizer import utc_now

logger = logging.getLogger(__name__)

DEFAULT_HORIZON = timedelta(days=MATERIALIZATION_HORIZON_DAYS)


def effective_end(rule: RecurrenceRule, horizon_cap: timedelta, now: datetime) -> datetime:
    """Earlier of the rule's end date (inclusive, whole day) and now + horizon."""
    horizon_end = now + horizon_cap
    if rule.end_date is None:
        return horizon_end
    rule_end = pytz.UTC.localize(datetime.combine(rule.end_date, time.max))
    return min(rule_end, horizon_end)


def _sunday_index(instant: datetime) -> int:
    # datetime.weekday() is Monday=0; rules use Sunday=0
    return (instant.weekday() + 1) % 7


def _step(days: int) -> timedelta:
    # Larger than any representable span: nothing after the first step fits
    try:
        return timedelta(days=days)
    except OverflowError:
        return timedelta.max


def _iter_weeks(anchor_start: datetime, interval: int, end: datetime) -> Iterator[datetime]:
    """Sunday of each eligible week at the anchor's time of day, stepping ``interval`` weeks."""
    cursor = anchor_start - timedelta(days=_sunday_index(anchor_start))
    step = _step(7 * interval)
    while cursor <= end:
        yield cursor
        # Checked before adding so huge intervals never leave the datetime range
        if end - cursor < step:
            return
        cursor += step


def _iter_fixed_steps(anchor_start: datetime, step: timedelta, end: datetime) -> Iterator[datetime]:
    cursor = anchor_start
    while end - cursor >= step:
        cursor += step
        yield cursor


def expand(
    anchor_start: datetime,
    rule: RecurrenceRule,
    horizon_cap: timedelta = DEFAULT_HORIZON,
    now: Optional[datetime] = None,
) -> List[datetime]:
    """
    Expand a rule into the start instants that follow ``anchor_start``.

    The anchor itself is never returned. Every instant keeps the anchor's
    time of day (in UTC).

    Args:
        anchor_start: UTC start of the recurrence head
        rule: Recurrence rule (interval already coerced to >= 1)
        horizon_cap: How far past ``now`` anything is ever generated
        now: Reference instant for the horizon, read once if omitted

    Returns:
        Ascending list of UTC start instants
    """
    if now is None:
        now = utc_now()
    end = effective_end(rule, horizon_cap, now)

    if rule.frequency == Frequency.WEEKLY and rule.days_of_week:
        starts = []
        for week_start in _iter_weeks(anchor_start, rule.interval, end):
            for day in rule.days_of_week:
                candidate = week_start + timedelta(days=day)
                if candidate <= anchor_start:
                    continue
                if candidate > end:
                    break
                starts.append(candidate)
    else:
        if rule.frequency == Frequency.DAILY:
            step = _step(rule.interval)
        else:
            step = _step(7 * rule.interval)
        starts = list(_iter_fixed_steps(anchor_start, step, end))

    logger.debug(
        f"Expanded {rule.frequency.value} rule (interval={rule.interval}) "
        f"from {anchor_start.isoformat()} to {len(starts)} instances until {end.isoformat()}"
    )
    return starts
