"""
Insights aggregation over a user's task history.

Past/future partition: a task counts as "occurred" only when its planned
start is at or before ``reference_now``. Completion-rate denominators and the
trend and focus series only ever see past tasks. Category volume in Month mode
also counts tasks already scheduled later in the month, which reflects intent
rather than history; Year and All-time volume stays past-only.

``reference_now`` is supplied once per call and reused for every window and
bucket decision.
"""

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
import logging

import pytz
from dateutil.relativedelta import relativedelta

from timeblock.config import CATEGORY_TOP_N, EXPORT_MIN_COMPLETED
from timeblock.models.category import Category
from timeblock.models.task import Task
from timeblock.models.types import TaskStatus
from timeblock.schemas.analytics import (
    CategoryPerformance,
    CategoryTime,
    FocusSlice,
    InsightsMode,
    InsightsReport,
    MonthlyCount,
    TimeRange,
    TrendPoint,
)
from timeblock.services.time_normalizer import month_end, month_start

logger = logging.getLogger(__name__)

CategoryMap = Mapping[str, Category]

FALLBACK_OBSERVATION = "Log more tasks to see behavioral patterns."
MAX_OBSERVATIONS = 2


def percent(part: int, whole: int) -> int:
    """Half-up rounded percentage, 0 for an empty denominator."""
    if whole == 0:
        return 0
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.to_integral_value(rounding=ROUND_HALF_UP))


def _day_start(instant: datetime) -> datetime:
    return instant.astimezone(pytz.UTC).replace(hour=0, minute=0, second=0, microsecond=0)


def _is_completed(task: Task) -> bool:
    return TaskStatus(task.status) == TaskStatus.COMPLETED


def _describe(category_id: str, categories: Optional[CategoryMap]) -> Tuple[Optional[str], Optional[str]]:
    category = categories.get(category_id) if categories else None
    if category is None:
        return None, None
    return category.name, category.color


def resolve_window(
    mode: InsightsMode,
    reference_now: datetime,
    history: List[Task],
    floor: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Window start and the end used for category volume.

    Args:
        mode: Month, Year or All-time
        reference_now: Instant separating past from future
        history: Tasks considered (only used to find an All-time floor)
        floor: Earliest known planned start for All-time mode

    Returns:
        (window_start, volume_end)
    """
    mode = InsightsMode(mode)
    if mode == InsightsMode.MONTH:
        return month_start(reference_now), month_end(reference_now)
    if mode == InsightsMode.YEAR:
        start = month_start(reference_now).replace(month=1)
        return start, reference_now

    if floor is None and history:
        floor = min(t.planned_start for t in history)
    if floor is None or floor > reference_now:
        floor = reference_now
    return month_start(floor), reference_now


def build_trend(
    history: Iterable[Task],
    mode: InsightsMode,
    window_start: datetime,
    reference_now: datetime,
) -> List[TrendPoint]:
    """Zero-filled assigned/completed series, daily for Month mode and monthly otherwise."""
    mode = InsightsMode(mode)
    buckets: Dict[str, TrendPoint] = {}

    if mode == InsightsMode.MONTH:
        key_format = "%Y-%m-%d"
        cursor = _day_start(window_start)
        while cursor <= reference_now:
            key = cursor.strftime(key_format)
            buckets[key] = TrendPoint(label=cursor.strftime("%b %d"), key=key)
            cursor += timedelta(days=1)
    else:
        key_format = "%Y-%m"
        label_format = "%b" if mode == InsightsMode.YEAR else "%b %y"
        cursor = month_start(window_start)
        while cursor <= reference_now:
            key = cursor.strftime(key_format)
            buckets[key] = TrendPoint(label=cursor.strftime(label_format), key=key)
            cursor += relativedelta(months=1)

    for task in history:
        if not window_start <= task.planned_start <= reference_now:
            continue
        point = buckets.get(task.planned_start.astimezone(pytz.UTC).strftime(key_format))
        if point is None:
            continue
        point.assigned += 1
        if _is_completed(task):
            point.completed += 1

    return list(buckets.values())


def category_performance(
    history: Iterable[Task],
    window_start: datetime,
    volume_end: datetime,
    reference_now: datetime,
    categories: Optional[CategoryMap] = None,
    top_n: Optional[int] = CATEGORY_TOP_N,
) -> List[CategoryPerformance]:
    """Per-category volume and past-only completion, largest volume first."""
    by_category: Dict[str, CategoryPerformance] = {}

    for task in history:
        if not window_start <= task.planned_start <= volume_end:
            continue
        entry = by_category.get(task.category_id)
        if entry is None:
            name, color = _describe(task.category_id, categories)
            entry = CategoryPerformance(category_id=task.category_id, name=name, color=color)
            by_category[task.category_id] = entry
        entry.total_assigned += 1
        if task.planned_start <= reference_now:
            entry.past_assigned += 1
            if _is_completed(task):
                entry.completed += 1

    for entry in by_category.values():
        entry.completion_rate = percent(entry.completed, entry.past_assigned)

    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(by_category.values(), key=lambda e: e.total_assigned, reverse=True)
    return ranked if top_n is None else ranked[:top_n]


def focus_balance(
    history: Iterable[Task],
    window_start: datetime,
    reference_now: datetime,
    categories: Optional[CategoryMap] = None,
) -> List[FocusSlice]:
    """Share of completed tasks per category within the past part of the window."""
    counts: Dict[str, int] = {}
    for task in history:
        if _is_completed(task) and window_start <= task.planned_start <= reference_now:
            counts[task.category_id] = counts.get(task.category_id, 0) + 1

    total = sum(counts.values())
    slices = []
    for category_id, value in counts.items():
        name, color = _describe(category_id, categories)
        slices.append(FocusSlice(
            category_id=category_id,
            name=name,
            color=color,
            value=value,
            percentage=percent(value, total),
        ))
    return sorted(slices, key=lambda s: s.value, reverse=True)


def consistency_score(trend: List[TrendPoint]) -> int:
    """Overall completion percentage across a trend series."""
    assigned = sum(p.assigned for p in trend)
    completed = sum(p.completed for p in trend)
    return percent(completed, assigned)


def observations(trend: List[TrendPoint], performance: List[CategoryPerformance]) -> List[str]:
    """
    Short rule-based flags derived from the last week and the category mix.

    Args:
        trend: Daily trend series (only the last 7 points are inspected)
        performance: Ranked category performance, top category first

    Returns:
        At most two observations
    """
    found: List[str] = []

    last7 = trend[-7:]
    assigned7 = sum(p.assigned for p in last7)
    completed7 = sum(p.completed for p in last7)
    rate7 = completed7 / assigned7 if assigned7 > 0 else 0

    if assigned7 > 20 and rate7 < 0.6:
        found.append("Ambitious planning. You're assigning more than you typically complete.")
    elif rate7 > 0.9 and assigned7 > 10:
        found.append("Sustainable pace. You're reliably clearing your daily board.")

    if performance:
        top = performance[0]
        total = sum(p.total_assigned for p in performance)
        if top.total_assigned > total * 0.5:
            found.append(
                f"{top.name or top.category_id} is dominating your schedule "
                f"({percent(top.total_assigned, total)}% of tasks)."
            )

        struggler = next(
            (p for p in performance
             if p.total_assigned > 5 and p.past_assigned > 0 and p.completion_rate < 50),
            None
        )
        if struggler:
            found.append(f"High intent on {struggler.name or struggler.category_id}, but execution is lagging.")

    if not found:
        found.append(FALLBACK_OBSERVATION)

    return found[:MAX_OBSERVATIONS]


def compute(
    history: Iterable[Task],
    mode: InsightsMode,
    reference_now: datetime,
    categories: Optional[CategoryMap] = None,
    floor: Optional[datetime] = None,
    top_n: Optional[int] = CATEGORY_TOP_N,
) -> InsightsReport:
    """
    Build the full insights report for one reporting mode.

    Args:
        history: Tasks of one user (any range; filtered here)
        mode: Month, Year or All-time
        reference_now: Instant separating past from future, read once by the caller
        categories: Category lookup used to name and colour entries
        floor: Earliest planned start known for the user (All-time mode)
        top_n: How many categories to keep in category_performance

    Returns:
        InsightsReport
    """
    mode = InsightsMode(mode)
    reference_now = reference_now.astimezone(pytz.UTC)
    history = list(history)

    window_start, volume_end = resolve_window(mode, reference_now, history, floor)

    trend = build_trend(history, mode, window_start, reference_now)
    if mode == InsightsMode.MONTH:
        daily_trend = trend
    else:
        daily_trend = build_trend(history, InsightsMode.MONTH, month_start(reference_now), reference_now)

    performance = category_performance(
        history, window_start, volume_end, reference_now, categories, top_n
    )
    focus = focus_balance(history, window_start, reference_now, categories)

    logger.debug(
        f"Insights ({mode.value}) over {len(history)} tasks: "
        f"{len(trend)} buckets, {len(performance)} categories, {len(focus)} focus slices"
    )

    return InsightsReport(
        mode=mode,
        reference_now=reference_now,
        window_start=window_start,
        window_end=volume_end,
        trend=trend,
        category_performance=performance,
        focus_balance=focus,
        consistency_score=consistency_score(daily_trend),
        observations=observations(daily_trend, performance),
    )


def range_bounds(range_: TimeRange, reference_now: datetime, week_starts_on: int = 0) -> Tuple[datetime, datetime]:
    """Current week (0=Sunday start) or month around ``reference_now``."""
    if TimeRange(range_) == TimeRange.MONTH:
        return month_start(reference_now), month_end(reference_now)
    today = _day_start(reference_now)
    offset = (today.weekday() + 1 - week_starts_on) % 7
    start = today - timedelta(days=offset)
    return start, start + timedelta(days=7) - timedelta(microseconds=1)


def time_by_category(
    history: Iterable[Task],
    range_: TimeRange,
    reference_now: datetime,
    categories: Optional[CategoryMap] = None,
    week_starts_on: int = 0,
) -> List[CategoryTime]:
    """Minutes of actual execution per category for completed tasks planned inside the range."""
    start, end = range_bounds(range_, reference_now, week_starts_on)
    minutes: Dict[str, int] = {}

    for task in history:
        if not _is_completed(task):
            continue
        if task.planned_start < start or task.planned_end > end:
            continue
        if task.actual_start is None or task.actual_end is None:
            continue
        # Completing early after a planned-start backfill can give a negative span
        spent = max(0, int((task.actual_end - task.actual_start).total_seconds() / 60))
        minutes[task.category_id] = minutes.get(task.category_id, 0) + spent

    result = []
    for category_id, value in minutes.items():
        name, color = _describe(category_id, categories)
        result.append(CategoryTime(category_id=category_id, name=name, color=color, minutes=value))
    return sorted(result, key=lambda c: c.minutes, reverse=True)


def monthly_completion_counts(
    history: Iterable[Task],
    reference_now: datetime,
    months: int = 12,
    threshold: int = EXPORT_MIN_COMPLETED,
) -> List[MonthlyCount]:
    """Completed tasks per month over the last ``months`` months, newest first.

    ``eligible`` gates the monthly report export.
    """
    start = month_start(reference_now) - relativedelta(months=months)
    counts: Dict[str, int] = {}

    for task in history:
        if not _is_completed(task):
            continue
        if not start <= task.planned_start <= reference_now:
            continue
        key = task.planned_start.astimezone(pytz.UTC).strftime("%Y-%m")
        counts[key] = counts.get(key, 0) + 1

    return [
        MonthlyCount(month=key, count=counts[key], eligible=counts[key] >= threshold)
        for key in sorted(counts, reverse=True)
    ]
