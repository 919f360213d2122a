"""
Overlap layout for the day view.

Interval partitioning rather than interval-graph colouring: tasks whose
planned intervals form a connected overlap chain share one group, and every
member of a group of k gets an equal 1/k column. A task that only touches
the start of a long chain still takes a full slot.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Tuple
import logging

import pytz

from timeblock.errors import InvalidInterval, InvalidTimestamp
from timeblock.models.task import Task
from timeblock.schemas.analytics import LayoutSlot

logger = logging.getLogger(__name__)


def day_bounds(view_day: date, tz: str = "UTC") -> Tuple[datetime, datetime]:
    """UTC instants of midnight at the start of ``view_day`` and of the next day, in ``tz``."""
    try:
        zone = pytz.timezone(tz)
    except pytz.UnknownTimeZoneError:
        raise InvalidTimestamp(f"Unknown time zone: {tz}", {"tz": tz})
    start = zone.localize(datetime(view_day.year, view_day.month, view_day.day))
    following = view_day + timedelta(days=1)
    end = zone.localize(datetime(following.year, following.month, following.day))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)


def _group_overlaps(tasks: List[Task]) -> List[List[Task]]:
    """Split start-sorted tasks into maximal overlap chains."""
    groups: List[List[Task]] = []
    current: List[Task] = []
    group_end = None

    for task in tasks:
        if current and task.planned_start < group_end:
            current.append(task)
            group_end = max(group_end, task.planned_end)
        else:
            if current:
                groups.append(current)
            current = [task]
            group_end = task.planned_end

    if current:
        groups.append(current)
    return groups


def layout(tasks: Iterable[Task], view_day: date, tz: str = "UTC") -> List[LayoutSlot]:
    """
    Assign a column index and column count to every task shown on ``view_day``.

    Args:
        tasks: Tasks fetched for the day (not modified)
        view_day: Calendar date being rendered
        tz: Zone the day is rendered in

    Returns:
        One LayoutSlot per task intersecting the day, in start order

    Raises:
        InvalidInterval: a task with planned_end <= planned_start
    """
    day_start, day_end = day_bounds(view_day, tz)

    visible = []
    for task in tasks:
        if task.planned_start >= task.planned_end:
            raise InvalidInterval(
                "Planned end must be after planned start",
                {"task_id": task.id}
            )
        if task.planned_start < day_end and task.planned_end > day_start:
            visible.append(task)
        else:
            logger.debug(f"Task {task.id} does not intersect {view_day.isoformat()}, skipped")

    # Full key so equal starts still lay out the same regardless of input order
    visible.sort(key=lambda t: (t.planned_start, t.planned_end, str(t.id)))

    slots = []
    for group in _group_overlaps(visible):
        count = len(group)
        for index, task in enumerate(group):
            slots.append(LayoutSlot(
                task=task,
                column_index=index,
                column_count=count,
                visible_start=max(task.planned_start, day_start),
                visible_end=min(task.planned_end, day_end),
            ))
    return slots
