"""Task service wiring intake, lifecycle, day layout and insights to the store."""
from sqlmodel import Session
from typing import Any, Callable, Dict, List, Optional
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from timeblock.config import CATEGORY_TOP_N
from timeblock.errors import (
    InvalidInterval,
    InvalidRecurrenceRule,
    InvalidTaskData,
    StateTransitionRejected,
    TaskNotFound,
)
from timeblock.models.category import Category
from timeblock.models.recurrence_rule import RecurrenceRule
from timeblock.models.recurrence_template import RecurrenceTemplate
from timeblock.models.task import Task
from timeblock.models.types import Priority, TaskStatus
from timeblock.schemas.analytics import (
    CategoryTime,
    InsightsMode,
    InsightsReport,
    LayoutSlot,
    MonthlyCount,
    TimeRange,
)
from timeblock.services import analytics, task_lifecycle
from timeblock.services.occurrence_store import OccurrenceStore
from timeblock.services.overlap_layout import day_bounds, layout
from timeblock.services.recurrence_expander import expand
from timeblock.services.recurrence_validator import RecurrenceValidator
from timeblock.services.time_normalizer import InstantInput, month_start, normalize, utc_now
from timeblock.utils.logger import get_logger

logger = get_logger("timeblock.task_service")


class TaskService:
    """Service class for task intake, status changes and reporting."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        self.store = OccurrenceStore(session)
        self.clock = clock

    def _get_owned(self, task_id: str, owner_id: str) -> Task:
        task = self.store.find_by_id(task_id, owner_id)
        if not task:
            raise TaskNotFound(f"Task {task_id} not found", {"task_id": task_id})
        return task

    @staticmethod
    def _validated_interval(start: InstantInput, end: InstantInput):
        start_utc = normalize(start)
        end_utc = normalize(end)
        if start_utc >= end_utc:
            raise InvalidInterval(
                "End time must be after start time.",
                {"start": start_utc.isoformat(), "end": end_utc.isoformat()}
            )
        return start_utc, end_utc

    @staticmethod
    def _decode_rule(rule: Any) -> Optional[RecurrenceRule]:
        if rule is None or isinstance(rule, RecurrenceRule):
            return rule
        validation = RecurrenceValidator.validate_rule(rule)
        if not validation["valid"]:
            raise InvalidRecurrenceRule("Invalid recurrence rule", {"errors": validation["errors"]})
        for warning in validation["warnings"]:
            logger.warning("Recurrence rule warning", warning=warning)
        recurrence = RecurrenceRule.from_blob(rule)
        logger.debug("Decoded recurrence rule", rule=recurrence.to_blob())
        return recurrence

    def create_task(
        self,
        owner_id: str,
        title: str,
        category_id: str,
        start: InstantInput,
        end: InstantInput,
        priority: str = "medium",
        rule: Any = None,
    ) -> Task:
        """
        Create a task, plus its generated occurrences when a rule is given.

        Args:
            owner_id: Owning user
            title: Non-empty title
            category_id: Category reference
            start: Planned start (any input normalize() accepts)
            end: Planned end
            priority: high, medium or low (anything else falls back to medium)
            rule: RecurrenceRule or its blob form

        Returns:
            The recurrence head (or the single task)
        """
        if not title or not title.strip():
            raise InvalidTaskData("Title must not be empty.", {"field": "title"})

        start_utc, end_utc = self._validated_interval(start, end)
        recurrence = self._decode_rule(rule)

        if not RecurrenceValidator.validate_priority(priority)["valid"]:
            priority = "medium"

        base = {
            "owner_id": owner_id,
            "category_id": category_id,
            "title": title.strip(),
            "status": TaskStatus.PLANNED,
            "priority": Priority(priority or "medium"),
        }

        head = Task(
            **base,
            planned_start=start_utc,
            planned_end=end_utc,
            recurrence_rule=recurrence.to_blob() if recurrence else None,
        )
        batch = [head]

        if recurrence:
            duration = end_utc - start_utc
            # Children share everything but the rule
            for child_start in expand(start_utc, recurrence, now=self.clock()):
                batch.append(Task(
                    **base,
                    parent_id=head.id,
                    planned_start=child_start,
                    planned_end=child_start + duration,
                ))

        self.store.insert_occurrences(batch)
        logger.info(
            "Created task",
            task_id=head.id,
            owner_id=owner_id,
            generated=len(batch) - 1,
        )
        return head

    def update_task(
        self,
        task_id: str,
        owner_id: str,
        title: Optional[str] = None,
        category_id: Optional[str] = None,
        start: Optional[InstantInput] = None,
        end: Optional[InstantInput] = None,
    ) -> Task:
        """Edit one occurrence only; siblings in its series are untouched."""
        self._get_owned(task_id, owner_id)

        fields: Dict[str, Any] = {}
        if title is not None:
            if not title.strip():
                raise InvalidTaskData("Title must not be empty.", {"field": "title"})
            fields["title"] = title.strip()
        if category_id is not None:
            fields["category_id"] = category_id
        if (start is None) != (end is None):
            raise InvalidInterval("Start and end must be changed together.", {"task_id": task_id})
        if start is not None:
            fields["planned_start"], fields["planned_end"] = self._validated_interval(start, end)

        if not fields:
            return self._get_owned(task_id, owner_id)
        return self.store.update_occurrence_fields(task_id, fields)

    def mark_status(self, task_id: str, owner_id: str, status: TaskStatus) -> Task:
        """Apply a lifecycle transition and record actual times."""
        task = self._get_owned(task_id, owner_id)
        task_logger = logger.bind(owner_id=owner_id, task_id=task_id)
        try:
            fields = task_lifecycle.transition(task, TaskStatus(status), self.clock())
        except StateTransitionRejected as e:
            task_logger.error("Status change rejected", **e.details)
            raise
        updated = self.store.update_occurrence_fields(task_id, fields)
        task_logger.info("Task status changed", status=TaskStatus(updated.status).value)
        return updated

    def start_task(self, task_id: str, owner_id: str) -> Task:
        return self.mark_status(task_id, owner_id, TaskStatus.ACTIVE)

    def update_reflection(self, task_id: str, owner_id: str, mood: Optional[str], value: Optional[str]) -> Task:
        task = self._get_owned(task_id, owner_id)
        fields = task_lifecycle.set_reflection(task, mood, value)
        return self.store.update_occurrence_fields(task_id, fields)

    def get_tasks(self, owner_id: str, start: InstantInput, end: InstantInput) -> List[Task]:
        return self.store.find_occurrences(owner_id, normalize(start), normalize(end))

    def get_day_layout(self, owner_id: str, view_day: date, tz: str = "UTC") -> List[LayoutSlot]:
        """Tasks of one display day with their rendering columns."""
        day_start, day_end = day_bounds(view_day, tz)
        tasks = self.store.find_occurrences(owner_id, day_start, day_end)
        return layout(tasks, view_day, tz)

    def get_tasks_for_month(self, owner_id: str, year: int, month: int) -> List[Task]:
        """Completed tasks of a calendar month, for the month view."""
        return self.store.find_completed_in_month(owner_id, year, month)

    def get_insights(self, owner_id: str, mode: InsightsMode = InsightsMode.MONTH,
                     top_n: Optional[int] = CATEGORY_TOP_N) -> InsightsReport:
        """Insights report for one mode with a single reference instant."""
        mode = InsightsMode(mode)
        reference_now = self.clock()

        floor = None
        if mode == InsightsMode.ALL_TIME:
            earliest = self.store.find_earliest_occurrence(owner_id)
            floor = earliest.planned_start if earliest else None

        window_start, volume_end = analytics.resolve_window(mode, reference_now, [], floor)
        # Month mode also needs the daily series of the current month
        fetch_start = min(window_start, month_start(reference_now))
        # Store ranges are half-open; a task starting exactly at reference_now still counts
        fetch_end = max(volume_end, reference_now + timedelta(microseconds=1))
        history = self.store.find_occurrences(owner_id, fetch_start, fetch_end)

        report = analytics.compute(
            history,
            mode,
            reference_now,
            categories=self.store.categories_by_id(owner_id),
            floor=floor,
            top_n=top_n,
        )
        logger.info("Computed insights", owner_id=owner_id, mode=mode.value, tasks=len(history))
        return report

    def get_time_by_category(self, owner_id: str, range_: TimeRange = TimeRange.WEEK) -> List[CategoryTime]:
        reference_now = self.clock()
        start, end = analytics.range_bounds(range_, reference_now)
        history = self.store.find_occurrences(owner_id, start, end)
        return analytics.time_by_category(
            history, range_, reference_now, self.store.categories_by_id(owner_id)
        )

    def get_monthly_task_counts(self, owner_id: str, months: int = 12) -> List[MonthlyCount]:
        reference_now = self.clock()
        start = month_start(reference_now) - relativedelta(months=months)
        history = self.store.find_occurrences(owner_id, start, reference_now)
        return analytics.monthly_completion_counts(history, reference_now, months=months)

    # Categories and templates

    def create_category(self, owner_id: str, name: str, color: str) -> Category:
        return self.store.add_category(Category(owner_id=owner_id, name=name, color=color))

    def get_categories(self, owner_id: str) -> List[Category]:
        return self.store.list_categories(owner_id)

    def create_recurrence_template(self, owner_id: str, name: str, rule: Any) -> RecurrenceTemplate:
        recurrence = self._decode_rule(rule)
        if recurrence is None:
            raise InvalidRecurrenceRule("A template needs a recurrence rule", {"field": "rule"})
        return self.store.add_template(
            RecurrenceTemplate(owner_id=owner_id, name=name, rule=recurrence.to_blob())
        )

    def get_recurrence_templates(self, owner_id: str) -> List[RecurrenceTemplate]:
        return self.store.list_templates(owner_id)
