"""Occurrence store backed by SQLModel."""
from sqlmodel import Session, select
from typing import Any, Dict, List, Optional
from datetime import datetime

import pytz

from timeblock.errors import TaskNotFound
from timeblock.models.category import Category
from timeblock.models.recurrence_template import RecurrenceTemplate
from timeblock.models.task import Task
from timeblock.models.types import TaskStatus
from timeblock.services.time_normalizer import month_end, month_start
from timeblock.services.task_lifecycle import apply_fields


class OccurrenceStore:
    """Narrow persistence contract used by the scheduling core."""

    def __init__(self, session: Session):
        self.session = session

    def insert_occurrences(self, tasks: List[Task]) -> List[str]:
        """Insert tasks in one commit and return their ids in input order."""
        for task in tasks:
            self.session.add(task)
        self.session.commit()
        for task in tasks:
            self.session.refresh(task)
        return [task.id for task in tasks]

    def find_occurrences(self, owner_id: str, start: datetime, end: datetime) -> List[Task]:
        """Tasks whose planned interval overlaps [start, end)."""
        statement = (
            select(Task)
            .where(Task.owner_id == owner_id)
            # Overlap: task starts before range end and ends after range start
            .where(Task.planned_start < end)
            .where(Task.planned_end > start)
            .order_by(Task.planned_start.asc())
        )
        return list(self.session.exec(statement).all())

    def find_by_id(self, task_id: str, owner_id: Optional[str] = None) -> Optional[Task]:
        """Get a task by id, optionally ensuring ownership."""
        statement = select(Task).where(Task.id == task_id)
        if owner_id is not None:
            statement = statement.where(Task.owner_id == owner_id)
        return self.session.exec(statement).first()

    def update_occurrence_fields(self, task_id: str, fields: Dict[str, Any]) -> Task:
        """Write a partial field set onto one task."""
        task = self.find_by_id(task_id)
        if not task:
            raise TaskNotFound(f"Task {task_id} not found", {"task_id": task_id})

        apply_fields(task, fields)
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def find_earliest_occurrence(self, owner_id: str) -> Optional[Task]:
        statement = (
            select(Task)
            .where(Task.owner_id == owner_id)
            .order_by(Task.planned_start.asc())
            .limit(1)
        )
        return self.session.exec(statement).first()

    def find_completed_in_month(self, owner_id: str, year: int, month: int) -> List[Task]:
        """Completed tasks planned to start inside the given calendar month (UTC)."""
        anchor = month_start(pytz.UTC.localize(datetime(year, month, 1)))
        statement = (
            select(Task)
            .where(Task.owner_id == owner_id)
            .where(Task.planned_start >= anchor)
            .where(Task.planned_start <= month_end(anchor))
            .where(Task.status == TaskStatus.COMPLETED)
            .order_by(Task.planned_start.asc())
        )
        return list(self.session.exec(statement).all())

    # Categories

    def add_category(self, category: Category) -> Category:
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def list_categories(self, owner_id: str) -> List[Category]:
        statement = select(Category).where(Category.owner_id == owner_id)
        return list(self.session.exec(statement).all())

    def categories_by_id(self, owner_id: str) -> Dict[str, Category]:
        return {c.id: c for c in self.list_categories(owner_id)}

    # Recurrence templates

    def add_template(self, template: RecurrenceTemplate) -> RecurrenceTemplate:
        self.session.add(template)
        self.session.commit()
        self.session.refresh(template)
        return template

    def list_templates(self, owner_id: str) -> List[RecurrenceTemplate]:
        statement = (
            select(RecurrenceTemplate)
            .where(RecurrenceTemplate.owner_id == owner_id)
            .order_by(RecurrenceTemplate.created_at.asc())
        )
        return list(self.session.exec(statement).all())
