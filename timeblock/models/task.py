"""Task model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, ForeignKey, JSON, String
from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from pydantic import BaseModel

from timeblock.models.recurrence_rule import RecurrenceRule
from timeblock.models.types import Priority, TaskStatus, UTCDateTime, utc_timestamp


class Reflection(BaseModel):
    """How a completed task felt and what it was worth."""
    mood: Optional[str] = None
    value: Optional[str] = None


class Task(SQLModel, table=True):
    """A single scheduled time block (one occurrence).

    A recurrence head carries ``recurrence_rule``; the occurrences generated
    from it point back through ``parent_id`` and carry no rule of their own.
    Every row is edited independently of its siblings.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    owner_id: str = Field(index=True, max_length=255)
    category_id: str = Field(
        sa_column=Column(String, ForeignKey("category.id", ondelete="CASCADE"), index=True)
    )
    title: str = Field(max_length=200, min_length=1)

    # Planned time (UTC, source of truth for the calendar)
    planned_start: datetime = Field(sa_column=Column(UTCDateTime, nullable=False, index=True))
    planned_end: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))

    # Actual execution time, written only by lifecycle transitions
    actual_start: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    actual_end: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))

    status: TaskStatus = Field(default=TaskStatus.PLANNED)
    priority: Priority = Field(default=Priority.MEDIUM)

    # Materialized recurrence
    parent_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String, ForeignKey("task.id"), nullable=True, index=True)
    )
    recurrence_rule: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    reflection_mood: Optional[str] = Field(default=None, max_length=50)
    reflection_value: Optional[str] = Field(default=None, max_length=500)

    created_at: datetime = Field(default_factory=utc_timestamp, sa_column=Column(UTCDateTime, nullable=False))

    @property
    def rule(self) -> Optional[RecurrenceRule]:
        """Decoded recurrence rule, only present on a recurrence head."""
        if not self.recurrence_rule:
            return None
        return RecurrenceRule.from_blob(self.recurrence_rule)

    @property
    def reflection(self) -> Optional[Reflection]:
        if self.reflection_mood is None and self.reflection_value is None:
            return None
        return Reflection(mood=self.reflection_mood, value=self.reflection_value)

    @property
    def duration(self):
        return self.planned_end - self.planned_start
