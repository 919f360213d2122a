"""Recurrence Template model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import Any, Dict
import uuid

from timeblock.models.recurrence_rule import RecurrenceRule
from timeblock.models.types import UTCDateTime, utc_timestamp


class RecurrenceTemplate(SQLModel, table=True):
    """A named, reusable recurrence rule saved independently of any task."""

    __tablename__ = "recurrence_template"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    owner_id: str = Field(index=True, max_length=255)
    name: str = Field(max_length=100, min_length=1)  # e.g. "Gym routine w/ rest"
    rule: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utc_timestamp, sa_column=Column(UTCDateTime, nullable=False))

    @property
    def recurrence(self) -> RecurrenceRule:
        return RecurrenceRule.from_blob(self.rule)
