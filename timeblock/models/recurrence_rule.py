"""Recurrence rule value object, persisted as a JSON blob."""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from timeblock.errors import InvalidRecurrenceRule
from timeblock.models.types import Frequency


class RecurrenceRule(BaseModel):
    """How an occurrence repeats.

    ``days_of_week`` uses 0=Sunday..6=Saturday and only matters for weekly
    rules. ``end_date`` is inclusive: the whole day counts.
    """

    model_config = ConfigDict(frozen=True)

    frequency: Frequency
    interval: int = 1
    days_of_week: List[int] = Field(default_factory=list)
    end_date: Optional[date] = None

    @field_validator("interval", mode="before")
    @classmethod
    def coerce_interval(cls, value: Any) -> int:
        if value is None:
            return 1
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"interval must be an integer, got {value!r}")
        return value if value >= 1 else 1

    @field_validator("days_of_week", mode="before")
    @classmethod
    def normalize_days(cls, value: Any) -> List[int]:
        if value is None:
            return []
        try:
            days = sorted({int(d) for d in value})
        except (TypeError, ValueError):
            raise ValueError(f"days_of_week must be a list of integers, got {value!r}")
        for day in days:
            if day < 0 or day > 6:
                raise ValueError(f"day of week must be 0-6, got {day}")
        return days

    def to_blob(self) -> Dict[str, Any]:
        """Structured-data form stored alongside the recurrence head."""
        return self.model_dump(mode="json")

    @classmethod
    def from_blob(cls, blob: Dict[str, Any]) -> "RecurrenceRule":
        try:
            return cls.model_validate(blob)
        except ValidationError as e:
            raise InvalidRecurrenceRule(
                "Invalid recurrence rule",
                {"errors": [err["msg"] for err in e.errors()]},
            )
