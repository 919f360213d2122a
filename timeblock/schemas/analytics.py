"""Schemas for calendar layout and insights output."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from timeblock.models.task import Task


class InsightsMode(str, Enum):
    MONTH = "month"
    YEAR = "year"
    ALL_TIME = "all"


class TimeRange(str, Enum):
    WEEK = "week"
    MONTH = "month"


class LayoutSlot(BaseModel):
    """A task annotated with its rendering column on one display day."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    task: Task
    column_index: int
    column_count: int
    visible_start: datetime  # planned interval clipped to the display day
    visible_end: datetime


class TrendPoint(BaseModel):
    label: str  # "Jan 05" / "Jan" / "Jan 24"
    key: str  # "2024-01-05" / "2024-01"
    assigned: int = 0
    completed: int = 0


class CategoryPerformance(BaseModel):
    category_id: str
    name: Optional[str] = None
    color: Optional[str] = None
    total_assigned: int = 0
    past_assigned: int = 0
    completed: int = 0
    completion_rate: int = Field(default=0, ge=0, le=100)


class FocusSlice(BaseModel):
    category_id: str
    name: Optional[str] = None
    color: Optional[str] = None
    value: int
    percentage: int


class CategoryTime(BaseModel):
    category_id: str
    name: Optional[str] = None
    color: Optional[str] = None
    minutes: int


class MonthlyCount(BaseModel):
    month: str  # "2024-01"
    count: int
    eligible: bool


class InsightsReport(BaseModel):
    mode: InsightsMode
    reference_now: datetime
    window_start: datetime
    window_end: datetime
    trend: List[TrendPoint]
    category_performance: List[CategoryPerformance]
    focus_balance: List[FocusSlice]
    consistency_score: int
    observations: List[str]
