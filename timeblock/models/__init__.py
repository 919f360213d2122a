"""Table models and value objects."""

from .category import Category
from .recurrence_rule import RecurrenceRule
from .recurrence_template import RecurrenceTemplate
from .task import Reflection, Task
from .types import Frequency, Priority, TaskStatus

__all__ = [
    "Category",
    "Frequency",
    "Priority",
    "RecurrenceRule",
    "RecurrenceTemplate",
    "Reflection",
    "Task",
    "TaskStatus",
]
