"""
Task lifecycle.

Planned -> Active -> Completed, with Skipped reachable from Planned and
Active. Completed and Skipped are terminal here. Transitions are always
triggered from outside; nothing expires on a timer.

Each operation computes the fields to write and returns them without
touching the task, so a rejected request never leaves a half-applied update.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from timeblock.errors import InvalidStateForReflection, StateTransitionRejected
from timeblock.models.task import Task
from timeblock.models.types import TaskStatus

ALLOWED_TRANSITIONS = {
    TaskStatus.PLANNED: frozenset({TaskStatus.ACTIVE, TaskStatus.COMPLETED, TaskStatus.SKIPPED}),
    TaskStatus.ACTIVE: frozenset({TaskStatus.COMPLETED, TaskStatus.SKIPPED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.SKIPPED: frozenset(),
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return TaskStatus(target) in ALLOWED_TRANSITIONS[TaskStatus(current)]


def transition(task: Task, target_status: TaskStatus, at: datetime) -> Dict[str, Any]:
    """
    Compute the field updates for moving ``task`` to ``target_status``.

    Args:
        task: Current task state (not modified)
        target_status: Requested status
        at: UTC instant the transition happens

    Returns:
        Dict of updated fields

    Raises:
        StateTransitionRejected: transition not in ALLOWED_TRANSITIONS
    """
    current = TaskStatus(task.status)
    target = TaskStatus(target_status)

    if not can_transition(current, target):
        raise StateTransitionRejected(
            f"Cannot move task from {current.value} to {target.value}",
            {"task_id": task.id, "from": current.value, "to": target.value}
        )

    fields: Dict[str, Any] = {"status": target}

    if target == TaskStatus.ACTIVE:
        if task.actual_start is None:
            fields["actual_start"] = at
    elif target == TaskStatus.COMPLETED:
        fields["actual_end"] = at
        # Active was skipped entirely: fall back to the planned start
        if task.actual_start is None:
            fields["actual_start"] = task.planned_start

    return fields


def set_reflection(task: Task, mood: Optional[str], value: Optional[str]) -> Dict[str, Any]:
    """Field updates for recording a reflection; only completed tasks accept one."""
    if TaskStatus(task.status) != TaskStatus.COMPLETED:
        raise InvalidStateForReflection(
            "Reflection can only be recorded on a completed task",
            {"task_id": task.id, "status": TaskStatus(task.status).value}
        )
    return {"reflection_mood": mood, "reflection_value": value}


def apply_fields(task: Task, fields: Dict[str, Any]) -> Task:
    """Copy already-validated fields onto ``task``."""
    for name, value in fields.items():
        setattr(task, name, value)
    return task
