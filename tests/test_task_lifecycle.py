import unittest
from datetime import datetime, timezone

from timeblock.errors import InvalidStateForReflection, StateTransitionRejected
from timeblock.models.task import Task
from timeblock.models.types import TaskStatus
from timeblock.services.task_lifecycle import (
    ALLOWED_TRANSITIONS,
    apply_fields,
    can_transition,
    set_reflection,
    transition,
)

PLANNED_START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
PLANNED_END = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def make_task(status: TaskStatus = TaskStatus.PLANNED, **kwargs) -> Task:
    return Task(
        id="t1",
        owner_id="u1",
        category_id="c1",
        title="Deep work",
        planned_start=PLANNED_START,
        planned_end=PLANNED_END,
        status=status,
        **kwargs,
    )


class TestTransition(unittest.TestCase):
    def test_start_records_actual_start(self) -> None:
        at = datetime(2024, 1, 1, 9, 7, tzinfo=timezone.utc)
        task = make_task()

        fields = transition(task, TaskStatus.ACTIVE, at)

        self.assertEqual(fields, {"status": TaskStatus.ACTIVE, "actual_start": at})
        # Nothing is written until the caller applies the fields
        self.assertEqual(task.status, TaskStatus.PLANNED)
        self.assertIsNone(task.actual_start)

    def test_start_keeps_existing_actual_start(self) -> None:
        earlier = datetime(2024, 1, 1, 8, 55, tzinfo=timezone.utc)
        task = make_task(actual_start=earlier)

        fields = transition(task, TaskStatus.ACTIVE, datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc))

        self.assertNotIn("actual_start", fields)

    def test_complete_without_start_backfills_planned_start(self) -> None:
        at = datetime(2024, 1, 1, 10, 15, tzinfo=timezone.utc)
        task = make_task()

        apply_fields(task, transition(task, TaskStatus.COMPLETED, at))

        self.assertEqual(task.status, TaskStatus.COMPLETED)
        self.assertEqual(task.actual_start, PLANNED_START)
        self.assertEqual(task.actual_end, at)

    def test_complete_after_start_keeps_actual_start(self) -> None:
        started = datetime(2024, 1, 1, 9, 7, tzinfo=timezone.utc)
        done = datetime(2024, 1, 1, 9, 58, tzinfo=timezone.utc)
        task = make_task()

        apply_fields(task, transition(task, TaskStatus.ACTIVE, started))
        apply_fields(task, transition(task, TaskStatus.COMPLETED, done))

        self.assertEqual(task.actual_start, started)
        self.assertEqual(task.actual_end, done)

    def test_skip_touches_no_actual_times(self) -> None:
        for status in (TaskStatus.PLANNED, TaskStatus.ACTIVE):
            with self.subTest(status=status):
                fields = transition(make_task(status), TaskStatus.SKIPPED, PLANNED_END)
                self.assertEqual(fields, {"status": TaskStatus.SKIPPED})

    def test_rejected_transitions_leave_task_untouched(self) -> None:
        rejected = [
            (TaskStatus.COMPLETED, TaskStatus.ACTIVE),
            (TaskStatus.COMPLETED, TaskStatus.PLANNED),
            (TaskStatus.SKIPPED, TaskStatus.COMPLETED),
            (TaskStatus.ACTIVE, TaskStatus.PLANNED),
            (TaskStatus.PLANNED, TaskStatus.PLANNED),
            (TaskStatus.ACTIVE, TaskStatus.ACTIVE),
        ]
        for current, target in rejected:
            with self.subTest(current=current, target=target):
                task = make_task(current)
                with self.assertRaises(StateTransitionRejected) as ctx:
                    transition(task, target, PLANNED_END)
                self.assertEqual(ctx.exception.code, "STATE_TRANSITION_REJECTED")
                self.assertEqual(task.status, current)
                self.assertIsNone(task.actual_end)

    def test_terminal_states_have_no_exits(self) -> None:
        self.assertEqual(ALLOWED_TRANSITIONS[TaskStatus.COMPLETED], frozenset())
        self.assertEqual(ALLOWED_TRANSITIONS[TaskStatus.SKIPPED], frozenset())
        self.assertTrue(can_transition("planned", "completed"))
        self.assertFalse(can_transition("skipped", "planned"))


class TestReflection(unittest.TestCase):
    def test_reflection_on_completed_task(self) -> None:
        task = make_task(TaskStatus.COMPLETED)

        apply_fields(task, set_reflection(task, "calm", "high"))

        self.assertEqual(task.reflection.mood, "calm")
        self.assertEqual(task.reflection.value, "high")

    def test_reflection_rejected_before_completion(self) -> None:
        for status in (TaskStatus.PLANNED, TaskStatus.ACTIVE, TaskStatus.SKIPPED):
            with self.subTest(status=status):
                task = make_task(status)
                with self.assertRaises(InvalidStateForReflection):
                    set_reflection(task, "tired", "low")
                self.assertIsNone(task.reflection)


if __name__ == "__main__":
    unittest.main(verbosity=2)
