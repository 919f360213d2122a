import itertools
import unittest
from datetime import date, datetime, timezone

from pydantic import ValidationError

from timeblock.errors import InvalidInterval
from timeblock.models.task import Task
from timeblock.services.overlap_layout import day_bounds, layout

DAY = date(2024, 1, 1)


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


def make_task(task_id: str, start: datetime, end: datetime) -> Task:
    return Task(
        id=task_id,
        owner_id="u1",
        category_id="c1",
        title=task_id,
        planned_start=start,
        planned_end=end,
    )


def columns(slots):
    return {s.task.id: (s.column_index, s.column_count) for s in slots}


class TestLayout(unittest.TestCase):
    def test_two_overlapping_and_one_free(self) -> None:
        tasks = [
            make_task("a", at(9), at(10)),
            make_task("b", at(9, 30), at(10, 30)),
            make_task("c", at(11), at(12)),
        ]

        slots = layout(tasks, DAY)

        self.assertEqual(columns(slots), {"a": (0, 2), "b": (1, 2), "c": (0, 1)})
        self.assertEqual([s.task.id for s in slots], ["a", "b", "c"])

    def test_single_task(self) -> None:
        slots = layout([make_task("solo", at(14), at(15))], DAY)
        self.assertEqual(columns(slots), {"solo": (0, 1)})

    def test_chain_shares_one_group(self) -> None:
        # c never overlaps a, but the chain a-b-c is connected
        tasks = [
            make_task("a", at(9), at(11)),
            make_task("b", at(10), at(12)),
            make_task("c", at(11, 30), at(12, 30)),
        ]

        slots = layout(tasks, DAY)

        self.assertEqual(columns(slots), {"a": (0, 3), "b": (1, 3), "c": (2, 3)})

    def test_touching_intervals_do_not_overlap(self) -> None:
        tasks = [make_task("a", at(9), at(10)), make_task("b", at(10), at(11))]
        self.assertEqual(columns(layout(tasks, DAY)), {"a": (0, 1), "b": (0, 1)})

    def test_long_task_covers_later_short_ones(self) -> None:
        tasks = [
            make_task("long", at(8), at(17)),
            make_task("x", at(9), at(10)),
            make_task("y", at(15), at(16)),
        ]
        self.assertEqual(columns(layout(tasks, DAY)), {"long": (0, 3), "x": (1, 3), "y": (2, 3)})

    def test_column_count_equals_group_size(self) -> None:
        tasks = [
            make_task("a", at(9), at(10)),
            make_task("b", at(9, 15), at(9, 45)),
            make_task("c", at(9, 50), at(10, 20)),
            make_task("d", at(13), at(14)),
            make_task("e", at(13, 30), at(15)),
        ]

        slots = layout(tasks, DAY)

        by_count = {}
        for slot in slots:
            by_count.setdefault(slot.column_count, []).append(slot.column_index)
        self.assertEqual(sorted(by_count[3]), [0, 1, 2])
        self.assertEqual(sorted(by_count[2]), [0, 1])

    def test_independent_of_input_order(self) -> None:
        tasks = [
            make_task("a", at(9), at(10)),
            make_task("b", at(9), at(9, 30)),
            make_task("c", at(9, 45), at(11)),
            make_task("d", at(12), at(13)),
        ]
        expected = columns(layout(tasks, DAY))

        for perm in itertools.permutations(tasks):
            self.assertEqual(columns(layout(list(perm), DAY)), expected)

    def test_input_is_not_mutated(self) -> None:
        tasks = [make_task("b", at(11), at(12)), make_task("a", at(9), at(10))]
        layout(tasks, DAY)
        self.assertEqual([t.id for t in tasks], ["b", "a"])

    def test_projection_onto_the_day(self) -> None:
        overnight = make_task("night", at(22), at(2, day=2))
        other_day = make_task("tomorrow", at(9, day=2), at(10, day=2))

        slots = layout([overnight, other_day], DAY)

        self.assertEqual([s.task.id for s in slots], ["night"])
        self.assertEqual(slots[0].visible_start, at(22))
        self.assertEqual(slots[0].visible_end, at(0, day=2))

    def test_day_in_another_zone(self) -> None:
        start, end = day_bounds(DAY, "America/New_York")
        self.assertEqual(start, at(5))
        self.assertEqual(end, at(5, day=2))

        early = make_task("early", at(3), at(4))  # Dec 31 local time
        local = make_task("local", at(15), at(16))
        slots = layout([early, local], DAY, tz="America/New_York")
        self.assertEqual([s.task.id for s in slots], ["local"])

    def test_rejects_non_positive_duration(self) -> None:
        with self.assertRaises(InvalidInterval):
            layout([make_task("bad", at(10), at(10))], DAY)

    def test_slots_are_read_only(self) -> None:
        slot = layout([make_task("a", at(9), at(10))], DAY)[0]
        with self.assertRaises(ValidationError):
            slot.column_index = 3

    def test_empty(self) -> None:
        self.assertEqual(layout([], DAY), [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
