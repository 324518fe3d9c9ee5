import unittest
from datetime import date, time

from planning.availability import (
    AvailabilityQuery,
    ensure_available,
    find_conflict,
    is_trainer_available,
    overlaps,
)
from planning.errors import InvalidTimeRange, SchedulingConflict
from planning.models import SeanceStatus
from planning.roles import Role

from support import DatabaseTestCase


DAY = date(2025, 3, 10)


class OverlapTestCase(unittest.TestCase):
    def test_half_open_windows(self) -> None:
        self.assertTrue(overlaps(time(9, 0), time(10, 30), time(10, 0), time(11, 0)))
        self.assertFalse(overlaps(time(9, 0), time(10, 30), time(10, 30), time(11, 0)))
        self.assertFalse(overlaps(time(10, 30), time(11, 0), time(9, 0), time(10, 30)))

    def test_overlap_is_symmetric(self) -> None:
        windows = [
            (time(8, 0), time(9, 0)),
            (time(8, 30), time(9, 30)),
            (time(9, 0), time(10, 0)),
            (time(7, 0), time(12, 0)),
        ]
        for a in windows:
            for b in windows:
                with self.subTest(a=a, b=b):
                    self.assertEqual(overlaps(*a, *b), overlaps(*b, *a))


class TrainerAvailabilityTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.trainer = self.make_user(Role.TRAINER, "Sami")
        self.other = self.make_user(Role.TRAINER, "Leila")
        self.group = self.make_group(self.make_training(), self.trainer)
        self.seance = self.make_seance(self.group, self.trainer, DAY, time(9, 0), time(10, 30))

    def query(self, start: time, end: time, **extra) -> AvailabilityQuery:
        return AvailabilityQuery(self.trainer.id, DAY, start, end, **extra)

    def test_overlapping_window_is_busy(self) -> None:
        self.assertFalse(is_trainer_available(self.query(time(10, 0), time(11, 0))))

    def test_window_starting_at_end_is_free(self) -> None:
        self.assertTrue(is_trainer_available(self.query(time(10, 30), time(11, 0))))

    def test_other_trainer_and_other_day_are_free(self) -> None:
        self.assertTrue(
            is_trainer_available(AvailabilityQuery(self.other.id, DAY, time(9, 0), time(10, 30)))
        )
        self.assertTrue(
            is_trainer_available(
                AvailabilityQuery(self.trainer.id, date(2025, 3, 11), time(9, 0), time(10, 30))
            )
        )

    def test_edited_seance_does_not_conflict_with_itself(self) -> None:
        self.assertTrue(
            is_trainer_available(
                self.query(time(9, 0), time(10, 30), exclude_seance_id=self.seance.id)
            )
        )
        self.assertTrue(
            is_trainer_available(
                self.query(time(9, 30), time(11, 0), exclude_seance_id=self.seance.id)
            )
        )

    def test_cancelled_and_reported_seances_release_the_trainer(self) -> None:
        for status in (SeanceStatus.CANCELLED, SeanceStatus.REPORTED):
            with self.subTest(status=status):
                self.seance.status = status.value
                self.assertIsNone(find_conflict(self.trainer.id, DAY, time(9, 0), time(10, 30)))

    def test_completed_seance_still_blocks(self) -> None:
        self.seance.status = SeanceStatus.COMPLETED.value
        self.assertFalse(is_trainer_available(self.query(time(9, 0), time(9, 30))))

    def test_inverted_window_is_rejected(self) -> None:
        with self.assertRaises(InvalidTimeRange):
            find_conflict(self.trainer.id, DAY, time(11, 0), time(10, 0))
        with self.assertRaises(InvalidTimeRange):
            find_conflict(self.trainer.id, DAY, time(10, 0), time(10, 0))

    def test_conflict_error_carries_the_blocking_window(self) -> None:
        with self.assertRaises(SchedulingConflict) as ctx:
            ensure_available(self.trainer.id, DAY, time(10, 0), time(11, 0))
        conflict = ctx.exception.payload()["conflict"]
        self.assertEqual(conflict["seanceId"], self.seance.id)
        self.assertEqual(conflict["startTime"], "09:00")
        self.assertEqual(conflict["endTime"], "10:30")
        self.assertEqual(conflict["date"], "2025-03-10")


if __name__ == "__main__":
    unittest.main()
