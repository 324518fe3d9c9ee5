import unittest

from planning.errors import InvalidTransition, ValidationError
from planning.extensions import db
from planning.models import AttendanceStatus
from planning.attendance import upsert_record
from planning.enrollment import enroll
from planning.structure import (
    DEFAULT_LEVELS,
    DEFAULT_SESSIONS_PER_LEVEL,
    flat_sessions,
    replace_structure,
    resolve_session,
    structure_of,
)

from support import DatabaseTestCase


class DefaultStructureTestCase(DatabaseTestCase):
    def test_new_training_has_four_levels_of_six_sessions(self) -> None:
        training = self.make_training()
        layout = structure_of(training)

        self.assertEqual(layout.total_levels, DEFAULT_LEVELS)
        self.assertEqual(layout.total_sessions, DEFAULT_LEVELS * DEFAULT_SESSIONS_PER_LEVEL)
        self.assertEqual(training.total_sessions, 24)
        self.assertEqual([level.level_number for level in layout.levels], [1, 2, 3, 4])
        self.assertEqual(
            [slot.session_number for slot in layout.levels[2].sessions], [1, 2, 3, 4, 5, 6]
        )

    def test_session_ids_are_unique(self) -> None:
        training = self.make_training()
        ids = [slot.session_id for slot in structure_of(training).slots()]
        self.assertEqual(len(ids), len(set(ids)))

    def test_resolve_session_uses_one_based_indices(self) -> None:
        training = self.make_training()
        slot = resolve_session(training, 2, 3)
        self.assertEqual((slot.level_number, slot.session_number), (2, 3))
        self.assertEqual(slot.session_id, training.levels[1].sessions[2].session_uid)

    def test_out_of_range_level_or_session_is_rejected(self) -> None:
        training = self.make_training()
        for level_number, session_number in ((0, 1), (5, 1), (1, 0), (1, 7)):
            with self.subTest(level=level_number, session=session_number):
                with self.assertRaises(ValidationError):
                    resolve_session(training, level_number, session_number)

    def test_flat_sessions_lists_every_slot_in_order(self) -> None:
        training = self.make_training()
        sessions = flat_sessions(training)
        self.assertEqual(len(sessions), 24)
        self.assertEqual(sessions[0]["levelNumber"], 1)
        self.assertEqual(sessions[6]["levelNumber"], 2)
        self.assertEqual(sessions[6]["sessionNumber"], 1)


class CustomStructureTestCase(DatabaseTestCase):
    def test_explicit_structure_is_persisted(self) -> None:
        training = self.make_training(
            levels=[
                {"title": "Découverte", "sessions": [{"title": "Intro"}, {"title": "Capteurs"}]},
                {"title": "Projet", "sessions": [{"title": "Montage"}]},
            ]
        )
        layout = structure_of(training)
        self.assertEqual(layout.total_levels, 2)
        self.assertEqual(layout.total_sessions, 3)
        self.assertEqual(layout.levels[0].sessions[1].title, "Capteurs")

    def test_level_without_sessions_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.make_training(levels=[{"title": "Vide", "sessions": []}])

    def test_replace_structure_refreshes_the_cached_layout(self) -> None:
        training = self.make_training()
        self.assertEqual(structure_of(training).total_levels, 4)

        replace_structure(training, [{"sessions": [{}, {}]}])
        db.session.commit()

        layout = structure_of(training)
        self.assertEqual(layout.total_levels, 1)
        self.assertEqual(layout.total_sessions, 2)

    def test_structure_is_frozen_once_attendance_exists(self) -> None:
        training = self.make_training()
        student = self.make_student()
        enrollment = enroll(student.id, training.id)
        upsert_record(enrollment, 1, 1, AttendanceStatus.PRESENT)
        db.session.commit()

        with self.assertRaises(InvalidTransition):
            replace_structure(training, None)


if __name__ == "__main__":
    unittest.main()
