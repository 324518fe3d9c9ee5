import unittest

from planning.attendance import mark_session, upsert_record
from planning.enrollment import enroll
from planning.errors import NotFound, PermissionDenied
from planning.extensions import db
from planning.models import AttendanceStatus
from planning.progress import certificate_status, compute_progress, progress_for
from planning.roles import Role

from support import DatabaseTestCase


PRESENT = AttendanceStatus.PRESENT
ABSENT = AttendanceStatus.ABSENT
EXCUSED = AttendanceStatus.EXCUSED


class ProgressTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.manager = self.make_user(Role.MANAGER, "Karim")
        self.training = self.make_training()
        self.student = self.make_student()
        self.enrollment = enroll(self.student.id, self.training.id)

    def mark_level(self, level_number: int, statuses) -> None:
        for session_number, status in enumerate(statuses, start=1):
            upsert_record(self.enrollment, level_number, session_number, status)
        db.session.commit()

    def mark_everything(self, status=PRESENT) -> None:
        for level_number in range(1, 5):
            self.mark_level(level_number, [status] * 6)


class LevelValidationTestCase(ProgressTestCase):
    def test_six_present_validate_the_level(self) -> None:
        self.mark_level(2, [PRESENT] * 6)
        progress = compute_progress(self.enrollment)
        self.assertTrue(progress.levels[1].validated)
        self.assertFalse(progress.levels[0].validated)
        self.assertEqual(progress.levels_validated, 1)

    def test_one_absence_blocks_the_level(self) -> None:
        self.mark_level(2, [PRESENT] * 5 + [ABSENT])
        progress = compute_progress(self.enrollment)
        self.assertFalse(progress.levels[1].validated)
        self.assertEqual(progress.levels[1].sessions_completed, 5)
        self.assertEqual(len(progress.missed_sessions), 1)
        self.assertEqual(progress.missed_sessions[0].session_number, 6)

    def test_excused_counts_as_attended(self) -> None:
        self.mark_level(2, [EXCUSED] + [PRESENT] * 5)
        self.assertTrue(compute_progress(self.enrollment).levels[1].validated)

    def test_missing_record_does_not_count(self) -> None:
        self.mark_level(2, [PRESENT] * 5)
        progress = compute_progress(self.enrollment)
        self.assertFalse(progress.levels[1].validated)
        self.assertEqual(progress.missed_sessions, [])


class CompletionTestCase(ProgressTestCase):
    def test_all_24_present_completes_the_training(self) -> None:
        self.mark_everything()
        progress = compute_progress(self.enrollment)
        self.assertEqual(progress.levels_validated, 4)
        self.assertEqual(progress.sessions_completed, 24)
        self.assertTrue(progress.completed)
        self.assertTrue(progress.eligible_for_certificate)
        self.assertIsNotNone(progress.completed_at)

    def test_23_of_24_is_never_eligible(self) -> None:
        self.mark_everything()
        upsert_record(self.enrollment, 4, 6, ABSENT)
        db.session.commit()

        progress = compute_progress(self.enrollment)
        self.assertEqual(progress.sessions_completed, 23)
        self.assertEqual(progress.levels_validated, 3)
        self.assertFalse(progress.completed)
        self.assertFalse(progress.eligible_for_certificate)
        self.assertIsNone(progress.completed_at)

    def test_correction_to_excused_restores_eligibility(self) -> None:
        self.mark_everything()
        upsert_record(self.enrollment, 3, 2, ABSENT)
        db.session.commit()
        self.assertFalse(certificate_status(self.enrollment.id)["eligible"])

        mark_session(self.enrollment.id, 3, 2, "excused", self.manager)

        status = certificate_status(self.enrollment.id)
        self.assertTrue(status["eligible"])
        self.assertEqual(status["studentName"], self.student.display_name)
        self.assertEqual(status["trainingTitle"], self.training.title)

    def test_completed_iff_all_sessions_attended(self) -> None:
        self.mark_everything(EXCUSED)
        progress = compute_progress(self.enrollment)
        self.assertEqual(progress.completed, progress.sessions_completed == 24)
        self.assertTrue(progress.completed)

    def test_as_dict_uses_wire_names(self) -> None:
        self.mark_level(1, [PRESENT] * 6)
        data = compute_progress(self.enrollment).as_dict()
        self.assertEqual(data["levelsValidated"], 1)
        self.assertEqual(data["totalLevels"], 4)
        self.assertEqual(data["totalSessions"], 24)
        self.assertFalse(data["eligibleForCertificate"])
        self.assertEqual(len(data["levels"]), 4)


class ProgressLookupTestCase(ProgressTestCase):
    def test_progress_for_student_and_training(self) -> None:
        progress = progress_for(self.student.id, self.training.id)
        self.assertEqual(progress.enrollment_id, self.enrollment.id)
        self.assertEqual(progress.sessions_completed, 0)

    def test_missing_enrollment_is_not_found(self) -> None:
        other = self.make_training("Scratch")
        with self.assertRaises(NotFound):
            progress_for(self.student.id, other.id)

    def test_trainers_cannot_correct_records(self) -> None:
        trainer = self.make_user(Role.TRAINER, "Sami")
        with self.assertRaises(PermissionDenied):
            mark_session(self.enrollment.id, 1, 1, "PRESENT", trainer)


if __name__ == "__main__":
    unittest.main()
