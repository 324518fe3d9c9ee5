import unittest
from datetime import datetime

from planning.extensions import db
from planning.models import Seance
from planning.roles import Role

from support import DatabaseTestCase


class ApiTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.client = self.app.test_client()
        self.manager = self.make_user(Role.MANAGER, "Karim")
        self.trainer = self.make_user(Role.TRAINER, "Sami")

    def as_user(self, user) -> dict[str, str]:
        return {"X-User-Id": str(user.id)}

    def create_training(self) -> dict:
        response = self.client.post(
            "/api/trainings", json={"title": "Robotique"}, headers=self.as_user(self.manager)
        )
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()

    def create_group(self, training_id: int, student_ids=()) -> dict:
        response = self.client.post(
            "/api/groups",
            json={"name": "Samedi", "trainingId": training_id, "studentIds": list(student_ids)},
            headers=self.as_user(self.manager),
        )
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()

    def seance_payload(self, training_id, group_id, start="09:00", end="10:30", session=1) -> dict:
        return {
            "trainingId": training_id,
            "groupId": group_id,
            "trainerId": self.trainer.id,
            "date": "2025-03-10",
            "startTime": start,
            "endTime": end,
            "levelNumber": 1,
            "sessionNumber": session,
        }


class BasicEndpointsTestCase(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok", "database": "ok"})

    def test_mutation_without_actor_is_forbidden(self) -> None:
        response = self.client.post("/api/trainings", json={"title": "Robotique"})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.get_json()["error"], "permission_denied")

    def test_trainer_cannot_create_training(self) -> None:
        response = self.client.post(
            "/api/trainings", json={"title": "Robotique"}, headers=self.as_user(self.trainer)
        )
        self.assertEqual(response.status_code, 403)

    def test_training_has_default_structure(self) -> None:
        training = self.create_training()
        self.assertEqual(training["totalLevels"], 4)
        self.assertEqual(training["totalSessions"], 24)
        sessions = self.client.get(f"/api/trainings/{training['id']}/sessions").get_json()
        self.assertEqual(len(sessions), 24)

    def test_unknown_entity_is_404(self) -> None:
        response = self.client.get("/api/seances/999")
        self.assertEqual(response.status_code, 404)
        body = response.get_json()
        self.assertEqual(body["error"], "not_found")
        self.assertEqual(body["message"], "Séance introuvable (id=999)")

    def test_restx_404_help_is_disabled(self) -> None:
        self.assertIs(self.app.config["RESTX_ERROR_404_HELP"], False)
        self.assertNotIn("ERROR_404_HELP", self.app.config)

    def test_trainers_listing(self) -> None:
        trainers = self.client.get("/api/users/trainers").get_json()
        self.assertEqual([t["id"] for t in trainers], [self.trainer.id])

    def test_group_creation_enrolls_students(self) -> None:
        training = self.create_training()
        student = self.make_student()
        group = self.create_group(training["id"], [student.id])
        self.assertEqual([s["id"] for s in group["students"]], [student.id])
        enrollments = self.client.get(f"/api/students/{student.id}/enrollments").get_json()
        self.assertEqual(len(enrollments), 1)
        self.assertEqual(enrollments[0]["groupId"], group["id"])


class SeanceEndpointsTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.student = self.make_student()
        self.training = self.create_training()
        self.group = self.create_group(self.training["id"], [self.student.id])

    def post_seance(self, **kwargs):
        return self.client.post(
            "/api/seances",
            json=self.seance_payload(self.training["id"], self.group["id"], **kwargs),
            headers=self.as_user(self.manager),
        )

    def test_t1_scenario(self) -> None:
        first = self.post_seance(start="09:00", end="10:30")
        second = self.post_seance(start="11:00", end="12:00", session=2)
        third = self.post_seance(start="10:00", end="11:30", session=3)

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 201)
        self.assertEqual(third.status_code, 409)
        body = third.get_json()
        self.assertEqual(body["error"], "scheduling_conflict")
        self.assertEqual(body["conflict"]["seanceId"], first.get_json()["id"])
        self.assertEqual(Seance.query.count(), 2)

    def test_validation_errors(self) -> None:
        self.assertEqual(self.post_seance(start="10:30", end="09:00").get_json()["error"], "invalid_time_range")
        response = self.client.post(
            "/api/seances",
            json={**self.seance_payload(self.training["id"], self.group["id"]), "date": "10/03/2025"},
            headers=self.as_user(self.manager),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["field"], "date")

        response = self.client.post(
            "/api/seances",
            json={**self.seance_payload(self.training["id"], self.group["id"]), "date": "2025-03-01"},
            headers=self.as_user(self.manager),
        )
        self.assertEqual(response.get_json()["error"], "past_date")

    def test_availability_endpoint(self) -> None:
        seance = self.post_seance().get_json()

        def available(start, end, **extra):
            params = {"trainerId": self.trainer.id, "date": "2025-03-10", "startTime": start, "endTime": end}
            params.update(extra)
            return self.client.get("/api/seances/availability", query_string=params).get_json()

        busy = available("10:00", "11:00")
        self.assertFalse(busy["available"])
        self.assertEqual(busy["conflict"]["seanceId"], seance["id"])
        self.assertTrue(available("10:30", "11:00")["available"])
        self.assertTrue(available("09:00", "10:30", excludeSeanceId=seance["id"])["available"])

    def test_status_lifecycle_and_progress(self) -> None:
        seance = self.post_seance().get_json()
        url = f"/api/seances/{seance['id']}/status"

        response = self.client.patch(url, json={"status": "COMPLETED"}, headers=self.as_user(self.trainer))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()["error"], "invalid_transition")

        self.clock.now = datetime(2025, 3, 10, 9, 0)
        response = self.client.patch(url, query_string={"status": "IN_PROGRESS"}, headers=self.as_user(self.trainer))
        self.assertEqual(response.status_code, 200, response.get_json())
        self.assertEqual(response.get_json()["status"], "IN_PROGRESS")

        sheet = self.client.get(f"/api/seances/{seance['id']}/attendance").get_json()
        self.assertEqual(sheet[0]["status"], "ABSENT")

        response = self.client.post(
            f"/api/seances/{seance['id']}/attendance",
            json={"records": [{"studentId": self.student.id, "status": "PRESENT"}]},
            headers=self.as_user(self.trainer),
        )
        self.assertEqual(response.status_code, 200, response.get_json())

        enrollment_id = sheet[0]["enrollmentId"]
        progress = self.client.get(f"/api/enrollments/{enrollment_id}/progress").get_json()
        self.assertEqual(progress["sessionsCompleted"], 1)
        self.assertFalse(progress["eligibleForCertificate"])

        certificate = self.client.get(f"/api/enrollments/{enrollment_id}/certificate").get_json()
        self.assertFalse(certificate["eligible"])

    def test_report_flow(self) -> None:
        seance = self.post_seance().get_json()
        response = self.client.post(
            f"/api/seances/{seance['id']}/report",
            json={"reason": "Salle indisponible", "suggestedDate": "2025-03-17"},
            headers=self.as_user(self.trainer),
        )
        self.assertEqual(response.status_code, 201, response.get_json())
        self.assertEqual(response.get_json()["suggestedDate"], "2025-03-17")

        reports = self.client.get(f"/api/seances/{seance['id']}/reports").get_json()
        self.assertEqual(len(reports), 1)
        self.assertEqual(self.client.get(f"/api/seances/{seance['id']}").get_json()["status"], "REPORTED")

        unread = self.client.get("/api/notifications/unread-count", headers=self.as_user(self.manager))
        self.assertEqual(unread.get_json(), {"count": 1})

    def test_calendar_and_my_seances(self) -> None:
        seance = self.post_seance().get_json()
        calendar = self.client.get("/api/seances/calendar", query_string={"year": 2025, "month": 3}).get_json()
        self.assertEqual(len(calendar["cells"]), 42)
        cell = next(c for c in calendar["cells"] if c["date"] == "2025-03-10")
        self.assertEqual([s["id"] for s in cell["seances"]], [seance["id"]])

        mine = self.client.get("/api/seances/my", headers=self.as_user(self.trainer)).get_json()
        self.assertEqual([s["id"] for s in mine], [seance["id"]])

    def test_calendar_rejects_out_of_range_year(self) -> None:
        response = self.client.get("/api/seances/calendar", query_string={"year": 9999, "month": 12})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["field"], "year")

    def test_trainer_notifications(self) -> None:
        self.post_seance()
        notifications = self.client.get("/api/notifications", headers=self.as_user(self.trainer)).get_json()
        self.assertEqual(len(notifications), 1)
        self.assertEqual(notifications[0]["type"], "SEANCE_ASSIGNED")

        response = self.client.post("/api/notifications/read-all", headers=self.as_user(self.trainer))
        self.assertEqual(response.get_json(), {"updated": 1})

    def test_dashboard_stats(self) -> None:
        self.post_seance()
        stats = self.client.get("/api/dashboard/stats").get_json()
        self.assertEqual(stats["totalStudents"], 1)
        self.assertEqual(stats["totalTrainings"], 1)
        self.assertEqual(stats["sessionsToday"], 1)
        self.assertEqual(stats["eligibleCertificates"], 0)

    def test_structure_locked_after_attendance(self) -> None:
        seance = self.post_seance().get_json()
        self.clock.now = datetime(2025, 3, 10, 9, 0)
        self.client.patch(
            f"/api/seances/{seance['id']}/status",
            json={"status": "IN_PROGRESS"},
            headers=self.as_user(self.trainer),
        )
        response = self.client.put(
            f"/api/trainings/{self.training['id']}",
            json={"levels": [{"sessions": [{}]}]},
            headers=self.as_user(self.manager),
        )
        self.assertEqual(response.status_code, 409)
        db.session.expire_all()
        self.assertEqual(
            self.client.get(f"/api/trainings/{self.training['id']}").get_json()["totalSessions"], 24
        )


if __name__ == "__main__":
    unittest.main()
