"""Dashboard figures."""
from __future__ import annotations

from flask_restx import Namespace, Resource

from ..clock import app_clock
from ..models import Enrollment, Seance, SeanceStatus, Student, Training
from ..progress import compute_progress


ns = Namespace("dashboard", description="Dashboard statistics")


@ns.route("/stats")
class DashboardStats(Resource):
    def get(self) -> dict[str, int]:
        today = app_clock()().date()
        sessions_today = (
            Seance.query.filter(Seance.date == today)
            .filter(Seance.status != SeanceStatus.CANCELLED.value)
            .count()
        )
        # Eligibility is derived from attendance, never stored.
        eligible = sum(
            1 for enrollment in Enrollment.query.all() if compute_progress(enrollment).eligible_for_certificate
        )
        return {
            "totalStudents": Student.query.count(),
            "totalTrainings": Training.query.count(),
            "sessionsToday": sessions_today,
            "eligibleCertificates": eligible,
        }
