"""Enrollments, progress and certificate eligibility."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..attendance import mark_session
from ..enrollment import enroll
from ..lookups import get_or_raise
from ..models import AttendanceRecord, Enrollment
from ..progress import certificate_status, compute_progress
from ..roles import require_manager
from .common import (
    current_actor,
    format_datetime,
    json_payload,
    parse_int,
    parse_optional_int,
    require_fields,
)
from .students import serialize_enrollment


ns = Namespace("enrollments", description="Enrollments and student progress")

enrollment_input = ns.model(
    "EnrollmentInput",
    {
        "studentId": fields.Integer(required=True),
        "trainingId": fields.Integer(required=True),
        "groupId": fields.Integer,
    },
)

attendance_input = ns.model(
    "AttendanceCorrection",
    {
        "levelNumber": fields.Integer(required=True, min=1),
        "sessionNumber": fields.Integer(required=True, min=1),
        "status": fields.String(required=True, enum=["PRESENT", "ABSENT", "EXCUSED"]),
    },
)


def serialize_record(record: AttendanceRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "enrollmentId": record.enrollment_id,
        "levelNumber": record.level_number,
        "sessionNumber": record.session_number,
        "status": record.status,
        "markedAt": format_datetime(record.marked_at),
        "markedById": record.marked_by_id,
    }


@ns.route("")
class EnrollmentList(Resource):
    @ns.param("studentId", "Only enrollments of this student")
    @ns.param("trainingId", "Only enrollments in this training")
    def get(self) -> list[dict[str, Any]]:
        query = Enrollment.query
        student_id = parse_optional_int(request.args.get("studentId"), "studentId")
        training_id = parse_optional_int(request.args.get("trainingId"), "trainingId")
        if student_id is not None:
            query = query.filter_by(student_id=student_id)
        if training_id is not None:
            query = query.filter_by(training_id=training_id)
        return [serialize_enrollment(enrollment) for enrollment in query.order_by(Enrollment.id).all()]

    @ns.expect(enrollment_input)
    def post(self):
        require_manager(current_actor())
        payload = json_payload()
        require_fields(payload, "studentId", "trainingId")
        enrollment = enroll(
            parse_int(payload["studentId"], "studentId"),
            parse_int(payload["trainingId"], "trainingId"),
            parse_optional_int(payload.get("groupId"), "groupId"),
        )
        return serialize_enrollment(enrollment), 201


@ns.route("/<int:enrollment_id>")
@ns.param("enrollment_id", "Enrollment unique identifier")
class EnrollmentResource(Resource):
    def get(self, enrollment_id: int) -> dict[str, Any]:
        enrollment = get_or_raise(Enrollment, enrollment_id, "Inscription")
        data = serialize_enrollment(enrollment)
        data["records"] = [
            serialize_record(record)
            for record in sorted(
                enrollment.records, key=lambda r: (r.level_number, r.session_number)
            )
        ]
        return data


@ns.route("/<int:enrollment_id>/progress")
@ns.param("enrollment_id", "Enrollment unique identifier")
class EnrollmentProgress(Resource):
    def get(self, enrollment_id: int) -> dict[str, Any]:
        enrollment = get_or_raise(Enrollment, enrollment_id, "Inscription")
        return compute_progress(enrollment).as_dict()


@ns.route("/<int:enrollment_id>/certificate")
@ns.param("enrollment_id", "Enrollment unique identifier")
class EnrollmentCertificate(Resource):
    def get(self, enrollment_id: int) -> dict[str, Any]:
        return certificate_status(enrollment_id)


@ns.route("/<int:enrollment_id>/attendance")
@ns.param("enrollment_id", "Enrollment unique identifier")
class EnrollmentAttendance(Resource):
    @ns.expect(attendance_input)
    def put(self, enrollment_id: int) -> dict[str, Any]:
        """Correct one session's attendance, e.g. ABSENT to EXCUSED."""
        actor = current_actor()
        payload = json_payload()
        require_fields(payload, "levelNumber", "sessionNumber", "status")
        record = mark_session(
            enrollment_id,
            parse_int(payload["levelNumber"], "levelNumber"),
            parse_int(payload["sessionNumber"], "sessionNumber"),
            payload["status"],
            actor,
        )
        return serialize_record(record)
