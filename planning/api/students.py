"""Student CRUD endpoints."""
from __future__ import annotations

from typing import Any

from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..extensions import db
from ..lookups import get_or_raise
from ..models import Enrollment, Student
from ..roles import require_manager
from .common import current_actor, format_datetime, json_payload


ns = Namespace("students", description="CRUD operations for students")

student_model = ns.model(
    "Student",
    {
        "id": fields.Integer(readonly=True),
        "firstName": fields.String(required=True),
        "lastName": fields.String(required=True),
        "email": fields.String,
        "phone": fields.String,
    },
)


def serialize_student(student: Student) -> dict[str, Any]:
    return {
        "id": student.id,
        "firstName": student.first_name,
        "lastName": student.last_name,
        "email": student.email,
        "phone": student.phone,
    }


def serialize_enrollment(enrollment: Enrollment) -> dict[str, Any]:
    return {
        "id": enrollment.id,
        "studentId": enrollment.student_id,
        "trainingId": enrollment.training_id,
        "trainingTitle": enrollment.training.title,
        "groupId": enrollment.group_id,
        "enrolledAt": format_datetime(enrollment.enrolled_at),
    }


@ns.route("")
class StudentList(Resource):
    @ns.marshal_list_with(student_model)
    def get(self) -> list[dict[str, Any]]:
        students = Student.query.order_by(Student.last_name, Student.first_name).all()
        return [serialize_student(student) for student in students]

    @ns.expect(student_model, validate=True)
    @ns.marshal_with(student_model, code=201)
    def post(self):
        require_manager(current_actor())
        payload = json_payload()
        first_name = payload["firstName"].strip()
        last_name = payload["lastName"].strip()
        if not first_name or not last_name:
            raise ValidationError("Nom et prénom sont obligatoires", fields=["firstName", "lastName"])
        student = Student(
            first_name=first_name,
            last_name=last_name,
            email=payload.get("email"),
            phone=payload.get("phone"),
        )
        db.session.add(student)
        db.session.commit()
        return serialize_student(student), 201


@ns.route("/<int:student_id>")
@ns.param("student_id", "Student unique identifier")
class StudentResource(Resource):
    @ns.marshal_with(student_model)
    def get(self, student_id: int) -> dict[str, Any]:
        return serialize_student(get_or_raise(Student, student_id, "Élève"))


@ns.route("/<int:student_id>/enrollments")
@ns.param("student_id", "Student unique identifier")
class StudentEnrollments(Resource):
    def get(self, student_id: int) -> list[dict[str, Any]]:
        student = get_or_raise(Student, student_id, "Élève")
        return [serialize_enrollment(enrollment) for enrollment in student.enrollments]
