"""Student groups and their roster."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..enrollment import add_student, create_group, remove_student, update_group
from ..extensions import db
from ..lookups import get_or_raise
from ..models import Group
from ..roles import require_manager
from .common import (
    current_actor,
    format_time,
    json_payload,
    parse_optional_int,
    parse_optional_time,
    require_fields,
)
from .students import serialize_student


ns = Namespace("groups", description="Student groups following a training")

group_input = ns.model(
    "GroupInput",
    {
        "name": fields.String(required=True),
        "trainingId": fields.Integer(required=True),
        "dayOfWeek": fields.Integer(min=0, max=6, description="0 = Monday"),
        "startTime": fields.String(example="09:00"),
        "endTime": fields.String(example="10:30"),
        "trainerId": fields.Integer,
        "studentIds": fields.List(fields.Integer),
    },
)

# Wire name -> (service key, parser)
_UPDATABLE = {
    "name": ("name", lambda value, field: value),
    "dayOfWeek": ("day_of_week", parse_optional_int),
    "startTime": ("start_time", parse_optional_time),
    "endTime": ("end_time", parse_optional_time),
    "trainerId": ("trainer_id", parse_optional_int),
}


def serialize_group(group: Group) -> dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "trainingId": group.training_id,
        "trainingTitle": group.training.title,
        "dayOfWeek": group.day_of_week,
        "startTime": format_time(group.start_time),
        "endTime": format_time(group.end_time),
        "trainerId": group.trainer_id,
        "trainerName": group.trainer.full_name if group.trainer is not None else None,
        "students": [serialize_student(student) for student in group.students],
    }


def _student_ids(payload: dict[str, Any]) -> list[int]:
    return [parse_optional_int(value, "studentIds") for value in payload.get("studentIds") or []]


@ns.route("")
class GroupList(Resource):
    @ns.param("trainingId", "Only groups of this training")
    def get(self) -> list[dict[str, Any]]:
        query = Group.query
        training_id = parse_optional_int(request.args.get("trainingId"), "trainingId")
        if training_id is not None:
            query = query.filter_by(training_id=training_id)
        return [serialize_group(group) for group in query.order_by(Group.name).all()]

    @ns.expect(group_input)
    def post(self):
        require_manager(current_actor())
        payload = json_payload()
        require_fields(payload, "name", "trainingId")
        group = create_group(
            payload["name"],
            parse_optional_int(payload["trainingId"], "trainingId"),
            day_of_week=parse_optional_int(payload.get("dayOfWeek"), "dayOfWeek"),
            start_time=parse_optional_time(payload.get("startTime"), "startTime"),
            end_time=parse_optional_time(payload.get("endTime"), "endTime"),
            trainer_id=parse_optional_int(payload.get("trainerId"), "trainerId"),
            student_ids=_student_ids(payload),
        )
        return serialize_group(group), 201


@ns.route("/<int:group_id>")
@ns.param("group_id", "Group unique identifier")
class GroupResource(Resource):
    def get(self, group_id: int) -> dict[str, Any]:
        return serialize_group(get_or_raise(Group, group_id, "Groupe"))

    @ns.expect(group_input)
    def put(self, group_id: int) -> dict[str, Any]:
        require_manager(current_actor())
        payload = json_payload()
        changes: dict[str, Any] = {}
        for wire_name, (key, parse) in _UPDATABLE.items():
            if wire_name in payload:
                changes[key] = parse(payload[wire_name], wire_name)
        if payload.get("studentIds") is not None:
            changes["student_ids"] = _student_ids(payload)
        return serialize_group(update_group(group_id, changes))

    def delete(self, group_id: int):
        require_manager(current_actor())
        group = get_or_raise(Group, group_id, "Groupe")
        db.session.delete(group)
        db.session.commit()
        return {"status": "deleted"}, 204


@ns.route("/<int:group_id>/students/<int:student_id>")
@ns.param("group_id", "Group unique identifier")
@ns.param("student_id", "Student unique identifier")
class GroupStudent(Resource):
    def post(self, group_id: int, student_id: int):
        require_manager(current_actor())
        return serialize_group(add_student(group_id, student_id)), 201

    def delete(self, group_id: int, student_id: int) -> dict[str, Any]:
        require_manager(current_actor())
        return serialize_group(remove_student(group_id, student_id))
