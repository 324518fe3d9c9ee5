"""Seance planning, status changes, reports, attendance and calendar."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..attendance import mark_attendance, session_sheet
from ..availability import find_conflict
from ..calendar_grid import grid_bounds, month_view
from ..errors import ValidationError
from ..lookups import get_or_raise
from ..models import Seance, SeanceStatus, SessionReport
from ..scheduler import STATUS_LABELS, SeanceRequest, SeanceScheduler, query_seances
from .common import (
    current_actor,
    format_date,
    format_datetime,
    format_time,
    json_payload,
    parse_date,
    parse_int,
    parse_optional_date,
    parse_optional_int,
    parse_time,
    require_fields,
)
from .enrollments import serialize_record


ns = Namespace("seances", description="Scheduled seances and their lifecycle")

seance_input = ns.model(
    "SeanceInput",
    {
        "trainingId": fields.Integer(required=True),
        "groupId": fields.Integer(required=True),
        "trainerId": fields.Integer(required=True),
        "date": fields.String(required=True, example="2025-03-10"),
        "startTime": fields.String(required=True, example="09:00"),
        "endTime": fields.String(required=True, example="10:30"),
        "levelNumber": fields.Integer(required=True, min=1),
        "sessionNumber": fields.Integer(required=True, min=1),
        "title": fields.String,
    },
)

status_input = ns.model(
    "SeanceStatusInput",
    {"status": fields.String(required=True, enum=[status.value for status in SeanceStatus])},
)

report_input = ns.model(
    "SeanceReportInput",
    {
        "reason": fields.String(required=True),
        "suggestedDate": fields.String(example="2025-03-17"),
    },
)

attendance_entry = ns.model(
    "AttendanceEntry",
    {
        "studentId": fields.Integer(required=True),
        "status": fields.String(required=True, enum=["PRESENT", "ABSENT", "EXCUSED"]),
    },
)

attendance_input = ns.model(
    "SeanceAttendanceInput",
    {"records": fields.List(fields.Nested(attendance_entry), required=True)},
)

SEANCE_FIELDS = (
    "trainingId",
    "groupId",
    "trainerId",
    "date",
    "startTime",
    "endTime",
    "levelNumber",
    "sessionNumber",
)


def serialize_seance(seance: Seance) -> dict[str, Any]:
    return {
        "id": seance.id,
        "trainingId": seance.training_id,
        "trainingTitle": seance.training.title,
        "sessionId": seance.session_id,
        "groupId": seance.group_id,
        "groupName": seance.group.name,
        "trainerId": seance.trainer_id,
        "trainerName": seance.trainer.full_name,
        "date": format_date(seance.date),
        "startTime": format_time(seance.start_time),
        "endTime": format_time(seance.end_time),
        "levelNumber": seance.level_number,
        "sessionNumber": seance.session_number,
        "title": seance.title,
        "status": seance.status,
        "statusLabel": STATUS_LABELS[seance.status_kind],
        "createdAt": format_datetime(seance.created_at),
        "updatedAt": format_datetime(seance.updated_at),
    }


def serialize_report(report: SessionReport) -> dict[str, Any]:
    return {
        "id": report.id,
        "seanceId": report.seance_id,
        "trainerId": report.trainer_id,
        "reason": report.reason,
        "suggestedDate": format_date(report.suggested_date),
        "status": report.report_status,
        "createdAt": format_datetime(report.created_at),
    }


def seance_request_from_payload(payload: dict[str, Any]) -> SeanceRequest:
    require_fields(payload, *SEANCE_FIELDS)
    return SeanceRequest(
        training_id=parse_int(payload["trainingId"], "trainingId"),
        group_id=parse_int(payload["groupId"], "groupId"),
        trainer_id=parse_int(payload["trainerId"], "trainerId"),
        date=parse_date(payload["date"], "date"),
        start_time=parse_time(payload["startTime"], "startTime"),
        end_time=parse_time(payload["endTime"], "endTime"),
        level_number=parse_int(payload["levelNumber"], "levelNumber"),
        session_number=parse_int(payload["sessionNumber"], "sessionNumber"),
        title=payload.get("title"),
    )


def _parse_status(value: Any) -> SeanceStatus:
    try:
        return SeanceStatus(str(value).upper())
    except ValueError:
        allowed = ", ".join(status.value for status in SeanceStatus)
        raise ValidationError(f"Statut invalide: {value!r} ({allowed})", field="status") from None


@ns.route("")
class SeanceList(Resource):
    @ns.param("date", "Exact day (YYYY-MM-DD)")
    @ns.param("from", "First day of the range")
    @ns.param("to", "Last day of the range")
    @ns.param("trainerId", "Only seances of this trainer")
    @ns.param("groupId", "Only seances of this group")
    @ns.param("trainingId", "Only seances of this training")
    def get(self) -> list[dict[str, Any]]:
        args = request.args
        seances = query_seances(
            day=parse_optional_date(args.get("date"), "date"),
            date_from=parse_optional_date(args.get("from"), "from"),
            date_to=parse_optional_date(args.get("to"), "to"),
            trainer_id=parse_optional_int(args.get("trainerId"), "trainerId"),
            group_id=parse_optional_int(args.get("groupId"), "groupId"),
            training_id=parse_optional_int(args.get("trainingId"), "trainingId"),
        )
        return [serialize_seance(seance) for seance in seances]

    @ns.expect(seance_input)
    def post(self):
        actor = current_actor()
        seance = SeanceScheduler.for_app().create(seance_request_from_payload(json_payload()), actor)
        return serialize_seance(seance), 201


@ns.route("/my")
class MySeances(Resource):
    @ns.param("from", "First day of the range")
    @ns.param("to", "Last day of the range")
    def get(self) -> list[dict[str, Any]]:
        """Seances assigned to the calling user."""
        actor = current_actor()
        seances = query_seances(
            date_from=parse_optional_date(request.args.get("from"), "from"),
            date_to=parse_optional_date(request.args.get("to"), "to"),
            trainer_id=actor.id,
        )
        return [serialize_seance(seance) for seance in seances]


@ns.route("/availability")
class SeanceAvailability(Resource):
    @ns.param("trainerId", "Trainer to check", required=True)
    @ns.param("date", "Day (YYYY-MM-DD)", required=True)
    @ns.param("startTime", "Window start (HH:MM)", required=True)
    @ns.param("endTime", "Window end (HH:MM)", required=True)
    @ns.param("excludeSeanceId", "Seance being edited, ignored by the check")
    def get(self) -> dict[str, Any]:
        """Advisory check; the write re-checks under lock."""
        args = request.args
        require_fields(args, "trainerId", "date", "startTime", "endTime")
        conflict = find_conflict(
            parse_int(args["trainerId"], "trainerId"),
            parse_date(args["date"], "date"),
            parse_time(args["startTime"], "startTime"),
            parse_time(args["endTime"], "endTime"),
            exclude_seance_id=parse_optional_int(args.get("excludeSeanceId"), "excludeSeanceId"),
        )
        return {
            "available": conflict is None,
            "conflict": conflict.window_payload() if conflict is not None else None,
        }


@ns.route("/calendar")
class SeanceCalendar(Resource):
    @ns.param("year", "Year", required=True)
    @ns.param("month", "Month (1-12)", required=True)
    @ns.param("trainerId", "Only seances of this trainer")
    @ns.param("groupId", "Only seances of this group")
    def get(self) -> dict[str, Any]:
        """42-cell month grid, Monday first, with the seances of each day."""
        args = request.args
        require_fields(args, "year", "month")
        year = parse_int(args["year"], "year")
        month = parse_int(args["month"], "month")
        first, last = grid_bounds(year, month)
        seances = query_seances(
            date_from=first,
            date_to=last,
            trainer_id=parse_optional_int(args.get("trainerId"), "trainerId"),
            group_id=parse_optional_int(args.get("groupId"), "groupId"),
        )
        return {
            "year": year,
            "month": month,
            "cells": [
                {
                    "date": cell.iso,
                    "day": cell.day,
                    "isCurrentMonth": cell.is_current_month,
                    "seances": [serialize_seance(seance) for seance in day_seances],
                }
                for cell, day_seances in month_view(year, month, seances)
            ],
        }


@ns.route("/<int:seance_id>")
@ns.param("seance_id", "Seance unique identifier")
class SeanceResource(Resource):
    def get(self, seance_id: int) -> dict[str, Any]:
        return serialize_seance(get_or_raise(Seance, seance_id, "Séance"))

    @ns.expect(seance_input)
    def put(self, seance_id: int) -> dict[str, Any]:
        actor = current_actor()
        seance = SeanceScheduler.for_app().update(
            seance_id, seance_request_from_payload(json_payload()), actor
        )
        return serialize_seance(seance)

    def delete(self, seance_id: int):
        SeanceScheduler.for_app().delete(seance_id, current_actor())
        return {"status": "deleted"}, 204


@ns.route("/<int:seance_id>/status")
@ns.param("seance_id", "Seance unique identifier")
class SeanceStatusResource(Resource):
    @ns.expect(status_input)
    @ns.param("status", "Target status, also accepted in the JSON body")
    def patch(self, seance_id: int) -> dict[str, Any]:
        actor = current_actor()
        raw = request.args.get("status") or json_payload().get("status")
        if not raw:
            raise ValidationError("Champs obligatoires manquants: status", fields=["status"])
        seance = SeanceScheduler.for_app().change_status(seance_id, _parse_status(raw), actor)
        return serialize_seance(seance)


@ns.route("/<int:seance_id>/report")
@ns.param("seance_id", "Seance unique identifier")
class SeanceReport(Resource):
    @ns.expect(report_input)
    def post(self, seance_id: int):
        actor = current_actor()
        payload = json_payload()
        report = SeanceScheduler.for_app().report(
            seance_id,
            actor,
            payload.get("reason") or "",
            parse_optional_date(payload.get("suggestedDate"), "suggestedDate"),
        )
        return serialize_report(report), 201


@ns.route("/<int:seance_id>/reports")
@ns.param("seance_id", "Seance unique identifier")
class SeanceReports(Resource):
    def get(self, seance_id: int) -> list[dict[str, Any]]:
        return [serialize_report(report) for report in SeanceScheduler.reports(seance_id)]


@ns.route("/<int:seance_id>/attendance")
@ns.param("seance_id", "Seance unique identifier")
class SeanceAttendance(Resource):
    def get(self, seance_id: int) -> list[dict[str, Any]]:
        return session_sheet(seance_id)

    @ns.expect(attendance_input)
    def post(self, seance_id: int) -> list[dict[str, Any]]:
        actor = current_actor()
        entries = json_payload().get("records")
        if not isinstance(entries, list):
            raise ValidationError("Une liste de présences est attendue", field="records")
        records = [
            {
                "student_id": parse_optional_int(entry.get("studentId"), "studentId"),
                "status": entry.get("status"),
            }
            for entry in entries
            if isinstance(entry, dict)
        ]
        if len(records) != len(entries):
            raise ValidationError("Chaque présence doit être un objet JSON", field="records")
        return [serialize_record(record) for record in mark_attendance(seance_id, records, actor)]
