"""Training endpoints, including the level/session structure."""
from __future__ import annotations

from typing import Any

from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..extensions import db
from ..lookups import get_or_raise
from ..models import Training
from ..roles import require_manager
from ..structure import (
    build_training,
    ensure_structure_mutable,
    flat_sessions,
    invalidate_structure,
    replace_structure,
    structure_of,
)
from .common import current_actor, format_datetime, json_payload


ns = Namespace("trainings", description="Trainings and their 4 × 6 structure")

session_model = ns.model(
    "TrainingSession",
    {
        "sessionId": fields.String,
        "sessionNumber": fields.Integer(min=1),
        "title": fields.String,
    },
)

level_model = ns.model(
    "Level",
    {
        "levelNumber": fields.Integer(min=1),
        "title": fields.String,
        "sessions": fields.List(fields.Nested(session_model)),
    },
)

training_input = ns.model(
    "TrainingInput",
    {
        "title": fields.String(required=True),
        "description": fields.String,
        "levels": fields.List(
            fields.Nested(level_model),
            description="Optional explicit structure; defaults to 4 levels of 6 sessions",
        ),
    },
)


def serialize_training(training: Training) -> dict[str, Any]:
    layout = structure_of(training)
    return {
        "id": training.id,
        "title": training.title,
        "description": training.description,
        "totalLevels": layout.total_levels,
        "totalSessions": layout.total_sessions,
        "levels": [
            {
                "levelNumber": level.level_number,
                "title": level.title,
                "sessions": [
                    {
                        "sessionId": slot.session_id,
                        "sessionNumber": slot.session_number,
                        "title": slot.title,
                    }
                    for slot in level.sessions
                ],
            }
            for level in layout.levels
        ],
        "createdAt": format_datetime(training.created_at),
        "updatedAt": format_datetime(training.updated_at),
    }


@ns.route("")
class TrainingList(Resource):
    def get(self) -> list[dict[str, Any]]:
        trainings = Training.query.order_by(Training.title).all()
        return [serialize_training(training) for training in trainings]

    @ns.expect(training_input, validate=True)
    def post(self):
        require_manager(current_actor())
        payload = json_payload()
        training = build_training(payload["title"], payload.get("description"), payload.get("levels"))
        db.session.commit()
        return serialize_training(training), 201


@ns.route("/<int:training_id>")
@ns.param("training_id", "Training unique identifier")
class TrainingResource(Resource):
    def get(self, training_id: int) -> dict[str, Any]:
        return serialize_training(get_or_raise(Training, training_id, "Formation"))

    @ns.expect(training_input)
    def put(self, training_id: int) -> dict[str, Any]:
        require_manager(current_actor())
        training = get_or_raise(Training, training_id, "Formation")
        payload = json_payload()
        if "title" in payload:
            title = (payload["title"] or "").strip()
            if not title:
                raise ValidationError("Le titre de la formation est obligatoire", field="title")
            training.title = title
        if "description" in payload:
            training.description = payload["description"]
        if payload.get("levels") is not None:
            replace_structure(training, payload["levels"])
        db.session.commit()
        return serialize_training(training)

    def delete(self, training_id: int):
        require_manager(current_actor())
        training = get_or_raise(Training, training_id, "Formation")
        ensure_structure_mutable(training)
        db.session.delete(training)
        db.session.commit()
        invalidate_structure(training_id)
        return {"status": "deleted"}, 204


@ns.route("/<int:training_id>/sessions")
@ns.param("training_id", "Training unique identifier")
class TrainingSessions(Resource):
    def get(self, training_id: int) -> list[dict[str, Any]]:
        return flat_sessions(get_or_raise(Training, training_id, "Formation"))
