"""Users: administrators, managers and trainers."""
from __future__ import annotations

from typing import Any

from flask_restx import Namespace, Resource, fields
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExists, ValidationError
from ..extensions import db
from ..models import User
from ..roles import Role, require_manager
from .common import current_actor, json_payload


ns = Namespace("users", description="Administrators, managers and trainers")

user_model = ns.model(
    "User",
    {
        "id": fields.Integer(readonly=True),
        "firstName": fields.String(required=True),
        "lastName": fields.String(required=True),
        "email": fields.String(required=True),
        "role": fields.String(required=True, enum=[role.value for role in Role]),
        "roleLabel": fields.String(readonly=True),
        "active": fields.Boolean(default=True),
    },
)


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "role": user.role,
        "roleLabel": user.role_kind.label,
        "active": user.active,
    }


@ns.route("")
class UserList(Resource):
    @ns.marshal_list_with(user_model)
    def get(self) -> list[dict[str, Any]]:
        users = User.query.order_by(User.last_name, User.first_name).all()
        return [serialize_user(user) for user in users]

    @ns.expect(user_model, validate=True)
    @ns.marshal_with(user_model, code=201)
    def post(self):
        require_manager(current_actor())
        payload = json_payload()
        try:
            role = Role(payload["role"])
        except ValueError:
            raise ValidationError("Rôle inconnu", field="role") from None
        user = User(
            first_name=payload["firstName"].strip(),
            last_name=payload["lastName"].strip(),
            email=payload["email"].strip().lower(),
            role=role.value,
            active=payload.get("active", True),
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise AlreadyExists("Un utilisateur existe déjà avec cet email", field="email") from None
        return serialize_user(user), 201


@ns.route("/trainers")
class TrainerList(Resource):
    @ns.marshal_list_with(user_model)
    def get(self) -> list[dict[str, Any]]:
        trainers = (
            User.query.filter_by(role=Role.TRAINER.value, active=True)
            .order_by(User.last_name, User.first_name)
            .all()
        )
        return [serialize_user(trainer) for trainer in trainers]
