"""Helpers shared by the API namespaces: parsing, formatting, acting user."""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Optional

from flask import request

from ..errors import PermissionDenied, ValidationError
from ..extensions import db
from ..models import User


DATE_FORMAT = "%Y-%m-%d"
TIME_FORMATS = ("%H:%M", "%H:%M:%S")
ACTOR_HEADER = "X-User-Id"


def parse_date(value: Any, field: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError(f"Date invalide pour {field}: {value!r} (AAAA-MM-JJ attendu)", field=field) from None


def parse_optional_date(value: Any, field: str) -> Optional[date]:
    if value in (None, ""):
        return None
    return parse_date(value, field)


def parse_time(value: Any, field: str) -> time:
    if isinstance(value, time):
        return value
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(str(value), fmt).time()
        except (TypeError, ValueError):
            continue
    raise ValidationError(f"Heure invalide pour {field}: {value!r} (HH:MM attendu)", field=field)


def parse_optional_time(value: Any, field: str) -> Optional[time]:
    if value in (None, ""):
        return None
    return parse_time(value, field)


def parse_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Nombre entier attendu pour {field}: {value!r}", field=field) from None


def parse_optional_int(value: Any, field: str) -> Optional[int]:
    if value in (None, ""):
        return None
    return parse_int(value, field)


def require_fields(payload: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if payload.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Champs obligatoires manquants: {', '.join(missing)}", fields=missing)


def format_time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def json_payload() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Un objet JSON est attendu")
    return payload


def current_actor() -> User:
    """The user set by the upstream authentication layer."""

    raw = request.headers.get(ACTOR_HEADER)
    if not raw:
        raise PermissionDenied("Utilisateur non identifié")
    try:
        user_id = int(raw)
    except ValueError:
        raise PermissionDenied("Utilisateur non identifié") from None
    user = db.session.get(User, user_id)
    if user is None or not user.active:
        raise PermissionDenied("Utilisateur inconnu ou désactivé")
    return user
