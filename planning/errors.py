"""Domain errors raised by the planning services.

Every error carries an HTTP status and a machine readable ``error_code`` so
the API layer can turn it into a JSON response without inspecting the
message. Messages are user facing and written in French.
"""
from __future__ import annotations

from typing import Any


class PlanningError(Exception):
    status_code = 400
    error_code = "planning_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def payload(self) -> dict[str, Any]:
        return {"error": self.error_code, "message": self.message, **self.details}


class ValidationError(PlanningError):
    error_code = "validation_error"


class InvalidTimeRange(ValidationError):
    error_code = "invalid_time_range"

    def __init__(self, message: str = "L'heure de fin doit être après l'heure de début", **details: Any) -> None:
        super().__init__(message, **details)


class PastDate(ValidationError):
    error_code = "past_date"

    def __init__(self, message: str = "La date de la séance ne peut pas être dans le passé", **details: Any) -> None:
        super().__init__(message, **details)


class PermissionDenied(PlanningError):
    status_code = 403
    error_code = "permission_denied"


class NotFound(PlanningError):
    status_code = 404
    error_code = "not_found"

    @classmethod
    def for_entity(cls, label: str, identifier: object) -> "NotFound":
        return cls(f"{label} introuvable (id={identifier})", entity=label, id=identifier)


class SchedulingConflict(PlanningError):
    """The trainer already has a seance overlapping the requested window.

    Not transient: callers must not retry without changing the request.
    """

    status_code = 409
    error_code = "scheduling_conflict"


class InvalidTransition(PlanningError):
    status_code = 409
    error_code = "invalid_transition"


class AlreadyExists(PlanningError):
    status_code = 409
    error_code = "already_exists"
