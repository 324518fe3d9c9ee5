"""Level/session layout of a training.

A training is made of ``DEFAULT_LEVELS`` levels of ``DEFAULT_SESSIONS_PER_LEVEL``
sessions unless an explicit structure was persisted when it was created.
Layouts are read far more often than written, so they are cached per
application and dropped whenever a structure is replaced or deleted.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from flask import current_app

from .errors import InvalidTransition, ValidationError
from .extensions import db
from .models import AttendanceRecord, Enrollment, Level, Training, TrainingSession, new_session_uid


DEFAULT_LEVELS = 4
DEFAULT_SESSIONS_PER_LEVEL = 6
LEVEL_TITLE = "Niveau {number}"
SESSION_TITLE = "Séance {number}"

_CACHE_KEY = "planning_structures"
_cache_lock = threading.Lock()


@dataclass(frozen=True)
class SessionSlot:
    level_number: int
    session_number: int
    session_id: str
    title: str


@dataclass(frozen=True)
class LevelLayout:
    level_number: int
    title: str
    sessions: tuple[SessionSlot, ...]

    @property
    def total_sessions(self) -> int:
        return len(self.sessions)


@dataclass(frozen=True)
class TrainingLayout:
    training_id: int
    levels: tuple[LevelLayout, ...]

    @property
    def total_levels(self) -> int:
        return len(self.levels)

    @property
    def total_sessions(self) -> int:
        return sum(level.total_sessions for level in self.levels)

    def slots(self) -> Iterable[SessionSlot]:
        for level in self.levels:
            yield from level.sessions

    def slot(self, level_number: int, session_number: int) -> SessionSlot:
        if not 1 <= level_number <= len(self.levels):
            raise ValidationError(
                f"Niveau {level_number} inexistant (1 à {len(self.levels)})",
                field="levelNumber",
            )
        sessions = self.levels[level_number - 1].sessions
        if not 1 <= session_number <= len(sessions):
            raise ValidationError(
                f"Séance {session_number} inexistante au niveau {level_number} (1 à {len(sessions)})",
                field="sessionNumber",
            )
        return sessions[session_number - 1]


def default_levels() -> list[dict[str, Any]]:
    """Return the default 4 × 6 structure with fresh session identifiers."""

    return [
        {
            "level_number": level_number,
            "title": LEVEL_TITLE.format(number=level_number),
            "sessions": [
                {
                    "session_number": session_number,
                    "title": SESSION_TITLE.format(number=session_number),
                    "session_uid": new_session_uid(),
                }
                for session_number in range(1, DEFAULT_SESSIONS_PER_LEVEL + 1)
            ],
        }
        for level_number in range(1, DEFAULT_LEVELS + 1)
    ]


def _normalise_levels(levels: Optional[list[dict[str, Any]]]) -> list[dict[str, Any]]:
    if not levels:
        return default_levels()
    normalised: list[dict[str, Any]] = []
    for level_index, raw_level in enumerate(levels, start=1):
        raw_sessions = raw_level.get("sessions") or []
        if not raw_sessions:
            raise ValidationError(f"Le niveau {level_index} ne contient aucune séance", field="levels")
        level_number = int(raw_level.get("level_number") or raw_level.get("levelNumber") or level_index)
        sessions = []
        for session_index, raw_session in enumerate(raw_sessions, start=1):
            session_number = int(
                raw_session.get("session_number") or raw_session.get("sessionNumber") or session_index
            )
            sessions.append(
                {
                    "session_number": session_number,
                    "title": (raw_session.get("title") or SESSION_TITLE.format(number=session_number)).strip(),
                    "session_uid": raw_session.get("session_uid")
                    or raw_session.get("sessionId")
                    or new_session_uid(),
                }
            )
        numbers = [session["session_number"] for session in sessions]
        if numbers != list(range(1, len(sessions) + 1)):
            raise ValidationError(
                f"Les séances du niveau {level_number} doivent être numérotées de 1 à {len(sessions)}",
                field="levels",
            )
        normalised.append(
            {
                "level_number": level_number,
                "title": (raw_level.get("title") or LEVEL_TITLE.format(number=level_number)).strip(),
                "sessions": sessions,
            }
        )
    numbers = [level["level_number"] for level in normalised]
    if numbers != list(range(1, len(normalised) + 1)):
        raise ValidationError(
            f"Les niveaux doivent être numérotés de 1 à {len(normalised)}", field="levels"
        )
    return normalised


def _attach_levels(training: Training, levels: list[dict[str, Any]]) -> None:
    for level_payload in levels:
        level = Level(level_number=level_payload["level_number"], title=level_payload["title"])
        for session_payload in level_payload["sessions"]:
            level.sessions.append(
                TrainingSession(
                    session_number=session_payload["session_number"],
                    title=session_payload["title"],
                    session_uid=session_payload["session_uid"],
                )
            )
        training.levels.append(level)
    training.total_sessions = sum(len(level["sessions"]) for level in levels)


def build_training(
    title: str,
    description: Optional[str] = None,
    levels: Optional[list[dict[str, Any]]] = None,
) -> Training:
    """Create a training with its persisted structure (not committed)."""

    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Le titre de la formation est obligatoire", field="title")
    training = Training(title=cleaned, description=description)
    _attach_levels(training, _normalise_levels(levels))
    db.session.add(training)
    return training


def has_attendance(training: Training) -> bool:
    return (
        db.session.query(AttendanceRecord.id)
        .join(Enrollment, AttendanceRecord.enrollment_id == Enrollment.id)
        .filter(Enrollment.training_id == training.id)
        .first()
        is not None
    )


def ensure_structure_mutable(training: Training) -> None:
    if has_attendance(training):
        raise InvalidTransition(
            "La structure de la formation ne peut plus être modifiée: des présences ont été saisies"
        )


def replace_structure(training: Training, levels: Optional[list[dict[str, Any]]]) -> None:
    ensure_structure_mutable(training)
    normalised = _normalise_levels(levels)
    training.levels.clear()
    db.session.flush()
    _attach_levels(training, normalised)
    invalidate_structure(training.id)


def _structure_cache() -> dict[int, TrainingLayout]:
    return current_app.extensions.setdefault(_CACHE_KEY, {})


def invalidate_structure(training_id: int) -> None:
    with _cache_lock:
        _structure_cache().pop(training_id, None)


def structure_of(training: Training) -> TrainingLayout:
    with _cache_lock:
        cached = _structure_cache().get(training.id)
    if cached is not None:
        return cached
    layout = TrainingLayout(
        training_id=training.id,
        levels=tuple(
            LevelLayout(
                level_number=level.level_number,
                title=level.title,
                sessions=tuple(
                    SessionSlot(
                        level_number=level.level_number,
                        session_number=session.session_number,
                        session_id=session.session_uid,
                        title=session.title,
                    )
                    for session in level.sessions
                ),
            )
            for level in training.levels
        ),
    )
    with _cache_lock:
        _structure_cache()[training.id] = layout
    return layout


def resolve_session(training: Training, level_number: int, session_number: int) -> SessionSlot:
    """Return the session template at ``levels[level-1].sessions[session-1]``."""

    return structure_of(training).slot(level_number, session_number)


def flat_sessions(training: Training) -> list[dict[str, Any]]:
    layout = structure_of(training)
    return [
        {
            "sessionId": slot.session_id,
            "levelNumber": level.level_number,
            "levelTitle": level.title,
            "sessionNumber": slot.session_number,
            "sessionTitle": slot.title,
        }
        for level in layout.levels
        for slot in level.sessions
    ]
