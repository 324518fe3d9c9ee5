"""Attendance roll-up into level validation and certificate eligibility.

A session counts as attended when its record is PRESENT or EXCUSED; ABSENT
and missing records do not. A level is validated when all of its sessions
are attended and the training is completed when every level is validated.
Eligibility for the certificate is exactly completion.

Progress is recomputed from the stored records on every call so a late
correction (ABSENT turned into EXCUSED) is reflected immediately.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .errors import NotFound
from .lookups import get_or_raise
from .models import AttendanceRecord, Enrollment
from .structure import structure_of


@dataclass(frozen=True)
class LevelProgress:
    level_number: int
    title: str
    validated: bool
    sessions_completed: int
    total_sessions: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "levelNumber": self.level_number,
            "title": self.title,
            "validated": self.validated,
            "sessionsCompleted": self.sessions_completed,
            "totalSessions": self.total_sessions,
        }


@dataclass(frozen=True)
class MissedSession:
    session_id: str
    level_number: int
    session_number: int
    session_title: str
    status: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "levelNumber": self.level_number,
            "sessionNumber": self.session_number,
            "sessionTitle": self.session_title,
            "status": self.status,
        }


@dataclass(frozen=True)
class StudentProgress:
    enrollment_id: int
    training_id: int
    levels_validated: int
    total_levels: int
    sessions_completed: int
    total_sessions: int
    levels: list[LevelProgress] = field(default_factory=list)
    missed_sessions: list[MissedSession] = field(default_factory=list)
    completed_at: Optional[datetime] = None

    @property
    def completed(self) -> bool:
        return self.levels_validated == self.total_levels and self.total_levels > 0

    @property
    def eligible_for_certificate(self) -> bool:
        return self.completed

    def as_dict(self) -> dict[str, Any]:
        return {
            "enrollmentId": self.enrollment_id,
            "trainingId": self.training_id,
            "levelsValidated": self.levels_validated,
            "totalLevels": self.total_levels,
            "sessionsCompleted": self.sessions_completed,
            "totalSessions": self.total_sessions,
            "completed": self.completed,
            "eligibleForCertificate": self.eligible_for_certificate,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "levels": [level.as_dict() for level in self.levels],
            "missedSessions": [missed.as_dict() for missed in self.missed_sessions],
        }


def compute_progress(enrollment: Enrollment) -> StudentProgress:
    layout = structure_of(enrollment.training)
    records = {
        (record.level_number, record.session_number): record
        for record in AttendanceRecord.query.filter_by(enrollment_id=enrollment.id).all()
    }

    levels: list[LevelProgress] = []
    missed: list[MissedSession] = []
    for level in layout.levels:
        attended = 0
        for slot in level.sessions:
            record = records.get((slot.level_number, slot.session_number))
            if record is not None and record.status_kind.attended:
                attended += 1
            elif record is not None:
                missed.append(
                    MissedSession(
                        session_id=slot.session_id,
                        level_number=slot.level_number,
                        session_number=slot.session_number,
                        session_title=slot.title,
                        status=record.status,
                    )
                )
        levels.append(
            LevelProgress(
                level_number=level.level_number,
                title=level.title,
                validated=attended == level.total_sessions,
                sessions_completed=attended,
                total_sessions=level.total_sessions,
            )
        )

    sessions_completed = sum(level.sessions_completed for level in levels)
    levels_validated = sum(1 for level in levels if level.validated)
    completed_at = None
    if levels and levels_validated == len(levels):
        completed_at = max(
            record.marked_at for record in records.values() if record.status_kind.attended
        )
    return StudentProgress(
        enrollment_id=enrollment.id,
        training_id=enrollment.training_id,
        levels_validated=levels_validated,
        total_levels=layout.total_levels,
        sessions_completed=sessions_completed,
        total_sessions=layout.total_sessions,
        levels=levels,
        missed_sessions=missed,
        completed_at=completed_at,
    )


def progress_for(student_id: int, training_id: int) -> StudentProgress:
    enrollment = Enrollment.query.filter_by(student_id=student_id, training_id=training_id).first()
    if enrollment is None:
        raise NotFound(
            "Aucune inscription pour cet élève et cette formation",
            entity="Inscription",
            studentId=student_id,
            trainingId=training_id,
        )
    return compute_progress(enrollment)


def certificate_status(enrollment_id: int) -> dict[str, Any]:
    enrollment = get_or_raise(Enrollment, enrollment_id, "Inscription")
    progress = compute_progress(enrollment)
    return {
        "enrollmentId": enrollment.id,
        "eligible": progress.eligible_for_certificate,
        "completedAt": progress.completed_at.isoformat() if progress.completed_at else None,
        "studentName": enrollment.student.display_name,
        "trainingTitle": enrollment.training.title,
    }
