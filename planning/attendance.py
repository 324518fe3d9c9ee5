"""Attendance marking.

There is at most one record per (enrollment, level, session): marking again
overwrites the previous status, so corrections are plain re-marks.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .errors import InvalidTransition, NotFound, ValidationError
from .extensions import db
from .lookups import get_or_raise
from .models import AttendanceRecord, AttendanceStatus, Enrollment, Seance, SeanceStatus, User, utcnow
from .roles import require_manager, require_seance_actor
from .structure import resolve_session


logger = logging.getLogger(__name__)

MARKABLE_STATUSES = frozenset({SeanceStatus.IN_PROGRESS.value, SeanceStatus.COMPLETED.value})


def parse_status(value: Any) -> AttendanceStatus:
    try:
        return AttendanceStatus(str(value).upper())
    except ValueError:
        raise ValidationError(
            f"Statut de présence invalide: {value!r} (PRESENT, ABSENT ou EXCUSED)", field="status"
        ) from None


def find_record(enrollment_id: int, level_number: int, session_number: int) -> Optional[AttendanceRecord]:
    return AttendanceRecord.query.filter_by(
        enrollment_id=enrollment_id,
        level_number=level_number,
        session_number=session_number,
    ).first()


def upsert_record(
    enrollment: Enrollment,
    level_number: int,
    session_number: int,
    status: AttendanceStatus,
    marked_by: Optional[User] = None,
) -> AttendanceRecord:
    record = find_record(enrollment.id, level_number, session_number)
    if record is None:
        record = AttendanceRecord(
            enrollment_id=enrollment.id,
            level_number=level_number,
            session_number=session_number,
        )
        db.session.add(record)
    record.status = status.value
    record.marked_at = utcnow()
    record.marked_by_id = marked_by.id if marked_by is not None else None
    return record


def _enrollment_for(student_id: int, training_id: int) -> Enrollment:
    enrollment = Enrollment.query.filter_by(student_id=student_id, training_id=training_id).first()
    if enrollment is None:
        raise NotFound(
            f"L'élève {student_id} n'est pas inscrit à cette formation",
            entity="Inscription",
            studentId=student_id,
        )
    return enrollment


def mark_attendance(seance_id: int, records: Iterable[dict[str, Any]], actor: User) -> list[AttendanceRecord]:
    """Mark the attendance of a started or finished seance.

    ``records`` is a list of ``{"student_id": ..., "status": ...}``. Every
    entry is validated before anything is written.
    """

    seance = get_or_raise(Seance, seance_id, "Séance")
    require_seance_actor(actor, seance)
    if seance.status not in MARKABLE_STATUSES:
        raise InvalidTransition(
            "La présence ne peut être saisie que pour une séance démarrée ou terminée",
            status=seance.status,
        )
    roster = {student.id for student in seance.group.students}
    parsed: list[tuple[Enrollment, AttendanceStatus]] = []
    for entry in records:
        student_id = entry.get("student_id")
        if student_id is None:
            raise ValidationError("Identifiant d'élève manquant", field="studentId")
        if student_id not in roster:
            raise ValidationError(
                f"L'élève {student_id} ne fait pas partie du groupe de cette séance",
                field="studentId",
                studentId=student_id,
            )
        parsed.append((_enrollment_for(student_id, seance.training_id), parse_status(entry.get("status"))))

    saved = [
        upsert_record(enrollment, seance.level_number, seance.session_number, status, actor)
        for enrollment, status in parsed
    ]
    db.session.commit()
    logger.info("Attendance marked for seance %s: %s record(s) by user %s", seance.id, len(saved), actor.id)
    return saved


def mark_session(
    enrollment_id: int,
    level_number: int,
    session_number: int,
    status: Any,
    actor: User,
) -> AttendanceRecord:
    """Correct a single record from the enrollment side (e.g. ABSENT to EXCUSED)."""

    require_manager(actor)
    enrollment = get_or_raise(Enrollment, enrollment_id, "Inscription")
    resolve_session(enrollment.training, level_number, session_number)
    record = upsert_record(enrollment, level_number, session_number, parse_status(status), actor)
    db.session.commit()
    logger.info(
        "Attendance corrected: enrollment=%s level=%s session=%s status=%s",
        enrollment.id,
        level_number,
        session_number,
        record.status,
    )
    return record


def mark_group_absent(seance: Seance, marked_by: Optional[User] = None) -> int:
    """Pre-fill ABSENT for rostered students with no record yet (not committed)."""

    created = 0
    for student in seance.group.students:
        enrollment = Enrollment.query.filter_by(
            student_id=student.id, training_id=seance.training_id
        ).first()
        if enrollment is None:
            continue
        if find_record(enrollment.id, seance.level_number, seance.session_number) is not None:
            continue
        upsert_record(
            enrollment,
            seance.level_number,
            seance.session_number,
            AttendanceStatus.ABSENT,
            marked_by,
        )
        created += 1
    return created


def session_sheet(seance_id: int) -> list[dict[str, Any]]:
    seance = get_or_raise(Seance, seance_id, "Séance")
    sheet = []
    for student in seance.group.students:
        enrollment = Enrollment.query.filter_by(
            student_id=student.id, training_id=seance.training_id
        ).first()
        record = (
            find_record(enrollment.id, seance.level_number, seance.session_number)
            if enrollment is not None
            else None
        )
        sheet.append(
            {
                "studentId": student.id,
                "studentFirstName": student.first_name,
                "studentLastName": student.last_name,
                "enrollmentId": enrollment.id if enrollment is not None else None,
                "status": record.status if record is not None else None,
            }
        )
    return sheet
