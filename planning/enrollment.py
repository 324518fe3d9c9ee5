"""Enrollments and group rosters.

Adding a student to a group enrolls them in the group's training. Students
who join after some of the group's seances already took place get those
sessions excused so the late start does not block their certificate.
"""
from __future__ import annotations

import logging
from datetime import time
from typing import Iterable, Optional

from .errors import AlreadyExists, ValidationError
from .extensions import db
from .lookups import get_or_raise, get_trainer
from .models import (
    AttendanceRecord,
    AttendanceStatus,
    Enrollment,
    Group,
    Seance,
    SeanceStatus,
    Student,
    Training,
)


logger = logging.getLogger(__name__)


def find_enrollment(student_id: int, training_id: int) -> Optional[Enrollment]:
    return Enrollment.query.filter_by(student_id=student_id, training_id=training_id).first()


def _excuse_past_sessions(enrollment: Enrollment) -> int:
    if enrollment.group_id is None:
        return 0
    completed = (
        Seance.query.filter_by(group_id=enrollment.group_id, status=SeanceStatus.COMPLETED.value)
        .order_by(Seance.date, Seance.start_time)
        .all()
    )
    seen: set[tuple[int, int]] = set()
    for seance in completed:
        key = (seance.level_number, seance.session_number)
        if key in seen:
            continue
        seen.add(key)
        enrollment.records.append(
            AttendanceRecord(
                level_number=seance.level_number,
                session_number=seance.session_number,
                status=AttendanceStatus.EXCUSED.value,
            )
        )
    return len(seen)


def _create_enrollment(student: Student, training: Training, group: Optional[Group]) -> Enrollment:
    enrollment = Enrollment(student=student, training=training, group=group)
    db.session.add(enrollment)
    db.session.flush()
    excused = _excuse_past_sessions(enrollment)
    logger.info(
        "Enrollment created: student=%s training=%s group=%s auto_excused=%s",
        student.id,
        training.id,
        group.id if group is not None else None,
        excused,
    )
    return enrollment


def enroll(student_id: int, training_id: int, group_id: Optional[int] = None) -> Enrollment:
    student = get_or_raise(Student, student_id, "Élève")
    training = get_or_raise(Training, training_id, "Formation")
    group = None
    if group_id is not None:
        group = get_or_raise(Group, group_id, "Groupe")
        if group.training_id != training.id:
            raise ValidationError("Le groupe n'appartient pas à cette formation", field="groupId")
    if find_enrollment(student.id, training.id) is not None:
        raise AlreadyExists("L'élève est déjà inscrit à cette formation")
    enrollment = _create_enrollment(student, training, group)
    db.session.commit()
    return enrollment


def _auto_enroll(student: Student, group: Group) -> Optional[Enrollment]:
    if find_enrollment(student.id, group.training_id) is not None:
        logger.debug(
            "Student %s already enrolled in training %s, auto-enrollment skipped",
            student.id,
            group.training_id,
        )
        return None
    return _create_enrollment(student, group.training, group)


def set_roster(group: Group, student_ids: Iterable[int]) -> list[Enrollment]:
    """Replace the roster and enroll newcomers; returns the new enrollments."""

    wanted: list[Student] = []
    for student_id in dict.fromkeys(student_ids):
        wanted.append(get_or_raise(Student, student_id, "Élève"))
    current_ids = {student.id for student in group.students}
    group.students = wanted
    db.session.flush()
    return [
        enrollment
        for enrollment in (
            _auto_enroll(student, group) for student in wanted if student.id not in current_ids
        )
        if enrollment is not None
    ]


def add_student(group_id: int, student_id: int) -> Group:
    group = get_or_raise(Group, group_id, "Groupe")
    student = get_or_raise(Student, student_id, "Élève")
    if student not in group.students:
        group.students.append(student)
        db.session.flush()
    _auto_enroll(student, group)
    db.session.commit()
    return group


def remove_student(group_id: int, student_id: int) -> Group:
    """Drop a student from the roster; their enrollment and attendance are kept."""

    group = get_or_raise(Group, group_id, "Groupe")
    group.students = [student for student in group.students if student.id != student_id]
    db.session.commit()
    return group


def _check_schedule_hint(day_of_week: Optional[int], start: Optional[time], end: Optional[time]) -> None:
    if day_of_week is not None and not 0 <= day_of_week <= 6:
        raise ValidationError("Le jour doit être compris entre 0 (lundi) et 6 (dimanche)", field="dayOfWeek")
    if start is not None and end is not None and end <= start:
        raise ValidationError("L'heure de fin doit être après l'heure de début", field="endTime")


def create_group(
    name: str,
    training_id: int,
    *,
    day_of_week: Optional[int] = None,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    trainer_id: Optional[int] = None,
    student_ids: Iterable[int] = (),
) -> Group:
    training = get_or_raise(Training, training_id, "Formation")
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Le nom du groupe est obligatoire", field="name")
    _check_schedule_hint(day_of_week, start_time, end_time)
    if trainer_id is not None:
        get_trainer(trainer_id)
    group = Group(
        name=cleaned,
        training=training,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        trainer_id=trainer_id,
    )
    db.session.add(group)
    db.session.flush()
    set_roster(group, student_ids)
    db.session.commit()
    logger.info("Group created: id=%s name=%s training=%s", group.id, group.name, training.id)
    return group


def update_group(group_id: int, changes: dict) -> Group:
    """Apply a partial update; the training of a group cannot change."""

    group = get_or_raise(Group, group_id, "Groupe")
    if "name" in changes:
        cleaned = (changes["name"] or "").strip()
        if not cleaned:
            raise ValidationError("Le nom du groupe est obligatoire", field="name")
        group.name = cleaned
    for key in ("day_of_week", "start_time", "end_time"):
        if key in changes:
            setattr(group, key, changes[key])
    _check_schedule_hint(group.day_of_week, group.start_time, group.end_time)
    if "trainer_id" in changes:
        if changes["trainer_id"] is not None:
            get_trainer(changes["trainer_id"])
        group.trainer_id = changes["trainer_id"]
    if changes.get("student_ids") is not None:
        set_roster(group, changes["student_ids"])
    db.session.commit()
    return group
