"""Seance lifecycle: planning, edition, status transitions and reports.

Status machine::

    PLANNED -> IN_PROGRESS -> COMPLETED
    PLANNED -> REPORTED
    PLANNED -> CANCELLED

COMPLETED, REPORTED and CANCELLED are terminal. A report never spawns a
replacement seance; rescheduling is a new, manual ``create``.

The availability check that gates a write is always re-run here, under a
per-(trainer, date) lock and with a locking read of the trainer's day,
whatever an advisory check told the caller earlier.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterator, Optional

from .attendance import mark_group_absent
from .availability import ensure_available
from .clock import Clock, app_clock
from .errors import InvalidTimeRange, InvalidTransition, PastDate, ValidationError
from .extensions import db
from .lookups import get_or_raise, get_trainer
from .models import (
    Group,
    NotificationType,
    Seance,
    SeanceStatus,
    SessionReport,
    Training,
    User,
)
from .notifications import NotificationDispatcher, SchedulingEvent
from .roles import require_manager, require_seance_actor
from .structure import SessionSlot, resolve_session


logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Séance {level}.{session}"

ALLOWED_TRANSITIONS: dict[SeanceStatus, frozenset[SeanceStatus]] = {
    SeanceStatus.PLANNED: frozenset(
        {SeanceStatus.IN_PROGRESS, SeanceStatus.REPORTED, SeanceStatus.CANCELLED}
    ),
    SeanceStatus.IN_PROGRESS: frozenset({SeanceStatus.COMPLETED}),
    SeanceStatus.COMPLETED: frozenset(),
    SeanceStatus.REPORTED: frozenset(),
    SeanceStatus.CANCELLED: frozenset(),
}

STATUS_LABELS = {
    SeanceStatus.PLANNED: "Planifiée",
    SeanceStatus.IN_PROGRESS: "En cours",
    SeanceStatus.COMPLETED: "Terminée",
    SeanceStatus.REPORTED: "Reportée",
    SeanceStatus.CANCELLED: "Annulée",
}


@dataclass(frozen=True)
class SeanceRequest:
    training_id: int
    group_id: int
    trainer_id: int
    date: date
    start_time: time
    end_time: time
    level_number: int
    session_number: int
    title: Optional[str] = None

    def resolved_title(self) -> str:
        cleaned = (self.title or "").strip()
        return cleaned or DEFAULT_TITLE.format(level=self.level_number, session=self.session_number)


def can_transition(source: SeanceStatus, target: SeanceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[source]


def ensure_transition(seance: Seance, target: SeanceStatus) -> None:
    source = seance.status_kind
    if not can_transition(source, target):
        raise InvalidTransition(
            f"Impossible de passer la séance de « {STATUS_LABELS[source]} » à « {STATUS_LABELS[target]} »",
            source=source.value,
            target=target.value,
        )


class TrainerDayLocks:
    """Process-wide locks serialising check-then-write per (trainer, date)."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[int, date], threading.Lock] = {}

    def lock_for(self, trainer_id: int, day: date) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((trainer_id, day), threading.Lock())

    @contextmanager
    def hold(self, *keys: tuple[int, date]) -> Iterator[None]:
        # Stable ordering so two moves between the same keys cannot deadlock.
        ordered = sorted(set(keys))
        acquired: list[threading.Lock] = []
        try:
            for trainer_id, day in ordered:
                lock = self.lock_for(trainer_id, day)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


trainer_day_locks = TrainerDayLocks()


class SeanceScheduler:
    def __init__(
        self,
        notifier: Optional[NotificationDispatcher] = None,
        clock: Optional[Clock] = None,
        locks: Optional[TrainerDayLocks] = None,
    ) -> None:
        self.notifier = notifier or NotificationDispatcher()
        self.clock = clock or datetime.now
        self.locks = locks or trainer_day_locks

    @classmethod
    def for_app(cls) -> "SeanceScheduler":
        return cls(clock=app_clock())

    def today(self) -> date:
        return self.clock().date()

    # Validation -----------------------------------------------------
    def check_date(self, day: date) -> None:
        if day < self.today():
            raise PastDate(field="date")

    @staticmethod
    def check_time_range(start: time, end: time) -> None:
        if end <= start:
            raise InvalidTimeRange(field="endTime")

    def _resolve_references(self, request: SeanceRequest) -> tuple[Training, Group, SessionSlot]:
        training = get_or_raise(Training, request.training_id, "Formation")
        group = get_or_raise(Group, request.group_id, "Groupe")
        get_trainer(request.trainer_id)
        if group.training_id != training.id:
            raise ValidationError("Le groupe n'appartient pas à cette formation", field="groupId")
        slot = resolve_session(training, request.level_number, request.session_number)
        return training, group, slot

    def _validate(self, request: SeanceRequest) -> SessionSlot:
        _, _, slot = self._resolve_references(request)
        self.check_date(request.date)
        self.check_time_range(request.start_time, request.end_time)
        return slot

    @staticmethod
    def _apply(seance: Seance, request: SeanceRequest, slot: SessionSlot) -> None:
        seance.training_id = request.training_id
        seance.session_id = slot.session_id
        seance.group_id = request.group_id
        seance.trainer_id = request.trainer_id
        seance.date = request.date
        seance.start_time = request.start_time
        seance.end_time = request.end_time
        seance.level_number = request.level_number
        seance.session_number = request.session_number
        seance.title = request.resolved_title()

    # Planning -------------------------------------------------------
    def create(self, request: SeanceRequest, actor: User) -> Seance:
        require_manager(actor)
        slot = self._validate(request)
        with self.locks.hold((request.trainer_id, request.date)):
            try:
                get_trainer(request.trainer_id, for_update=True)
                ensure_available(
                    request.trainer_id,
                    request.date,
                    request.start_time,
                    request.end_time,
                    for_update=True,
                )
                seance = Seance(status=SeanceStatus.PLANNED.value)
                self._apply(seance, request, slot)
                db.session.add(seance)
                db.session.flush()
                self.notifier.notify(SchedulingEvent(NotificationType.SEANCE_ASSIGNED, seance))
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
        logger.info(
            "Seance planned: id=%s trainer=%s %s %s-%s",
            seance.id,
            seance.trainer_id,
            seance.date,
            seance.start_time,
            seance.end_time,
        )
        return seance

    def update(self, seance_id: int, request: SeanceRequest, actor: User) -> Seance:
        require_manager(actor)
        seance = get_or_raise(Seance, seance_id, "Séance")
        if seance.status_kind is not SeanceStatus.PLANNED:
            raise InvalidTransition(
                "Seule une séance planifiée peut être modifiée", status=seance.status
            )
        slot = self._validate(request)
        keys = {(seance.trainer_id, seance.date), (request.trainer_id, request.date)}
        with self.locks.hold(*keys):
            try:
                get_trainer(request.trainer_id, for_update=True)
                ensure_available(
                    request.trainer_id,
                    request.date,
                    request.start_time,
                    request.end_time,
                    exclude_seance_id=seance.id,
                    for_update=True,
                )
                previous_trainer_id = seance.trainer_id
                self._apply(seance, request, slot)
                db.session.flush()
                self.notifier.notify(
                    SchedulingEvent(
                        NotificationType.SEANCE_UPDATED,
                        seance,
                        previous_trainer_id=previous_trainer_id,
                    )
                )
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
        logger.info("Seance updated: id=%s", seance.id)
        return seance

    def delete(self, seance_id: int, actor: User) -> None:
        require_manager(actor)
        seance = get_or_raise(Seance, seance_id, "Séance")
        db.session.delete(seance)
        db.session.commit()
        logger.info("Seance deleted: id=%s", seance_id)

    # Status machine -------------------------------------------------
    def start(self, seance_id: int, actor: User) -> Seance:
        seance = get_or_raise(Seance, seance_id, "Séance")
        require_seance_actor(actor, seance)
        ensure_transition(seance, SeanceStatus.IN_PROGRESS)
        if self.clock() < seance.scheduled_start():
            raise InvalidTransition(
                "Impossible de démarrer avant l'heure prévue ({day} à {start})".format(
                    day=seance.date.strftime("%d/%m/%Y"),
                    start=seance.start_time.strftime("%H:%M"),
                ),
                source=seance.status,
                target=SeanceStatus.IN_PROGRESS.value,
            )
        seance.status = SeanceStatus.IN_PROGRESS.value
        absent = mark_group_absent(seance, actor)
        db.session.commit()
        logger.info("Seance %s started by user %s (%s student(s) pre-marked absent)", seance.id, actor.id, absent)
        return seance

    def complete(self, seance_id: int, actor: User) -> Seance:
        seance = get_or_raise(Seance, seance_id, "Séance")
        require_seance_actor(actor, seance)
        ensure_transition(seance, SeanceStatus.COMPLETED)
        seance.status = SeanceStatus.COMPLETED.value
        db.session.commit()
        logger.info("Seance %s completed by user %s", seance.id, actor.id)
        return seance

    def cancel(self, seance_id: int, actor: User) -> Seance:
        require_manager(actor)
        seance = get_or_raise(Seance, seance_id, "Séance")
        ensure_transition(seance, SeanceStatus.CANCELLED)
        seance.status = SeanceStatus.CANCELLED.value
        self.notifier.notify(SchedulingEvent(NotificationType.SEANCE_CANCELLED, seance))
        db.session.commit()
        logger.info("Seance %s cancelled by user %s", seance.id, actor.id)
        return seance

    def change_status(self, seance_id: int, status: SeanceStatus, actor: User) -> Seance:
        if status is SeanceStatus.IN_PROGRESS:
            return self.start(seance_id, actor)
        if status is SeanceStatus.COMPLETED:
            return self.complete(seance_id, actor)
        if status is SeanceStatus.CANCELLED:
            return self.cancel(seance_id, actor)
        if status is SeanceStatus.REPORTED:
            raise InvalidTransition(
                "Le report d'une séance passe par une demande de report motivée",
                target=status.value,
            )
        raise InvalidTransition("Une séance ne peut pas revenir à l'état planifié", target=status.value)

    # Reports --------------------------------------------------------
    def report(
        self,
        seance_id: int,
        actor: User,
        reason: str,
        suggested_date: Optional[date] = None,
    ) -> SessionReport:
        seance = get_or_raise(Seance, seance_id, "Séance")
        require_seance_actor(actor, seance)
        ensure_transition(seance, SeanceStatus.REPORTED)
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationError("Le motif du report est obligatoire", field="reason")
        if suggested_date is not None and suggested_date < self.today():
            raise PastDate("La date suggérée ne peut pas être dans le passé", field="suggestedDate")

        seance.status = SeanceStatus.REPORTED.value
        report = SessionReport(
            seance=seance,
            trainer_id=seance.trainer_id,
            reason=cleaned,
            suggested_date=suggested_date,
        )
        db.session.add(report)
        self.notifier.notify(
            SchedulingEvent(NotificationType.SEANCE_REPORTED, seance, reason=cleaned)
        )
        db.session.commit()
        logger.info(
            "Seance %s reported by user %s (suggested date: %s)",
            seance.id,
            actor.id,
            suggested_date,
        )
        return report

    @staticmethod
    def reports(seance_id: int) -> list[SessionReport]:
        seance = get_or_raise(Seance, seance_id, "Séance")
        return list(seance.reports)


def query_seances(
    *,
    day: Optional[date] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    trainer_id: Optional[int] = None,
    group_id: Optional[int] = None,
    training_id: Optional[int] = None,
) -> list[Seance]:
    query = Seance.query
    if day is not None:
        query = query.filter(Seance.date == day)
    if date_from is not None:
        query = query.filter(Seance.date >= date_from)
    if date_to is not None:
        query = query.filter(Seance.date <= date_to)
    if trainer_id is not None:
        query = query.filter(Seance.trainer_id == trainer_id)
    if group_id is not None:
        query = query.filter(Seance.group_id == group_id)
    if training_id is not None:
        query = query.filter(Seance.training_id == training_id)
    return query.order_by(Seance.date, Seance.start_time, Seance.id).all()
