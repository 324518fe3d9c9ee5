"""Trainer availability: is a trainer free for a given window?

Windows are half-open ``[start, end)``: a seance ending at 10:30 does not
conflict with one starting at 10:30.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Optional

from .errors import InvalidTimeRange, SchedulingConflict
from .models import Seance, SeanceStatus


logger = logging.getLogger(__name__)

# Seances in these states no longer occupy the trainer.
RELEASED_STATUSES = frozenset({SeanceStatus.CANCELLED.value, SeanceStatus.REPORTED.value})


@dataclass(frozen=True)
class AvailabilityQuery:
    trainer_id: int
    date: date
    start_time: time
    end_time: time
    exclude_seance_id: Optional[int] = None


def overlaps(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    return start_a < end_b and start_b < end_a


def first_overlap(
    seances: Iterable[Seance],
    start: time,
    end: time,
    *,
    ignore_seance_id: Optional[int] = None,
) -> Optional[Seance]:
    for seance in seances:
        if ignore_seance_id is not None and seance.id == ignore_seance_id:
            continue
        if seance.status in RELEASED_STATUSES:
            continue
        if overlaps(seance.start_time, seance.end_time, start, end):
            return seance
    return None


def trainer_day_seances(trainer_id: int, day: date, *, for_update: bool = False) -> list[Seance]:
    """Seances of a trainer on one day.

    ``for_update`` turns the read into a locking read, which sees the latest
    committed rows rather than the transaction's snapshot.
    """

    query = Seance.query.filter(Seance.trainer_id == trainer_id, Seance.date == day)
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.order_by(Seance.start_time).all()


def find_conflict(
    trainer_id: int,
    day: date,
    start: time,
    end: time,
    exclude_seance_id: Optional[int] = None,
    *,
    for_update: bool = False,
) -> Optional[Seance]:
    """Return the first seance of ``trainer_id`` overlapping the window, if any."""

    if end <= start:
        raise InvalidTimeRange()
    return first_overlap(
        trainer_day_seances(trainer_id, day, for_update=for_update),
        start,
        end,
        ignore_seance_id=exclude_seance_id,
    )


def is_trainer_available(query: AvailabilityQuery) -> bool:
    conflict = find_conflict(
        query.trainer_id,
        query.date,
        query.start_time,
        query.end_time,
        exclude_seance_id=query.exclude_seance_id,
    )
    if conflict is not None:
        logger.debug(
            "Trainer %s busy on %s %s-%s (seance %s)",
            query.trainer_id,
            query.date,
            query.start_time,
            query.end_time,
            conflict.id,
        )
    return conflict is None


def ensure_available(
    trainer_id: int,
    day: date,
    start: time,
    end: time,
    exclude_seance_id: Optional[int] = None,
    *,
    for_update: bool = False,
) -> None:
    conflict = find_conflict(
        trainer_id, day, start, end, exclude_seance_id=exclude_seance_id, for_update=for_update
    )
    if conflict is None:
        return
    raise SchedulingConflict(
        "Le formateur est déjà occupé le {day} de {start} à {end} (séance: {title})".format(
            day=day.isoformat(),
            start=conflict.start_time.strftime("%H:%M"),
            end=conflict.end_time.strftime("%H:%M"),
            title=conflict.title,
        ),
        conflict=conflict.window_payload(),
    )
