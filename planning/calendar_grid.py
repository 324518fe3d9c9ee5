"""Month grid used to lay out seances on a calendar.

The grid always has 42 cells (6 weeks × 7 days), Monday first. Dates are
built with calendar arithmetic on ``datetime.date`` so the same
``(year, month)`` yields the same cells whatever the server timezone.
"""
from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from .errors import ValidationError
from .models import Seance


GRID_WEEKS = 6
GRID_CELLS = GRID_WEEKS * 7
# The trailing days of December 9999 would fall past date.max.
MAX_YEAR = 9998


@dataclass(frozen=True)
class CalendarCell:
    date: date
    is_current_month: bool

    @property
    def iso(self) -> str:
        return self.date.isoformat()

    @property
    def day(self) -> int:
        return self.date.day


def _check_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError(f"Mois invalide: {month}", field="month")
    if not 1 <= year <= MAX_YEAR:
        raise ValidationError(f"Année invalide: {year}", field="year")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    _check_month(year, month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_grid(year: int, month: int) -> list[CalendarCell]:
    first, last = month_bounds(year, month)
    leading = first.weekday()  # Monday == 0
    cells = [
        CalendarCell(first - timedelta(days=offset), False)
        for offset in range(leading, 0, -1)
    ]
    cells.extend(
        CalendarCell(date(year, month, day), True) for day in range(1, last.day + 1)
    )
    following = 1
    while len(cells) < GRID_CELLS:
        cells.append(CalendarCell(last + timedelta(days=following), False))
        following += 1
    return cells


def grid_bounds(year: int, month: int) -> tuple[date, date]:
    cells = month_grid(year, month)
    return cells[0].date, cells[-1].date


def group_by_date(seances: Iterable[Seance]) -> dict[str, list[Seance]]:
    buckets: dict[str, list[Seance]] = defaultdict(list)
    for seance in seances:
        buckets[seance.date.isoformat()].append(seance)
    for bucket in buckets.values():
        bucket.sort(key=lambda seance: (seance.start_time, seance.id or 0))
    return dict(buckets)


def month_view(year: int, month: int, seances: Iterable[Seance]) -> list[tuple[CalendarCell, list[Seance]]]:
    by_date = group_by_date(seances)
    return [(cell, by_date.get(cell.iso, [])) for cell in month_grid(year, month)]
