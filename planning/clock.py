from __future__ import annotations

from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from flask import current_app


Clock = Callable[[], datetime]


def zone_now(tz_name: str) -> datetime:
    """Naive wall-clock time in ``tz_name``."""
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def app_clock() -> Clock:
    override = current_app.config.get("PLANNING_CLOCK")
    if override is not None:
        return override
    tz_name = current_app.config.get("TIMEZONE", "UTC")
    return lambda: zone_now(tz_name)
