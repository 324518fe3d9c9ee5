"""Debounced, cancellable availability checks for interactive callers.

This belongs to the calling layer (a form being filled in): each new query
restarts the debounce delay and supersedes any check still running, whose
result is then dropped instead of being delivered. The scheduler never uses
it; its own check at write time is authoritative.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .availability import AvailabilityQuery


logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.5

CheckFunction = Callable[[AvailabilityQuery], bool]
ResultCallback = Callable[[AvailabilityQuery, bool], None]


class AdvisoryAvailabilityCheck:
    def __init__(
        self,
        check: CheckFunction,
        on_result: ResultCallback,
        delay: float = DEFAULT_DELAY,
        on_error: Optional[Callable[[AvailabilityQuery, Exception], None]] = None,
    ) -> None:
        self._check = check
        self._on_result = on_result
        self._on_error = on_error
        self._delay = max(float(delay), 0.0)
        self._lock = threading.Lock()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._last_result: Optional[bool] = None

    @property
    def last_result(self) -> Optional[bool]:
        """Latest delivered answer; ``None`` while nothing is known."""
        with self._lock:
            return self._last_result

    def submit(self, query: AvailabilityQuery) -> int:
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._timer is not None:
                self._timer.cancel()
            self._last_result = None
            timer = threading.Timer(self._delay, self._run, args=(generation, query))
            timer.daemon = True
            self._timer = timer
            timer.start()
        return generation

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._last_result = None

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the pending timer (if any) has finished running."""
        with self._lock:
            timer = self._timer
        if timer is not None:
            timer.join(timeout)

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _run(self, generation: int, query: AvailabilityQuery) -> None:
        if not self._is_current(generation):
            return
        try:
            available = self._check(query)
        except Exception as exc:
            if not self._is_current(generation):
                return
            logger.warning("Advisory availability check failed: %s", exc)
            if self._on_error is not None:
                self._on_error(query, exc)
            return
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale availability result for %s", query)
                return
            self._last_result = available
        self._on_result(query, available)
