"""
Cooldown between chunk submissions to bound write pressure on the store.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PacerState:
    IDLE = "idle"
    WAITING = "waiting"


class Pacer:
    """
    Holds the pipeline between chunks; doubles the hold after a failed chunk.
    """

    def __init__(
        self,
        *,
        delay_seconds: float = 1.0,
        backoff_multiplier: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_delay = max(0.0, delay_seconds)
        self._backoff_multiplier = max(1.0, backoff_multiplier)
        self._sleep = sleep
        self._clock = clock
        self._next_delay = self._default_delay
        self._has_released = False
        self.state = PacerState.IDLE
        self.total_waited_seconds = 0.0

    @property
    def next_delay(self) -> float:
        """
        Delay the next ``wait()`` will apply (0 before the first chunk).
        """

        return self._next_delay if self._has_released else 0.0

    def wait(self) -> float:
        """
        Sleep the current delay before releasing the next chunk.

        The first call releases immediately. Returns the seconds actually held.
        """

        if not self._has_released:
            self._has_released = True
            return 0.0

        delay = self._next_delay
        if delay <= 0:
            return 0.0

        self.state = PacerState.WAITING
        started = self._clock()
        try:
            self._sleep(delay)
        finally:
            self.state = PacerState.IDLE
        waited = max(delay, self._clock() - started)
        self.total_waited_seconds += waited
        return waited

    def record_success(self) -> None:
        self._next_delay = self._default_delay

    def record_failure(self) -> None:
        self._next_delay = self._default_delay * self._backoff_multiplier
        logger.info(
            "Chunk failed; next chunk delayed %.2fs",
            self._next_delay,
        )
