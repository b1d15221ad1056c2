"""Single cancellable timer that fires when an access token expires."""

from __future__ import annotations

import threading
import time
from functools import partial
from threading import RLock
from typing import Any, Callable

TimerFactory = Callable[[float, Callable[[], None]], Any]


class ExpiryTimer:
    """Owns at most one live timer; re-arming cancels the previous one."""

    def __init__(
        self,
        on_expire: Callable[[], None],
        *,
        clock: Callable[[], float] = time.time,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._on_expire = on_expire
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = RLock()
        self._timer: Any = None
        self._generation = 0

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self, expires_at: float) -> float:
        """Schedule ``on_expire`` at ``expires_at`` (epoch seconds); return the delay."""
        with self._lock:
            self._cancel_locked()
            delay = max(expires_at - self._clock(), 0.0)
            timer = self._timer_factory(delay, partial(self._fire, self._generation))
            timer.daemon = True
            self._timer = timer
            timer.start()
            return delay

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        # Bumping the generation also neutralizes a timer whose thread already started.
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            self._generation += 1
        self._on_expire()
