from __future__ import annotations

import threading
from typing import Callable

from ..ports import SchedulerPort, TimerHandle


class ActivityWatcher:
    """Idle timer that calls ``on_idle`` once ``timeout`` seconds pass
    without an ``update()``.

    Instead of resetting a timer on every update, a tick runs every
    ``timeout / 2`` and compares against the last activity timestamp, so
    ``update()`` stays a single assignment and detection lags the real
    deadline by at most half an interval.
    """

    def __init__(
        self,
        timeout: float,
        on_idle: Callable[[], None],
        *,
        scheduler: SchedulerPort,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive: {timeout}")
        self._timeout = timeout
        self._on_idle = on_idle
        self._scheduler = scheduler
        self._timer: TimerHandle | None = None
        self._stopped = False
        self._lock = threading.Lock()
        self._last_update = scheduler.now()
        self._started_at = self._last_update

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def running(self) -> bool:
        return self._timer is not None

    def update(self) -> None:
        self._last_update = self._scheduler.now()

    def start(self) -> None:
        """Arm the first tick. The idle deadline counts from here or from
        the last ``update()``, whichever is later."""
        with self._lock:
            if self._timer is not None or self._stopped:
                return
            self._started_at = self._scheduler.now()
            self._arm()

    def _arm(self) -> None:
        self._timer = self._scheduler.call_later(self._timeout / 2, self._tick)

    def stop(self) -> None:
        """Cancel the pending tick; the watcher never fires afterwards."""
        with self._lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _tick(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._timer = None
            last_activity = max(self._last_update, self._started_at)
            idle = self._scheduler.now() - last_activity >= self._timeout
            if not idle:
                self._arm()

        if idle:
            self._on_idle()
