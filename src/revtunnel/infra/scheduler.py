from __future__ import annotations

import threading
import time
from typing import Callable


class ThreadingScheduler:
    """SchedulerPort backed by daemon ``threading.Timer`` threads.

    Daemon timers never hold the interpreter open, so a pending grace
    window or idle tick of an abandoned session does not delay exit.
    """

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
