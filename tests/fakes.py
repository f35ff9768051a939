"""Shared fakes for tunnel tests: a manual clock, a scriptable transport and
a recording logger."""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from revtunnel.core.domain.models import PortRange, TunnelConfig


class FakeTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """SchedulerPort whose clock only moves on ``advance()``."""

    def __init__(self) -> None:
        self._now = 0.0
        self._timers: list[FakeTimer] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self._now + delay, callback)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running due timers in order."""
        target = self._now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self._timers.remove(timer)
            self._now = timer.when
            timer.callback()
        self._now = target

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self._timers if not t.cancelled]


class FakeHandle:
    def __init__(self, listener, *, confirm_terminate: bool) -> None:
        self.listener = listener
        self.confirm_terminate = confirm_terminate
        self.terminate_calls: list[bool] = []

    def terminate(self, forceful: bool = False) -> None:
        self.terminate_calls.append(forceful)
        if self.confirm_terminate and not forceful:
            self.listener.on_closed(0, None)

    # Drive the session from a test
    def emit(self, text: str) -> None:
        self.listener.on_status(text)

    def fail(self, error: BaseException) -> None:
        self.listener.on_error(error)

    def exit(self, code: Optional[int] = 0, signal: Optional[str] = None) -> None:
        self.listener.on_closed(code, signal)


SUCCESS_LINE = "debug1: remote forward success for: listen 8080, connect localhost:3000"
FAILURE_LINE = "Warning: remote port forwarding failed for listen port 8080"
KILLED_LINE = "Killed by signal 15."


class FakeTransport:
    """TransportPort that records starts.

    ``script`` lists, per start, the status lines emitted synchronously
    from ``start``; the last entry is reused once the list runs out.
    """

    def __init__(self, *, script: list[list[str]] | None = None, confirm_terminate: bool = True) -> None:
        self.script = script
        self.confirm_terminate = confirm_terminate
        self.starts: list[dict[str, Any]] = []
        self.handles: list[FakeHandle] = []

    @property
    def last_handle(self) -> FakeHandle:
        return self.handles[-1]

    def start(
        self,
        *,
        remote_port: int,
        local_port: int,
        host: str,
        user: Optional[str],
        options: Mapping[str, Any],
        listener,
    ) -> FakeHandle:
        self.starts.append({
            "remote_port": remote_port,
            "local_port": local_port,
            "host": host,
            "user": user,
            "options": dict(options),
        })
        handle = FakeHandle(listener, confirm_terminate=self.confirm_terminate)
        self.handles.append(handle)
        if self.script:
            lines = self.script[min(len(self.starts), len(self.script)) - 1]
            for line in lines:
                listener.on_status(line)
        return handle


class RaisingTransport:
    def start(self, **kwargs):
        raise OSError("cannot spawn")


class FakeLogger:
    """LoggerPort that records every call."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, message: str, kwargs: dict[str, Any]) -> None:
        self.records.append((level, message, kwargs))

    def debug(self, message: str, **kwargs) -> None:
        self._record("debug", message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._record("info", message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._record("warning", message, kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        self._record("error", message, kwargs)

    def exception(self, message: str, **kwargs) -> None:
        self._record("exception", message, kwargs)

    def messages(self, message: str) -> list[dict[str, Any]]:
        return [kw for _, m, kw in self.records if m == message]


def make_config(**overrides: Any) -> TunnelConfig:
    values: dict[str, Any] = {
        "host": "tunnel.example.com",
        "ports": PortRange(min=8000, max=8100),
        "local_port": 3000,
        "user": "deploy",
    }
    values.update(overrides)
    return TunnelConfig(**values)


class OpenThenExitTransport(FakeTransport):
    """Reports the scripted status lines, then exits cleanly right away."""

    def start(self, **kwargs):
        handle = super().start(**kwargs)
        kwargs["listener"].on_closed(0, None)
        return handle
