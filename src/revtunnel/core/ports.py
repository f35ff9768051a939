from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class SchedulerPort(Protocol):
    """Port for clock and timer access.

    Everything time-dependent in the core goes through this port so that the
    grace window and idle detection can be driven by a fake clock.
    """

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds.

        Pending timers must never keep the process alive.
        """
        ...


class TransportListener(Protocol):
    """Receiver of the normalized signals a transport emits."""

    def on_status(self, text: str) -> None:
        """One diagnostic line / status message."""
        ...

    def on_error(self, error: BaseException) -> None:
        """The transport itself failed (e.g. could not be started)."""
        ...

    def on_closed(self, code: Optional[int], signal: Optional[str]) -> None:
        """Terminal event: the process or connection is gone."""
        ...


class TransportHandle(Protocol):
    def terminate(self, forceful: bool = False) -> None:
        """Request shutdown; graceful first, forceful on escalation."""
        ...


class TransportPort(Protocol):
    """Port for the mechanism that actually performs the reverse forward.

    Implementations: spawning the ``ssh`` client, or an in-process SSH
    library. ``start`` must not block on the network.
    """

    def start(
        self,
        *,
        remote_port: int,
        local_port: int,
        host: str,
        user: Optional[str],
        options: Mapping[str, Any],
        listener: TransportListener,
    ) -> TransportHandle:
        ...


class LoggerPort(Protocol):
    """Port for structured logging.

    Event names are passed as the message; extra keyword arguments become
    structured fields of the record.
    """

    def debug(self, message: str, **kwargs: Any) -> None:
        ...

    def info(self, message: str, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, **kwargs: Any) -> None:
        ...

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        ...

    def exception(self, message: str, **kwargs: Any) -> None:
        ...
