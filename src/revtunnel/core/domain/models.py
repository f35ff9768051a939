from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

DEFAULT_CONNECT_TIMEOUT = 10.0


@dataclass(frozen=True)
class PortRange:
    """Inclusive range of candidate remote ports."""
    min: int
    max: int

    def __post_init__(self) -> None:
        if self.min < 0 or self.max < 0:
            raise ValueError(f"Ports must be non-negative: {self.min}-{self.max}")
        if self.min > self.max:
            raise ValueError(f"Invalid port range: min {self.min} > max {self.max}")

    @classmethod
    def parse(cls, text: str) -> "PortRange":
        """Parse ``"8000-9000"`` or a single ``"8080"``."""
        parts = text.strip().split("-")
        try:
            if len(parts) == 1:
                port = int(parts[0])
                return cls(min=port, max=port)
            if len(parts) == 2:
                return cls(min=int(parts[0]), max=int(parts[1]))
        except ValueError:
            pass
        raise ValueError(f"Invalid port range: {text!r} (expected MIN-MAX)")

    def __str__(self) -> str:
        return f"{self.min}-{self.max}"


@dataclass(frozen=True)
class TunnelConfig:
    """Immutable description of the tunnel a session should open.

    ``options`` is handed to the transport untouched (ssh_port,
    identity_file, password, local_host, ...).
    """
    host: str
    ports: PortRange
    local_port: int
    user: str | None = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    idle_timeout: float | None = None
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host is required")
        if self.local_port < 0:
            raise ValueError(f"local_port must be non-negative: {self.local_port}")
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be positive: {self.connect_timeout}")
        if self.idle_timeout is not None and self.idle_timeout < 0:
            raise ValueError(f"idle_timeout must not be negative: {self.idle_timeout}")

    @property
    def watches_activity(self) -> bool:
        return bool(self.idle_timeout)


class SessionState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class StatusCategory(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TERMINATED = "terminated"
    INERT = "inert"


@dataclass(frozen=True)
class ExitStatus:
    """How the transport went away.

    ``forced`` is only set on the sentinel produced when the grace window
    ran out and the transport was killed without confirmation.
    """
    code: int | None
    signal: str | None = None
    forced: bool = False


FORCED_EXIT = ExitStatus(code=-1, signal="SIGKILL", forced=True)


@dataclass(frozen=True)
class Exited:
    """The transport reported its exit."""
    code: int | None
    signal: str | None = None


@dataclass(frozen=True)
class Closed:
    """Session teardown has settled."""
    exit_status: ExitStatus | None
    reason: str | None = None


LifecycleEvent = Exited | Closed
