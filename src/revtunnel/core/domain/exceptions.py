"""Domain exceptions for revtunnel."""

from __future__ import annotations


class TunnelError(Exception):
    """Base class for tunnel errors."""


class TunnelOpenError(TunnelError):
    """A single open attempt did not produce a usable tunnel.

    The retry driver treats every subclass the same way.
    """


class OpenFailedError(TunnelOpenError):
    """Raised when the transport reported failure, errored or exited before
    the forward was established."""

    def __init__(self, proxy_host: str, message: str | None = None) -> None:
        self.proxy_host = proxy_host
        if message is None:
            message = f"failed to create tunnel to {proxy_host}"
        super().__init__(message)


class OpenTimeoutError(TunnelOpenError):
    def __init__(self, proxy_host: str, timeout: float) -> None:
        self.proxy_host = proxy_host
        self.timeout = timeout
        super().__init__(f"timed out after {timeout:g}s creating tunnel to {proxy_host}")


class RetryExhaustedError(TunnelError):
    """Raised when every attempt of the retry driver failed."""

    def __init__(self, attempts: int, message: str | None = None) -> None:
        self.attempts = attempts
        if message is None:
            message = f"failed to create tunnel after {attempts} attempts"
        super().__init__(message)


class InvalidSessionStateError(TunnelError, RuntimeError):
    """Raised on a programming error such as opening a session twice."""
