from __future__ import annotations

from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Callable

from ..domain.exceptions import OpenTimeoutError, RetryExhaustedError, TunnelOpenError
from ..domain.models import TunnelConfig
from ..ports import LoggerPort
from .tunnel_session import TunnelSession

DEFAULT_MAX_ATTEMPTS = 5

SessionFactory = Callable[..., TunnelSession]


def wait_for_open(session: TunnelSession, timeout: float) -> None:
    """Open ``session`` and block until it is established.

    Raises:
        OpenFailedError: If the transport reported failure
        OpenTimeoutError: If nothing was reported within ``timeout`` seconds
    """
    future = session.open()
    try:
        future.result(timeout=timeout)
    except FuturesTimeoutError:
        raise OpenTimeoutError(session.proxy_host, timeout) from None


def open_with_retries(
    config: TunnelConfig,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    session_factory: SessionFactory,
    logger: LoggerPort,
) -> TunnelSession:
    """Open a tunnel, trying up to ``max_attempts`` fresh sessions.

    Every attempt gets a new session and therefore a newly drawn remote
    port, which routes around ports that are taken or filtered on the
    remote side. A failed session is closed, and its close awaited, before
    the next one is built.

    Args:
        config: Tunnel configuration shared by all attempts
        max_attempts: Attempt budget (>= 1)
        session_factory: Builds a ``TunnelSession`` from ``config=...``
        logger: Structured logger

    Returns:
        The first session that opened; the caller owns it and must close it

    Raises:
        RetryExhaustedError: If every attempt failed
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1: {max_attempts}")

    last_error: TunnelOpenError | None = None
    for attempt in range(1, max_attempts + 1):
        session = session_factory(config=config)
        try:
            wait_for_open(session, config.connect_timeout)
        except TunnelOpenError as e:
            last_error = e
            logger.warning(
                "tunnel_attempt_failed",
                type="tunnel_attempt_failed",
                attempt=attempt,
                max_attempts=max_attempts,
                proxy_host=session.proxy_host,
                error=str(e),
            )
            session.close(reason=f"attempt {attempt} failed").result()
            continue

        logger.info(
            "tunnel_ready",
            type="tunnel_ready",
            attempt=attempt,
            proxy_host=session.proxy_host,
        )
        return session

    logger.error(
        "tunnel_retries_exhausted",
        type="tunnel_retries_exhausted",
        attempts=max_attempts,
        host=config.host,
    )
    raise RetryExhaustedError(max_attempts) from last_error
