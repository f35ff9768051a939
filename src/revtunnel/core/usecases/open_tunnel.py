from __future__ import annotations

from ..domain.models import TunnelConfig
from ..ports import LoggerPort
from ..services import TunnelSession, open_with_retries
from ..services.retry import SessionFactory


class OpenTunnelUseCase:
    """Use case for opening a tunnel with retries.

    Thin layer over ``open_with_retries`` that supplies the configured
    attempt budget.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        logger: LoggerPort,
        max_attempts: int,
    ) -> None:
        self._session_factory = session_factory
        self._logger = logger
        self._max_attempts = max_attempts

    def execute(self, config: TunnelConfig, max_attempts: int | None = None) -> TunnelSession:
        attempts = self._max_attempts if max_attempts is None else max_attempts
        self._logger.info(
            "run_started",
            type="run_started",
            host=config.host,
            ports=str(config.ports),
            local_port=config.local_port,
            max_attempts=attempts,
        )
        return open_with_retries(
            config,
            attempts,
            session_factory=self._session_factory,
            logger=self._logger,
        )
