from __future__ import annotations

from dependency_injector import containers, providers

from ..core.services import StatusClassifier, TunnelSession
from ..core.usecases.open_tunnel import OpenTunnelUseCase
from ..infra.logging import TunnelLogger
from ..infra.scheduler import ThreadingScheduler
from ..infra.transports import ParamikoTransport, SSHProcessTransport


class Container(containers.DeclarativeContainer):
    """DI container; configuration is loaded with ``config.from_pydantic``."""

    config = providers.Configuration()

    # Logger (Resource: manages lifecycle with init/shutdown)
    logger = providers.Resource(
        TunnelLogger,
        logs_dir=config.directories.logs_dir,
        file_name=config.logging.file_name,
        logger_name=config.logging.logger_name,
        console_output=config.logging.console_output,
        level=config.logging.level,
    )

    scheduler = providers.Singleton(ThreadingScheduler)

    classifier = providers.Singleton(StatusClassifier)

    # Transport chosen by REVTUNNEL_TUNNEL__TRANSPORT
    transport = providers.Selector(
        config.tunnel.transport,
        ssh=providers.Singleton(
            SSHProcessTransport,
            ssh_port=config.tunnel.ssh_port,
            keepalive_interval=config.tunnel.keepalive_interval,
        ),
        paramiko=providers.Singleton(
            ParamikoTransport,
            ssh_port=config.tunnel.ssh_port,
            connect_timeout=config.tunnel.connect_timeout,
            keepalive_interval=config.tunnel.keepalive_interval,
        ),
    )

    # One session per attempt; the retry driver calls this with config=...
    session_factory = providers.Factory(
        TunnelSession,
        transport=transport,
        scheduler=scheduler,
        logger=logger,
        classifier=classifier,
    )

    # Use cases
    open_tunnel_uc = providers.Factory(
        OpenTunnelUseCase,
        session_factory=session_factory.provider,
        logger=logger,
        max_attempts=config.tunnel.max_retries,
    )
