from __future__ import annotations

from typing import Any

from .config import AppConfig, TunnelSettings
from .container import Container
from ..core.domain.models import PortRange
from ..core.services import TunnelSession


def _create_container(config: AppConfig | None = None) -> Container:
    """Create and initialize a container.

    Args:
        config: Optional config. If None, loads from environment variables.

    Returns:
        Initialized container instance
    """
    container = Container()

    if config is None:
        # Load from environment variables (BaseSettings default behavior)
        config = AppConfig()

    container.config.from_pydantic(config)
    container.init_resources()

    return container


def with_tunnel_overrides(config: AppConfig | None = None, **overrides: Any) -> AppConfig:
    """Return ``config`` with non-None tunnel settings replaced.

    Overrides are validated like environment values.
    """
    base = config if config is not None else AppConfig()
    updates = {k: v for k, v in overrides.items() if v is not None}
    if not updates:
        return base
    tunnel = TunnelSettings.model_validate({**base.tunnel.model_dump(), **updates})
    return base.model_copy(update={"tunnel": tunnel})


def open_tunnel(
    host: str | None = None,
    *,
    local_port: int | None = None,
    ports: PortRange | str | None = None,
    user: str | None = None,
    connect_timeout: float | None = None,
    idle_timeout: float | None = None,
    max_retries: int | None = None,
    transport: str | None = None,
    config: AppConfig | None = None,
) -> TunnelSession:
    """Open a reverse tunnel, retrying on fresh random ports.

    Args:
        host: Remote host (otherwise from REVTUNNEL_TUNNEL__HOST)
        local_port: Local port to expose (otherwise from config)
        ports: Candidate remote ports, ``PortRange`` or ``"MIN-MAX"``
        user: Remote user
        connect_timeout: Seconds to wait per attempt
        idle_timeout: Auto-close after this many quiet seconds
        max_retries: Attempt budget
        transport: ``"ssh"`` or ``"paramiko"``
        config: Optional config for testing. If None, loads from env vars.

    Returns:
        The open session; call ``close()`` on it when done

    Raises:
        ValueError: If host/local_port are missing or invalid
        RetryExhaustedError: If no attempt succeeded
    """
    if isinstance(ports, str):
        ports = PortRange.parse(ports)

    effective = with_tunnel_overrides(
        config,
        host=host,
        local_port=local_port,
        min_port=ports.min if ports else None,
        max_port=ports.max if ports else None,
        user=user,
        connect_timeout=connect_timeout,
        idle_timeout=idle_timeout,
        max_retries=max_retries,
        transport=transport,
    )
    tunnel_config = effective.tunnel.to_tunnel_config()

    container = _create_container(effective)
    uc = container.open_tunnel_uc()
    return uc.execute(tunnel_config)
