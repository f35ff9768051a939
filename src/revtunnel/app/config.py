from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from platformdirs import PlatformDirs
from pydantic import BaseModel, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.domain.models import DEFAULT_CONNECT_TIMEOUT, PortRange, TunnelConfig

APP_NAME = "revtunnel"


def _default_home() -> Path:
    """Get default home directory using platformdirs."""
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_state_dir)


class DirectoryConfig(BaseModel):
    """Directory configuration with computed paths."""

    home: Path = Field(
        default_factory=_default_home,
        description="Base directory for all revtunnel data",
    )

    @computed_field
    @property
    def logs_dir(self) -> Path:
        """Logs directory for JSONL tunnel logs."""
        path = self.home / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path


class TunnelSettings(BaseModel):
    """Defaults for the tunnel to open."""

    host: str | None = Field(default=None, description="Remote host that will listen on the forwarded port")
    user: str | None = Field(default=None, description="Remote user (ssh default if unset)")
    min_port: int = Field(default=8000, ge=0, description="Lowest candidate remote port")
    max_port: int = Field(default=9000, ge=0, description="Highest candidate remote port")
    local_port: int | None = Field(default=None, ge=0, description="Local port to expose")
    local_host: str = Field(default="localhost", description="Local host the remote side is forwarded to")
    ssh_port: int = Field(default=22, ge=1, description="SSH server port on the remote host")
    identity_file: str | None = Field(default=None, description="Private key used to authenticate")
    password: str | None = Field(default=None, description="Password (paramiko transport only)")
    connect_timeout: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT,
        gt=0,
        description="Seconds to wait for the forward to be established",
    )
    idle_timeout: float | None = Field(
        default=None,
        ge=0,
        description="Close the tunnel after this many quiet seconds (unset or 0 disables)",
    )
    max_retries: int = Field(default=5, ge=1, description="Attempts before giving up")
    transport: Literal["ssh", "paramiko"] = Field(default="ssh", description="ssh subprocess or in-process paramiko")
    keepalive_interval: int = Field(default=30, ge=1, description="Keepalive interval in seconds")

    def transport_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "ssh_port": self.ssh_port,
            "local_host": self.local_host,
        }
        if self.identity_file:
            options["identity_file"] = self.identity_file
        if self.password:
            options["password"] = self.password
        return options

    def to_tunnel_config(self) -> TunnelConfig:
        """Build the domain config.

        Raises:
            ValueError: If host or local_port is missing, or the range is invalid
        """
        if not self.host:
            raise ValueError("Remote host required via REVTUNNEL_TUNNEL__HOST")
        if self.local_port is None:
            raise ValueError("Local port required via REVTUNNEL_TUNNEL__LOCAL_PORT")
        return TunnelConfig(
            host=self.host,
            ports=PortRange(min=self.min_port, max=self.max_port),
            local_port=self.local_port,
            user=self.user,
            connect_timeout=self.connect_timeout,
            idle_timeout=self.idle_timeout or None,
            options=self.transport_options(),
        )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    console_output: bool = Field(default=False, description="Mirror log events to stderr")
    file_name: str | None = Field(default="revtunnel.jsonl", description="JSONL file under logs_dir (empty disables)")
    logger_name: str = Field(default="revtunnel", description="Name of the package logger")


class AppConfig(BaseSettings):
    """Root application configuration.

    All configuration is loaded from environment variables with REVTUNNEL_ prefix.
    Use double underscore for nested config: REVTUNNEL_TUNNEL__HOST

    Example env vars:
        export REVTUNNEL_TUNNEL__HOST=tunnel.example.com
        export REVTUNNEL_TUNNEL__LOCAL_PORT=3000

        # Optional (with defaults)
        export REVTUNNEL_TUNNEL__MIN_PORT=8000
        export REVTUNNEL_TUNNEL__MAX_PORT=9000
        export REVTUNNEL_TUNNEL__TRANSPORT=paramiko
        export REVTUNNEL_TUNNEL__IDLE_TIMEOUT=600
        export REVTUNNEL_LOGGING__LEVEL=DEBUG
        export REVTUNNEL_DIRECTORIES__HOME=/custom/path
    """

    model_config = SettingsConfigDict(
        env_prefix="REVTUNNEL_",
        env_nested_delimiter="__",
        frozen=True,
        extra="forbid",
    )

    directories: DirectoryConfig = Field(default_factory=DirectoryConfig)
    tunnel: TunnelSettings = Field(default_factory=TunnelSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
