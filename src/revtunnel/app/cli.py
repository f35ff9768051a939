from __future__ import annotations

import json
import logging

import typer
from dotenv import load_dotenv

from .config import AppConfig
from .container import Container
from .cli_formatter import format_exit_status, format_session_opened, session_to_dict
from .main import with_tunnel_overrides
from ..core.domain.exceptions import RetryExhaustedError
from ..core.domain.models import PortRange

load_dotenv()

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.command(name="open")
def open_command(
    host: str | None = typer.Argument(None, help="Remote host (default: REVTUNNEL_TUNNEL__HOST)"),
    local_port: int | None = typer.Option(None, "--local-port", "-l", help="Local port to expose"),
    ports: str | None = typer.Option(None, "--ports", "-p", help="Candidate remote ports, e.g. 8000-9000"),
    user: str | None = typer.Option(None, "--user", "-u", help="Remote user"),
    ssh_port: int | None = typer.Option(None, "--ssh-port", help="SSH server port"),
    identity_file: str | None = typer.Option(None, "--identity-file", "-i", help="Private key file"),
    connect_timeout: float | None = typer.Option(None, "--connect-timeout", help="Seconds to wait per attempt"),
    idle_timeout: float | None = typer.Option(None, "--idle-timeout", help="Close after this many quiet seconds"),
    retries: int | None = typer.Option(None, "--retries", "-r", help="Maximum number of attempts"),
    transport: str | None = typer.Option(None, "--transport", "-t", case_sensitive=False, help="ssh or paramiko"),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level", case_sensitive=False),
    json_output: bool = typer.Option(False, "--json", help="Print tunnel details as JSON"),
):
    """Open a reverse tunnel and keep it up until it closes or Ctrl+C."""
    # Configure basic logging for internal debugging
    level = logging._nameToLevel.get(log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format='%(levelname)s: %(message)s', force=True)

    try:
        port_range = PortRange.parse(ports) if ports else None
        config = with_tunnel_overrides(
            AppConfig(),
            host=host,
            local_port=local_port,
            min_port=port_range.min if port_range else None,
            max_port=port_range.max if port_range else None,
            user=user,
            ssh_port=ssh_port,
            identity_file=identity_file,
            connect_timeout=connect_timeout,
            idle_timeout=idle_timeout,
            max_retries=retries,
            transport=transport.lower() if transport else None,
        )
        config = config.model_copy(update={
            "logging": config.logging.model_copy(update={
                "level": log_level.upper(),
                "console_output": not json_output,
            }),
        })
        tunnel_config = config.tunnel.to_tunnel_config()
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    # Keep stdout clean for JSON consumers
    typer.echo(
        f"Opening tunnel to {tunnel_config.host} (remote ports {tunnel_config.ports}, "
        f"local port {tunnel_config.local_port}, transport {config.tunnel.transport})",
        err=json_output,
    )

    container = Container()
    container.config.from_pydantic(config)
    container.init_resources()

    try:
        uc = container.open_tunnel_uc()
        try:
            session = uc.execute(tunnel_config)
        except RetryExhaustedError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

        if json_output:
            typer.echo(json.dumps(session_to_dict(session), ensure_ascii=False))
        else:
            typer.echo(format_session_opened(session))

        try:
            status = session.wait_closed()
        except KeyboardInterrupt:
            typer.echo("Closing tunnel...", err=True)
            status = session.close(reason="interrupted").result()

        typer.echo(format_exit_status(status), err=json_output)

    finally:
        # Always shutdown resources to close file handles
        container.shutdown_resources()


@app.command(name="config")
def config_command():
    """Show the effective configuration (environment and .env)."""
    config = AppConfig()
    data = config.model_dump(mode="json")
    if data["tunnel"].get("password"):
        data["tunnel"]["password"] = "***"
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
