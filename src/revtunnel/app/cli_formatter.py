"""CLI output formatting utilities for human-readable display."""

from __future__ import annotations

from ..core.domain.models import ExitStatus
from ..core.services import TunnelSession


def format_session_opened(session: TunnelSession) -> str:
    """Format an open tunnel for CLI output.

    Args:
        session: Session whose open succeeded

    Returns:
        Formatted string for display
    """
    lines = []
    lines.append(f"Tunnel open: {session.proxy_host} -> localhost:{session.local_port}")
    lines.append(f"Remote port: {session.remote_port}")
    watcher = session.activity_watcher
    if watcher is not None:
        lines.append(f"Idle timeout: {watcher.timeout:g}s")
    lines.append("Press Ctrl+C to close.")
    return "\n".join(lines)


def session_to_dict(session: TunnelSession) -> dict[str, object]:
    return {
        "host": session.host,
        "user": session.user,
        "remote_port": session.remote_port,
        "local_port": session.local_port,
        "proxy_host": session.proxy_host,
        "state": session.state.value,
    }


def format_exit_status(status: ExitStatus | None) -> str:
    if status is None:
        return "Tunnel closed."
    if status.forced:
        return "Tunnel closed (killed after grace period)."
    parts = [f"exit code: {status.code}"]
    if status.signal:
        parts.append(f"signal: {status.signal}")
    return f"Tunnel closed ({', '.join(parts)})."
