from __future__ import annotations

import logging
import shutil
import signal
import subprocess
import threading
from typing import Any, Mapping, Optional

from ...core.ports import TransportListener

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22


def describe_returncode(code: int) -> tuple[int, Optional[str]]:
    """Split a Popen return code into (code, signal name).

    Negative codes mean the process died from a signal.
    """
    if code >= 0:
        return code, None
    try:
        return code, signal.Signals(-code).name
    except ValueError:
        return code, None


class SSHProcessHandle:
    """Handle on a spawned ``ssh`` client. ``proc`` is None when the
    process could not be started."""

    def __init__(self, proc: subprocess.Popen | None, reader: threading.Thread | None = None) -> None:
        self.proc = proc
        self.reader = reader

    @property
    def pid(self) -> int | None:
        return self.proc.pid if self.proc is not None else None

    def terminate(self, forceful: bool = False) -> None:
        if self.proc is None or self.proc.poll() is not None:
            return
        if forceful:
            logger.debug("tunnel_kill", extra={"payload": {"type": "tunnel_kill", "pid": self.proc.pid}})
            self.proc.kill()
        else:
            logger.debug("tunnel_terminate", extra={"payload": {"type": "tunnel_terminate", "pid": self.proc.pid}})
            self.proc.terminate()


class SSHProcessTransport:
    """Transport that spawns the OpenSSH client.

    Opens the reverse forward via ``ssh -R REMOTE:LOCAL_HOST:LOCAL -N -v``
    and feeds every stderr line of the verbose client to the listener;
    OpenSSH reports the forward's fate there
    (``remote forward success for: ...`` / ``remote port forwarding failed``).

    Credentials are limited to what a non-interactive client can use: an
    identity file (``options["identity_file"]``) or the user's agent and
    default keys.
    """

    def __init__(
        self,
        *,
        ssh_binary: str = "ssh",
        ssh_port: int = DEFAULT_SSH_PORT,
        keepalive_interval: int = 30,
        known_hosts: str | None = None,
        strict_host_key_checking: str | None = None,
    ) -> None:
        self.ssh_binary = ssh_binary
        self.ssh_port = ssh_port
        self.keepalive_interval = keepalive_interval
        self.known_hosts = known_hosts
        self.strict_host_key_checking = strict_host_key_checking

    def _ssh_available(self) -> bool:
        return shutil.which(self.ssh_binary) is not None

    def build_command(
        self,
        *,
        remote_port: int,
        local_port: int,
        host: str,
        user: Optional[str],
        options: Mapping[str, Any],
    ) -> list[str]:
        # Force non-interactive behavior:
        #  - BatchMode=yes: never prompt for passwords/confirmation
        #  - ExitOnForwardFailure=yes: exit if the remote forward is refused
        #  - ServerAliveInterval: detect dead connections
        ssh_port = int(options.get("ssh_port") or self.ssh_port)
        local_host = options.get("local_host") or "localhost"
        cmd = [
            self.ssh_binary,
            "-N",
            "-v",
            "-R",
            f"{remote_port}:{local_host}:{local_port}",
            "-p",
            str(ssh_port),
            "-o",
            "BatchMode=yes",
            "-o",
            "ExitOnForwardFailure=yes",
            "-o",
            f"ServerAliveInterval={self.keepalive_interval}",
        ]
        known_hosts = options.get("known_hosts") or self.known_hosts
        if known_hosts:
            cmd += ["-o", f"UserKnownHostsFile={known_hosts}"]
        strict = options.get("strict_host_key_checking") or self.strict_host_key_checking
        if strict:
            cmd += ["-o", f"StrictHostKeyChecking={strict}"]
        identity_file = options.get("identity_file")
        if identity_file:
            cmd += ["-i", str(identity_file)]
        cmd.append(f"{user}@{host}" if user else host)
        return cmd

    def start(
        self,
        *,
        remote_port: int,
        local_port: int,
        host: str,
        user: Optional[str],
        options: Mapping[str, Any],
        listener: TransportListener,
    ) -> SSHProcessHandle:
        if not self._ssh_available():
            listener.on_error(
                RuntimeError(
                    f"`{self.ssh_binary}` not found. Please install OpenSSH client and ensure it is in PATH."
                )
            )
            listener.on_closed(None, None)
            return SSHProcessHandle(None)

        cmd = self.build_command(
            remote_port=remote_port,
            local_port=local_port,
            host=host,
            user=user,
            options=options,
        )
        logger.info("tunnel_exec", extra={
            "payload": {
                "type": "tunnel_exec",
                "cmd": " ".join(cmd),
            }
        })
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            listener.on_error(e)
            listener.on_closed(None, None)
            return SSHProcessHandle(None)

        reader = threading.Thread(
            target=self._pump,
            args=(proc, listener),
            daemon=True,
            name=f"ssh-tunnel-{remote_port}",
        )
        handle = SSHProcessHandle(proc, reader)
        reader.start()
        return handle

    @staticmethod
    def _pump(proc: subprocess.Popen, listener: TransportListener) -> None:
        assert proc.stderr is not None
        for raw in proc.stderr:
            line = raw.strip()
            if not line:
                continue
            logger.debug("tunnel_ssh_line", extra={
                "payload": {"type": "ssh_line", "line": line}
            })
            listener.on_status(line)
        proc.stderr.close()
        code, sig = describe_returncode(proc.wait())
        listener.on_closed(code, sig)
