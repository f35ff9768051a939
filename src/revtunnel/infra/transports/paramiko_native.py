"""
In-process SSH transport built on paramiko.
"""
from __future__ import annotations

import logging
import select
import socket
import threading
from pathlib import Path
from typing import Any, Mapping, Optional

import paramiko

from ...core.ports import TransportListener

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22
ACCEPT_POLL_INTERVAL = 1.0
FORWARD_BUFFER_SIZE = 8192


class ParamikoTunnelHandle:
    """
    One SSH connection carrying one reverse forward.

    How it works:
    1. Connect and authenticate on a worker thread
    2. Call Transport.request_port_forward() to listen on the remote port
    3. Accept forwarded channels and pipe each one to the local service
       on its own thread

    Status lines mimic OpenSSH's verbose output so the default status
    classification applies unchanged.
    """

    def __init__(
        self,
        *,
        client: paramiko.SSHClient,
        connect_kwargs: dict[str, Any],
        remote_port: int,
        local_host: str,
        local_port: int,
        listener: TransportListener,
        keepalive_interval: int = 30,
    ) -> None:
        self._client = client
        self._keepalive_interval = keepalive_interval
        self._connect_kwargs = connect_kwargs
        self._remote_port = remote_port
        self._local_host = local_host
        self._local_port = local_port
        self._listener = listener

        self._stop = threading.Event()
        self._forced = False
        self._closed_reported = False
        self._lock = threading.Lock()
        self._worker = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"paramiko-tunnel-{remote_port}",
        )

    def start(self) -> None:
        self._worker.start()

    def terminate(self, forceful: bool = False) -> None:
        self._stop.set()
        if forceful:
            self._forced = True
            self._client.close()

    def _run(self) -> None:
        try:
            self._client.connect(**self._connect_kwargs)
        except Exception as e:
            self._client.close()
            self._listener.on_error(e)
            self._report_closed(None, "SIGKILL" if self._forced else None)
            return

        transport = self._client.get_transport()
        if transport is None or self._stop.is_set():
            self._client.close()
            self._report_closed(0, None)
            return
        transport.set_keepalive(self._keepalive_interval)

        try:
            transport.request_port_forward(address="", port=self._remote_port)
        except paramiko.SSHException as e:
            self._listener.on_status(f"remote forward failed for: listen {self._remote_port}: {e}")
            self._client.close()
            self._report_closed(255, None)
            return

        self._listener.on_status(
            f"remote forward success for: listen {self._remote_port}, "
            f"connect {self._local_host}:{self._local_port}"
        )

        lost = False
        try:
            lost = self._accept_loop(transport)
        finally:
            if not self._forced:
                try:
                    transport.cancel_port_forward(address="", port=self._remote_port)
                except (paramiko.SSHException, EOFError, OSError):
                    # The connection is already gone; nothing left to cancel.
                    pass
            self._client.close()

        if self._forced:
            self._report_closed(None, "SIGKILL")
        elif lost:
            self._report_closed(255, None)
        else:
            self._report_closed(0, None)

    def _accept_loop(self, transport: paramiko.Transport) -> bool:
        """Accept forwarded channels until stopped. Returns True if the
        connection dropped on its own."""
        while not self._stop.is_set():
            if not transport.is_active():
                return not self._stop.is_set()
            chan = transport.accept(timeout=ACCEPT_POLL_INTERVAL)
            if chan is None:
                continue
            origin = getattr(chan, "origin_addr", None)
            self._listener.on_status(f"forwarded connection from {origin} to {self._local_host}:{self._local_port}")
            handler = threading.Thread(
                target=self._handle_channel,
                args=(chan,),
                daemon=True,
                name=f"paramiko-tunnel-{self._remote_port}-{id(chan)}",
            )
            handler.start()
        return False

    def _handle_channel(self, chan: paramiko.Channel) -> None:
        try:
            sock = socket.create_connection((self._local_host, self._local_port), timeout=10)
        except OSError as e:
            logger.warning("forward_connect_failed", extra={
                "payload": {
                    "type": "forward_connect_failed",
                    "local": f"{self._local_host}:{self._local_port}",
                    "error": str(e),
                }
            })
            chan.close()
            return

        sock.settimeout(None)
        try:
            self._pipe(chan, sock)
        except (OSError, paramiko.SSHException) as e:
            # Either side hanging up mid-transfer ends this connection only.
            logger.debug("forward_connection_reset", extra={
                "payload": {"type": "forward_connection_reset", "error": str(e)}
            })
        finally:
            sock.close()
            chan.close()

    def _pipe(self, chan: paramiko.Channel, sock: socket.socket) -> None:
        while not self._stop.is_set():
            r, _, _ = select.select([sock, chan], [], [], ACCEPT_POLL_INTERVAL)
            if sock in r:
                data = sock.recv(FORWARD_BUFFER_SIZE)
                if not data:
                    return
                chan.sendall(data)
            if chan in r:
                data = chan.recv(FORWARD_BUFFER_SIZE)
                if not data:
                    return
                sock.sendall(data)

    def _report_closed(self, code: Optional[int], sig: Optional[str]) -> None:
        with self._lock:
            if self._closed_reported:
                return
            self._closed_reported = True
        self._listener.on_closed(code, sig)


class ParamikoTransport:
    """Transport that speaks SSH in-process through paramiko.

    Recognized options: ``ssh_port``, ``identity_file``, ``password``,
    ``local_host``, ``connect_timeout``.
    """

    def __init__(
        self,
        *,
        ssh_port: int = DEFAULT_SSH_PORT,
        connect_timeout: float = 10.0,
        keepalive_interval: int = 30,
    ) -> None:
        self.ssh_port = ssh_port
        self.connect_timeout = connect_timeout
        self.keepalive_interval = keepalive_interval

    def _make_client(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    def connect_kwargs(self, *, host: str, user: Optional[str], options: Mapping[str, Any]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "hostname": host,
            "port": int(options.get("ssh_port") or self.ssh_port),
            "timeout": float(options.get("connect_timeout") or self.connect_timeout),
        }
        if user:
            kwargs["username"] = user
        identity_file = options.get("identity_file")
        if identity_file:
            kwargs["key_filename"] = str(Path(identity_file).expanduser())
        password = options.get("password")
        if password:
            kwargs["password"] = password
        return kwargs

    def start(
        self,
        *,
        remote_port: int,
        local_port: int,
        host: str,
        user: Optional[str],
        options: Mapping[str, Any],
        listener: TransportListener,
    ) -> ParamikoTunnelHandle:
        logger.info("tunnel_connect", extra={
            "payload": {
                "type": "tunnel_connect",
                "host": host,
                "remote_port": remote_port,
                "local_port": local_port,
            }
        })
        handle = ParamikoTunnelHandle(
            client=self._make_client(),
            connect_kwargs=self.connect_kwargs(host=host, user=user, options=options),
            remote_port=remote_port,
            local_host=options.get("local_host") or "localhost",
            local_port=local_port,
            listener=listener,
            keepalive_interval=self.keepalive_interval,
        )
        handle.start()
        return handle
