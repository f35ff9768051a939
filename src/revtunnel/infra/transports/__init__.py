from __future__ import annotations

from .ssh_process import SSHProcessHandle, SSHProcessTransport
from .paramiko_native import ParamikoTransport, ParamikoTunnelHandle

__all__ = [
    "SSHProcessHandle",
    "SSHProcessTransport",
    "ParamikoTransport",
    "ParamikoTunnelHandle",
]
