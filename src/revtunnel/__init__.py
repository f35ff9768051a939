from .app.main import open_tunnel
from .core.domain.exceptions import (
    InvalidSessionStateError,
    OpenFailedError,
    OpenTimeoutError,
    RetryExhaustedError,
    TunnelError,
    TunnelOpenError,
)
from .core.domain.models import Closed, ExitStatus, Exited, PortRange, SessionState, TunnelConfig
from .core.services import ActivityWatcher, TunnelSession, open_with_retries

__all__ = [
    "open_tunnel",
    "open_with_retries",
    "TunnelSession",
    "ActivityWatcher",
    "TunnelConfig",
    "PortRange",
    "SessionState",
    "ExitStatus",
    "Exited",
    "Closed",
    "TunnelError",
    "TunnelOpenError",
    "OpenFailedError",
    "OpenTimeoutError",
    "RetryExhaustedError",
    "InvalidSessionStateError",
]

# stdlib logging defaults: attach NullHandler to prevent 'No handler' warnings
import logging
_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())
