"""Domain services for tunnel lifecycle management."""

from .activity_watcher import ActivityWatcher
from .status_classifier import StatusClassifier
from .tunnel_session import CLOSE_GRACE_PERIOD, INACTIVITY_REASON, TunnelSession, pick_remote_port
from .retry import DEFAULT_MAX_ATTEMPTS, open_with_retries, wait_for_open

__all__ = [
    "ActivityWatcher",
    "StatusClassifier",
    "TunnelSession",
    "pick_remote_port",
    "CLOSE_GRACE_PERIOD",
    "INACTIVITY_REASON",
    "DEFAULT_MAX_ATTEMPTS",
    "open_with_retries",
    "wait_for_open",
]
