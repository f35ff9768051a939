from __future__ import annotations

import random
import threading
from concurrent.futures import Future
from typing import Callable, Optional

from ...shared.outcome import Outcome
from ..domain.exceptions import InvalidSessionStateError, OpenFailedError
from ..domain.models import (
    FORCED_EXIT,
    Closed,
    ExitStatus,
    Exited,
    LifecycleEvent,
    PortRange,
    SessionState,
    StatusCategory,
    TunnelConfig,
)
from ..ports import LoggerPort, SchedulerPort, TimerHandle, TransportHandle, TransportPort
from .activity_watcher import ActivityWatcher
from .status_classifier import StatusClassifier

CLOSE_GRACE_PERIOD = 3.0
INACTIVITY_REASON = "inactivity timeout"

LifecycleListener = Callable[[LifecycleEvent], None]


def pick_remote_port(ports: PortRange, rng: random.Random | None = None) -> int:
    """Draw a port uniformly from the inclusive range."""
    return (rng or random).randint(ports.min, ports.max)


class TunnelSession:
    """One attempt at a reverse tunnel.

    The session owns its transport handle for its whole life and is never
    reused: once it has failed or closed, a new session (with a new random
    remote port) is needed. Transport callbacks arrive on transport threads
    and timer callbacks on timer threads; all state changes happen under
    ``self._lock``.
    """

    def __init__(
        self,
        *,
        config: TunnelConfig,
        transport: TransportPort,
        scheduler: SchedulerPort,
        logger: LoggerPort,
        classifier: StatusClassifier | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._scheduler = scheduler
        self._logger = logger
        self._classifier = classifier or StatusClassifier()
        self._remote_port = pick_remote_port(config.ports, rng)

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._handle: TransportHandle | None = None
        self._open_outcome: Outcome[None] = Outcome()
        self._close_outcome: Outcome[ExitStatus | None] = Outcome()
        self._close_requested = False
        self._close_reason: str | None = None
        self._grace_timer: TimerHandle | None = None
        self._exit_status: ExitStatus | None = None
        self._exited = False
        self._listeners: list[LifecycleListener] = []

        self._watcher: ActivityWatcher | None = None
        if config.watches_activity:
            self._watcher = ActivityWatcher(
                config.idle_timeout,  # type: ignore[arg-type]
                self._on_idle,
                scheduler=scheduler,
            )

    # Introspection

    @property
    def config(self) -> TunnelConfig:
        return self._config

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def user(self) -> str | None:
        return self._config.user

    @property
    def remote_port(self) -> int:
        return self._remote_port

    @property
    def local_port(self) -> int:
        return self._config.local_port

    @property
    def proxy_host(self) -> str:
        return f"{self._config.host}:{self._remote_port}"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def exit_status(self) -> ExitStatus | None:
        return self._exit_status

    @property
    def activity_watcher(self) -> ActivityWatcher | None:
        return self._watcher

    # Lifecycle

    def open(self) -> Future[None]:
        """Start the transport; the returned future settles exactly once.

        Raises:
            InvalidSessionStateError: If the session was already opened
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise InvalidSessionStateError(
                    f"Cannot open tunnel session to {self.proxy_host} in state {self._state.value}"
                )
            self._state = SessionState.OPENING
            self._logger.info(
                "tunnel_opening",
                type="tunnel_opening",
                proxy_host=self.proxy_host,
                remote_port=self._remote_port,
                local_port=self._config.local_port,
            )
            try:
                handle = self._transport.start(
                    remote_port=self._remote_port,
                    local_port=self._config.local_port,
                    host=self._config.host,
                    user=self._config.user,
                    options=self._config.options,
                    listener=self,
                )
            except Exception as e:
                # Transports report start failures via on_error; this is the
                # fallback for one that raises instead.
                self.on_error(e)
            else:
                self._handle = handle
        return self._open_outcome.future

    def close(self, reason: str | None = None) -> Future[ExitStatus | None]:
        """Tear the transport down: graceful terminate, forceful after
        ``CLOSE_GRACE_PERIOD`` seconds. Never fails.

        Returns a future with the transport's exit status, ``FORCED_EXIT``
        after escalation, or ``None`` when there was nothing to tear down.
        """
        with self._lock:
            if self._close_requested or self._close_outcome.done():
                return self._close_outcome.future
            if self._handle is None:
                return Outcome.resolved(None).future

            self._close_requested = True
            self._close_reason = reason
            if self._watcher is not None:
                self._watcher.stop()

            if self._open_outcome.reject(
                OpenFailedError(
                    self.proxy_host,
                    f"tunnel to {self.proxy_host} was closed before it was established",
                )
            ):
                self._state = SessionState.CLOSING
            elif self._state is SessionState.OPEN:
                self._state = SessionState.CLOSING

            self._logger.info(
                "tunnel_closing",
                type="tunnel_closing",
                proxy_host=self.proxy_host,
                reason=reason,
            )
            # Armed before terminating: a transport may confirm synchronously.
            self._grace_timer = self._scheduler.call_later(CLOSE_GRACE_PERIOD, self._escalate)
            self._handle.terminate(forceful=False)
            return self._close_outcome.future

    def wait_closed(self, timeout: float | None = None) -> ExitStatus | None:
        """Block until teardown has settled. Returns immediately for a
        session whose transport was never started."""
        if self._handle is None and not self._close_outcome.done():
            return None
        return self._close_outcome.future.result(timeout=timeout)

    def subscribe(self, listener: LifecycleListener) -> Callable[[], None]:
        """Register for ``Exited``/``Closed`` notifications.

        ``Closed`` normally follows ``Exited``. After escalation the session
        settles with ``FORCED_EXIT`` first, so a late ``Exited`` from the
        transport can arrive after ``Closed``.

        Returns a callable that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # TransportListener

    def on_status(self, text: str) -> None:
        if self._watcher is not None:
            self._watcher.update()

        category = self._classifier.classify(text)
        if category is StatusCategory.SUCCESS:
            self._resolve_open()
        elif category is StatusCategory.FAILURE:
            self._fail_open(OpenFailedError(self.proxy_host))
        elif category is StatusCategory.TERMINATED:
            self._logger.info(
                "tunnel_killed",
                type="tunnel_killed",
                proxy_host=self.proxy_host,
                detail=self._classifier.termination_detail(text),
            )
        else:
            self._logger.debug("tunnel_status", type="tunnel_status", line=text)

    def on_error(self, error: BaseException) -> None:
        self._logger.error(
            "tunnel_transport_error",
            type="tunnel_transport_error",
            proxy_host=self.proxy_host,
            error=str(error),
        )
        failure = OpenFailedError(self.proxy_host, f"failed to create tunnel to {self.proxy_host}: {error}")
        failure.__cause__ = error
        self._fail_open(failure)

    def on_closed(self, code: Optional[int], signal: Optional[str]) -> None:
        with self._lock:
            if self._exited:
                return
            self._exited = True
            status = ExitStatus(code=code, signal=signal)
            self._exit_status = status

            if self._grace_timer is not None:
                self._grace_timer.cancel()
                self._grace_timer = None
            if self._watcher is not None:
                self._watcher.stop()

            self._logger.info(
                "tunnel_exited",
                type="tunnel_exited",
                proxy_host=self.proxy_host,
                exit_code=code,
                signal=signal,
            )
            self._fail_open(
                OpenFailedError(
                    self.proxy_host,
                    f"tunnel to {self.proxy_host} exited before it was established (exit code {code})",
                )
            )
            self._emit(Exited(code=code, signal=signal))
            self._finish_close(status)

    # Internals

    def _resolve_open(self) -> None:
        with self._lock:
            if self._state is not SessionState.OPENING:
                return
            if not self._open_outcome.resolve(None):
                return
            self._state = SessionState.OPEN
            self._logger.info(
                "tunnel_open",
                type="tunnel_open",
                proxy_host=self.proxy_host,
                remote_port=self._remote_port,
            )
            if self._watcher is not None:
                self._watcher.update()
                self._watcher.start()

    def _fail_open(self, error: OpenFailedError) -> None:
        with self._lock:
            if self._state is not SessionState.OPENING:
                return
            if not self._open_outcome.reject(error):
                return
            self._state = SessionState.FAILED
            self._logger.error(
                "tunnel_open_failed",
                type="tunnel_open_failed",
                proxy_host=self.proxy_host,
                error=str(error),
            )

    def _escalate(self) -> None:
        with self._lock:
            self._grace_timer = None
            if self._close_outcome.done() or self._handle is None:
                return
            self._logger.warning(
                "tunnel_escalated",
                type="tunnel_escalated",
                proxy_host=self.proxy_host,
                grace_period=CLOSE_GRACE_PERIOD,
            )
            self._handle.terminate(forceful=True)
            self._finish_close(FORCED_EXIT)

    def _finish_close(self, status: ExitStatus) -> None:
        with self._lock:
            if not self._close_outcome.resolve(status):
                return
            if self._state is not SessionState.FAILED:
                self._state = SessionState.CLOSED
            self._logger.info(
                "tunnel_closed",
                type="tunnel_closed",
                proxy_host=self.proxy_host,
                exit_code=status.code,
                signal=status.signal,
                forced=status.forced,
                reason=self._close_reason,
            )
            self._emit(Closed(exit_status=status, reason=self._close_reason))

    def _on_idle(self) -> None:
        self._logger.info(
            "tunnel_idle",
            type="tunnel_idle",
            proxy_host=self.proxy_host,
            idle_timeout=self._config.idle_timeout,
        )
        self.close(reason=INACTIVITY_REASON)

    def _emit(self, event: LifecycleEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                self._logger.exception(
                    "lifecycle_listener_failed",
                    type="lifecycle_listener_failed",
                    proxy_host=self.proxy_host,
                    event=type(event).__name__,
                )
