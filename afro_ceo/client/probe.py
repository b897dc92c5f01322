"""Background reachability probe for the CEO Agent backend."""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from ..core.exceptions import BackendUnreachableError
from ..models.enums import ProbeState

HealthCheck = Callable[[], Awaitable[bool]]


class HealthProbe:
    """Polls a health check and tracks connected/disconnected/checking.

    The state is ``CHECKING`` until the first check completes; afterwards it
    holds the last result, so a re-check in flight never blocks callers.
    Consecutive failures stretch the polling interval by ``failure_backoff``
    up to ``max_interval``.
    """

    def __init__(
        self,
        check: HealthCheck,
        interval: float = 10.0,
        failure_backoff: float = 2.0,
        max_interval: float = 60.0,
        on_change: Callable[[ProbeState], None] | None = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        if failure_backoff < 1:
            raise ValueError("failure_backoff must be >= 1")
        self._check = check
        self.interval = interval
        self.failure_backoff = failure_backoff
        self.max_interval = max(max_interval, interval)
        self.on_change = on_change
        self.state = ProbeState.CHECKING
        self.consecutive_failures = 0
        self._task: asyncio.Task | None = None
        self.logger = structlog.get_logger().bind(component="health_probe")

    @property
    def connected(self) -> bool:
        return self.state is ProbeState.CONNECTED

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def require_connected(self) -> None:
        """Raise unless the last completed check succeeded."""
        if not self.connected:
            raise BackendUnreachableError("backend unreachable")

    def next_delay(self) -> float:
        if self.consecutive_failures == 0:
            return self.interval
        delay = self.interval * self.failure_backoff ** self.consecutive_failures
        return min(delay, self.max_interval)

    async def check_once(self) -> ProbeState:
        try:
            healthy = bool(await self._check())
        except Exception as e:
            self.logger.debug("Health check raised", error=str(e), error_type=type(e).__name__)
            healthy = False

        self.consecutive_failures = 0 if healthy else self.consecutive_failures + 1
        self._set_state(ProbeState.CONNECTED if healthy else ProbeState.DISCONNECTED)
        return self.state

    def _set_state(self, state: ProbeState) -> None:
        if state is self.state:
            return
        self.logger.info("Backend connection state changed", previous=self.state.value, state=state.value)
        self.state = state
        if self.on_change:
            try:
                self.on_change(state)
            except Exception as e:
                # Polling keeps running; the new state is already recorded
                self.logger.error(
                    "Probe state callback failed",
                    state=state.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def _run(self) -> None:
        while True:
            await self.check_once()
            await asyncio.sleep(self.next_delay())

    def start(self) -> None:
        """Begin polling on the running event loop. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ceo-health-probe")

    async def stop(self) -> None:
        """Cancel polling and wait for the task to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "HealthProbe":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
