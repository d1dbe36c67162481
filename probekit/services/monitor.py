"""
Periodic re-sampling with an explicit no-overlap rule.

A tick that is still running when the next one falls due causes that next
tick to be skipped and logged, never run concurrently. Stopping waits for
the in-flight tick instead of cancelling it.
"""

import asyncio
from collections.abc import Awaitable, Callable

from probekit.services.sampler import logger


class PeriodicMonitor:
    """Cancellable handle around a repeating asyncio task."""

    def __init__(
        self,
        interval_seconds: float,
        tick: Callable[[], Awaitable[None]],
        name: str = "monitor",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self.name = name
        self._tick = tick
        self._stopping = asyncio.Event()
        self._loop_task: asyncio.Task[None] | None = None
        self._current: asyncio.Task[None] | None = None
        self.ticks_started = 0
        self.ticks_skipped = 0
        self.ticks_failed = 0
        self.logger = logger.bind(component="periodic_monitor", monitor=name)

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> asyncio.Task[None]:
        """Run the first tick now and then one every interval. Needs a running loop."""
        if self.is_running:
            raise RuntimeError(f"Monitor {self.name} is already running")
        self._stopping.clear()
        self._loop_task = asyncio.create_task(self._run(), name=f"{self.name}-loop")
        self.logger.info("monitor_started", interval_seconds=self.interval_seconds)
        return self._loop_task

    async def stop(self) -> None:
        """Stop scheduling new ticks and wait for the in-flight one to finish."""
        self._stopping.set()
        if self._loop_task is not None:
            await self._loop_task
        self.logger.info(
            "monitor_stopped",
            ticks_started=self.ticks_started,
            ticks_skipped=self.ticks_skipped,
            ticks_failed=self.ticks_failed,
        )

    async def run_forever(self) -> None:
        """Start the monitor and block until it is stopped or cancelled."""
        task = self.start()
        try:
            await task
        except asyncio.CancelledError:
            self.logger.info("monitor_cancelled")
            raise

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_due = loop.time()

        while not self._stopping.is_set():
            if self._current is not None and not self._current.done():
                self.ticks_skipped += 1
                self.logger.warning("monitor_tick_skipped", reason="previous tick still running")
            else:
                self.ticks_started += 1
                self._current = asyncio.create_task(self._run_tick())

            next_due += self.interval_seconds
            try:
                await asyncio.wait_for(
                    self._stopping.wait(), timeout=max(0.0, next_due - loop.time())
                )
            except TimeoutError:
                pass

        if self._current is not None:
            await self._current

    async def _run_tick(self) -> None:
        try:
            await self._tick()
        except Exception as e:
            self.ticks_failed += 1
            self.logger.exception("monitor_tick_failed", error=str(e))
