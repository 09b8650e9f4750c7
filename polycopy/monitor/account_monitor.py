"""
Account Monitor - poll scheduler for one tracked account.

Lifecycle: Stopped -> Running -> Stopped

Each tick:
1. Fetch positions (worker thread)
2. Diff against the committed snapshot
3. On material change: publish SnapshotUpdated and await the on_change hook

Ticks are single-flight: a timer firing while a tick is still running is
skipped. A failing tick is logged and published as MonitorError; the
timer keeps running and the previous snapshot is kept.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from polycopy.config import MonitorConfig
from polycopy.events import EventBus, MonitorError, SnapshotUpdated
from polycopy.monitor.detector import ChangeDetector, SnapshotDiff
from polycopy.monitor.snapshot import AccountSnapshot
from polycopy.polymarket.data_api import MarketDataSource

logger = logging.getLogger(__name__)

ChangeHook = Callable[[AccountSnapshot, SnapshotDiff], Awaitable[None]]


class AccountMonitor:
    """
    Polls one account and reports material changes.

    Usage:
        monitor = AccountMonitor(PolymarketDataClient(), MonitorConfig(target_address="0x..."))
        await monitor.start()
        ...
        monitor.stop()
        await monitor.wait_idle()
    """

    def __init__(
        self,
        source: MarketDataSource,
        config: MonitorConfig,
        event_bus: Optional[EventBus] = None,
        detector: Optional[ChangeDetector] = None,
        on_change: Optional[ChangeHook] = None,
    ):
        self._source = source
        self._config = config
        self._bus = event_bus or EventBus()
        self._detector = detector or ChangeDetector()
        self._on_change = on_change

        self._running = False
        self._lock = asyncio.Lock()
        self._timer_task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()

        self.ticks = 0
        self.skipped_ticks = 0
        self.errors = 0

    @property
    def address(self) -> str:
        return self._config.target_address

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_snapshot(self) -> Optional[AccountSnapshot]:
        """Last committed (materially changed) snapshot."""
        return self._detector.previous

    async def start(self) -> None:
        """Run one tick immediately, then poll at the configured interval."""
        if self._running:
            logger.warning("Monitor is already running")
            return

        self._running = True
        logger.info(f"Starting monitor for address: {self.address}")
        logger.info(f"Polling interval: {self._config.poll_interval_seconds} seconds")

        await self.poll_once()

        if self._running:
            self._timer_task = asyncio.create_task(self._run_timer())
            logger.info("Monitor started. Watching for position changes...")

    def stop(self) -> None:
        """Disarm the timer. An in-flight tick is left to finish."""
        if not self._running:
            return

        self._running = False
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None
        logger.info("Monitor stopped")

    async def wait_idle(self) -> None:
        """Wait for in-flight ticks to finish."""
        while self._tick_tasks:
            await asyncio.gather(*list(self._tick_tasks), return_exceptions=True)

    async def get_status(self) -> AccountSnapshot:
        """Fetch a fresh snapshot without committing it."""
        return await asyncio.to_thread(self._source.fetch_positions, self.address)

    async def poll_once(self) -> Optional[SnapshotDiff]:
        """
        Run one tick.

        Returns:
            The diff, or None when the tick was skipped or failed
        """
        if self._lock.locked():
            self.skipped_ticks += 1
            logger.warning(f"Previous poll still running, skipping tick ({self.skipped_ticks} skipped)")
            return None

        async with self._lock:
            self.ticks += 1
            try:
                snapshot = await self.get_status()
                logger.debug(f"Poll #{self.ticks}: {len(snapshot)} positions, value ${snapshot.total_value:.2f}")

                diff = self._detector.observe(snapshot)
                if diff.changed:
                    self._bus.publish(SnapshotUpdated(address=self.address, snapshot=snapshot, diff=diff))
                    if self._on_change is not None:
                        await self._on_change(snapshot, diff)
                return diff
            except Exception as e:
                self.errors += 1
                logger.error(f"Poll failed for {self.address}: {e}")
                self._bus.publish(MonitorError(address=self.address, error=e))
                return None

    async def _run_timer(self) -> None:
        interval = self._config.poll_interval_seconds
        while self._running:
            await asyncio.sleep(interval)
            if not self._running:
                break

            task = asyncio.create_task(self.poll_once())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)
