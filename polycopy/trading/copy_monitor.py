"""
Copy Trading Monitor

Wires the account monitor to the decision engine and trade executor:

    AccountMonitor tick -> SnapshotDiff -> CopyDecisionEngine.decide()
        -> TradeExecutor.execute() -> record_result() -> stats

Trade handling runs inside the monitor tick, so the mirrored index and
stats are only ever touched by one tick at a time.
"""

import dataclasses
import logging
from typing import Optional

from polycopy.config import AppConfig
from polycopy.events import EventBus
from polycopy.monitor.account_monitor import AccountMonitor
from polycopy.monitor.detector import SnapshotDiff
from polycopy.monitor.snapshot import AccountSnapshot
from polycopy.polymarket.data_api import MarketDataSource, PolymarketDataClient
from polycopy.polymarket.gateway import ClobOrderGateway, OrderGateway
from polycopy.trading.decision import CopyDecisionEngine, MirroredPositions
from polycopy.trading.executor import ExecutorInitializationError, TradeExecutor
from polycopy.trading.stats import CopyTradeStats

logger = logging.getLogger(__name__)


class CopyTradingMonitor:
    """
    Mirrors a target account's opens and closes.

    Usage:
        config = AppConfig.from_env()
        copier = CopyTradingMonitor.from_config(config)
        await copier.start()
    """

    def __init__(
        self,
        config: AppConfig,
        source: MarketDataSource,
        gateway: Optional[OrderGateway] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.engine = CopyDecisionEngine()
        self.executor = TradeExecutor(config.copy_trading, gateway=gateway, event_bus=self.event_bus)
        self.stats = CopyTradeStats(enabled=config.copy_trading.enabled, dry_run=config.copy_trading.dry_run)
        self.monitor = AccountMonitor(
            source,
            config.monitor,
            event_bus=self.event_bus,
            on_change=self._handle_update if config.copy_trading.enabled else None,
        )

    @classmethod
    def from_config(cls, config: AppConfig, event_bus: Optional[EventBus] = None) -> "CopyTradingMonitor":
        """Build with the Polymarket Data API and, in live mode, the CLOB gateway."""
        copy_config = config.copy_trading
        gateway = None
        if copy_config.enabled and not copy_config.dry_run:
            gateway = ClobOrderGateway(
                copy_config.private_key.get_secret_value(),
                host=copy_config.clob_host,
                chain_id=copy_config.chain_id,
            )
        return cls(config, PolymarketDataClient(config.api), gateway=gateway, event_bus=event_bus)

    @property
    def mirrored(self) -> MirroredPositions:
        return self.engine.mirrored

    @property
    def is_running(self) -> bool:
        return self.monitor.is_running

    async def start(self) -> None:
        """
        Start monitoring, initializing the executor first when copy trading.

        Raises:
            ExecutorInitializationError: In live mode, if the gateway fails
        """
        copy_config = self.config.copy_trading
        if not copy_config.enabled:
            logger.info("Copy trading disabled, monitoring only")
            await self.monitor.start()
            return

        try:
            await self.executor.initialize()
        except ExecutorInitializationError as e:
            if not copy_config.dry_run:
                logger.error(f"Failed to initialize trade executor: {e}")
                raise
            logger.warning(f"Executor initialization failed in dry-run mode, continuing: {e}")

        mode = "DRY-RUN" if copy_config.dry_run else "LIVE"
        logger.info(
            f"Copy trading enabled ({mode}), multiplier {copy_config.position_size_multiplier}, "
            f"min trade ${copy_config.min_trade_size}"
        )
        await self.monitor.start()

    def stop(self) -> None:
        self.monitor.stop()
        logger.info(
            f"Copy trading stopped: {self.stats.total_trades_executed} executed, "
            f"{self.stats.total_trades_failed} failed, volume ${self.stats.total_volume}"
        )

    async def wait_idle(self) -> None:
        await self.monitor.wait_idle()

    def get_stats(self) -> CopyTradeStats:
        """Point-in-time copy of the session stats."""
        return dataclasses.replace(self.stats)

    async def _handle_update(self, snapshot: AccountSnapshot, diff: SnapshotDiff) -> None:
        for intent in self.engine.decide(diff):
            try:
                result = await self.executor.execute(intent)
            except Exception:
                logger.exception(f"Unexpected error executing {intent!r}")
                self.stats.record_failure()
                continue

            self.engine.record_result(intent, result)
            self.stats.record(result)
