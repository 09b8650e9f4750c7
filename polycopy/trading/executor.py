"""
Trade Executor for copy trading

Bridges TradeIntents to Polymarket orders.

Features:
- Dry-run mode for safe testing
- Size guards (min/max trade, max position), fail-fast
- One-time gateway initialization in live mode
- Never raises from execute(): every outcome is an ExecutionResult
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from polycopy.config import CopyTradingConfig
from polycopy.events import EventBus, TradeExecuted, TradeFailed
from polycopy.monitor.snapshot import Position, utc_now
from polycopy.polymarket.gateway import OrderGateway
from polycopy.trading.decision import IntentSide, TradeIntent

logger = logging.getLogger(__name__)

EXECUTION_QUANT = Decimal("0.0001")


class GuardViolation(Enum):
    """Reasons a trade is rejected before any order is attempted."""

    ZERO_SIZE = "zero_size"
    BELOW_MIN_TRADE_SIZE = "below_min_trade_size"
    ABOVE_MAX_TRADE_SIZE = "above_max_trade_size"
    ABOVE_MAX_POSITION_SIZE = "above_max_position_size"


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """
    Result of one copy trade attempt.

    executed_quantity / executed_price are set whenever an order was
    (or, in dry-run, would have been) submitted.
    """
    success: bool
    side: IntentSide
    position: Position
    order_id: Optional[str] = None
    executed_quantity: Optional[Decimal] = None
    executed_price: Optional[Decimal] = None
    error: Optional[str] = None
    rejection_reason: Optional[GuardViolation] = None
    dry_run: bool = False
    timestamp: datetime = field(default_factory=utc_now)

    def __repr__(self) -> str:
        if self.success:
            mode = "DRY-RUN" if self.dry_run else "LIVE"
            return (
                f"ExecutionResult({mode} {self.side.order_side}: "
                f"{self.executed_quantity}@{self.executed_price}, order={self.order_id})"
            )
        return f"ExecutionResult(FAILED {self.side.order_side}: {self.error})"

    @property
    def notional(self) -> Decimal:
        if self.executed_quantity is None or self.executed_price is None:
            return Decimal("0")
        return self.executed_quantity * self.executed_price


class ExecutorInitializationError(Exception):
    """The order gateway could not be initialized in live mode."""


class TradeExecutor:
    """
    Executes copy trade intents against an OrderGateway (or dry-run).

    Usage:
        executor = TradeExecutor(config, gateway=ClobOrderGateway(key))
        await executor.initialize()
        result = await executor.execute(intent)
    """

    def __init__(
        self,
        config: CopyTradingConfig,
        gateway: Optional[OrderGateway] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._config = config
        self._gateway = gateway
        self._bus = event_bus
        self._initialized = False

        mode = "DRY-RUN" if config.dry_run else "LIVE"
        logger.info(f"TradeExecutor initialized in {mode} mode")

    @property
    def dry_run(self) -> bool:
        return self._config.dry_run

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Prepare the gateway once. No-op in dry-run mode.

        Raises:
            ExecutorInitializationError: If the gateway is missing or fails
        """
        if self._config.dry_run or self._initialized:
            return
        if self._gateway is None:
            raise ExecutorInitializationError("Live mode requires an order gateway")

        try:
            await asyncio.to_thread(self._gateway.initialize)
        except Exception as e:
            raise ExecutorInitializationError(f"Failed to initialize order gateway: {e}") from e

        self._initialized = True
        logger.info(f"Order gateway ready (wallet {self._gateway.wallet_address})")

    def check_guards(self, intent: TradeIntent, quantity: Decimal, price: Decimal) -> Optional[ExecutionResult]:
        """
        Size guards, first failure wins. Expects quantity and price already
        rounded to execution precision.

        Returns:
            A rejected ExecutionResult, or None when all guards pass
        """
        trade_value = quantity * price
        config = self._config

        if quantity <= 0:
            return self._rejected(
                intent,
                GuardViolation.ZERO_SIZE,
                f"Trade quantity {quantity} is below the minimum order increment {EXECUTION_QUANT}",
            )

        if trade_value < config.min_trade_size:
            return self._rejected(
                intent,
                GuardViolation.BELOW_MIN_TRADE_SIZE,
                f"Trade size ${trade_value:.2f} is below minimum ${config.min_trade_size}",
            )

        if config.max_trade_size is not None and trade_value > config.max_trade_size:
            return self._rejected(
                intent,
                GuardViolation.ABOVE_MAX_TRADE_SIZE,
                f"Trade size ${trade_value:.2f} exceeds maximum ${config.max_trade_size}",
            )

        if intent.side is IntentSide.OPEN and config.max_position_size is not None:
            position_value = intent.position.value * config.position_size_multiplier
            if position_value > config.max_position_size:
                return self._rejected(
                    intent,
                    GuardViolation.ABOVE_MAX_POSITION_SIZE,
                    f"Position size ${position_value:.2f} exceeds maximum ${config.max_position_size}",
                )

        return None

    async def execute(self, intent: TradeIntent) -> ExecutionResult:
        """
        Execute one intent.

        Steps:
        1. Size the trade (quantity * multiplier), rounded to 4 dp
        2. Check guards
        3. Execute (or dry-run)
        4. Publish TradeExecuted / TradeFailed
        """
        position = intent.position
        quantity = (position.quantity * self._config.position_size_multiplier).quantize(EXECUTION_QUANT)
        price = position.price.quantize(EXECUTION_QUANT)

        result = self.check_guards(intent, quantity, price)
        if result is not None:
            logger.warning(f"Trade rejected: {result.error}")
            self._publish(result)
            return result

        if self._config.dry_run:
            result = self._dry_run_execute(intent, quantity, price)
        else:
            result = await self._live_execute(intent, quantity, price)

        self._publish(result)
        return result

    def _dry_run_execute(self, intent: TradeIntent, quantity: Decimal, price: Decimal) -> ExecutionResult:
        logger.info(
            f"[DRY-RUN] Would {intent.side.order_side}: {quantity} shares @ ${price} "
            f"(value ${quantity * price:.2f}) on {intent.position.market.question[:50]}"
        )
        return ExecutionResult(
            success=True,
            side=intent.side,
            position=intent.position,
            executed_quantity=quantity,
            executed_price=price,
            dry_run=True,
        )

    async def _live_execute(self, intent: TradeIntent, quantity: Decimal, price: Decimal) -> ExecutionResult:
        try:
            await self.initialize()
            order_id = await asyncio.to_thread(
                self._gateway.submit_order,
                intent.position.id,
                intent.side.order_side,
                price,
                quantity,
            )
        except Exception as e:
            logger.error(f"Live {intent.side.order_side} failed for {intent.position.id[:20]}...: {e}")
            return ExecutionResult(
                success=False,
                side=intent.side,
                position=intent.position,
                executed_quantity=quantity,
                executed_price=price,
                error=str(e),
            )

        logger.info(f"{intent.side.order_side} order placed: {order_id} ({quantity} @ ${price})")
        return ExecutionResult(
            success=True,
            side=intent.side,
            position=intent.position,
            order_id=order_id,
            executed_quantity=quantity,
            executed_price=price,
        )

    def _rejected(self, intent: TradeIntent, reason: GuardViolation, message: str) -> ExecutionResult:
        return ExecutionResult(
            success=False,
            side=intent.side,
            position=intent.position,
            error=message,
            rejection_reason=reason,
            dry_run=self._config.dry_run,
        )

    def _publish(self, result: ExecutionResult) -> None:
        if self._bus is None:
            return
        if result.success:
            self._bus.publish(TradeExecuted(result=result))
        else:
            self._bus.publish(TradeFailed(error=result.error or "unknown error", position=result.position, result=result))
