"""Tests for the copy trade executor."""

import pytest
import asyncio
from decimal import Decimal

from polycopy.config import CopyTradingConfig
from polycopy.events import EventBus, TradeExecuted, TradeFailed
from polycopy.trading.decision import IntentSide, TradeIntent
from polycopy.trading.executor import (
    ExecutionResult,
    ExecutorInitializationError,
    GuardViolation,
    TradeExecutor,
)
from tests.mocks.mock_polymarket_client import MockOrderGateway, make_position


# Helper to run async tests
def run_async(coro):
    """Run async coroutine in sync test."""
    return asyncio.run(coro)


def open_intent(**kwargs) -> TradeIntent:
    return TradeIntent(IntentSide.OPEN, make_position("token-1", **kwargs))


def close_intent(**kwargs) -> TradeIntent:
    return TradeIntent(IntentSide.CLOSE, make_position("token-1", **kwargs))


def live_config(**overrides) -> CopyTradingConfig:
    return CopyTradingConfig(enabled=True, dry_run=False, private_key="0xkey", **overrides)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe_all(received.append)
    return received


class TestExecutionResult:
    """Tests for ExecutionResult dataclass."""

    def test_successful_result(self):
        result = ExecutionResult(
            success=True,
            side=IntentSide.OPEN,
            position=make_position("a"),
            executed_quantity=Decimal("10"),
            executed_price=Decimal("0.55"),
            dry_run=True,
        )
        assert "DRY-RUN" in repr(result)
        assert result.notional == Decimal("5.50")

    def test_failed_result(self):
        result = ExecutionResult(
            success=False,
            side=IntentSide.CLOSE,
            position=make_position("a"),
            error="Connection failed",
        )
        assert "FAILED" in repr(result)
        assert result.notional == Decimal("0")


class TestGuards:
    """Guard chain: zero size -> min trade -> max trade -> max position (opens only)."""

    def test_below_min_trade_size(self, bus, events):
        executor = TradeExecutor(CopyTradingConfig(min_trade_size=Decimal("1")), event_bus=bus)
        result = run_async(executor.execute(open_intent(quantity="1", price="0.5")))

        assert result.success is False
        assert result.rejection_reason is GuardViolation.BELOW_MIN_TRADE_SIZE
        assert result.error == "Trade size $0.50 is below minimum $1"
        assert isinstance(events[0], TradeFailed)

    def test_min_trade_wins_over_max_position(self):
        """Breaks both min trade and max position: only the first guard reports."""
        gateway = MockOrderGateway()
        config = live_config(min_trade_size=Decimal("5"), max_position_size=Decimal("1"))
        executor = TradeExecutor(config, gateway=gateway)
        result = run_async(executor.execute(open_intent(quantity="1", price="0.5", value="50")))

        assert result.rejection_reason is GuardViolation.BELOW_MIN_TRADE_SIZE
        assert result.order_id is None
        assert gateway.orders == []

    def test_quantity_rounding_to_zero_is_rejected(self, bus, events):
        gateway = MockOrderGateway()
        executor = TradeExecutor(live_config(min_trade_size=Decimal("0")), gateway=gateway, event_bus=bus)
        result = run_async(executor.execute(open_intent(quantity="0.00004", price="0.5")))

        assert result.success is False
        assert result.rejection_reason is GuardViolation.ZERO_SIZE
        assert gateway.orders == []
        assert isinstance(events[0], TradeFailed)

    def test_guards_see_rounded_quantity(self):
        executor = TradeExecutor(CopyTradingConfig(min_trade_size=Decimal("0")))
        result = run_async(executor.execute(open_intent(quantity="0.00016", price="0.5")))

        assert result.success is True
        assert result.executed_quantity == Decimal("0.0002")

    def test_above_max_trade_size(self):
        executor = TradeExecutor(CopyTradingConfig(max_trade_size=Decimal("10")))
        result = run_async(executor.execute(open_intent(quantity="100", price="0.5")))

        assert result.rejection_reason is GuardViolation.ABOVE_MAX_TRADE_SIZE
        assert result.error == "Trade size $50.00 exceeds maximum $10"

    def test_max_trade_applies_to_close(self):
        executor = TradeExecutor(CopyTradingConfig(max_trade_size=Decimal("10")))
        result = run_async(executor.execute(close_intent(quantity="100", price="0.5")))
        assert result.rejection_reason is GuardViolation.ABOVE_MAX_TRADE_SIZE

    def test_above_max_position_size(self):
        executor = TradeExecutor(CopyTradingConfig(max_position_size=Decimal("20")))
        result = run_async(executor.execute(open_intent(quantity="100", price="0.5", value="50")))

        assert result.rejection_reason is GuardViolation.ABOVE_MAX_POSITION_SIZE
        assert result.error == "Position size $50.00 exceeds maximum $20"

    def test_max_position_ignored_on_close(self):
        executor = TradeExecutor(CopyTradingConfig(max_position_size=Decimal("20")))
        result = run_async(executor.execute(close_intent(quantity="100", price="0.5", value="50")))
        assert result.success is True

    def test_max_position_uses_multiplier(self):
        config = CopyTradingConfig(max_position_size=Decimal("20"), position_size_multiplier=Decimal("0.25"))
        executor = TradeExecutor(config)
        result = run_async(executor.execute(open_intent(quantity="100", price="0.5", value="50")))
        assert result.success is True

    def test_rejection_does_not_touch_gateway(self):
        gateway = MockOrderGateway()
        executor = TradeExecutor(live_config(min_trade_size=Decimal("5")), gateway=gateway)
        run_async(executor.execute(open_intent(quantity="1", price="0.5")))

        assert gateway.orders == []
        assert gateway.initialize_calls == 0


class TestDryRun:
    """Tests for dry-run execution."""

    def test_dry_run_success(self, bus, events):
        gateway = MockOrderGateway()
        executor = TradeExecutor(CopyTradingConfig(), gateway=gateway, event_bus=bus)
        result = run_async(executor.execute(open_intent(quantity="100", price="0.55")))

        assert result.success is True
        assert result.dry_run is True
        assert result.order_id is None
        assert result.executed_quantity == Decimal("100")
        assert result.executed_price == Decimal("0.55")
        assert gateway.orders == []
        assert isinstance(events[0], TradeExecuted)
        assert events[0].result is result

    def test_multiplier_scales_quantity(self):
        executor = TradeExecutor(CopyTradingConfig(position_size_multiplier=Decimal("0.5")))
        result = run_async(executor.execute(open_intent(quantity="100", price="0.5")))
        assert result.executed_quantity == Decimal("50")

    def test_quantity_rounded_to_four_places(self):
        executor = TradeExecutor(CopyTradingConfig(position_size_multiplier=Decimal("0.333333")))
        result = run_async(executor.execute(open_intent(quantity="100", price="0.5")))
        assert result.executed_quantity == Decimal("33.3333")

    def test_initialize_is_noop(self):
        gateway = MockOrderGateway(fail_initialize=True)
        executor = TradeExecutor(CopyTradingConfig(), gateway=gateway)
        run_async(executor.initialize())
        assert gateway.initialize_calls == 0


class TestLive:
    """Tests for live execution against a mock gateway."""

    def test_open_submits_buy(self):
        gateway = MockOrderGateway()
        executor = TradeExecutor(live_config(), gateway=gateway)
        result = run_async(executor.execute(open_intent(quantity="100", price="0.55")))

        assert result.success is True
        assert result.dry_run is False
        assert result.order_id == "order-1"
        assert gateway.get_last_order() == {
            "token_id": "token-1",
            "side": "BUY",
            "price": Decimal("0.55"),
            "size": Decimal("100"),
        }

    def test_close_submits_sell(self):
        gateway = MockOrderGateway()
        executor = TradeExecutor(live_config(), gateway=gateway)
        run_async(executor.execute(close_intent()))
        assert gateway.get_last_order()["side"] == "SELL"

    def test_initializes_once(self):
        gateway = MockOrderGateway()
        executor = TradeExecutor(live_config(), gateway=gateway)

        async def run():
            await executor.initialize()
            await executor.execute(open_intent())
            await executor.execute(close_intent())

        run_async(run())
        assert gateway.initialize_calls == 1
        assert executor.initialized is True

    def test_gateway_failure_is_a_result(self, bus, events):
        gateway = MockOrderGateway(should_fail=True)
        executor = TradeExecutor(live_config(), gateway=gateway, event_bus=bus)
        result = run_async(executor.execute(open_intent()))

        assert result.success is False
        assert "Mock order failure" in result.error
        assert result.rejection_reason is None
        assert isinstance(events[0], TradeFailed)
        assert events[0].position.id == "token-1"

    def test_initialize_failure_raises(self):
        executor = TradeExecutor(live_config(), gateway=MockOrderGateway(fail_initialize=True))
        with pytest.raises(ExecutorInitializationError):
            run_async(executor.initialize())

    def test_initialize_failure_during_execute_is_a_result(self):
        gateway = MockOrderGateway(fail_initialize=True)
        executor = TradeExecutor(live_config(), gateway=gateway)
        result = run_async(executor.execute(open_intent()))

        assert result.success is False
        assert "initialize" in result.error
        assert gateway.orders == []

    def test_live_without_gateway(self):
        executor = TradeExecutor(live_config())
        result = run_async(executor.execute(open_intent()))
        assert result.success is False
