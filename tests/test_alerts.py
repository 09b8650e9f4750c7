"""Tests for the alert service."""

import requests
from decimal import Decimal

from polycopy.events import EventBus, MonitorError, SnapshotUpdated, TradeExecuted, TradeFailed
from polycopy.monitor.detector import detect_changes
from polycopy.trading.decision import IntentSide
from polycopy.trading.executor import ExecutionResult, GuardViolation
from polycopy.utils.alerts import AlertConfig, AlertService
from tests.mocks.mock_polymarket_client import MockResponse, MockSession, make_position, make_snapshot

WEBHOOK = "https://discord.example/webhook"


def executed() -> TradeExecuted:
    return TradeExecuted(result=ExecutionResult(
        success=True,
        side=IntentSide.OPEN,
        position=make_position("a"),
        executed_quantity=Decimal("10"),
        executed_price=Decimal("0.5"),
        dry_run=True,
    ))


def service(routes=None, webhook_url=WEBHOOK) -> AlertService:
    session = MockSession(routes if routes is not None else {WEBHOOK: MockResponse(204)})
    return AlertService(AlertConfig(webhook_url=webhook_url), session=session)


class TestAlertService:
    def test_trade_executed_posts_embed(self):
        alerts = service()
        alerts.on_trade_executed(executed())

        request = alerts.session.requests[0]
        embed = request["json"]["embeds"][0]
        assert request["url"] == WEBHOOK
        assert embed["title"] == "DRY RUN BUY Executed"
        assert alerts.sent == 1

    def test_no_webhook_logs_only(self, caplog):
        alerts = service(webhook_url=None)
        with caplog.at_level("INFO"):
            alerts.on_trade_executed(executed())
        assert alerts.session.requests == []
        assert "ALERT: DRY RUN BUY Executed" in caplog.text

    def test_delivery_failure_does_not_raise(self):
        alerts = service(routes={WEBHOOK: requests.ConnectionError("down")})
        alerts.on_trade_executed(executed())
        assert alerts.sent == 0

    def test_bad_status_not_counted(self):
        alerts = service(routes={WEBHOOK: MockResponse(429)})
        alerts.on_trade_executed(executed())
        assert alerts.sent == 0

    def test_trade_failed_includes_reason(self):
        alerts = service()
        position = make_position("a")
        result = ExecutionResult(
            success=False,
            side=IntentSide.OPEN,
            position=position,
            error="Trade size $0.25 is below minimum $1",
            rejection_reason=GuardViolation.BELOW_MIN_TRADE_SIZE,
        )
        alerts.on_trade_failed(TradeFailed(error=result.error, position=position, result=result))

        fields = alerts.session.requests[0]["json"]["embeds"][0]["fields"]
        assert {"name": "Reason", "value": "below_min_trade_size", "inline": True} in fields

    def test_attach_routes_bus_events(self):
        alerts = service()
        bus = EventBus()
        alerts.attach(bus)

        snapshot = make_snapshot(make_position("a"))
        bus.publish(SnapshotUpdated(address="0xtarget", snapshot=snapshot, diff=detect_changes(None, snapshot)))
        bus.publish(MonitorError(address="0xtarget", error=RuntimeError("boom")))
        bus.publish(executed())

        titles = [r["json"]["embeds"][0]["title"] for r in alerts.session.requests]
        assert titles == ["Position Change Detected", "Monitor Error", "DRY RUN BUY Executed"]
