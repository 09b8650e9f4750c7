"""
Alert system for copy trading notifications.

Turns bus events into alerts: always logged, and posted to a Discord
webhook when one is configured. Alert delivery failure is logged but
doesn't block operations.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

import requests

from polycopy.events import EventBus, MonitorError, SnapshotUpdated, TradeExecuted, TradeFailed

logger = logging.getLogger(__name__)

GREEN = 0x00FF00
YELLOW = 0xFFFF00
RED = 0xFF0000


@dataclass
class AlertConfig:
    """Discord alert configuration."""

    enabled: bool = True
    webhook_url: Optional[str] = None
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "AlertConfig":
        return cls(webhook_url=os.getenv("DISCORD_WEBHOOK_URL") or None)


class AlertService:
    """
    Sends notifications for trades and monitor errors.

    Usage:
        alerts = AlertService(AlertConfig.from_env())
        alerts.attach(event_bus)
    """

    def __init__(self, config: Optional[AlertConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or AlertConfig()
        self.session = session or requests.Session()
        self.sent = 0

        if self.config.enabled and not self.config.webhook_url:
            logger.info("No Discord webhook URL configured. Alerts will be logged only.")

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(TradeExecuted, self.on_trade_executed)
        bus.subscribe(TradeFailed, self.on_trade_failed)
        bus.subscribe(MonitorError, self.on_monitor_error)
        bus.subscribe(SnapshotUpdated, self.on_snapshot_updated)

    def on_trade_executed(self, event: TradeExecuted) -> None:
        result = event.result
        position = result.position
        mode = "DRY RUN" if result.dry_run else "LIVE"
        self._send(
            title=f"{mode} {result.side.order_side} Executed",
            description=f"Market: {position.market.question[:100]}",
            color=YELLOW if result.dry_run else GREEN,
            fields=[
                {"name": "Outcome", "value": position.outcome or "-", "inline": True},
                {"name": "Size", "value": f"{result.executed_quantity} shares", "inline": True},
                {"name": "Price", "value": f"${result.executed_price}", "inline": True},
                {"name": "Order", "value": result.order_id or "-", "inline": True},
            ],
        )

    def on_trade_failed(self, event: TradeFailed) -> None:
        fields = [{"name": "Outcome", "value": event.position.outcome or "-", "inline": True}]
        if event.result is not None and event.result.rejection_reason is not None:
            fields.append({"name": "Reason", "value": event.result.rejection_reason.value, "inline": True})
        self._send(
            title="Trade Failed",
            description=f"{event.error}\nMarket: {event.position.market.question[:100]}",
            color=RED,
            fields=fields,
        )

    def on_monitor_error(self, event: MonitorError) -> None:
        self._send(
            title="Monitor Error",
            description=f"{event.address}: {event.error}",
            color=RED,
            urgent=True,
        )

    def on_snapshot_updated(self, event: SnapshotUpdated) -> None:
        diff = event.diff
        if not (diff.added or diff.removed):
            return
        self._send(
            title="Position Change Detected",
            description=(
                f"{event.address}: +{len(diff.added)} opened, -{len(diff.removed)} closed, "
                f"total value ${event.snapshot.total_value:.2f}"
            ),
            color=YELLOW,
        )

    def _send(self, title: str, description: str, color: int = GREEN, fields: Optional[List[dict]] = None, urgent: bool = False) -> None:
        """
        Log the alert and post it to Discord when configured.

        Note: Delivery failure is logged but doesn't raise.
        """
        log_level = logging.ERROR if urgent else logging.INFO
        logger.log(log_level, f"ALERT: {title} | {description}")

        if not self.config.enabled or not self.config.webhook_url:
            return

        embed = {
            "title": title,
            "description": description,
            "color": color,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "fields": fields or [],
        }

        try:
            response = self.session.post(
                self.config.webhook_url,
                json={"embeds": [embed]},
                timeout=self.config.timeout_seconds,
            )
            if response.status_code not in (200, 204):
                logger.warning(f"Discord alert failed: {response.status_code}")
                return
            self.sent += 1
        except requests.RequestException as e:
            logger.error(f"Discord alert error: {e}")
