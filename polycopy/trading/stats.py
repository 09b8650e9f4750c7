"""Copy trading session statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from polycopy.monitor.snapshot import utc_now
from polycopy.trading.executor import ExecutionResult

VOLUME_QUANT = Decimal("0.01")


@dataclass
class CopyTradeStats:
    """
    Counters for one copy trading session.

    Dry-run successes count exactly like live ones.
    """
    enabled: bool = False
    dry_run: bool = True
    started_at: datetime = field(default_factory=utc_now)
    total_trades_executed: int = 0
    total_trades_failed: int = 0
    total_volume: Decimal = Decimal("0.00")
    last_trade_time: Optional[datetime] = None

    def record(self, result: ExecutionResult) -> None:
        if result.success:
            self.record_success(result)
        else:
            self.record_failure()

    def record_success(self, result: ExecutionResult) -> None:
        self.total_trades_executed += 1
        self.total_volume = (self.total_volume + result.notional).quantize(VOLUME_QUANT, rounding=ROUND_HALF_UP)
        self.last_trade_time = utc_now()

    def record_failure(self) -> None:
        self.total_trades_failed += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat(),
            "runtime_seconds": (utc_now() - self.started_at).total_seconds(),
            "total_trades_executed": self.total_trades_executed,
            "total_trades_failed": self.total_trades_failed,
            "total_volume": str(self.total_volume),
            "last_trade_time": self.last_trade_time.isoformat() if self.last_trade_time else None,
        }
