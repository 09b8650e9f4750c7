"""
Polymarket Copy Monitor

Watches a target account's positions and optionally mirrors its opens
and closes on the Polymarket CLOB.

Components:
- config: Validated pydantic configuration
- monitor: Snapshot model, change detection, poll scheduler
- trading: Decision engine, trade executor, copy trading orchestrator
- polymarket: Data API client and CLOB order gateway
- events: Typed event bus for observers
"""

from polycopy.config import AppConfig, ApiConfig, CopyTradingConfig, MonitorConfig
from polycopy.events import (
    EventBus,
    EventQueue,
    MonitorError,
    SnapshotUpdated,
    TradeExecuted,
    TradeFailed,
)
from polycopy.monitor.account_monitor import AccountMonitor
from polycopy.monitor.detector import ChangeDetector, SnapshotDiff, detect_changes
from polycopy.monitor.snapshot import AccountSnapshot, Market, Position, Trade
from polycopy.polymarket.data_api import DataSourceError, MarketDataSource, PolymarketDataClient
from polycopy.polymarket.gateway import ClobOrderGateway, GatewayError, OrderGateway
from polycopy.trading.copy_monitor import CopyTradingMonitor
from polycopy.trading.decision import CopyDecisionEngine, IntentSide, TradeIntent
from polycopy.trading.executor import ExecutionResult, ExecutorInitializationError, TradeExecutor
from polycopy.trading.stats import CopyTradeStats

__version__ = "1.0.0"
__all__ = [
    # Config
    "AppConfig",
    "ApiConfig",
    "CopyTradingConfig",
    "MonitorConfig",
    # Events
    "EventBus",
    "EventQueue",
    "MonitorError",
    "SnapshotUpdated",
    "TradeExecuted",
    "TradeFailed",
    # Monitor
    "AccountMonitor",
    "AccountSnapshot",
    "ChangeDetector",
    "Market",
    "Position",
    "SnapshotDiff",
    "Trade",
    "detect_changes",
    # Polymarket
    "ClobOrderGateway",
    "DataSourceError",
    "GatewayError",
    "MarketDataSource",
    "OrderGateway",
    "PolymarketDataClient",
    # Trading
    "CopyDecisionEngine",
    "CopyTradeStats",
    "CopyTradingMonitor",
    "ExecutionResult",
    "ExecutorInitializationError",
    "IntentSide",
    "TradeExecutor",
    "TradeIntent",
]
