"""
Observer events for the account monitor and copy trading engine.

Events are published on an EventBus. Handlers run synchronously in
registration order; a handler that raises is logged and skipped, so
observers can never break a poll tick.

For consumers that prefer a channel, EventBus.queue() returns a bounded
EventQueue. A full queue drops the newest event and counts the drop.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Type

from polycopy.monitor.snapshot import utc_now

if TYPE_CHECKING:
    from polycopy.monitor.detector import SnapshotDiff
    from polycopy.monitor.snapshot import AccountSnapshot, Position
    from polycopy.trading.executor import ExecutionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Base class for all published events."""
    timestamp: datetime = field(default_factory=utc_now, kw_only=True)


@dataclass(frozen=True)
class SnapshotUpdated(Event):
    """A materially changed snapshot was committed."""
    address: str
    snapshot: "AccountSnapshot"
    diff: "SnapshotDiff"


@dataclass(frozen=True)
class MonitorError(Event):
    """A poll tick failed (fetch, detection or trade handling)."""
    address: str
    error: BaseException


@dataclass(frozen=True)
class TradeExecuted(Event):
    """A copy trade succeeded (live or dry-run)."""
    result: "ExecutionResult"


@dataclass(frozen=True)
class TradeFailed(Event):
    """A copy trade was rejected by a guard or failed at the gateway."""
    error: str
    position: "Position"
    result: Optional["ExecutionResult"] = None


Handler = Callable[[Event], None]


class EventBus:
    """
    Typed synchronous pub-sub.

    Usage:
        bus = EventBus()
        bus.subscribe(TradeExecuted, on_trade)
        bus.publish(TradeExecuted(result=result))
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[Type[Event], List[Handler]] = defaultdict(list)
        self._global_handlers: List[Handler] = []
        self._handler_errors = 0

    def subscribe(self, event_type: Type[Event], handler: Handler) -> None:
        """Register handler for one event type."""
        with self._lock:
            self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register handler for every event."""
        with self._lock:
            self._global_handlers.append(handler)

    def unsubscribe(self, event_type: Type[Event], handler: Handler) -> bool:
        with self._lock:
            try:
                self._handlers[event_type].remove(handler)
                return True
            except ValueError:
                return False

    def publish(self, event: Event) -> None:
        """Deliver event to global handlers first, then typed handlers."""
        with self._lock:
            handlers = list(self._global_handlers) + list(self._handlers.get(type(event), []))

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self._handler_errors += 1
                logger.exception(f"Event handler {handler!r} failed on {type(event).__name__}")

    def queue(self, maxsize: int = 1000) -> "EventQueue":
        """Create a bounded queue receiving every event published from now on."""
        event_queue = EventQueue(maxsize=maxsize)
        self.subscribe_all(event_queue.put)
        return event_queue

    @property
    def handler_errors(self) -> int:
        return self._handler_errors


class EventQueue:
    """
    Bounded event channel fed by an EventBus.

    Must be consumed from the event loop that publishes into it.
    """

    def __init__(self, maxsize: int = 1000):
        if maxsize <= 0:
            raise ValueError(f"maxsize must be positive: {maxsize}")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._dropped = 0

    def put(self, event: Event) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(f"Event queue full, dropped {type(event).__name__} ({self._dropped} dropped)")

    async def get(self) -> Event:
        return await self._queue.get()

    def get_nowait(self) -> Optional[Event]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def drain(self) -> List[Event]:
        """Return and remove every queued event."""
        events = []
        while True:
            event = self.get_nowait()
            if event is None:
                return events
            events.append(event)

    def __len__(self) -> int:
        return self._queue.qsize()

    @property
    def dropped(self) -> int:
        return self._dropped
