"""
Position snapshot model.

Immutable value types for one polled state of the tracked account.
Produced by the data source adapter (see polycopy.polymarket.normalize)
and owned by the ChangeDetector between polls.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

UNKNOWN_MARKET = "Unknown Market"

TOTAL_VALUE_QUANT = Decimal("0.000001")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Market:
    """
    Market metadata.

    A market with no upstream data is a placeholder (question set to
    UNKNOWN_MARKET, active, no tags) and is handled like any other.
    """
    id: str
    question: str = UNKNOWN_MARKET
    slug: str = ""
    description: Optional[str] = None
    end_date: Optional[str] = None
    icon: Optional[str] = None
    tags: Tuple[str, ...] = ()
    liquidity: Optional[Decimal] = None
    volume: Optional[Decimal] = None
    active: bool = True

    @classmethod
    def placeholder(cls, market_id: str = "") -> "Market":
        return cls(id=market_id)

    @property
    def is_placeholder(self) -> bool:
        return self.question == UNKNOWN_MARKET


@dataclass(frozen=True, slots=True)
class Position:
    """
    One open position of the tracked account.

    id is the token (outcome) id and the diffing key between polls.
    """
    id: str
    market: Market
    outcome: str
    quantity: Decimal
    price: Decimal
    value: Decimal
    initial_value: Optional[Decimal] = None
    timestamp: datetime = field(default_factory=utc_now)

    def __repr__(self) -> str:
        return (
            f"Position({self.id[:12]}: {self.outcome} {self.quantity} @ {self.price}, "
            f"value={self.value})"
        )

    @property
    def notional(self) -> Decimal:
        return self.quantity * self.price


@dataclass(frozen=True, slots=True)
class Trade:
    """A historical trade of an account (read-only)."""
    id: str
    market: Market
    outcome: str
    side: str                  # "buy" or "sell"
    quantity: Decimal
    price: Decimal
    timestamp: datetime
    transaction_hash: Optional[str] = None
    user: str = ""


@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """
    Full set of an account's open positions at one poll tick.

    positions maps Position.id -> Position; iteration order is the
    upstream order.
    """
    address: str
    positions: Dict[str, Position]
    total_value: Decimal
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def from_positions(
        cls,
        address: str,
        positions: Iterable[Position],
        timestamp: Optional[datetime] = None,
    ) -> "AccountSnapshot":
        """Build a snapshot, keyed by id, with the aggregate value computed."""
        by_id: Dict[str, Position] = {}
        for position in positions:
            if position.id in by_id:
                logger.warning(f"Duplicate position id {position.id[:20]}... in snapshot, keeping last")
            by_id[position.id] = position

        return cls(
            address=address,
            positions=by_id,
            total_value=calculate_total_value(by_id.values()),
            timestamp=timestamp or utc_now(),
        )

    @classmethod
    def empty(cls, address: str) -> "AccountSnapshot":
        return cls.from_positions(address, [])

    def __len__(self) -> int:
        return len(self.positions)

    def __contains__(self, position_id: object) -> bool:
        return position_id in self.positions

    def get(self, position_id: str) -> Optional[Position]:
        return self.positions.get(position_id)

    @property
    def open_positions(self) -> List[Position]:
        return list(self.positions.values())


def calculate_total_value(positions: Iterable[Position]) -> Decimal:
    """Sum of position values, quantized to 6 places."""
    total = sum((p.value for p in positions), Decimal("0"))
    return total.quantize(TOTAL_VALUE_QUANT)
