"""
Normalization of Polymarket Data API payloads.

Maps the loosely shaped upstream JSON (field names vary by endpoint) onto
the snapshot model, so the core never sees venue-specific shapes.

Current value priority:
  currentValue (non-zero) > size * curPrice > initialValue > size * avgPrice > 0
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from polycopy.monitor.snapshot import UNKNOWN_MARKET, Market, Position, Trade, utc_now

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Parse an upstream number (str, int, float or None). Invalid -> 0."""
    if value is None or value == "":
        return ZERO
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value)


def _parse_bool(value: Any, default: bool) -> bool:
    """Booleans arrive as JSON bools or as strings like "false"."""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "off")
    return bool(value)


def _first(item: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First truthy value among keys."""
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return default


def parse_timestamp(value: Any) -> datetime:
    """Epoch seconds or ISO-8601 string; missing or unparseable -> now (UTC)."""
    if value is None or value == "":
        return utc_now()
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return utc_now()
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return utc_now()
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def normalize_market(data: Optional[Dict[str, Any]]) -> Market:
    """Market from a Gamma/Data API object. Missing data -> placeholder."""
    if not data or not isinstance(data, dict):
        return Market.placeholder()

    tags = data.get("tags")
    return Market(
        id=str(_first(data, "id", "marketId", "market_id", "conditionId", default="")),
        question=_first(data, "question", "title", "name", default=UNKNOWN_MARKET),
        slug=_first(data, "slug", "slug_id", default=""),
        description=_first(data, "description", "desc"),
        end_date=_first(data, "endDate", "endDateISO", "end_date"),
        icon=data.get("icon") or None,
        tags=tuple(str(tag) for tag in tags) if isinstance(tags, list) else (),
        liquidity=_optional_decimal(data.get("liquidity") or None),
        volume=_optional_decimal(data.get("volume") or None),
        active=_parse_bool(data.get("active"), default=True),
    )


def resolve_current_value(item: Dict[str, Any]) -> Decimal:
    """Current value of a raw position by the documented priority chain."""
    size = to_decimal(_first(item, "size", "quantity"))
    cur_price = to_decimal(_first(item, "curPrice", "currentPrice"))
    avg_price = to_decimal(_first(item, "avgPrice", "price"))

    explicit = _optional_decimal(item.get("currentValue"))
    if explicit is not None and explicit != ZERO:
        return explicit
    if cur_price > 0 and size > 0:
        return size * cur_price
    initial = _optional_decimal(item.get("initialValue"))
    if initial is not None and initial > 0:
        return initial
    if avg_price > 0 and size > 0:
        return size * avg_price
    return ZERO


def resolve_display_price(item: Dict[str, Any]) -> Decimal:
    cur_price = to_decimal(_first(item, "curPrice", "currentPrice"))
    if cur_price > 0:
        return cur_price
    avg_price = to_decimal(_first(item, "avgPrice", "price"))
    if avg_price > 0:
        return avg_price
    return ZERO


def normalize_position(item: Dict[str, Any]) -> Position:
    """Position from a Data API positions item (market data is inline)."""
    market = normalize_market({
        "id": _first(item, "conditionId", "market_id", "marketId", default=""),
        "question": _first(item, "title", "question", default=UNKNOWN_MARKET),
        "slug": item.get("slug") or "",
        "icon": item.get("icon") or None,
        "endDate": item.get("endDate") or None,
    })

    size = to_decimal(_first(item, "size", "quantity"))
    avg_price = to_decimal(_first(item, "avgPrice", "price"))

    initial_value = _optional_decimal(item.get("initialValue"))
    if initial_value is None and avg_price > 0 and size > 0:
        initial_value = size * avg_price

    return Position(
        id=str(_first(item, "asset", "id", "positionId", default="")),
        market=market,
        outcome=_first(item, "outcome", "outcomeToken", default=""),
        quantity=size,
        price=resolve_display_price(item),
        value=resolve_current_value(item),
        initial_value=initial_value,
        timestamp=parse_timestamp(item.get("timestamp")),
    )


def normalize_positions(items: Iterable[Any]) -> List[Position]:
    return [normalize_position(item) for item in items if isinstance(item, dict)]


def normalize_trade(item: Dict[str, Any]) -> Trade:
    """Trade from a Data API trades item."""
    market = normalize_market({
        "id": _first(item, "conditionId", "market_id", "marketId", default=""),
        "question": _first(item, "title", "question", default=UNKNOWN_MARKET),
        "slug": item.get("slug") or "",
        "icon": item.get("icon") or None,
    })
    timestamp = parse_timestamp(item.get("timestamp"))
    fallback_id = f"trade-{int(timestamp.timestamp() * 1000)}"

    return Trade(
        id=str(_first(item, "transactionHash", "id", "tradeId", default=fallback_id)),
        market=market,
        outcome=_first(item, "outcome", "outcomeToken", default=""),
        side="buy" if str(item.get("side") or "").lower() == "buy" else "sell",
        quantity=to_decimal(_first(item, "size", "quantity", "amount")),
        price=to_decimal(_first(item, "price", "executionPrice", "fillPrice")),
        timestamp=timestamp,
        transaction_hash=_first(item, "transactionHash", "txHash", "tx"),
        user=_first(item, "proxyWallet", "user", "userAddress", "account", default=""),
    )


def normalize_trades(items: Iterable[Any]) -> List[Trade]:
    return [normalize_trade(item) for item in items if isinstance(item, dict)]
