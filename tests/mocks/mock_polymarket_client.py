"""
Mock Polymarket collaborators for testing.

Provides deterministic responses without py-clob-client/network dependencies.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

import requests

from polycopy.monitor.snapshot import AccountSnapshot, Market, Position
from polycopy.polymarket.data_api import DataSourceError, MarketDataSource
from polycopy.polymarket.gateway import GatewayError, OrderGateway

TARGET = "0xtarget"


def make_position(
    position_id: str,
    quantity: Union[str, int] = "100",
    price: Union[str, float] = "0.50",
    value: Optional[Union[str, int]] = None,
    outcome: str = "Yes",
    question: str = "Will it rain tomorrow?",
) -> Position:
    """Position with value defaulting to quantity * price."""
    quantity = Decimal(str(quantity))
    price = Decimal(str(price))
    return Position(
        id=position_id,
        market=Market(id=f"market-{position_id}", question=question),
        outcome=outcome,
        quantity=quantity,
        price=price,
        value=Decimal(str(value)) if value is not None else quantity * price,
    )


def make_snapshot(*positions: Position, address: str = TARGET) -> AccountSnapshot:
    return AccountSnapshot.from_positions(address, positions)


class MockDataSource(MarketDataSource):
    """
    Replays a scripted sequence of snapshots.

    Each fetch returns the next entry; the last entry repeats. An entry
    that is an Exception is raised instead.
    """

    def __init__(self, script: Sequence[Union[AccountSnapshot, Exception]] = ()):
        self.script = list(script)
        self.calls: List[str] = []

    def push(self, entry: Union[AccountSnapshot, Exception]) -> None:
        self.script.append(entry)

    def fetch_positions(self, address: str) -> AccountSnapshot:
        self.calls.append(address)
        if not self.script:
            return AccountSnapshot.empty(address)

        entry = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(entry, Exception):
            raise entry
        return entry


class FailingDataSource(MarketDataSource):
    def fetch_positions(self, address: str) -> AccountSnapshot:
        raise DataSourceError("Mock fetch failure")


class MockOrderGateway(OrderGateway):
    """
    Records every call; fails on demand.

    No network calls.
    """

    def __init__(self, should_fail: bool = False, fail_initialize: bool = False):
        self.should_fail = should_fail
        self.fail_initialize = fail_initialize
        self.initialize_calls = 0
        self.orders: List[Dict[str, Any]] = []
        self._initialized = False

    def initialize(self) -> None:
        self.initialize_calls += 1
        if self.fail_initialize:
            raise GatewayError("Mock initialization failure")
        self._initialized = True

    def submit_order(self, token_id: str, side: str, price: Decimal, size: Decimal) -> str:
        self.orders.append({"token_id": token_id, "side": side, "price": price, "size": size})
        if self.should_fail:
            raise GatewayError("Mock order failure")
        return f"order-{len(self.orders)}"

    @property
    def wallet_address(self) -> Optional[str]:
        return "0xmockwallet" if self._initialized else None

    def get_last_order(self) -> Optional[dict]:
        return self.orders[-1] if self.orders else None


class MockResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self._body = body

    def json(self) -> Any:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class MockSession:
    """
    Routes GET/POST by URL to canned responses.

    routes maps URL -> MockResponse or a list of MockResponses consumed
    in order (the last one repeats). Unknown URLs return 404.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.requests: List[Dict[str, Any]] = []

    def _respond(self, method: str, url: str, **kwargs) -> MockResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        route = self.routes.get(url)
        if route is None:
            return MockResponse(404, {"error": "not found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, list):
            return route.pop(0) if len(route) > 1 else route[0]
        return route

    def get(self, url: str, params=None, timeout=None) -> MockResponse:
        return self._respond("GET", url, params=params, timeout=timeout)

    def post(self, url: str, json=None, timeout=None) -> MockResponse:
        return self._respond("POST", url, json=json, timeout=timeout)

    def urls(self) -> List[str]:
        return [r["url"] for r in self.requests]
