"""
Polymarket Data API client (read-only).

Data API Base URL: https://data-api.polymarket.com/
Gamma API Base URL: https://gamma-api.polymarket.com/

The positions and trades endpoints have moved between path styles over
time, so each read tries the path-style endpoint first and falls back to
the query-style one.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from polycopy.config import ApiConfig
from polycopy.monitor.snapshot import AccountSnapshot, Market, Trade
from polycopy.polymarket.normalize import normalize_market, normalize_positions, normalize_trades

logger = logging.getLogger(__name__)


class DataSourceError(Exception):
    """Positions or trades could not be fetched or parsed."""


class MarketDataSource(ABC):
    """
    Source of account snapshots.

    Implementations must be safe to call from a worker thread.
    """

    @abstractmethod
    def fetch_positions(self, address: str) -> AccountSnapshot:
        """
        Fetch the current open positions of address.

        Raises:
            DataSourceError: On network or payload failure
        """
        pass


class _NotFound(Exception):
    pass


class PolymarketDataClient(MarketDataSource):
    """
    requests-based client for the Data and Gamma APIs.

    Usage:
        client = PolymarketDataClient(ApiConfig())
        snapshot = client.fetch_positions("0xabc...")
    """

    def __init__(self, config: Optional[ApiConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or ApiConfig()
        self.session = session or requests.Session()
        self._market_cache: Dict[str, Market] = {}

    # =========================================================================
    # Positions
    # =========================================================================

    def fetch_positions(self, address: str) -> AccountSnapshot:
        base = self.config.data_api_url.rstrip("/")
        endpoints = [
            (f"{base}/users/{address}/positions", {"active": "true"}),
            (f"{base}/positions", {"user": address, "active": "true"}),
        ]

        last_error: Optional[Exception] = None
        for url, params in endpoints:
            try:
                items = self._fetch_paginated(url, params)
            except _NotFound:
                logger.debug(f"Positions endpoint not found: {url}")
                continue
            except DataSourceError as e:
                logger.debug(f"Positions endpoint failed: {url}: {e}")
                last_error = e
                continue

            positions = normalize_positions(items)
            logger.debug(f"Fetched {len(positions)} positions for {address[:10]}... from {url}")
            return AccountSnapshot.from_positions(address, positions)

        if last_error is not None:
            raise DataSourceError(f"Failed to fetch positions for {address}: {last_error}") from last_error

        logger.info(f"No positions found for {address[:10]}... (404)")
        return AccountSnapshot.empty(address)

    def _fetch_paginated(self, url: str, params: Dict[str, Any]) -> List[Any]:
        limit = self.config.page_limit
        items: List[Any] = []

        for page in range(self.config.max_pages):
            page_items = self._extract_items(
                self._get_json(url, {**params, "limit": limit, "offset": page * limit}),
                "positions",
            )
            items.extend(page_items)
            if len(page_items) < limit:
                break
        else:
            logger.warning(f"Stopped paginating {url} after {self.config.max_pages} pages")

        return items

    # =========================================================================
    # Trades
    # =========================================================================

    def fetch_trades(self, address: str, limit: int = 50) -> List[Trade]:
        """Most recent trades of address (newest first as returned upstream)."""
        base = self.config.data_api_url.rstrip("/")
        endpoints = [
            (f"{base}/users/{address}/trades", {"limit": limit}),
            (f"{base}/trades", {"user": address, "limit": limit}),
        ]

        last_error: Optional[Exception] = None
        for url, params in endpoints:
            try:
                body = self._get_json(url, params)
            except _NotFound:
                continue
            except DataSourceError as e:
                last_error = e
                continue
            return normalize_trades(self._extract_items(body, "trades"))

        if last_error is not None:
            raise DataSourceError(f"Failed to fetch trades for {address}: {last_error}") from last_error
        return []

    # =========================================================================
    # Markets
    # =========================================================================

    def get_market(self, market_id: str) -> Market:
        """
        Market metadata from Gamma, cached per id.

        Never raises: an unknown market yields a placeholder.
        """
        cached = self._market_cache.get(market_id)
        if cached is not None:
            return cached

        base = self.config.gamma_api_url.rstrip("/")
        attempts = [
            (f"{base}/markets/{market_id}", {}),
            (f"{base}/markets", {"id": market_id}),
        ]

        market = Market.placeholder(market_id)
        for url, params in attempts:
            try:
                body = self._get_json(url, params)
            except (_NotFound, DataSourceError) as e:
                logger.debug(f"Market lookup failed at {url}: {e!r}")
                continue

            data = body[0] if isinstance(body, list) and body else body
            if isinstance(data, dict) and data:
                market = normalize_market(data)
                break

        self._market_cache[market_id] = market
        return market

    # =========================================================================
    # HTTP
    # =========================================================================

    def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        try:
            resp = self.session.get(url, params=params, timeout=self.config.timeout_seconds)
        except requests.RequestException as e:
            raise DataSourceError(f"Request to {url} failed: {e}") from e

        if resp.status_code == 404:
            raise _NotFound(url)

        try:
            resp.raise_for_status()
            return resp.json()
        except requests.HTTPError as e:
            raise DataSourceError(f"HTTP {resp.status_code} from {url}") from e
        except ValueError as e:
            raise DataSourceError(f"Invalid JSON from {url}") from e

    @staticmethod
    def _extract_items(body: Any, key: str) -> List[Any]:
        """Accept a bare list or a list wrapped in {key: [...]} / {data: [...]}."""
        if isinstance(body, list):
            return body
        if isinstance(body, dict):
            for wrapper in (key, "data"):
                if isinstance(body.get(wrapper), list):
                    return body[wrapper]
        raise DataSourceError(f"Unexpected response shape: {type(body).__name__}")
