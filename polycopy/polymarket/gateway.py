"""
Order Gateway: CLOB isolation boundary.

Abstracts order submission behind a small interface:
- OrderGateway: what the trade executor depends on
- ClobOrderGateway: real Polymarket CLOB execution via py-clob-client

The CLOB client is imported lazily, on first initialize(), so the
monitor and dry-run paths never load it.
"""

import logging
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

from polycopy.config import DEFAULT_CLOB_HOST, POLYGON_CHAIN_ID

logger = logging.getLogger(__name__)

BUY = "BUY"
SELL = "SELL"


class GatewayError(Exception):
    """Order gateway initialization or submission failed."""


class OrderGateway(ABC):
    """
    Order submission interface.

    All methods are blocking; callers run them on a worker thread.
    """

    @abstractmethod
    def initialize(self) -> None:
        """
        Prepare credentials. Idempotent: after one success, later calls
        are no-ops.

        Raises:
            GatewayError: If the client cannot be built or authenticated
        """
        pass

    @abstractmethod
    def submit_order(self, token_id: str, side: str, price: Decimal, size: Decimal) -> str:
        """
        Submit a limit order.

        Args:
            token_id: Outcome token id
            side: BUY or SELL
            price: Limit price
            size: Number of shares

        Returns:
            Order id assigned by the venue

        Raises:
            GatewayError: If the order was not accepted
        """
        pass

    @property
    @abstractmethod
    def wallet_address(self) -> Optional[str]:
        pass


class ClobOrderGateway(OrderGateway):
    """Polymarket CLOB gateway (py-clob-client)."""

    def __init__(
        self,
        private_key: str,
        host: str = DEFAULT_CLOB_HOST,
        chain_id: int = POLYGON_CHAIN_ID,
    ):
        if not private_key:
            raise ValueError("private_key is required for the CLOB gateway")
        self._private_key = private_key
        self.host = host
        self.chain_id = chain_id
        self._client: Any = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._client is not None

    def initialize(self) -> None:
        with self._lock:
            if self._client is not None:
                return

            try:
                from py_clob_client.client import ClobClient

                client = ClobClient(self.host, key=self._private_key, chain_id=self.chain_id)
                client.set_api_creds(client.create_or_derive_api_creds())
            except Exception as e:
                raise GatewayError(f"Failed to initialize CLOB client: {e}") from e

            self._client = client
            logger.info(f"CLOB client initialized (host={self.host}, chain_id={self.chain_id})")

    def submit_order(self, token_id: str, side: str, price: Decimal, size: Decimal) -> str:
        if side not in (BUY, SELL):
            raise ValueError(f"side must be BUY or SELL: {side}")
        if self._client is None:
            self.initialize()

        from py_clob_client.clob_types import OrderArgs
        from py_clob_client.order_builder.constants import BUY as CLOB_BUY, SELL as CLOB_SELL

        order_args = OrderArgs(
            token_id=token_id,
            price=float(price),
            size=float(size),
            side=CLOB_BUY if side == BUY else CLOB_SELL,
        )

        logger.info(f"Submitting order: {side} {size} @ {price} on token {token_id[:20]}...")
        try:
            response = self._client.create_and_post_order(order_args)
        except Exception as e:
            raise GatewayError(f"Order submission failed: {e}") from e

        logger.info(f"Order response: {response}")
        return self._extract_order_id(response)

    @property
    def wallet_address(self) -> Optional[str]:
        if self._client is None:
            return None
        return self._client.get_address()

    @staticmethod
    def _extract_order_id(response: Any) -> str:
        if not isinstance(response, dict):
            raise GatewayError(f"Unexpected order response: {response!r}")
        if response.get("success") is False:
            raise GatewayError(f"Order rejected: {response.get('errorMsg') or response}")

        for key in ("orderID", "orderId", "order_id", "id"):
            if response.get(key):
                return str(response[key])
        raise GatewayError(f"Order response has no order id: {response!r}")
