"""
Order Submission Gateway

Abstracts order submission behind a stable interface with two implementations:
- DryRunGateway: logs orders, returns synthetic ids (default)
- ClobOrderGateway: real Polymarket CLOB submission via py_clob_client

Signing, API key derivation and order-type semantics belong to the SDK.
This module only decides *what* to submit.

The live client is imported lazily, only when a ClobOrderGateway is built
without an injected client.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Any, Optional

from polycopy.config import ExecutionConfig
from polycopy.models import Side

logger = logging.getLogger(__name__)

# CLOB accepts at most two decimals of size
SIZE_PRECISION = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """
    Outcome of one submission attempt.
    """
    success: bool
    order_id: Optional[str] = None
    error: Optional[str] = None
    dry_run: bool = False

    def __repr__(self) -> str:
        if self.success:
            mode = "DRY-RUN" if self.dry_run else "LIVE"
            return f"SubmissionResult({mode}: order={self.order_id})"
        return f"SubmissionResult(FAILED: {self.error})"


class SubmissionError(Exception):
    """Raised when a gateway cannot be set up (bad or missing credentials)."""
    pass


class OrderSubmissionGateway(ABC):
    """
    Abstract submission gateway.

    Implementations must not raise from submit(); venue and transport
    failures are reported as SubmissionResult(success=False).
    """

    @abstractmethod
    def submit(
        self, instrument_id: str, side: Side, price: Decimal, size: Decimal
    ) -> SubmissionResult:
        """
        Submit a limit order.

        Args:
            instrument_id: CLOB token id
            side: BUY or SELL
            price: Limit price in (0, 1)
            size: Order size in shares
        """
        pass

    def cancel_all(self) -> int:
        """
        Cancel all open orders, if the venue supports it.

        Returns:
            Number of orders cancelled
        """
        return 0

    @abstractmethod
    def get_name(self) -> str:
        """Return gateway name for logging."""
        pass


class DryRunGateway(OrderSubmissionGateway):
    """
    Dry-run gateway. No network calls.
    """

    def __init__(self):
        self.submitted = 0
        logger.info("DryRunGateway initialized (no orders will reach the venue)")

    def submit(
        self, instrument_id: str, side: Side, price: Decimal, size: Decimal
    ) -> SubmissionResult:
        self.submitted += 1
        order_id = f"dry-{uuid.uuid4().hex[:8]}"
        logger.info(f"DRY-RUN: {side.value} {size} @ {price} token={instrument_id[:16]}... -> {order_id}")
        return SubmissionResult(success=True, order_id=order_id, dry_run=True)

    def get_name(self) -> str:
        return "DryRunGateway"


class ClobOrderGateway(OrderSubmissionGateway):
    """
    Live gateway for the Polymarket CLOB.

    NOTE: This is the ONLY place where real orders are created.
    """

    def __init__(self, config: ExecutionConfig, client: Optional[Any] = None):
        """
        Initialize live gateway.

        Args:
            config: Execution config with signer credentials
            client: Pre-built ClobClient (tests, or callers managing auth themselves)

        Raises:
            SubmissionError: If the client cannot be created or authenticated
        """
        self._config = config
        self._client = client if client is not None else self._create_client(config)
        logger.info(
            f"ClobOrderGateway initialized (host={config.clob_http_url}, "
            f"signature_type={config.signature_type})"
        )

    @staticmethod
    def _create_client(config: ExecutionConfig) -> Any:
        """Build an authenticated ClobClient. Lazy import keeps the SDK optional at import time."""
        if not config.private_key:
            raise SubmissionError("SIGNER_PRIVATE_KEY is required for live execution")

        from py_clob_client.client import ClobClient
        from py_clob_client.clob_types import ApiCreds

        try:
            client = ClobClient(
                config.clob_http_url,
                key=config.private_key,
                chain_id=config.chain_id,
                signature_type=config.signature_type,
                funder=config.funder_address,
            )

            if config.has_api_creds:
                creds = ApiCreds(
                    api_key=config.api_key,
                    api_secret=config.api_secret,
                    api_passphrase=config.api_passphrase,
                )
                logger.info("Using API credentials from config")
            else:
                creds = client.create_or_derive_api_creds()
                logger.info("Derived API credentials from private key")

            client.set_api_creds(creds)
        except Exception as e:
            raise SubmissionError(f"Could not initialize CLOB client: {e}") from e

        return client

    def submit(
        self, instrument_id: str, side: Side, price: Decimal, size: Decimal
    ) -> SubmissionResult:
        from py_clob_client.clob_types import OrderArgs, OrderType

        venue_size = size.quantize(SIZE_PRECISION, rounding=ROUND_DOWN)
        if venue_size <= Decimal("0"):
            return SubmissionResult(
                success=False,
                error=f"Size {size} rounds to zero at venue precision",
            )

        try:
            logger.info(f"LIVE: {side.value} {venue_size} @ {price} token={instrument_id[:16]}...")

            order_args = OrderArgs(
                token_id=instrument_id,
                price=float(price),
                size=float(venue_size),
                side=side.value,
            )
            signed = self._client.create_order(order_args)
            response = self._client.post_order(signed, OrderType.GTC)
        except Exception as e:
            logger.error(f"Order submission failed: {e}")
            return SubmissionResult(success=False, error=str(e))

        if not isinstance(response, dict):
            return SubmissionResult(success=False, error=f"Unexpected response: {response!r}")

        order_id = response.get("orderID") or response.get("order_id") or response.get("id")
        if response.get("success") is False or response.get("errorMsg"):
            return SubmissionResult(
                success=False,
                order_id=order_id,
                error=response.get("errorMsg") or "Order rejected by venue",
            )

        return SubmissionResult(success=True, order_id=order_id)

    def cancel_all(self) -> int:
        try:
            response = self._client.cancel_all()
        except Exception as e:
            logger.error(f"cancel_all failed: {e}")
            return 0

        cancelled = response.get("canceled", []) if isinstance(response, dict) else []
        logger.info(f"Cancelled {len(cancelled)} open order(s)")
        return len(cancelled)

    def get_name(self) -> str:
        return "ClobOrderGateway"


def create_gateway(
    config: ExecutionConfig, client: Optional[Any] = None
) -> OrderSubmissionGateway:
    """
    Factory: dry-run unless config.dry_run is False.

    Args:
        config: Execution configuration
        client: Optional pre-built ClobClient for live mode

    Returns:
        OrderSubmissionGateway (DryRun or Clob)
    """
    if config.dry_run:
        logger.info("Dry-run gateway enabled (safe mode)")
        return DryRunGateway()

    logger.warning("LIVE GATEWAY ENABLED - real orders will be submitted!")
    return ClobOrderGateway(config, client=client)
