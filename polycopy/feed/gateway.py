"""
Source Feed Gateway

Fetches the source trader's recent fills from the Polymarket Data API.
Endpoint: GET /trades?user=<proxyWallet>&limit=&offset=&takerOnly=true

Pure I/O: no state, no retries. Transport failures surface as FetchError
with enough context (status code, url, params) for the caller to log.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from polycopy.config import FeedConfig, is_valid_address
from polycopy.feed.schema import parse_trade_records
from polycopy.models import Fill

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the source feed cannot be fetched."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.params = params or {}

    def __str__(self) -> str:
        status = self.status_code if self.status_code is not None else "n/a"
        return f"{self.args[0]} (status={status}, url={self.url}, params={self.params})"


class SourceFeedGateway:
    """Reads public trade history for an address from the Data API."""

    def __init__(
        self,
        config: Optional[FeedConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize gateway.

        Args:
            config: Feed configuration (base URL, timeout)
            session: HTTP session; a new requests.Session if omitted
        """
        self._config = config or FeedConfig()
        self._session = session or requests.Session()
        logger.info(f"SourceFeedGateway ready (data_api_url={self._config.data_api_url})")

    @property
    def trades_url(self) -> str:
        return f"{self._config.data_api_url}/trades"

    def fetch_trades(self, address: str, limit: int, offset: int = 0) -> List[Fill]:
        """
        Fetch one page of fills for an address.

        Args:
            address: Proxy wallet address (0x + 40 hex)
            limit: Page size
            offset: Page offset

        Returns:
            Parsed fills in feed order (possibly empty). Malformed rows are dropped.

        Raises:
            ValueError: On a malformed address or page bounds
            FetchError: On transport error, non-2xx status or non-JSON body
        """
        if not is_valid_address(address):
            raise ValueError(f"Invalid account address: {address!r}")
        if limit <= 0:
            raise ValueError(f"limit must be positive: {limit}")
        if offset < 0:
            raise ValueError(f"offset must be non-negative: {offset}")

        url = self.trades_url
        params = {
            "user": address,
            "limit": limit,
            "offset": offset,
            "takerOnly": "true",
        }

        logger.debug(f"Fetching user trades: {url} {params}")

        try:
            resp = self._session.get(url, params=params, timeout=self._config.request_timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request failed: {e}", url=url, params=params) from e

        if not 200 <= resp.status_code < 300:
            raise FetchError(
                f"Data API returned HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
                url=url,
                params=params,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError(
                "Data API returned a non-JSON body",
                status_code=resp.status_code,
                url=url,
                params=params,
            ) from e

        if not isinstance(data, list):
            logger.warning(f"Unexpected trades payload type {type(data).__name__}; treating as empty")
            return []

        fills = parse_trade_records(data)
        logger.debug(f"Fetched {len(fills)} trades for {address[:10]}...")
        return fills

    def health_check(self) -> bool:
        """
        Best-effort reachability probe of the Data API.

        Never raises.
        """
        try:
            resp = self._session.get(self._config.data_api_url, timeout=5)
            if resp.status_code < 500:
                logger.debug(f"Data API health check passed (HTTP {resp.status_code})")
                return True
            logger.warning(f"Data API health check got HTTP {resp.status_code}")
        except requests.RequestException as e:
            logger.warning(f"Data API health check failed: {e}")
        return False

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()
