"""
Copy Trader Configuration

Validated, frozen dataclass configs. Loading from the environment
(and .env via python-dotenv) happens only in CopyTradingConfig.from_env().

All monetary and probability values use Decimal for precision.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional
import os
import re

from dotenv import load_dotenv

DEFAULT_DATA_API_URL = "https://data-api.polymarket.com"
DEFAULT_CLOB_HTTP_URL = "https://clob.polymarket.com"
POLYGON_CHAIN_ID = 137

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_address(address: str) -> bool:
    """Check an account id is 0x followed by 40 hex chars."""
    return isinstance(address, str) and bool(_ADDRESS_RE.match(address))


def _normalize_url(url: str) -> str:
    return url.strip().rstrip("/")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a number: {raw!r}") from e
    if not value.is_finite():
        raise ValueError(f"{name} must be a finite number: {raw!r}")
    return value


@dataclass(frozen=True, slots=True)
class FeedConfig:
    """
    Source feed (Data API) settings.
    """
    data_api_url: str = DEFAULT_DATA_API_URL
    page_size: int = 100                 # Trades fetched per tick
    request_timeout: float = 10.0        # Seconds

    def __post_init__(self) -> None:
        """Validate feed settings."""
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive: {self.page_size}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive: {self.request_timeout}")
        # Guard against DATA_API_URL being set to ".../trades"
        url = _normalize_url(self.data_api_url)
        if url.endswith("/trades"):
            url = url[: -len("/trades")]
        object.__setattr__(self, "data_api_url", url)


@dataclass(frozen=True, slots=True)
class RiskConfig:
    """
    Sizing and pricing limits applied to every copied fill.
    """
    risk_percentage: Decimal = Decimal("2")           # % of source size to copy
    min_order_size: Decimal = Decimal("0")            # Skip orders smaller than this
    max_position_size: Decimal = Decimal("1000")      # Cap per copied order
    slippage_tolerance: Decimal = Decimal("0.5")      # % price guard

    def __post_init__(self) -> None:
        """Validate risk limits."""
        if self.risk_percentage <= Decimal("0"):
            raise ValueError(f"risk_percentage must be positive: {self.risk_percentage}")
        if self.max_position_size <= Decimal("0"):
            raise ValueError(f"max_position_size must be positive: {self.max_position_size}")
        if self.min_order_size < Decimal("0"):
            raise ValueError(f"min_order_size must be non-negative: {self.min_order_size}")
        if self.min_order_size > self.max_position_size:
            raise ValueError(
                f"min_order_size must be <= max_position_size: "
                f"{self.min_order_size} > {self.max_position_size}"
            )
        if self.slippage_tolerance < Decimal("0"):
            raise ValueError(f"slippage_tolerance must be non-negative: {self.slippage_tolerance}")


@dataclass(frozen=True, slots=True)
class ExecutionConfig:
    """
    Order submission settings. Credentials are only needed when dry_run is False.
    """
    dry_run: bool = True                       # Safe default: don't execute
    clob_http_url: str = DEFAULT_CLOB_HTTP_URL
    chain_id: int = POLYGON_CHAIN_ID
    private_key: Optional[str] = field(default=None, repr=False)
    funder_address: Optional[str] = None
    signature_type: int = 1                    # 0 = EOA, 1 = Poly proxy, 2 = Gnosis safe
    api_key: Optional[str] = field(default=None, repr=False)
    api_secret: Optional[str] = field(default=None, repr=False)
    api_passphrase: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate execution parameters."""
        if self.signature_type not in (0, 1, 2):
            raise ValueError(f"signature_type must be 0, 1 or 2: {self.signature_type}")
        object.__setattr__(self, "clob_http_url", _normalize_url(self.clob_http_url))

    @property
    def has_api_creds(self) -> bool:
        return bool(self.api_key and self.api_secret and self.api_passphrase)


@dataclass(frozen=True, slots=True)
class CopyTradingConfig:
    """
    Master configuration for the copy trader.
    """
    source_trader: str
    poll_interval_seconds: float = 5.0
    max_seen_trades: int = 10_000
    inclusive_high_water_mark: bool = True     # timestamp >= mark (else >)
    log_level: str = "INFO"

    feed: FeedConfig = field(default_factory=FeedConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)

    def __post_init__(self) -> None:
        """Validate master config."""
        if not is_valid_address(self.source_trader):
            raise ValueError(f"source_trader must be a 0x address: {self.source_trader!r}")
        object.__setattr__(self, "source_trader", self.source_trader.lower())
        if self.poll_interval_seconds <= 0:
            raise ValueError(f"poll_interval_seconds must be positive: {self.poll_interval_seconds}")
        if self.max_seen_trades <= 0:
            raise ValueError(f"max_seen_trades must be positive: {self.max_seen_trades}")

    @classmethod
    def from_env(cls) -> "CopyTradingConfig":
        """Create config from environment variables (and .env if present)."""
        load_dotenv()

        source = os.getenv("SOURCE_TRADER", "").strip()
        if not source:
            raise ValueError(
                "SOURCE_TRADER is required. "
                "Set it to the proxy wallet address of the trader to copy."
            )

        return cls(
            source_trader=source,
            poll_interval_seconds=float(os.getenv("FETCH_INTERVAL", "5")),
            max_seen_trades=int(os.getenv("MAX_SEEN_TRADES", "10000")),
            inclusive_high_water_mark=_env_bool("INCLUSIVE_HIGH_WATER_MARK", "true"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            feed=FeedConfig(
                data_api_url=os.getenv("DATA_API_URL", DEFAULT_DATA_API_URL),
                page_size=int(os.getenv("PAGE_SIZE", "100")),
                request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),
            ),
            risk=RiskConfig(
                risk_percentage=_env_decimal("RISK_PERCENTAGE", "2"),
                min_order_size=_env_decimal("MIN_ORDER_SIZE", "0"),
                max_position_size=_env_decimal("MAX_POSITION_SIZE", "1000"),
                slippage_tolerance=_env_decimal("SLIPPAGE_TOLERANCE", "0.5"),
            ),
            execution=ExecutionConfig(
                dry_run=_env_bool("DRY_RUN", "true"),
                clob_http_url=os.getenv("CLOB_HTTP_URL", DEFAULT_CLOB_HTTP_URL),
                chain_id=int(os.getenv("CHAIN_ID", str(POLYGON_CHAIN_ID))),
                private_key=os.getenv("SIGNER_PRIVATE_KEY") or None,
                funder_address=os.getenv("FUNDER_ADDRESS") or None,
                signature_type=int(os.getenv("SIGNATURE_TYPE", "1")),
                api_key=os.getenv("POLY_API_KEY") or None,
                api_secret=os.getenv("POLY_SECRET") or None,
                api_passphrase=os.getenv("POLY_PASSPHRASE") or None,
            ),
        )


def get_default_config(source_trader: str) -> CopyTradingConfig:
    """Get default copy trading configuration for a source trader."""
    return CopyTradingConfig(source_trader=source_trader)
