"""
Polymarket Copy Trader

Mirrors a source account's fills onto our own account, scaled by a
risk percentage and priced with a slippage guard.

Components:
- config: Validated configuration dataclasses
- feed: Source trade feed (Data API) and boundary parsing
- engine: Deduplication and the copy-trade scheduler
- risk: Order sizing, price adjustment, validity checks
- execution: Order submission (dry-run or live CLOB)
"""

from polycopy.config import (
    CopyTradingConfig,
    FeedConfig,
    RiskConfig,
    ExecutionConfig,
    get_default_config,
)
from polycopy.models import Side, Fill, CopyOrderRequest
from polycopy.feed import SourceFeedGateway, FetchError
from polycopy.engine import CopyTradeScheduler, SeenTradeSet
from polycopy.risk import (
    OrderCheckResult,
    SkipReason,
    adjusted_price,
    build_copy_order,
    scaled_size,
)
from polycopy.execution import (
    OrderSubmissionGateway,
    DryRunGateway,
    ClobOrderGateway,
    SubmissionResult,
    SubmissionError,
    create_gateway,
)

__version__ = "1.0.0"
__all__ = [
    # Config
    "CopyTradingConfig",
    "FeedConfig",
    "RiskConfig",
    "ExecutionConfig",
    "get_default_config",
    # Models
    "Side",
    "Fill",
    "CopyOrderRequest",
    # Feed
    "SourceFeedGateway",
    "FetchError",
    # Engine
    "CopyTradeScheduler",
    "SeenTradeSet",
    # Risk
    "OrderCheckResult",
    "SkipReason",
    "adjusted_price",
    "build_copy_order",
    "scaled_size",
    # Execution
    "OrderSubmissionGateway",
    "DryRunGateway",
    "ClobOrderGateway",
    "SubmissionResult",
    "SubmissionError",
    "create_gateway",
]
