"""
Risk sizing and price adjustment for copied orders.

Pure, stateless functions:
- scaled_size: copy a fraction of the source size, capped
- adjusted_price: worst-case price guard for slippage
- check_order: venue validity rules before submission

A rejected order is a normal skip, not an error. It is reported through
OrderCheckResult with a SkipReason, never raised.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from polycopy.config import RiskConfig
from polycopy.models import CopyOrderRequest, Fill, Side

# Token ids are long decimal strings; anything this short is garbage
MIN_INSTRUMENT_ID_LENGTH = 10

# Valid probability interval, exclusive at both ends
MIN_PRICE = Decimal("0")
MAX_PRICE = Decimal("1")

_HUNDRED = Decimal("100")

Number = Union[Decimal, int, str]


class SkipReason(Enum):
    """Reasons a copied fill is skipped instead of submitted."""

    MISSING_INSTRUMENT = "missing_instrument"
    PRICE_OUT_OF_RANGE = "price_out_of_range"
    NON_POSITIVE_SIZE = "non_positive_size"
    BELOW_MIN_SIZE = "below_min_size"


@dataclass(frozen=True, slots=True)
class OrderCheckResult:
    """
    Result of sizing and validating a copy order.

    approved: Whether the order may be submitted
    reason: Human-readable explanation
    order: The order to submit (only when approved)
    skip_reason: Which rule caused the skip (only when not approved)
    """
    approved: bool
    reason: str
    order: Optional[CopyOrderRequest] = None
    skip_reason: Optional[SkipReason] = None

    def __repr__(self) -> str:
        if self.approved:
            return f"APPROVED: {self.order!r}"
        return f"SKIPPED ({self.skip_reason.value if self.skip_reason else 'unknown'}): {self.reason}"


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def scaled_size(
    source_size: Number,
    risk_percentage: Number,
    max_position_size: Number,
) -> Decimal:
    """
    Scale the source fill size by risk percentage, capped at max_position_size.

    Example: scaled_size(100, 2, 1000) == 2; scaled_size(100000, 2, 1000) == 1000
    """
    scaled = _dec(source_size) * _dec(risk_percentage) / _HUNDRED
    return min(scaled, _dec(max_position_size))


def adjusted_price(
    base_price: Number,
    side: Side,
    slippage_tolerance_pct: Number,
) -> Decimal:
    """
    Apply the slippage tolerance as a worst-case limit price.

    BUY pays up to base * (1 + tol%), SELL accepts down to base * (1 - tol%),
    floored at zero. No order book is consulted.
    """
    base = _dec(base_price)
    adjustment = base * _dec(slippage_tolerance_pct) / _HUNDRED

    if side == Side.BUY:
        return base + adjustment
    return max(Decimal("0"), base - adjustment)


def check_order(
    instrument_id: Optional[str],
    price: Decimal,
    size: Decimal,
    min_order_size: Decimal = Decimal("0"),
) -> Optional[OrderCheckResult]:
    """
    Check venue validity rules.

    Returns:
        None if the order is valid, otherwise a skip OrderCheckResult
    """
    if not isinstance(instrument_id, str) or len(instrument_id.strip()) <= MIN_INSTRUMENT_ID_LENGTH:
        return OrderCheckResult(
            approved=False,
            reason=f"Instrument id {instrument_id!r} missing or malformed",
            skip_reason=SkipReason.MISSING_INSTRUMENT,
        )

    if not (MIN_PRICE < price < MAX_PRICE):
        return OrderCheckResult(
            approved=False,
            reason=f"Price {price} outside ({MIN_PRICE}, {MAX_PRICE})",
            skip_reason=SkipReason.PRICE_OUT_OF_RANGE,
        )

    if size <= Decimal("0"):
        return OrderCheckResult(
            approved=False,
            reason=f"Size {size} is not positive",
            skip_reason=SkipReason.NON_POSITIVE_SIZE,
        )

    if size < min_order_size:
        return OrderCheckResult(
            approved=False,
            reason=f"Size {size} below minimum {min_order_size}",
            skip_reason=SkipReason.BELOW_MIN_SIZE,
        )

    return None


def build_copy_order(fill: Fill, risk: RiskConfig) -> OrderCheckResult:
    """
    Size, price and validate a copy order for one source fill.

    Args:
        fill: Source trader's fill
        risk: Sizing and slippage limits

    Returns:
        OrderCheckResult carrying the CopyOrderRequest when approved
    """
    size = scaled_size(fill.size, risk.risk_percentage, risk.max_position_size)
    price = adjusted_price(fill.price, fill.side, risk.slippage_tolerance)

    skip = check_order(fill.asset, price, size, risk.min_order_size)
    if skip is not None:
        return skip

    order = CopyOrderRequest(
        instrument_id=fill.asset.strip(),
        side=fill.side,
        price=price,
        size=size,
        source_fill=fill,
    )
    return OrderCheckResult(
        approved=True,
        reason=f"Copy {risk.risk_percentage}% of {fill.size} (cap {risk.max_position_size})",
        order=order,
    )
