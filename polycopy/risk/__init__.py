"""
Risk sizing for the copy trader.

- Scales source fills by risk percentage with a hard cap
- Applies slippage tolerance as a limit price guard
- Enforces venue validity (instrument, price interval, size)
"""

from polycopy.risk.sizing import (
    OrderCheckResult,
    SkipReason,
    adjusted_price,
    build_copy_order,
    check_order,
    scaled_size,
)

__all__ = [
    "OrderCheckResult",
    "SkipReason",
    "adjusted_price",
    "build_copy_order",
    "check_order",
    "scaled_size",
]
