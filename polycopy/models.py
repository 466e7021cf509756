"""
Core domain types for the copy trader.

Fill is what the source trader did; CopyOrderRequest is what we will do about it.
Both are frozen so nothing downstream of the feed can alter an observed trade.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class Side(str, Enum):
    """Trade side: BUY or SELL"""

    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def parse(cls, value: object) -> Optional["Side"]:
        """Case-insensitive parse. Returns None for anything unrecognised."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Fill:
    """
    A completed trade by the source account, as reported by the Data API.

    transaction_hash may be empty - the feed occasionally omits it.
    """
    transaction_hash: str
    condition_id: str          # market
    asset: str                 # token id (what you actually trade)
    outcome_index: int
    side: Side
    price: Decimal
    size: Decimal
    timestamp: int             # epoch seconds
    proxy_wallet: str

    def __repr__(self) -> str:
        tx = self.transaction_hash[:10] or "no-tx"
        return (
            f"Fill({tx} {self.side.value} {self.size} @ {self.price}, "
            f"asset={self.asset[:12]}, ts={self.timestamp})"
        )


@dataclass(frozen=True, slots=True)
class CopyOrderRequest:
    """
    A sized and priced order derived from one Fill.

    Consumed exactly once by the submission gateway. Never retried.
    """
    instrument_id: str
    side: Side
    price: Decimal
    size: Decimal
    source_fill: Optional[Fill] = None

    def __repr__(self) -> str:
        return (
            f"CopyOrder({self.side.value} {self.size} @ {self.price}, "
            f"token={self.instrument_id[:12]})"
        )
