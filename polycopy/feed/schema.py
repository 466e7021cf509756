"""
Raw trade record schema for the Polymarket Data API.

This is the only place the untyped remote payload is handled. Every row is
coerced into a RawTradeRecord and then converted into a Fill; rows that
cannot be coerced are dropped.

The Data API is loose about types: price and size arrive as either strings
or numbers, and identifiers are sometimes missing. Numeric fields that are
missing or malformed default to zero rather than failing the row. Values
outside plausible bounds (negative, price above 1, an absurd size or
timestamp) fail the row so they never reach sizing or the high-water mark.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from polycopy.models import Fill, Side

logger = logging.getLogger(__name__)

# Plausibility bounds; rows outside them are dropped
MAX_PRICE = Decimal("1")
MAX_SIZE = Decimal("1e12")
MAX_TIMESTAMP = 10**13           # epoch seconds, with headroom for milliseconds
MAX_OUTCOME_INDEX = 1000


def _to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


def _to_int(value: Any, upper: int) -> int:
    result = _to_decimal(value)
    # Checked before int() so an absurd exponent never becomes a huge int
    if not 0 <= result <= upper:
        raise ValueError(f"must be between 0 and {upper}: {value!r}")
    return int(result)


class RawTradeRecord(BaseModel):
    """
    One row of GET /trades, as sent by the Data API.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    transaction_hash: str = Field("", alias="transactionHash")
    condition_id: str = Field("", alias="conditionId")
    asset: str = Field("", alias="asset")
    outcome_index: int = Field(0, alias="outcomeIndex")
    side: Side = Field(..., alias="side")
    price: Decimal = Field(Decimal("0"), alias="price", ge=0, le=MAX_PRICE)
    size: Decimal = Field(Decimal("0"), alias="size", ge=0, le=MAX_SIZE)
    timestamp: int = Field(0, alias="timestamp")
    proxy_wallet: str = Field("", alias="proxyWallet")

    @field_validator(
        "transaction_hash", "condition_id", "asset", "proxy_wallet", mode="before"
    )
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("price", "size", mode="before")
    @classmethod
    def coerce_decimal(cls, v: Any) -> Decimal:
        return _to_decimal(v)

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> int:
        return _to_int(v, MAX_TIMESTAMP)

    @field_validator("outcome_index", mode="before")
    @classmethod
    def coerce_outcome_index(cls, v: Any) -> int:
        return _to_int(v, MAX_OUTCOME_INDEX)

    @field_validator("side", mode="before")
    @classmethod
    def validate_side(cls, v: Any) -> Side:
        side = Side.parse(v)
        if side is None:
            raise ValueError(f"Invalid side: {v!r}. Must be 'BUY' or 'SELL'")
        return side

    def to_fill(self) -> Fill:
        """Convert to the immutable domain Fill."""
        return Fill(
            transaction_hash=self.transaction_hash,
            condition_id=self.condition_id,
            asset=self.asset,
            outcome_index=self.outcome_index,
            side=self.side,
            price=self.price,
            size=self.size,
            timestamp=self.timestamp,
            proxy_wallet=self.proxy_wallet,
        )


def parse_trade_records(rows: Iterable[Any]) -> List[Fill]:
    """
    Convert raw Data API rows to Fills, dropping anything unparseable.
    """
    fills: List[Fill] = []
    dropped = 0

    for row in rows:
        if not isinstance(row, dict):
            dropped += 1
            logger.debug(f"Dropping non-object trade row: {row!r}")
            continue
        try:
            fills.append(RawTradeRecord.model_validate(row).to_fill())
        except ValidationError as e:
            dropped += 1
            logger.debug(f"Dropping malformed trade row {row.get('transactionHash')!r}: {e}")

    if dropped:
        logger.info(f"Dropped {dropped} malformed trade row(s) from feed page")

    return fills
