"""
Trade deduplication.

The Data API occasionally returns the same row twice or omits the
transaction hash, so each fill is reduced to a key:
- primary: transaction hash, when present and well-formed
- fallback: market|asset|side|price|size|timestamp

The seen-set is bounded. When an insert pushes it past max_size the whole
set is cleared rather than LRU-evicted: after an overflow a handful of fills
may be copied twice, in exchange for a hard memory bound.
"""

import logging
from typing import Set

from polycopy.models import Fill

logger = logging.getLogger(__name__)

DEFAULT_MAX_SEEN = 10_000


def key_for(fill: Fill) -> str:
    """Dedup key for a fill."""
    tx = fill.transaction_hash
    if tx and not any(c.isspace() for c in tx):
        return f"tx:{tx.lower()}"
    return (
        f"fb:{fill.condition_id}|{fill.asset}|{fill.side.value}|"
        f"{fill.price.normalize()}|{fill.size.normalize()}|{fill.timestamp}"
    )


class SeenTradeSet:
    """
    Bounded set of processed trade keys.

    Single-threaded: owned by the scheduler and only touched inside a tick.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SEEN):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive: {max_size}")
        self._max_size = max_size
        self._keys: Set[str] = set()
        self._overflow_count = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def overflow_count(self) -> int:
        """How many times the set has been cleared on overflow."""
        return self._overflow_count

    def is_new_and_mark(self, fill: Fill) -> bool:
        """
        Check-and-insert.

        Returns:
            True exactly once per distinct key (until an overflow clear)
        """
        key = key_for(fill)
        if key in self._keys:
            return False

        self._keys.add(key)

        if len(self._keys) > self._max_size:
            logger.warning(
                f"Seen-set exceeded {self._max_size} entries; clearing "
                f"(recent trades may be re-processed)"
            )
            self._keys.clear()
            self._overflow_count += 1

        return True

    def clear(self) -> None:
        self._keys.clear()

    def __contains__(self, fill: object) -> bool:
        return isinstance(fill, Fill) and key_for(fill) in self._keys

    def __len__(self) -> int:
        return len(self._keys)
