"""
Copy-trade engine: deduplication and the scheduling loop.
"""

from polycopy.engine.dedup import SeenTradeSet, key_for
from polycopy.engine.scheduler import (
    CopyTradeScheduler,
    SchedulerState,
    SchedulerStats,
    TickReport,
)

__all__ = [
    "SeenTradeSet",
    "key_for",
    "CopyTradeScheduler",
    "SchedulerState",
    "SchedulerStats",
    "TickReport",
]
