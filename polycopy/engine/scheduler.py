"""
Copy-Trade Scheduler

The main loop of the copy trader. Each tick:
1. Fetch a page of the source trader's fills
2. Keep fills at/after the high-water mark that have not been seen
3. Sort them oldest first
4. Size, price and submit each one, advancing the high-water mark
   after every attempt whether it was skipped, filled or rejected

Ticks never overlap: the next one is scheduled only after the previous one
has finished. The seen-set and high-water mark are owned by the scheduler
and only mutated from inside a tick.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from polycopy.config import CopyTradingConfig
from polycopy.engine.dedup import SeenTradeSet
from polycopy.execution.gateway import OrderSubmissionGateway, SubmissionResult
from polycopy.feed.gateway import FetchError, SourceFeedGateway
from polycopy.models import Fill, Side
from polycopy.risk.sizing import build_copy_order

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    DISPATCHING = "dispatching"


@dataclass
class SchedulerStats:
    """Counters for the scheduler session. In-memory only."""
    started_at: Optional[datetime] = None
    ticks: int = 0
    fills_seen: int = 0
    orders_submitted: int = 0
    orders_failed: int = 0
    orders_skipped: int = 0
    fetch_errors: int = 0
    errors: int = 0
    active_orders: int = 0
    total_volume: Decimal = Decimal("0")
    positions: Dict[str, Decimal] = field(default_factory=dict)

    def record_fill(self, side: Side, instrument_id: str, price: Decimal, size: Decimal) -> None:
        self.orders_submitted += 1
        self.active_orders += 1
        self.total_volume += price * size
        signed = size if side == Side.BUY else -size
        self.positions[instrument_id] = self.positions.get(instrument_id, Decimal("0")) + signed


@dataclass
class TickReport:
    """What happened during one tick."""
    fetched: int = 0
    candidates: int = 0
    submitted: int = 0
    skipped: int = 0
    failed: int = 0
    fetch_failed: bool = False


class CopyTradeScheduler:
    """
    Polls the source feed and mirrors new fills through the submission gateway.

    Control surface: start(), stop(), get_stats().
    """

    def __init__(
        self,
        config: CopyTradingConfig,
        feed: SourceFeedGateway,
        gateway: OrderSubmissionGateway,
        seen: Optional[SeenTradeSet] = None,
    ):
        """
        Initialize scheduler.

        Args:
            config: Copy trading configuration
            feed: Source feed gateway
            gateway: Order submission gateway
            seen: Seen-set (defaults to one sized by config.max_seen_trades)
        """
        self._config = config
        self._feed = feed
        self._gateway = gateway
        self._seen = seen if seen is not None else SeenTradeSet(max_size=config.max_seen_trades)

        self._high_water_mark = 0
        self._state = SchedulerState.IDLE
        self._stats = SchedulerStats()
        self._running = False
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None

        logger.info(
            f"CopyTradeScheduler initialized (source={config.source_trader[:10]}..., "
            f"gateway={gateway.get_name()}, inclusive_mark={config.inclusive_high_water_mark})"
        )

    @property
    def high_water_mark(self) -> int:
        return self._high_water_mark

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    def _in_window(self, fill: Fill) -> bool:
        if self._config.inclusive_high_water_mark:
            return fill.timestamp >= self._high_water_mark
        return fill.timestamp > self._high_water_mark

    def _advance_mark(self, timestamp: int) -> None:
        self._high_water_mark = max(self._high_water_mark, timestamp)

    async def tick(self) -> TickReport:
        """
        Run one fetch -> filter -> dispatch cycle.

        Never raises: every failure is logged and the scheduler returns to IDLE.
        """
        report = TickReport()
        try:
            await self._run_tick(report)
        except Exception as e:
            self._stats.errors += 1
            logger.error(f"Tick error: {e}", exc_info=True)
        finally:
            self._state = SchedulerState.IDLE
            self._stats.ticks += 1
        return report

    async def _run_tick(self, report: TickReport) -> None:
        # 1. Fetch
        self._state = SchedulerState.FETCHING
        logger.debug("Checking for new trades from source trader...")
        try:
            fills = await asyncio.to_thread(
                self._feed.fetch_trades,
                self._config.source_trader,
                self._config.feed.page_size,
                0,
            )
        except FetchError as e:
            self._stats.fetch_errors += 1
            report.fetch_failed = True
            logger.error(f"Failed to fetch source trades: {e}")
            return

        report.fetched = len(fills)
        if not fills:
            logger.debug("No trades found for source trader")
            return

        # 2. Filter: within window, then novel
        self._state = SchedulerState.FILTERING
        candidates = [
            f for f in fills
            if self._in_window(f) and self._seen.is_new_and_mark(f)
        ]

        if not candidates:
            logger.debug("No new trades to copy")
            return

        # 3. Chronological replay order, independent of feed order
        candidates.sort(key=lambda f: f.timestamp)
        report.candidates = len(candidates)
        self._stats.fills_seen += len(candidates)
        logger.info(f"Found {len(candidates)} new trade(s) to copy")

        # 4. Dispatch sequentially
        self._state = SchedulerState.DISPATCHING
        # A failure is local to its fill: the rest of the batch is already marked seen
        for fill in candidates:
            try:
                await self._dispatch(fill, report)
            except Exception as e:
                self._stats.errors += 1
                report.failed += 1
                logger.error(f"Error copying {fill!r}: {e}", exc_info=True)
            finally:
                self._advance_mark(fill.timestamp)

    async def _dispatch(self, fill: Fill, report: TickReport) -> None:
        """Size, price and submit one fill. Outcome is recorded, never raised."""
        check = build_copy_order(fill, self._config.risk)
        if not check.approved:
            self._stats.orders_skipped += 1
            report.skipped += 1
            logger.debug(f"Skipping {fill!r}: {check.reason}")
            return

        order = check.order
        logger.info(
            f"Copying {fill!r} -> {order.side.value} {order.size} @ {order.price}"
        )

        try:
            result: SubmissionResult = await asyncio.to_thread(
                self._gateway.submit,
                order.instrument_id,
                order.side,
                order.price,
                order.size,
            )
        except Exception as e:
            result = SubmissionResult(success=False, error=str(e))

        if result.success:
            self._stats.record_fill(order.side, order.instrument_id, order.price, order.size)
            report.submitted += 1
            logger.info(f"Copy order placed: {result!r}")
        else:
            self._stats.orders_failed += 1
            report.failed += 1
            logger.error(
                f"Copy order failed for tx {fill.transaction_hash or 'n/a'}: {result.error}"
            )

    async def start(
        self,
        interval_seconds: Optional[float] = None,
        max_iterations: Optional[int] = None,
    ) -> None:
        """
        Main loop. Rearms only after each tick completes.

        Args:
            interval_seconds: Delay between ticks (defaults to config.poll_interval_seconds)
            max_iterations: Max ticks (None = run until stop())
        """
        if self._running:
            logger.warning("Scheduler already running")
            return

        interval = (
            interval_seconds if interval_seconds is not None
            else self._config.poll_interval_seconds
        )
        if interval <= 0:
            raise ValueError(f"interval_seconds must be positive: {interval}")

        if self._stop_requested:
            # stop() arrived before start(); honour it once
            self._stop_requested = False
            logger.info("Stop already requested, not starting")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._stats.started_at = datetime.now(timezone.utc)
        logger.info(f"Starting monitoring loop, checking every {interval} seconds")

        iteration = 0
        try:
            while self._running:
                await self.tick()
                iteration += 1

                if max_iterations and iteration >= max_iterations:
                    logger.info(f"Max iterations ({max_iterations}) reached")
                    break

                await self._wait(interval)
        finally:
            self._running = False
            self._stop_requested = False
            logger.info("Scheduler stopped")
            logger.info(f"Final stats: {self.get_stats()}")

    async def _wait(self, seconds: float) -> None:
        """Sleep between ticks, waking early on stop()."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """Request shutdown. An in-flight tick is allowed to finish."""
        self._stop_requested = True
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        logger.info("Stop requested")

    def cancel_all_orders(self) -> int:
        """Delegate to the gateway's cancel-all and reset the active-order counter."""
        cancelled = self._gateway.cancel_all()
        self._stats.active_orders = 0
        return cancelled

    def get_stats(self) -> Dict[str, Any]:
        """Get scheduler statistics."""
        stats = self._stats
        return {
            "active_orders_count": stats.active_orders,
            "seen_set_size": len(self._seen),
            "last_high_water_mark": self._high_water_mark,
            "running": self._running,
            "state": self._state.value,
            "started_at": stats.started_at.isoformat() if stats.started_at else None,
            "ticks": stats.ticks,
            "fills_seen": stats.fills_seen,
            "orders_submitted": stats.orders_submitted,
            "orders_failed": stats.orders_failed,
            "orders_skipped": stats.orders_skipped,
            "fetch_errors": stats.fetch_errors,
            "errors": stats.errors,
            "seen_set_overflows": self._seen.overflow_count,
            "total_volume": float(stats.total_volume),
            "positions": {k: float(v) for k, v in stats.positions.items()},
        }
