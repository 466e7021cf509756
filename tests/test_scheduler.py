"""Tests for the copy-trade scheduler."""

import asyncio
import pytest
from decimal import Decimal

from polycopy.config import CopyTradingConfig, RiskConfig
from polycopy.engine.dedup import SeenTradeSet
from polycopy.engine.scheduler import CopyTradeScheduler, SchedulerState
from polycopy.models import Side
from tests.mocks.mock_polymarket_client import (
    SOURCE,
    TOKEN,
    MockFeed,
    RecordingGateway,
    make_fetch_error,
    make_fill,
)


def run_async(coro):
    """Run async coroutine in sync test."""
    return asyncio.run(coro)


@pytest.fixture
def config():
    return CopyTradingConfig(
        source_trader=SOURCE,
        poll_interval_seconds=0.01,
        risk=RiskConfig(
            risk_percentage=Decimal("10"),
            max_position_size=Decimal("100"),
            slippage_tolerance=Decimal("1"),
        ),
    )


def make_scheduler(config, pages, gateway=None, **kwargs):
    feed = MockFeed(pages)
    gateway = gateway or RecordingGateway()
    return CopyTradeScheduler(config, feed, gateway, **kwargs), feed, gateway


class TestTick:
    """Tests for a single fetch -> filter -> dispatch cycle."""

    def test_copies_new_fill(self, config):
        scheduler, feed, gateway = make_scheduler(config, [[make_fill(size="50", price="0.40")]])

        report = run_async(scheduler.tick())

        assert report.fetched == 1
        assert report.submitted == 1
        assert len(gateway.calls) == 1
        call = gateway.calls[0]
        assert call.side == Side.BUY
        assert call.size == Decimal("5")
        assert call.price == Decimal("0.404")
        assert feed.calls[0] == {"address": SOURCE, "limit": 100, "offset": 0}
        assert scheduler.state == SchedulerState.IDLE

    def test_chronological_dispatch(self, config):
        """Fills are dispatched oldest first whatever the feed order."""
        fills = [
            make_fill(tx=f"0x{ts}", timestamp=ts, asset=f"{TOKEN}{ts}")
            for ts in (5, 1, 3)
        ]
        scheduler, _, gateway = make_scheduler(config, [fills])

        run_async(scheduler.tick())

        assert [c.instrument_id for c in gateway.calls] == [
            f"{TOKEN}1", f"{TOKEN}3", f"{TOKEN}5",
        ]
        assert scheduler.high_water_mark == 5

    def test_duplicate_within_page(self, config):
        scheduler, _, gateway = make_scheduler(config, [[make_fill(), make_fill()]])

        report = run_async(scheduler.tick())

        assert report.candidates == 1
        assert len(gateway.calls) == 1

    def test_duplicate_across_ticks(self, config):
        scheduler, _, gateway = make_scheduler(config, [[make_fill()]])

        run_async(scheduler.tick())
        run_async(scheduler.tick())

        assert len(gateway.calls) == 1
        assert scheduler.get_stats()["ticks"] == 2

    def test_fills_behind_mark_ignored(self, config):
        scheduler, _, gateway = make_scheduler(
            config,
            [[make_fill(tx="0xnew", timestamp=100)], [make_fill(tx="0xold", timestamp=50)]],
        )

        run_async(scheduler.tick())
        run_async(scheduler.tick())

        assert len(gateway.calls) == 1
        assert scheduler.high_water_mark == 100

    def test_mark_is_monotonic(self, config):
        pages = [
            [make_fill(tx="0xa", timestamp=200)],
            [make_fill(tx="0xb", timestamp=150)],
            [],
        ]
        scheduler, _, _ = make_scheduler(config, pages)

        marks = []
        for _ in range(3):
            run_async(scheduler.tick())
            marks.append(scheduler.high_water_mark)

        assert marks == [200, 200, 200]

    def test_inclusive_mark_accepts_same_second(self, config):
        pages = [[make_fill(tx="0xa", timestamp=100)], [make_fill(tx="0xb", timestamp=100)]]
        scheduler, _, gateway = make_scheduler(config, pages)

        run_async(scheduler.tick())
        run_async(scheduler.tick())

        assert len(gateway.calls) == 2

    def test_exclusive_mark_rejects_same_second(self, config):
        exclusive = CopyTradingConfig(
            source_trader=SOURCE,
            inclusive_high_water_mark=False,
            risk=config.risk,
        )
        pages = [[make_fill(tx="0xa", timestamp=100)], [make_fill(tx="0xb", timestamp=100)]]
        scheduler, _, gateway = make_scheduler(exclusive, pages)

        run_async(scheduler.tick())
        run_async(scheduler.tick())

        assert len(gateway.calls) == 1

    def test_fetch_error_leaves_state_untouched(self, config):
        scheduler, _, gateway = make_scheduler(config, [make_fetch_error()])

        report = run_async(scheduler.tick())

        assert report.fetch_failed is True
        assert gateway.calls == []
        assert scheduler.high_water_mark == 0
        stats = scheduler.get_stats()
        assert stats["fetch_errors"] == 1
        assert stats["seen_set_size"] == 0
        assert scheduler.state == SchedulerState.IDLE

    def test_recovers_after_fetch_error(self, config):
        scheduler, _, gateway = make_scheduler(config, [make_fetch_error(), [make_fill()]])

        run_async(scheduler.tick())
        run_async(scheduler.tick())

        assert len(gateway.calls) == 1

    def test_unexpected_feed_exception_is_contained(self, config):
        scheduler, _, _ = make_scheduler(config, [RuntimeError("boom")])

        report = run_async(scheduler.tick())

        assert report.submitted == 0
        assert scheduler.get_stats()["errors"] == 1
        assert scheduler.state == SchedulerState.IDLE

    def test_invalid_instrument_skipped(self, config):
        scheduler, _, gateway = make_scheduler(config, [[make_fill(asset="short", timestamp=42)]])

        report = run_async(scheduler.tick())

        assert report.skipped == 1
        assert gateway.calls == []
        assert scheduler.high_water_mark == 42
        assert scheduler.get_stats()["orders_skipped"] == 1

    def test_failed_submission_advances_mark(self, config):
        scheduler, _, gateway = make_scheduler(
            config, [[make_fill(timestamp=77)]], gateway=RecordingGateway(should_fail=True)
        )

        report = run_async(scheduler.tick())

        assert report.failed == 1
        assert scheduler.high_water_mark == 77
        stats = scheduler.get_stats()
        assert stats["orders_failed"] == 1
        assert stats["active_orders_count"] == 0

    def test_failed_submission_not_retried(self, config):
        scheduler, _, gateway = make_scheduler(
            config, [[make_fill()]], gateway=RecordingGateway(should_fail=True)
        )

        run_async(scheduler.tick())
        run_async(scheduler.tick())

        assert len(gateway.calls) == 1

    def test_gateway_exception_is_a_failure(self, config):
        scheduler, _, _ = make_scheduler(
            config, [[make_fill(timestamp=9)]], gateway=RecordingGateway(raises=True)
        )

        report = run_async(scheduler.tick())

        assert report.failed == 1
        assert scheduler.high_water_mark == 9
        assert scheduler.get_stats()["errors"] == 0

    def test_error_on_one_fill_does_not_drop_the_rest(self, config):
        """An arithmetic blow-up on one fill still lets later fills in the batch through."""
        poisoned = make_fill(tx="0xbad", timestamp=10, size="9e999999")
        good = make_fill(tx="0xgood", timestamp=11, size="50")
        scheduler, _, gateway = make_scheduler(config, [[poisoned, good]])

        report = run_async(scheduler.tick())
        run_async(scheduler.tick())

        assert len(gateway.calls) == 1
        assert gateway.calls[0].size == Decimal("5")
        assert report.failed == 1
        assert report.submitted == 1
        assert scheduler.high_water_mark == 11
        assert scheduler.get_stats()["errors"] == 1

    def test_injected_empty_seen_set_is_used(self, config):
        seen = SeenTradeSet(max_size=5)
        scheduler, _, _ = make_scheduler(config, [[make_fill()]], seen=seen)

        run_async(scheduler.tick())

        assert len(seen) == 1


class TestEndToEnd:
    """Source trades replayed through the whole loop."""

    def test_copy_session(self, config):
        tx1 = make_fill(tx="0xtx1", timestamp=100, side=Side.BUY, price="0.40", size="50")
        tx2 = make_fill(tx="0xtx2", timestamp=101, side=Side.SELL, price="0.60", size="5000")
        pages = [[tx1], [tx1], [tx2, tx1]]
        scheduler, _, gateway = make_scheduler(config, pages)

        for _ in range(3):
            run_async(scheduler.tick())

        assert len(gateway.calls) == 2
        buy, sell = gateway.calls
        assert (buy.side, buy.size, buy.price) == (Side.BUY, Decimal("5"), Decimal("0.404"))
        assert (sell.side, sell.size, sell.price) == (Side.SELL, Decimal("100"), Decimal("0.594"))
        assert scheduler.high_water_mark == 101

        stats = scheduler.get_stats()
        assert stats["orders_submitted"] == 2
        assert stats["active_orders_count"] == 2
        assert stats["positions"][TOKEN] == pytest.approx(-95.0)
        assert stats["total_volume"] == pytest.approx(5 * 0.404 + 100 * 0.594)


class TestRunLoop:
    """Tests for start/stop."""

    def test_max_iterations(self, config):
        scheduler, feed, _ = make_scheduler(config, [[]])

        run_async(scheduler.start(interval_seconds=0.01, max_iterations=3))

        assert len(feed.calls) == 3
        assert scheduler.running is False
        assert scheduler.get_stats()["started_at"] is not None

    def test_stop_wakes_sleep(self, config):
        scheduler, feed, _ = make_scheduler(config, [[]])

        async def run():
            asyncio.get_running_loop().call_later(0.05, scheduler.stop)
            await asyncio.wait_for(scheduler.start(interval_seconds=30), timeout=5)

        run_async(run())

        assert len(feed.calls) == 1
        assert scheduler.running is False

    def test_stop_before_start_is_honoured(self, config):
        scheduler, feed, _ = make_scheduler(config, [[]])

        scheduler.stop()
        run_async(scheduler.start(interval_seconds=0.01, max_iterations=3))

        assert feed.calls == []
        assert scheduler.running is False

        # The pending stop is consumed; a later start runs normally
        run_async(scheduler.start(interval_seconds=0.01, max_iterations=2))
        assert len(feed.calls) == 2

    def test_invalid_interval(self, config):
        scheduler, _, _ = make_scheduler(config, [[]])
        with pytest.raises(ValueError, match="interval_seconds must be positive"):
            run_async(scheduler.start(interval_seconds=0))


class TestStats:
    """Tests for get_stats and cancel_all_orders."""

    def test_stats_keys(self, config):
        scheduler, _, _ = make_scheduler(config, [[]])
        stats = scheduler.get_stats()

        assert stats["active_orders_count"] == 0
        assert stats["seen_set_size"] == 0
        assert stats["last_high_water_mark"] == 0
        assert stats["running"] is False
        assert stats["state"] == "idle"

    def test_cancel_all_orders(self, config):
        scheduler, _, gateway = make_scheduler(config, [[make_fill()]])
        run_async(scheduler.tick())
        assert scheduler.get_stats()["active_orders_count"] == 1

        assert scheduler.cancel_all_orders() == 3
        assert gateway.cancel_all_calls == 1
        assert scheduler.get_stats()["active_orders_count"] == 0
