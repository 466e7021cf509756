"""
Copy Trader - Main Entry Point

Usage:
    polycopy [--once] [--live] [--interval SECONDS] [--cancel-on-exit] [--log-level LEVEL]

Examples:
    # Dry run, settings from .env
    polycopy

    # Single tick, verbose
    polycopy --once --log-level DEBUG

    # Live trading, cancel open orders on shutdown
    polycopy --live --cancel-on-exit
"""

import argparse
import asyncio
import contextlib
import dataclasses
import logging
import math
import signal
import sys
from typing import List, Optional

from polycopy.config import CopyTradingConfig
from polycopy.engine.scheduler import CopyTradeScheduler
from polycopy.execution.gateway import SubmissionError, create_gateway
from polycopy.feed.gateway import SourceFeedGateway

logger = logging.getLogger("polycopy")

STATUS_INTERVAL_SECONDS = 60.0


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if not (number > 0 and math.isfinite(number)):
        raise argparse.ArgumentTypeError(f"must be a positive number of seconds: {value}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="polycopy",
        description="Copy a Polymarket trader's fills onto your own account.",
    )
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    parser.add_argument(
        "--live", action="store_true",
        help="Submit real orders (overrides DRY_RUN=true)",
    )
    parser.add_argument(
        "--interval", type=_positive_float, default=None,
        help="Seconds between ticks (default: FETCH_INTERVAL)",
    )
    parser.add_argument(
        "--cancel-on-exit", action="store_true",
        help="Cancel all open orders on shutdown",
    )
    parser.add_argument(
        "--log-level", default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


async def _log_status(scheduler: CopyTradeScheduler, every: float) -> None:
    while True:
        await asyncio.sleep(every)
        logger.info(f"Bot status: {scheduler.get_stats()}")


async def _run(scheduler: CopyTradeScheduler, args: argparse.Namespace) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    if args.once:
        report = await scheduler.tick()
        logger.info(f"Tick complete: {report}")
    else:
        status_task = asyncio.create_task(_log_status(scheduler, STATUS_INTERVAL_SECONDS))
        try:
            await scheduler.start(args.interval)
        finally:
            status_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await status_task

    if args.cancel_on_exit:
        cancelled = await asyncio.to_thread(scheduler.cancel_all_orders)
        logger.info(f"Cancelled {cancelled} open order(s) on exit")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")

    try:
        config = CopyTradingConfig.from_env()
        if args.live:
            config = dataclasses.replace(
                config, execution=dataclasses.replace(config.execution, dry_run=False)
            )
    except ValueError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    if args.log_level is None:
        logging.getLogger().setLevel(config.log_level)

    feed = SourceFeedGateway(config.feed)
    try:
        gateway = create_gateway(config.execution)
    except SubmissionError as e:
        logger.critical(f"Failed to start: {e}")
        feed.close()
        return 1

    scheduler = CopyTradeScheduler(config, feed, gateway)

    logger.info("=" * 60)
    logger.info("POLYMARKET COPY TRADER STARTING")
    logger.info("=" * 60)
    logger.info(f"Mode: {'DRY-RUN' if config.execution.dry_run else 'LIVE'}")
    logger.info(f"Source trader: {config.source_trader}")
    logger.info(
        f"Risk: {config.risk.risk_percentage}% of source size, "
        f"max {config.risk.max_position_size}, slippage {config.risk.slippage_tolerance}%"
    )
    logger.info("=" * 60)

    if not feed.health_check():
        logger.warning("Data API health check failed, but it may still be reachable")

    try:
        asyncio.run(_run(scheduler, args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        feed.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
