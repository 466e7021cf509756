"""
Source feed for the copy trader.

Fetches the followed trader's fills from the Polymarket Data API and
normalizes them into Fill records at the boundary.
"""

from polycopy.feed.gateway import SourceFeedGateway, FetchError
from polycopy.feed.schema import RawTradeRecord, parse_trade_records

__all__ = [
    "SourceFeedGateway",
    "FetchError",
    "RawTradeRecord",
    "parse_trade_records",
]
