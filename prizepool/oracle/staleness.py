"""Staleness-checked price reads and the entry-price conversion."""

from __future__ import annotations

import logging

from ..arithmetic import mul_div
from ..config import PRECISION, PRICE_FEED_TIMEOUT
from ..exceptions import InvalidPrice, StalePrice
from .feed import PriceFeed, PriceReading

logger = logging.getLogger(__name__)


def stale_checked_latest(
    feed: PriceFeed, now: int, timeout: int = PRICE_FEED_TIMEOUT
) -> PriceReading:
    """Return the feed's latest reading, refusing stale ones.

    Parameters
    ----------
    feed : PriceFeed
        Feed to read.
    now : int
        Current time in epoch seconds.
    timeout : int, default: 3 hours
        Maximum accepted age of the reading in seconds.

    Raises
    ------
    StalePrice
        If ``now - updated_at`` exceeds ``timeout``.
    """
    reading = feed.latest()
    if now - reading.updated_at > timeout:
        logger.warning(
            f"Rejecting stale price updated_at={reading.updated_at} now={now}"
        )
        raise StalePrice(reading.updated_at, now, timeout)
    return reading


def get_minimum_entry_amount(
    feed: PriceFeed,
    min_entrance_fee: int,
    now: int,
    timeout: int = PRICE_FEED_TIMEOUT,
) -> int:
    """Convert the reference-currency entrance fee into native units.

    Returns ``min_entrance_fee * PRECISION // price`` (truncating).

    Raises
    ------
    StalePrice
        If the reading is older than ``timeout``.
    InvalidPrice
        If the reported price is not positive.
    """
    reading = stale_checked_latest(feed, now, timeout)
    if reading.price <= 0:
        raise InvalidPrice(reading.price)
    return mul_div(min_entrance_fee, PRECISION, reading.price)


__all__ = ["stale_checked_latest", "get_minimum_entry_amount"]
