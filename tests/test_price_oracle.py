import json
import os
import unittest
from unittest.mock import patch

from prizepool.config import PRECISION, PRICE_FEED_TIMEOUT
from prizepool.exceptions import InvalidPrice, OracleError, StalePrice
from prizepool.oracle.feed import HttpPriceFeed, PriceReading, StaticPriceFeed
from prizepool.oracle.staleness import get_minimum_entry_amount, stale_checked_latest

NOW = 1_700_000_000


class DummyResponse:
    def __init__(self, json_data=None, content: bytes = b""):
        self._json = json_data
        if json_data is not None and not content:
            content = json.dumps(json_data).encode()
        self.content = content

    def json(self):
        return self._json

    def raise_for_status(self):
        pass


class DummySession:
    def __init__(self, response: DummyResponse):
        self.response = response
        self.calls = []

    def request(self, method, url, headers=None, params=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "params": params,
                "timeout": timeout,
            }
        )
        return self.response


class TestStalenessCheck(unittest.TestCase):
    def test_fresh_reading_passes(self):
        feed = StaticPriceFeed(price=2000 * PRECISION, updated_at=NOW - 60)
        self.assertEqual(
            stale_checked_latest(feed, NOW), PriceReading(2000 * PRECISION, NOW - 60)
        )

    def test_reading_at_timeout_is_accepted(self):
        feed = StaticPriceFeed(price=1, updated_at=NOW - PRICE_FEED_TIMEOUT)
        self.assertEqual(stale_checked_latest(feed, NOW).price, 1)

    def test_reading_past_timeout_is_stale(self):
        feed = StaticPriceFeed(price=1, updated_at=NOW - PRICE_FEED_TIMEOUT - 1)
        with self.assertRaises(StalePrice) as ctx:
            stale_checked_latest(feed, NOW)
        self.assertEqual(ctx.exception.timeout, PRICE_FEED_TIMEOUT)
        self.assertIsInstance(ctx.exception, OracleError)

    def test_custom_timeout(self):
        feed = StaticPriceFeed(price=1, updated_at=NOW - 11)
        with self.assertRaises(StalePrice):
            stale_checked_latest(feed, NOW, timeout=10)


class TestMinimumEntryAmount(unittest.TestCase):
    def test_converts_fee_at_price(self):
        # 50 reference units at 2000 per native unit -> 0.025 native units.
        feed = StaticPriceFeed(price=2000 * PRECISION, updated_at=NOW)
        self.assertEqual(
            get_minimum_entry_amount(feed, 50 * PRECISION, NOW), 25 * 10**15
        )

    def test_truncates(self):
        feed = StaticPriceFeed(price=3, updated_at=NOW)
        self.assertEqual(get_minimum_entry_amount(feed, 10, NOW), 3333333333333333333)

    def test_non_positive_price_is_invalid(self):
        for price in (0, -5):
            with self.subTest(price=price):
                feed = StaticPriceFeed(price=price, updated_at=NOW)
                with self.assertRaises(InvalidPrice):
                    get_minimum_entry_amount(feed, 100, NOW)

    def test_staleness_checked_before_price(self):
        feed = StaticPriceFeed(price=0, updated_at=NOW - PRICE_FEED_TIMEOUT - 1)
        with self.assertRaises(StalePrice):
            get_minimum_entry_amount(feed, 100, NOW)


class TestHttpPriceFeed(unittest.TestCase):
    @patch("prizepool.oracle.feed.load_dotenv")
    def test_requires_url(self, mock_load_dotenv):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                HttpPriceFeed()

    @patch("prizepool.oracle.feed.load_dotenv")
    def test_url_from_environment(self, mock_load_dotenv):
        session = DummySession(DummyResponse(json_data={}))
        with patch.dict(os.environ, {"PRICE_FEED_URL": "https://prices.example.com/"}):
            feed = HttpPriceFeed(session=session)
        self.assertEqual(feed.base_url, "https://prices.example.com")

    def test_latest_parses_reading(self):
        payload = {"price": str(2000 * PRECISION), "updated_at": NOW}
        session = DummySession(DummyResponse(json_data=payload))
        feed = HttpPriceFeed(
            "https://prices.example.com/v1", path="/eth-usd", timeout=5, session=session
        )

        reading = feed.latest()

        self.assertEqual(reading, PriceReading(price=2000 * PRECISION, updated_at=NOW))
        call = session.calls[0]
        self.assertEqual(call["method"], "GET")
        self.assertEqual(call["url"], "https://prices.example.com/v1/eth-usd")
        self.assertEqual(call["headers"], {"Accept": "application/json"})
        self.assertEqual(call["timeout"], 5)

    def test_malformed_response(self):
        for payload in ({"price": "abc", "updated_at": NOW}, {"updated_at": NOW}, [1, 2]):
            with self.subTest(payload=payload):
                session = DummySession(DummyResponse(json_data=payload))
                feed = HttpPriceFeed("https://prices.example.com", session=session)
                with self.assertRaises(RuntimeError):
                    feed.latest()

    def test_empty_body(self):
        session = DummySession(DummyResponse())
        feed = HttpPriceFeed("https://prices.example.com", session=session)
        with self.assertRaises(RuntimeError):
            feed.latest()

    def test_usable_by_staleness_check(self):
        payload = {"price": 7, "updated_at": NOW - PRICE_FEED_TIMEOUT - 1}
        session = DummySession(DummyResponse(json_data=payload))
        feed = HttpPriceFeed("https://prices.example.com", session=session)
        with self.assertRaises(StalePrice):
            stale_checked_latest(feed, NOW)


if __name__ == "__main__":
    unittest.main()
