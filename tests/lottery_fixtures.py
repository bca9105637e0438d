"""Shared wiring for the lottery engine test suites."""

from __future__ import annotations

import unittest
from typing import Optional

from prizepool.config import PRECISION, LotteryConfig, RandomnessRequestParams
from prizepool.db.engine import get_sessionmaker, make_engine
from prizepool.lottery.engine import LotteryEngine
from prizepool.models import Base
from prizepool.oracle.feed import StaticPriceFeed
from prizepool.payments.vault import InMemoryVault
from prizepool.randomness.coordinator import LocalRandomnessCoordinator
from prizepool.workflows import create_lottery

START = 1_700_000_000
OWNER = "owner"
UNIT = 100


class FakeClock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class LotteryTestCase(unittest.TestCase):
    """Lottery with a 100-unit entry price (price feed at exactly 1.0)."""

    interval = 30
    max_players = 50

    def setUp(self) -> None:
        self.db_engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.db_engine)
        self.Session = get_sessionmaker(self.db_engine)
        self.session = self.Session()

        self.clock = FakeClock(START)
        self.feed = StaticPriceFeed(price=PRECISION, updated_at=START)
        self.coordinator = LocalRandomnessCoordinator()
        self.vault = InMemoryVault()

        config = LotteryConfig(
            min_entrance_fee=UNIT,
            interval=self.interval,
            max_players=self.max_players,
            randomness=RandomnessRequestParams(gas_lane="0xgaslane", subscription_id=7),
        )
        self.lottery = create_lottery(
            self.session, config, name="weekly", owner=OWNER, started_at=START
        )
        self.lottery_engine = self.make_lottery_engine()

    def tearDown(self) -> None:
        self.session.close()
        self.db_engine.dispose()

    def make_lottery_engine(self, **overrides) -> LotteryEngine:
        kwargs = dict(
            price_feed=self.feed,
            coordinator=self.coordinator,
            vault=self.vault,
            clock=self.clock,
        )
        kwargs.update(overrides)
        return LotteryEngine(self.session, self.lottery, **kwargs)

    # -------- helpers --------
    def close_round(self) -> int:
        """Let the interval pass and perform upkeep; returns the request id."""
        self.clock.advance(self.interval + 1)
        return self.lottery_engine.perform_upkeep()

    def play_round(self, stakes: dict[str, int], random_word: int) -> Optional[str]:
        for participant, value in stakes.items():
            self.lottery_engine.enter(participant, value)
        request_id = self.close_round()
        self.coordinator.fulfill(request_id, [random_word])
        return self.lottery_engine.recent_winner

    def assertLedgerBalanced(self) -> None:
        audit = self.lottery_engine.audit()
        self.assertTrue(audit.balanced, audit)
