import random
import unittest

from lottery_fixtures import OWNER, START, UNIT, LotteryTestCase

from prizepool.config import LotteryConfig
from prizepool.exceptions import (
    EntryError,
    LedgerError,
    OracleError,
    StateError,
    TransferError,
)
from prizepool.lottery.engine import LotteryEngine
from prizepool.models import Lottery, LotteryState
from prizepool.workflows import create_lottery, run_automation_cycle, settle_round


class TestCreateLottery(LotteryTestCase):
    def test_duplicate_name_rejected(self):
        with self.assertRaises(ValueError):
            create_lottery(
                self.session,
                LotteryConfig(min_entrance_fee=1, interval=1),
                name="weekly",
                owner=OWNER,
            )

    def test_defaults_start_to_now(self):
        lottery = create_lottery(
            self.session,
            LotteryConfig(min_entrance_fee=1, interval=1),
            name="daily",
            owner=OWNER,
        )
        self.assertIsNotNone(lottery.id)
        self.assertGreater(lottery.round_started_at, START)
        self.assertIs(lottery.lottery_state, LotteryState.OPEN)

    def test_engine_requires_persisted_lottery(self):
        transient = Lottery.from_config(
            LotteryConfig(min_entrance_fee=1, interval=1),
            name="transient",
            owner=OWNER,
            started_at=START,
        )
        with self.assertRaises(ValueError):
            LotteryEngine(
                self.session,
                transient,
                price_feed=self.feed,
                coordinator=self.coordinator,
                vault=self.vault,
            )


class TestAutomationCycle(LotteryTestCase):
    def test_noop_until_needed(self):
        self.assertIsNone(run_automation_cycle(self.lottery_engine))
        self.lottery_engine.enter("alice", UNIT)
        self.assertIsNone(run_automation_cycle(self.lottery_engine))
        self.assertIs(self.lottery_engine.state, LotteryState.OPEN)

    def test_full_cycle(self):
        self.lottery_engine.enter("alice", UNIT)
        self.lottery_engine.enter("bob", 3 * UNIT)
        self.clock.advance(self.interval + 1)

        request_id = run_automation_cycle(self.lottery_engine)
        self.assertEqual(request_id, 1)
        self.assertIsNone(run_automation_cycle(self.lottery_engine))

        words = settle_round(self.coordinator, request_id, [2])
        self.assertEqual(words, [2])
        self.assertEqual(self.lottery_engine.recent_winner, "bob")
        self.assertEqual(self.lottery_engine.get_prize_owed("bob"), 380)

        names = [event.name for event in self.lottery_engine.events()]
        self.assertEqual(
            names, ["Entered", "Entered", "RandomnessRequested", "WinnerPicked"]
        )
        self.assertLedgerBalanced()

    def test_settle_with_fresh_randomness(self):
        self.lottery_engine.enter("alice", UNIT)
        self.clock.advance(self.interval + 1)
        request_id = run_automation_cycle(self.lottery_engine)
        words = settle_round(self.coordinator, request_id)
        self.assertEqual(len(words), 1)
        self.assertEqual(self.lottery_engine.recent_winner, "alice")
        self.assertEqual(self.lottery_engine.round_id, 2)

    def test_changes_persist_after_commit(self):
        self.lottery_engine.enter("alice", 2 * UNIT)
        self.session.commit()

        with self.Session() as other:
            fetched = other.get(Lottery, self.lottery.id)
            self.assertEqual(fetched.total_value_held, 2 * UNIT)
            self.assertEqual(fetched.round_total_entries, 2)


class TestLedgerStaysBalanced(LotteryTestCase):
    max_players = 6

    def test_random_operation_sequence(self):
        rng = random.Random(20240501)
        people = ["p0", "p1", "p2", "p3", "p4", "p5", "p6", "p7"]
        picky = {"p3", "p6"}
        for name in picky:
            self.vault.reject_transfers_to(name)

        settled = 0
        for _ in range(300):
            action = rng.choice(["enter", "enter", "enter", "upkeep", "withdraw", "fee"])
            round_before = self.lottery_engine.round_id
            try:
                if action == "enter":
                    self.lottery_engine.enter(rng.choice(people), rng.randint(0, 650))
                elif action == "upkeep":
                    self.clock.advance(self.interval + 1)
                    request_id = run_automation_cycle(self.lottery_engine)
                    if request_id is not None:
                        settle_round(self.coordinator, request_id, [rng.getrandbits(256)])
                        settled += 1
                        self.assertEqual(self.lottery_engine.round_id, round_before + 1)
                elif action == "withdraw":
                    self.lottery_engine.withdraw_prize(rng.choice(people))
                else:
                    self.lottery_engine.withdraw_protocol_fee(OWNER)
            except (EntryError, StateError, LedgerError, TransferError, OracleError):
                pass
            self.assertLedgerBalanced()
            self.assertIs(self.lottery_engine.state, LotteryState.OPEN)
            # Keep the price reading fresh as the clock moves.
            self.feed.update(price=self.feed.latest().price, updated_at=self.clock.now)

        self.assertGreater(settled, 0)
        self.assertEqual(self.lottery_engine.round_id, settled + 1)
        for name in picky:
            self.assertLessEqual(self.vault.balance_of(name), 0)


if __name__ == "__main__":
    unittest.main()
