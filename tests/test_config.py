import os
import unittest
from unittest.mock import patch

from prizepool.config import (
    MAX_ENTRIES_PER_PLAYER,
    MAX_PLAYERS,
    PRECISION,
    PROTOCOL_FEE_RATE,
    LotteryConfig,
    RandomnessRequestParams,
    load_config_from_env,
)


class TestLotteryConfig(unittest.TestCase):
    def test_defaults(self):
        config = LotteryConfig(min_entrance_fee=5 * PRECISION, interval=3600)
        self.assertEqual(config.max_players, MAX_PLAYERS)
        self.assertEqual(config.max_entries_per_player, MAX_ENTRIES_PER_PLAYER)
        self.assertEqual(config.protocol_fee_rate, PROTOCOL_FEE_RATE)
        self.assertEqual(config.randomness.num_words, 1)
        self.assertEqual(config.randomness.request_confirmations, 3)

    def test_validation(self):
        bad = [
            dict(min_entrance_fee=0, interval=10),
            dict(min_entrance_fee=1, interval=-1),
            dict(min_entrance_fee=1, interval=10, max_players=0),
            dict(min_entrance_fee=1, interval=10, max_entries_per_player=0),
            dict(min_entrance_fee=1, interval=10, protocol_fee_rate=PRECISION + 1),
        ]
        for kwargs in bad:
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    LotteryConfig(**kwargs)

    def test_randomness_params_validation(self):
        with self.assertRaises(ValueError):
            RandomnessRequestParams(gas_lane="x", subscription_id=1, num_words=0)
        with self.assertRaises(ValueError):
            RandomnessRequestParams(gas_lane="x", subscription_id=1, callback_gas_limit=0)


class TestLoadConfigFromEnv(unittest.TestCase):
    @patch("prizepool.config.load_dotenv")
    def test_reads_environment(self, mock_load_dotenv):
        env = {
            "LOTTERY_MIN_ENTRANCE_FEE": str(50 * PRECISION),
            "LOTTERY_INTERVAL_SECONDS": "86400",
            "LOTTERY_GAS_LANE": "0xabc",
            "LOTTERY_SUBSCRIPTION_ID": "12",
            "LOTTERY_MAX_PLAYERS": "10",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config_from_env()
        mock_load_dotenv.assert_called_once()
        self.assertEqual(config.min_entrance_fee, 50 * PRECISION)
        self.assertEqual(config.interval, 86400)
        self.assertEqual(config.randomness.gas_lane, "0xabc")
        self.assertEqual(config.randomness.subscription_id, 12)
        self.assertEqual(config.max_players, 10)
        self.assertEqual(config.max_entries_per_player, MAX_ENTRIES_PER_PLAYER)

    @patch("prizepool.config.load_dotenv")
    def test_required_variables(self, mock_load_dotenv):
        with patch.dict(os.environ, {"LOTTERY_INTERVAL_SECONDS": "60"}, clear=True):
            with self.assertRaises(ValueError):
                load_config_from_env()

    @patch("prizepool.config.load_dotenv")
    def test_non_integer_rejected(self, mock_load_dotenv):
        env = {"LOTTERY_MIN_ENTRANCE_FEE": "1e18", "LOTTERY_INTERVAL_SECONDS": "60"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ValueError):
                load_config_from_env()


if __name__ == "__main__":
    unittest.main()
