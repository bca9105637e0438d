"""Protocol constants and lottery configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

PRECISION = 10**18
"""Fixed-point scale for prices and the protocol fee rate."""

PROTOCOL_FEE_RATE = 5 * 10**16
"""5% expressed at :data:`PRECISION`."""

MAX_PLAYERS = 50
MAX_ENTRIES_PER_PLAYER = 5

PRICE_FEED_TIMEOUT = 3 * 60 * 60
"""Seconds after which a price reading is considered stale."""

DEFAULT_REQUEST_CONFIRMATIONS = 3
DEFAULT_CALLBACK_GAS_LIMIT = 500_000
DEFAULT_NUM_WORDS = 1


@dataclass(frozen=True)
class RandomnessRequestParams:
    """Parameters forwarded with every randomness request.

    Attributes
    ----------
    gas_lane : str
        Key hash selecting the randomness service's gas lane.
    subscription_id : int
        Subscription that pays for fulfilment.
    request_confirmations : int
        Confirmations the service waits before answering.
    callback_gas_limit : int
        Gas budget for the fulfilment callback.
    num_words : int
        Random words requested. Only the first one is consumed.
    """

    gas_lane: str
    subscription_id: int
    request_confirmations: int = DEFAULT_REQUEST_CONFIRMATIONS
    callback_gas_limit: int = DEFAULT_CALLBACK_GAS_LIMIT
    num_words: int = DEFAULT_NUM_WORDS

    def __post_init__(self) -> None:
        if self.subscription_id < 0:
            raise ValueError("subscription_id must be non-negative")
        if self.request_confirmations < 0:
            raise ValueError("request_confirmations must be non-negative")
        if self.callback_gas_limit <= 0:
            raise ValueError("callback_gas_limit must be positive")
        if self.num_words < 1:
            raise ValueError("num_words must be at least 1")


@dataclass(frozen=True)
class LotteryConfig:
    """Configuration fixed when a lottery is created.

    Attributes
    ----------
    min_entrance_fee : int
        Price of one entry in reference-currency units at :data:`PRECISION`.
    interval : int
        Minimum round length in seconds before upkeep may close the round.
    randomness : RandomnessRequestParams
        Parameters for the randomness requests issued by upkeep.
    max_players : int, default: 50
    max_entries_per_player : int, default: 5
    protocol_fee_rate : int, default: 5e16
        Fee share of each round at :data:`PRECISION`.
    """

    min_entrance_fee: int
    interval: int
    randomness: RandomnessRequestParams = field(
        default_factory=lambda: RandomnessRequestParams(gas_lane="", subscription_id=0)
    )
    max_players: int = MAX_PLAYERS
    max_entries_per_player: int = MAX_ENTRIES_PER_PLAYER
    protocol_fee_rate: int = PROTOCOL_FEE_RATE

    def __post_init__(self) -> None:
        if self.min_entrance_fee <= 0:
            raise ValueError("min_entrance_fee must be positive")
        if self.interval < 0:
            raise ValueError("interval must be non-negative")
        if self.max_players < 1:
            raise ValueError("max_players must be at least 1")
        if self.max_entries_per_player < 1:
            raise ValueError("max_entries_per_player must be at least 1")
        if not 0 <= self.protocol_fee_rate <= PRECISION:
            raise ValueError("protocol_fee_rate must be within [0, PRECISION]")


def _env_int(name: str, default: Optional[int] = None) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        if default is None:
            raise ValueError(f"Environment variable '{name}' is not set")
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable '{name}' must be an integer") from exc


def load_config_from_env() -> LotteryConfig:
    """Build a :class:`LotteryConfig` from environment variables (and ``.env``).

    ``LOTTERY_MIN_ENTRANCE_FEE`` and ``LOTTERY_INTERVAL_SECONDS`` are required;
    everything else falls back to the protocol defaults.
    """
    load_dotenv()
    randomness = RandomnessRequestParams(
        gas_lane=os.getenv("LOTTERY_GAS_LANE", ""),
        subscription_id=_env_int("LOTTERY_SUBSCRIPTION_ID", 0),
        request_confirmations=_env_int(
            "LOTTERY_REQUEST_CONFIRMATIONS", DEFAULT_REQUEST_CONFIRMATIONS
        ),
        callback_gas_limit=_env_int(
            "LOTTERY_CALLBACK_GAS_LIMIT", DEFAULT_CALLBACK_GAS_LIMIT
        ),
        num_words=_env_int("LOTTERY_NUM_WORDS", DEFAULT_NUM_WORDS),
    )
    return LotteryConfig(
        min_entrance_fee=_env_int("LOTTERY_MIN_ENTRANCE_FEE"),
        interval=_env_int("LOTTERY_INTERVAL_SECONDS"),
        randomness=randomness,
        max_players=_env_int("LOTTERY_MAX_PLAYERS", MAX_PLAYERS),
        max_entries_per_player=_env_int(
            "LOTTERY_MAX_ENTRIES_PER_PLAYER", MAX_ENTRIES_PER_PLAYER
        ),
        protocol_fee_rate=_env_int("LOTTERY_PROTOCOL_FEE_RATE", PROTOCOL_FEE_RATE),
    )


__all__ = [
    "PRECISION",
    "PROTOCOL_FEE_RATE",
    "MAX_PLAYERS",
    "MAX_ENTRIES_PER_PLAYER",
    "PRICE_FEED_TIMEOUT",
    "RandomnessRequestParams",
    "LotteryConfig",
    "load_config_from_env",
]
