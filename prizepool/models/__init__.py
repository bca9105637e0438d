from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .lottery import Lottery, LotteryState, RoundEntry, RoundResult  # noqa: F401
from .ledger import PrizeBalance  # noqa: F401
from .randomness import RandomnessRequest  # noqa: F401
from .event import LotteryEvent  # noqa: F401

__all__ = [
    "Base",
    "Lottery",
    "LotteryState",
    "RoundEntry",
    "RoundResult",
    "PrizeBalance",
    "RandomnessRequest",
    "LotteryEvent",
]
