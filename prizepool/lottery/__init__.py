"""Round accounting, state machine and settlement for prize-pool lotteries."""

from .engine import LedgerAudit, LotteryEngine
from .guard import ReentrancyGuard
from .selection import WinnerSelection, pick_weighted_winner, split_protocol_fee
from .upkeep import UpkeepStatus, evaluate_upkeep

__all__ = [
    "LedgerAudit",
    "LotteryEngine",
    "ReentrancyGuard",
    "UpkeepStatus",
    "WinnerSelection",
    "evaluate_upkeep",
    "pick_weighted_winner",
    "split_protocol_fee",
]
