from __future__ import annotations

from dataclasses import dataclass

from ..models.lottery import LotteryState


@dataclass(frozen=True)
class UpkeepStatus:
    """Snapshot of the upkeep predicate and its inputs."""

    upkeep_needed: bool
    time_passed: bool
    is_open: bool
    has_players: bool
    has_balance: bool
    balance: int
    player_count: int
    state: LotteryState

    def __bool__(self) -> bool:
        return self.upkeep_needed


def evaluate_upkeep(
    *,
    now: int,
    round_started_at: int,
    interval: int,
    state: LotteryState,
    player_count: int,
    balance: int,
) -> UpkeepStatus:
    """Decide whether the current round should be closed.

    Upkeep is needed once strictly more than ``interval`` seconds have passed
    since the round started, the lottery is OPEN, and it has at least one
    player and a non-zero held balance.
    """
    time_passed = now - round_started_at > interval
    is_open = state is LotteryState.OPEN
    has_players = player_count > 0
    has_balance = balance > 0
    return UpkeepStatus(
        upkeep_needed=time_passed and is_open and has_players and has_balance,
        time_passed=time_passed,
        is_open=is_open,
        has_players=has_players,
        has_balance=has_balance,
        balance=balance,
        player_count=player_count,
        state=state,
    )


__all__ = ["UpkeepStatus", "evaluate_upkeep"]
