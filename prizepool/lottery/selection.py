"""Weighted winner selection and the protocol fee split."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..arithmetic import checked_sub, mul_div, require_uint256
from ..config import PRECISION
from ..exceptions import WinnerSelectionError


@dataclass(frozen=True)
class WinnerSelection:
    """Outcome of a weighted draw.

    Attributes
    ----------
    winner : str
        Participant holding the winning ticket.
    winning_ticket : int
        ``random_word % total_entries``.
    total_entries : int
        Tickets in the draw.
    """

    winner: str
    winning_ticket: int
    total_entries: int


def pick_weighted_winner(
    holdings: Sequence[tuple[str, int]],
    random_word: int,
    total_entries: int,
) -> WinnerSelection:
    """Pick the holder of ticket ``random_word % total_entries``.

    Tickets are numbered consecutively in ``holdings`` order, so a participant
    with ``k`` entries owns the half-open range ``[before, before + k)`` and
    wins with probability ``k / total_entries``.

    Parameters
    ----------
    holdings : Sequence[tuple[str, int]]
        ``(participant, entries)`` pairs in entry order.
    random_word : int
        Uniform uint256 random value.
    total_entries : int
        Recorded ticket count of the round; must equal the sum of ``holdings``.

    Raises
    ------
    WinnerSelectionError
        If there are no tickets, the recorded total disagrees with the
        holdings, or the walk finds no owner for the ticket.
    """
    require_uint256(random_word, "random_word")
    if total_entries <= 0:
        raise WinnerSelectionError("Cannot draw a winner from a round without entries")

    actual_total = sum(entries for _, entries in holdings)
    if actual_total != total_entries:
        raise WinnerSelectionError(
            f"Recorded total {total_entries} does not match the {actual_total} entries held"
        )

    winning_ticket = random_word % total_entries
    cumulative = 0
    for participant, entries in holdings:
        cumulative += entries
        if cumulative > winning_ticket:
            return WinnerSelection(
                winner=participant,
                winning_ticket=winning_ticket,
                total_entries=total_entries,
            )

    raise WinnerSelectionError(
        f"Ticket {winning_ticket} is not owned by any of {len(holdings)} participants"
    )


def split_protocol_fee(round_value: int, fee_rate: int) -> tuple[int, int]:
    """Return ``(fee, prize)`` for ``round_value`` at ``fee_rate``/``PRECISION``.

    The fee truncates, so it never exceeds the nominal rate.
    """
    fee = mul_div(round_value, fee_rate, PRECISION)
    return fee, checked_sub(round_value, fee)


__all__ = ["WinnerSelection", "pick_weighted_winner", "split_protocol_fee"]
