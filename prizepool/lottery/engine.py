"""State-machine service owning a lottery's round and prize ledger."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..arithmetic import checked_add, checked_mul, checked_sub, require_uint256
from ..config import RandomnessRequestParams
from ..db.utils import epoch_seconds
from ..exceptions import (
    AlreadyEntered,
    DelegatedWithdrawDisabled,
    InsufficientEntryValue,
    InvalidRecipient,
    InvariantViolation,
    LotteryFull,
    LotteryNotOpen,
    NoFeeToWithdraw,
    NoPrizeToWithdraw,
    NotOwner,
    OracleError,
    RefundTransferFailed,
    TooManyEntries,
    TransferFailed,
    UnknownRandomnessRequest,
    UpkeepNotNeeded,
)
from ..models import (
    Lottery,
    LotteryEvent,
    LotteryState,
    PrizeBalance,
    RandomnessRequest,
    RoundEntry,
    RoundResult,
)
from ..oracle.feed import PriceFeed
from ..oracle.staleness import get_minimum_entry_amount
from ..payments.vault import Vault
from ..randomness.coordinator import RandomnessCoordinator
from .guard import ReentrancyGuard
from .selection import WinnerSelection, pick_weighted_winner, split_protocol_fee
from .upkeep import UpkeepStatus, evaluate_upkeep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerAudit:
    """Reconciliation of the ledger against itself and the vault.

    Attributes
    ----------
    total_value_held : int
        Recorded custody total.
    total_prize_owed : int
        Sum of all unclaimed prizes.
    total_fee_collected : int
        Unwithdrawn protocol fee.
    round_value : int
        Value of the current, unsettled round.
    round_entries : int
        Recorded ticket count of the current round.
    entries_held : int
        Sum of the current round's per-participant entries.
    vault_balance : int
        Balance the vault actually holds.
    """

    total_value_held: int
    total_prize_owed: int
    total_fee_collected: int
    round_value: int
    round_entries: int
    entries_held: int
    vault_balance: int

    @property
    def balanced(self) -> bool:
        return (
            self.total_value_held
            == self.total_prize_owed + self.total_fee_collected + self.round_value
            and self.total_value_held == self.vault_balance
            and self.round_entries == self.entries_held
        )


class LotteryEngine:
    """Serialized entry point for every operation on one lottery.

    All ledger mutation goes through this class. Each mutating operation runs in
    a SAVEPOINT paired with a vault snapshot, so an exception at any step
    (including a rejected transfer) leaves both the database and the vault as
    they were before the call. Operations that move value out of the vault
    also hold a :class:`ReentrancyGuard` for their whole duration.
    """

    def __init__(
        self,
        session: Session,
        lottery: Lottery,
        *,
        price_feed: PriceFeed,
        coordinator: RandomnessCoordinator,
        vault: Vault,
        clock: Optional[Callable[[], int]] = None,
        guard: Optional[ReentrancyGuard] = None,
    ) -> None:
        """Bind an engine to a persisted lottery.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session; the caller owns commit/rollback of the
            outer transaction.
        lottery : Lottery
            Persisted lottery row.
        price_feed : PriceFeed
            Feed used to price entries.
        coordinator : RandomnessCoordinator
            Randomness service that receives upkeep requests.
        vault : Vault
            Custody host for the lottery's balance.
        clock : Optional[Callable[[], int]], default: None
            Returns the current time in epoch seconds. Defaults to wall time.
        guard : Optional[ReentrancyGuard], default: None
            Share a guard between engines bound to the same lottery.
        """
        if lottery.id is None:
            raise ValueError("Lottery must be persisted before binding an engine")

        self._session = session
        self._lottery = lottery
        self._lottery_id = lottery.id
        self._price_feed = price_feed
        self._coordinator = coordinator
        self._vault = vault
        self._clock = clock or epoch_seconds
        self._guard = guard or ReentrancyGuard()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @property
    def lottery(self) -> Lottery:
        return self._lottery

    @property
    def state(self) -> LotteryState:
        return self._lottery.lottery_state

    @property
    def round_id(self) -> int:
        return self._lottery.round_id

    @property
    def recent_winner(self) -> Optional[str]:
        return self._lottery.recent_winner

    @property
    def total_fee_collected(self) -> int:
        return self._lottery.total_fee_collected

    @property
    def total_value_held(self) -> int:
        return self._lottery.total_value_held

    @property
    def interval(self) -> int:
        return self._lottery.interval_seconds

    @property
    def max_players(self) -> int:
        return self._lottery.max_players

    @property
    def max_entries_per_player(self) -> int:
        return self._lottery.max_entries_per_player

    @property
    def protocol_fee_rate(self) -> int:
        return self._lottery.protocol_fee_rate

    @property
    def last_timestamp(self) -> int:
        """Start of the current round in epoch seconds."""
        return self._lottery.round_started_at

    @property
    def pending_request_id(self) -> Optional[int]:
        return self._lottery.pending_request_id

    @property
    def delegated_withdraw_enabled(self) -> bool:
        return self._lottery.delegated_withdraw_enabled

    @property
    def request_confirmations(self) -> int:
        return self._lottery.request_confirmations

    @property
    def num_words(self) -> int:
        return self._lottery.num_words

    @property
    def request_params(self) -> RandomnessRequestParams:
        lottery = self._lottery
        return RandomnessRequestParams(
            gas_lane=lottery.gas_lane,
            subscription_id=lottery.subscription_id,
            request_confirmations=lottery.request_confirmations,
            callback_gas_limit=lottery.callback_gas_limit,
            num_words=lottery.num_words,
        )

    @property
    def players(self) -> list[str]:
        """Participants of the current round in entry order."""
        return [
            entry.participant
            for entry in self._lottery.current_entries(self._session)
        ]

    @property
    def number_of_players(self) -> int:
        lottery = self._lottery
        return self._session.scalar(
            select(func.count(RoundEntry.id)).where(
                RoundEntry.lottery_id == self._lottery_id,
                RoundEntry.round_id == lottery.round_id,
            )
        ) or 0

    def get_player(self, index: int) -> str:
        """Return the participant at ``index`` of the current round."""
        if index < 0:
            raise IndexError("player index must be non-negative")
        return self.players[index]

    def get_entries(self, round_id: int, participant: str) -> int:
        """Entries ``participant`` holds in ``round_id`` (0 when none)."""
        entries = self._session.scalar(
            select(RoundEntry.entries).where(
                RoundEntry.lottery_id == self._lottery_id,
                RoundEntry.round_id == round_id,
                RoundEntry.participant == participant,
            )
        )
        return entries or 0

    def get_prize_owed(self, account: str) -> int:
        balance = PrizeBalance.get_for(self._session, self._lottery_id, account)
        return balance.amount_owed if balance is not None else 0

    def get_minimum_entry_amount(self) -> int:
        """Current price of one entry in native units."""
        return get_minimum_entry_amount(
            self._price_feed, self._lottery.min_entrance_fee, self._clock()
        )

    def round_results(self) -> list[RoundResult]:
        stmt = (
            select(RoundResult)
            .where(RoundResult.lottery_id == self._lottery_id)
            .order_by(RoundResult.round_id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def events(self, name: Optional[str] = None) -> list[LotteryEvent]:
        """Emitted events in emission order, optionally filtered by ``name``."""
        stmt = select(LotteryEvent).where(LotteryEvent.lottery_id == self._lottery_id)
        if name is not None:
            stmt = stmt.where(LotteryEvent.name == name)
        return list(self._session.scalars(stmt.order_by(LotteryEvent.id.asc())).all())

    def audit(self) -> LedgerAudit:
        lottery = self._lottery
        owed = sum(
            self._session.scalars(
                select(PrizeBalance.amount_owed).where(
                    PrizeBalance.lottery_id == self._lottery_id
                )
            ).all()
        )
        entries_held = sum(
            entry.entries for entry in lottery.current_entries(self._session)
        )
        return LedgerAudit(
            total_value_held=lottery.total_value_held,
            total_prize_owed=owed,
            total_fee_collected=lottery.total_fee_collected,
            round_value=lottery.round_total_value,
            round_entries=lottery.round_total_entries,
            entries_held=entries_held,
            vault_balance=self._vault.balance(),
        )

    # ------------------------------------------------------------------
    # Round ledger
    # ------------------------------------------------------------------
    def enter(self, participant: str, value: int) -> int:
        """Buy entries in the current round with ``value`` native units.

        The value buys ``value // unit`` entries; the remainder is refunded to
        the participant straight away.

        Parameters
        ----------
        participant : str
            Entering account.
        value : int
            Attached value in native units.

        Returns
        -------
        int
            Number of entries bought.

        Raises
        ------
        LotteryNotOpen, LotteryFull, AlreadyEntered
            If the round does not accept this participant.
        StalePrice, InvalidPrice
            If the entry price cannot be determined.
        InsufficientEntryValue, TooManyEntries
            If ``value`` buys fewer than one or more than the allowed entries.
        RefundTransferFailed
            If the participant rejects the refund; nothing is recorded.
        """
        if not participant:
            raise ValueError("participant must not be empty")
        require_uint256(value, "value")

        with self._guard.hold("enter"):
            lottery = self._lottery
            self._require_open()

            current = lottery.current_entries(self._session)
            if len(current) >= lottery.max_players:
                raise LotteryFull(lottery.max_players)
            if any(entry.participant == participant for entry in current):
                raise AlreadyEntered(participant, lottery.round_id)

            unit = self.get_minimum_entry_amount()
            if unit == 0:
                raise OracleError("Minimum entry amount rounds down to zero")
            if value < unit:
                raise InsufficientEntryValue(value, unit)

            entries = value // unit
            if entries > lottery.max_entries_per_player:
                raise TooManyEntries(entries, lottery.max_entries_per_player)
            refund = value % unit
            credited = checked_mul(entries, unit)

            with self._atomic("enter"):
                self._vault.receive(participant, value)
                self._session.add(
                    RoundEntry(
                        lottery_id=self._lottery_id,
                        round_id=lottery.round_id,
                        position=len(current),
                        participant=participant,
                        entries=entries,
                        amount=credited,
                    )
                )
                lottery.round_total_entries = lottery.round_total_entries + entries
                lottery.round_total_value = checked_add(
                    lottery.round_total_value, credited
                )
                lottery.total_value_held = checked_add(
                    lottery.total_value_held, credited
                )
                self._emit("Entered", {"participant": participant, "entries": entries})
                if refund:
                    self._pay(participant, refund, error=RefundTransferFailed)

        return entries

    # ------------------------------------------------------------------
    # State machine and automation gate
    # ------------------------------------------------------------------
    def check_upkeep(self) -> UpkeepStatus:
        """Evaluate the upkeep predicate without touching any state."""
        lottery = self._lottery
        return evaluate_upkeep(
            now=self._clock(),
            round_started_at=lottery.round_started_at,
            interval=lottery.interval_seconds,
            state=lottery.lottery_state,
            player_count=self.number_of_players,
            balance=self._vault.balance(),
        )

    def perform_upkeep(self) -> int:
        """Close the round and request randomness for it.

        Returns
        -------
        int
            Identifier of the issued randomness request.

        Raises
        ------
        UpkeepNotNeeded
            If :meth:`check_upkeep` reports no upkeep is needed.
        """
        status = self.check_upkeep()
        if not status.upkeep_needed:
            raise UpkeepNotNeeded(status.balance, status.player_count, status.state.value)

        lottery = self._lottery
        if lottery.pending_request_id is not None:
            raise InvariantViolation(
                f"Lottery {self._lottery_id} is OPEN with request "
                f"{lottery.pending_request_id} outstanding"
            )

        with self._atomic("perform_upkeep"):
            lottery.state = LotteryState.CALCULATING.value
            self._session.flush()
            request_id = self._coordinator.request_random_words(self.request_params, self)
            try:
                lottery.pending_request_id = request_id
                self._session.add(
                    RandomnessRequest(
                        lottery_id=self._lottery_id,
                        request_id=request_id,
                        round_id=lottery.round_id,
                        status="pending",
                    )
                )
                self._emit("RandomnessRequested", {"request_id": str(request_id)})
                self._session.flush()
            except Exception:
                # The coordinator is outside the savepoint.
                self._coordinator.cancel_request(request_id)
                raise

        return request_id

    # ------------------------------------------------------------------
    # Randomness fulfilment
    # ------------------------------------------------------------------
    def fulfill_random_words(
        self, request_id: int, random_words: Sequence[int]
    ) -> WinnerSelection:
        """Settle the round with the randomness delivered for ``request_id``.

        Picks the weighted winner from the first word, splits off the
        protocol fee, credits the prize and opens the next round, all in one
        atomic step.

        Raises
        ------
        UnknownRandomnessRequest
            If ``request_id`` is not the outstanding request.
        WinnerSelectionError
            If the round's bookkeeping is inconsistent.
        ReentrantCall
            If delivered while a guarded operation is transferring value; the
            request stays outstanding.
        """
        with self._guard.hold("fulfill_random_words"):
            return self._settle(request_id, random_words)

    def _settle(self, request_id: int, random_words: Sequence[int]) -> WinnerSelection:
        lottery = self._lottery
        if (
            lottery.lottery_state is not LotteryState.CALCULATING
            or lottery.pending_request_id != request_id
        ):
            raise UnknownRandomnessRequest(request_id)
        if not random_words:
            raise ValueError("At least one random word is required")

        random_word = random_words[0]
        current = lottery.current_entries(self._session)
        selection = pick_weighted_winner(
            [(entry.participant, entry.entries) for entry in current],
            random_word,
            lottery.round_total_entries,
        )
        round_value = lottery.round_total_value
        fee, prize = split_protocol_fee(round_value, lottery.protocol_fee_rate)
        settled_round = lottery.round_id
        now = self._clock()

        with self._atomic("fulfill_random_words"):
            lottery.total_fee_collected = checked_add(lottery.total_fee_collected, fee)
            balance = self._prize_balance(selection.winner, create=True)
            balance.amount_owed = checked_add(balance.amount_owed, prize)

            self._session.add(
                RoundResult(
                    lottery_id=self._lottery_id,
                    round_id=settled_round,
                    request_id=request_id,
                    random_word=random_word,
                    winner=selection.winner,
                    winning_ticket=selection.winning_ticket,
                    total_entries=selection.total_entries,
                    round_value=round_value,
                    fee=fee,
                    prize=prize,
                )
            )
            request = self._session.scalar(
                select(RandomnessRequest).where(
                    RandomnessRequest.lottery_id == self._lottery_id,
                    RandomnessRequest.request_id == request_id,
                )
            )
            if request is not None:
                request.status = "fulfilled"
                request.random_word = random_word
                request.fulfilled_at = datetime.now(timezone.utc)

            lottery.recent_winner = selection.winner
            self._emit("WinnerPicked", {"winner": selection.winner}, round_id=settled_round)

            lottery.round_id = settled_round + 1
            lottery.round_total_entries = 0
            lottery.round_total_value = 0
            lottery.round_started_at = now
            lottery.pending_request_id = None
            lottery.state = LotteryState.OPEN.value

        logger.info(
            f"Lottery {self._lottery_id} round {settled_round} settled: "
            f"winner={selection.winner} ticket={selection.winning_ticket}/"
            f"{selection.total_entries} prize={prize} fee={fee}"
        )
        return selection

    # ------------------------------------------------------------------
    # Prize and fee ledger
    # ------------------------------------------------------------------
    def withdraw_prize(self, caller: str) -> int:
        """Pay ``caller`` everything they are owed.

        Raises
        ------
        LotteryNotOpen
            While a round is being settled.
        NoPrizeToWithdraw
            If nothing is owed to ``caller``.
        TransferFailed
            If ``caller`` rejects the transfer; the prize stays owed.
        """
        with self._guard.hold("withdraw_prize"):
            self._require_open()
            balance = self._owed_balance(caller)
            amount = balance.amount_owed
            with self._atomic("withdraw_prize"):
                self._debit_prize(balance, amount)
                self._pay(caller, amount)
                self._emit("PrizeSent", {"recipient": caller, "amount": str(amount)})
        return amount

    def withdraw_prize_to_delegate(self, caller: str, recipient: str) -> int:
        """Pay ``caller``'s prize to ``recipient`` once the owner allowed it.

        Meant for winners whose own account cannot receive transfers. The
        owner's permission is consumed by the first successful use.

        Raises
        ------
        LotteryNotOpen, DelegatedWithdrawDisabled, InvalidRecipient,
        NoPrizeToWithdraw, TransferFailed
        """
        with self._guard.hold("withdraw_prize_to_delegate"):
            self._require_open()
            lottery = self._lottery
            if not lottery.delegated_withdraw_enabled:
                raise DelegatedWithdrawDisabled()
            if not recipient:
                raise InvalidRecipient(recipient)
            balance = self._owed_balance(caller)
            amount = balance.amount_owed
            with self._atomic("withdraw_prize_to_delegate"):
                self._debit_prize(balance, amount)
                lottery.delegated_withdraw_enabled = False
                self._pay(recipient, amount)
                self._emit("PrizeSent", {"recipient": recipient, "amount": str(amount)})
                self._emit("DelegatedWithdrawEnabled", {"enabled": False})
        return amount

    def withdraw_protocol_fee(self, caller: str) -> int:
        """Send the collected protocol fee to the owner.

        Raises
        ------
        NotOwner
            If ``caller`` is not the owner.
        NoFeeToWithdraw
            If no fee has been collected.
        TransferFailed
            If the owner rejects the transfer; the fee stays collected.
        """
        with self._guard.hold("withdraw_protocol_fee"):
            self._require_owner(caller)
            lottery = self._lottery
            amount = lottery.total_fee_collected
            if amount == 0:
                raise NoFeeToWithdraw()
            with self._atomic("withdraw_protocol_fee"):
                lottery.total_fee_collected = 0
                lottery.total_value_held = checked_sub(lottery.total_value_held, amount)
                self._pay(lottery.owner, amount)
                self._emit("FeeWithdrawn", {"owner": lottery.owner, "amount": str(amount)})
        return amount

    def set_delegated_withdraw(self, caller: str, enabled: bool = True) -> None:
        """Allow (or revoke) one delegated prize withdrawal. Owner only."""
        self._require_owner(caller)
        with self._atomic("set_delegated_withdraw"):
            self._lottery.delegated_withdraw_enabled = enabled
            self._emit("DelegatedWithdrawEnabled", {"enabled": enabled})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @contextmanager
    def _atomic(self, operation: str) -> Iterator[None]:
        """Run a block so that it either fully applies or leaves no trace."""
        vault_snapshot = self._vault.snapshot()
        savepoint = self._session.begin_nested()
        try:
            yield
            self._session.flush()
        except Exception as exc:
            logger.warning(
                f"{operation} on lottery {self._lottery_id} rolled back: {exc}"
            )
            savepoint.rollback()
            self._vault.restore(vault_snapshot)
            raise
        savepoint.commit()

    def _require_open(self) -> None:
        if self._lottery.lottery_state is not LotteryState.OPEN:
            raise LotteryNotOpen(self._lottery.state)

    def _require_owner(self, caller: str) -> None:
        if caller != self._lottery.owner:
            raise NotOwner(caller)

    def _prize_balance(self, account: str, *, create: bool = False) -> Optional[PrizeBalance]:
        balance = PrizeBalance.get_for(self._session, self._lottery_id, account)
        if balance is None and create:
            balance = PrizeBalance(lottery_id=self._lottery_id, account=account, amount_owed=0)
            self._session.add(balance)
        return balance

    def _owed_balance(self, account: str) -> PrizeBalance:
        balance = self._prize_balance(account)
        if balance is None or balance.amount_owed == 0:
            raise NoPrizeToWithdraw(account)
        return balance

    def _debit_prize(self, balance: PrizeBalance, amount: int) -> None:
        lottery = self._lottery
        balance.amount_owed = checked_sub(balance.amount_owed, amount)
        lottery.total_value_held = checked_sub(lottery.total_value_held, amount)

    def _pay(self, recipient: str, amount: int, *, error=TransferFailed) -> None:
        # Debits hit the database before value leaves the vault.
        self._session.flush()
        if not self._vault.send(recipient, amount):
            raise error(recipient, amount)

    def _emit(
        self, name: str, payload: dict[str, Any], *, round_id: Optional[int] = None
    ) -> None:
        event_round = round_id if round_id is not None else self._lottery.round_id
        self._session.add(
            LotteryEvent(
                lottery_id=self._lottery_id,
                name=name,
                round_id=event_round,
                payload=payload,
            )
        )
        logger.info(f"Lottery {self._lottery_id} round {event_round} {name} {payload}")


__all__ = ["LedgerAudit", "LotteryEngine"]
