"""Database models for lottery rounds and their configuration."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base, utcnow
from .types import ID_TYPE, Uint256

if TYPE_CHECKING:
    from ..config import LotteryConfig
    from .event import LotteryEvent
    from .ledger import PrizeBalance
    from .randomness import RandomnessRequest


class LotteryState(str, enum.Enum):
    """Phase of the round state machine."""

    OPEN = "open"
    CALCULATING = "calculating"


class Lottery(Base):
    """A prize-pool lottery: fixed configuration plus the live round aggregate."""

    __tablename__ = "lotteries"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    """Machine friendly identifier used by scripts and operators."""

    owner: Mapped[str] = mapped_column(String(128), nullable=False)
    """Account allowed to withdraw fees and enable delegated withdrawal."""

    # ---- configuration (fixed at construction) ----
    min_entrance_fee: Mapped[int] = mapped_column(Uint256, nullable=False)
    """Price of one entry in reference-currency units."""

    interval_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    max_players: Mapped[int] = mapped_column(Integer, nullable=False)
    max_entries_per_player: Mapped[int] = mapped_column(Integer, nullable=False)
    protocol_fee_rate: Mapped[int] = mapped_column(Uint256, nullable=False)

    gas_lane: Mapped[str] = mapped_column(String(66), nullable=False, default="")
    subscription_id: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    request_confirmations: Mapped[int] = mapped_column(Integer, nullable=False)
    callback_gas_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    num_words: Mapped[int] = mapped_column(Integer, nullable=False)

    # ---- state machine and current round ----
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LotteryState.OPEN.value
    )
    round_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    """Current round; starts at 1 and grows by one per settlement."""

    round_started_at: Mapped[int] = mapped_column(ID_TYPE, nullable=False)
    """Epoch seconds at which the current round opened."""

    round_total_entries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    round_total_value: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)

    # ---- global ledger ----
    total_value_held: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    """Owed prizes plus collected fees plus the current round value."""

    total_fee_collected: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    recent_winner: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    delegated_withdraw_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    pending_request_id: Mapped[Optional[int]] = mapped_column(Uint256, nullable=True)
    """Outstanding randomness request, set only while CALCULATING."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    entries: Mapped[list["RoundEntry"]] = relationship(
        back_populates="lottery", cascade="all, delete-orphan"
    )
    results: Mapped[list["RoundResult"]] = relationship(
        back_populates="lottery", cascade="all, delete-orphan"
    )
    prize_balances: Mapped[list["PrizeBalance"]] = relationship(
        back_populates="lottery", cascade="all, delete-orphan"
    )
    randomness_requests: Mapped[list["RandomnessRequest"]] = relationship(
        back_populates="lottery", cascade="all, delete-orphan"
    )
    events: Mapped[list["LotteryEvent"]] = relationship(
        back_populates="lottery", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("name", name="lotteries_name_key"),
        CheckConstraint("state IN ('open','calculating')", name="state_enum"),
        CheckConstraint("round_id >= 1", name="round_id_positive"),
    )

    @classmethod
    def from_config(
        cls,
        config: "LotteryConfig",
        *,
        name: str,
        owner: str,
        started_at: int,
    ) -> "Lottery":
        """Instantiate an OPEN lottery at round 1 from ``config``.

        Parameters
        ----------
        config : LotteryConfig
            Validated configuration; copied onto the row and never changed.
        name : str
            Unique lottery name.
        owner : str
            Owner account identifier.
        started_at : int
            Epoch seconds used as the first round's start time.
        """
        if not name:
            raise ValueError("Lottery name must not be empty")
        if not owner:
            raise ValueError("Lottery owner must not be empty")
        randomness = config.randomness
        return cls(
            name=name,
            owner=owner,
            min_entrance_fee=config.min_entrance_fee,
            interval_seconds=config.interval,
            max_players=config.max_players,
            max_entries_per_player=config.max_entries_per_player,
            protocol_fee_rate=config.protocol_fee_rate,
            gas_lane=randomness.gas_lane,
            subscription_id=randomness.subscription_id,
            request_confirmations=randomness.request_confirmations,
            callback_gas_limit=randomness.callback_gas_limit,
            num_words=randomness.num_words,
            state=LotteryState.OPEN.value,
            round_id=1,
            round_started_at=started_at,
            round_total_entries=0,
            round_total_value=0,
            total_value_held=0,
            total_fee_collected=0,
            delegated_withdraw_enabled=False,
        )

    @property
    def lottery_state(self) -> LotteryState:
        return LotteryState(self.state)

    def current_entries(self, session: Session) -> list["RoundEntry"]:
        """Return the current round's entries in insertion order."""

        stmt = (
            select(RoundEntry)
            .where(
                RoundEntry.lottery_id == self.id,
                RoundEntry.round_id == self.round_id,
            )
            .order_by(RoundEntry.position.asc())
        )
        return list(session.scalars(stmt).all())

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["Lottery"]:
        """Return the lottery called ``name`` if it exists."""

        return session.scalar(select(cls).where(cls.name == name))

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Lottery(id={self.id}, name={self.name}, state={self.state}, "
            f"round_id={self.round_id})>"
        )


class RoundEntry(Base):
    """Entries a participant bought in one round."""

    __tablename__ = "round_entries"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    lottery_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("lotteries.id", ondelete="CASCADE"), nullable=False
    )
    round_id: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Zero-based order of entry within the round."""

    participant: Mapped[str] = mapped_column(String(128), nullable=False)
    entries: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(Uint256, nullable=False)
    """Value credited to the round (``entries * unit``, refund excluded)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    lottery: Mapped["Lottery"] = relationship(back_populates="entries")

    __table_args__ = (
        UniqueConstraint(
            "lottery_id", "round_id", "participant", name="uq_round_entry_participant"
        ),
        UniqueConstraint(
            "lottery_id", "round_id", "position", name="uq_round_entry_position"
        ),
        CheckConstraint("entries >= 1", name="entries_positive"),
        Index("ix_round_entries_round", "lottery_id", "round_id"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<RoundEntry(round_id={self.round_id}, position={self.position}, "
            f"participant={self.participant}, entries={self.entries})>"
        )


class RoundResult(Base):
    """Settlement record of a finished round."""

    __tablename__ = "round_results"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    lottery_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("lotteries.id", ondelete="CASCADE"), nullable=False
    )
    round_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_id: Mapped[int] = mapped_column(Uint256, nullable=False)
    random_word: Mapped[int] = mapped_column(Uint256, nullable=False)
    winner: Mapped[str] = mapped_column(String(128), nullable=False)
    winning_ticket: Mapped[int] = mapped_column(Integer, nullable=False)
    total_entries: Mapped[int] = mapped_column(Integer, nullable=False)
    round_value: Mapped[int] = mapped_column(Uint256, nullable=False)
    fee: Mapped[int] = mapped_column(Uint256, nullable=False)
    prize: Mapped[int] = mapped_column(Uint256, nullable=False)
    settled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    lottery: Mapped["Lottery"] = relationship(back_populates="results")

    __table_args__ = (
        UniqueConstraint("lottery_id", "round_id", name="uq_round_result_round"),
    )
