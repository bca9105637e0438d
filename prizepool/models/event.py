from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.utils import dt_iso
from .base import Base, utcnow
from .types import ID_TYPE

if TYPE_CHECKING:
    from .lottery import Lottery

EVENT_NAMES = (
    "Entered",
    "RandomnessRequested",
    "WinnerPicked",
    "PrizeSent",
    "FeeWithdrawn",
    "DelegatedWithdrawEnabled",
)


class LotteryEvent(Base):
    """Append-only log of the events a lottery emits."""

    __tablename__ = "lottery_events"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    lottery_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("lotteries.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    round_id: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    """Event arguments; large integers are stored as decimal strings."""

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    lottery: Mapped["Lottery"] = relationship(back_populates="events")

    __table_args__ = (
        CheckConstraint(
            "name IN ("
            + ",".join(f"'{name}'" for name in EVENT_NAMES)
            + ")",
            name="name_enum",
        ),
        Index("ix_lottery_events_lottery_name", "lottery_id", "name"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "round_id": self.round_id,
            "payload": dict(self.payload or {}),
            "occurred_at": dt_iso(self.occurred_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<LotteryEvent(name={self.name}, round_id={self.round_id}, "
            f"occurred_at={dt_iso(self.occurred_at)})>"
        )
