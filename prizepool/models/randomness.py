from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow
from .types import ID_TYPE, Uint256

if TYPE_CHECKING:
    from .lottery import Lottery


class RandomnessRequest(Base):
    """Token of one request/fulfil round-trip with the randomness service."""

    __tablename__ = "randomness_requests"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    lottery_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("lotteries.id", ondelete="CASCADE"), nullable=False
    )
    request_id: Mapped[int] = mapped_column(Uint256, nullable=False)
    round_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    random_word: Mapped[Optional[int]] = mapped_column(Uint256, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    fulfilled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    lottery: Mapped["Lottery"] = relationship(back_populates="randomness_requests")

    __table_args__ = (
        UniqueConstraint("lottery_id", "request_id", name="uq_randomness_request_id"),
        CheckConstraint("status IN ('pending','fulfilled')", name="status_enum"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<RandomnessRequest(request_id={self.request_id}, round_id={self.round_id}, "
            f"status='{self.status}')>"
        )
