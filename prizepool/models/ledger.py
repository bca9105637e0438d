from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base, utcnow
from .types import ID_TYPE, Uint256

if TYPE_CHECKING:
    from .lottery import Lottery


class PrizeBalance(Base):
    """Prize owed to an account; accumulates across rounds until withdrawn."""

    __tablename__ = "prize_balances"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    lottery_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("lotteries.id", ondelete="CASCADE"), nullable=False
    )
    account: Mapped[str] = mapped_column(String(128), nullable=False)
    amount_owed: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    lottery: Mapped["Lottery"] = relationship(back_populates="prize_balances")

    __table_args__ = (
        UniqueConstraint("lottery_id", "account", name="uq_prize_balance_account"),
    )

    @classmethod
    def get_for(
        cls, session: Session, lottery_id: int, account: str
    ) -> Optional["PrizeBalance"]:
        """Return the balance row of ``account`` in ``lottery_id``, if any."""
        return session.scalar(
            select(cls).where(cls.lottery_id == lottery_id, cls.account == account)
        )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<PrizeBalance(account={self.account}, amount_owed={self.amount_owed})>"
