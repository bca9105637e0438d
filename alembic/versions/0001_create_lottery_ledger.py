"""create lottery ledger tables

Revision ID: 0001_create_lottery_ledger
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_create_lottery_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
UINT256 = sa.String(78)


def upgrade() -> None:
    op.create_table(
        "lotteries",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner", sa.String(128), nullable=False),
        sa.Column("min_entrance_fee", UINT256, nullable=False),
        sa.Column("interval_seconds", sa.Integer(), nullable=False),
        sa.Column("max_players", sa.Integer(), nullable=False),
        sa.Column("max_entries_per_player", sa.Integer(), nullable=False),
        sa.Column("protocol_fee_rate", UINT256, nullable=False),
        sa.Column("gas_lane", sa.String(66), nullable=False),
        sa.Column("subscription_id", UINT256, nullable=False),
        sa.Column("request_confirmations", sa.Integer(), nullable=False),
        sa.Column("callback_gas_limit", sa.Integer(), nullable=False),
        sa.Column("num_words", sa.Integer(), nullable=False),
        sa.Column("state", sa.String(20), nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("round_started_at", ID_TYPE, nullable=False),
        sa.Column("round_total_entries", sa.Integer(), nullable=False),
        sa.Column("round_total_value", UINT256, nullable=False),
        sa.Column("total_value_held", UINT256, nullable=False),
        sa.Column("total_fee_collected", UINT256, nullable=False),
        sa.Column("recent_winner", sa.String(128), nullable=True),
        sa.Column("delegated_withdraw_enabled", sa.Boolean(), nullable=False),
        sa.Column("pending_request_id", UINT256, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_lotteries"),
        sa.UniqueConstraint("name", name="lotteries_name_key"),
        sa.CheckConstraint(
            "state IN ('open','calculating')", name="ck_lotteries_state_enum"
        ),
        sa.CheckConstraint("round_id >= 1", name="ck_lotteries_round_id_positive"),
    )

    op.create_table(
        "round_entries",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("lottery_id", ID_TYPE, nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("participant", sa.String(128), nullable=False),
        sa.Column("entries", sa.Integer(), nullable=False),
        sa.Column("amount", UINT256, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name="fk_round_entries_lottery_id_lotteries",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_round_entries"),
        sa.UniqueConstraint(
            "lottery_id", "round_id", "participant", name="uq_round_entry_participant"
        ),
        sa.UniqueConstraint(
            "lottery_id", "round_id", "position", name="uq_round_entry_position"
        ),
        sa.CheckConstraint("entries >= 1", name="ck_round_entries_entries_positive"),
    )
    op.create_index(
        "ix_round_entries_round", "round_entries", ["lottery_id", "round_id"]
    )

    op.create_table(
        "round_results",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("lottery_id", ID_TYPE, nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("request_id", UINT256, nullable=False),
        sa.Column("random_word", UINT256, nullable=False),
        sa.Column("winner", sa.String(128), nullable=False),
        sa.Column("winning_ticket", sa.Integer(), nullable=False),
        sa.Column("total_entries", sa.Integer(), nullable=False),
        sa.Column("round_value", UINT256, nullable=False),
        sa.Column("fee", UINT256, nullable=False),
        sa.Column("prize", UINT256, nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name="fk_round_results_lottery_id_lotteries",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_round_results"),
        sa.UniqueConstraint("lottery_id", "round_id", name="uq_round_result_round"),
    )

    op.create_table(
        "prize_balances",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("lottery_id", ID_TYPE, nullable=False),
        sa.Column("account", sa.String(128), nullable=False),
        sa.Column("amount_owed", UINT256, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name="fk_prize_balances_lottery_id_lotteries",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_prize_balances"),
        sa.UniqueConstraint("lottery_id", "account", name="uq_prize_balance_account"),
    )

    op.create_table(
        "randomness_requests",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("lottery_id", ID_TYPE, nullable=False),
        sa.Column("request_id", UINT256, nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("random_word", UINT256, nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name="fk_randomness_requests_lottery_id_lotteries",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_randomness_requests"),
        sa.UniqueConstraint("lottery_id", "request_id", name="uq_randomness_request_id"),
        sa.CheckConstraint(
            "status IN ('pending','fulfilled')",
            name="ck_randomness_requests_status_enum",
        ),
    )

    op.create_table(
        "lottery_events",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("lottery_id", ID_TYPE, nullable=False),
        sa.Column("name", sa.String(32), nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name="fk_lottery_events_lottery_id_lotteries",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_lottery_events"),
        sa.CheckConstraint(
            "name IN ('Entered','RandomnessRequested','WinnerPicked',"
            "'PrizeSent','FeeWithdrawn','DelegatedWithdrawEnabled')",
            name="ck_lottery_events_name_enum",
        ),
    )
    op.create_index(
        "ix_lottery_events_lottery_name", "lottery_events", ["lottery_id", "name"]
    )


def downgrade() -> None:
    op.drop_index("ix_lottery_events_lottery_name", table_name="lottery_events")
    op.drop_table("lottery_events")
    op.drop_table("randomness_requests")
    op.drop_table("prize_balances")
    op.drop_table("round_results")
    op.drop_index("ix_round_entries_round", table_name="round_entries")
    op.drop_table("round_entries")
    op.drop_table("lotteries")
