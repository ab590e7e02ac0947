"""Baseline schema: markets, wallets, transactions.

Revision ID: 20261019_baseline
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_baseline"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "markets",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("condition_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("resolution_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspicious_wallet_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_risk_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_volume", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("condition_id", name="uq_markets_condition_id"),
    )
    op.create_index("ix_markets_suspicious", "markets", ["suspicious_wallet_count"])

    op.create_table(
        "wallets",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("address", sa.String(length=64), nullable=False),
        sa.Column("risk_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("win_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_bets", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_volume", sa.Float(), nullable=False, server_default="0"),
        sa.Column("current_position_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("account_age_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("portfolio_concentration", sa.Float(), nullable=False, server_default="0"),
        sa.Column("avg_timing_proximity", sa.Integer(), nullable=False, server_default="72"),
        sa.Column("is_flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("address", name="uq_wallets_address"),
    )
    op.create_index("ix_wallets_risk_score", "wallets", ["risk_score"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "wallet_id",
            sa.String(length=64),
            sa.ForeignKey("wallets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "market_id",
            sa.String(length=128),
            sa.ForeignKey("markets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("market_title", sa.String(length=512), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("direction", sa.String(length=64), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("hours_before_resolution", sa.Integer(), nullable=True),
        sa.Column("won", sa.Boolean(), nullable=True),
        sa.Column("price_impact", sa.Float(), nullable=True),
    )
    op.create_index("ix_transactions_wallet", "transactions", ["wallet_id"])
    op.create_index("ix_transactions_market", "transactions", ["market_id"])
    op.create_index("ix_transactions_timestamp", "transactions", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_transactions_timestamp", table_name="transactions")
    op.drop_index("ix_transactions_market", table_name="transactions")
    op.drop_index("ix_transactions_wallet", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_wallets_risk_score", table_name="wallets")
    op.drop_table("wallets")
    op.drop_index("ix_markets_suspicious", table_name="markets")
    op.drop_table("markets")
