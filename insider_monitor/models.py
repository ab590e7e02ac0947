from sqlalchemy import String, Float, DateTime, Integer, Boolean, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base

class MarketRow(Base):
    __tablename__ = "markets"
    __table_args__ = (
        Index("ix_markets_suspicious", "suspicious_wallet_count"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    condition_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    category: Mapped[str] = mapped_column(String(64), default="Other")
    resolution_time: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    suspicious_wallet_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    avg_risk_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_volume: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class WalletRow(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        Index("ix_wallets_risk_score", "risk_score"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    win_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_bets: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_volume: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    current_position_value: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    account_age_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    portfolio_concentration: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    avg_timing_proximity: Mapped[int] = mapped_column(Integer, default=72, nullable=False)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class TransactionRow(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_wallet", "wallet_id"),
        Index("ix_transactions_market", "market_id"),
        Index("ix_transactions_timestamp", "timestamp"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    wallet_id: Mapped[str] = mapped_column(ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False)
    market_id: Mapped[str] = mapped_column(ForeignKey("markets.id", ondelete="CASCADE"), nullable=False)
    market_title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    direction: Mapped[str] = mapped_column(String(64), nullable=False)
    timestamp: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    hours_before_resolution: Mapped[int | None] = mapped_column(Integer, nullable=True)
    won: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    price_impact: Mapped[float | None] = mapped_column(Float, default=0.0, nullable=True)
