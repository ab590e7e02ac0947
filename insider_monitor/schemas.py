from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

RiskLevel = Literal["low", "medium", "high", "critical"]
EarningsTime = Literal["bmo", "amc", "unknown"]


class ApiModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Market(ApiModel):
    id: str
    condition_id: str
    name: str
    category: str
    resolution_time: datetime | None = None
    suspicious_wallet_count: int = 0
    avg_risk_score: float = 0.0
    total_volume: float = 0.0
    is_resolved: bool = False


class MarketCreate(ApiModel):
    condition_id: str
    name: str
    category: str
    resolution_time: datetime | None = None
    suspicious_wallet_count: int = 0
    avg_risk_score: float = 0.0
    total_volume: float = 0.0
    is_resolved: bool = False


class Wallet(ApiModel):
    id: str
    address: str
    risk_score: int = 0
    # Heuristic estimates, not measured values.
    win_rate: float = 0.0
    total_bets: int = 0
    total_volume: float = 0.0
    current_position_value: float = 0.0
    account_age_days: int = 0
    portfolio_concentration: float = 0.0
    avg_timing_proximity: int = 72
    is_flagged: bool = False
    notes: str | None = None


class WalletCreate(ApiModel):
    address: str
    win_rate: float | None = None
    total_bets: int | None = None
    total_volume: float | None = None
    current_position_value: float | None = None
    account_age_days: int | None = None
    portfolio_concentration: float | None = None
    avg_timing_proximity: int | None = None
    notes: str | None = None


class Transaction(ApiModel):
    id: str
    wallet_id: str
    market_id: str
    market_title: str | None = None
    amount: float
    direction: str
    timestamp: datetime
    hours_before_resolution: int | None = None
    won: bool | None = None
    price_impact: float | None = None


class TransactionCreate(ApiModel):
    wallet_id: str
    market_id: str
    market_title: str | None = None
    amount: float
    direction: str
    timestamp: datetime | None = None
    hours_before_resolution: int | None = None
    won: bool | None = None
    price_impact: float | None = None


class WalletWithTransactions(Wallet):
    transactions: list[Transaction] = Field(default_factory=list)
    markets: list[Market] = Field(default_factory=list)


class RiskFactors(ApiModel):
    account_age: int
    win_rate: int
    portfolio_concentration: int
    timing_proximity: int
    position_size: int


class DashboardStats(ApiModel):
    total_flagged_today: int
    high_risk_count: int
    active_markets_monitored: int
    detection_accuracy: float


class Page(ApiModel, Generic[T]):
    data: list[T]
    total: int
    limit: int
    offset: int
    has_more: bool


class EarningsEvent(ApiModel):
    symbol: str
    company_name: str
    earnings_date: str
    earnings_time: EarningsTime = "unknown"
    estimated_eps: float | None = None
    actual_eps: float | None = None
    beat_probability: float | None = None
    revenue: float | None = None


class EarningsRiskFactors(ApiModel):
    divergence_score: int
    whale_activity_score: int
    timing_urgency_score: int
    volume_anomaly_score: int


class EarningsInsiderAlert(ApiModel):
    id: str
    symbol: str
    company_name: str
    earnings_date: str
    days_until_earnings: int
    insider_risk_score: int
    polymarket_odds: float
    analyst_consensus: float | None = None
    divergence: float
    suspicious_whale_count: int
    volume_ratio: float
    matched_market_id: str | None = None
    matched_market_question: str | None = None
    risk_factors: EarningsRiskFactors


class EarningsStats(ApiModel):
    total_earnings_tracked: int
    matched_markets_count: int
    high_risk_alerts_count: int
    avg_divergence: float
