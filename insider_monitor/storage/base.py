import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from ..core.pagination import DEFAULT_LIMIT, DEFAULT_OFFSET
from ..core.pipeline import wallet_id_for
from ..core.risk_scoring import HIGH_THRESHOLD, MEDIUM_THRESHOLD, WalletMetrics, calculate_risk_score, should_flag
from ..schemas import (
    DashboardStats,
    EarningsInsiderAlert,
    EarningsStats,
    Market,
    MarketCreate,
    Page,
    RiskFactors,
    Transaction,
    TransactionCreate,
    Wallet,
    WalletCreate,
    WalletWithTransactions,
)

# Placeholder until resolved outcomes are tracked.
DETECTION_ACCURACY = 87.0

HISTORICAL_MIN_WIN_RATE = 0.7


class Storage(ABC):
    """Backend behind the HTTP layer.

    Every read refreshes first; the refresh itself is a no-op unless the data
    is stale and no refresh is already running. Single-item lookups return
    None when the id is unknown.
    """

    mode: str = "memory"

    @abstractmethod
    async def refresh_data(self) -> None: ...

    @abstractmethod
    async def get_wallets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Wallet]: ...

    @abstractmethod
    async def get_flagged_wallets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Wallet]: ...

    @abstractmethod
    async def get_historical_wallets(
        self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET
    ) -> Page[Wallet]: ...

    @abstractmethod
    async def get_wallet(self, wallet_id: str) -> Wallet | None: ...

    @abstractmethod
    async def get_wallet_with_transactions(self, wallet_id: str) -> WalletWithTransactions | None: ...

    @abstractmethod
    async def get_wallet_risk_factors(self, wallet_id: str) -> RiskFactors | None: ...

    @abstractmethod
    async def create_wallet(self, data: WalletCreate) -> Wallet: ...

    @abstractmethod
    async def get_markets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Market]: ...

    @abstractmethod
    async def get_market(self, market_id: str) -> Market | None: ...

    @abstractmethod
    async def create_market(self, data: MarketCreate) -> Market: ...

    @abstractmethod
    async def get_transactions(self) -> list[Transaction]: ...

    @abstractmethod
    async def get_transactions_by_wallet(self, wallet_id: str) -> list[Transaction]: ...

    @abstractmethod
    async def create_transaction(self, data: TransactionCreate) -> Transaction: ...

    @abstractmethod
    async def get_dashboard_stats(self) -> DashboardStats: ...

    @abstractmethod
    async def get_earnings_alerts(self) -> list[EarningsInsiderAlert]: ...

    @abstractmethod
    async def get_earnings_stats(self) -> EarningsStats: ...


def is_listed_flagged(wallet: Wallet) -> bool:
    return wallet.is_flagged and wallet.risk_score >= MEDIUM_THRESHOLD


def is_historical(wallet: Wallet) -> bool:
    return wallet.win_rate > HISTORICAL_MIN_WIN_RATE


def dashboard_stats(flagged: list[Wallet], markets: list[Market]) -> DashboardStats:
    return DashboardStats(
        total_flagged_today=len(flagged),
        high_risk_count=sum(1 for w in flagged if w.risk_score >= HIGH_THRESHOLD),
        # Unresolved markets only; resolved ones still cached are left out.
        active_markets_monitored=sum(1 for m in markets if not m.is_resolved),
        detection_accuracy=DETECTION_ACCURACY,
    )


NEUTRAL_WALLET = WalletMetrics()


def wallet_from_create(data: WalletCreate) -> Wallet:
    """Unset metrics take the neutral values; the stored record is exactly what was scored."""

    def _or_neutral(value, field: str):
        return value if value is not None else getattr(NEUTRAL_WALLET, field)

    metrics = WalletMetrics(
        account_age_days=_or_neutral(data.account_age_days, "account_age_days"),
        win_rate=_or_neutral(data.win_rate, "win_rate"),
        portfolio_concentration=_or_neutral(data.portfolio_concentration, "portfolio_concentration"),
        avg_timing_proximity=_or_neutral(data.avg_timing_proximity, "avg_timing_proximity"),
        total_volume=_or_neutral(data.total_volume, "total_volume"),
    )
    risk_score = calculate_risk_score(metrics)
    return Wallet(
        id=wallet_id_for(data.address),
        address=data.address,
        risk_score=risk_score,
        win_rate=metrics.win_rate,
        total_bets=data.total_bets or 0,
        total_volume=metrics.total_volume,
        current_position_value=data.current_position_value or 0.0,
        account_age_days=int(metrics.account_age_days),
        portfolio_concentration=metrics.portfolio_concentration,
        avg_timing_proximity=int(metrics.avg_timing_proximity),
        is_flagged=should_flag(risk_score),
        notes=data.notes,
    )


def market_from_create(data: MarketCreate) -> Market:
    return Market(id=data.condition_id, **data.model_dump())


def transaction_from_create(data: TransactionCreate) -> Transaction:
    fields = data.model_dump()
    fields["timestamp"] = data.timestamp or datetime.now(timezone.utc)
    return Transaction(id=str(uuid.uuid4()), **fields)
