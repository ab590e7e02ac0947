import logging
import time
from typing import Callable, Iterable

import httpx

from ..core.earnings import EARNINGS_MARKETS_LIMIT, build_earnings_alerts, earnings_stats
from ..core.pagination import DEFAULT_LIMIT, DEFAULT_OFFSET, paginate
from ..core.pipeline import DataSnapshot, build_snapshot
from ..core.refresh import RefreshCoordinator
from ..core.risk_scoring import calculate_risk_factors
from ..earnings.client import EarningsClient
from ..polymarket.client import PolymarketClient
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
from ..settings import settings
from .base import (
    Storage,
    dashboard_stats,
    is_historical,
    is_listed_flagged,
    market_from_create,
    transaction_from_create,
    wallet_from_create,
)

logger = logging.getLogger(__name__)


def _by_risk(wallets: Iterable[Wallet]) -> list[Wallet]:
    return sorted(wallets, key=lambda w: w.risk_score, reverse=True)


def _newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: t.timestamp, reverse=True)


class InMemoryStorage(Storage):
    """Serves everything from one snapshot that refreshes replace wholesale."""

    mode = "memory"

    def __init__(self, snapshot: DataSnapshot | None = None):
        self._snapshot = snapshot or DataSnapshot()
        self._earnings_alerts: list[EarningsInsiderAlert] = []

    @property
    def snapshot(self) -> DataSnapshot:
        return self._snapshot

    async def refresh_data(self) -> None:
        return None

    async def refresh_earnings(self) -> None:
        return None

    async def get_wallets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Wallet]:
        await self.refresh_data()
        return paginate(_by_risk(self._snapshot.wallets.values()), limit, offset)

    async def get_flagged_wallets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Wallet]:
        await self.refresh_data()
        return paginate(self._flagged(), limit, offset)

    async def get_historical_wallets(
        self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET
    ) -> Page[Wallet]:
        await self.refresh_data()
        historical = [w for w in self._snapshot.wallets.values() if is_historical(w)]
        return paginate(_by_risk(historical), limit, offset)

    async def get_wallet(self, wallet_id: str) -> Wallet | None:
        await self.refresh_data()
        return self._snapshot.wallets.get(wallet_id)

    async def get_wallet_with_transactions(self, wallet_id: str) -> WalletWithTransactions | None:
        await self.refresh_data()
        snapshot = self._snapshot
        wallet = snapshot.wallets.get(wallet_id)
        if wallet is None:
            return None
        transactions = _newest_first(t for t in snapshot.transactions.values() if t.wallet_id == wallet_id)
        market_ids = {t.market_id for t in transactions}
        markets = [m for m in snapshot.markets.values() if m.id in market_ids]
        return WalletWithTransactions(**wallet.model_dump(), transactions=transactions, markets=markets)

    async def get_wallet_risk_factors(self, wallet_id: str) -> RiskFactors | None:
        wallet = await self.get_wallet(wallet_id)
        if wallet is None:
            return None
        return calculate_risk_factors(wallet)

    async def create_wallet(self, data: WalletCreate) -> Wallet:
        wallet = wallet_from_create(data)
        self._snapshot.wallets[wallet.id] = wallet
        logger.info("wallet_created id=%s risk_score=%s", wallet.id, wallet.risk_score)
        return wallet

    async def get_markets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Market]:
        await self.refresh_data()
        markets = sorted(
            self._snapshot.markets.values(),
            key=lambda m: m.suspicious_wallet_count,
            reverse=True,
        )
        return paginate(markets, limit, offset)

    async def get_market(self, market_id: str) -> Market | None:
        await self.refresh_data()
        return self._snapshot.markets.get(market_id)

    async def create_market(self, data: MarketCreate) -> Market:
        market = market_from_create(data)
        self._snapshot.markets[market.id] = market
        logger.info("market_created id=%s", market.id)
        return market

    async def get_transactions(self) -> list[Transaction]:
        await self.refresh_data()
        return _newest_first(self._snapshot.transactions.values())

    async def get_transactions_by_wallet(self, wallet_id: str) -> list[Transaction]:
        await self.refresh_data()
        return _newest_first(t for t in self._snapshot.transactions.values() if t.wallet_id == wallet_id)

    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        tx = transaction_from_create(data)
        self._snapshot.transactions[tx.id] = tx
        logger.info("transaction_created id=%s wallet_id=%s market_id=%s", tx.id, tx.wallet_id, tx.market_id)
        return tx

    async def get_dashboard_stats(self) -> DashboardStats:
        await self.refresh_data()
        return dashboard_stats(self._flagged(), list(self._snapshot.markets.values()))

    async def get_earnings_alerts(self) -> list[EarningsInsiderAlert]:
        await self.refresh_data()
        await self.refresh_earnings()
        return sorted(self._earnings_alerts, key=lambda a: a.insider_risk_score, reverse=True)

    async def get_earnings_stats(self) -> EarningsStats:
        return earnings_stats(await self.get_earnings_alerts())

    def _flagged(self) -> list[Wallet]:
        return _by_risk(w for w in self._snapshot.wallets.values() if is_listed_flagged(w))


class LiveStorage(InMemoryStorage):
    """Polymarket-backed snapshot, rebuilt lazily when a read finds it stale."""

    mode = "live"

    def __init__(
        self,
        client: PolymarketClient | None = None,
        earnings_client: EarningsClient | None = None,
        markets_limit: int | None = None,
        trades_limit: int | None = None,
        refresh_interval_seconds: float | None = None,
        earnings_refresh_interval_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.client = client or PolymarketClient()
        self.earnings_client = earnings_client or EarningsClient()
        self.markets_limit = markets_limit or settings.POLY_MARKETS_LIMIT
        self.trades_limit = trades_limit or settings.POLY_RECENT_TRADES_LIMIT
        self.refresher = RefreshCoordinator(
            "polymarket",
            refresh_interval_seconds
            if refresh_interval_seconds is not None
            else settings.DATA_REFRESH_INTERVAL_SECONDS,
            clock=clock,
        )
        self.earnings_refresher = RefreshCoordinator(
            "earnings",
            earnings_refresh_interval_seconds
            if earnings_refresh_interval_seconds is not None
            else settings.EARNINGS_REFRESH_INTERVAL_SECONDS,
            clock=clock,
        )

    async def refresh_data(self) -> None:
        await self.refresher.run(self._rebuild_snapshot)

    async def refresh_earnings(self) -> None:
        await self.earnings_refresher.run(self._rebuild_earnings_alerts)

    async def get_wallet_with_transactions(self, wallet_id: str) -> WalletWithTransactions | None:
        detail = await super().get_wallet_with_transactions(wallet_id)
        if detail is None:
            return None
        position_value = await self._position_value(detail.address)
        if position_value is None:
            return detail
        return detail.model_copy(update={"current_position_value": position_value})

    async def _rebuild_snapshot(self) -> None:
        markets = await self.client.get_markets(limit=self.markets_limit, active=True)
        trades = await self.client.get_recent_trades(limit=self.trades_limit)
        self._snapshot = build_snapshot(markets, trades)

    async def _rebuild_earnings_alerts(self) -> None:
        events = await self.earnings_client.get_earnings_calendar(settings.EARNINGS_LOOKAHEAD_DAYS)
        if not events:
            logger.info("earnings_refresh_skipped reason=no_events")
            return
        polymarkets = await self.client.get_markets(limit=EARNINGS_MARKETS_LIMIT, active=True)
        snapshot = self._snapshot
        self._earnings_alerts = build_earnings_alerts(
            polymarkets,
            events,
            transactions=snapshot.transactions.values(),
            wallets=snapshot.wallets,
            market_volumes={mid: m.total_volume for mid, m in snapshot.markets.items()},
        )

    async def _position_value(self, address: str) -> float | None:
        try:
            positions = await self.client.get_positions(address)
        except (httpx.HTTPError, ValueError):
            logger.warning("position_value_unavailable address=%s", address, exc_info=True)
            return None
        return sum(p.size * p.current_price for p in positions)
