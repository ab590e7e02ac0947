import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Query, Session, sessionmaker

from ..core.categories import categorize_market
from ..core.earnings import (
    EARNINGS_MARKETS_LIMIT,
    WHALE_MAX_ACCOUNT_AGE_DAYS,
    WHALE_MIN_AMOUNT,
    build_earnings_alerts,
    earnings_stats,
)
from ..core.pagination import DEFAULT_LIMIT, DEFAULT_OFFSET, clamp_limit, page_from_slice
from ..core.pipeline import DataSnapshot, build_snapshot
from ..core.refresh import RefreshCoordinator
from ..core.risk_scoring import HIGH_THRESHOLD, MEDIUM_THRESHOLD, calculate_risk_factors
from ..db import SessionLocal
from ..earnings.client import EarningsClient
from ..models import MarketRow, TransactionRow, WalletRow
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
    HISTORICAL_MIN_WIN_RATE,
    Storage,
    dashboard_stats,
    market_from_create,
    transaction_from_create,
    wallet_from_create,
)

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS_LIMIT = 100
UPSERT_CHUNK_SIZE = 500
PLACEHOLDER_MARKET_NAME = "Unknown market"

_MARKET_UPDATE_COLS = (
    "name",
    "category",
    "resolution_time",
    "suspicious_wallet_count",
    "avg_risk_score",
    "total_volume",
    "is_resolved",
)
_WALLET_UPDATE_COLS = (
    "risk_score",
    "win_rate",
    "total_bets",
    "total_volume",
    "current_position_value",
    "account_age_days",
    "portfolio_concentration",
    "avg_timing_proximity",
    "is_flagged",
)


def _insert(db: Session, table):
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


def _chunks(rows: list[dict], size: int = UPSERT_CHUNK_SIZE) -> Iterator[list[dict]]:
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def _upsert(db: Session, model, rows: list[dict], conflict_col: str, update_cols: tuple[str, ...]) -> None:
    for chunk in _chunks(rows):
        stmt = _insert(db, model.__table__).values(chunk)
        stmt = stmt.on_conflict_do_update(
            index_elements=[conflict_col],
            set_={col: getattr(stmt.excluded, col) for col in update_cols},
        )
        db.execute(stmt)


def _insert_ignore(db: Session, model, rows: list[dict], conflict_col: str) -> None:
    for chunk in _chunks(rows):
        stmt = _insert(db, model.__table__).values(chunk)
        db.execute(stmt.on_conflict_do_nothing(index_elements=[conflict_col]))


def _to_market(row: MarketRow) -> Market:
    return Market.model_validate(row, from_attributes=True)


def _to_wallet(row: WalletRow) -> Wallet:
    return Wallet.model_validate(row, from_attributes=True)


def _to_transaction(row: TransactionRow) -> Transaction:
    return Transaction.model_validate(row, from_attributes=True)


def _page(query: Query, convert, limit: int, offset: int) -> Page:
    limit = clamp_limit(limit)
    offset = max(offset, 0)
    total = query.order_by(None).count()
    rows = query.offset(offset).limit(limit).all()
    return page_from_slice([convert(r) for r in rows], total, limit, offset)


class RelationalStorage(Storage):
    """SQLAlchemy-backed store.

    Refreshes compute the same snapshot as the in-memory store and persist it
    by natural key: markets by condition id, wallets by address. A refreshed
    wallet's transactions are replaced. Markets are written before the
    transactions that reference them.
    """

    mode = "postgres"

    def __init__(
        self,
        session_factory: sessionmaker | None = None,
        client: PolymarketClient | None = None,
        earnings_client: EarningsClient | None = None,
        markets_limit: int | None = None,
        trades_limit: int | None = None,
        refresh_interval_seconds: float | None = None,
        earnings_refresh_interval_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory or SessionLocal
        self.client = client or PolymarketClient()
        self.earnings_client = earnings_client or EarningsClient()
        self.markets_limit = markets_limit or settings.POLY_MARKETS_LIMIT
        self.trades_limit = trades_limit or settings.POLY_RECENT_TRADES_LIMIT
        self.refresher = RefreshCoordinator(
            "polymarket_db",
            refresh_interval_seconds
            if refresh_interval_seconds is not None
            else settings.DATA_REFRESH_INTERVAL_SECONDS,
            clock=clock,
        )
        self.earnings_refresher = RefreshCoordinator(
            "earnings_db",
            earnings_refresh_interval_seconds
            if earnings_refresh_interval_seconds is not None
            else settings.EARNINGS_REFRESH_INTERVAL_SECONDS,
            clock=clock,
        )
        self._earnings_alerts: list[EarningsInsiderAlert] = []

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    async def refresh_data(self) -> None:
        await self.refresher.run(self._refresh)

    async def _refresh(self) -> None:
        markets = await self.client.get_markets(limit=self.markets_limit, active=True)
        trades = await self.client.get_recent_trades(limit=self.trades_limit)
        snapshot = build_snapshot(markets, trades)
        with self._session() as db:
            try:
                self.persist_snapshot(db, snapshot)
                db.commit()
            except Exception:
                db.rollback()
                raise

    def persist_snapshot(self, db: Session, snapshot: DataSnapshot) -> None:
        market_rows = [m.model_dump() for m in snapshot.markets.values()]
        _upsert(db, MarketRow, market_rows, "condition_id", _MARKET_UPDATE_COLS)

        known = set(snapshot.markets)
        referenced = {tx.market_id for tx in snapshot.transactions.values()} - known
        if referenced:
            existing = {
                market_id
                for (market_id,) in db.query(MarketRow.id).filter(MarketRow.id.in_(list(referenced))).all()
            }
            titles = {tx.market_id: tx.market_title for tx in snapshot.transactions.values()}
            placeholders = [
                {
                    "id": market_id,
                    "condition_id": market_id,
                    "name": titles.get(market_id) or PLACEHOLDER_MARKET_NAME,
                    "category": categorize_market(titles.get(market_id)),
                }
                for market_id in sorted(referenced - existing)
            ]
            _insert_ignore(db, MarketRow, placeholders, "condition_id")

        wallet_rows = [w.model_dump() for w in snapshot.wallets.values()]
        _upsert(db, WalletRow, wallet_rows, "address", _WALLET_UPDATE_COLS)

        wallet_ids = list(snapshot.wallets)
        for chunk_start in range(0, len(wallet_ids), UPSERT_CHUNK_SIZE):
            chunk = wallet_ids[chunk_start:chunk_start + UPSERT_CHUNK_SIZE]
            db.query(TransactionRow).filter(TransactionRow.wallet_id.in_(chunk)).delete(synchronize_session=False)
        tx_rows = [tx.model_dump() for tx in snapshot.transactions.values()]
        _insert_ignore(db, TransactionRow, tx_rows, "id")

        self._update_market_stats(db)
        logger.info(
            "snapshot_persisted markets=%s wallets=%s transactions=%s placeholders=%s",
            len(market_rows),
            len(wallet_rows),
            len(tx_rows),
            len(referenced),
        )

    def _update_market_stats(self, db: Session) -> None:
        pairs = (
            db.query(TransactionRow.market_id, WalletRow.id, WalletRow.risk_score)
            .join(WalletRow, WalletRow.id == TransactionRow.wallet_id)
            .filter(WalletRow.risk_score >= HIGH_THRESHOLD)
            .distinct()
            .subquery()
        )
        stats = (
            db.query(pairs.c.market_id, func.count(), func.avg(pairs.c.risk_score))
            .group_by(pairs.c.market_id)
            .all()
        )
        db.query(MarketRow).update(
            {MarketRow.suspicious_wallet_count: 0, MarketRow.avg_risk_score: 0.0},
            synchronize_session=False,
        )
        for market_id, count, avg in stats:
            db.query(MarketRow).filter(MarketRow.id == market_id).update(
                {MarketRow.suspicious_wallet_count: count, MarketRow.avg_risk_score: float(avg or 0.0)},
                synchronize_session=False,
            )

    async def get_wallets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Wallet]:
        await self.refresh_data()
        with self._session() as db:
            query = db.query(WalletRow).order_by(WalletRow.risk_score.desc(), WalletRow.id)
            return _page(query, _to_wallet, limit, offset)

    async def get_flagged_wallets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Wallet]:
        await self.refresh_data()
        with self._session() as db:
            return _page(self._flagged_query(db), _to_wallet, limit, offset)

    async def get_historical_wallets(
        self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET
    ) -> Page[Wallet]:
        await self.refresh_data()
        with self._session() as db:
            query = (
                db.query(WalletRow)
                .filter(WalletRow.win_rate > HISTORICAL_MIN_WIN_RATE)
                .order_by(WalletRow.risk_score.desc(), WalletRow.id)
            )
            return _page(query, _to_wallet, limit, offset)

    async def get_wallet(self, wallet_id: str) -> Wallet | None:
        await self.refresh_data()
        with self._session() as db:
            row = db.get(WalletRow, wallet_id)
            return _to_wallet(row) if row is not None else None

    async def get_wallet_with_transactions(self, wallet_id: str) -> WalletWithTransactions | None:
        await self.refresh_data()
        with self._session() as db:
            row = db.get(WalletRow, wallet_id)
            if row is None:
                return None
            tx_rows = (
                db.query(TransactionRow)
                .filter(TransactionRow.wallet_id == wallet_id)
                .order_by(TransactionRow.timestamp.desc())
                .all()
            )
            market_ids = {tx.market_id for tx in tx_rows}
            market_rows = db.query(MarketRow).filter(MarketRow.id.in_(list(market_ids))).all() if market_ids else []
            return WalletWithTransactions(
                **_to_wallet(row).model_dump(),
                transactions=[_to_transaction(tx) for tx in tx_rows],
                markets=[_to_market(m) for m in market_rows],
            )

    async def get_wallet_risk_factors(self, wallet_id: str) -> RiskFactors | None:
        wallet = await self.get_wallet(wallet_id)
        if wallet is None:
            return None
        return calculate_risk_factors(wallet)

    async def create_wallet(self, data: WalletCreate) -> Wallet:
        wallet = wallet_from_create(data)
        with self._session() as db:
            _upsert(db, WalletRow, [wallet.model_dump()], "address", _WALLET_UPDATE_COLS + ("notes",))
            db.commit()
            row = db.query(WalletRow).filter(WalletRow.address == wallet.address).one()
            logger.info("wallet_created id=%s risk_score=%s", row.id, row.risk_score)
            return _to_wallet(row)

    async def get_markets(self, limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[Market]:
        await self.refresh_data()
        with self._session() as db:
            query = db.query(MarketRow).order_by(MarketRow.suspicious_wallet_count.desc(), MarketRow.id)
            return _page(query, _to_market, limit, offset)

    async def get_market(self, market_id: str) -> Market | None:
        await self.refresh_data()
        with self._session() as db:
            row = db.get(MarketRow, market_id)
            return _to_market(row) if row is not None else None

    async def create_market(self, data: MarketCreate) -> Market:
        market = market_from_create(data)
        with self._session() as db:
            _upsert(db, MarketRow, [market.model_dump()], "condition_id", _MARKET_UPDATE_COLS)
            db.commit()
            row = db.query(MarketRow).filter(MarketRow.condition_id == market.condition_id).one()
            logger.info("market_created id=%s", row.id)
            return _to_market(row)

    async def get_transactions(self) -> list[Transaction]:
        await self.refresh_data()
        with self._session() as db:
            rows = (
                db.query(TransactionRow)
                .order_by(TransactionRow.timestamp.desc())
                .limit(RECENT_TRANSACTIONS_LIMIT)
                .all()
            )
            return [_to_transaction(r) for r in rows]

    async def get_transactions_by_wallet(self, wallet_id: str) -> list[Transaction]:
        await self.refresh_data()
        with self._session() as db:
            rows = (
                db.query(TransactionRow)
                .filter(TransactionRow.wallet_id == wallet_id)
                .order_by(TransactionRow.timestamp.desc())
                .all()
            )
            return [_to_transaction(r) for r in rows]

    async def create_transaction(self, data: TransactionCreate) -> Transaction:
        tx = transaction_from_create(data)
        with self._session() as db:
            db.add(TransactionRow(**tx.model_dump()))
            db.commit()
        logger.info("transaction_created id=%s wallet_id=%s market_id=%s", tx.id, tx.wallet_id, tx.market_id)
        return tx

    async def get_dashboard_stats(self) -> DashboardStats:
        await self.refresh_data()
        with self._session() as db:
            flagged = [_to_wallet(r) for r in self._flagged_query(db).all()]
            markets = [_to_market(r) for r in db.query(MarketRow).all()]
        return dashboard_stats(flagged, markets)

    async def get_earnings_alerts(self) -> list[EarningsInsiderAlert]:
        await self.refresh_data()
        await self.earnings_refresher.run(self._refresh_earnings)
        return list(self._earnings_alerts)

    async def get_earnings_stats(self) -> EarningsStats:
        return earnings_stats(await self.get_earnings_alerts())

    async def _refresh_earnings(self) -> None:
        events = await self.earnings_client.get_earnings_calendar(settings.EARNINGS_LOOKAHEAD_DAYS)
        if not events:
            logger.info("earnings_refresh_skipped reason=no_events")
            return
        polymarkets = await self.client.get_markets(limit=EARNINGS_MARKETS_LIMIT, active=True)
        market_ids = [pm.condition_id or pm.id for pm in polymarkets]
        with self._session() as db:
            young = {
                row.id: _to_wallet(row)
                for row in db.query(WalletRow).filter(WalletRow.account_age_days < WHALE_MAX_ACCOUNT_AGE_DAYS)
            }
            large = [
                _to_transaction(row)
                for row in db.query(TransactionRow).filter(
                    TransactionRow.market_id.in_(market_ids),
                    TransactionRow.amount >= WHALE_MIN_AMOUNT,
                )
            ]
            volumes = {
                market_id: total_volume
                for market_id, total_volume in db.query(MarketRow.id, MarketRow.total_volume).filter(
                    MarketRow.id.in_(market_ids)
                )
            }
        self._earnings_alerts = build_earnings_alerts(
            polymarkets,
            events,
            transactions=large,
            wallets=young,
            market_volumes=volumes,
        )

    def _flagged_query(self, db: Session) -> Query:
        return (
            db.query(WalletRow)
            .filter(WalletRow.is_flagged.is_(True), WalletRow.risk_score >= MEDIUM_THRESHOLD)
            .order_by(WalletRow.risk_score.desc(), WalletRow.id)
        )
