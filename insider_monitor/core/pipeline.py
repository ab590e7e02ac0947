"""Turn raw upstream markets and trades into scored dashboard records.

``build_snapshot`` is the whole refresh computation: it does no I/O, so the
in-memory store swaps its result in as one batch and the relational store
persists it row by row.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..polymarket.schemas import PolymarketMarket, PolymarketTrade
from ..schemas import Market, Transaction, Wallet
from .categories import categorize_market
from .risk_scoring import HIGH_THRESHOLD, WalletMetrics, calculate_risk_score, should_flag
from .wallet_analysis import analyze_wallet_trades, estimate_account_age_days, trade_volume

logger = logging.getLogger(__name__)

TRACKING_MIN_RISK_SCORE = 20
TRACKING_MIN_VOLUME = 1000.0

_WALLET_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "insider-monitor/wallet")
_TRANSACTION_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "insider-monitor/transaction")


@dataclass
class DataSnapshot:
    markets: dict[str, Market] = field(default_factory=dict)
    wallets: dict[str, Wallet] = field(default_factory=dict)
    transactions: dict[str, Transaction] = field(default_factory=dict)


def wallet_id_for(address: str) -> str:
    return str(uuid.uuid5(_WALLET_NAMESPACE, address.lower()))


def market_from_polymarket(pm: PolymarketMarket) -> Market:
    condition_id = pm.condition_id or pm.id
    return Market(
        id=condition_id,
        condition_id=condition_id,
        name=pm.question or pm.slug,
        category=categorize_market(pm.question, pm.tags),
        resolution_time=pm.end_date,
        suspicious_wallet_count=0,
        avg_risk_score=0.0,
        total_volume=pm.volume,
        is_resolved=pm.closed,
    )


def group_trades_by_wallet(trades: list[PolymarketTrade]) -> dict[str, list[PolymarketTrade]]:
    grouped: dict[str, list[PolymarketTrade]] = {}
    for trade in trades:
        if not trade.proxy_wallet:
            continue
        grouped.setdefault(trade.proxy_wallet, []).append(trade)
    return grouped


def score_wallet(address: str, trades: list[PolymarketTrade], now: float) -> Wallet:
    analysis = analyze_wallet_trades(trades, now=now)
    account_age_days = estimate_account_age_days(trades, now=now)
    timing = round(analysis.avg_timing_hours)
    risk_score = calculate_risk_score(
        WalletMetrics(
            account_age_days=account_age_days,
            win_rate=analysis.win_rate,
            portfolio_concentration=analysis.market_concentration,
            avg_timing_proximity=timing,
            total_volume=analysis.total_volume,
        )
    )
    return Wallet(
        id=wallet_id_for(address),
        address=address,
        risk_score=risk_score,
        win_rate=analysis.win_rate,
        total_bets=analysis.total_bets,
        total_volume=analysis.total_volume,
        current_position_value=0.0,
        account_age_days=account_age_days,
        portfolio_concentration=analysis.market_concentration,
        avg_timing_proximity=timing,
        is_flagged=should_flag(risk_score),
        notes=None,
    )


def is_tracked(wallet: Wallet) -> bool:
    return wallet.risk_score >= TRACKING_MIN_RISK_SCORE or wallet.total_volume > TRACKING_MIN_VOLUME


def transaction_from_trade(trade: PolymarketTrade, wallet: Wallet, index: int) -> Transaction:
    seed = f"{trade.transaction_hash or trade.proxy_wallet}:{trade.asset}:{trade.timestamp}:{index}"
    return Transaction(
        id=str(uuid.uuid5(_TRANSACTION_NAMESPACE, seed)),
        wallet_id=wallet.id,
        market_id=trade.condition_id,
        market_title=trade.title or None,
        amount=trade_volume(trade),
        direction=trade.outcome or ("Yes" if trade.side == "BUY" else "No"),
        timestamp=datetime.fromtimestamp(trade.timestamp, tz=timezone.utc),
        hours_before_resolution=wallet.avg_timing_proximity,
        won=None,
        price_impact=abs(trade.price - 0.5) * 0.1,
    )


def compute_market_stats(
    transactions: list[Transaction],
    wallets: dict[str, Wallet],
) -> dict[str, tuple[int, float]]:
    """Per market: (count of HIGH-risk wallets that traded it, their mean score)."""
    wallet_ids_by_market: dict[str, set[str]] = {}
    for tx in transactions:
        wallet_ids_by_market.setdefault(tx.market_id, set()).add(tx.wallet_id)

    stats: dict[str, tuple[int, float]] = {}
    for market_id, wallet_ids in wallet_ids_by_market.items():
        scores = [
            wallets[wid].risk_score
            for wid in wallet_ids
            if wid in wallets and wallets[wid].risk_score >= HIGH_THRESHOLD
        ]
        avg = sum(scores) / len(scores) if scores else 0.0
        stats[market_id] = (len(scores), avg)
    return stats


def build_snapshot(
    polymarkets: list[PolymarketMarket],
    trades: list[PolymarketTrade],
    now: float | None = None,
) -> DataSnapshot:
    now_ts = time.time() if now is None else now
    snapshot = DataSnapshot()

    for pm in polymarkets:
        market = market_from_polymarket(pm)
        snapshot.markets[market.id] = market

    grouped = group_trades_by_wallet(trades)
    logger.info("wallet_analysis_started wallets=%s trades=%s", len(grouped), len(trades))

    for address, wallet_trades in grouped.items():
        wallet = score_wallet(address, wallet_trades, now_ts)
        if not is_tracked(wallet):
            continue
        snapshot.wallets[wallet.id] = wallet
        for index, trade in enumerate(wallet_trades):
            tx = transaction_from_trade(trade, wallet, index)
            snapshot.transactions[tx.id] = tx

    stats = compute_market_stats(list(snapshot.transactions.values()), snapshot.wallets)
    for market_id, (count, avg) in stats.items():
        market = snapshot.markets.get(market_id)
        if market is None:
            continue
        snapshot.markets[market_id] = market.model_copy(
            update={"suspicious_wallet_count": count, "avg_risk_score": avg}
        )

    logger.info(
        "wallet_analysis_completed tracked_wallets=%s transactions=%s markets=%s",
        len(snapshot.wallets),
        len(snapshot.transactions),
        len(snapshot.markets),
    )
    return snapshot
