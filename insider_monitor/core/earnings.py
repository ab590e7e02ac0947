"""Match prediction markets to upcoming earnings and score the divergence.

A market matches a company when its question or slug reads like an earnings
bet and names the company (ticker, company name or a common alias). The score
compares the market's implied odds of a beat with the analyst beat
probability, then adds points for young-wallet whale trades, proximity to the
report and 24h volume against the 30-day average.
"""
from __future__ import annotations

import logging
import math
import operator
from datetime import datetime, timezone
from typing import Iterable

from ..polymarket.schemas import PolymarketMarket
from ..schemas import (
    EarningsEvent,
    EarningsInsiderAlert,
    EarningsRiskFactors,
    EarningsStats,
    Transaction,
    Wallet,
)
from .risk_scoring import HIGH_THRESHOLD, MAX_SCORE

logger = logging.getLogger(__name__)

EARNINGS_KEYWORDS: tuple[str, ...] = (
    "earnings",
    "beat",
    "revenue",
    "eps",
    "quarter",
    "quarterly",
    "q1",
    "q2",
    "q3",
    "q4",
    "profit",
    "guidance",
    "fiscal",
    "report",
    "results",
    "income",
    "forecast",
)

COMPANY_ALIASES: dict[str, tuple[str, ...]] = {
    "AAPL": ("apple",),
    "MSFT": ("microsoft",),
    "GOOGL": ("google", "alphabet"),
    "AMZN": ("amazon",),
    "META": ("meta", "facebook"),
    "TSLA": ("tesla",),
    "NVDA": ("nvidia",),
    "NFLX": ("netflix",),
    "JPM": ("jpmorgan", "jp morgan"),
    "AMD": ("amd", "advanced micro"),
    "INTC": ("intel",),
    "QCOM": ("qualcomm",),
    "CRM": ("salesforce",),
    "ADBE": ("adobe",),
    "DIS": ("disney",),
    "BA": ("boeing",),
    "GS": ("goldman",),
    "WMT": ("walmart",),
    "KO": ("coca-cola", "coca cola", "coke"),
    "PEP": ("pepsi", "pepsico"),
}

WHALE_MIN_AMOUNT = 2500.0
WHALE_MAX_ACCOUNT_AGE_DAYS = 14
MAX_DAYS_AHEAD = 30
EARNINGS_MARKETS_LIMIT = 100
DEFAULT_ODDS = 0.5
BASELINE_DAYS = 30

DIVERGENCE_POINTS = ((0.3, 40), (0.2, 30), (0.15, 20), (0.1, 10))
WHALE_POINTS = ((5, 30), (3, 22), (2, 15), (1, 8))
URGENCY_POINTS = ((2, 20), (5, 15), (7, 10), (14, 5))
VOLUME_POINTS = ((5.0, 10), (3.0, 7), (2.0, 4), (1.5, 2))

_SECONDS_PER_DAY = 86400


def _tiered(value: float, tiers, compare=operator.ge) -> int:
    for threshold, points in tiers:
        if compare(value, threshold):
            return points
    return 0


def divergence_score(divergence: float) -> int:
    return _tiered(divergence, DIVERGENCE_POINTS)


def whale_activity_score(whale_count: int) -> int:
    return _tiered(whale_count, WHALE_POINTS)


def timing_urgency_score(days_until: int) -> int:
    return _tiered(days_until, URGENCY_POINTS, compare=operator.le)


def volume_anomaly_score(volume_ratio: float) -> int:
    return _tiered(volume_ratio, VOLUME_POINTS)


def calculate_earnings_insider_score(
    polymarket_odds: float,
    analyst_consensus: float | None,
    days_until: int,
    whale_count: int,
    volume_ratio: float,
) -> tuple[int, EarningsRiskFactors]:
    """Missing consensus contributes no divergence points."""
    divergence = abs(polymarket_odds - analyst_consensus) if analyst_consensus is not None else 0.0
    factors = EarningsRiskFactors(
        divergence_score=divergence_score(divergence),
        whale_activity_score=whale_activity_score(whale_count),
        timing_urgency_score=timing_urgency_score(days_until),
        volume_anomaly_score=volume_anomaly_score(volume_ratio),
    )
    total = (
        factors.divergence_score
        + factors.whale_activity_score
        + factors.timing_urgency_score
        + factors.volume_anomaly_score
    )
    return min(total, MAX_SCORE), factors


def looks_like_earnings_market(question: str, slug: str = "") -> bool:
    text = f"{question} {slug}".lower()
    return any(keyword in text for keyword in EARNINGS_KEYWORDS)


def match_market_to_earnings(
    question: str | None,
    slug: str | None,
    events: Iterable[EarningsEvent],
) -> EarningsEvent | None:
    question_lower = (question or "").lower()
    slug_lower = (slug or "").lower()
    if not looks_like_earnings_market(question_lower, slug_lower):
        return None

    for event in events:
        symbol = event.symbol.lower()
        company = event.company_name.lower()
        if symbol in question_lower or company in question_lower or symbol in slug_lower:
            return event
        aliases = COMPANY_ALIASES.get(event.symbol, ())
        if any(alias in question_lower for alias in aliases):
            return event
    return None


def parse_earnings_date(value: str) -> datetime:
    """Date-only strings are midnight UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_until_earnings(earnings_date: str, now: datetime) -> int:
    delta = (parse_earnings_date(earnings_date) - now).total_seconds()
    return math.ceil(delta / _SECONDS_PER_DAY)


def count_earnings_whales(
    market_id: str,
    transactions: Iterable[Transaction],
    wallets: dict[str, Wallet],
) -> int:
    count = 0
    for tx in transactions:
        if tx.market_id != market_id or tx.amount < WHALE_MIN_AMOUNT:
            continue
        wallet = wallets.get(tx.wallet_id)
        if wallet is not None and wallet.account_age_days < WHALE_MAX_ACCOUNT_AGE_DAYS:
            count += 1
    return count


def volume_ratio(volume_24h: float, total_volume: float) -> float:
    baseline = total_volume / BASELINE_DAYS if total_volume > 0 else 0.0
    if baseline <= 0:
        return 1.0
    return volume_24h / baseline


def build_earnings_alerts(
    polymarkets: Iterable[PolymarketMarket],
    events: list[EarningsEvent],
    transactions: Iterable[Transaction] = (),
    wallets: dict[str, Wallet] | None = None,
    market_volumes: dict[str, float] | None = None,
    now: datetime | None = None,
) -> list[EarningsInsiderAlert]:
    """One alert per (company, market) match, highest score first.

    ``market_volumes`` holds the tracked total volume per market id; markets
    missing from it use the upstream listing volume as the 30-day baseline.
    """
    now = now or datetime.now(timezone.utc)
    wallets = wallets or {}
    market_volumes = market_volumes or {}
    tx_list = list(transactions)
    alerts: list[EarningsInsiderAlert] = []

    for pm in polymarkets:
        event = match_market_to_earnings(pm.question, pm.slug, events)
        if event is None:
            continue
        try:
            days_until = days_until_earnings(event.earnings_date, now)
        except ValueError:
            logger.warning("earnings_date_invalid symbol=%s value=%s", event.symbol, event.earnings_date)
            continue
        if days_until < 0 or days_until > MAX_DAYS_AHEAD:
            continue

        market_id = pm.condition_id or pm.id
        odds = pm.last_trade_price or DEFAULT_ODDS
        whales = count_earnings_whales(market_id, tx_list, wallets)
        ratio = volume_ratio(pm.volume_24h, market_volumes.get(market_id) or pm.volume)
        score, factors = calculate_earnings_insider_score(
            odds, event.beat_probability, days_until, whales, ratio
        )
        divergence = abs(odds - event.beat_probability) if event.beat_probability is not None else 0.0
        alerts.append(
            EarningsInsiderAlert(
                id=f"{event.symbol}-{market_id}",
                symbol=event.symbol,
                company_name=event.company_name,
                earnings_date=event.earnings_date,
                days_until_earnings=days_until,
                insider_risk_score=score,
                polymarket_odds=odds,
                analyst_consensus=event.beat_probability,
                divergence=divergence,
                suspicious_whale_count=whales,
                volume_ratio=ratio,
                matched_market_id=market_id,
                matched_market_question=pm.question or pm.slug,
                risk_factors=factors,
            )
        )

    alerts.sort(key=lambda alert: alert.insider_risk_score, reverse=True)
    logger.info("earnings_alerts_built events=%s alerts=%s", len(events), len(alerts))
    return alerts


def earnings_stats(alerts: list[EarningsInsiderAlert]) -> EarningsStats:
    avg_divergence = sum(a.divergence for a in alerts) / len(alerts) if alerts else 0.0
    return EarningsStats(
        total_earnings_tracked=len(alerts),
        matched_markets_count=sum(1 for a in alerts if a.matched_market_id),
        high_risk_alerts_count=sum(1 for a in alerts if a.insider_risk_score >= HIGH_THRESHOLD),
        avg_divergence=avg_divergence,
    )
