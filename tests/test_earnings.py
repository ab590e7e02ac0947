from datetime import datetime, timezone

import pytest

from insider_monitor.core.earnings import (
    build_earnings_alerts,
    calculate_earnings_insider_score,
    count_earnings_whales,
    days_until_earnings,
    divergence_score,
    earnings_stats,
    match_market_to_earnings,
    timing_urgency_score,
    volume_anomaly_score,
    volume_ratio,
    whale_activity_score,
)
from insider_monitor.polymarket.schemas import PolymarketMarket
from insider_monitor.schemas import EarningsEvent, Transaction, Wallet

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _event(symbol="AAPL", name="Apple Inc.", date="2026-10-22", beat=0.75):
    return EarningsEvent(symbol=symbol, company_name=name, earnings_date=date, beat_probability=beat)


def _market(condition_id, question, **overrides):
    data = dict(id=f"id-{condition_id}", condition_id=condition_id, question=question)
    data.update(overrides)
    return PolymarketMarket(**data)


def _tx(wallet_id, market_id, amount):
    return Transaction(
        id=f"{wallet_id}-{market_id}-{amount}",
        wallet_id=wallet_id,
        market_id=market_id,
        amount=amount,
        direction="Yes",
        timestamp=NOW,
    )


def test_matcher_requires_an_earnings_keyword():
    events = [_event()]
    assert match_market_to_earnings("Will Apple release a foldable phone?", "", events) is None
    assert match_market_to_earnings("Will Apple beat Q4 earnings?", "", events) == events[0]


def test_matcher_accepts_ticker_alias_and_slug():
    events = [_event("GOOGL", "Alphabet Inc."), _event("META", "Meta Platforms Inc.")]
    assert match_market_to_earnings("Will Google revenue top $90B?", "", events).symbol == "GOOGL"
    assert match_market_to_earnings("Facebook parent quarterly profit up?", "", events).symbol == "META"
    assert match_market_to_earnings("Big tech results", "googl-earnings-beat", events).symbol == "GOOGL"
    assert match_market_to_earnings(None, None, events) is None


@pytest.mark.parametrize(
    ("divergence", "points"),
    [(0.35, 40), (0.3, 40), (0.25, 30), (0.15, 20), (0.1, 10), (0.09, 0)],
)
def test_divergence_tiers(divergence, points):
    assert divergence_score(divergence) == points


def test_whale_urgency_and_volume_tiers():
    assert [whale_activity_score(n) for n in (0, 1, 2, 3, 5, 9)] == [0, 8, 15, 22, 30, 30]
    assert [timing_urgency_score(d) for d in (0, 2, 3, 5, 7, 14, 15)] == [20, 20, 15, 15, 10, 5, 0]
    assert [volume_anomaly_score(r) for r in (1.0, 1.5, 2.0, 3.0, 5.0)] == [0, 2, 4, 7, 10]


def test_insider_score_sums_factors_and_ignores_missing_consensus():
    score, factors = calculate_earnings_insider_score(0.25, 0.75, 1, 5, 6.0)
    assert score == 100
    assert factors.divergence_score == 40

    score, factors = calculate_earnings_insider_score(0.25, None, 10, 0, 1.0)
    assert factors.divergence_score == 0
    assert score == 5


def test_days_until_rounds_up_partial_days():
    assert days_until_earnings("2026-10-22", NOW) == 3
    assert days_until_earnings("2026-10-19T12:00:00+00:00", NOW) == 0
    assert days_until_earnings("2026-10-18", NOW) == -1


def test_whales_are_large_trades_from_young_wallets():
    wallets = {
        "young": Wallet(id="young", address="a", account_age_days=3),
        "old": Wallet(id="old", address="b", account_age_days=90),
    }
    txs = [
        _tx("young", "m1", 5000),
        _tx("young", "m1", 100),
        _tx("old", "m1", 5000),
        _tx("young", "m2", 5000),
        _tx("unknown", "m1", 5000),
    ]
    assert count_earnings_whales("m1", txs, wallets) == 1


def test_volume_ratio_against_thirty_day_average():
    assert volume_ratio(3000, 30_000) == 3.0
    assert volume_ratio(500, 0) == 1.0


def test_build_alerts_scores_matches_in_window():
    events = [
        _event("AAPL", "Apple Inc.", "2026-10-21", beat=0.75),
        _event("TSLA", "Tesla Inc.", "2026-12-30", beat=0.55),
    ]
    markets = [
        _market("m1", "Will Apple beat earnings?", last_trade_price=0.3, volume=30_000, volume_24h=5000),
        _market("m2", "Will Tesla beat Q4 earnings?", last_trade_price=0.5),
        _market("m3", "Will it snow in Miami?"),
    ]
    wallets = {"w": Wallet(id="w", address="0x", account_age_days=2)}
    alerts = build_earnings_alerts(markets, events, [_tx("w", "m1", 3000)], wallets, now=NOW)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id == "AAPL-m1"
    assert alert.days_until_earnings == 2
    assert alert.divergence == pytest.approx(0.45)
    assert alert.suspicious_whale_count == 1
    assert alert.volume_ratio == pytest.approx(5.0)
    assert alert.risk_factors.model_dump() == {
        "divergence_score": 40,
        "whale_activity_score": 8,
        "timing_urgency_score": 20,
        "volume_anomaly_score": 10,
    }
    assert alert.insider_risk_score == 78
    assert alert.matched_market_question == "Will Apple beat earnings?"


def test_alerts_sorted_by_score_and_default_odds():
    events = [_event("AAPL", "Apple Inc.", "2026-10-29"), _event("MSFT", "Microsoft Corporation", "2026-10-20")]
    markets = [
        _market("a", "Apple earnings beat?", last_trade_price=0.0),
        _market("b", "Microsoft earnings beat?", last_trade_price=0.2),
    ]
    alerts = build_earnings_alerts(markets, events, now=NOW)

    assert [a.symbol for a in alerts] == ["MSFT", "AAPL"]
    assert alerts[1].polymarket_odds == 0.5


def test_earnings_stats():
    events = [_event("AAPL", "Apple Inc.", "2026-10-20", beat=0.9)]
    alerts = build_earnings_alerts(
        [_market("a", "Apple earnings beat?", last_trade_price=0.4)], events, now=NOW
    )
    stats = earnings_stats(alerts)
    assert stats.total_earnings_tracked == 1
    assert stats.matched_markets_count == 1
    assert stats.high_risk_alerts_count == 1
    assert stats.avg_divergence == pytest.approx(0.5)

    empty = earnings_stats([])
    assert empty.total_earnings_tracked == 0
    assert empty.avg_divergence == 0.0
