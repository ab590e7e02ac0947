"""Per-wallet trade aggregation.

All outputs are heuristics over the recent-trades window, not ground truth:

* win rate counts "bought low / sold high" trades (a SELL above 0.5 or a BUY
  below 0.5) because resolution outcomes are not available;
* ``avg_timing_hours`` is the mean trade *age* at analysis time capped at one
  week. It stands in for "hours before resolution", which would need market
  end dates, and the risk scorer consumes it under that name;
* account age only sees the earliest trade inside the fetched window.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass, field

from ..polymarket.schemas import PolymarketTrade

MAX_TIMING_HOURS = 168.0
DEFAULT_TIMING_HOURS = 72.0
SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class WalletAnalysis:
    win_rate: float = 0.0
    total_bets: int = 0
    total_volume: float = 0.0
    market_concentration: float = 0.0
    avg_timing_hours: float = DEFAULT_TIMING_HOURS
    unique_markets: frozenset[str] = field(default_factory=frozenset)


def trade_volume(trade: PolymarketTrade) -> float:
    return trade.size * trade.price


def is_heuristic_win(trade: PolymarketTrade) -> bool:
    if trade.side == "SELL" and trade.price > 0.5:
        return True
    if trade.side == "BUY" and trade.price < 0.5:
        return True
    return False


def analyze_wallet_trades(trades: list[PolymarketTrade], now: float | None = None) -> WalletAnalysis:
    if not trades:
        return WalletAnalysis()

    now_ts = time.time() if now is None else now
    market_volumes: dict[str, float] = {}
    total_volume = 0.0
    wins = 0
    total_age_seconds = 0.0

    for trade in trades:
        volume = trade_volume(trade)
        total_volume += volume
        market_volumes[trade.condition_id] = market_volumes.get(trade.condition_id, 0.0) + volume
        if is_heuristic_win(trade):
            wins += 1
        total_age_seconds += now_ts - trade.timestamp

    max_market_volume = max(market_volumes.values())
    concentration = max_market_volume / total_volume if total_volume > 0 else 0.0
    avg_age_hours = total_age_seconds / len(trades) / 3600

    return WalletAnalysis(
        win_rate=wins / len(trades),
        total_bets=len(trades),
        total_volume=total_volume,
        market_concentration=concentration,
        avg_timing_hours=min(MAX_TIMING_HOURS, avg_age_hours),
        unique_markets=frozenset(market_volumes),
    )


def estimate_account_age_days(trades: list[PolymarketTrade], now: float | None = None) -> int:
    """Days since the earliest observed trade, never below 1."""
    if not trades:
        return 1
    now_ts = time.time() if now is None else now
    oldest = min(trade.timestamp for trade in trades)
    return max(1, math.floor((now_ts - oldest) / SECONDS_PER_DAY))
