"""Wallet risk scoring.

Five independent factors, each worth 0-20 points. Each factor walks its
threshold table in order and takes the points of the first threshold that
matches; no match scores 0. The total is clamped to 100.
"""
from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Callable

from ..schemas import RiskFactors, RiskLevel

LOW_THRESHOLD = 0
MEDIUM_THRESHOLD = 40
HIGH_THRESHOLD = 60
CRITICAL_THRESHOLD = 80

MAX_SCORE = 100
FACTOR_MAX_POINTS = 20

ACCOUNT_AGE_THRESHOLDS: tuple[tuple[float, int], ...] = ((7, 20), (14, 15), (30, 8))
WIN_RATE_THRESHOLDS: tuple[tuple[float, int], ...] = ((0.85, 20), (0.70, 15), (0.60, 8))
CONCENTRATION_THRESHOLDS: tuple[tuple[float, int], ...] = ((0.80, 20), (0.60, 15), (0.40, 8))
TIMING_THRESHOLDS: tuple[tuple[float, int], ...] = ((24, 20), (48, 15), (72, 8))
POSITION_SIZE_THRESHOLDS: tuple[tuple[float, int], ...] = ((10000, 20), (2500, 15), (500, 8))


@dataclass(frozen=True)
class WalletMetrics:
    account_age_days: float = 30
    win_rate: float = 0.5
    portfolio_concentration: float = 0.3
    avg_timing_proximity: float = 72
    total_volume: float = 0.0


def _first_match(
    value: float,
    thresholds: tuple[tuple[float, int], ...],
    matches: Callable[[float, float], bool],
) -> int:
    for threshold, points in thresholds:
        if matches(value, threshold):
            return points
    return 0


def account_age_score(age_days: float) -> int:
    return _first_match(age_days, ACCOUNT_AGE_THRESHOLDS, operator.lt)


def win_rate_score(win_rate: float) -> int:
    return _first_match(win_rate, WIN_RATE_THRESHOLDS, operator.gt)


def concentration_score(concentration: float) -> int:
    return _first_match(concentration, CONCENTRATION_THRESHOLDS, operator.gt)


def timing_score(avg_hours: float) -> int:
    return _first_match(avg_hours, TIMING_THRESHOLDS, operator.lt)


def position_size_score(volume: float) -> int:
    return _first_match(volume, POSITION_SIZE_THRESHOLDS, operator.ge)


def calculate_risk_score(metrics: WalletMetrics) -> int:
    score = (
        account_age_score(metrics.account_age_days)
        + win_rate_score(metrics.win_rate)
        + concentration_score(metrics.portfolio_concentration)
        + timing_score(metrics.avg_timing_proximity)
        + position_size_score(metrics.total_volume)
    )
    return max(0, min(MAX_SCORE, score))


def calculate_risk_factors(wallet) -> RiskFactors:
    """Per-factor breakdown for anything shaped like a wallet record."""
    return RiskFactors(
        account_age=account_age_score(wallet.account_age_days),
        win_rate=win_rate_score(wallet.win_rate),
        portfolio_concentration=concentration_score(wallet.portfolio_concentration),
        timing_proximity=timing_score(wallet.avg_timing_proximity),
        position_size=position_size_score(wallet.total_volume),
    )


def risk_level(score: int) -> RiskLevel:
    if score >= CRITICAL_THRESHOLD:
        return "critical"
    if score >= HIGH_THRESHOLD:
        return "high"
    if score >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def should_flag(score: int) -> bool:
    return score >= MEDIUM_THRESHOLD
