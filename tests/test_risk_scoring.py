import pytest

from insider_monitor.core.risk_scoring import (
    WalletMetrics,
    account_age_score,
    calculate_risk_factors,
    calculate_risk_score,
    concentration_score,
    position_size_score,
    risk_level,
    should_flag,
    timing_score,
    win_rate_score,
)
from insider_monitor.schemas import Wallet


def _metrics(**overrides) -> WalletMetrics:
    data = dict(
        account_age_days=365,
        win_rate=0.5,
        portfolio_concentration=0.3,
        avg_timing_proximity=168,
        total_volume=100.0,
    )
    data.update(overrides)
    return WalletMetrics(**data)


def test_insider_profile_scores_critical():
    metrics = WalletMetrics(
        account_age_days=1,
        win_rate=0.97,
        portfolio_concentration=0.95,
        avg_timing_proximity=8,
        total_volume=320000,
    )
    score = calculate_risk_score(metrics)
    assert score == 100
    assert should_flag(score)
    assert risk_level(score) == "critical"


def test_ordinary_profile_scores_zero():
    score = calculate_risk_score(_metrics())
    assert score == 0
    assert not should_flag(score)
    assert risk_level(score) == "low"


def test_score_is_deterministic():
    metrics = _metrics(account_age_days=9, win_rate=0.72, total_volume=2600)
    assert {calculate_risk_score(metrics) for _ in range(5)} == {calculate_risk_score(metrics)}


@pytest.mark.parametrize(
    "age,expected",
    [(0, 20), (6, 20), (7, 15), (13, 15), (14, 8), (29, 8), (30, 0), (365, 0)],
)
def test_account_age_boundaries(age, expected):
    assert account_age_score(age) == expected


@pytest.mark.parametrize(
    "win_rate,expected",
    [(0.86, 20), (0.85, 15), (0.71, 15), (0.70, 8), (0.61, 8), (0.60, 0), (0.0, 0)],
)
def test_win_rate_boundaries(win_rate, expected):
    assert win_rate_score(win_rate) == expected


@pytest.mark.parametrize(
    "concentration,expected",
    [(0.81, 20), (0.80, 15), (0.61, 15), (0.60, 8), (0.41, 8), (0.40, 0)],
)
def test_concentration_boundaries(concentration, expected):
    assert concentration_score(concentration) == expected


@pytest.mark.parametrize(
    "hours,expected",
    [(0, 20), (23, 20), (24, 15), (47, 15), (48, 8), (71, 8), (72, 0), (168, 0)],
)
def test_timing_boundaries(hours, expected):
    assert timing_score(hours) == expected


@pytest.mark.parametrize(
    "volume,expected",
    [(10000, 20), (9999.99, 15), (2500, 15), (2499, 8), (500, 8), (499.99, 0), (0, 0)],
)
def test_position_size_boundaries(volume, expected):
    assert position_size_score(volume) == expected


def test_sub_scores_are_monotonic():
    ages = [365, 30, 29, 14, 13, 7, 6, 1]
    assert [account_age_score(a) for a in ages] == sorted(account_age_score(a) for a in ages)

    rates = [0.0, 0.6, 0.61, 0.7, 0.71, 0.85, 0.86, 1.0]
    assert [win_rate_score(r) for r in rates] == sorted(win_rate_score(r) for r in rates)

    concentrations = [0.0, 0.4, 0.41, 0.6, 0.61, 0.8, 0.81, 1.0]
    scores = [concentration_score(c) for c in concentrations]
    assert scores == sorted(scores)

    hours = [168, 72, 71, 48, 47, 24, 23, 0]
    assert [timing_score(h) for h in hours] == sorted(timing_score(h) for h in hours)

    volumes = [0, 499, 500, 2499, 2500, 9999, 10000, 1_000_000]
    assert [position_size_score(v) for v in volumes] == sorted(position_size_score(v) for v in volumes)


def test_score_stays_bounded_over_grid():
    for age in (0, 6, 13, 29, 400):
        for rate in (0.0, 0.65, 0.75, 0.99):
            for concentration in (0.0, 0.5, 0.7, 1.0):
                for hours in (0, 30, 60, 168):
                    for volume in (0, 600, 3000, 50_000):
                        score = calculate_risk_score(
                            WalletMetrics(age, rate, concentration, hours, volume)
                        )
                        assert 0 <= score <= 100


@pytest.mark.parametrize("score", range(0, 101))
def test_flag_matches_medium_threshold(score):
    assert should_flag(score) is (score >= 40)


@pytest.mark.parametrize(
    "score,level",
    [(0, "low"), (39, "low"), (40, "medium"), (59, "medium"), (60, "high"), (79, "high"), (80, "critical")],
)
def test_risk_levels(score, level):
    assert risk_level(score) == level


def test_risk_factors_sum_to_wallet_score():
    wallet = Wallet(
        id="w1",
        address="0xabc",
        account_age_days=10,
        win_rate=0.9,
        portfolio_concentration=0.5,
        avg_timing_proximity=30,
        total_volume=3000,
    )
    factors = calculate_risk_factors(wallet)
    assert factors.account_age == 15
    assert factors.win_rate == 20
    assert factors.portfolio_concentration == 8
    assert factors.timing_proximity == 15
    assert factors.position_size == 15
    total = (
        factors.account_age
        + factors.win_rate
        + factors.portfolio_concentration
        + factors.timing_proximity
        + factors.position_size
    )
    assert total == calculate_risk_score(
        WalletMetrics(10, 0.9, 0.5, 30, 3000)
    )
