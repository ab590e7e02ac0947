"""Fixed demo data for running the dashboard without upstream access."""
import logging
import random
import uuid
from datetime import datetime, timedelta, timezone

from ..core.earnings import build_earnings_alerts
from ..core.pipeline import DataSnapshot, compute_market_stats, wallet_id_for
from ..core.risk_scoring import WalletMetrics, calculate_risk_score, should_flag
from ..earnings.client import EarningsClient
from ..polymarket.schemas import PolymarketMarket
from ..schemas import Market, Transaction, Wallet
from .memory import InMemoryStorage

logger = logging.getLogger(__name__)

DEFAULT_SEED = 1337

MOCK_MARKETS: tuple[tuple[str, str], ...] = (
    ("Will Bitcoin reach $100k by end of 2026?", "Crypto"),
    ("US Presidential Election 2028 - Democratic Nominee", "Politics"),
    ("Super Bowl 2026 Winner", "Sports"),
    ("Will Fed cut rates in Q1 2026?", "Finance"),
    ("Oscar Best Picture 2026", "Entertainment"),
    ("Will GPT-5 be released in 2026?", "Technology"),
    ("Will Tesla stock hit $500 by December?", "Finance"),
    ("NBA Finals 2026 Champion", "Sports"),
    ("Will Congress pass new crypto regulation?", "Politics"),
    ("Ethereum merge to proof of stake successful?", "Crypto"),
)

# (age days, win rate, concentration, timing hours, volume, bets)
MOCK_WALLET_PROFILES: tuple[tuple[int, float, float, int, float, int], ...] = (
    (3, 0.92, 0.85, 18, 125_000, 12),
    (5, 0.88, 0.78, 24, 89_000, 8),
    (2, 0.95, 0.92, 12, 210_000, 6),
    (7, 0.82, 0.65, 36, 67_000, 15),
    (4, 0.90, 0.72, 20, 145_000, 10),
    (10, 0.75, 0.55, 48, 45_000, 20),
    (6, 0.85, 0.68, 28, 98_000, 14),
    (1, 0.97, 0.95, 8, 320_000, 4),
    (8, 0.78, 0.58, 42, 56_000, 18),
    (12, 0.72, 0.48, 56, 38_000, 22),
    (15, 0.68, 0.42, 60, 28_000, 25),
    (9, 0.80, 0.62, 38, 72_000, 16),
    (3, 0.89, 0.82, 22, 115_000, 9),
    (6, 0.84, 0.70, 32, 88_000, 13),
    (4, 0.91, 0.76, 16, 178_000, 7),
    (20, 0.65, 0.35, 72, 22_000, 30),
    (25, 0.62, 0.28, 80, 18_000, 35),
    (11, 0.74, 0.52, 50, 42_000, 19),
    (2, 0.94, 0.88, 14, 195_000, 5),
    (7, 0.81, 0.64, 34, 62_000, 17),
)

# (id, question, last trade price, total volume, 24h volume)
MOCK_EARNINGS_MARKETS: tuple[tuple[str, str, float, float, float], ...] = (
    ("mock-market-1", "Will Apple beat Q1 2026 earnings estimates?", 0.68, 300_000, 28_000),
    ("mock-market-2", "Will Tesla beat Q4 earnings?", 0.78, 450_000, 63_000),
    ("mock-market-3", "Will NVIDIA beat Q1 2026 earnings?", 0.82, 600_000, 36_000),
    ("mock-market-4", "Will Microsoft beat earnings estimates?", 0.72, 240_000, 18_400),
    ("mock-market-5", "Will Alphabet report revenue above estimates?", 0.58, 180_000, 7_200),
    ("mock-market-6", "Will Meta beat quarterly earnings?", 0.55, 150_000, 9_000),
)


def _random_id(rng: random.Random) -> str:
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


def _random_address(rng: random.Random) -> str:
    return "0x" + "".join(rng.choice("0123456789abcdef") for _ in range(40))


def seed_snapshot(rng: random.Random, now: datetime) -> DataSnapshot:
    snapshot = DataSnapshot()

    markets: list[Market] = []
    for name, category in MOCK_MARKETS:
        market_id = _random_id(rng)
        market = Market(
            id=market_id,
            condition_id=market_id,
            name=name,
            category=category,
            resolution_time=now + timedelta(days=rng.randint(10, 99)),
            total_volume=float(rng.randint(50_000, 549_999)),
            is_resolved=False,
        )
        snapshot.markets[market.id] = market
        markets.append(market)

    for age, win_rate, concentration, timing, volume, bets in MOCK_WALLET_PROFILES:
        risk_score = calculate_risk_score(
            WalletMetrics(
                account_age_days=age,
                win_rate=win_rate,
                portfolio_concentration=concentration,
                avg_timing_proximity=timing,
                total_volume=volume,
            )
        )
        address = _random_address(rng)
        wallet = Wallet(
            id=wallet_id_for(address),
            address=address,
            risk_score=risk_score,
            win_rate=win_rate,
            total_bets=bets,
            total_volume=volume,
            current_position_value=float(int(volume * rng.uniform(0.2, 0.6))),
            account_age_days=age,
            portfolio_concentration=concentration,
            avg_timing_proximity=timing,
            is_flagged=should_flag(risk_score),
        )
        snapshot.wallets[wallet.id] = wallet

        for market in rng.sample(markets, rng.randint(3, 8)):
            won = True if rng.random() < win_rate else (False if rng.random() > 0.7 else None)
            tx = Transaction(
                id=_random_id(rng),
                wallet_id=wallet.id,
                market_id=market.id,
                market_title=market.name,
                amount=float(rng.randint(1_000, 20_999)),
                direction="Yes" if rng.random() > 0.5 else "No",
                timestamp=now - timedelta(days=rng.randint(0, 29)),
                hours_before_resolution=timing + rng.randint(-12, 11),
                won=won,
                price_impact=rng.random() * 0.05,
            )
            snapshot.transactions[tx.id] = tx

    stats = compute_market_stats(list(snapshot.transactions.values()), snapshot.wallets)
    for market_id, (count, avg) in stats.items():
        snapshot.markets[market_id] = snapshot.markets[market_id].model_copy(
            update={"suspicious_wallet_count": count, "avg_risk_score": avg}
        )
    return snapshot


def mock_earnings_markets() -> list[PolymarketMarket]:
    return [
        PolymarketMarket(
            id=market_id,
            condition_id=market_id,
            question=question,
            slug=market_id,
            volume=volume,
            volume_24h=volume_24h,
            last_trade_price=price,
        )
        for market_id, question, price, volume, volume_24h in MOCK_EARNINGS_MARKETS
    ]


class MockStorage(InMemoryStorage):
    """Seeded, reproducible demo store. Nothing here ever refreshes."""

    mode = "mock"

    def __init__(self, seed: int = DEFAULT_SEED, now: datetime | None = None):
        now = now or datetime.now(timezone.utc)
        super().__init__(seed_snapshot(random.Random(seed), now))
        calendar = EarningsClient(api_key="", now=lambda: now).mock_calendar()
        self._earnings_alerts = build_earnings_alerts(
            mock_earnings_markets(),
            calendar,
            transactions=self._snapshot.transactions.values(),
            wallets=self._snapshot.wallets,
            now=now,
        )
        logger.info(
            "mock_storage_seeded seed=%s wallets=%s markets=%s transactions=%s earnings_alerts=%s",
            seed,
            len(self._snapshot.wallets),
            len(self._snapshot.markets),
            len(self._snapshot.transactions),
            len(self._earnings_alerts),
        )
