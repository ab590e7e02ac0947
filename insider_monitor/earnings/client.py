import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from ..cache import TtlCache
from ..http_logging import UpstreamTimer, log_upstream_response
from ..schemas import EarningsEvent, EarningsTime
from ..settings import settings

logger = logging.getLogger(__name__)

SOURCE = "fmp"

DEFAULT_BEAT_PROBABILITY = 0.75

COMPANY_NAMES: dict[str, str] = {
    "AAPL": "Apple Inc.",
    "MSFT": "Microsoft Corporation",
    "GOOGL": "Alphabet Inc.",
    "AMZN": "Amazon.com Inc.",
    "NVDA": "NVIDIA Corporation",
    "META": "Meta Platforms Inc.",
    "TSLA": "Tesla Inc.",
    "BRK.B": "Berkshire Hathaway Inc.",
    "UNH": "UnitedHealth Group Inc.",
    "JNJ": "Johnson & Johnson",
    "V": "Visa Inc.",
    "XOM": "Exxon Mobil Corporation",
    "JPM": "JPMorgan Chase & Co.",
    "PG": "Procter & Gamble Co.",
    "MA": "Mastercard Inc.",
    "HD": "Home Depot Inc.",
    "CVX": "Chevron Corporation",
    "MRK": "Merck & Co. Inc.",
    "ABBV": "AbbVie Inc.",
    "PEP": "PepsiCo Inc.",
    "KO": "Coca-Cola Co.",
    "COST": "Costco Wholesale Corp.",
    "AVGO": "Broadcom Inc.",
    "LLY": "Eli Lilly and Co.",
    "WMT": "Walmart Inc.",
    "MCD": "McDonald's Corp.",
    "CSCO": "Cisco Systems Inc.",
    "ACN": "Accenture plc",
    "DHR": "Danaher Corporation",
    "ABT": "Abbott Laboratories",
    "NEE": "NextEra Energy Inc.",
    "VZ": "Verizon Communications Inc.",
    "ADBE": "Adobe Inc.",
    "CRM": "Salesforce Inc.",
    "TXN": "Texas Instruments Inc.",
    "CMCSA": "Comcast Corporation",
    "PM": "Philip Morris International",
    "NKE": "Nike Inc.",
    "TMO": "Thermo Fisher Scientific",
    "NFLX": "Netflix Inc.",
    "AMD": "Advanced Micro Devices",
    "INTC": "Intel Corporation",
    "QCOM": "Qualcomm Inc.",
    "HON": "Honeywell International",
    "UPS": "United Parcel Service",
    "BA": "Boeing Co.",
    "CAT": "Caterpillar Inc.",
    "GS": "Goldman Sachs Group",
    "LOW": "Lowe's Companies Inc.",
    "SBUX": "Starbucks Corporation",
}

# Used when the constituent list cannot be fetched.
FALLBACK_SP500_SYMBOLS: list[str] = list(COMPANY_NAMES)

# (symbol, days ahead, time, eps estimate, beat probability, revenue estimate)
_MOCK_CALENDAR: tuple[tuple[str, int, EarningsTime, float, float, float], ...] = (
    ("AAPL", 5, "amc", 2.35, 0.72, 94_500_000_000),
    ("MSFT", 3, "amc", 3.12, 0.78, 62_000_000_000),
    ("GOOGL", 7, "amc", 1.85, 0.68, 85_000_000_000),
    ("AMZN", 10, "amc", 1.15, 0.65, 155_000_000_000),
    ("NVDA", 12, "amc", 5.65, 0.82, 28_000_000_000),
    ("META", 8, "amc", 5.25, 0.70, 40_000_000_000),
    ("TSLA", 2, "amc", 0.75, 0.55, 25_000_000_000),
    ("NFLX", 15, "amc", 4.50, 0.62, 9_500_000_000),
    ("JPM", 6, "bmo", 4.15, 0.80, 42_000_000_000),
    ("AMD", 20, "amc", 0.92, 0.58, 6_500_000_000),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EarningsClient:
    """Financial Modeling Prep earnings calendar.

    Without an API key every call returns a fixed mock calendar dated relative
    to today. With a key, failures fall back to the last cached calendar and
    then to the mock one; this client never raises to its caller.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        cache_ttl_seconds: float | None = None,
        daily_request_limit: int | None = None,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utc_now,
    ):
        self.api_key = settings.FMP_API_KEY if api_key is None else api_key
        self.base_url = (base_url or settings.FMP_BASE_URL).rstrip("/")
        self.daily_request_limit = (
            settings.FMP_DAILY_REQUEST_LIMIT if daily_request_limit is None else daily_request_limit
        )
        self.timeout = timeout if timeout is not None else settings.POLY_HTTP_TIMEOUT_SECONDS
        ttl = cache_ttl_seconds if cache_ttl_seconds is not None else settings.EARNINGS_CACHE_TTL_SECONDS
        self._cache = TtlCache(ttl, clock=clock)
        self._now = now
        self.requests_today = 0
        self._request_date: date | None = None
        if not self.api_key:
            logger.warning("earnings_api_key_missing mode=mock")

    async def get_earnings_calendar(self, days_ahead: int = 30) -> list[EarningsEvent]:
        if not self.api_key:
            logger.debug("earnings_calendar_mock reason=no_api_key")
            return self.mock_calendar()

        cached = self._cache.get("calendar")
        if cached is not None and cached.is_fresh:
            return cached.value
        fallback = cached.value if cached is not None else self.mock_calendar()

        if not self._can_make_request():
            logger.warning("earnings_daily_limit_reached limit=%s", self.daily_request_limit)
            return fallback

        today = self._now().date()
        params = {
            "from": today.isoformat(),
            "to": (today + timedelta(days=days_ahead)).isoformat(),
            "apikey": self.api_key,
        }
        try:
            r = await self._get(f"{self.base_url}/earning_calendar", params)
            if r.status_code == 403:
                logger.warning("earnings_api_forbidden status=403 serving=fallback")
                return fallback
            r.raise_for_status()
            self.requests_today += 1
            payload = r.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("earnings_calendar_fetch_failed")
            return fallback

        if not isinstance(payload, list):
            logger.warning("earnings_calendar_unexpected_payload type=%s", type(payload).__name__)
            return fallback

        sp500 = set(await self.get_sp500_symbols())
        events = [
            _event_from_fmp(item)
            for item in payload
            if isinstance(item, dict) and item.get("symbol") in sp500 and item.get("date")
        ]
        self._cache.set("calendar", events)
        logger.info("earnings_calendar_fetched events=%s from=%s to=%s", len(events), params["from"], params["to"])
        return events

    async def get_sp500_symbols(self) -> list[str]:
        cached = self._cache.get("sp500")
        if cached is not None and cached.is_fresh:
            return cached.value

        if not self.api_key or not self._can_make_request():
            self._cache.set("sp500", FALLBACK_SP500_SYMBOLS)
            return FALLBACK_SP500_SYMBOLS

        try:
            r = await self._get(f"{self.base_url}/sp500_constituent", {"apikey": self.api_key})
            r.raise_for_status()
            self.requests_today += 1
            payload = r.json()
            symbols = [str(row["symbol"]) for row in payload if isinstance(row, dict) and row.get("symbol")]
        except (httpx.HTTPError, ValueError, TypeError):
            logger.exception("earnings_sp500_fetch_failed")
            symbols = []

        if not symbols:
            symbols = FALLBACK_SP500_SYMBOLS
        self._cache.set("sp500", symbols)
        return symbols

    def mock_calendar(self) -> list[EarningsEvent]:
        today = self._now().date()
        return [
            EarningsEvent(
                symbol=symbol,
                company_name=COMPANY_NAMES.get(symbol, symbol),
                earnings_date=(today + timedelta(days=days)).isoformat(),
                earnings_time=earnings_time,
                estimated_eps=eps,
                actual_eps=None,
                beat_probability=beat,
                revenue=revenue,
            )
            for symbol, days, earnings_time, eps, beat, revenue in _MOCK_CALENDAR
        ]

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("earnings_cache_cleared")

    def _can_make_request(self) -> bool:
        today = self._now().date()
        if today != self._request_date:
            self.requests_today = 0
            self._request_date = today
        return self.requests_today < self.daily_request_limit

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, headers={"Accept": "application/json"}) as client:
            timer = UpstreamTimer()
            r = await client.get(url, params=params)
            log_upstream_response(SOURCE, r, timer.elapsed())
            return r


def parse_earnings_time(value: Any) -> EarningsTime:
    lower = str(value or "").lower()
    if "bmo" in lower or "before" in lower:
        return "bmo"
    if "amc" in lower or "after" in lower:
        return "amc"
    return "unknown"


def estimate_beat_probability(item: dict) -> float | None:
    # Flat historical S&P 500 beat rate until per-company history is wired in.
    return DEFAULT_BEAT_PROBABILITY


def _optional_float(value) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _event_from_fmp(item: dict) -> EarningsEvent:
    symbol = str(item["symbol"])
    return EarningsEvent(
        symbol=symbol,
        company_name=COMPANY_NAMES.get(symbol, symbol),
        earnings_date=str(item["date"]),
        earnings_time=parse_earnings_time(item.get("time")),
        estimated_eps=_optional_float(item.get("epsEstimated")),
        actual_eps=_optional_float(item.get("eps")),
        beat_probability=estimate_beat_probability(item),
        revenue=_optional_float(item.get("revenueEstimated")),
    )
