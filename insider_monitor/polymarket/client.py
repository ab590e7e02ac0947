import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Hashable

import httpx

from .schemas import PolymarketMarket, PolymarketPosition, PolymarketTrade
from ..cache import TtlCache
from ..http_logging import UpstreamTimer, log_upstream_response
from ..settings import settings

logger = logging.getLogger(__name__)

SOURCE = "polymarket"

_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "InsiderMonitor/1.0",
}


class PolymarketClient:
    """Read-only client for the Gamma (markets) and Data (trades, positions) APIs.

    Every call shape has its own cache entry. A fresh entry is served without a
    network call; on an upstream failure the last cached value is served even
    when stale, otherwise the error propagates. There is no retry.
    """

    def __init__(
        self,
        gamma_url: str | None = None,
        data_url: str | None = None,
        cache_ttl_seconds: float | None = None,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gamma_url = (gamma_url or settings.POLYMARKET_GAMMA_URL).rstrip("/")
        self.data_url = (data_url or settings.POLYMARKET_DATA_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.POLY_HTTP_TIMEOUT_SECONDS
        ttl = cache_ttl_seconds if cache_ttl_seconds is not None else settings.POLY_CACHE_TTL_SECONDS
        self._cache = TtlCache(ttl, clock=clock)

    async def get_markets(
        self,
        limit: int = 100,
        offset: int = 0,
        active: bool = True,
        closed: bool = False,
    ) -> list[PolymarketMarket]:
        params = {
            "limit": str(_coerce_non_negative_int(limit)),
            "offset": str(_coerce_non_negative_int(offset)),
            "active": _bool_param(active),
            "closed": _bool_param(closed),
            "order": "volume",
            "ascending": "false",
        }
        return await self._cached_get(
            ("markets", limit, offset, active, closed),
            f"{self.gamma_url}/markets",
            params,
            _parse_markets,
        )

    async def get_trades(
        self,
        user: str | None = None,
        market: str | None = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[PolymarketTrade]:
        params = {
            "limit": str(_coerce_non_negative_int(limit)),
            "offset": str(_coerce_non_negative_int(offset)),
        }
        if user:
            params["user"] = user
        if market:
            params["market"] = market
        return await self._cached_get(
            ("trades", user or "all", market or "all", limit, offset),
            f"{self.data_url}/trades",
            params,
            _parse_trades,
        )

    async def get_recent_trades(self, limit: int = 1000) -> list[PolymarketTrade]:
        params = {"limit": str(_coerce_non_negative_int(limit)), "offset": "0"}
        return await self._cached_get(
            ("recent_trades", limit),
            f"{self.data_url}/trades",
            params,
            _parse_trades,
        )

    async def get_wallet_trades(self, wallet_address: str, limit: int = 100) -> list[PolymarketTrade]:
        return await self.get_trades(user=wallet_address, limit=limit)

    async def get_market_trades(self, condition_id: str, limit: int = 500) -> list[PolymarketTrade]:
        return await self.get_trades(market=condition_id, limit=limit)

    async def get_positions(self, wallet_address: str) -> list[PolymarketPosition]:
        return await self._cached_get(
            ("positions", wallet_address),
            f"{self.data_url}/positions",
            {"user": wallet_address},
            _parse_positions,
        )

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("polymarket_cache_cleared")

    async def _cached_get(
        self,
        key: Hashable,
        url: str,
        params: dict[str, str],
        parse: Callable[[Any], list],
    ) -> list:
        cached = self._cache.get(key)
        if cached is not None and cached.is_fresh:
            logger.debug("polymarket_cache_hit key=%s", key)
            return cached.value

        try:
            payload = await self._get_json(url, params)
        except (httpx.HTTPError, ValueError):
            if cached is not None:
                logger.warning("polymarket_fetch_failed key=%s serving=stale", key, exc_info=True)
                return cached.value
            logger.warning("polymarket_fetch_failed key=%s serving=none", key, exc_info=True)
            raise

        try:
            data = parse(payload)
        except (ValueError, TypeError):
            if cached is not None:
                logger.warning("polymarket_parse_failed key=%s serving=stale", key, exc_info=True)
                return cached.value
            raise
        self._cache.set(key, data)
        logger.info("polymarket_fetched key=%s count=%s", key, len(data))
        return data

    async def _get_json(self, url: str, params: dict[str, str]) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, headers=_HEADERS) as client:
            timer = UpstreamTimer()
            r = await client.get(url, params=params)
            log_upstream_response(SOURCE, r, timer.elapsed())
            r.raise_for_status()
            return r.json()


def _parse_markets(payload: Any) -> list[PolymarketMarket]:
    markets: list[PolymarketMarket] = []
    if not isinstance(payload, list):
        return markets

    for m in payload:
        if not isinstance(m, dict):
            continue
        market_id = str(m.get("id") or "")
        condition_id = str(m.get("conditionId") or market_id)
        if not condition_id:
            continue
        question = (m.get("question") or m.get("slug") or "").strip()

        volume = m.get("volumeNum")
        if volume is None:
            volume = m.get("volume")

        liquidity = m.get("liquidityNum")
        if liquidity is None:
            liquidity = m.get("liquidity")

        markets.append(
            PolymarketMarket(
                id=market_id or condition_id,
                condition_id=condition_id,
                question=question,
                slug=m.get("slug") or "",
                end_date=_parse_ts(m.get("endDate")),
                volume=_parse_float(volume),
                volume_24h=_parse_float(m.get("volume24hr")),
                liquidity=_parse_float(liquidity),
                active=m.get("active") is not False,
                closed=m.get("closed") is True,
                last_trade_price=_parse_float(m.get("lastTradePrice")),
                tags=_parse_tags(m.get("tags")),
            )
        )

    return markets


def _parse_trades(payload: Any) -> list[PolymarketTrade]:
    trades: list[PolymarketTrade] = []
    if not isinstance(payload, list):
        return trades

    for t in payload:
        if not isinstance(t, dict):
            continue
        wallet = t.get("proxyWallet")
        side = str(t.get("side") or "").upper()
        condition_id = t.get("conditionId")
        if not wallet or side not in {"BUY", "SELL"} or not condition_id:
            continue
        ts = _parse_ts(t.get("timestamp"))
        if ts is None:
            continue

        outcome_index = t.get("outcomeIndex")
        trades.append(
            PolymarketTrade(
                proxy_wallet=str(wallet),
                side=side,
                condition_id=str(condition_id),
                size=_parse_float(t.get("size")),
                price=_parse_float(t.get("price")),
                timestamp=int(ts.timestamp()),
                asset=str(t.get("asset") or ""),
                title=t.get("title"),
                slug=t.get("slug"),
                outcome=t.get("outcome") or None,
                outcome_index=outcome_index if isinstance(outcome_index, int) else None,
                transaction_hash=t.get("transactionHash"),
            )
        )

    return trades


def _parse_positions(payload: Any) -> list[PolymarketPosition]:
    positions: list[PolymarketPosition] = []
    if not isinstance(payload, list):
        return positions

    for p in payload:
        if not isinstance(p, dict):
            continue
        current_price = p.get("curPrice")
        if current_price is None:
            current_price = p.get("currentPrice")
        positions.append(
            PolymarketPosition(
                proxy_wallet=str(p.get("proxyWallet") or ""),
                condition_id=str(p.get("conditionId") or ""),
                size=_parse_float(p.get("size")),
                avg_price=_parse_float(p.get("avgPrice")),
                current_price=_parse_float(current_price),
                title=p.get("title"),
                outcome=p.get("outcome"),
            )
        )

    return positions


def _parse_tags(value) -> list[str]:
    if not isinstance(value, list):
        return []
    labels = []
    for tag in value:
        if isinstance(tag, dict):
            label = tag.get("label") or tag.get("slug")
        else:
            label = tag
        if label:
            labels.append(str(label))
    return labels


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


def _parse_float(value) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _coerce_non_negative_int(value: int | None) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def _epoch_to_datetime(num: float) -> datetime | None:
    """Seconds, milliseconds or nanoseconds since the epoch; out-of-range values are None."""
    if num > 1e14:
        num = num / 1e9
    elif num > 1e11:
        num = num / 1e3
    try:
        return datetime.fromtimestamp(num, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def _parse_ts(value) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _epoch_to_datetime(float(value))
    if isinstance(value, str):
        v = value.strip()
        if not v:
            return None
        try:
            num = float(v)
        except ValueError:
            num = None
        if num is not None:
            return _epoch_to_datetime(num)
        if v.endswith("Z"):
            v = v[:-1] + "+00:00"
        v = _trim_iso_fraction(v)
        try:
            dt = datetime.fromisoformat(v)
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    return None


def _trim_iso_fraction(value: str) -> str:
    if "." not in value:
        return value
    tz_pos = None
    t_pos = value.find("T")
    for i in range(len(value) - 1, -1, -1):
        ch = value[i]
        if ch in "+-" and (t_pos == -1 or i > t_pos):
            tz_pos = i
            break
    if tz_pos is None:
        main = value
        tz = ""
    else:
        main = value[:tz_pos]
        tz = value[tz_pos:]
    if "." not in main:
        return value
    pre, frac = main.split(".", 1)
    digits = "".join(ch for ch in frac if ch.isdigit())
    if not digits:
        return pre + tz
    if len(digits) > 6:
        digits = digits[:6]
    return pre + "." + digits + tz
