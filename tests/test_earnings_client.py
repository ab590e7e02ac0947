import asyncio
from datetime import datetime, timezone

import httpx

from insider_monitor.earnings.client import (
    DEFAULT_BEAT_PROBABILITY,
    FALLBACK_SP500_SYMBOLS,
    EarningsClient,
    parse_earnings_time,
)

TODAY = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _mock_async_client(handler, calls):
    class MockAsyncClient:
        def __init__(self, *args, **kwargs):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def get(self, url, params=None):
            calls.append((url, dict(params or {})))
            request = httpx.Request("GET", url, params=params)
            return handler(request)

    return MockAsyncClient


def _calendar_handler(request):
    if request.url.path.endswith("/sp500_constituent"):
        return httpx.Response(200, json=[{"symbol": "AAPL"}, {"symbol": "MSFT"}], request=request)
    return httpx.Response(
        200,
        json=[
            {"symbol": "AAPL", "date": "2026-10-24", "time": "amc", "epsEstimated": 2.35, "revenueEstimated": 9.45e10},
            {"symbol": "MSFT", "date": "2026-10-22", "time": "bmo", "epsEstimated": None},
            {"symbol": "ZZZZ", "date": "2026-10-23", "time": "amc"},
            {"symbol": "AAPL"},
        ],
        request=request,
    )


def _client(clock=None, **overrides):
    options = dict(
        api_key="secret",
        base_url="https://fmp.test/api/v3",
        cache_ttl_seconds=3600,
        daily_request_limit=250,
        timeout=1,
        clock=clock or FakeClock(),
        now=lambda: TODAY,
    )
    options.update(overrides)
    return EarningsClient(**options)


def test_missing_api_key_serves_mock_calendar_without_network(monkeypatch):
    calls = []
    monkeypatch.setattr(httpx, "AsyncClient", _mock_async_client(_calendar_handler, calls))
    client = _client(api_key="")

    events = asyncio.run(client.get_earnings_calendar())

    assert calls == []
    assert len(events) == 10
    by_symbol = {e.symbol: e for e in events}
    assert by_symbol["TSLA"].earnings_date == "2026-10-21"
    assert by_symbol["JPM"].earnings_time == "bmo"
    assert by_symbol["NVDA"].company_name == "NVIDIA Corporation"


def test_calendar_is_filtered_to_sp500_and_cached(monkeypatch):
    calls = []
    monkeypatch.setattr(httpx, "AsyncClient", _mock_async_client(_calendar_handler, calls))
    client = _client()

    first = asyncio.run(client.get_earnings_calendar(days_ahead=30))
    second = asyncio.run(client.get_earnings_calendar(days_ahead=30))

    assert [e.symbol for e in first] == ["AAPL", "MSFT"]
    assert second == first
    assert len(calls) == 2
    url, params = calls[0]
    assert url.endswith("/earning_calendar")
    assert params["from"] == "2026-10-19"
    assert params["to"] == "2026-11-18"
    aapl, msft = first
    assert aapl.earnings_time == "amc"
    assert aapl.estimated_eps == 2.35
    assert aapl.beat_probability == DEFAULT_BEAT_PROBABILITY
    assert aapl.actual_eps is None
    assert msft.estimated_eps is None
    assert client.requests_today == 2


def test_forbidden_response_falls_back_to_mock_calendar(monkeypatch):
    calls = []
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        _mock_async_client(lambda request: httpx.Response(403, request=request), calls),
    )
    events = asyncio.run(_client().get_earnings_calendar())

    assert len(calls) == 1
    assert len(events) == 10


def test_upstream_error_serves_last_cached_calendar(monkeypatch):
    clock = FakeClock(0)
    calls = []
    monkeypatch.setattr(httpx, "AsyncClient", _mock_async_client(_calendar_handler, calls))
    client = _client(clock=clock)
    cached = asyncio.run(client.get_earnings_calendar())

    def failing(request):
        raise httpx.ConnectError("down", request=request)

    monkeypatch.setattr(httpx, "AsyncClient", _mock_async_client(failing, calls))
    clock.now = 7200
    events = asyncio.run(client.get_earnings_calendar())

    assert events == cached


def test_daily_request_budget_stops_upstream_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(httpx, "AsyncClient", _mock_async_client(_calendar_handler, calls))
    client = _client(daily_request_limit=0)

    events = asyncio.run(client.get_earnings_calendar())

    assert calls == []
    assert len(events) == 10


def test_sp500_symbols_fall_back_to_builtin_list(monkeypatch):
    calls = []
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        _mock_async_client(lambda request: httpx.Response(200, json={"error": "nope"}, request=request), calls),
    )
    symbols = asyncio.run(_client().get_sp500_symbols())

    assert symbols == FALLBACK_SP500_SYMBOLS
    assert len(symbols) == 50


def test_parse_earnings_time():
    assert parse_earnings_time("bmo") == "bmo"
    assert parse_earnings_time("Before Market Open") == "bmo"
    assert parse_earnings_time("AMC") == "amc"
    assert parse_earnings_time("after close") == "amc"
    assert parse_earnings_time("--") == "unknown"
    assert parse_earnings_time(None) == "unknown"
