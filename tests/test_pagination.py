import pytest

from insider_monitor.core.pagination import MAX_LIMIT, clamp_limit, paginate, parse_pagination


@pytest.mark.parametrize(
    "limit,offset,expected",
    [
        (None, None, (50, 0)),
        ("10", "20", (10, 20)),
        ("abc", "xyz", (50, 0)),
        ("0", "0", (1, 0)),
        ("-5", "-3", (1, 0)),
        ("500", "5", (200, 5)),
        (" 25 ", "", (25, 0)),
        ("2.5", "1", (50, 1)),
    ],
)
def test_parse_pagination_is_lenient(limit, offset, expected):
    assert parse_pagination(limit, offset) == expected


def test_clamp_limit():
    assert clamp_limit(0) == 1
    assert clamp_limit(1) == 1
    assert clamp_limit(MAX_LIMIT) == MAX_LIMIT
    assert clamp_limit(MAX_LIMIT + 1) == MAX_LIMIT


@pytest.mark.parametrize("n", [0, 1, 7, 50, 201])
@pytest.mark.parametrize("limit", [0, 1, 5, 50, 200, 1000])
@pytest.mark.parametrize("offset", [0, 3, 50, 250])
def test_page_size_and_has_more_invariant(n, limit, offset):
    items = list(range(n))
    page = paginate(items, limit, offset)
    clamped = clamp_limit(limit)
    assert len(page.data) == min(clamped, max(0, n - offset))
    assert page.has_more == (offset + len(page.data) < n)
    assert page.total == n
    assert page.limit == clamped
    assert page.offset == offset


def test_page_serializes_camel_case():
    page = paginate(["a", "b", "c"], limit=2, offset=0)
    assert page.model_dump(by_alias=True) == {
        "data": ["a", "b"],
        "total": 3,
        "limit": 2,
        "offset": 0,
        "hasMore": True,
    }
