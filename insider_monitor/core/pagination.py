from typing import Sequence, TypeVar

from ..schemas import Page

T = TypeVar("T")

DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0
MAX_LIMIT = 200


def parse_pagination(limit: str | int | None, offset: str | int | None) -> tuple[int, int]:
    """Lenient query parsing: bad numbers fall back to defaults, limit is clamped."""
    parsed_limit = _coerce_int(limit, DEFAULT_LIMIT)
    parsed_offset = _coerce_int(offset, DEFAULT_OFFSET)
    return clamp_limit(parsed_limit), max(parsed_offset, 0)


def clamp_limit(limit: int) -> int:
    return max(1, min(MAX_LIMIT, limit))


def paginate(items: Sequence[T], limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Page[T]:
    limit = clamp_limit(limit)
    offset = max(offset, 0)
    total = len(items)
    data = list(items[offset:offset + limit])
    return page_from_slice(data, total, limit, offset)


def page_from_slice(data: list[T], total: int, limit: int, offset: int) -> Page[T]:
    return Page(
        data=data,
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(data) < total,
    )


def _coerce_int(value, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default
