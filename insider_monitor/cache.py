import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    fetched_at: float
    is_fresh: bool


class TtlCache:
    """In-process fetch cache.

    Entries are never evicted on expiry: an expired entry is still returned by
    ``get`` with ``is_fresh=False`` so callers can fall back to it when the
    upstream fails.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = max(float(ttl_seconds), 0.0)
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}

    def get(self, key: Hashable) -> CacheEntry | None:
        stored = self._entries.get(key)
        if stored is None:
            return None
        value, fetched_at = stored
        is_fresh = self._clock() - fetched_at < self.ttl_seconds
        return CacheEntry(value=value, fetched_at=fetched_at, is_fresh=is_fresh)

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
