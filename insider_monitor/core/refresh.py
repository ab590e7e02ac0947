"""Lazy, drop-if-busy refresh coordination.

Readers call ``RefreshCoordinator.run`` before serving. A refresh starts only
when the coordinator is idle and the last successful refresh is older than the
interval; callers arriving while one is in flight return immediately and read
the previous snapshot. Only a successful refresh moves ``last_refreshed_at``,
so a failure is retried by the very next read.

All of this runs on one event loop: the check-and-transition below contains no
await, so no lock is needed.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Refreshing:
    started_at: float


RefreshState = Idle | Refreshing

IDLE = Idle()


class RefreshCoordinator:
    def __init__(
        self,
        name: str,
        interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.interval_seconds = max(float(interval_seconds), 0.0)
        self._clock = clock
        self.state: RefreshState = IDLE
        self.last_refreshed_at: float | None = None

    @property
    def is_refreshing(self) -> bool:
        return isinstance(self.state, Refreshing)

    def is_stale(self) -> bool:
        if self.last_refreshed_at is None:
            return True
        return self._clock() - self.last_refreshed_at >= self.interval_seconds

    async def run(self, refresh: Callable[[], Awaitable[None]]) -> bool:
        """Run ``refresh`` if due. Returns True only when a refresh completed."""
        if isinstance(self.state, Refreshing):
            logger.debug("refresh_skipped name=%s reason=in_flight", self.name)
            return False
        if not self.is_stale():
            logger.debug("refresh_skipped name=%s reason=fresh", self.name)
            return False

        started_at = self._clock()
        self.state = Refreshing(started_at=started_at)
        logger.info("refresh_started name=%s", self.name)
        try:
            await refresh()
        except Exception:
            logger.exception("refresh_failed name=%s", self.name)
            return False
        else:
            self.last_refreshed_at = self._clock()
            logger.info(
                "refresh_completed name=%s duration_ms=%s",
                self.name,
                int((self.last_refreshed_at - started_at) * 1000),
            )
            return True
        finally:
            self.state = IDLE
