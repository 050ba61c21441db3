"""Waiting for and fetching the markets of each hourly window."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from polyarb.discoverer import (
    MarketDiscoverer,
    MarketInfo,
    calculate_current_window_timestamp,
    calculate_next_window_timestamp,
)

log = logging.getLogger(__name__)

_RETRY_SECONDS = 2.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MarketScheduler:
    """Fetches markets for the current window or waits for the next one."""

    def __init__(
        self,
        discoverer: MarketDiscoverer,
        refresh_advance_secs: int,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.discoverer = discoverer
        self.refresh_advance_secs = refresh_advance_secs
        self._sleep = sleep
        self._clock = clock

    def calculate_wait_time(self, now: datetime) -> timedelta:
        """Time until the next window starts, less the refresh advance, never negative."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        next_window = datetime.fromtimestamp(
            calculate_next_window_timestamp(now), tz=timezone.utc
        )
        remaining = max(next_window - now, timedelta(0))
        return max(remaining - timedelta(seconds=self.refresh_advance_secs), timedelta(0))

    async def get_markets_immediately_or_wait(self) -> list[MarketInfo]:
        """Return the current window's markets, or wait for the next window's."""
        now = self._clock()
        current = calculate_current_window_timestamp(now)
        if current == calculate_next_window_timestamp(now):
            return await self.wait_for_next_window()

        log.info("trying markets of the current window")
        try:
            markets = await self.discoverer.get_markets_for_timestamp(current)
        except Exception as exc:
            log.warning("current window query failed, waiting for next: %s", exc)
            return await self.wait_for_next_window()
        if markets:
            log.info("found %d markets in the current window", len(markets))
            return markets
        log.info("no markets in the current window, waiting for the next")
        return await self.wait_for_next_window()

    async def wait_for_next_window(self) -> list[MarketInfo]:
        """Sleep until the next window, then poll until its markets appear."""
        while True:
            wait = self.calculate_wait_time(self._clock())
            if wait > timedelta(0):
                log.info("waiting %d s for the next window", int(wait.total_seconds()))
                await self._sleep(wait.total_seconds())

            timestamp = calculate_current_window_timestamp(self._clock())
            try:
                markets = await self.discoverer.get_markets_for_timestamp(timestamp)
            except Exception as exc:
                log.error("market query failed, retrying: %s", exc)
                await self._sleep(_RETRY_SECONDS)
                continue
            if markets:
                log.info("found %d new markets", len(markets))
                return markets
            log.info("markets not created yet, retrying")
            await self._sleep(_RETRY_SECONDS)