"""Discovery of hourly up-or-down crypto markets through the Gamma API."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import urllib.request
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence
from urllib.parse import urlencode

log = logging.getLogger(__name__)

ET = timezone(timedelta(hours=-5))

MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

_U256_MAX = 2**256 - 1

FetchMarkets = Callable[[list[str]], Awaitable[Sequence[Mapping[str, Any]]]]


@dataclass(frozen=True)
class MarketInfo:
    """A tradeable market with its two outcome tokens."""

    market_id: str
    slug: str
    yes_token_id: int
    no_token_id: int
    title: str
    end_date: datetime
    crypto_symbol: str


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def calculate_current_window_timestamp(now: datetime) -> int:
    """Unix timestamp of the start of the hour window containing ``now`` (ET)."""
    et_time = _as_utc(now).astimezone(ET)
    return int(et_time.replace(minute=0, second=0, microsecond=0).timestamp())


def calculate_next_window_timestamp(now: datetime) -> int:
    """Unix timestamp of the next hour window; the current one if exactly on the hour."""
    et_time = _as_utc(now).astimezone(ET)
    target = et_time.replace(minute=0, second=0, microsecond=0)
    if not (et_time.minute == 0 and et_time.second == 0):
        target += timedelta(hours=1)
    return int(target.timestamp())


def timestamp_to_slug_format(timestamp: int) -> str:
    """Format a timestamp as ``<month>-<day>-<hour><am|pm>-et`` in ET."""
    try:
        utc_time = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        utc_time = datetime.now(timezone.utc)
    et_time = utc_time.astimezone(ET)
    month = MONTH_NAMES[et_time.month - 1]
    hour_12 = et_time.hour % 12 or 12
    am_pm = "am" if et_time.hour < 12 else "pm"
    return f"{month}-{et_time.day}-{hour_12}{am_pm}-et"


def _json_list(value: Any) -> Optional[list]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    return value if isinstance(value, list) else None


def _parse_u256(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        return None
    return number if 0 <= number <= _U256_MAX else None


def _parse_b256(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    digits = value[2:] if value.startswith(("0x", "0X")) else value
    if len(digits) != 64:
        return None
    try:
        int(digits, 16)
    except ValueError:
        return None
    return "0x" + digits.lower()


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def parse_market(market: Mapping[str, Any]) -> Optional[MarketInfo]:
    """Turn a Gamma market record into a MarketInfo, or None if it does not qualify."""
    if not (
        market.get("active")
        and market.get("enableOrderBook")
        and market.get("acceptingOrders")
    ):
        return None

    outcomes = _json_list(market.get("outcomes"))
    if outcomes is None or len(outcomes) != 2 or "Up" not in outcomes or "Down" not in outcomes:
        return None

    token_ids = _json_list(market.get("clobTokenIds"))
    if token_ids is None or len(token_ids) != 2:
        return None
    yes_token_id = _parse_u256(token_ids[0])
    no_token_id = _parse_u256(token_ids[1])
    if yes_token_id is None or no_token_id is None:
        return None

    market_id = _parse_b256(market.get("conditionId"))
    if market_id is None:
        return None

    slug = market.get("slug")
    if not isinstance(slug, str):
        return None

    end_date = _parse_datetime(market.get("endDate"))
    if end_date is None:
        return None

    return MarketInfo(
        market_id=market_id,
        slug=slug,
        yes_token_id=yes_token_id,
        no_token_id=no_token_id,
        title=market.get("question") or "",
        end_date=end_date,
        crypto_symbol=slug.split("-")[0],
    )


class _GammaClient:
    """Minimal Gamma markets endpoint client."""

    def __init__(self, base_url: Optional[str]) -> None:
        self.base_url = base_url or os.environ.get("GAMMA_API_URL")

    async def markets(self, slugs: list[str]) -> Sequence[Mapping[str, Any]]:
        if not self.base_url:
            raise RuntimeError("GAMMA_API_URL is not set")
        query = urlencode([("slug", slug) for slug in slugs])
        url = f"{self.base_url.rstrip('/')}/markets?{query}"
        return await asyncio.to_thread(self._get, url)

    @staticmethod
    def _get(url: str) -> Sequence[Mapping[str, Any]]:
        with urllib.request.urlopen(url, timeout=30) as response:
            data = json.load(response)
        if not isinstance(data, list):
            raise ValueError("unexpected markets response")
        return data


class MarketDiscoverer:
    """Finds the current hour's markets for a set of crypto symbols."""

    def __init__(
        self,
        crypto_symbols: Iterable[str],
        fetch_markets: Optional[FetchMarkets] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.crypto_symbols = list(crypto_symbols)
        self._fetch_markets = fetch_markets or _GammaClient(base_url).markets

    def generate_market_slugs(self, timestamp: int) -> list[str]:
        """Slugs of the form ``<symbol>-up-or-down-<month>-<day>-<hour><am|pm>-et``."""
        suffix = timestamp_to_slug_format(timestamp)
        return [f"{symbol}-up-or-down-{suffix}" for symbol in self.crypto_symbols]

    async def get_markets_for_timestamp(self, timestamp: int) -> list[MarketInfo]:
        """Query the markets of a window; a failed query yields an empty list."""
        slugs = self.generate_market_slugs(timestamp)
        log.info("querying markets timestamp=%s slug_count=%d", timestamp, len(slugs))
        try:
            markets = await self._fetch_markets(slugs)
        except Exception as exc:
            log.warning(
                "market query failed, market may not exist yet: timestamp=%s error=%s",
                timestamp,
                exc,
            )
            return []
        valid = [info for info in map(parse_market, markets) if info is not None]
        log.info("found %d matching markets", len(valid))
        return valid