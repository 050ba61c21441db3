"""Appending arbitrage opportunities to a record file."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Union

from polyarb.arbitrage import ArbitrageOpportunity

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def _dec(value: Decimal) -> str:
    return format(value, "f")


def _record(opp: ArbitrageOpportunity, market_name: str) -> dict[str, str]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "market_id": str(opp.market_id),
        "market_name": market_name,
        "yes_token_id": str(opp.yes_token_id),
        "no_token_id": str(opp.no_token_id),
        "yes_ask_price": _dec(opp.yes_ask_price),
        "no_ask_price": _dec(opp.no_ask_price),
        "total_cost": _dec(opp.total_cost),
        "profit_percentage": _dec(opp.profit_percentage),
        "yes_size": _dec(opp.yes_size),
        "no_size": _dec(opp.no_size),
    }


def log_arbitrage_opportunity(
    opp: ArbitrageOpportunity, market_name: str, file_path: PathLike
) -> None:
    """Append the opportunity as pretty JSON followed by a ``---`` separator line."""
    text = json.dumps(_record(opp, market_name), indent=2, ensure_ascii=False)
    with open(file_path, "a", encoding="utf-8") as handle:
        handle.write(f"{text}\n---\n")
        handle.flush()


async def log_arbitrage_opportunity_async(
    opp: ArbitrageOpportunity, market_name: str, file_path: PathLike
) -> None:
    """Like :func:`log_arbitrage_opportunity`, off the event loop; errors are logged."""
    try:
        await asyncio.to_thread(log_arbitrage_opportunity, opp, market_name, file_path)
    except (OSError, ValueError, TypeError) as exc:
        log.error("failed to write arbitrage record: %s", exc)