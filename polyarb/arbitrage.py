"""Detection of YES+NO best-ask arbitrage."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from polyarb.orderbook import BookUpdate, PriceLevel

log = logging.getLogger(__name__)

_ONE = Decimal("1.0")
_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


def _decimal_from_float(value: float, default: Decimal) -> Decimal:
    if not math.isfinite(value):
        return default
    return Decimal(str(value))


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """A priced pair of YES and NO orders that cost at most 1 together."""

    market_id: str
    yes_token_id: int
    no_token_id: int
    yes_ask_price: Decimal
    no_ask_price: Decimal
    total_cost: Decimal
    profit_percentage: Decimal
    yes_size: Decimal
    no_size: Decimal


def _depth_text(levels: list[PriceLevel], chosen: Decimal) -> str:
    parts = []
    for level in list(reversed(levels))[:5]:
        mark = "←" if abs(level.price - chosen) < Decimal("0.001") else ""
        parts.append(f"{level.price:.2f}@{level.size:.2f}{mark}")
    return ", ".join(parts)


class ArbitrageDetector:
    """Checks the best asks of a YES/NO book pair for arbitrage."""

    def __init__(self, min_profit_threshold: float = 0.001) -> None:
        self.min_profit_threshold = _decimal_from_float(
            min_profit_threshold, Decimal("0.001")
        )
        self.max_depth = 10
        self.min_order_value_usd = _ONE

    def find_best_opportunity(
        self, yes_book: BookUpdate, no_book: BookUpdate
    ) -> Optional[tuple[Decimal, Decimal, Decimal, Decimal, Decimal]]:
        """Return ``(yes_ask, no_ask, size, profit_pct, total_price)`` from the best asks."""
        if not yes_book.asks or not no_book.asks:
            return None
        yes_best = yes_book.asks[-1]
        no_best = no_book.asks[-1]

        yes_price = yes_best.price.quantize(_CENT)
        no_price = no_best.price.quantize(_CENT)
        total_price = yes_price + no_price
        if total_price > _ONE:
            return None

        raw_size = min(yes_best.size, no_best.size)
        if raw_size.is_zero():
            size = _CENT
        else:
            size = (raw_size * _HUNDRED).to_integral_value(rounding=ROUND_FLOOR) / _HUNDRED

        if (
            yes_price * size < self.min_order_value_usd
            or no_price * size < self.min_order_value_usd
        ):
            return None

        profit_pct = (_ONE - total_price) * _HUNDRED
        return yes_price, no_price, size, profit_pct, total_price

    def check_arbitrage(
        self, yes_book: BookUpdate, no_book: BookUpdate, market_id: str
    ) -> Optional[ArbitrageOpportunity]:
        """Return the arbitrage opportunity of the book pair, if there is one."""
        found = self.find_best_opportunity(yes_book, no_book)
        if found is None:
            return None
        yes_ask, no_ask, size, profit_pct, total_price = found

        log.debug(
            "order depth yes=[%s] no=[%s]",
            _depth_text(yes_book.asks, yes_ask),
            _depth_text(no_book.asks, no_ask),
        )
        log.info(
            "selected levels | YES %.2f×%.2f NO %.2f×%.2f", yes_ask, size, no_ask, size
        )
        log.debug(
            "arbitrage found market_id=%s yes=%s no=%s total=%s profit_pct=%s size=%s",
            market_id, yes_ask, no_ask, total_price, profit_pct, size,
        )

        return ArbitrageOpportunity(
            market_id=market_id,
            yes_token_id=yes_book.asset_id,
            no_token_id=no_book.asset_id,
            yes_ask_price=yes_ask,
            no_ask_price=no_ask,
            total_cost=total_price * size,
            profit_percentage=profit_pct,
            yes_size=size,
            no_size=size,
        )