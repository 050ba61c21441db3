"""Recovery decisions for order pairs that did not fill evenly."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from polyarb.manager import OrderPair
    from polyarb.positions import PositionTracker

log = logging.getLogger(__name__)

_ZERO = Decimal(0)


def _decimal_from_float(value: float, default: Decimal) -> Decimal:
    if not math.isfinite(value):
        return default
    return Decimal(str(value))


@dataclass(frozen=True)
class NoAction:
    """Nothing needs to be done."""


@dataclass(frozen=True)
class SellExcess:
    """Sell ``amount`` of the over-filled token."""

    token_id: str
    amount: Decimal


@dataclass(frozen=True)
class MonitorForExit:
    """Watch a one-sided position and exit on take-profit or stop-loss."""

    token_id: int
    opposite_token_id: int
    amount: Decimal
    entry_price: Decimal
    take_profit_pct: Decimal
    stop_loss_pct: Decimal
    pair_id: str
    market_display: str


@dataclass(frozen=True)
class ManualIntervention:
    """The situation needs a human to look at it."""

    reason: str


RecoveryAction = Union[NoAction, SellExcess, MonitorForExit, ManualIntervention]


class RecoveryStrategy:
    """Decides what to do after partial or one-sided fills.

    Hedging is currently switched off, so every decision is ``NoAction``;
    imbalances are only logged.
    """

    def __init__(
        self,
        imbalance_threshold: float = 0.1,
        take_profit_pct: float = 0.05,
        stop_loss_pct: float = 0.05,
    ) -> None:
        self.imbalance_threshold = _decimal_from_float(imbalance_threshold, Decimal("0.1"))
        self.take_profit_pct = _decimal_from_float(take_profit_pct, Decimal("0.05"))
        self.stop_loss_pct = _decimal_from_float(stop_loss_pct, Decimal("0.05"))

    async def handle_partial_fill(
        self, pair: "OrderPair", position_tracker: "PositionTracker"
    ) -> RecoveryAction:
        """Log an imbalance above the threshold; hedging is off, so do nothing."""
        imbalance = abs(pair.yes_filled - pair.no_filled)
        total_filled = pair.yes_filled + pair.no_filled
        ratio = imbalance / total_filled if total_filled > 0 else _ZERO

        if ratio > self.imbalance_threshold:
            if pair.yes_filled > pair.no_filled:
                side, amount = "YES", pair.yes_filled - pair.no_filled
            else:
                side, amount = "NO", pair.no_filled - pair.yes_filled
            log.debug(
                "partial fill imbalance, hedging off: pair_id=%s side=%s amount=%s ratio=%s",
                pair.pair_id, side, amount, ratio,
            )
        return NoAction()

    async def handle_one_sided_fill(
        self, pair: "OrderPair", position_tracker: "PositionTracker"
    ) -> RecoveryAction:
        """Log which side filled alone; hedging is off, so do nothing."""
        if pair.yes_filled > 0 and pair.no_filled == 0:
            side, filled = "YES", pair.yes_filled
        elif pair.no_filled > 0 and pair.yes_filled == 0:
            side, filled = "NO", pair.no_filled
        else:
            return NoAction()
        log.debug("one-sided fill | %s filled %s | hedging off", side, filled)
        return NoAction()