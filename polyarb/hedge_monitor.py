"""Take-profit / stop-loss monitoring of one-sided hedge positions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Awaitable, Callable, Mapping, Optional

from polyarb.orderbook import BookUpdate
from polyarb.positions import PositionTracker
from polyarb.recovery import MonitorForExit, RecoveryAction

log = logging.getLogger(__name__)

_ZERO = Decimal(0)
_ONE = Decimal(1)
_HUNDRED = Decimal(100)
_MIN_SIZE = Decimal("0.01")
_PROCESSING = "processing"

_FEE_SCALE = 100.0
_FEE_RATE = 0.25
_FEE_EXPONENT = 2.0

SubmitSellOrder = Callable[[int, Decimal, Decimal], Awaitable[Mapping[str, Any]]]


def calculate_fee(entry_price: Decimal) -> Decimal:
    """Fee percentage ``100 * 0.25 * (p * (1 - p)) ** 2`` for entry price ``p``."""
    p = float(entry_price)
    fee = _FEE_SCALE * _FEE_RATE * (p * (1.0 - p)) ** _FEE_EXPONENT
    try:
        return Decimal(repr(fee))
    except ArithmeticError:
        return _ZERO


def _available_amount(entry_price: Decimal, base_amount: Decimal) -> Decimal:
    fee = calculate_fee(entry_price)
    if fee >= _HUNDRED:
        return _MIN_SIZE
    return base_amount * ((_HUNDRED - fee) / _HUNDRED)


def calculate_order_size(entry_price: Decimal, base_amount: Decimal) -> Decimal:
    """Shares to sell after fees, floored to 2 decimals and at least 0.01."""
    available = _available_amount(entry_price, base_amount)
    floored = (available * _HUNDRED).to_integral_value(rounding=ROUND_FLOOR) / _HUNDRED
    return _MIN_SIZE if floored.is_zero() else floored


@dataclass
class HedgePosition:
    """A position watched for a take-profit or stop-loss exit."""

    token_id: int
    opposite_token_id: int
    amount: Decimal
    entry_price: Decimal
    take_profit_price: Decimal
    stop_loss_price: Decimal
    pair_id: str
    market_display: str
    order_id: Optional[str] = None
    pending_sell_amount: Decimal = _ZERO


@dataclass(frozen=True)
class SellResult:
    """Outcome of a posted GTC sell order."""

    order_id: str
    filled: Decimal
    remaining: Decimal


class HedgeMonitor:
    """Sells the uncovered part of hedge positions when exit prices are hit.

    ``submit_sell_order(token_id, price, size)`` posts a signed GTC sell order
    and returns a mapping with ``success``, ``order_id``, ``taking_amount`` and,
    on failure, ``error_msg``.
    """

    def __init__(
        self, submit_sell_order: SubmitSellOrder, position_tracker: PositionTracker
    ) -> None:
        self._submit = submit_sell_order
        self.position_tracker = position_tracker
        self._positions: dict[str, HedgePosition] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def add_position(self, action: RecoveryAction) -> None:
        """Start watching the position described by a MonitorForExit action."""
        if not isinstance(action, MonitorForExit):
            return
        take_profit = action.entry_price * (_ONE + action.take_profit_pct)
        stop_loss = action.entry_price * (_ONE - action.stop_loss_pct)
        log.info(
            "hedge monitoring started | market:%s | amount:%s | entry:%.4f | "
            "take profit:%.4f | stop loss:%.4f",
            action.market_display, action.amount, action.entry_price, take_profit, stop_loss,
        )
        self._positions[action.pair_id] = HedgePosition(
            token_id=action.token_id,
            opposite_token_id=action.opposite_token_id,
            amount=action.amount,
            entry_price=action.entry_price,
            take_profit_price=take_profit,
            stop_loss_price=stop_loss,
            pair_id=action.pair_id,
            market_display=action.market_display,
        )

    def update_entry_price(self, pair_id: str, entry_price: Decimal) -> None:
        """Move the entry price, keeping the take-profit and stop-loss percentages."""
        pos = self._positions.get(pair_id)
        if pos is None:
            return
        old_entry = pos.entry_price
        take_profit_pct = (pos.take_profit_price - old_entry) / old_entry
        stop_loss_pct = (old_entry - pos.stop_loss_price) / old_entry
        pos.entry_price = entry_price
        pos.take_profit_price = entry_price * (_ONE + take_profit_pct)
        pos.stop_loss_price = entry_price * (_ONE - stop_loss_pct)
        log.info(
            "entry price updated pair_id=%s old=%s new=%s take_profit=%s stop_loss=%s",
            pair_id, old_entry, entry_price, pos.take_profit_price, pos.stop_loss_price,
        )

    @staticmethod
    def _exit_reason(position: HedgePosition, best_bid: Decimal) -> Optional[str]:
        if best_bid >= position.take_profit_price:
            pct = float((best_bid - position.entry_price) / position.entry_price * _HUNDRED)
            return f"take profit ({pct:.2f}%)"
        if best_bid <= position.stop_loss_price:
            pct = float((position.entry_price - best_bid) / position.entry_price * _HUNDRED)
            return f"stop loss ({pct:.2f}%)"
        return None

    async def check_and_execute(self, book: BookUpdate) -> list[asyncio.Task[None]]:
        """Check watched positions of ``book``'s token; start sells where due.

        Returns the started sell tasks so callers may await them.
        """
        if not book.bids:
            return []
        best_bid = book.bids[-1].price

        snapshot = [
            (pair_id, replace(pos))
            for pair_id, pos in self._positions.items()
            if pos.token_id == book.asset_id
        ]

        tasks: list[asyncio.Task[None]] = []
        for pair_id, position in snapshot:
            if position.order_id is not None:
                if position.pending_sell_amount <= 0:
                    continue
                log.info(
                    "unfilled order found | market:%s | order:%s | remaining:%s | "
                    "re-listing at %.4f",
                    position.market_display, position.order_id[:16],
                    position.pending_sell_amount, best_bid,
                )
                stored = self._positions.get(pair_id)
                if stored is not None:
                    stored.order_id = None

            reason = self._exit_reason(position, best_bid)
            if reason is None:
                continue

            current = self.position_tracker.get_position(position.token_id)
            opposite = self.position_tracker.get_position(position.opposite_token_id)
            difference = current - opposite
            if difference <= 0:
                log.info(
                    "no sell needed | market:%s | position:%s | opposite:%s | difference:%s",
                    position.market_display, current, opposite, difference,
                )
                continue

            if position.order_id is not None and position.pending_sell_amount > 0:
                sell_amount = position.pending_sell_amount
            else:
                sell_amount = difference

            log.info(
                "%s reached | market:%s | best bid:%.4f | entry:%.4f | position:%s | "
                "opposite:%s | difference:%s | selling:%s",
                reason, position.market_display, best_bid, position.entry_price,
                current, opposite, difference, sell_amount,
            )

            stored = self._positions.get(pair_id)
            if stored is not None:
                stored.order_id = _PROCESSING

            task = asyncio.create_task(
                self._sell_and_record(pair_id, position, best_bid, sell_amount)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def _sell_and_record(
        self, pair_id: str, position: HedgePosition, price: Decimal, size: Decimal
    ) -> None:
        try:
            result = await self._execute_sell_order(position, price, size)
        except Exception as exc:
            log.error(
                "sell order failed | market:%s | price:%.4f | error:%s",
                position.market_display, price, exc,
            )
            stored = self._positions.get(pair_id)
            if stored is not None:
                stored.order_id = None
            return

        stored = self._positions.get(pair_id)
        if stored is None:
            log.warning("position not found | pair_id:%s", pair_id)
        elif result.remaining > 0:
            stored.order_id = result.order_id
            stored.pending_sell_amount = result.remaining
        else:
            stored.order_id = None
            stored.pending_sell_amount = _ZERO

        if result.filled > 0:
            tracker = self.position_tracker
            tracker.update_position(position.token_id, -result.filled)
            tracker.update_exposure_cost(
                position.token_id, position.entry_price, -result.filled
            )
            log.info(
                "exposure updated | market:%s | sold:%s | exposure:%.2f USD",
                position.market_display, result.filled, tracker.calculate_exposure(),
            )

    async def _execute_sell_order(
        self, position: HedgePosition, price: Decimal, size: Decimal
    ) -> SellResult:
        order_size = calculate_order_size(position.entry_price, size)
        log.info(
            "sell size | market:%s | base:%.2f | entry:%.4f | fee:%.2f%% | size:%.2f",
            position.market_display, size, position.entry_price,
            calculate_fee(position.entry_price), order_size,
        )
        response = await self._submit(position.token_id, price, order_size)
        if not response.get("success"):
            message = response.get("error_msg") or "unknown error"
            raise RuntimeError(f"GTC sell order failed: {message}")

        order_id = str(response.get("order_id", ""))
        filled = Decimal(str(response.get("taking_amount", 0)))
        remaining = order_size - filled
        if filled > 0:
            log.info(
                "sell order filled | market:%s | order:%s | filled:%s | remaining:%s",
                position.market_display, order_id[:16], filled, remaining,
            )
        else:
            log.info(
                "sell order posted | market:%s | order:%s | size:%s | price:%.4f",
                position.market_display, order_id[:16], order_size, price,
            )
        return SellResult(order_id=order_id, filled=filled, remaining=remaining)

    def remove_position(self, pair_id: str) -> None:
        """Stop watching a position."""
        self._positions.pop(pair_id, None)
        log.info("hedge position removed pair_id=%s", pair_id)

    def get_positions(self) -> list[HedgePosition]:
        """Copies of all watched positions."""
        return [replace(pos) for pos in self._positions.values()]