"""Per-token position and exposure tracking."""

from __future__ import annotations

import logging
import threading
from decimal import Decimal

log = logging.getLogger(__name__)

_ZERO = Decimal(0)
_POSITION_EPSILON = Decimal("0.0001")
_COST_EPSILON = Decimal("0.01")


class PositionTracker:
    """Tracks token positions and the USD cost exposed in them."""

    def __init__(self, max_exposure: Decimal) -> None:
        self.max_exposure = Decimal(max_exposure)
        self._positions: dict[int, Decimal] = {}
        self._exposure_costs: dict[int, Decimal] = {}
        self._lock = threading.RLock()

    def update_position(self, token_id: int, delta: Decimal) -> None:
        """Add ``delta`` to a position; a position near zero becomes zero and drops its cost."""
        with self._lock:
            value = self._positions.get(token_id, _ZERO) + delta
            near_zero = abs(value) < _POSITION_EPSILON
            self._positions[token_id] = _ZERO if near_zero else value
            if near_zero:
                self._exposure_costs.pop(token_id, None)
        log.debug("position updated token=%s delta=%s", token_id, delta)

    def update_exposure_cost(self, token_id: int, price: Decimal, delta: Decimal) -> None:
        """Raise cost by ``price * delta`` on buys; cut it proportionally on sells."""
        if delta == 0:
            return
        with self._lock:
            cost = self._exposure_costs.get(token_id, _ZERO)
            if delta > 0:
                cost += price * delta
            else:
                current = self._positions.get(token_id, _ZERO)
                if current > 0:
                    sold = min(-delta, current)
                    cost = max(cost * (1 - sold / current), _ZERO)
                else:
                    cost = _ZERO
            if cost < _COST_EPSILON:
                self._exposure_costs.pop(token_id, None)
            else:
                self._exposure_costs[token_id] = cost
        log.debug("exposure updated token=%s price=%s delta=%s", token_id, price, delta)

    def get_position(self, token_id: int) -> Decimal:
        """Current position of ``token_id``, zero if unknown."""
        with self._lock:
            return self._positions.get(token_id, _ZERO)

    def calculate_imbalance(self, yes_token: int, no_token: int) -> Decimal:
        """``|yes - no| / (yes + no)``; zero when the total is zero."""
        yes_pos, no_pos = self.get_pair_positions(yes_token, no_token)
        total = yes_pos + no_pos
        if total == 0:
            return _ZERO
        return abs(yes_pos - no_pos) / total

    def calculate_exposure(self) -> Decimal:
        """Total USD cost across all tokens."""
        with self._lock:
            costs = list(self._exposure_costs.values())
        return sum(costs, _ZERO)

    def is_within_limits(self) -> bool:
        """Whether the exposure is at most the maximum."""
        return self.calculate_exposure() <= self.max_exposure

    def would_exceed_limit(self, yes_cost: Decimal, no_cost: Decimal) -> bool:
        """Whether adding these order costs would push exposure over the maximum."""
        return self.calculate_exposure() + yes_cost + no_cost > self.max_exposure

    def get_pair_positions(self, yes_token: int, no_token: int) -> tuple[Decimal, Decimal]:
        """The YES and NO positions."""
        with self._lock:
            return (
                self._positions.get(yes_token, _ZERO),
                self._positions.get(no_token, _ZERO),
            )