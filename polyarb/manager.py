"""Tracking of submitted YES/NO order pairs and their risk."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from polyarb.config import Config
from polyarb.positions import PositionTracker
from polyarb.recovery import (
    ManualIntervention,
    NoAction,
    RecoveryAction,
    RecoveryStrategy,
)

log = logging.getLogger(__name__)


class PairStatus(Enum):
    """Fill state of an order pair."""

    SUBMITTED = "submitted"
    BOTH_FILLED = "both_filled"
    PARTIALLY_FILLED = "partially_filled"
    ONE_FAILED = "one_failed"
    BOTH_FAILED = "both_failed"
    RECOVERING = "recovering"


@dataclass
class OrderPairResult:
    """Outcome of submitting a YES and a NO order together."""

    pair_id: str
    yes_order_id: str
    no_order_id: str
    yes_size: Decimal
    no_size: Decimal
    yes_filled: Decimal
    no_filled: Decimal


@dataclass
class OrderPair:
    """A registered order pair and its fill state."""

    pair_id: str
    market_id: str
    yes_order_id: str
    no_order_id: str
    yes_token_id: int
    no_token_id: int
    yes_size: Decimal
    no_size: Decimal
    yes_filled: Decimal
    no_filled: Decimal
    status: PairStatus
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _status_of(result: OrderPairResult) -> PairStatus:
    if result.yes_filled == result.yes_size and result.no_filled == result.no_size:
        return PairStatus.BOTH_FILLED
    if result.yes_filled > 0 and result.no_filled > 0:
        return PairStatus.PARTIALLY_FILLED
    if (result.yes_filled > 0 and result.no_filled == 0) or (
        result.yes_filled == 0 and result.no_filled > 0
    ):
        return PairStatus.ONE_FAILED
    return PairStatus.BOTH_FAILED


def _max_exposure(value: float) -> Decimal:
    if not math.isfinite(value):
        return Decimal("1000.0")
    return Decimal(str(value))


class RiskManager:
    """Registers order pairs, updates positions and picks recovery actions."""

    def __init__(self, config: Config, clob_client: Optional[Any] = None) -> None:
        self.clob_client = clob_client
        self.pending_pairs: dict[str, OrderPair] = {}
        self._position_tracker = PositionTracker(_max_exposure(config.risk_max_exposure_usdc))
        self.recovery_strategy = RecoveryStrategy(
            config.risk_imbalance_threshold,
            config.hedge_take_profit_pct,
            config.hedge_stop_loss_pct,
        )

    def register_order_pair(
        self,
        result: OrderPairResult,
        market_id: str,
        yes_token: int,
        no_token: int,
        yes_price: Decimal,
        no_price: Decimal,
    ) -> OrderPair:
        """Record a submitted pair and add its fills to positions and exposure."""
        status = _status_of(result)
        pair = OrderPair(
            pair_id=result.pair_id,
            market_id=market_id,
            yes_order_id=result.yes_order_id,
            no_order_id=result.no_order_id,
            yes_token_id=yes_token,
            no_token_id=no_token,
            yes_size=result.yes_size,
            no_size=result.no_size,
            yes_filled=result.yes_filled,
            no_filled=result.no_filled,
            status=status,
        )

        tracker = self._position_tracker
        tracker.update_position(yes_token, pair.yes_filled)
        tracker.update_position(no_token, pair.no_filled)
        tracker.update_exposure_cost(yes_token, yes_price, pair.yes_filled)
        tracker.update_exposure_cost(no_token, no_price, pair.no_filled)

        log.debug(
            "order pair registered pair_id=%s status=%s yes_filled=%s no_filled=%s",
            pair.pair_id, status.name, pair.yes_filled, pair.no_filled,
        )
        self.pending_pairs[pair.pair_id] = pair
        return pair

    async def handle_order_pair(self, pair_id: str) -> RecoveryAction:
        """Decide the recovery action for a registered pair.

        Raises KeyError if the pair is unknown.
        """
        pair = self.pending_pairs.get(pair_id)
        if pair is None:
            raise KeyError(f"order pair {pair_id} does not exist")

        if pair.status is PairStatus.BOTH_FILLED:
            log.info("both orders fully filled, no recovery needed pair_id=%s", pair.pair_id)
            return NoAction()
        if pair.status is PairStatus.PARTIALLY_FILLED:
            return await self.recovery_strategy.handle_partial_fill(
                pair, self._position_tracker
            )
        if pair.status is PairStatus.ONE_FAILED:
            return await self.recovery_strategy.handle_one_sided_fill(
                pair, self._position_tracker
            )
        if pair.status is PairStatus.BOTH_FAILED:
            log.error(
                "arbitrage failed | neither YES nor NO filled: price moved or liquidity too thin"
            )
            return ManualIntervention(reason="both orders failed")
        return NoAction()

    def position_tracker(self) -> PositionTracker:
        """The shared position tracker."""
        return self._position_tracker