import asyncio
from decimal import Decimal

import pytest

from polyarb.hedge_monitor import (
    HedgeMonitor,
    calculate_fee,
    calculate_order_size,
)
from polyarb.orderbook import BookUpdate, PriceLevel
from polyarb.positions import PositionTracker
from polyarb.recovery import ManualIntervention, MonitorForExit, NoAction

YES = 111
NO = 222
ENTRY = Decimal("0.5")
PCT = Decimal("0.1")


class FakeExchange:
    def __init__(self, *responses):
        self.calls = []
        self.responses = list(responses)

    async def __call__(self, token_id, price, size):
        self.calls.append((token_id, price, size))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(size)
        return response


def action(pair_id="pair-1", amount=Decimal("10")):
    return MonitorForExit(
        token_id=YES,
        opposite_token_id=NO,
        amount=amount,
        entry_price=ENTRY,
        take_profit_pct=PCT,
        stop_loss_pct=PCT,
        pair_id=pair_id,
        market_display="btc market",
    )


def book(bid):
    return BookUpdate(asset_id=YES, bids=[PriceLevel(Decimal(bid), Decimal("50"))])


def make_monitor(exchange, yes_amount=Decimal("10"), no_amount=Decimal("0")):
    tracker = PositionTracker(Decimal("1000"))
    tracker.update_position(YES, yes_amount)
    tracker.update_exposure_cost(YES, ENTRY, yes_amount)
    if no_amount:
        tracker.update_position(NO, no_amount)
    monitor = HedgeMonitor(exchange, tracker)
    monitor.add_position(action())
    return monitor, tracker


def test_fee_zero_at_extremes():
    assert calculate_fee(Decimal("0")) == 0
    assert calculate_fee(Decimal("1")) == 0


def test_fee_symmetric_and_peaks_at_half():
    assert calculate_fee(Decimal("0.3")) == calculate_fee(Decimal("0.7"))
    assert calculate_fee(Decimal("0.5")) > calculate_fee(Decimal("0.3"))
    assert calculate_fee(Decimal("0.5")) < Decimal("1.57")


def test_order_size_floors_to_cents_without_fee():
    assert calculate_order_size(Decimal("0"), Decimal("10.129")) == Decimal("10.12")


def test_order_size_never_exceeds_base_and_is_two_decimals():
    size = calculate_order_size(ENTRY, Decimal("10"))
    assert size <= Decimal("10")
    assert size == size.quantize(Decimal("0.01"))


def test_order_size_minimum_when_zero():
    assert calculate_order_size(ENTRY, Decimal("0")) == Decimal("0.01")


def test_add_position_computes_exit_prices():
    monitor = HedgeMonitor(FakeExchange(), PositionTracker(Decimal("1000")))
    monitor.add_position(action())
    [pos] = monitor.get_positions()
    assert pos.take_profit_price == ENTRY * (1 + PCT)
    assert pos.stop_loss_price == ENTRY * (1 - PCT)
    assert pos.order_id is None
    assert pos.pending_sell_amount == 0


def test_add_position_ignores_other_actions():
    monitor = HedgeMonitor(FakeExchange(), PositionTracker(Decimal("1000")))
    monitor.add_position(NoAction())
    monitor.add_position(ManualIntervention(reason="both orders failed"))
    assert monitor.get_positions() == []


def test_update_entry_price_keeps_percentages():
    monitor = HedgeMonitor(FakeExchange(), PositionTracker(Decimal("1000")))
    monitor.add_position(action())
    monitor.update_entry_price("pair-1", Decimal("0.4"))
    [pos] = monitor.get_positions()
    assert pos.entry_price == Decimal("0.4")
    assert (pos.take_profit_price - pos.entry_price) / pos.entry_price == PCT
    assert (pos.entry_price - pos.stop_loss_price) / pos.entry_price == PCT


def test_update_entry_price_from_zero_raises():
    monitor = HedgeMonitor(FakeExchange(), PositionTracker(Decimal("1000")))
    monitor.add_position(
        MonitorForExit(YES, NO, Decimal("1"), Decimal("0"), PCT, PCT, "z", "m")
    )
    with pytest.raises(ZeroDivisionError):
        monitor.update_entry_price("z", Decimal("0.4"))


def test_remove_position():
    monitor = HedgeMonitor(FakeExchange(), PositionTracker(Decimal("1000")))
    monitor.add_position(action("a"))
    monitor.add_position(action("b"))
    monitor.remove_position("a")
    assert [p.pair_id for p in monitor.get_positions()] == ["b"]


@pytest.mark.asyncio
async def test_no_bids_does_nothing():
    exchange = FakeExchange()
    monitor, _ = make_monitor(exchange)
    tasks = await monitor.check_and_execute(BookUpdate(asset_id=YES))
    assert tasks == []
    assert exchange.calls == []


@pytest.mark.asyncio
async def test_price_inside_band_does_not_sell():
    exchange = FakeExchange()
    monitor, _ = make_monitor(exchange)
    assert await monitor.check_and_execute(book("0.5")) == []
    assert exchange.calls == []


@pytest.mark.asyncio
async def test_covered_position_not_sold():
    exchange = FakeExchange()
    monitor, _ = make_monitor(exchange, no_amount=Decimal("10"))
    assert await monitor.check_and_execute(book("0.6")) == []
    assert exchange.calls == []


@pytest.mark.asyncio
async def test_take_profit_full_fill():
    exchange = FakeExchange(
        lambda size: {"success": True, "order_id": "order-" + "a" * 20, "taking_amount": size}
    )
    monitor, tracker = make_monitor(exchange)
    tasks = await monitor.check_and_execute(book("0.6"))
    await asyncio.gather(*tasks)

    expected_size = calculate_order_size(ENTRY, Decimal("10"))
    assert exchange.calls == [(YES, Decimal("0.6"), expected_size)]
    assert tracker.get_position(YES) == Decimal("10") - expected_size
    assert Decimal(0) < tracker.calculate_exposure() < Decimal("5")
    [pos] = monitor.get_positions()
    assert pos.order_id is None
    assert pos.pending_sell_amount == 0


@pytest.mark.asyncio
async def test_stop_loss_sells_only_difference():
    exchange = FakeExchange({"success": True, "order_id": "x", "taking_amount": 0})
    monitor, _ = make_monitor(exchange, no_amount=Decimal("4"))
    await asyncio.gather(*await monitor.check_and_execute(book("0.4")))
    assert exchange.calls[0][2] == calculate_order_size(ENTRY, Decimal("6"))


@pytest.mark.asyncio
async def test_partial_fill_then_relist_pending():
    order_id = "order-" + "b" * 20
    exchange = FakeExchange(
        {"success": True, "order_id": order_id, "taking_amount": "2"},
        {"success": True, "order_id": "second", "taking_amount": 0},
    )
    monitor, tracker = make_monitor(exchange)
    await asyncio.gather(*await monitor.check_and_execute(book("0.6")))

    first_size = calculate_order_size(ENTRY, Decimal("10"))
    [pos] = monitor.get_positions()
    assert pos.order_id == order_id
    assert pos.pending_sell_amount == first_size - Decimal("2")
    assert tracker.get_position(YES) == Decimal("8")

    await asyncio.gather(*await monitor.check_and_execute(book("0.6")))
    assert exchange.calls[1][2] == calculate_order_size(ENTRY, pos.pending_sell_amount)


@pytest.mark.asyncio
async def test_failed_order_clears_marker_and_keeps_position():
    exchange = FakeExchange({"success": False, "error_msg": "rejected"})
    monitor, tracker = make_monitor(exchange)
    await asyncio.gather(*await monitor.check_and_execute(book("0.6")))
    [pos] = monitor.get_positions()
    assert pos.order_id is None
    assert tracker.get_position(YES) == Decimal("10")


@pytest.mark.asyncio
async def test_submit_exception_clears_marker():
    exchange = FakeExchange(ConnectionError("down"))
    monitor, tracker = make_monitor(exchange)
    await asyncio.gather(*await monitor.check_and_execute(book("0.6")))
    assert monitor.get_positions()[0].order_id is None
    assert tracker.get_position(YES) == Decimal("10")


@pytest.mark.asyncio
async def test_processing_marker_blocks_second_order():
    exchange = FakeExchange({"success": True, "order_id": "x", "taking_amount": 0})
    monitor, _ = make_monitor(exchange)
    tasks = await monitor.check_and_execute(book("0.6"))
    assert monitor.get_positions()[0].order_id == "processing"
    assert await monitor.check_and_execute(book("0.6")) == []
    await asyncio.gather(*tasks)
    assert len(exchange.calls) == 1