from decimal import Decimal

from polyarb.positions import PositionTracker

YES = 1
NO = 2


def _tracker(max_exposure="1000"):
    return PositionTracker(Decimal(max_exposure))


def test_unknown_position_is_zero():
    assert _tracker().get_position(YES) == 0


def test_updates_accumulate():
    tracker = _tracker()
    tracker.update_position(YES, Decimal("5"))
    tracker.update_position(YES, Decimal("3"))
    assert tracker.get_position(YES) == Decimal("5") + Decimal("3")


def test_near_zero_position_is_cleared_with_cost():
    tracker = _tracker()
    tracker.update_position(YES, Decimal("5"))
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("5"))
    tracker.update_position(YES, Decimal("-4.99995"))
    assert tracker.get_position(YES) == 0
    assert tracker.calculate_exposure() == 0


def test_buy_adds_price_times_amount():
    tracker = _tracker()
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("10"))
    assert tracker.calculate_exposure() == Decimal("0.5") * Decimal("10")


def test_sell_reduces_cost_proportionally():
    tracker = _tracker()
    tracker.update_position(YES, Decimal("10"))
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("10"))
    before = tracker.calculate_exposure()
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("-5"))
    assert tracker.calculate_exposure() == before / 2


def test_sell_more_than_held_clears_cost():
    tracker = _tracker()
    tracker.update_position(YES, Decimal("10"))
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("10"))
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("-20"))
    assert tracker.calculate_exposure() == 0


def test_sell_without_position_clears_cost():
    tracker = _tracker()
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("10"))
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("-1"))
    assert tracker.calculate_exposure() == 0


def test_tiny_cost_is_dropped():
    tracker = _tracker()
    tracker.update_exposure_cost(YES, Decimal("0.001"), Decimal("1"))
    assert tracker.calculate_exposure() == 0


def test_zero_delta_changes_nothing():
    tracker = _tracker()
    tracker.update_exposure_cost(YES, Decimal("0.5"), Decimal("4"))
    before = tracker.calculate_exposure()
    tracker.update_exposure_cost(YES, Decimal("0.9"), Decimal("0"))
    assert tracker.calculate_exposure() == before


def test_exposure_sums_tokens():
    tracker = _tracker()
    tracker.update_exposure_cost(YES, Decimal("0.4"), Decimal("10"))
    tracker.update_exposure_cost(NO, Decimal("0.5"), Decimal("10"))
    assert tracker.calculate_exposure() == Decimal("0.4") * 10 + Decimal("0.5") * 10


def test_imbalance():
    tracker = _tracker()
    assert tracker.calculate_imbalance(YES, NO) == 0
    tracker.update_position(YES, Decimal("3"))
    tracker.update_position(NO, Decimal("3"))
    assert tracker.calculate_imbalance(YES, NO) == 0
    tracker.update_position(NO, Decimal("-2"))
    assert tracker.calculate_imbalance(YES, NO) == Decimal("0.5")


def test_limits():
    tracker = _tracker("10")
    assert tracker.is_within_limits() is True
    assert tracker.would_exceed_limit(Decimal("6"), Decimal("5")) is True
    assert tracker.would_exceed_limit(Decimal("5"), Decimal("5")) is False
    tracker.update_exposure_cost(YES, Decimal("1"), Decimal("11"))
    assert tracker.is_within_limits() is False


def test_pair_positions():
    tracker = _tracker()
    tracker.update_position(YES, Decimal("2"))
    tracker.update_position(NO, Decimal("7"))
    assert tracker.get_pair_positions(YES, NO) == (Decimal("2"), Decimal("7"))