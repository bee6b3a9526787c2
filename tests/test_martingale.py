from decimal import Decimal as D

import pytest

from stonks.core.models.state import AccountState, PositionState
from stonks.core.strategy.decisions import DecisionContext, FlattenPosition, NoOp, OpenOrAdjust
from stonks.core.strategy.martingale import MartingaleStrategy
from stonks.core.strategy.streak import StreakObservation, StreakSnapshot


def _ctx(*, count=1, increasing=False, meaningful=True, reversed_=False,
         position=0, price="10.00", equity="1000", multiplier="2.00"):
    return DecisionContext(
        account=AccountState(account_id="acc", equity=D(equity), margin_multiplier=D(multiplier)),
        position=PositionState(symbol="MKL", qty=position),
        observation=StreakObservation(
            meaningful=meaningful,
            continued=meaningful and not reversed_,
            reversed=reversed_,
            streak=StreakSnapshot(start_price=D("9.00"), count=count, increasing=increasing),
        ),
        price=D(price),
    )


def test_reference_sizing_scenario():
    s = MartingaleStrategy()
    assert s.target_value(count=1, buying_power=D("2000"), price=D("10.00")) == D("400")
    assert s.target_qty(count=1, buying_power=D("2000"), price=D("10.00")) == 40


def test_decreasing_streak_buys():
    d = MartingaleStrategy().decide(_ctx(count=1, increasing=False))
    assert d == OpenOrAdjust(target_qty=40, delta=40)


def test_increasing_streak_targets_negative_quantity():
    d = MartingaleStrategy().decide(_ctx(count=1, increasing=True, position=5))
    assert d == OpenOrAdjust(target_qty=-40, delta=-45)


def test_bet_doubles_with_streak_length():
    s = MartingaleStrategy()
    qtys = [s.target_qty(count=c, buying_power=D("2000"), price=D("10")) for c in range(4)]
    assert qtys == [20, 40, 80, 160]


@pytest.mark.parametrize("count", range(0, 12))
def test_target_value_never_exceeds_buying_power_headroom(count):
    s = MartingaleStrategy()
    bp, price = D("2000"), D("10.00")
    assert s.target_value(count=count, buying_power=bp, price=price) <= bp - price


def test_long_streak_is_capped_one_share_below_buying_power():
    s = MartingaleStrategy()
    assert s.target_qty(count=5, buying_power=D("2000"), price=D("10")) == 199


def test_target_qty_rounds_toward_zero():
    s = MartingaleStrategy()
    # 0.2 * 2000 / 30.01 = 13.32...
    assert s.target_qty(count=1, buying_power=D("2000"), price=D("30.01")) == 13


def test_small_move_is_noop():
    d = MartingaleStrategy().decide(_ctx(meaningful=False))
    assert isinstance(d, NoOp)


def test_reversal_with_position_flattens():
    d = MartingaleStrategy().decide(_ctx(count=0, reversed_=True, position=12))
    assert isinstance(d, FlattenPosition)
    assert d.target_qty == 0


def test_reversal_when_flat_does_not_open_new_bet():
    d = MartingaleStrategy().decide(_ctx(count=0, reversed_=True, position=0))
    assert isinstance(d, NoOp)


def test_zero_delta_is_noop():
    d = MartingaleStrategy().decide(_ctx(count=1, increasing=False, position=40))
    assert d == NoOp("no-op order requested")


def test_no_buying_power_headroom_is_noop():
    d = MartingaleStrategy().decide(_ctx(equity="5", multiplier="1", price="10"))
    assert isinstance(d, NoOp)


def test_custom_base_bet():
    s = MartingaleStrategy(base_bet=D("0.25"))
    assert s.target_qty(count=0, buying_power=D("2000"), price=D("10")) == 50


@pytest.mark.parametrize("bad", ["0", "-0.1", "1.5"])
def test_base_bet_out_of_range_rejected(bad):
    with pytest.raises(ValueError):
        MartingaleStrategy(base_bet=D(bad))
