import dataclasses

import numpy as np
import pytest

from LatticeLib.Base.BaseLayer import PutCall
from LatticeLib.Instruments.BarrierOption import (
    BarrierKnockoutFunction,
    BarrierType,
    ConstantContinuousBarrierKnockoutFunction,
)


def make(put_call='call', n=4, barrier_type=BarrierType.UP_AND_OUT, level=150.0, rebate=None, strike=100.0):
    if rebate is None:
        rebate = [0.0] * (n + 1)
    return ConstantContinuousBarrierKnockoutFunction.of(strike, 1.0, put_call, n, barrier_type, level, rebate)


class TestConstruction:

    def test_valid_instance(self, up_and_out_call):
        assert up_and_out_call.strike == 100.0
        assert up_and_out_call.time_to_expiry == 1.0
        assert up_and_out_call.number_of_steps == 2
        assert up_and_out_call.barrier_type is BarrierType.UP_AND_OUT
        assert up_and_out_call.barrier_level == 120.0
        assert isinstance(up_and_out_call, BarrierKnockoutFunction)

    @pytest.mark.parametrize("n", [1, 2, 10, 1000])
    def test_matching_rebate_length_succeeds(self, n):
        fn = make(n=n, rebate=np.linspace(0.0, 1.0, n + 1))
        assert len(fn.rebate) == n + 1

    @pytest.mark.parametrize("n", [0, -1, -10])
    def test_non_positive_steps_rejected(self, n):
        with pytest.raises(ValueError, match="number of steps"):
            ConstantContinuousBarrierKnockoutFunction.of(100.0, 1.0, 'call', n, 'UP_AND_OUT', 120.0, [0.0])

    def test_non_integral_steps_rejected(self):
        with pytest.raises(ValueError, match="integer"):
            make(n=2.5, rebate=[0.0, 0.0, 0.0])

    @pytest.mark.parametrize("length", [0, 2, 4, 5])
    def test_wrong_rebate_length_rejected(self, length):
        with pytest.raises(ValueError, match=r"number_of_steps \+ 1"):
            make(n=2, rebate=[1.0] * length)

    def test_missing_barrier_type_rejected(self):
        with pytest.raises(ValueError, match="barrier_type"):
            make(barrier_type=None)

    def test_unknown_barrier_type_rejected(self):
        with pytest.raises(ValueError, match="barrier type"):
            make(barrier_type='sideways_and_out')

    def test_unknown_put_call_rejected(self):
        with pytest.raises(ValueError, match="put/call"):
            make(put_call='straddle')

    def test_missing_rebate_rejected(self):
        with pytest.raises(ValueError, match="rebate"):
            ConstantContinuousBarrierKnockoutFunction.of(100.0, 1.0, 'call', 2, 'UP_AND_OUT', 120.0, None)

    @pytest.mark.parametrize("rebate", [5.0, 'abc', [0.0, 'x', 1.0]])
    def test_non_sequence_rebate_rejected(self, rebate):
        with pytest.raises(ValueError, match="rebate"):
            ConstantContinuousBarrierKnockoutFunction.of(100.0, 1.0, 'call', 2, 'UP_AND_OUT', 120.0, rebate)

    def test_array_rebate_accepted(self):
        option = ConstantContinuousBarrierKnockoutFunction.of(
            100.0, 1.0, 'call', 2, 'UP_AND_OUT', 120.0, np.array([0.0, 1.0, 2.0]))
        assert option.rebate == (0.0, 1.0, 2.0)

    @pytest.mark.parametrize("text, expected", [
        ('up-and-out', BarrierType.UP_AND_OUT),
        ('Down_And_Out', BarrierType.DOWN_AND_OUT),
        ('uo', BarrierType.UP_AND_OUT),
        ('DI', BarrierType.DOWN_AND_IN),
        ('up and in', BarrierType.UP_AND_IN),
    ])
    def test_barrier_type_text_is_parsed(self, text, expected):
        assert make(barrier_type=text).barrier_type is expected

    def test_is_immutable(self, up_and_out_call):
        with pytest.raises(dataclasses.FrozenInstanceError):
            up_and_out_call.barrier_level = 130.0

    def test_value_semantics(self, up_and_out_call):
        other = ConstantContinuousBarrierKnockoutFunction.of(
            100, 1, PutCall.CALL, 2, BarrierType.UP_AND_OUT, 120, (0, 0, 5))
        assert other == up_and_out_call
        assert hash(other) == hash(up_and_out_call)

    def test_replace_revalidates(self, up_and_out_call):
        with pytest.raises(ValueError):
            dataclasses.replace(up_and_out_call, number_of_steps=3)


class TestSign:

    @pytest.mark.parametrize("put_call", ['call', 'Call', 'c', PutCall.CALL])
    def test_call_sign(self, put_call):
        assert make(put_call=put_call).sign == 1.0

    @pytest.mark.parametrize("put_call", ['put', 'PUT', 'p', PutCall.PUT])
    def test_put_sign(self, put_call):
        assert make(put_call=put_call).sign == -1.0


class TestPerStepQueries:

    def test_barrier_level_is_constant(self):
        fn = make(n=10, level=133.3)
        levels = {fn.get_barrier_level(step) for step in range(11)}
        assert levels == {133.3}

    def test_rebate_pass_through(self):
        schedule = [0.1, 0.2, 0.30000000000000004, 7.0, 1e-9]
        fn = make(n=4, rebate=schedule)
        for step, expected in enumerate(schedule):
            assert fn.get_rebate(step) == expected

    @pytest.mark.parametrize("step", [-1, 3, 100])
    def test_out_of_range_rebate_raises(self, up_and_out_call, step):
        with pytest.raises(IndexError):
            up_and_out_call.get_rebate(step)

    def test_non_integer_step_raises(self, up_and_out_call):
        with pytest.raises(TypeError):
            up_and_out_call.get_rebate(1.0)

    def test_out_of_range_next_values_raises(self, up_and_out_call):
        with pytest.raises(IndexError):
            up_and_out_call.next_option_values(3, [100.0], [1.0])


class TestPayoff:

    def test_call_terminal_payoff(self):
        fn = make(put_call='call', level=1e6)
        np.testing.assert_array_equal(fn.payoff_at_expiry([120.0, 80.0]), [20.0, 0.0])

    def test_put_terminal_payoff(self):
        fn = make(put_call='put', barrier_type='down_and_out', level=1e-6)
        np.testing.assert_array_equal(fn.payoff_at_expiry([80.0, 120.0]), [20.0, 0.0])

    def test_up_and_out_tie_is_breach(self):
        fn = make(n=4, level=150.0, rebate=[1.0, 2.0, 3.0, 4.0, 5.0])
        breached = fn.is_breached(2, [149.999, 150.0, 150.001])
        np.testing.assert_array_equal(breached, [False, True, True])
        values = fn.next_option_values(2, [149.999, 150.0, 150.001], np.array([9.0, 9.0, 9.0]))
        np.testing.assert_array_equal(values, [9.0, 3.0, 3.0])

    def test_down_and_out_tie_is_breach(self):
        fn = make(put_call='put', n=2, barrier_type='DOWN_AND_OUT', level=80.0, rebate=[1.0, 1.5, 2.0])
        np.testing.assert_array_equal(fn.is_breached(0, [79.0, 80.0, 81.0]), [True, True, False])
        np.testing.assert_array_equal(fn.payoff_at_expiry([70.0, 80.0, 90.0]), [2.0, 2.0, 10.0])

    def test_concrete_scenario(self, up_and_out_call):
        fn = up_and_out_call
        assert fn.get_rebate(2) == 5.0
        assert fn.get_barrier_level(0) == fn.get_barrier_level(1) == fn.get_barrier_level(2) == 120.0
        # 130 > 120: knocked out, rebate instead of the vanilla payoff of 30
        assert fn.payoff_at_expiry([130.0])[0] == 5.0
        assert fn.payoff_at_expiry([110.0])[0] == 10.0

    def test_interior_survivor_keeps_continuation(self, up_and_out_call):
        values = up_and_out_call.next_option_values(1, [90.0, 119.0], np.array([0.3, 4.2]))
        np.testing.assert_array_equal(values, [0.3, 4.2])

    @pytest.mark.parametrize("barrier_type", ['DOWN_AND_IN', 'UP_AND_IN'])
    def test_knock_in_not_evaluated(self, barrier_type):
        fn = make(barrier_type=barrier_type)
        assert fn.barrier_type.is_knock_in()
        with pytest.raises(ValueError, match="knock-out"):
            fn.payoff_at_expiry([100.0])
