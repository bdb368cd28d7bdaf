import numpy as np
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple, Union

from ..Base.BaseLayer import OptionFunction, PutCall
from ..Base.Utils import ArgUtils


class BarrierType(Enum):
    DOWN_AND_OUT = 'down_and_out'
    UP_AND_OUT = 'up_and_out'
    DOWN_AND_IN = 'down_and_in'
    UP_AND_IN = 'up_and_in'

    @classmethod
    def parse(cls, value: Union['BarrierType', str]) -> 'BarrierType':
        """接受 BarrierType 或文本 ('up-and-out', 'UP_AND_OUT', 'uo' ...)"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace('-', '_').replace(' ', '_')
            key = _BARRIER_ALIASES.get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        raise ValueError(f"Unknown barrier type: {value!r}")

    def is_knock_in(self) -> bool:
        return self in (BarrierType.DOWN_AND_IN, BarrierType.UP_AND_IN)

    def is_down(self) -> bool:
        return self in (BarrierType.DOWN_AND_OUT, BarrierType.DOWN_AND_IN)


_BARRIER_ALIASES = {
    'do': 'down_and_out',
    'uo': 'up_and_out',
    'di': 'down_and_in',
    'ui': 'up_and_in',
}


class BarrierKnockoutFunction(OptionFunction):
    """
    单障碍敲出期权函数 (Single Barrier Knock-out).
    条款:
    - 在第 step 层，若节点价格触碰障碍 (等号也算触碰)，节点价值 = 当层 Rebate。
    - 到期层未触碰: max(sign * (S - K), 0)。
    - 中间层未触碰: walker 给出的折现期望值。

    障碍水平和 Rebate 都是按时间层查询的，由子类决定具体规则；
    walker 只通过这两个接口工作，不关心拿到的是哪一种子类。
    """

    @abstractmethod
    def get_barrier_level(self, step: int) -> float:
        """第 step 层的障碍水平"""
        pass

    @abstractmethod
    def get_rebate(self, step: int) -> float:
        """第 step 层触碰障碍时立即支付的金额"""
        pass

    def is_breached(self, step: int, state_values) -> np.ndarray:
        S = np.asarray(state_values, dtype=float)
        level = self.get_barrier_level(step)
        if self.barrier_type is BarrierType.UP_AND_OUT:
            return S >= level
        if self.barrier_type is BarrierType.DOWN_AND_OUT:
            return S <= level
        # TODO: knock-in types need a vanilla-minus-knockout walker before they can be priced here
        raise ValueError(f"{self.barrier_type.name} is not evaluated by a knock-out function")

    def payoff_at_expiry(self, state_values) -> np.ndarray:
        n = self.number_of_steps
        rebate = self.get_rebate(n)
        return np.where(self.is_breached(n, state_values), rebate, self.intrinsic_value(state_values))

    def next_option_values(self, step: int, state_values, continuation_values) -> np.ndarray:
        rebate = self.get_rebate(step)
        return np.where(self.is_breached(step, state_values), rebate, continuation_values)


@dataclass(frozen=True)
class ConstantContinuousBarrierKnockoutFunction(BarrierKnockoutFunction):
    """
    连续观察、障碍水平恒定的敲出期权函数。
    每一个时间层都检查障碍 (用离散层近似连续观察)，
    Rebate 可以逐层不同，长度必须是 number_of_steps + 1。
    """
    strike: float
    time_to_expiry: float
    put_call: PutCall
    number_of_steps: int
    barrier_type: BarrierType
    barrier_level: float
    rebate: Tuple[float, ...]

    def __post_init__(self):
        for name in ('strike', 'time_to_expiry', 'put_call', 'barrier_type', 'barrier_level', 'rebate'):
            ArgUtils.not_none(getattr(self, name), name)
        # frozen dataclass: 规范化字段只能走 object.__setattr__
        object.__setattr__(self, 'strike', float(self.strike))
        object.__setattr__(self, 'time_to_expiry', float(self.time_to_expiry))
        object.__setattr__(self, 'put_call', PutCall.parse(self.put_call))
        object.__setattr__(self, 'number_of_steps', ArgUtils.check_steps(self.number_of_steps))
        object.__setattr__(self, 'barrier_type', BarrierType.parse(self.barrier_type))
        object.__setattr__(self, 'barrier_level', float(self.barrier_level))
        object.__setattr__(self, 'rebate', ArgUtils.check_values(self.rebate, 'rebate'))
        ArgUtils.check_true(len(self.rebate) == self.number_of_steps + 1,
                            "the size of rebate should be number_of_steps + 1")

    @classmethod
    def of(cls,
           strike: float,
           time_to_expiry: float,
           put_call: Union[PutCall, str],
           number_of_steps: int,
           barrier_type: Union[BarrierType, str],
           barrier_level: float,
           rebate: Sequence[float]) -> 'ConstantContinuousBarrierKnockoutFunction':
        """
        Obtains an instance.

        sign 由 put_call 推导 (call: +1, put: -1)，不接受直接传入。
        参数非法时抛 ValueError，实例不会被创建。
        """
        return cls(strike, time_to_expiry, put_call, number_of_steps, barrier_type, barrier_level, rebate)

    def get_barrier_level(self, step: int) -> float:
        return self.barrier_level

    def get_rebate(self, step: int) -> float:
        return self.rebate[ArgUtils.check_step_index(step, self.number_of_steps)]
