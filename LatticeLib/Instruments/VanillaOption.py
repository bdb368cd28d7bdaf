import numpy as np
from dataclasses import dataclass
from typing import Union

from ..Base.BaseLayer import OptionFunction, PutCall
from ..Base.Utils import ArgUtils


@dataclass(frozen=True)
class VanillaOptionFunction(OptionFunction):
    """
    香草期权在树上的公共部分：条款 + 到期 payoff。
    Payoff = max(S - K, 0) for Call
    Payoff = max(K - S, 0) for Put
    """
    strike: float
    time_to_expiry: float
    put_call: PutCall
    number_of_steps: int

    def __post_init__(self):
        for name in ('strike', 'time_to_expiry', 'put_call'):
            ArgUtils.not_none(getattr(self, name), name)
        object.__setattr__(self, 'strike', float(self.strike))
        object.__setattr__(self, 'time_to_expiry', float(self.time_to_expiry))
        object.__setattr__(self, 'put_call', PutCall.parse(self.put_call))
        object.__setattr__(self, 'number_of_steps', ArgUtils.check_steps(self.number_of_steps))

    @classmethod
    def of(cls, strike: float, time_to_expiry: float, put_call: Union[PutCall, str], number_of_steps: int):
        return cls(strike, time_to_expiry, put_call, number_of_steps)

    def payoff_at_expiry(self, state_values) -> np.ndarray:
        return self.intrinsic_value(state_values)


@dataclass(frozen=True)
class EuropeanVanillaOption(VanillaOptionFunction):
    """最基础的欧式香草期权，中间层直接用折现期望值"""


@dataclass(frozen=True)
class AmericanVanillaOption(VanillaOptionFunction):
    """美式香草期权：每一层都比较继续持有和立即行权"""

    def next_option_values(self, step: int, state_values, continuation_values) -> np.ndarray:
        return np.maximum(continuation_values, self.intrinsic_value(state_values))
