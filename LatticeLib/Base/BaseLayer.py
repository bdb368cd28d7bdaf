import numpy as np
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Any, Union
from abc import ABC, abstractmethod

# ==========================================================
# ======= 1. Put / Call (期权方向) ==========================
# ==========================================================
class PutCall(Enum):
    CALL = 'call'
    PUT = 'put'

    @classmethod
    def parse(cls, value: Union['PutCall', str]) -> 'PutCall':
        """
        接受 PutCall 本身或文本 ('call', 'Put', 'C', 'p')。
        其他输入一律报错，不做默认值。
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ('call', 'c'):
                return cls.CALL
            if key in ('put', 'p'):
                return cls.PUT
        raise ValueError(f"Unknown put/call: {value!r}")

    def is_call(self) -> bool:
        return self is PutCall.CALL

    @property
    def sign(self) -> float:
        """+1 for call, -1 for put"""
        return 1.0 if self.is_call() else -1.0


# ==========================================================
# ======= 2. Market Environment (市场环境) =================
# ==========================================================
@dataclass(frozen=True)
class MarketEnvironment:
    """
    不可变的市场环境。
    期限 (time to expiry) 属于合约条款，存放在 OptionFunction 上，不在这里。
    """
    S: float
    r: float
    sigma: float
    q: float = 0.0

    def clone(self, **kwargs):
        """创建一个修改了部分属性的新市场环境"""
        return replace(self, **kwargs)


# ==========================================================
# ======= 3. Option Function (树定价的期权函数) =============
# ==========================================================
class OptionFunction(ABC):
    """
    所有可以在 Lattice 上做 backward induction 的期权函数的父类。
    它只定义合约条款和每一层节点的赋值规则，不知道树是如何构建的。

    子类需要提供: strike, time_to_expiry, put_call, number_of_steps
    """

    @property
    def sign(self) -> float:
        return self.put_call.sign

    def intrinsic_value(self, state_values) -> np.ndarray:
        """max(sign * (S - K), 0)，支持向量化输入"""
        S = np.asarray(state_values, dtype=float)
        return np.maximum(self.sign * (S - self.strike), 0.0)

    @abstractmethod
    def payoff_at_expiry(self, state_values) -> np.ndarray:
        """到期层 (step == number_of_steps) 的节点价值"""
        pass

    def next_option_values(self, step: int, state_values, continuation_values) -> np.ndarray:
        """
        第 step 层的节点价值。
        continuation_values 是 walker 已经折现好的期望值，
        默认 (欧式) 直接返回，子类可以覆盖 (提前行权、敲出等)。
        """
        return continuation_values


# ==========================================================
# ======= 4. Pricing Engine (定价引擎基类) =================
# ==========================================================
class PricingEngine(ABC):
    """
    定价引擎父类。
    定义统一的计算接口，并提供通用的数值 Greeks 计算逻辑。
    """

    @abstractmethod
    def calculate(self, option: OptionFunction, market: MarketEnvironment, **kwargs) -> Dict[str, Any]:
        """
        核心计算方法。
        返回字典: {'price': float, ...}
        """
        pass

    # --- 公共接口 (Public Interface) ---

    def get_price(self, option, market, **kwargs):
        return self.calculate(option, market, **kwargs)['price']

    def get_delta(self, option, market, **kwargs):
        return self._calculate_numerical_delta(option, market, **kwargs)

    def get_gamma(self, option, market, **kwargs):
        return self._calculate_numerical_gamma(option, market, **kwargs)

    def get_vega(self, option, market, **kwargs):
        return self._calculate_numerical_vega(option, market, **kwargs)

    def get_theta(self, option, market, **kwargs):
        return self._calculate_numerical_theta(option, market, **kwargs)

    def get_rho(self, option, market, **kwargs):
        return self._calculate_numerical_rho(option, market, **kwargs)

    # --- 通用数值 Greeks 计算 (Template Method) ---

    def _calculate_numerical_delta(self, option, market, **kwargs):
        dS = market.S * 0.01
        m_up = market.clone(S=market.S + dS)
        m_dn = market.clone(S=market.S - dS)
        return (self.get_price(option, m_up, **kwargs) - self.get_price(option, m_dn, **kwargs)) / (2 * dS)

    def _calculate_numerical_gamma(self, option, market, **kwargs):
        dS = market.S * 0.01
        m_up = market.clone(S=market.S + dS)
        m_dn = market.clone(S=market.S - dS)
        p_up = self.get_price(option, m_up, **kwargs)
        p_mid = self.get_price(option, market, **kwargs)
        p_dn = self.get_price(option, m_dn, **kwargs)
        return (p_up - 2 * p_mid + p_dn) / (dS ** 2)

    def _calculate_numerical_vega(self, option, market, **kwargs):
        # 低波动率时缩小步长，保证 sigma - dVol > 0
        dVol = min(0.01, market.sigma / 2)
        m_up = market.clone(sigma=market.sigma + dVol)
        m_dn = market.clone(sigma=market.sigma - dVol)
        p_up = self.get_price(option, m_up, **kwargs)
        p_dn = self.get_price(option, m_dn, **kwargs)
        return (p_up - p_dn) / (2 * dVol) * 0.01 # per 1% vol

    def _calculate_numerical_theta(self, option, market, **kwargs):
        # 期限在合约上：用 replace 生成新合约，会重新走一遍校验
        # 不足一天的合约同样缩小步长，保证 T - dT > 0
        T = option.time_to_expiry
        dT = min(1/365, T / 2)
        opt_fut = replace(option, time_to_expiry=T - dT)
        opt_pst = replace(option, time_to_expiry=T + dT)
        p_fut = self.get_price(opt_fut, market, **kwargs)
        p_pst = self.get_price(opt_pst, market, **kwargs)
        return (p_fut - p_pst) / (2 * dT) / 365 # per 1 day

    def _calculate_numerical_rho(self, option, market, **kwargs):
        dR = 0.01
        m_up = market.clone(r=market.r + dR)
        m_dn = market.clone(r=market.r - dR)
        p_up = self.get_price(option, m_up, **kwargs)
        p_dn = self.get_price(option, m_dn, **kwargs)
        return (p_up - p_dn) / 2
