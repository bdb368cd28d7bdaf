from LatticeLib.Base.BaseLayer import PricingEngine, OptionFunction, MarketEnvironment
from LatticeLib.Processes.Lattice import LatticeSpecification, CoxRossRubinsteinTrinomial

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from loguru import logger
from typing import Dict, Any, Optional


class TreeEngine(PricingEngine):
    """
    重组树 backward induction 引擎 (lattice walker)。
    职责：
    1. 按 LatticeSpecification 生成每一层的资产价格。
    2. 到期层调用 option.payoff_at_expiry。
    3. 从 number_of_steps - 1 倒推到 0：先算折现期望值，再交给
       option.next_option_values 决定节点最终价值 (敲出、提前行权等)。

    步数和期限来自期权函数本身，市场参数来自 MarketEnvironment。
    """

    def __init__(self, lattice: Optional[LatticeSpecification] = None):
        self.lattice = lattice if lattice is not None else CoxRossRubinsteinTrinomial()

    def _build_state_values(self, spot: float, step: int, node_spacing: float) -> np.ndarray:
        k = self.lattice.branching
        j = np.arange(self.lattice.number_of_nodes(step))
        return spot * np.exp(node_spacing * (j - 0.5 * (k - 1) * step))

    def _walk_backward(self, option: OptionFunction, market: MarketEnvironment) -> np.ndarray:
        n = option.number_of_steps
        T = option.time_to_expiry
        if T <= 0:
            raise ValueError("time to expiry must be positive.")

        dt = T / n
        node_spacing, probs = self.lattice.get_parameters(market.sigma, market.r, market.q, dt)
        df = np.exp(-market.r * dt)
        k = self.lattice.branching
        logger.debug(f"TreeEngine: {self.lattice!r}, steps={n}, dt={dt:.6f}, probs={probs}")

        values = option.payoff_at_expiry(self._build_state_values(market.S, n, node_spacing))
        for step in range(n - 1, -1, -1):
            # 节点 j 的后继是 j..j+k-1: 滑动窗口正好对齐
            windows = sliding_window_view(values, k)
            continuation = df * (windows @ probs)
            state_values = self._build_state_values(market.S, step, node_spacing)
            values = option.next_option_values(step, state_values, continuation)

        return values

    def calculate(self, option: OptionFunction, market: MarketEnvironment, **kwargs) -> Dict[str, Any]:
        values = self._walk_backward(option, market)
        return {'price': float(values[0])}
