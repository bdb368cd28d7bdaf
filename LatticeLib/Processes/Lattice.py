import numpy as np
from abc import ABC, abstractmethod
from typing import Tuple


class LatticeSpecification(ABC):
    """
    几何布朗运动在重组树上的离散化 (无状态的公式集)。

    约定 (所有子类共用):
    - 第 i 层有 (branching - 1) * i + 1 个节点，价格从低到高排列；
    - 节点 j 的对数价格 = ln S0 + (j - (branching - 1) * i / 2) * node_spacing；
    - 节点 j 的后继是下一层的 j, j+1, ..., j + branching - 1 (从低到高)。
    """
    branching: int = 3

    @abstractmethod
    def get_parameters(self, volatility: float, rate: float, dividend: float, dt: float) -> Tuple[float, np.ndarray]:
        """
        返回 (node_spacing, probabilities)。
        probabilities 长度为 branching，顺序与后继节点一致 (down, [middle,] up)。
        """
        pass

    def number_of_nodes(self, step: int) -> int:
        return (self.branching - 1) * step + 1

    def _checked(self, node_spacing: float, probabilities) -> Tuple[float, np.ndarray]:
        probs = np.asarray(probabilities, dtype=float)
        if np.any(probs < 0.0) or np.any(probs > 1.0):
            raise ValueError(
                f"{type(self).__name__}: transition probabilities {probs} out of [0, 1], "
                "increase the number of steps")
        return node_spacing, probs

    @staticmethod
    def _check_inputs(volatility, dt):
        if volatility <= 0:
            raise ValueError("volatility must be positive.")
        if dt <= 0:
            raise ValueError("time step must be positive.")

    def __repr__(self):
        return f"{type(self).__name__}()"


class CoxRossRubinsteinBinomial(LatticeSpecification):
    """
    CRR 二叉树: u = exp(sigma*sqrt(dt)), d = 1/u
    p = (exp((r-q)*dt) - d) / (u - d)
    """
    branching = 2

    def get_parameters(self, volatility, rate, dividend, dt):
        self._check_inputs(volatility, dt)
        dx = volatility * np.sqrt(dt)
        u = np.exp(dx)
        d = 1.0 / u
        p = (np.exp((rate - dividend) * dt) - d) / (u - d)
        # 相邻节点相差一上一下，对数间距 2*dx
        return self._checked(2.0 * dx, [1.0 - p, p])


class CoxRossRubinsteinTrinomial(LatticeSpecification):
    """
    Boyle / CRR 三叉树: dx = sigma*sqrt(2*dt)，中间节点价格不变。
    """
    branching = 3

    def get_parameters(self, volatility, rate, dividend, dt):
        self._check_inputs(volatility, dt)
        dx = volatility * np.sqrt(2.0 * dt)
        a = np.exp(0.5 * (rate - dividend) * dt)
        e_up = np.exp(volatility * np.sqrt(0.5 * dt))
        e_dn = 1.0 / e_up

        p_up = ((a - e_dn) / (e_up - e_dn)) ** 2
        p_dn = ((e_up - a) / (e_up - e_dn)) ** 2
        p_mid = 1.0 - p_up - p_dn
        return self._checked(dx, [p_dn, p_mid, p_up])


class TrigeorgisTrinomial(LatticeSpecification):
    """
    Trigeorgis 对数变换三叉树: dx = sigma*sqrt(3*dt)，
    用 nu = r - q - 0.5*sigma^2 匹配前两阶矩。
    """
    branching = 3

    def get_parameters(self, volatility, rate, dividend, dt):
        self._check_inputs(volatility, dt)
        dx = volatility * np.sqrt(3.0 * dt)
        nu = rate - dividend - 0.5 * volatility ** 2
        m2 = (volatility ** 2 * dt + nu ** 2 * dt ** 2) / dx ** 2
        m1 = nu * dt / dx

        p_up = 0.5 * (m2 + m1)
        p_dn = 0.5 * (m2 - m1)
        p_mid = 1.0 - m2
        return self._checked(dx, [p_dn, p_mid, p_up])
