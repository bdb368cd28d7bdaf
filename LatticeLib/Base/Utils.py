import numbers
from collections.abc import Iterable

import numpy as np
from scipy.stats import norm

# ==========================================================
# ======= 1. Math Utilities (数学工具库) ===================
# ==========================================================
class MathUtils:
    """提供底层的数学函数封装，便于未来替换实现或统一管理精度"""

    @staticmethod
    def norm_cdf(x):
        """标准正态分布累积概率函数 N(x)"""
        return norm.cdf(x)

    @staticmethod
    def norm_pdf(x):
        """标准正态分布概率密度函数 n(x)"""
        return norm.pdf(x)

# ==========================================================
# ======= 2. Argument Checks (参数校验) =====================
# ==========================================================
class ArgUtils:
    """构造期校验。违反即抛 ValueError，绝不静默修正。"""

    @staticmethod
    def check_true(condition: bool, message: str):
        if not condition:
            raise ValueError(message)

    @staticmethod
    def not_none(value, name: str):
        if value is None:
            raise ValueError(f"{name} must not be None")
        return value

    @staticmethod
    def check_steps(number_of_steps) -> int:
        ArgUtils.not_none(number_of_steps, 'number_of_steps')
        is_int = isinstance(number_of_steps, numbers.Integral) and not isinstance(number_of_steps, bool)
        ArgUtils.check_true(is_int, f"the number of steps should be an integer, got {number_of_steps!r}")
        ArgUtils.check_true(number_of_steps > 0, "the number of steps should be positive")
        return int(number_of_steps)

    @staticmethod
    def check_values(values, name: str) -> tuple:
        """一串数值 (list / tuple / ndarray)，标量和字符串都不接受"""
        ArgUtils.not_none(values, name)
        is_seq = isinstance(values, Iterable) and not isinstance(values, (str, bytes))
        ArgUtils.check_true(is_seq, f"{name} should be a sequence of numbers, got {values!r}")
        try:
            return tuple(float(x) for x in values)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{name} should only contain numbers: {e}") from e

    @staticmethod
    def check_step_index(step, number_of_steps: int) -> int:
        """时间层下标必须落在 [0, number_of_steps]，负下标不做回绕"""
        if not isinstance(step, numbers.Integral) or isinstance(step, bool):
            raise TypeError(f"step must be an integer, got {step!r}")
        if step < 0 or step > number_of_steps:
            raise IndexError(f"step {step} is outside [0, {number_of_steps}]")
        return int(step)

# ==========================================================
# ======= 3. Barrier Analytical Solution ===================
# ==========================================================
class BarrierFormulas:
    """
    单障碍敲出期权的连续观察解析解 (Reiner & Rubinstein 1991, A-F 因子)。
    Rebate 在触碰障碍时立即支付 (F 项)，与树上的敲出规则一致。
    """

    @staticmethod
    def knock_out(S, K, H, T, r, sigma, rebate=0.0, q=0.0, is_call=True, is_up=True):
        """
        参数:
        S      : 标的资产当前价格
        K      : 行权价
        H      : 障碍价格
        T      : 剩余期限 (年)
        r      : 无风险利率
        sigma  : 波动率
        rebate : 敲出补偿金，触碰即付
        q      : 连续分红率
        """
        # --- 1. 已经敲出 ---
        if (is_up and S >= H) or (not is_up and S <= H):
            return float(rebate)

        # --- 2. 基础参数 ---
        N = MathUtils.norm_cdf
        b = r - q
        sqrt_T = np.sqrt(T)
        vol = sigma * sqrt_T
        phi = 1.0 if is_call else -1.0
        eta = -1.0 if is_up else 1.0

        mu = (b - 0.5 * sigma**2) / sigma**2
        lam_sq = mu**2 + 2.0 * r / sigma**2
        ArgUtils.check_true(lam_sq >= 0.0,
                            f"barrier formula undefined for r={r}, q={q}, sigma={sigma} (mu^2 + 2r/sigma^2 < 0)")
        lam = np.sqrt(lam_sq)

        x1 = np.log(S / K) / vol + (1.0 + mu) * vol
        x2 = np.log(S / H) / vol + (1.0 + mu) * vol
        y1 = np.log(H**2 / (S * K)) / vol + (1.0 + mu) * vol
        y2 = np.log(H / S) / vol + (1.0 + mu) * vol
        z = np.log(H / S) / vol + lam * vol

        carry = np.exp((b - r) * T)
        disc = np.exp(-r * T)
        hs_2mu1 = (H / S) ** (2.0 * (mu + 1.0))
        hs_2mu = (H / S) ** (2.0 * mu)

        # --- 3. A-D: 期权部分; F: 触碰即付的 rebate ---
        A = phi * S * carry * N(phi * x1) - phi * K * disc * N(phi * (x1 - vol))
        B = phi * S * carry * N(phi * x2) - phi * K * disc * N(phi * (x2 - vol))
        C = phi * S * carry * hs_2mu1 * N(eta * y1) - phi * K * disc * hs_2mu * N(eta * (y1 - vol))
        D = phi * S * carry * hs_2mu1 * N(eta * y2) - phi * K * disc * hs_2mu * N(eta * (y2 - vol))
        F = rebate * ((H / S) ** (mu + lam) * N(eta * z)
                      + (H / S) ** (mu - lam) * N(eta * (z - 2.0 * lam * vol)))

        # --- 4. 按类型组合 ---
        strike_above = K > H
        if is_call and not is_up:       # down-and-out call
            base = (A - C) if strike_above else (B - D)
        elif is_call and is_up:         # up-and-out call
            base = 0.0 if strike_above else (A - B + C - D)
        elif not is_up:                 # down-and-out put
            base = (A - B + C - D) if strike_above else 0.0
        else:                           # up-and-out put
            base = (B - D) if strike_above else (A - C)

        return float(max(base + F, 0.0))
