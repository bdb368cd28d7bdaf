from LatticeLib.Base.BaseLayer import MarketEnvironment, PricingEngine, OptionFunction
from LatticeLib.Base.Utils import MathUtils, BarrierFormulas
from LatticeLib.Instruments.VanillaOption import EuropeanVanillaOption
from LatticeLib.Instruments.BarrierOption import ConstantContinuousBarrierKnockoutFunction, BarrierType

import numpy as np
from typing import Dict, Any


class AnalyticBSEngine(PricingEngine):
    """
    使用 Black-Scholes 解析公式定价，用来校验树的结果。
    - 欧式香草: BSM (含连续分红率 q)，并提供精确 Greeks。
    - 恒定障碍敲出: 连续观察解析解，要求 Rebate 每层相同。
    """
    # --- 内部辅助函数：计算 d1, d2 ---
    def _calc_d_params(self, S, K, T, r, q, sigma):
        d1 = (np.log(S / K) + (r - q + 0.5 * sigma ** 2) * T) / (sigma * np.sqrt(T))
        d2 = d1 - sigma * np.sqrt(T)
        return d1, d2

    def _check_market(self, option, market):
        if option.time_to_expiry <= 0 or market.sigma <= 0:
            raise ValueError("AnalyticBSEngine needs positive time to expiry and volatility.")

    def calculate(self, option: OptionFunction, market: MarketEnvironment, **kwargs) -> Dict[str, Any]:
        if isinstance(option, EuropeanVanillaOption):
            return {'price': self._vanilla_price(option, market)}
        elif isinstance(option, ConstantContinuousBarrierKnockoutFunction):
            return {'price': self._knock_out_price(option, market)}
        else:
            raise ValueError("BS Engine only supports European vanilla options or constant barrier knock-outs.")

    def _vanilla_price(self, option, market):
        self._check_market(option, market)
        S, K, T, r, q, sigma = market.S, option.strike, option.time_to_expiry, market.r, market.q, market.sigma
        d1, d2 = self._calc_d_params(S, K, T, r, q, sigma)
        N = MathUtils.norm_cdf
        if option.put_call.is_call():
            price = S * np.exp(-q * T) * N(d1) - K * np.exp(-r * T) * N(d2)
        else:
            price = K * np.exp(-r * T) * N(-d2) - S * np.exp(-q * T) * N(-d1)
        return float(price)

    def _knock_out_price(self, option, market):
        if option.barrier_type.is_knock_in():
            raise ValueError(f"{option.barrier_type.name} is not evaluated by a knock-out function")
        if len(set(option.rebate)) != 1:
            raise ValueError("Analytic barrier price needs a flat rebate schedule.")
        self._check_market(option, market)

        return BarrierFormulas.knock_out(
            market.S, option.strike, option.barrier_level, option.time_to_expiry,
            market.r, market.sigma,
            rebate=option.get_rebate(0),
            q=market.q,
            is_call=option.put_call.is_call(),
            is_up=option.barrier_type is BarrierType.UP_AND_OUT)

    # --- 精确 Greeks (仅欧式香草，其他回退到数值方法) ---

    def get_delta(self, option, market, **kwargs):
        if isinstance(option, EuropeanVanillaOption):
            self._check_market(option, market)
            S, K, T, r, q, sigma = market.S, option.strike, option.time_to_expiry, market.r, market.q, market.sigma
            d1, _ = self._calc_d_params(S, K, T, r, q, sigma)
            if option.put_call.is_call():
                return float(np.exp(-q * T) * MathUtils.norm_cdf(d1))
            else:
                return float(np.exp(-q * T) * (MathUtils.norm_cdf(d1) - 1))

        return super().get_delta(option, market, **kwargs)

    def get_gamma(self, option, market, **kwargs):
        if isinstance(option, EuropeanVanillaOption):
            self._check_market(option, market)
            S, K, T, r, q, sigma = market.S, option.strike, option.time_to_expiry, market.r, market.q, market.sigma
            d1, _ = self._calc_d_params(S, K, T, r, q, sigma)
            return float(np.exp(-q * T) * MathUtils.norm_pdf(d1) / (S * sigma * np.sqrt(T)))

        return super().get_gamma(option, market, **kwargs)

    def get_vega(self, option, market, **kwargs):
        if isinstance(option, EuropeanVanillaOption):
            # 单位: per 1% vol
            self._check_market(option, market)
            S, K, T, r, q, sigma = market.S, option.strike, option.time_to_expiry, market.r, market.q, market.sigma
            d1, _ = self._calc_d_params(S, K, T, r, q, sigma)
            return float(S * np.exp(-q * T) * MathUtils.norm_pdf(d1) * np.sqrt(T) / 100)

        return super().get_vega(option, market, **kwargs)

    def get_rho(self, option, market, **kwargs):
        if isinstance(option, EuropeanVanillaOption):
            # 单位: per 1% rate
            self._check_market(option, market)
            S, K, T, r, q, sigma = market.S, option.strike, option.time_to_expiry, market.r, market.q, market.sigma
            _, d2 = self._calc_d_params(S, K, T, r, q, sigma)
            if option.put_call.is_call():
                rho = K * T * np.exp(-r * T) * MathUtils.norm_cdf(d2)
            else:
                rho = -K * T * np.exp(-r * T) * MathUtils.norm_cdf(-d2)
            return float(rho / 100)

        return super().get_rho(option, market, **kwargs)
