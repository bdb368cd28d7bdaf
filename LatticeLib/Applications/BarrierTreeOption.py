import numpy as np
import pandas as pd
from loguru import logger
from tqdm import tqdm
from typing import Dict, Any, Iterable

from LatticeLib.Base.Config import BarrierTreeConfig
from LatticeLib.PricingEngines.BS_Engine import AnalyticBSEngine
from LatticeLib.PricingEngines.Tree_Engine import TreeEngine

GREEK_NAMES = ('delta', 'gamma', 'vega', 'theta', 'rho')


def _analytic_price(option, market):
    # 解析解只覆盖每层相同的 rebate
    if len(set(option.rebate)) != 1:
        return np.nan
    return AnalyticBSEngine().get_price(option, market)


def price_barrier_option(config: BarrierTreeConfig) -> Dict[str, Any]:
    """
    单个敲出期权的树定价 + 解析解对照 + 数值 Greeks。
    """
    option = config.to_option()
    market = config.to_market()
    engine = TreeEngine(config.to_lattice())

    result = {
        'tree_price': engine.get_price(option, market),
        'analytic_price': _analytic_price(option, market),
    }
    result['greeks'] = {
        'delta': engine.get_delta(option, market),
        'gamma': engine.get_gamma(option, market),
        'vega': engine.get_vega(option, market),
        'theta': engine.get_theta(option, market),
        'rho': engine.get_rho(option, market),
    }
    logger.info(
        f"{option.barrier_type.name} {option.put_call.name} K={option.strike} H={option.barrier_level} "
        f"steps={option.number_of_steps}: tree={result['tree_price']:.6f}, analytic={result['analytic_price']:.6f}")
    return result


def convergence_table(config: BarrierTreeConfig, steps: Iterable[int]) -> pd.DataFrame:
    """
    不同步数下的树价格与解析解的差。
    逐层 rebate (列表) 的长度绑定了步数，因此这里只接受标量 rebate。
    """
    if isinstance(config.rebate, list):
        raise ValueError("Convergence study needs a scalar rebate.")

    rows = []
    analytic = None
    for n in tqdm(list(steps), desc="Tree convergence", mininterval=1.0):
        cfg_n = config.model_copy(update={'number_of_steps': int(n)})
        option = cfg_n.to_option()
        market = cfg_n.to_market()
        if analytic is None:
            analytic = _analytic_price(option, market)
        tree = TreeEngine(cfg_n.to_lattice()).get_price(option, market)
        rows.append({'Steps': int(n), 'Tree': tree, 'Analytic': analytic, 'Error': tree - analytic})

    return pd.DataFrame(rows, columns=['Steps', 'Tree', 'Analytic', 'Error'])


def run_barrier_tree_option(sheet):
    """
    敲出期权树定价入口。
    Excel 布局假设：
    B1: S, B2: K, B3: H, B4: T, B5: r, B6: sigma, B7: Rebate,
    B8: Call/Put, B9: Barrier Type, B10: Steps, B11: q, B12: Lattice
    输出: B14:C14 价格 (Tree, Analytic), B16:B20 Greeks
    """
    config = BarrierTreeConfig.from_sheet_values(sheet.range('B1:B12').value)
    result = price_barrier_option(config)

    sheet.range('B14').value = [float(result['tree_price']), float(result['analytic_price'])]
    sheet.range('B16').value = [[float(result['greeks'][name])] for name in GREEK_NAMES]


def run_barrier_convergence(sheet):
    """
    收敛性检查入口。
    参数同 run_barrier_tree_option，D 列从 D1 开始向下填写步数，结果写到 F1。
    """
    config = BarrierTreeConfig.from_sheet_values(sheet.range('B1:B12').value)
    steps = [int(n) for n in sheet.range('D1').options(ndim=1, expand='down').value]

    table = convergence_table(config, steps)

    output_cell = 'F1'
    sheet.range(output_cell).expand('table').clear_contents()
    sheet.range(output_cell).options(index=False).value = table
