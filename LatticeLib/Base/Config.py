from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Sequence, Tuple, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from LatticeLib.Base.BaseLayer import MarketEnvironment, PutCall
from LatticeLib.Instruments.BarrierOption import BarrierType, ConstantContinuousBarrierKnockoutFunction
from LatticeLib.Processes.Lattice import (
    LatticeSpecification,
    CoxRossRubinsteinBinomial,
    CoxRossRubinsteinTrinomial,
    TrigeorgisTrinomial,
)

LATTICES = {
    'CRR_TRINOMIAL': CoxRossRubinsteinTrinomial,
    'CRR_BINOMIAL': CoxRossRubinsteinBinomial,
    'TRIGEORGIS': TrigeorgisTrinomial,
}

# Excel 输入列 B1:B12 的顺序
SHEET_FIELDS = (
    'spot', 'strike', 'barrier_level', 'time_to_expiry', 'rate', 'volatility',
    'rebate', 'put_call', 'barrier_type', 'number_of_steps', 'dividend', 'lattice',
)


class BarrierTreeConfig(BaseModel):
    """
    一次树定价请求 (FROZEN)

    语义：
      - 市场参数 + 合约条款 + 树的设置
      - 这里只做字段级校验；合约不变量 (步数、rebate 长度) 由工厂方法 of(...) 负责
    """
    model_config = ConfigDict(frozen=True)

    # 市场
    spot: float = Field(..., gt=0)
    rate: float
    dividend: float = 0.0
    volatility: float = Field(..., gt=0)

    # 合约
    strike: float = Field(..., gt=0)
    time_to_expiry: float = Field(..., gt=0)
    put_call: str = 'call'
    barrier_type: str = 'up_and_out'
    barrier_level: float = Field(..., gt=0)
    # 标量 = 每层相同；列表 = 逐层 rebate，长度必须是 number_of_steps + 1
    rebate: Union[float, List[float]] = 0.0

    # 树
    number_of_steps: int = Field(200, gt=0)
    lattice: Literal['CRR_TRINOMIAL', 'CRR_BINOMIAL', 'TRIGEORGIS'] = 'CRR_TRINOMIAL'

    @field_validator('put_call', mode='before')
    @classmethod
    def _normalize_put_call(cls, v):
        return PutCall.parse(v).value

    @field_validator('barrier_type', mode='before')
    @classmethod
    def _normalize_barrier_type(cls, v):
        return BarrierType.parse(v).value

    @field_validator('lattice', mode='before')
    @classmethod
    def _normalize_lattice(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'BarrierTreeConfig':
        """读取 YAML 配置文件 (平铺的字段)"""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        logger.info(f"Loaded barrier tree config from {path}")
        return cls.model_validate(raw)

    @classmethod
    def from_sheet_values(cls, values: Sequence) -> 'BarrierTreeConfig':
        """
        Excel 输入列 -> 配置。
        空单元格 (None) 视为未填写，走默认值。
        """
        raw = {name: v for name, v in zip(SHEET_FIELDS, values) if v is not None}
        if 'number_of_steps' in raw:
            raw['number_of_steps'] = int(raw['number_of_steps'])
        return cls.model_validate(raw)

    def rebate_schedule(self) -> Tuple[float, ...]:
        if isinstance(self.rebate, list):
            return tuple(self.rebate)
        return (float(self.rebate),) * (self.number_of_steps + 1)

    def to_option(self) -> ConstantContinuousBarrierKnockoutFunction:
        return ConstantContinuousBarrierKnockoutFunction.of(
            strike=self.strike,
            time_to_expiry=self.time_to_expiry,
            put_call=self.put_call,
            number_of_steps=self.number_of_steps,
            barrier_type=self.barrier_type,
            barrier_level=self.barrier_level,
            rebate=self.rebate_schedule(),
        )

    def to_market(self) -> MarketEnvironment:
        return MarketEnvironment(S=self.spot, r=self.rate, sigma=self.volatility, q=self.dividend)

    def to_lattice(self) -> LatticeSpecification:
        return LATTICES[self.lattice]()
