# tests/conftest.py
import pytest
from loguru import logger

from LatticeLib.Base.BaseLayer import MarketEnvironment
from LatticeLib.Instruments.BarrierOption import ConstantContinuousBarrierKnockoutFunction


@pytest.fixture(autouse=True)
def disable_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def up_and_out_call():
    """strike=100, T=1, call, 2 steps, UAO at 120, rebate only at expiry"""
    return ConstantContinuousBarrierKnockoutFunction.of(
        100.0, 1.0, 'call', 2, 'UP_AND_OUT', 120.0, [0.0, 0.0, 5.0])


@pytest.fixture
def market():
    return MarketEnvironment(S=100.0, r=0.05, sigma=0.2)
