import pytest

from LatticeLib.Base.BaseLayer import PutCall
from LatticeLib.Base.Config import BarrierTreeConfig
from LatticeLib.Instruments.BarrierOption import BarrierType
from LatticeLib.Processes.Lattice import CoxRossRubinsteinBinomial, CoxRossRubinsteinTrinomial


def base_fields(**overrides):
    fields = dict(
        spot=100.0, rate=0.05, volatility=0.2, strike=100.0, time_to_expiry=1.0,
        put_call='call', barrier_type='up-and-out', barrier_level=120.0,
        rebate=0.0, number_of_steps=2,
    )
    fields.update(overrides)
    return fields


def test_load_yaml(tmp_path):
    path = tmp_path / "barrier.yml"
    path.write_text(
        "spot: 100\n"
        "rate: 0.05\n"
        "volatility: 0.2\n"
        "strike: 100\n"
        "time_to_expiry: 1.0\n"
        "put_call: Call\n"
        "barrier_type: UP_AND_OUT\n"
        "barrier_level: 120\n"
        "rebate: [0, 0, 5]\n"
        "number_of_steps: 2\n"
        "lattice: crr_binomial\n",
        encoding="utf-8",
    )
    cfg = BarrierTreeConfig.load(path)
    assert cfg.put_call == 'call'
    assert cfg.barrier_type == 'up_and_out'
    assert cfg.rebate_schedule() == (0.0, 0.0, 5.0)
    assert isinstance(cfg.to_lattice(), CoxRossRubinsteinBinomial)

    option = cfg.to_option()
    assert option.get_rebate(2) == 5.0
    assert option.barrier_type is BarrierType.UP_AND_OUT
    assert option.put_call is PutCall.CALL


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        BarrierTreeConfig.load(tmp_path / "missing.yml")


def test_scalar_rebate_is_flat_schedule():
    cfg = BarrierTreeConfig(**base_fields(rebate=1.5, number_of_steps=3))
    assert cfg.rebate_schedule() == (1.5, 1.5, 1.5, 1.5)
    assert isinstance(cfg.to_lattice(), CoxRossRubinsteinTrinomial)


def test_schedule_length_checked_by_factory():
    cfg = BarrierTreeConfig(**base_fields(rebate=[0.0, 1.0], number_of_steps=2))
    with pytest.raises(ValueError, match="number_of_steps \\+ 1"):
        cfg.to_option()


@pytest.mark.parametrize("field, value", [
    ('put_call', 'straddle'),
    ('barrier_type', 'diagonal'),
    ('number_of_steps', 0),
    ('volatility', -0.1),
    ('lattice', 'HEXANOMIAL'),
])
def test_invalid_fields_rejected(field, value):
    with pytest.raises(ValueError):
        BarrierTreeConfig(**base_fields(**{field: value}))


def test_market_from_config():
    cfg = BarrierTreeConfig(**base_fields(dividend=0.01))
    market = cfg.to_market()
    assert (market.S, market.r, market.sigma, market.q) == (100.0, 0.05, 0.2, 0.01)


def test_from_sheet_values_skips_empty_cells():
    values = [100.0, 95.0, 80.0, 0.5, 0.03, 0.25, 2.0, 'put', 'down and out', 50.0, None, None]
    cfg = BarrierTreeConfig.from_sheet_values(values)
    assert cfg.number_of_steps == 50
    assert cfg.dividend == 0.0
    assert cfg.lattice == 'CRR_TRINOMIAL'
    option = cfg.to_option()
    assert option.sign == -1.0
    assert option.barrier_type is BarrierType.DOWN_AND_OUT
    assert option.rebate == (2.0,) * 51
