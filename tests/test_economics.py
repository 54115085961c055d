from types import SimpleNamespace
import pytest
from rtu_energy import Quantity
from rtu_energy.energy_estimation import (
    BinSimulationResult,
    EconomicInputs,
    evaluate_economics,
    uniform_present_value
)
from rtu_energy.exceptions import InputError

Q_ = Quantity


def _result(E_total: float, demand: float, n_units: int = 1) -> BinSimulationResult:
    record = SimpleNamespace(E_total=E_total, demand=demand, occupied=True)
    return BinSimulationResult('unit', [record], n_units=n_units)


def test_uniform_present_value():
    assert uniform_present_value(10.0, 0.0) == 10.0
    assert uniform_present_value(15.0, 0.05) == pytest.approx(10.3797, abs=1e-4)


def test_candidate_saves_energy():
    result = evaluate_economics(_result(10000.0, 5.0), _result(12000.0, 6.0))
    assert result.annual_cost_candidate == pytest.approx(800.0)
    assert result.annual_cost_standard == pytest.approx(960.0)
    assert result.annual_savings == pytest.approx(160.0)
    assert result.capital_cost_difference == pytest.approx(500.0)
    assert result.simple_payback == pytest.approx(3.125)
    assert result.discounted_payback == pytest.approx(3.482, abs=1e-3)
    assert result.upv == pytest.approx(10.3797, abs=1e-4)
    assert result.sir == pytest.approx(3.3215, abs=1e-4)
    assert result.npv == pytest.approx(result.lcc_standard - result.lcc_candidate)
    assert result.npv == pytest.approx(160.0 * result.upv - 500.0)


def test_rate_of_return_zeroes_net_present_value():
    result = evaluate_economics(_result(10000.0, 5.0), _result(12000.0, 6.0))
    assert result.ror is not None
    assert result.ror > 5.0
    rate = result.ror / 100.0
    assert 160.0 * uniform_present_value(15.0, rate) == pytest.approx(500.0, abs=0.05)


def test_energy_is_taken_per_unit():
    single = evaluate_economics(_result(10000.0, 5.0), _result(12000.0, 6.0))
    multiple = evaluate_economics(_result(10000.0, 5.0, n_units=4), _result(12000.0, 6.0, n_units=4))
    assert multiple.annual_savings == pytest.approx(single.annual_savings)


def test_no_savings():
    result = evaluate_economics(_result(10000.0, 5.0), _result(10000.0, 5.0))
    assert result.annual_savings == 0.0
    assert result.simple_payback == -1.0
    assert result.discounted_payback == 0.0
    assert result.ror is None


def test_no_payback_within_a_century():
    result = evaluate_economics(_result(10000.0, 5.0), _result(10040.0, 5.0))
    assert result.simple_payback == pytest.approx(156.25)
    assert result.discounted_payback == -1.0


def test_demand_charge():
    inputs = EconomicInputs(demand_cost=10.0, demand_months=4.0)
    result = evaluate_economics(_result(10000.0, 5.0), _result(12000.0, 6.0), inputs)
    assert result.annual_cost_candidate == pytest.approx(800.0 + 200.0)
    assert result.annual_savings == pytest.approx(200.0)


def test_equal_unit_costs():
    inputs = EconomicInputs(unit_cost_candidate=4.0, unit_cost_standard=4.0)
    result = evaluate_economics(_result(10000.0, 5.0), _result(12000.0, 6.0), inputs)
    assert result.simple_payback == 0.0
    assert result.sir == 0.0
    assert result.ror is None


class TestEconomicInputs:

    def test_create_with_quantities(self):
        inputs = EconomicInputs.create(
            electricity_rate=0.1,
            discount_rate=Q_(7.0, 'pct'),
            equipment_life=Q_(20.0, 'year'),
            demand_cost=8.0
        )
        assert inputs.discount_rate == pytest.approx(0.07)
        assert inputs.equipment_life == pytest.approx(20.0)
        assert inputs.demand_cost == 8.0

    def test_invalid_inputs(self):
        with pytest.raises(InputError):
            EconomicInputs.create(equipment_life=0.0)
        with pytest.raises(InputError):
            EconomicInputs.create(electricity_rate=float('nan'))
