from dataclasses import replace
import pytest
from rtu_energy.energy_estimation import (
    BinSimulation,
    DesignInputs,
    LoadLine,
    compute_load_line,
    economizer_running,
    economizer_sensible_load,
    run_bin_simulation
)
from rtu_energy.exceptions import InputError
from rtu_energy.fluids import psychrometrics as psy

P = psy.P_STD


class TestEconomizer:

    def test_no_economizer_at_setpoint(self, economizer_unit):
        W_out = psy.humidity_ratio_from_wet_bulb(75.0, 63.0, P)
        assert not economizer_running(economizer_unit, 75.0, 75.0, 10.0)
        Q_econ = economizer_sensible_load(economizer_unit, True, 75.0, W_out, 75.0, 400.0, 0.1, P)
        assert Q_econ == 0.0
        assert not Q_econ < 0.0

    def test_economizer_below_setpoint(self, economizer_unit, single_stage_unit):
        W_out = psy.humidity_ratio_from_wet_bulb(65.0, 58.0, P)
        assert economizer_running(economizer_unit, 65.0, 75.0, 10.0)
        assert not economizer_running(economizer_unit, 65.0, 75.0, 0.0)
        assert not economizer_running(single_stage_unit, 65.0, 75.0, 10.0)
        Q_econ = economizer_sensible_load(economizer_unit, True, 65.0, W_out, 75.0, 400.0, 0.1, P)
        assert Q_econ < 0.0
        assert economizer_sensible_load(economizer_unit, False, 65.0, W_out, 75.0, 400.0, 0.1, P) == 0.0

    def test_variable_capacity_needs_larger_difference(self, variable_speed_unit):
        unit = replace(variable_speed_unit, economizer=True)
        assert not economizer_running(unit, 71.0, 75.0, 10.0)
        assert economizer_running(unit, 65.0, 75.0, 10.0)


class TestBinSimulation:

    def test_occupied_hours_only_without_setback(self, single_stage_unit, load_line, bin_table):
        line = replace(load_line, inputs=replace(load_line.inputs, setback=0.0))
        result = run_bin_simulation(single_stage_unit, line, bin_table)
        assert all(r.occupied for r in result.records)
        # the 45 °F bin has no load and is far below the setpoint
        assert [r.T_odb for r in result.records] == [65.0, 70.0, 75.0, 85.0, 95.0]
        assert result.cooling_hours == pytest.approx(2400.0)
        assert result.unoccupied_energy.m == 0.0

    def test_unoccupied_hours_with_setback(self, single_stage_unit, load_line, bin_table):
        result = BinSimulation(single_stage_unit, load_line, bin_table, unit_name='Candidate').run()
        unoccupied = [r for r in result.records if not r.occupied]
        assert unoccupied
        assert all(r.T_setpoint == pytest.approx(78.0) for r in unoccupied)
        assert result.occupied_energy.m + result.unoccupied_energy.m == pytest.approx(result.annual_total_energy.m)

    def test_totals_and_peak(self, single_stage_unit, load_line, bin_table):
        result = run_bin_simulation(single_stage_unit, load_line, bin_table)
        E_total = sum(r.E_total for r in result.records)
        assert result.annual_total_energy.to('kWh').m == pytest.approx(E_total)
        assert result.annual_total_energy.m == pytest.approx(
            result.annual_condenser_energy.m + result.annual_fan_energy.m + result.annual_aux_energy.m
        )
        assert result.peak_demand.to('kW').m == pytest.approx(max(r.demand for r in result.records))
        assert result.annual_condenser_energy.m > 0.0
        # constant-speed blower runs during all simulated occupied hours
        hours = sum(r.hours for r in result.records if r.occupied)
        E_fan_occupied = sum(r.E_fan for r in result.records if r.occupied)
        assert E_fan_occupied >= hours * single_stage_unit.blower_kW * (1.0 - 1.0e-9)

    def test_dataframe_total_row(self, single_stage_unit, load_line, bin_table):
        result = run_bin_simulation(single_stage_unit, load_line, bin_table)
        df = result.to_dataframe()
        assert df.index[-1] == 'TOTAL'
        assert len(df) == len(result.records) + 1
        assert df.loc['TOTAL', 'E_total'] == pytest.approx(result.annual_total_energy.m)
        assert df.loc['TOTAL', 'demand'] == pytest.approx(result.peak_demand.m)

    def test_multiple_units(self, single_stage_unit, load_line, bin_table):
        result = run_bin_simulation(single_stage_unit, load_line, bin_table)
        three = result.for_units(3)
        assert three.annual_total_energy.m == pytest.approx(3 * result.annual_total_energy.m)
        assert three.peak_demand.m == pytest.approx(result.peak_demand.m)
        assert three.to_dataframe().loc['TOTAL', 'E_cond'] == pytest.approx(3 * result.annual_condenser_energy.m)
        with pytest.raises(InputError):
            result.for_units(0)

    def test_economizer_hours(self, economizer_unit, load_line, bin_table):
        result = run_bin_simulation(economizer_unit, load_line, bin_table)
        assert result.economizer_hours(occupied=True) >= 500.0
        assert result.economizer_hours() == pytest.approx(
            result.economizer_hours(occupied=True) + result.economizer_hours(occupied=False)
        )
        for r in result.records:
            if r.economizer_running:
                assert r.Q_economizer < 0.0
            if r.T_odb >= r.T_setpoint:
                assert not r.economizer_running

    def test_variable_capacity_unit(self, variable_speed_unit, load_line, bin_table):
        result = run_bin_simulation(variable_speed_unit, load_line, bin_table)
        assert result.unit_name == 'Standard'
        assert result.annual_total_energy.m > 0.0
        for r in result.records:
            assert r.runtime_a <= 1.0 or r.capacity_fraction_a == 1.0

    def test_load_line_without_inputs(self, single_stage_unit, bin_table):
        with pytest.raises(InputError):
            BinSimulation(single_stage_unit, LoadLine(1.0, 20.0, 75.0), bin_table)

    def test_bin_table_without_wet_bulb(self, single_stage_unit, load_line, bin_table):
        with pytest.raises(InputError):
            BinSimulation(single_stage_unit, load_line, bin_table.drop(columns=['T_wb']))

    def test_computed_load_line(self, single_stage_unit, design, bin_table):
        line = compute_load_line(single_stage_unit, DesignInputs(design, setback=2.0))
        result = run_bin_simulation(single_stage_unit, line, bin_table)
        assert result.annual_total_energy.m > 0.0
        record_95 = next(r for r in result.records if r.T_odb == 95.0 and r.occupied)
        # at design temperature the unit runs close to full load
        assert record_95.runtime_a == pytest.approx(1.0, abs=0.15)
