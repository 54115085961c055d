from dataclasses import replace
import pytest
from rtu_energy import Quantity
from rtu_energy.climate import DesignConditions
from rtu_energy.energy_estimation import (
    DesignInputs,
    LoadLine,
    VentilationUnits,
    fit_load_line,
    compute_load_line
)
from rtu_energy.exceptions import InputError

Q_ = Quantity


def test_fit_load_line():
    slope, intercept = fit_load_line(95.0, 75.0, 40.0, 20.0)
    assert slope == pytest.approx(1.0)
    assert intercept == pytest.approx(20.0)
    line = LoadLine(slope, intercept, T_setpoint=75.0)
    assert line.non_ventilation_load(75.0) == pytest.approx(20.0)
    assert line.non_ventilation_load(95.0) == pytest.approx(40.0)
    assert line.non_ventilation_load(95.0, T_set=78.0) == pytest.approx(37.0)


def test_fit_load_line_design_equals_setpoint():
    with pytest.raises(InputError, match='equal to the set point'):
        fit_load_line(75.0, 75.0, 40.0, 20.0)


class TestDesignInputs:

    def test_create_with_quantities(self, design):
        inputs = DesignInputs.create(
            design,
            T_setpoint=Q_(24.0, 'degC'),
            setback=Q_(3.0, 'delta_degC'),
            RH_setpoint=Q_(50.0, 'pct'),
            ventilation=Q_(500.0, 'ft ** 3 / min'),
            oversize=Q_(20.0, 'pct')
        )
        assert inputs.T_setpoint == pytest.approx(75.2)
        assert inputs.setback == pytest.approx(5.4)
        assert inputs.RH_setpoint == pytest.approx(0.5)
        assert inputs.ventilation_units == VentilationUnits.CFM
        assert inputs.ventilation_cfm(4000.0) == pytest.approx(500.0)
        assert inputs.load_reduction_factor == pytest.approx(1.2)

    def test_ventilation_as_percent_of_fan(self, design):
        inputs = DesignInputs.create(design, ventilation=Q_(15.0, 'pct'))
        assert inputs.ventilation_units == VentilationUnits.PERCENT_OF_FAN
        assert inputs.ventilation_cfm(4000.0) == pytest.approx(600.0)

    def test_invalid_inputs(self, design):
        with pytest.raises(InputError):
            DesignInputs.create(design, ventilation=-10.0)
        with pytest.raises(InputError):
            DesignInputs.create(design, setback=float('nan'))

    def test_locked(self, design):
        assert not DesignInputs(design).locked
        assert not DesignInputs(design, locked_slope=1.0, locked_intercept=float('nan')).locked
        assert DesignInputs(design, locked_slope=1.0, locked_intercept=10.0).locked


class TestComputeLoadLine:

    def test_line_through_design_and_setpoint(self, single_stage_unit, design):
        inputs = DesignInputs(design, internal_load_fraction=0.5)
        line = compute_load_line(single_stage_unit, inputs)
        snap = line.design
        assert snap.Q_internal == pytest.approx(0.5 * snap.Q_load_design)
        assert snap.Q_load_design == pytest.approx(snap.Q_sen_design)
        assert line.non_ventilation_load(75.0) == pytest.approx(snap.Q_internal)
        assert line.non_ventilation_load(95.0) == pytest.approx(snap.Q_non_vent_design)
        assert line.slope > 0.0
        assert not line.locked
        assert line.inputs is inputs
        assert 0.2 <= snap.RH_in <= 0.65
        assert snap.Q_sen_test > 0.0

    def test_oversizing_reduces_load(self, single_stage_unit, design):
        line = compute_load_line(single_stage_unit, DesignInputs(design))
        oversized = compute_load_line(single_stage_unit, DesignInputs(design, oversize_pct=25.0))
        assert oversized.design.Q_load_design == pytest.approx(line.design.Q_load_design / 1.25)

    def test_locked_line_is_returned_verbatim(self, single_stage_unit, design):
        inputs = DesignInputs(design, locked_slope=-3.0, locked_intercept=12.0)
        line = compute_load_line(single_stage_unit, inputs)
        assert line.locked
        assert (line.slope, line.intercept) == (-3.0, 12.0)
        assert line.design is None

    def test_locked_line_needs_no_unit(self, design):
        inputs = DesignInputs(design, locked_slope=1.5, locked_intercept=20.0)
        line = compute_load_line(None, inputs)
        assert line.non_ventilation_load(85.0) == pytest.approx(35.0)

    def test_design_below_setpoint(self, single_stage_unit):
        design = DesignConditions.create(T_db=70.0, T_wb=60.0)
        with pytest.raises(InputError, match='lower than the set point'):
            compute_load_line(single_stage_unit, DesignInputs(design))

    def test_ventilation_too_large(self, single_stage_unit, design):
        inputs = DesignInputs(design, ventilation_value=100.0, internal_load_fraction=0.9)
        with pytest.raises(InputError, match='Reduce ventilation'):
            compute_load_line(single_stage_unit, inputs)

    def test_design_warning_is_carried(self, single_stage_unit, design):
        moved = replace(design, warning='design temperature changed')
        line = compute_load_line(single_stage_unit, DesignInputs(moved))
        assert line.warnings == ('design temperature changed',)
