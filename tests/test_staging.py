import pytest
from rtu_energy.exceptions import StagingFailure, PsychrometricError
from rtu_energy.fluids import psychrometrics as psy
from rtu_energy.performance import (
    EquipmentProfile,
    EquipmentFamily,
    FanControl,
    EnteringAir,
    PairMode,
    StageState,
    decide_staging,
    flow_fraction,
    integrated_economizer,
    net_sensible_capacity,
    resolve_curves,
    sensible_ventilation_load
)
from rtu_energy.performance import staging
from rtu_energy.performance.staging import stage_fraction_above_vent

P = psy.P_STD


@pytest.fixture
def entering() -> EnteringAir:
    return EnteringAir(T_db=80.0, T_wb=67.0, W=psy.humidity_ratio_from_wet_bulb(80.0, 67.0, P))


def _decide(unit, entering, load, T_odb=95.0, economizer=False, vent_fraction=0.1):
    return decide_staging(
        unit, resolve_curves(unit), T_odb, entering, load,
        economizer, vent_fraction, P
    )


def _full_load_capacity(unit, entering, T_odb=95.0):
    stage = StageState(capacity_fraction=1.0, flow_fraction=1.0)
    return net_sensible_capacity(
        unit, resolve_curves(unit), stage, T_odb, entering.T_wb, entering.T_db, P
    ).Q_sen


class TestStagedUnit:

    def test_stage_level_is_monotonic(self, two_stage_unit, entering):
        full = _decide(two_stage_unit, entering, 1.0e6).b.Q_sen
        loads = [full * i / 40.0 for i in range(0, 49)]
        decisions = [_decide(two_stage_unit, entering, load) for load in loads]
        levels = [d.stage_level for d in decisions]
        assert all(b >= a for a, b in zip(levels, levels[1:]))
        modes = []
        for d in decisions:
            if not modes or modes[-1] != d.mode:
                modes.append(d.mode)
        assert modes == [PairMode.A_ONLY, PairMode.A_AND_BMA, PairMode.B_ONLY]

    def test_lowest_stage_cycling(self, two_stage_unit, entering):
        d = _decide(two_stage_unit, entering, 10.0)
        assert d.mode == PairMode.A_ONLY
        assert d.a.capacity_fraction == 0.5
        assert d.a.runtime == pytest.approx(10.0 / d.a.Q_sen)
        assert d.active_stages == [d.a]

    def test_blend_of_two_stages(self, two_stage_unit, entering):
        d0 = _decide(two_stage_unit, entering, 0.0)
        Q_a = d0.a.Q_sen
        d = _decide(two_stage_unit, entering, Q_a + 10.0)
        assert d.mode == PairMode.A_AND_BMA
        assert d.bma.runtime == pytest.approx(10.0 / d.bma.Q_sen)
        assert d.a.runtime == pytest.approx(1.0 - d.bma.runtime)
        assert d.stage_level == pytest.approx(1.0 + d.b.runtime)

    def test_undersized_unit(self, single_stage_unit, entering):
        d = _decide(single_stage_unit, entering, 1.0e3)
        assert d.mode == PairMode.A_ONLY
        assert d.a.runtime > 1.0

    def test_decisions_are_independent(self, two_stage_unit, entering):
        d1 = _decide(two_stage_unit, entering, 10.0)
        d2 = _decide(two_stage_unit, entering, 1.0e3)
        assert d1.mode == PairMode.A_ONLY
        assert d1.a is not d2.a
        assert d1.a.runtime < 1.0


class TestVariableCapacity:

    def test_no_load(self, variable_speed_unit, entering):
        d = _decide(variable_speed_unit, entering, 0.0)
        assert d.a.runtime == 0.0
        assert d.a.capacity_fraction == 0.0

    def test_full_load(self, variable_speed_unit, entering):
        Q_full = _full_load_capacity(variable_speed_unit, entering)
        d = _decide(variable_speed_unit, entering, Q_full)
        assert d.a.capacity_fraction == 1.0
        assert d.a.runtime == pytest.approx(1.0)

    @pytest.mark.parametrize('fraction', [0.3, 0.55, 0.8])
    def test_capacity_follows_load(self, variable_speed_unit, entering, fraction):
        unit = variable_speed_unit
        curves = resolve_curves(unit)
        Q_full = _full_load_capacity(unit, entering)
        load = fraction * Q_full
        d = _decide(unit, entering, load)
        assert d.a.runtime == 1.0
        assert 0.0 < d.a.capacity_fraction < 1.0
        stage = StageState(capacity_fraction=d.a.capacity_fraction, flow_fraction=d.a.flow_fraction)
        Q_sen = net_sensible_capacity(unit, curves, stage, 95.0, entering.T_wb, entering.T_db, P).Q_sen
        assert Q_sen == pytest.approx(load, abs=0.01)

    def test_below_minimum_turndown(self, variable_speed_unit, entering):
        unit = variable_speed_unit
        Q_full = _full_load_capacity(unit, entering)
        d = _decide(unit, entering, 0.1 * Q_full)
        assert d.a.capacity_fraction == unit.min_capacity_fraction
        assert 0.0 < d.a.runtime < 1.0


class TestFlowFraction:

    def test_single_speed(self, single_stage_unit):
        assert flow_fraction(single_stage_unit, 1.0, True, False, 95.0, 0.1) == 1.0
        assert flow_fraction(single_stage_unit, 0.0, False, False, 95.0, 0.1) == 1.0
        assert flow_fraction(single_stage_unit, 0.0, False, True, 65.0, 0.1) == 1.0
        cycling = single_stage_unit.for_unoccupied_hours()
        assert flow_fraction(cycling, 0.0, False, False, 95.0, 0.1) == 0.0

    def test_multi_speed(self, economizer_unit):
        assert stage_fraction_above_vent(economizer_unit, 0.1) == 0.5
        assert stage_fraction_above_vent(economizer_unit, 0.6) == 1.0
        assert flow_fraction(economizer_unit, 0.5, True, False, 95.0, 0.1) == 0.5
        assert flow_fraction(economizer_unit, 0.5, True, False, 95.0, 0.6) == 1.0
        assert flow_fraction(economizer_unit, 0.5, True, True, 70.0, 0.6) == 0.5
        assert flow_fraction(economizer_unit, 0.0, False, False, 95.0, 0.1) == 0.5

    def test_variable_speed(self, variable_speed_unit):
        assert flow_fraction(variable_speed_unit, 0.3, True, False, 95.0, 0.1) == 0.3
        assert flow_fraction(variable_speed_unit, 0.05, True, False, 95.0, 0.1) == 0.1
        assert flow_fraction(variable_speed_unit, 0.0, False, False, 95.0, 0.1) == 0.1

    def test_advanced_controls(self):
        unit = EquipmentProfile.create(
            Q_net=120.0, EER=11.0, n_stages=2,
            fan_control=FanControl.MULTI_SPEED_ALWAYS_ON,
            family=EquipmentFamily.ADVANCED_CONTROLS
        )
        assert flow_fraction(unit, 0.5, True, False, 75.0, 0.1) == 0.75
        assert flow_fraction(unit, 0.5, True, False, 65.0, 0.1) == 0.90
        assert flow_fraction(unit, 1.0, True, False, 95.0, 0.1) == 0.90
        assert flow_fraction(unit, 0.0, False, True, 65.0, 0.1) == 0.75
        assert flow_fraction(unit, 0.0, False, True, 65.0, 0.1, integrated_attempt=True) == 0.90
        assert flow_fraction(unit, 0.0, False, False, 65.0, 0.1) == 0.40
        assert flow_fraction(unit.for_unoccupied_hours(), 0.0, False, False, 65.0, 0.1) == 0.0


class TestIntegratedEconomizer:

    def test_runtime_meets_load(self, two_stage_unit):
        unit = two_stage_unit
        T_odb, T_owb = 70.0, 60.0
        W_out = psy.humidity_ratio_from_wet_bulb(T_odb, T_owb, P)
        load = 50.0
        d = integrated_economizer(unit, resolve_curves(unit), T_odb, T_owb, W_out, load, 75.0, 0.1, P)
        assert d.integrated and d.economizer_running
        assert d.mode == PairMode.A_ONLY
        assert d.a.load_fraction == 0.0
        assert 0.0 <= d.a.runtime <= 1.0
        Q_econ = -sensible_ventilation_load(unit.V_dot, W_out, T_odb, 75.0, P)
        Q_delivered = d.a.runtime * (d.a.Q_sen + Q_econ) + (1.0 - d.a.runtime) * Q_econ
        assert Q_delivered == pytest.approx(load)

    def test_economizer_alone_exceeds_load(self, two_stage_unit):
        unit = two_stage_unit
        W_out = psy.humidity_ratio_from_wet_bulb(55.0, 48.0, P)
        with pytest.raises(StagingFailure):
            integrated_economizer(unit, resolve_curves(unit), 55.0, 48.0, W_out, 1.0, 75.0, 0.1, P)

    def test_load_beyond_combined_capacity(self, two_stage_unit):
        unit = two_stage_unit
        W_out = psy.humidity_ratio_from_wet_bulb(72.0, 62.0, P)
        with pytest.raises(StagingFailure) as exc_info:
            integrated_economizer(unit, resolve_curves(unit), 72.0, 62.0, W_out, 500.0, 75.0, 0.1, P)
        assert exc_info.value.runtime > 1.0

    def test_coil_model_failure_falls_back(self, two_stage_unit, monkeypatch):
        def failing_capacity(*args, **kwargs):
            raise PsychrometricError("ADP: supply dry-bulb equals entering dry-bulb")

        monkeypatch.setattr(staging, 'net_sensible_capacity', failing_capacity)
        unit = two_stage_unit
        W_out = psy.humidity_ratio_from_wet_bulb(70.0, 60.0, P)
        with pytest.raises(StagingFailure, match='could not be determined'):
            integrated_economizer(unit, resolve_curves(unit), 70.0, 60.0, W_out, 50.0, 75.0, 0.1, P)
