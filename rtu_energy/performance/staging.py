"""Staging logic: how a unit must run in a bin to meet the sensible load.

`decide_staging()` returns a new `StagingDecision` for each call. For a
variable-capacity unit the capacity fraction is modulated to match the load.
For a staged unit it is either the lowest stage cycling on and off, a blend
of two adjacent stages, or the top stage running (possibly longer than the
bin, when the unit is undersized).
"""
import math
from functools import partial
from ..exceptions import StagingFailure, PsychrometricError
from ..logging import ModuleLogger
from .profile import EquipmentProfile, EquipmentFamily
from .curves import PerformanceCurves
from .capacity import net_sensible_capacity
from .air_side import EnteringAir, sensible_ventilation_load
from .stages import StageState, StagingDecision, PairMode

logger = ModuleLogger.get_logger(__name__)

CF_STEP = 0.001
CF_TOL = 0.001
MAX_ITER = 10


def stage_fraction_above_vent(profile: EquipmentProfile, vent_fraction: float) -> float:
    """Returns the lowest stage level that is greater than the ventilation
    fraction (outdoor airflow / fan airflow), or 1.0 if there is none.
    """
    for level in profile.stage_levels:
        if level > vent_fraction:
            return level
    return 1.0


def flow_fraction(
    profile: EquipmentProfile,
    capacity_fraction: float,
    compressor_on: bool,
    economizer_running: bool,
    T_odb: float,
    vent_fraction: float,
    integrated_attempt: bool = False
) -> float:
    """Fraction of rated airflow delivered by the fan.

    Parameters
    ----------
    profile:
        The unit.
    capacity_fraction:
        Capacity fraction of the running stage.
    compressor_on:
        True while the compressor runs, False while it is off.
    economizer_running:
        Whether the economizer is active.
    T_odb:
        Outdoor dry-bulb temperature (°F).
    vent_fraction:
        Ventilation airflow as a fraction of fan airflow. A staged fan never
        runs below the lowest stage that satisfies the ventilation
        requirement.
    integrated_attempt:
        True while integrated economizer operation is being evaluated
        (matters only for units with advanced controls).
    """
    fan = profile.fan_control
    if profile.family == EquipmentFamily.ADVANCED_CONTROLS:
        if compressor_on:
            if capacity_fraction == 0.5:
                return 0.75 if T_odb >= 70.0 else 0.90
            if capacity_fraction == 1.0:
                return 0.90
            return 0.0
        if economizer_running:
            return 0.90 if integrated_attempt else 0.75
        if fan.cycles:
            return 0.0
        if fan.always_on:
            return 0.40
        return 0.0
    if compressor_on:
        if fan.speed == '1':
            return 1.0
        if economizer_running:
            return capacity_fraction
        if profile.condenser_type == 'VC':
            return max(vent_fraction, capacity_fraction)
        return max(stage_fraction_above_vent(profile, vent_fraction), capacity_fraction)
    if economizer_running:
        return 1.0
    if fan.cycles:
        return 0.0
    if fan.always_on:
        if profile.condenser_type == 'VC':
            return vent_fraction
        if fan.speed == '1':
            return 1.0
        return stage_fraction_above_vent(profile, vent_fraction)
    return 0.0


class _StageEvaluator:
    """Evaluates the net sensible capacity of stages at the entering air
    conditions of one bin.
    """
    def __init__(
        self,
        profile: EquipmentProfile,
        curves: PerformanceCurves,
        T_odb: float,
        entering: EnteringAir,
        P: float,
        economizer_running: bool,
        vent_fraction: float
    ):
        self.profile = profile
        self.curves = curves
        self.T_odb = T_odb
        self.entering = entering
        self.P = P
        self.ff = partial(
            flow_fraction, profile,
            economizer_running=economizer_running,
            T_odb=T_odb,
            vent_fraction=vent_fraction
        )

    def sensible_capacity(self, stage: StageState) -> float:
        try:
            cap = net_sensible_capacity(
                self.profile, self.curves, stage,
                self.T_odb, self.entering.T_wb, self.entering.T_db, self.P
            )
        except PsychrometricError as err:
            if err.stage is None:
                err.stage = stage.stage_type.value
            raise
        stage.Q_sen = cap.Q_sen
        return cap.Q_sen

    def set_stage(self, stage: StageState, capacity_fraction: float) -> float:
        """Puts `stage` at `capacity_fraction` with the compressor-on flow
        fraction and returns its sensible capacity.
        """
        stage.capacity_fraction = capacity_fraction
        stage.flow_fraction = self.ff(capacity_fraction, True)
        return self.sensible_capacity(stage)


def _modulate(ev: _StageEvaluator, d: StagingDecision, load: float) -> StagingDecision | None:
    # Variable-capacity unit: returns None if the full-load capacity is not
    # usable, in which case the unit is staged like a single-stage unit.
    profile = ev.profile
    a = d.a
    d.mode = PairMode.A_ONLY
    if not load > 0.0:
        a.capacity_fraction = 0.0
        a.flow_fraction = ev.ff(0.0, False)
        a.Q_sen = 0.0
        a.load_fraction = 0.0
        a.runtime = 0.0
        d.stage_level = 0.0
        return d
    a.capacity_fraction = 1.0
    a.flow_fraction = 1.0
    Q_full = ev.sensible_capacity(a)
    if not (math.isfinite(Q_full) and Q_full > 0.0):
        logger.debug(f"Full-load sensible capacity {Q_full} not usable; staging instead.")
        return None
    if load >= Q_full:
        a.load_fraction = None
        a.runtime = load / Q_full
        d.stage_level = a.runtime
        return d

    def error(cf: float) -> float:
        Q_sen = ev.set_stage(a, cf)
        return load - (Q_sen if math.isfinite(Q_sen) else 0.0)

    cf = load / Q_full
    for _ in range(MAX_ITER):
        cf = min(max(cf, 0.0), 1.0)
        err0 = error(cf)
        if abs(err0) < CF_TOL:
            break
        err1 = error(cf + CF_STEP)
        slope = (err0 - err1) / CF_STEP
        if not math.isfinite(slope) or abs(slope) < 1e-9:
            break
        cf_next = cf + err0 / slope
        if math.isfinite(cf_next):
            cf = cf_next
    cf = min(max(cf, 0.0), 1.0)
    a.runtime = 1.0
    cf_min = profile.min_capacity_fraction
    if cf_min > 0.0 and cf < cf_min:
        # below minimum turndown the unit cycles at minimum capacity
        a.runtime = min(max(cf / cf_min, 0.0), 1.0)
        cf = cf_min
    ev.set_stage(a, cf)
    a.Q_sen = load
    a.load_fraction = None
    d.stage_level = a.runtime
    return d


def decide_staging(
    profile: EquipmentProfile,
    curves: PerformanceCurves,
    T_odb: float,
    entering: EnteringAir,
    load: float,
    economizer_running: bool,
    vent_fraction: float,
    P: float
) -> StagingDecision:
    """Decides how the unit runs to meet the sensible `load` (kBtuh) with the
    given entering air conditions at the coil.

    Parameters
    ----------
    profile:
        The unit.
    curves:
        Performance curves resolved for the unit.
    T_odb:
        Outdoor dry-bulb temperature (°F).
    entering:
        Air state entering the coil.
    load:
        Sensible load the compressor must meet (kBtuh).
    economizer_running:
        Whether the economizer is active.
    vent_fraction:
        Ventilation airflow as a fraction of fan airflow.
    P:
        Barometric pressure (inHg).

    Returns
    -------
    StagingDecision
    """
    ev = _StageEvaluator(profile, curves, T_odb, entering, P, economizer_running, vent_fraction)
    d = StagingDecision(economizer_running=economizer_running)
    a, bma, b = d.a, d.bma, d.b
    levels = profile.stage_levels
    ev.set_stage(a, levels[0])
    b.reset_to_zero_load()
    bma.reset_to_zero_load()

    if profile.is_variable_capacity or profile.condenser_type == 'VC':
        decision = _modulate(ev, d, load)
        if decision is not None:
            return decision

    d.mode = PairMode.A_ONLY
    if load < a.Q_sen or profile.n_stages == 1:
        a.load_fraction = load / a.Q_sen
        a.runtime = a.load_fraction
        d.stage_level = a.runtime
        return d

    for i in range(profile.n_stages - 1):
        ev.set_stage(a, levels[i])
        ev.set_stage(b, levels[i + 1])
        bma.flow_fraction = b.flow_fraction
        bma.capacity_fraction_diff = b.capacity_fraction - a.capacity_fraction
        bma.capacity_fraction = b.capacity_fraction
        bma.Q_sen = b.Q_sen - a.Q_sen
        if a.Q_sen <= load < b.Q_sen:
            bma.load_fraction = (load - a.Q_sen) / bma.Q_sen
            bma.runtime = bma.load_fraction
            b.load_fraction = None
            b.runtime = bma.runtime
            a.load_fraction = 1.0
            a.runtime = 1.0 - bma.runtime
            d.mode = PairMode.A_AND_BMA
            d.stage_level = (i + 1) + b.runtime
            return d

    if load >= b.Q_sen:
        a.reset_to_zero_load()
        bma.reset_to_zero_load()
        b.runtime = load / b.Q_sen
        b.load_fraction = 1.0 if b.runtime >= 1.0 else b.runtime
        d.mode = PairMode.B_ONLY
        d.stage_level = (profile.n_stages - 1) + b.runtime
        return d

    d.stage_level = 0.0
    return d


def integrated_economizer(
    profile: EquipmentProfile,
    curves: PerformanceCurves,
    T_odb: float,
    T_owb: float,
    W_out: float,
    non_vent_load: float,
    T_setpoint: float,
    vent_fraction: float,
    P: float
) -> StagingDecision:
    """Stages the unit with the economizer running together with the first
    compressor stage.

    The economizer (all outdoor air) and the first stage, both at the
    compressor-on airflow, are assumed to cool outdoor air. The runtime of
    the stage is solved linearly such that the combined sensible cooling
    meets `non_vent_load`.

    Raises
    ------
    StagingFailure
        If the economizer alone already exceeds the load, or if the solved
        runtime lies outside [0, 1], or if the coil model fails. The caller must then fall back to
        compressor-only operation with ventilation air only.
    """
    d = StagingDecision(economizer_running=True, integrated=True)
    a = d.a
    a.capacity_fraction = profile.stage_levels[0]
    ff = partial(flow_fraction, profile, T_odb=T_odb, vent_fraction=vent_fraction)
    ff_econ = ff(a.capacity_fraction, False, True, integrated_attempt=True)
    Q_econ_max = -sensible_ventilation_load(profile.V_dot, W_out, T_odb, T_setpoint, P)
    Q_econ = Q_econ_max * ff_econ
    if Q_econ > non_vent_load:
        raise StagingFailure(
            f"Economizer alone ({Q_econ:.2f} kBtuh) exceeds the load "
            f"({non_vent_load:.2f} kBtuh).",
            runtime=0.0
        )
    ff_dx = ff(a.capacity_fraction, True, False)
    a.flow_fraction = ff_dx
    try:
        cap = net_sensible_capacity(profile, curves, a, T_odb, T_owb, T_odb, P)
        a.Q_sen = cap.Q_sen
        Q_total = cap.Q_sen + Q_econ_max * ff_dx
        runtime = (non_vent_load - Q_econ) / (Q_total - Q_econ)
    except (ArithmeticError, ValueError, PsychrometricError) as err:
        raise StagingFailure(f"Integrated capacity could not be determined: {err}") from err
    if not 0.0 <= runtime <= 1.0:
        raise StagingFailure(
            f"Compressor runtime {runtime:.3f} outside [0, 1].",
            runtime=runtime
        )
    a.load_fraction = 0.0
    a.runtime = runtime
    d.mode = PairMode.A_ONLY
    d.stage_level = runtime
    return d
