"""Electric power of blower and condenser at full and part load."""
import math
from typing import NamedTuple
from .profile import EquipmentProfile, EquipmentFamily
from .curves import PerformanceCurves, vs_part_load_power_factor
from .stages import StageState, StageType


class CondenserPower(NamedTuple):
    W_dot: float          # kW
    efficiency_cf: float
    power_cf: float


def cycling_efficiency(profile: EquipmentProfile, load_fraction: float) -> float:
    """Efficiency factor (<= 1) that accounts for on/off cycling of the
    compressor at part load.
    """
    if load_fraction < 1.0:
        d = profile.degradation_pct / 100.0
        return load_fraction * d + (1.0 - d)
    return 1.0


def fan_power_factor(profile: EquipmentProfile, flow_fraction: float) -> float:
    """Blower power relative to rated blower power (fan affinity law)."""
    if flow_fraction < 1.0:
        return flow_fraction ** profile.n_affinity
    return 1.0


def fan_power(profile: EquipmentProfile, flow_fraction: float) -> float:
    """Blower power (kW) at the given flow fraction."""
    return profile.blower_kW * fan_power_factor(profile, flow_fraction)


def _finite_or(value: float | None, default: float) -> float:
    if value is None or not math.isfinite(value):
        return default
    return value


def condenser_power(
    profile: EquipmentProfile,
    curves: PerformanceCurves,
    stage: StageState,
    T_odb: float,
    T_ewb: float,
    T_edb: float
) -> CondenserPower:
    """Condenser power (compressor and condenser fan, kW) of the stage at
    operating conditions.

    The rated condenser power is corrected for operating conditions and
    scaled to the capacity fraction of the stage. Part-load operation is
    then taken into account, in order of precedence, by:

    1. the fitted part-load EER model, if available;
    2. the part-load power factor of the variable-speed compressor, for a
       variable-speed compressor with a variable-speed fan;
    3. splitting condenser power into a compressor part, proportional to
       capacity, and a condenser fan part that follows the fan affinity law,
       for other units with a variable-speed fan;
    4. the cycling degradation of the compressor for staged units.

    The correction factors are also stored on `stage`.
    """
    eff_cf, power_cf = curves.condenser_power_correction(stage, T_odb, T_ewb, T_edb)
    stage.efficiency_cf = eff_cf
    stage.condenser_power_cf = power_cf
    W_full = profile.condenser_kW * power_cf
    if stage.stage_type == StageType.BMA:
        W_full_stage = stage.capacity_fraction_diff * W_full
    else:
        W_full_stage = stage.capacity_fraction * W_full
    variable_fan = profile.fan_control.speed == 'V'

    if curves.has_part_load_model:
        if stage.runtime > 1.0:
            # undersized: the unit runs at full load
            W = W_full_stage
        else:
            if variable_fan:
                lf = _finite_or(stage.capacity_fraction, 1.0)
            else:
                lf = _finite_or(stage.load_fraction, 1.0)
            W = W_full_stage / max(1e-9, curves.part_load_eer_factor(lf * 100.0, T_odb))
    elif variable_fan and profile.family == EquipmentFamily.VARIABLE_SPEED_COMPRESSOR:
        W = W_full * vs_part_load_power_factor(stage.capacity_fraction)
    elif variable_fan:
        cf = _finite_or(stage.capacity_fraction, 1.0)
        W_cfan_full = profile.condenser_kW * profile.condenser_fan_pct / 100.0
        W_cfan = W_cfan_full * fan_power_factor(profile, cf)
        W_comp_full = W_full - W_cfan_full
        W_comp = W_comp_full * cf if stage.runtime <= 1.0 else W_comp_full
        W = W_comp + W_cfan
    else:
        W = W_full_stage / cycling_efficiency(profile, _finite_or(stage.load_fraction, 1.0))
    return CondenserPower(W, eff_cf, power_cf)
