"""Net total and net sensible capacity of a stage at operating conditions."""
from typing import NamedTuple
from ..fluids import psychrometrics as psy
from ..fluids.constants import KW_TO_KBTUH
from .profile import EquipmentProfile
from .curves import PerformanceCurves
from .stages import StageState


class StageCapacity(NamedTuple):
    Q_tot: float      # net total capacity, kBtuh
    Q_sen: float      # net sensible capacity, kBtuh
    st_ratio: float
    T_sup: float
    capacity_cf: float


def stage_fan_heat(profile: EquipmentProfile, stage: StageState) -> float:
    """Heat (kBtuh) added to the air by the blower at the stage's flow
    fraction (fan affinity law).
    """
    return profile.blower_kW * KW_TO_KBTUH * stage.flow_fraction ** profile.n_affinity


def net_total_capacity(
    profile: EquipmentProfile,
    curves: PerformanceCurves,
    stage: StageState,
    T_odb: float,
    T_ewb: float
) -> tuple[float, float]:
    """Returns the net total capacity (kBtuh) of the stage at the given
    outdoor dry-bulb and entering wet-bulb temperature, and the capacity
    correction factor that was applied.

    The rated fan heat is first added to the rated net capacity to get the
    gross capacity, which is corrected for operating conditions and scaled
    to the capacity fraction of the stage. The fan heat at the stage's flow
    fraction is then subtracted again.
    """
    Q_fan_rated = profile.blower_kW * KW_TO_KBTUH
    capacity_cf = curves.capacity_correction(stage, T_odb, T_ewb)
    stage.capacity_cf = capacity_cf
    plf = curves.part_load_capacity_factor(stage.capacity_fraction)
    Q_gross = profile.Q_gross * capacity_cf * plf
    return Q_gross - Q_fan_rated * stage.flow_fraction ** profile.n_affinity, capacity_cf


def net_sensible_capacity(
    profile: EquipmentProfile,
    curves: PerformanceCurves,
    stage: StageState,
    T_odb: float,
    T_ewb: float,
    T_edb: float,
    P: float
) -> StageCapacity:
    """Net sensible capacity of the stage at the given outdoor and entering
    air conditions.

    The S/T ratio comes from the fitted S/T model, if available. Otherwise
    the bypass factor of the coil is adjusted to the stage airflow by means
    of the unit's A0 coefficient, and the S/T ratio follows from the ADP/BPF
    coil model. The S/T ratio and supply air temperature are also stored
    on `stage`.
    """
    Q_fan = stage_fan_heat(profile, stage)
    Q_net_tot, capacity_cf = net_total_capacity(profile, curves, stage, T_odb, T_ewb)
    Q_gross_tot = Q_net_tot + Q_fan
    W_ent = psy.humidity_ratio_from_wet_bulb(T_edb, T_ewb, P)
    V_dot_stage = profile.V_dot * stage.flow_fraction
    if V_dot_stage <= 0.0:
        # no airflow over the coil: sensible capacity is undefined
        stage.st_ratio = stage.T_sup = float('nan')
        return StageCapacity(Q_net_tot, float('nan'), float('nan'), float('nan'), capacity_cf)
    st = curves.st_ratio(T_odb, T_ewb, T_edb)
    if st is None:
        st = psy.sensible_to_total_ratio_a0(
            profile.a0, Q_gross_tot * 1000.0, V_dot_stage, W_ent, T_edb, P
        ).st_ratio
    stage.st_ratio = st
    # supply state is not checked against saturation here
    sup = psy.supply_air_state(Q_gross_tot * 1000.0, st, V_dot_stage, T_edb, W_ent, P)
    stage.T_sup = sup.T_db
    Q_sen = Q_gross_tot * st - Q_fan
    return StageCapacity(Q_net_tot, Q_sen, st, sup.T_db, capacity_cf)
