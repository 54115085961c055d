"""Indoor humidity, ventilation load and mixing of room and outdoor air at
the coil inlet.
"""
from typing import NamedTuple
from ..fluids import psychrometrics as psy
from ..fluids.constants import KW_TO_KBTUH
from .profile import EquipmentProfile

IRH_MIN = 0.20
IRH_MAX = 0.65

# fan efficiency times motor efficiency
FAN_MOTOR_EFFICIENCY = 0.70 * 0.85


class EnteringAir(NamedTuple):
    T_db: float
    T_wb: float
    W: float


def limit_indoor_rh(RH: float) -> float:
    return min(max(RH, IRH_MIN), IRH_MAX)


def indoor_relative_humidity(
    track_outdoor: bool,
    W_out: float,
    T_in: float,
    RH_setpoint: float,
    P: float
) -> float:
    """Indoor relative humidity. When tracking outdoor humidity, the indoor
    humidity ratio equals the outdoor one and the resulting relative
    humidity at the indoor setpoint is limited to 20 % .. 65 %. Otherwise the
    fixed setpoint `RH_setpoint` is returned.
    """
    if track_outdoor:
        return limit_indoor_rh(psy.relative_humidity(T_in, W_out, P))
    return RH_setpoint


def sensible_ventilation_load(V_dot: float, W_out: float, T_out: float, T_in: float, P: float) -> float:
    """Sensible heat gain (kBtuh) of `V_dot` CFM outdoor air brought to
    indoor temperature. Negative when it is colder outside.
    """
    m_da = psy.dry_air_mass_flow(V_dot, T_out, W_out, P)
    return m_da * (0.24 + 0.444 * W_out) * (T_out - T_in) / 1000.0


def ventilation_cfm_for_slope(slope: float, W_out: float, T_out: float, P: float) -> float:
    """Outdoor airflow (CFM) whose sensible ventilation load rises by
    `slope` kBtuh per °F of outdoor temperature.
    """
    return slope * (psy.specific_volume(T_out, W_out, P) / 60.0) / (0.24 + 0.444 * W_out) * 1000.0


def mix_air(
    profile: EquipmentProfile,
    T_in: float,
    W_in: float,
    T_out: float,
    W_out: float,
    P: float,
    V_dot_vent: float,
    V_dot_fan: float
) -> EnteringAir:
    """Air state entering the coil after adiabatic mixing of room air and
    outdoor air, and after the heat of the blower (draw-through) has been
    added.

    Parameters
    ----------
    profile:
        The unit; its rated blower power determines the fan heat.
    T_in, W_in:
        Room air dry-bulb and humidity ratio.
    T_out, W_out:
        Outdoor air dry-bulb and humidity ratio.
    P:
        Barometric pressure.
    V_dot_vent:
        Outdoor airflow (CFM). Limited to `V_dot_fan`.
    V_dot_fan:
        Total airflow delivered by the fan (CFM).
    """
    if V_dot_vent > V_dot_fan:
        V_dot_room, V_dot_vent = 0.0, V_dot_fan
    else:
        V_dot_room = V_dot_fan - V_dot_vent
    m_room = V_dot_room / psy.specific_volume(T_in, W_in, P)
    m_vent = V_dot_vent / psy.specific_volume(T_out, W_out, P)
    m_mix = m_room + m_vent
    W_mix = (W_in * m_room + W_out * m_vent) / m_mix
    h_mix = (psy.enthalpy(T_in, W_in) * m_room + psy.enthalpy(T_out, W_out) * m_vent) / m_mix
    T_mix = psy.dry_bulb_from_enthalpy(h_mix, W_mix)
    dT_fan = (
        1000.0 * KW_TO_KBTUH * profile.blower_kW * (1.0 - FAN_MOTOR_EFFICIENCY)
        / (60.0 * m_mix * (0.240 + 0.444 * W_mix))
    )
    T_db = T_mix + dT_fan
    return EnteringAir(T_db, psy.wet_bulb(T_db, W_mix, P), W_mix)
