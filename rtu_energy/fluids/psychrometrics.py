"""Psychrometric relations of moist air in Imperial units.

All functions take and return plain floats:

- temperatures in °F,
- barometric pressure `P` in inHg,
- humidity ratio `W` in lb water per lb dry air,
- enthalpy `h` in Btu per lb dry air,
- relative humidity `RH` as a fraction,
- volume flow rates in CFM and heat flows in Btu/h.

The relations follow the ASHRAE Handbook of Fundamentals (Chapter 6). The
coil model (apparatus dew point, bypass factor and A0 coefficient) follows
the method that is also used in EnergyPlus for single-speed DX coils.
"""
import math
from typing import NamedTuple
from ..exceptions import InputError, PsychrometricError
from ..logging import ModuleLogger
from .constants import (
    STANDARD_PRESSURE,
    CP_DRY_AIR,
    CP_WATER_VAPOR,
    H_FG_0,
    MOLAR_MASS_RATIO
)

logger = ModuleLogger.get_logger(__name__)

P_STD = STANDARD_PRESSURE.to('inHg').m

# inHg per psi
INHG_PER_PSI = 2.0360


class SupplyAir(NamedTuple):
    T_db: float
    W: float


class ApparatusDewPoint(NamedTuple):
    T_adp: float
    W_adp: float


class STRatio(NamedTuple):
    st_ratio: float
    bypass_factor: float


def specific_volume(T_db: float, W: float, P: float) -> float:
    """Specific volume of moist air in ft³ per lb dry air."""
    return 53.352 * (T_db + 459.67) * (1.0 + 1.6078 * W) / (P * 144.0 / INHG_PER_PSI)


def dew_point(W: float, P: float) -> float:
    """Dew point temperature from humidity ratio."""
    P_v = P * W / (MOLAR_MASS_RATIO + W)
    P_v_psi = P_v / INHG_PER_PSI
    a = math.log(P_v_psi)
    T_dp = (
        100.45 + 33.193 * a + 2.319 * a ** 2
        + 0.17074 * a ** 3 + 1.2063 * P_v_psi ** 0.1984
    )
    if T_dp > 32.0:
        return T_dp
    # over ice
    return 90.12 + 26.142 * a + 0.8927 * a ** 2


def saturation_pressure(T: float) -> float:
    """Saturation pressure of water vapor in inHg (Hyland-Wexler), over
    liquid water above 32 °F and over ice below.
    """
    R = T + 459.67
    if T > 32.0:
        ln_p = (
            -1.044039708e4 / R - 1.12946496e1 - 2.7022355e-2 * R
            + 1.2890360e-5 * R ** 2 - 2.478068e-9 * R ** 3
            + 6.5459673 * math.log(R)
        )
    else:
        ln_p = (
            -1.021416462e4 / R - 4.89350301 - 5.37657944e-3 * R
            + 1.92023769e-7 * R ** 2 + 3.55758316e-10 * R ** 3
            - 9.03446883e-14 * R ** 4 + 4.1635019 * math.log(R)
        )
    return math.exp(ln_p) * INHG_PER_PSI


def saturation_humidity_ratio(T: float, P: float) -> float:
    P_ws = saturation_pressure(T)
    return MOLAR_MASS_RATIO * P_ws / (P - P_ws)


def humidity_ratio_from_wet_bulb(T_db: float, T_wb: float, P: float) -> float:
    W_s = saturation_humidity_ratio(T_wb, P)
    num = (1093.0 - 0.556 * T_wb) * W_s - CP_DRY_AIR * (T_db - T_wb)
    den = 1093.0 + CP_WATER_VAPOR * T_db - T_wb
    return num / den


def humidity_ratio_from_rh(T_db: float, RH: float, P: float) -> float:
    P_v = RH * saturation_pressure(T_db)
    return MOLAR_MASS_RATIO * P_v / (P - P_v)


def humidity_ratio_from_enthalpy(T_db: float, h: float) -> float:
    return (h - CP_DRY_AIR * T_db) / (H_FG_0 + CP_WATER_VAPOR * T_db)


def enthalpy(T_db: float, W: float) -> float:
    return CP_DRY_AIR * T_db + W * (H_FG_0 + CP_WATER_VAPOR * T_db)


def dry_bulb_from_enthalpy(h: float, W: float) -> float:
    return (h - H_FG_0 * W) / (CP_DRY_AIR + CP_WATER_VAPOR * W)


def relative_humidity(T_db: float, W: float, P: float) -> float:
    P_v = P * W / (MOLAR_MASS_RATIO + W)
    return P_v / saturation_pressure(T_db)


def _wet_bulb_first_guess(T_db: float, W: float) -> float:
    # polynomial fit of wet-bulb temperature against the log of enthalpy
    h = enthalpy(T_db, W)
    y = math.log(h)
    if h < 11.758:
        return 0.6040 + 3.4841 * y + 1.3601 * y ** 2 + 0.9731 * y ** 3
    return 30.9185 - 39.682 * y + 20.5841 * y ** 2 - 1.758 * y ** 3


def wet_bulb(
    T_db: float,
    W: float,
    P: float,
    step: float = 0.02,
    tol: float = 0.001,
    max_iter: int = 10
) -> float:
    """Wet-bulb temperature from dry-bulb temperature and humidity ratio.

    The wet-bulb temperature is found with Newton's method, using a finite
    difference slope with the given `step` (°F). Iteration stops when the
    change of the estimate is smaller than `tol` (°F) or after `max_iter`
    iterations. In the latter case the last estimate is returned without an
    error being raised.

    Raises
    ------
    InputError
        If any of the inputs is NaN.
    """
    if any(v is None or math.isnan(v) for v in (T_db, W, P)):
        raise InputError(
            "Wet-bulb temperature cannot be determined: "
            "an input is NaN or None."
        )
    T_wb = _wet_bulb_first_guess(T_db, W) if T_db > 0.0 else T_db
    i = 0
    while True:
        W_guess = humidity_ratio_from_wet_bulb(T_db, T_wb, P)
        slope = (humidity_ratio_from_wet_bulb(T_db, T_wb + step, P) - W_guess) / step
        T_wb_next = T_wb + (W - W_guess) / slope
        if i < max_iter and abs(T_wb_next - T_wb) > tol:
            T_wb = T_wb_next
            i += 1
            continue
        if i >= max_iter:
            logger.debug(
                f"Wet-bulb iteration did not converge for T_db = {T_db:.3f}, "
                f"W = {W:.6f}; last estimate returned."
            )
        return T_wb_next


def _saturation_enthalpy_error(T: float, h: float, P: float) -> float:
    return h - enthalpy(T, humidity_ratio_from_rh(T, 1.0, P))


def saturation_temperature_from_enthalpy(
    h: float,
    P: float,
    T_guess: float,
    step: float = 0.001,
    tol: float = 0.001,
    max_iter: int = 10
) -> float:
    """Temperature on the saturation curve where the enthalpy of saturated
    air equals `h`. Newton's method is used starting from `T_guess`. If the
    enthalpy error is not smaller than `tol` after `max_iter` iterations,
    the last estimate is returned.
    """
    T_prev = T_guess
    T_est = T_guess
    for _ in range(max_iter):
        err = _saturation_enthalpy_error(T_prev, h, P)
        slope = (err - _saturation_enthalpy_error(T_prev + step, h, P)) / step
        T_est = T_prev + err / slope
        if abs(_saturation_enthalpy_error(T_est, h, P)) < tol:
            return T_est
        T_prev = T_est
    logger.debug(
        f"Saturation temperature iteration did not converge for h = {h:.3f}; "
        f"last estimate returned."
    )
    return T_est


def apparatus_dew_point(
    T_sup: float,
    W_sup: float,
    T_ent: float,
    W_ent: float,
    P: float,
    step: float = 0.2,
    max_steps: int = 1000
) -> ApparatusDewPoint:
    """Apparatus dew point of a cooling coil.

    Starting from the supply air state, the straight process line through
    the entering and supply air state is followed in decrements of `step`
    (°F) until it crosses the saturation curve. The crossing point is then
    found by linear interpolation between the last two steps.

    Parameters
    ----------
    T_sup, W_sup:
        Supply air dry-bulb temperature and humidity ratio.
    T_ent, W_ent:
        Entering air dry-bulb temperature and humidity ratio.
    P:
        Barometric pressure.

    Returns
    -------
    ApparatusDewPoint
        Dew point temperature and humidity ratio at the apparatus dew point.

    Raises
    ------
    PsychrometricError
        If the supply humidity ratio is negative, if supply and entering
        air have the same dry-bulb, if the humidity ratio along the coil line
        drops to zero, if supply air is warmer or more humid than entering air, if the distance to the saturation
        curve stops decreasing, or if the saturation curve is not reached
        within `max_steps` steps.
    """
    if W_sup < 0.0:
        raise PsychrometricError("ADP: supply humidity ratio < 0")
    if T_ent == T_sup:
        raise PsychrometricError("ADP: supply dry-bulb equals entering dry-bulb")
    slope = (W_ent - W_sup) / (T_ent - T_sup)
    T_cand, W_cand = T_sup, W_sup
    delta = 1000.0
    for n in range(1, max_steps):
        T_cand_prev, W_cand_prev = T_cand, W_cand
        T_cand = T_sup - n * step
        W_cand = W_sup - n * step * slope
        if not W_cand > 0.0:
            raise PsychrometricError(
                f"ADP: humidity ratio along the coil line drops to zero (step {n})"
            )
        delta_prev = delta
        delta = T_cand - dew_point(W_cand, P)
        if delta < 0.0:
            f = abs(delta) / (abs(delta) + abs(delta_prev))
            T_adp = T_cand + f * (T_cand_prev - T_cand)
            W_adp = W_cand + f * (W_cand_prev - W_cand)
            return ApparatusDewPoint(T_adp, W_adp)
        if T_sup > T_ent:
            raise PsychrometricError(
                f"ADP: supply dry-bulb > entering dry-bulb (step {n})"
            )
        if W_sup > W_ent:
            raise PsychrometricError(
                f"ADP: supply humidity ratio > entering humidity ratio (step {n})"
            )
        if delta > delta_prev:
            raise PsychrometricError(
                f"ADP: distance to saturation increases, not finding "
                f"saturation point (step {n})"
            )
    raise PsychrometricError(
        f"ADP: saturation curve not reached within {max_steps - 1} steps"
    )


def dry_air_mass_flow(V_dot: float, T_db: float, W: float, P: float) -> float:
    """Mass flow rate of dry air in lb/h for a volume flow rate in CFM."""
    return V_dot * 60.0 / specific_volume(T_db, W, P)


def supply_air_state(
    Q_tot: float,
    st_ratio: float,
    V_dot: float,
    T_ent: float,
    W_ent: float,
    P: float
) -> SupplyAir:
    """Supply air state leaving a coil with total capacity `Q_tot` (Btu/h)
    and sensible-to-total ratio `st_ratio`, for the airflow `V_dot` (CFM)
    and the given entering air state. The state is not checked against the
    saturation curve (see `supply_conditions`).
    """
    m_da = dry_air_mass_flow(V_dot, T_ent, W_ent, P)
    Q_lat = (1.0 - st_ratio) * Q_tot
    W_sup = W_ent - Q_lat / (m_da * (H_FG_0 + CP_WATER_VAPOR * T_ent))
    Q_sen = st_ratio * Q_tot
    T_sup = T_ent - Q_sen / (m_da * (CP_DRY_AIR + CP_WATER_VAPOR * W_sup))
    return SupplyAir(T_sup, W_sup)


def supply_conditions(
    Q_tot: float,
    st_ratio: float,
    V_dot: float,
    T_ent: float,
    W_ent: float,
    P: float
) -> SupplyAir:
    """Same as `supply_air_state`, but raises `PsychrometricError` if the
    supply air state lies beyond the saturation curve or has a negative
    humidity ratio.
    """
    sup = supply_air_state(Q_tot, st_ratio, V_dot, T_ent, W_ent, P)
    if sup.W < 0.0:
        raise PsychrometricError("Supply: humidity ratio is less than 0.")
    if sup.T_db < dew_point(sup.W, P):
        raise PsychrometricError(
            "Supply: dry-bulb temperature is less than the dew point for "
            "the calculated humidity ratio (it's on the other side of the "
            "saturation curve)."
        )
    return sup


def total_capacity(
    V_dot: float,
    P: float,
    T_ent: float,
    W_ent: float,
    T_sup: float,
    W_sup: float
) -> float:
    """Total coil capacity (Btu/h) from an energy balance over the coil,
    including the enthalpy carried away by the condensate.
    """
    m_da = dry_air_mass_flow(V_dot, T_ent, W_ent, P)
    m_w = m_da * (W_ent - W_sup)
    return m_da * (enthalpy(T_ent, W_ent) - enthalpy(T_sup, W_sup)) - m_w * (T_sup - 32.0)


def bypass_factor(T_ent: float, T_sup: float, T_adp: float) -> float:
    return (T_sup - T_adp) / (T_ent - T_adp)


def bypass_factor_from_capacity(
    Q_tot: float,
    st_ratio: float,
    V_dot: float,
    T_ent: float,
    W_ent: float,
    P: float
) -> float:
    """Bypass factor of a coil derived from its total capacity and S/T ratio:
    supply air state, then apparatus dew point, then bypass factor. Any
    `PsychrometricError` of the intermediate steps is propagated.
    """
    sup = supply_conditions(Q_tot, st_ratio, V_dot, T_ent, W_ent, P)
    adp = apparatus_dew_point(sup.T_db, sup.W, T_ent, W_ent, P)
    return bypass_factor(T_ent, sup.T_db, adp.T_adp)


def a0_from_bypass_factor(bpf: float, V_dot: float) -> float:
    """Returns coefficient A0 (lb/h) of the relation BPF = exp(-A0 / m_da),
    with the mass flow of dry air taken at 80 °F DB / 67 °F WB and standard
    pressure.
    """
    W = humidity_ratio_from_wet_bulb(80.0, 67.0, P_STD)
    m_da = dry_air_mass_flow(V_dot, 80.0, W, P_STD)
    return -m_da * math.log(bpf)


def bypass_factor_from_a0(a0: float, T_ent: float, T_wb_ent: float, P: float, V_dot: float) -> float:
    """Bypass factor at airflow `V_dot` derived from coefficient A0."""
    W = humidity_ratio_from_wet_bulb(T_ent, T_wb_ent, P_STD)
    m_da = dry_air_mass_flow(V_dot, T_ent, W, P)
    return math.exp(-a0 / m_da)


def sensible_to_total_ratio(
    bpf: float,
    Q_tot: float,
    V_dot: float,
    W_ent: float,
    T_ent: float,
    P: float
) -> float:
    """Sensible-to-total ratio of a coil with bypass factor `bpf` (already
    valid for airflow `V_dot`) and total capacity `Q_tot` (Btu/h). The
    result is limited to [0, 1].
    """
    m_da = dry_air_mass_flow(V_dot, T_ent, W_ent, P)
    h_ent = enthalpy(T_ent, W_ent)
    h_adp = h_ent - (Q_tot / m_da) / (1.0 - bpf)
    T_adp = saturation_temperature_from_enthalpy(h_adp, P, T_guess=T_ent)
    W_adp = saturation_humidity_ratio(T_adp, P)
    h_elbow = enthalpy(T_ent, W_adp)
    st = (h_elbow - h_adp) / (h_ent - h_adp)
    return min(max(st, 0.0), 1.0)


def sensible_to_total_ratio_a0(
    a0: float,
    Q_tot: float,
    V_dot: float,
    W_ent: float,
    T_ent: float,
    P: float
) -> STRatio:
    """Sensible-to-total ratio where the bypass factor is first adjusted to
    airflow `V_dot` with coefficient A0.
    """
    T_wb_ent = wet_bulb(T_ent, W_ent, P)
    bpf = bypass_factor_from_a0(a0, T_ent, T_wb_ent, P, V_dot)
    st = sensible_to_total_ratio(bpf, Q_tot, V_dot, W_ent, T_ent, P)
    return STRatio(st, bpf)


def pressure_from_elevation(z: float) -> float:
    """Barometric pressure (inHg) at elevation `z` (ft) according to the
    standard atmosphere.
    """
    return P_STD * ((288.0 - 0.0065 * z / 3.281) / 288.0) ** 5.256
