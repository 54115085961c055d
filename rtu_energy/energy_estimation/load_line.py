"""Non-ventilation sensible load of the building as a linear function of
outdoor dry-bulb temperature.

The load line is anchored at two points:

- at the indoor setpoint, the load equals the internal (and solar) part of
  the design sensible load;
- at the design outdoor temperature, the load equals the sensible capacity of
  the unit at design conditions (reduced by the oversizing factor) minus the
  sensible ventilation load at design.
"""
from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum
from .. import Quantity, to_engine
from ..exceptions import InputError
from ..climate import DesignConditions
from ..fluids import psychrometrics as psy
from ..fluids.constants import RATING_ODB, RATING_EWB, RATING_EDB
from ..logging import ModuleLogger
from ..performance import EquipmentProfile, PerformanceCurves, resolve_curves, StageState
from ..performance.air_side import (
    EnteringAir,
    indoor_relative_humidity,
    sensible_ventilation_load,
    mix_air
)
from ..performance.capacity import net_sensible_capacity

logger = ModuleLogger.get_logger(__name__)

Q_ = Quantity


class VentilationUnits(Enum):
    CFM = 'CFM'
    PERCENT_OF_FAN = '% of Fan Cap.'


@dataclass(frozen=True)
class DesignInputs:
    """Building and operating inputs of the load line and the bin
    simulation.

    Attributes
    ----------
    design:
        Outdoor design conditions.
    T_setpoint:
        Indoor dry-bulb setpoint during occupied hours (°F).
    setback:
        Increase of the setpoint during unoccupied hours (°F). When 0, the
        unit is off during unoccupied hours.
    RH_setpoint:
        Indoor relative humidity (fraction) when indoor humidity does not
        track outdoor humidity.
    track_outdoor_humidity:
        If True, the indoor humidity ratio equals the outdoor humidity ratio
        (indoor RH limited to 20 % .. 65 %).
    ventilation_value:
        Outdoor airflow, in CFM or in percent of fan airflow depending on
        `ventilation_units`.
    ventilation_units:
        Units of `ventilation_value`.
    internal_load_fraction:
        Fraction of the design sensible load that is due to internal and
        solar gains, i.e. the load that remains at the setpoint temperature.
    oversize_pct:
        Oversizing of the unit with respect to the design load (%).
    locked_slope, locked_intercept:
        Load line imposed by the user. Used only when both are finite.
    """
    design: DesignConditions
    T_setpoint: float = 75.0
    setback: float = 0.0
    RH_setpoint: float = 0.60
    track_outdoor_humidity: bool = True
    ventilation_value: float = 10.0
    ventilation_units: VentilationUnits = VentilationUnits.PERCENT_OF_FAN
    internal_load_fraction: float = 0.5
    oversize_pct: float = 0.0
    locked_slope: float | None = None
    locked_intercept: float | None = None

    @classmethod
    def create(
        cls,
        design: DesignConditions,
        T_setpoint: Quantity | float = Q_(75.0, 'degF'),
        setback: Quantity | float = Q_(0.0, 'delta_degF'),
        RH_setpoint: Quantity | float = Q_(60.0, 'pct'),
        track_outdoor_humidity: bool = True,
        ventilation: Quantity | float = Q_(10.0, 'pct'),
        internal_load_fraction: Quantity | float = 0.5,
        oversize: Quantity | float = Q_(0.0, 'pct'),
        locked_slope: float | None = None,
        locked_intercept: float | None = None
    ) -> DesignInputs:
        """Creates `DesignInputs` from `Quantity` objects.

        Ventilation can be specified as a volume flow rate (e.g.
        ``Q_(200, 'ft ** 3 / min')``) or as a fraction of fan airflow (e.g.
        ``Q_(10, 'pct')``). A plain number is taken as percent of fan
        airflow.
        """
        if isinstance(ventilation, Quantity) and ventilation.check('[length] ** 3 / [time]'):
            vent_value = to_engine(ventilation, 'V_dot')
            vent_units = VentilationUnits.CFM
        elif isinstance(ventilation, Quantity):
            vent_value = ventilation.to('pct').m
            vent_units = VentilationUnits.PERCENT_OF_FAN
        else:
            vent_value = float(ventilation)
            vent_units = VentilationUnits.PERCENT_OF_FAN
        if isinstance(oversize, Quantity):
            oversize = oversize.to('pct').m
        design_inputs = cls(
            design=design,
            T_setpoint=to_engine(T_setpoint, 'T'),
            setback=to_engine(setback, 'DT'),
            RH_setpoint=to_engine(RH_setpoint, 'frac'),
            track_outdoor_humidity=track_outdoor_humidity,
            ventilation_value=vent_value,
            ventilation_units=vent_units,
            internal_load_fraction=to_engine(internal_load_fraction, 'frac'),
            oversize_pct=float(oversize),
            locked_slope=locked_slope,
            locked_intercept=locked_intercept
        )
        design_inputs.validate()
        return design_inputs

    def validate(self) -> None:
        values = {
            'setpoint': self.T_setpoint,
            'setback': self.setback,
            'ventilation': self.ventilation_value,
            'internal load fraction': self.internal_load_fraction,
            'oversize': self.oversize_pct
        }
        for name, value in values.items():
            if value is None or not math.isfinite(value):
                raise InputError(f"Invalid {name}: {value!r}.")
        if self.ventilation_value < 0.0:
            raise InputError(f"Ventilation must not be negative, got {self.ventilation_value}.")
        if self.setback < 0.0:
            raise InputError(f"Setback must not be negative, got {self.setback}.")

    def ventilation_cfm(self, V_dot_fan: float) -> float:
        """Outdoor airflow (CFM) of a unit with fan airflow `V_dot_fan` (CFM)."""
        if self.ventilation_units == VentilationUnits.CFM:
            return self.ventilation_value
        return V_dot_fan * self.ventilation_value / 100.0

    @property
    def load_reduction_factor(self) -> float:
        return 1.0 + self.oversize_pct / 100.0

    @property
    def locked(self) -> bool:
        return (
            self.locked_slope is not None and self.locked_intercept is not None
            and math.isfinite(self.locked_slope) and math.isfinite(self.locked_intercept)
        )


@dataclass(frozen=True)
class DesignSnapshot:
    """Conditions and loads at design from which the load line is derived.
    Temperatures in °F, humidity ratios in lb/lb, loads in kBtuh.
    """
    T_odb: float
    T_owb: float
    W_out: float
    P: float
    z: float
    T_idb: float
    RH_in: float
    W_in: float
    h_in: float
    entering: EnteringAir
    st_ratio: float
    V_dot_vent: float
    Q_sen_test: float
    Q_sen_design: float
    Q_vent_design: float
    Q_load_design: float
    Q_non_vent_design: float
    Q_internal: float


@dataclass(frozen=True)
class LoadLine:
    """Non-ventilation sensible load (kBtuh) = slope · (T_out - T_set) +
    intercept.
    """
    slope: float
    intercept: float
    T_setpoint: float
    inputs: DesignInputs | None = None
    design: DesignSnapshot | None = None
    warnings: tuple[str, ...] = ()
    locked: bool = False

    def non_ventilation_load(self, T_out: float, T_set: float | None = None) -> float:
        """Non-ventilation sensible load at outdoor temperature `T_out` (°F),
        relative to setpoint `T_set` (defaults to the occupied setpoint).
        """
        if T_set is None:
            T_set = self.T_setpoint
        return self.slope * (T_out - T_set) + self.intercept


def fit_load_line(
    T_design: float,
    T_set: float,
    Q_non_vent_design: float,
    Q_internal: float
) -> tuple[float, float]:
    """Returns slope (kBtuh/°F) and intercept (kBtuh) of the line through
    (`T_set`, `Q_internal`) and (`T_design`, `Q_non_vent_design`).

    Raises
    ------
    InputError
        If the design temperature equals the setpoint.
    """
    if T_design == T_set:
        raise InputError(
            f"Outside design temperature ({T_design}) is equal to the set point ({T_set})."
        )
    slope = (Q_non_vent_design - Q_internal) / (T_design - T_set)
    return slope, Q_internal


def compute_load_line(
    profile: EquipmentProfile,
    design_inputs: DesignInputs,
    curves: PerformanceCurves | None = None
) -> LoadLine:
    """Derives the load line of the building served by the unit.

    Parameters
    ----------
    profile:
        The unit the building is sized for (normally the candidate unit).
    design_inputs:
        Design conditions and building inputs.
    curves: optional
        Performance curves of the unit; resolved from `profile` if None.

    Returns
    -------
    LoadLine

    Raises
    ------
    InputError
        If the design temperature equals the setpoint, or if the slope is
        negative. A negative slope is reported differently when the design
        temperature lies below the setpoint than when the ventilation load
        exceeds the non-ventilation load at design.
    """
    design_inputs.validate()
    dc = design_inputs.design
    T_set = design_inputs.T_setpoint
    warnings = (dc.warning,) if dc.warning else ()
    if design_inputs.locked:
        logger.debug(
            f"Locked load line: slope {design_inputs.locked_slope}, "
            f"intercept {design_inputs.locked_intercept}"
        )
        return LoadLine(
            slope=design_inputs.locked_slope,
            intercept=design_inputs.locked_intercept,
            T_setpoint=T_set,
            inputs=design_inputs,
            warnings=warnings,
            locked=True
        )

    curves = curves or resolve_curves(profile)
    P = dc.P
    W_out = psy.humidity_ratio_from_wet_bulb(dc.T_db, dc.T_wb, P)
    RH_in = indoor_relative_humidity(
        design_inputs.track_outdoor_humidity, W_out, T_set,
        design_inputs.RH_setpoint, P
    )
    W_in = psy.humidity_ratio_from_rh(T_set, RH_in, P)

    Q_sen_test = net_sensible_capacity(
        profile, curves, StageState.full_load(),
        RATING_ODB.m, RATING_EWB.m, RATING_EDB.m, psy.P_STD
    ).Q_sen
    V_dot_vent = design_inputs.ventilation_cfm(profile.V_dot)
    Q_vent = sensible_ventilation_load(V_dot_vent, W_out, dc.T_db, T_set, P)
    entering = mix_air(profile, T_set, W_in, dc.T_db, W_out, P, V_dot_vent, profile.V_dot)
    cap = net_sensible_capacity(
        profile, curves, StageState.full_load(),
        dc.T_db, entering.T_wb, entering.T_db, P
    )
    Q_load = cap.Q_sen / design_inputs.load_reduction_factor
    Q_non_vent = max(0.0, Q_load - Q_vent)
    Q_internal = Q_load * design_inputs.internal_load_fraction

    snapshot = DesignSnapshot(
        T_odb=dc.T_db, T_owb=dc.T_wb, W_out=W_out, P=P, z=dc.z,
        T_idb=T_set, RH_in=RH_in, W_in=W_in, h_in=psy.enthalpy(T_set, W_in),
        entering=entering,
        st_ratio=cap.st_ratio,
        V_dot_vent=V_dot_vent,
        Q_sen_test=Q_sen_test,
        Q_sen_design=cap.Q_sen,
        Q_vent_design=Q_vent,
        Q_load_design=Q_load,
        Q_non_vent_design=Q_non_vent,
        Q_internal=Q_internal
    )

    slope, intercept = fit_load_line(dc.T_db, T_set, Q_non_vent, Q_internal)
    if slope < 0.0:
        if dc.T_db - T_set < 0.0:
            raise InputError(
                f"Outside design temperature ({dc.T_db}) is lower than the set point ({T_set})."
            )
        raise InputError(
            "For the specified ventilation rate, the non-ventilation load at "
            "design is less than the internal load (negative non-ventilation "
            "slope). Reduce ventilation or lock the load line before "
            "increasing ventilation."
        )
    logger.debug(
        f"Load line: slope {slope:.4f} kBtuh/°F, intercept {intercept:.3f} kBtuh "
        f"(design load {Q_load:.2f} kBtuh, ventilation {Q_vent:.2f} kBtuh)"
    )
    return LoadLine(
        slope=slope,
        intercept=intercept,
        T_setpoint=T_set,
        inputs=design_inputs,
        design=snapshot,
        warnings=warnings
    )
