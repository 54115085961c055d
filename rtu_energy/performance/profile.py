"""Rated performance and control attributes of a packaged rooftop unit."""
from __future__ import annotations
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING
from .. import Quantity, to_engine
from ..exceptions import InputError, PsychrometricError
from ..fluids import psychrometrics as psy
from ..fluids.constants import KW_TO_KBTUH
from ..logging import ModuleLogger
from ..regression import FittedModel

if TYPE_CHECKING:
    from .manufacturer_data import ManufacturerData

logger = ModuleLogger.get_logger(__name__)

Q_ = Quantity


class FanControl(Enum):
    SINGLE_SPEED_ALWAYS_ON = '1-Spd: Always ON'
    SINGLE_SPEED_CYCLES = '1-Spd: Cycles With Compressor'
    MULTI_SPEED_ALWAYS_ON = 'N-Spd: Always ON'
    MULTI_SPEED_CYCLES = 'N-Spd: Cycles With Compressor'
    VARIABLE_SPEED = 'V-Spd: Always ON'

    @property
    def speed(self) -> str:
        """'1' (single-speed), 'N' (multi-speed) or 'V' (variable-speed)."""
        return self.value[0]

    @property
    def always_on(self) -> bool:
        return self.value.endswith('Always ON')

    @property
    def cycles(self) -> bool:
        return self.value.endswith('Cycles With Compressor')


class EquipmentFamily(Enum):
    NONE = 'None'
    ADVANCED_CONTROLS = 'Advanced Controls'
    THREE_STAGES = 'Three Stages'
    VARIABLE_SPEED_COMPRESSOR = 'Variable-Speed Compressor'


class CurveSet(Enum):
    DOE2 = 'DOE2'
    CARRIER = 'Carrier'


DEFAULTS = {
    'st_ratio_at_test': 0.72,
    'n_affinity': 2.5,
    'blower_kW_slope': 0.0132,      # kW per kBtuh
    'blower_kW_intercept': -0.2283,  # kW
    'cfm_per_ton': 400.0,
    'min_capacity_fraction': 0.15,
    'degradation_pct': 25.0,
    'condenser_fan_pct': 9.0,
    'aux_kW': 0.0
}

_STAGE_LEVELS = {
    1: (1.0,),
    2: (0.5, 1.0),
    3: (0.4, 0.6, 1.0),
    5: (0.2, 0.4, 0.6, 0.8, 1.0),
    10: (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0)
}


def stage_levels(n_stages: int) -> tuple[float, ...]:
    """Returns the capacity fractions of the stages of a unit with
    `n_stages` stages (1, 2, 3, 5 or 10).
    """
    try:
        return _STAGE_LEVELS[int(n_stages)]
    except (KeyError, ValueError, TypeError):
        raise InputError(
            f"Number of stages must be one of {sorted(_STAGE_LEVELS)}, "
            f"got {n_stages!r}."
        ) from None


def default_blower_power(Q_net: float) -> float:
    """Rated blower power (kW) of a unit with net capacity `Q_net` (kBtuh)
    when no blower power is specified.
    """
    return DEFAULTS['blower_kW_slope'] * Q_net + DEFAULTS['blower_kW_intercept']


@dataclass(frozen=True)
class EquipmentProfile:
    """Rated performance of a unit together with its control attributes.

    All values are plain floats in engine units: capacities in kBtuh, airflow
    in CFM, powers in kW. Use `EquipmentProfile.create(...)` to build a
    profile from `Quantity` objects with the defaults applied and the derived
    fields (condenser power, EER, A0 coefficient) filled in.
    """
    name: str
    Q_net: float
    V_dot: float
    EER: float
    blower_kW: float
    aux_kW: float
    condenser_kW: float
    st_ratio_at_test: float
    a0: float
    fan_control: FanControl = FanControl.SINGLE_SPEED_ALWAYS_ON
    stage_levels: tuple[float, ...] = (1.0,)
    min_capacity_fraction: float = DEFAULTS['min_capacity_fraction']
    degradation_pct: float = DEFAULTS['degradation_pct']
    condenser_fan_pct: float = DEFAULTS['condenser_fan_pct']
    n_affinity: float = DEFAULTS['n_affinity']
    family: EquipmentFamily = EquipmentFamily.NONE
    curve_set: CurveSet = CurveSet.DOE2
    economizer: bool = False
    gross_capacity_model: FittedModel | None = None
    condenser_power_model: FittedModel | None = None
    st_ratio_model: FittedModel | None = None
    part_load_model: FittedModel | None = None

    def __post_init__(self):
        self._validate()

    def _validate(self):
        if not math.isfinite(self.Q_net) or self.Q_net <= 0.0:
            raise InputError(f"Net capacity must be a positive number, got {self.Q_net!r}.")
        if not math.isfinite(self.V_dot) or self.V_dot <= 0.0:
            raise InputError(f"Airflow must be a positive number, got {self.V_dot!r}.")
        if not (0.0 < self.st_ratio_at_test < 1.0):
            raise InputError(
                f"S/T ratio at test conditions must lie between 0 and 1, "
                f"got {self.st_ratio_at_test!r}."
            )
        if not self.n_affinity > 0.0:
            raise InputError(f"Fan affinity exponent must be > 0, got {self.n_affinity!r}.")
        levels = self.stage_levels
        if not levels or any(b <= a for a, b in zip(levels, levels[1:])) or levels[-1] != 1.0:
            raise InputError(
                f"Stage capacity fractions must be strictly increasing and "
                f"end at 1.0, got {levels!r}."
            )
        if self.fan_control.speed == 'N' and self.n_stages < 2:
            raise InputError("A multi-speed fan requires at least 2 stages.")
        if self.family == EquipmentFamily.ADVANCED_CONTROLS:
            if self.fan_control.speed == 'V' or not set(levels) <= {0.5, 1.0}:
                raise InputError(
                    "Advanced Controls units must be single-stage or two-stage "
                    "(50 %/100 %) units without a variable-speed fan."
                )

    @classmethod
    def create(
        cls,
        Q_net: Quantity | float,
        EER: float | None = None,
        V_dot: Quantity | float | None = None,
        blower_power: Quantity | float | None = None,
        aux_power: Quantity | float | None = None,
        condenser_power: Quantity | float | None = None,
        st_ratio_at_test: float = DEFAULTS['st_ratio_at_test'],
        fan_control: FanControl | str = FanControl.SINGLE_SPEED_ALWAYS_ON,
        n_stages: int = 1,
        family: EquipmentFamily | str = EquipmentFamily.NONE,
        curve_set: CurveSet | str = CurveSet.DOE2,
        economizer: bool = False,
        degradation_pct: float | None = None,
        condenser_fan_pct: float | None = None,
        n_affinity: float = DEFAULTS['n_affinity'],
        min_capacity_fraction: float = DEFAULTS['min_capacity_fraction'],
        manufacturer_data: ManufacturerData | None = None,
        name: str = 'Candidate'
    ) -> EquipmentProfile:
        """Creates an `EquipmentProfile` with defaults applied for the
        inputs that are not specified.

        Parameters
        ----------
        Q_net:
            Net total cooling capacity at AHRI rating conditions (kBtuh if a
            plain number is given).
        EER:
            Rated energy efficiency ratio (Btu/Wh). Used to derive condenser
            power when `condenser_power` is not given.
        V_dot: optional
            Rated airflow. Defaults to 400 CFM per ton.
        blower_power: optional
            Rated blower (evaporator fan) power. Defaults to a linear
            relation in net capacity.
        aux_power: optional
            Auxiliary power (e.g. controls). Default 0 kW.
        condenser_power: optional
            Rated condenser power (compressor and condenser fan).
        st_ratio_at_test:
            Sensible-to-total ratio at rating conditions, strictly between 0
            and 1. Used to derive the coil's A0 bypass coefficient.
        fan_control:
            Fan control mode.
        n_stages:
            Number of compressor stages (1, 2, 3, 5 or 10).
        family:
            Equipment family selecting the built-in performance curves.
        curve_set:
            Generic curve set used for family 'None' and 'Advanced Controls'.
        economizer:
            Whether the unit has an air-side economizer.
        degradation_pct: optional
            Cycling degradation factor in percent. Default 25 %.
        condenser_fan_pct: optional
            Condenser fan power as a percentage of condenser power.
            Default 9 %.
        n_affinity:
            Exponent of the fan affinity law.
        min_capacity_fraction:
            Minimum capacity fraction of a variable-capacity unit.
        manufacturer_data: optional
            Parsed manufacturer data sheet. The models fitted to it override
            the built-in curves where the fit succeeds.
        name:
            Name of the unit, e.g. 'Candidate' or 'Standard'.

        Raises
        ------
        InputError
            If an input is missing or invalid.
        PsychrometricError
            If the bypass factor cannot be derived from the S/T ratio at
            rating conditions.
        """
        Q_net = to_engine(Q_net, 'Q_dot')
        if Q_net is None or not math.isfinite(Q_net) or Q_net <= 0.0:
            raise InputError(f"Net capacity must be a positive number, got {Q_net!r}.")
        V_dot = to_engine(V_dot, 'V_dot')
        if V_dot is None:
            V_dot = Q_net / 12.0 * DEFAULTS['cfm_per_ton']
        blower_kW_raw = to_engine(blower_power, 'W_dot')
        blower_is_default = blower_kW_raw is None
        if blower_is_default:
            blower_kW_raw = default_blower_power(Q_net)
        blower_kW = round(blower_kW_raw, 3) if blower_is_default else blower_kW_raw
        aux_kW = to_engine(aux_power, 'W_dot')
        if aux_kW is None or not math.isfinite(aux_kW):
            aux_kW = DEFAULTS['aux_kW']
        if manufacturer_data is not None:
            sheet_aux = manufacturer_data.scalars.get('AuxilaryPower')
            if sheet_aux is not None and math.isfinite(sheet_aux):
                aux_kW = sheet_aux
        condenser_kW = to_engine(condenser_power, 'W_dot')
        if condenser_kW is None or not math.isfinite(condenser_kW) or condenser_kW == 0.0:
            if EER is None or not math.isfinite(EER) or EER <= 0.0:
                raise InputError(
                    "Either condenser power or a positive EER must be given."
                )
            # the unrounded default blower power enters the derivation
            condenser_kW = round(Q_net / EER - (blower_kW_raw + aux_kW), 3)
        if EER is None or not math.isfinite(EER):
            EER = Q_net / max(0.001, blower_kW + aux_kW + condenser_kW)
        if degradation_pct is None or not math.isfinite(degradation_pct):
            degradation_pct = DEFAULTS['degradation_pct']
        if not condenser_fan_pct:
            condenser_fan_pct = DEFAULTS['condenser_fan_pct']
        if not (0.0 < st_ratio_at_test < 1.0):
            raise InputError(
                f"S/T ratio at test conditions must lie between 0 and 1, "
                f"got {st_ratio_at_test!r}."
            )
        a0 = cls._a0_coefficient(Q_net, blower_kW, st_ratio_at_test, V_dot, name)
        models = {}
        if manufacturer_data is not None:
            models = manufacturer_data.fit_models()
        profile = cls(
            name=name,
            Q_net=Q_net,
            V_dot=V_dot,
            EER=EER,
            blower_kW=blower_kW,
            aux_kW=aux_kW,
            condenser_kW=condenser_kW,
            st_ratio_at_test=st_ratio_at_test,
            a0=a0,
            fan_control=FanControl(fan_control),
            stage_levels=stage_levels(n_stages),
            min_capacity_fraction=min_capacity_fraction,
            degradation_pct=degradation_pct,
            condenser_fan_pct=condenser_fan_pct,
            n_affinity=n_affinity,
            family=EquipmentFamily(family),
            curve_set=CurveSet(curve_set),
            economizer=economizer,
            **models
        )
        logger.debug(
            f"{name} unit: net capacity {Q_net:.1f} kBtuh, {V_dot:.0f} CFM, "
            f"blower {blower_kW:.3f} kW, condenser {condenser_kW:.3f} kW, "
            f"EER {EER:.2f}, A0 {a0:.2f}"
        )
        return profile

    @staticmethod
    def _a0_coefficient(
        Q_net: float,
        blower_kW: float,
        st_ratio: float,
        V_dot: float,
        name: str
    ) -> float:
        # coil bypass coefficient from the rated S/T ratio at 80 °F DB / 67 °F WB
        W_test = psy.humidity_ratio_from_wet_bulb(80.0, 67.0, psy.P_STD)
        Q_gross = (Q_net + blower_kW * KW_TO_KBTUH) * 1000.0
        try:
            bpf = psy.bypass_factor_from_capacity(Q_gross, st_ratio, V_dot, 80.0, W_test, psy.P_STD)
        except PsychrometricError as err:
            raise PsychrometricError(f"BPF: {err.message}", unit_name=name) from err
        return psy.a0_from_bypass_factor(bpf, V_dot)

    @property
    def n_stages(self) -> int:
        return len(self.stage_levels)

    @property
    def is_variable_capacity(self) -> bool:
        """True for a variable-speed fan or a variable-speed compressor."""
        return (
            self.fan_control.speed == 'V'
            or self.family == EquipmentFamily.VARIABLE_SPEED_COMPRESSOR
        )

    @property
    def condenser_type(self) -> str:
        """'VC' (variable capacity) for a variable-speed fan, else 'Staged'."""
        return 'VC' if self.fan_control.speed == 'V' else 'Staged'

    @property
    def fan_always_on(self) -> bool:
        return self.fan_control.always_on

    @property
    def fan_cycles(self) -> bool:
        return self.fan_control.cycles

    @property
    def Q_gross(self) -> float:
        """Gross total capacity at rating conditions (kBtuh)."""
        return self.Q_net + self.blower_kW * KW_TO_KBTUH

    def for_unoccupied_hours(self) -> EquipmentProfile:
        """Returns a copy of the profile with single- and multi-speed fans
        switched to cycling with the compressor. Variable-speed fans are left
        unchanged.
        """
        match self.fan_control.speed:
            case '1':
                return replace(self, fan_control=FanControl.SINGLE_SPEED_CYCLES)
            case 'N':
                return replace(self, fan_control=FanControl.MULTI_SPEED_CYCLES)
            case _:
                return self
