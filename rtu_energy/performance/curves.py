"""Correction curves for capacity and efficiency of rooftop units at
off-rated operating conditions.

Each equipment family has its own set of curves. The curve set of a unit is
resolved once with `resolve_curves()`, after which the simulation only calls
the methods of the `PerformanceCurves` interface.

Temperatures passed to the curve methods are in °F; the curves that were
regressed in °C convert internally.
"""
from __future__ import annotations
import math
from abc import ABC, abstractmethod
from ..logging import ModuleLogger
from ..regression import FittedModel
from .profile import EquipmentProfile, EquipmentFamily, CurveSet
from .stages import StageState

logger = ModuleLogger.get_logger(__name__)

RATING_ODB = 95.0
RATING_EWB = 67.0


def C_from_F(T: float) -> float:
    return (T - 32.0) / 1.8


def _biquadratic(c: tuple[float, ...], x: float, y: float) -> float:
    return c[0] + c[1] * x + c[2] * x ** 2 + c[3] * y + c[4] * y ** 2 + c[5] * x * y


def vs_part_load_capacity_factor(cf: float) -> float:
    """Part-load capacity factor of the variable-speed compressor."""
    return -0.036240442 + 1.275963118 * cf - 0.288191485 * cf ** 2 + 0.048967033 * cf ** 3


def vs_part_load_eir_factor(cf: float) -> float:
    """Part-load EIR factor of the variable-speed compressor."""
    return -0.120651751 + 9.026346984 * cf - 15.86922715 * cf ** 2 + 7.966206349 * cf ** 3


def vs_part_load_power_factor(cf: float) -> float:
    """Part-load power factor of the variable-speed compressor. Zero when the
    compressor is off (the regressions don't give a clean zero).
    """
    if cf > 0.0:
        return vs_part_load_capacity_factor(cf) * vs_part_load_eir_factor(cf)
    return 0.0


class PerformanceCurves(ABC):
    """Interface of the performance curves of a unit.

    Methods `st_ratio` and `part_load_eer_factor` return None when the curves
    don't provide a model for it; the ADP/BPF coil model resp. the generic
    part-load relations are then used instead.
    """
    min_efficiency_correction = 0.01
    has_part_load_model = False

    @abstractmethod
    def capacity_correction(self, stage: StageState, T_odb: float, T_ewb: float) -> float:
        """Ratio of gross total capacity at operating conditions to gross
        total capacity at rating conditions.
        """
        ...

    @abstractmethod
    def _efficiency_correction(self, stage: StageState, T_odb: float, T_ewb: float, T_edb: float) -> float:
        ...

    def efficiency_correction(self, stage: StageState, T_odb: float, T_ewb: float, T_edb: float) -> float:
        """Ratio of the energy input ratio (EIR) at operating conditions to the
        EIR at rating conditions. Limited to a minimum of 0.01 to deal with
        the behavior of the curves when entering air approaches freezing.
        """
        return max(self._efficiency_correction(stage, T_odb, T_ewb, T_edb), self.min_efficiency_correction)

    def condenser_power_correction(
        self,
        stage: StageState,
        T_odb: float,
        T_ewb: float,
        T_edb: float
    ) -> tuple[float, float]:
        """Returns the efficiency correction factor and the condenser power
        correction factor (capacity correction times efficiency correction).
        """
        eff_cf = self.efficiency_correction(stage, T_odb, T_ewb, T_edb)
        return eff_cf, self.capacity_correction(stage, T_odb, T_ewb) * eff_cf

    def part_load_capacity_factor(self, cf: float) -> float:
        """Capacity at capacity fraction `cf` relative to full capacity."""
        return cf

    def st_ratio(self, T_odb: float, T_ewb: float, T_edb: float) -> float | None:
        return None

    def part_load_eer_factor(self, load_pct: float, T_odb: float) -> float | None:
        return None


class DefaultCurves(PerformanceCurves):
    """Generic curves: the DOE-2 PSZ (>= 60 kBtuh) or RESYS (< 60 kBtuh)
    curves, or Carrier's substitute for these (regressed in °C).
    """
    _psz_cap = (0.87403018, -0.0011416, 0.00017110, -0.00295700, 0.00001018, -0.00005917)
    _resys_cap = (0.60034040, 0.00228726, -0.00001280, 0.00138975, -0.00008060, 0.00014125)
    _carrier_cap = (0.75030980, 0.01611210, 0.00081690, -0.00357190, -0.00018740, -0.00001780)
    _psz_eff = (-1.06393100, 0.03065843, -0.00012690, 0.01542130, 0.00004973, -0.00020960)
    _resys_eff = (-0.96177870, 0.04817751, -0.00023110, 0.00324392, 0.00014876, -0.00029520)
    _carrier_eff = (0.4152146633, 0.0093230741, 0.0002407406, 0.0150246809, 0.0008229240, -0.0018007980)

    def __init__(self, curve_set: CurveSet, Q_net: float):
        self.curve_set = curve_set
        self.large_unit = Q_net >= 60.0

    def _flow_fraction(self, stage: StageState) -> float:
        return 1.0

    def capacity_correction(self, stage, T_odb, T_ewb):
        if self.curve_set == CurveSet.CARRIER:
            return _biquadratic(self._carrier_cap, C_from_F(T_ewb), C_from_F(T_odb))
        ff = self._flow_fraction(stage)
        if self.large_unit:
            temp = _biquadratic(self._psz_cap, T_ewb, T_odb)
            flow = 0.47278589 + 1.24334150 * ff - 1.03870550 * ff ** 2 + 0.32257813 * ff ** 3
        else:
            temp = _biquadratic(self._resys_cap, T_ewb, T_odb)
            flow = 0.80 + 0.20 * ff
        return temp * flow

    def _efficiency_correction(self, stage, T_odb, T_ewb, T_edb):
        if self.curve_set == CurveSet.CARRIER:
            return _biquadratic(self._carrier_eff, C_from_F(T_ewb), C_from_F(T_odb))
        ff = self._flow_fraction(stage)
        if self.large_unit:
            temp = _biquadratic(self._psz_eff, T_ewb, T_odb)
            flow = 1.00794840 + 0.34544129 * ff - 0.69228910 * ff ** 2 + 0.33889943 * ff ** 3
        else:
            temp = _biquadratic(self._resys_eff, T_ewb, T_odb)
            flow = 1.156 - 0.1816 * ff + 0.0256 * ff ** 2
        return temp * flow


class AdvancedControlsCurves(DefaultCurves):
    """Generic curves where the DOE-2 flow-fraction term follows the flow
    fraction of the stage (units with advanced fan controls).
    """
    def _flow_fraction(self, stage: StageState) -> float:
        return stage.flow_fraction


class ThreeStageCurves(PerformanceCurves):
    """Curves of a three-stage unit, with a separate biquadratic per
    capacity level (40 %, 60 % and 100 %).
    """
    _cap = {
        1.0: (2.16908023, -0.04741753, 0.00054899, 0.00394090, -0.00001554, -0.00010878),
        0.6: (2.62596194, -0.05969721, 0.00064792, 0.00367327, -0.00001356, -0.00011917),
        0.4: (2.68873560, -0.06470293, 0.00067946, 0.00676853, -0.00001991, -0.00013382)
    }
    _eff = {
        1.0: (-1.01155368, 0.05389628, -0.00033881, -0.00389377, 0.00019559, -0.00023034),
        0.6: (-1.43280192, 0.06809725, -0.00044252, -0.00527563, 0.00020666, -0.00023623),
        0.4: (-1.65119376, 0.07413652, -0.00049982, -0.00567775, 0.00019535, -0.00020417)
    }

    @staticmethod
    def _coefficients(table: dict[float, tuple[float, ...]], cf: float) -> tuple[float, ...] | None:
        for level, c in table.items():
            if math.isclose(cf, level, abs_tol=1e-9):
                return c
        logger.warning(f"No three-stage curve for capacity fraction {cf}; 1.0 is used.")
        return None

    def capacity_correction(self, stage, T_odb, T_ewb):
        c = self._coefficients(self._cap, stage.capacity_fraction)
        if c is None:
            return 1.0
        return _biquadratic(c, T_ewb, T_odb)

    def _efficiency_correction(self, stage, T_odb, T_ewb, T_edb):
        c = self._coefficients(self._eff, stage.capacity_fraction)
        if c is None:
            return 1.0
        return _biquadratic(c, T_ewb, T_odb)


class VariableSpeedCurves(PerformanceCurves):
    """Curves of a unit with a variable-speed compressor. The efficiency
    curve also depends on the supply air temperature of the stage, which
    must have been set on the stage by a capacity evaluation beforehand.
    """
    _eff = (
        -0.5966663, 0.24754897, -0.0088454, -0.0036095, -0.0085282,
        0.00072631, 0.01271645, -0.0018991, -0.0024883, -0.0008663,
        0.00250916
    )

    def capacity_correction(self, stage, T_odb, T_ewb):
        return (
            -2.39099158422236
            + 0.0517875312429516 * T_ewb
            - 0.000262093586694283 * T_ewb ** 2
            + 0.0298244056511833 * T_odb
            - 0.000184849593859541 * T_odb ** 2
            - 7.40270588964858e-06 * T_ewb * T_odb
        )

    def _efficiency_correction(self, stage, T_odb, T_ewb, T_edb):
        c = self._eff
        odb, ewb, edb = C_from_F(T_odb), C_from_F(T_ewb), C_from_F(T_edb)
        sdb = C_from_F(stage.T_sup if stage.T_sup is not None else float('nan'))
        return (
            c[0] + c[1] * sdb + c[2] * ewb ** 2 + c[3] * edb ** 2
            + c[4] * sdb ** 2 + c[5] * odb ** 2 + c[6] * ewb * edb
            + c[7] * ewb * odb + c[8] * edb * sdb + c[9] * edb * odb
            + c[10] * sdb * odb
        )

    def part_load_capacity_factor(self, cf):
        return vs_part_load_capacity_factor(cf)


class ManufacturerFittedCurves(PerformanceCurves):
    """Curves derived from models fitted to manufacturer data. Each model
    that is present overrides the corresponding built-in curve of `base`;
    concerns without a model are delegated to `base`.
    """
    def __init__(
        self,
        base: PerformanceCurves,
        gross_capacity_model: FittedModel | None = None,
        condenser_power_model: FittedModel | None = None,
        st_ratio_model: FittedModel | None = None,
        part_load_model: FittedModel | None = None
    ):
        self.base = base
        self.gross_capacity_model = gross_capacity_model
        self.condenser_power_model = condenser_power_model
        self.st_ratio_model = st_ratio_model
        self.part_load_model = part_load_model

    @property
    def has_part_load_model(self) -> bool:
        return self.part_load_model is not None

    @staticmethod
    def _rating_ratio(model: FittedModel, T_odb: float, T_ewb: float) -> float:
        return model.predict(T_odb, T_ewb) / model.predict(RATING_ODB, RATING_EWB)

    def capacity_correction(self, stage, T_odb, T_ewb):
        if self.gross_capacity_model is not None:
            return self._rating_ratio(self.gross_capacity_model, T_odb, T_ewb)
        return self.base.capacity_correction(stage, T_odb, T_ewb)

    def _efficiency_correction(self, stage, T_odb, T_ewb, T_edb):
        return self.base.efficiency_correction(stage, T_odb, T_ewb, T_edb)

    def condenser_power_correction(self, stage, T_odb, T_ewb, T_edb):
        if self.condenser_power_model is not None:
            return 1.0, self._rating_ratio(self.condenser_power_model, T_odb, T_ewb)
        # the built-in capacity curve applies here, even if a capacity model exists
        return self.base.condenser_power_correction(stage, T_odb, T_ewb, T_edb)

    def part_load_capacity_factor(self, cf):
        return self.base.part_load_capacity_factor(cf)

    def st_ratio(self, T_odb, T_ewb, T_edb):
        if self.st_ratio_model is None:
            return None
        st = self.st_ratio_model.predict(T_odb, T_ewb, T_edb)
        return min(max(st, 0.0), 1.0)

    def part_load_eer_factor(self, load_pct, T_odb):
        if self.part_load_model is None:
            return None
        neer = self.part_load_model.predict(min(load_pct, 100.0), T_odb)
        return max(neer, 0.0)


def resolve_curves(profile: EquipmentProfile) -> PerformanceCurves:
    """Selects the performance curves of the unit described by `profile`."""
    match profile.family:
        case EquipmentFamily.VARIABLE_SPEED_COMPRESSOR:
            curves = VariableSpeedCurves()
        case EquipmentFamily.THREE_STAGES:
            curves = ThreeStageCurves()
        case EquipmentFamily.ADVANCED_CONTROLS:
            curves = AdvancedControlsCurves(profile.curve_set, profile.Q_net)
        case _:
            curves = DefaultCurves(profile.curve_set, profile.Q_net)
    models = {
        'gross_capacity_model': profile.gross_capacity_model,
        'condenser_power_model': profile.condenser_power_model,
        'st_ratio_model': profile.st_ratio_model,
        'part_load_model': profile.part_load_model
    }
    if any(m is not None for m in models.values()):
        curves = ManufacturerFittedCurves(curves, **models)
    logger.debug(f"{profile.name} unit: performance curves {type(curves).__name__}")
    return curves
