"""Annual cooling energy consumption of a packaged rooftop unit with the bin
method.

For each outdoor dry-bulb temperature bin of the bin table, the sensible load
of the building is taken from the load line and the sensible ventilation
load is added. The economizer (if any) takes its share of the load, and the
remaining load determines how the unit is staged. Condenser, blower and
auxiliary power multiplied by the hours of the bin give the energy
consumption of the bin.

Occupied hours are simulated with the occupied setpoint. When a setback is
specified, unoccupied hours are simulated with the raised setpoint and the
blower cycling with the compressor.
"""
from __future__ import annotations
import math
from dataclasses import dataclass, asdict, replace
import pandas as pd
from .. import Quantity
from ..exceptions import InputError, StagingFailure, PsychrometricError
from ..fluids import psychrometrics as psy
from ..logging import ModuleLogger
from ..performance import (
    EquipmentProfile,
    PerformanceCurves,
    StagingDecision,
    PairMode,
    resolve_curves,
    decide_staging,
    integrated_economizer,
    flow_fraction,
    condenser_power,
    fan_power
)
from ..performance.air_side import (
    indoor_relative_humidity,
    sensible_ventilation_load,
    mix_air
)
from .load_line import LoadLine

logger = ModuleLogger.get_logger(__name__)

Q_ = Quantity

# below this indoor-outdoor temperature difference the unit is still
# simulated when the load is not positive, and variable-capacity units do
# not use the economizer
DELTA_T_ECONOMIZER = 5.0

_ENERGY_COLUMNS = ['hours', 'E_cond', 'E_fan', 'E_aux', 'E_total']


def economizer_running(
    profile: EquipmentProfile,
    T_odb: float,
    T_setpoint: float,
    Q_total_sensible: float
) -> bool:
    """Returns True if the economizer of the unit is active at outdoor
    temperature `T_odb`.

    The economizer runs only when it is colder outside than the setpoint and
    there is a sensible load. Variable-capacity units also require the
    outdoor air to be more than 5 °F colder than the setpoint.
    """
    if not profile.economizer:
        return False
    if T_odb >= T_setpoint or Q_total_sensible <= 0.0:
        return False
    if profile.is_variable_capacity and (T_setpoint - T_odb) <= DELTA_T_ECONOMIZER:
        return False
    return True


def economizer_sensible_load(
    profile: EquipmentProfile,
    running: bool,
    T_odb: float,
    W_out: float,
    T_setpoint: float,
    V_dot_vent: float,
    vent_fraction: float,
    P: float
) -> float:
    """Sensible load (kBtuh) due to the outdoor air the economizer brings in
    on top of the ventilation air. Negative (i.e. a cooling effect) when it
    is colder outside than the setpoint; zero when the economizer is not
    running.
    """
    if not running or profile.V_dot <= V_dot_vent:
        return 0.0
    ff = flow_fraction(profile, 0.0, False, True, T_odb, vent_fraction)
    return sensible_ventilation_load(profile.V_dot * ff - V_dot_vent, W_out, T_odb, T_setpoint, P)


@dataclass
class BinRecord:
    """Inputs and results of one temperature bin, either in occupied or in
    unoccupied hours. Temperatures in °F, loads in kBtuh, powers in kW and
    energies in kWh.
    """
    T_odb: float
    period: str
    hours: float
    T_owb: float
    W_out: float
    T_setpoint: float
    RH_in: float
    W_in: float
    Q_non_vent: float
    Q_vent: float
    Q_total_sensible: float
    Q_economizer: float
    Q_remaining: float
    Q_latent: float
    economizer_running: bool
    integrated: bool
    mode: str
    stage_level: float
    runtime_a: float
    runtime_bma: float
    load_fraction_a: float | None
    flow_fraction_a: float
    capacity_fraction_a: float
    capacity_fraction_b: float
    Q_sen_a: float
    Q_sen_b: float
    T_edb: float
    T_ewb: float
    W_ent: float
    RH_ent: float
    st_ratio: float
    tcf: float
    pcf: float
    ocf: float
    inv_ecf: float
    W_dot_cond: float
    E_cond: float
    E_fan: float
    E_aux: float
    demand: float

    @property
    def E_total(self) -> float:
        return self.E_cond + self.E_fan + self.E_aux

    @property
    def occupied(self) -> bool:
        return self.period == 'occupied'


@dataclass
class BinSimulationResult:
    """Outcome of the bin simulation of one unit.

    Energies are given for `n_units` identical units; peak demand is always
    given per unit.
    """
    unit_name: str | None
    records: list[BinRecord]
    n_units: int = 1

    def _sum(self, attr: str, occupied: bool | None = None) -> float:
        return sum(
            getattr(r, attr) for r in self.records
            if occupied is None or r.occupied == occupied
        )

    def _energy(self, attr: str, occupied: bool | None = None) -> Quantity:
        return Q_(self._sum(attr, occupied) * self.n_units, 'kWh')

    @property
    def annual_condenser_energy(self) -> Quantity:
        return self._energy('E_cond')

    @property
    def annual_fan_energy(self) -> Quantity:
        return self._energy('E_fan')

    @property
    def annual_aux_energy(self) -> Quantity:
        return self._energy('E_aux')

    @property
    def annual_total_energy(self) -> Quantity:
        return self._energy('E_total')

    @property
    def occupied_energy(self) -> Quantity:
        return self._energy('E_total', occupied=True)

    @property
    def unoccupied_energy(self) -> Quantity:
        return self._energy('E_total', occupied=False)

    @property
    def peak_demand(self) -> Quantity:
        return Q_(max((r.demand for r in self.records), default=0.0), 'kW')

    def economizer_hours(self, occupied: bool | None = None) -> float:
        """Hours the economizer runs, in occupied hours, in unoccupied hours
        or in both (`occupied` None).
        """
        return sum(
            r.hours for r in self.records
            if r.economizer_running and (occupied is None or r.occupied == occupied)
        )

    @property
    def cooling_hours(self) -> float:
        """Occupied hours of the bins in which the unit was simulated."""
        return self._sum('hours', occupied=True)

    def for_units(self, n_units: int) -> BinSimulationResult:
        """Returns the result for `n_units` identical units."""
        if n_units < 1:
            raise InputError(f"Number of units must be at least 1, got {n_units}.")
        return replace(self, n_units=n_units)

    def to_dataframe(self) -> pd.DataFrame:
        """Returns the bin records as a Pandas DataFrame indexed by outdoor
        dry-bulb temperature, with a row TOTAL at the bottom holding the sum
        of the hours and energies and the peak demand.
        """
        rows = []
        for r in self.records:
            row = asdict(r)
            row['E_total'] = r.E_total
            rows.append(row)
        df = pd.DataFrame(rows)
        if df.empty:
            df = pd.DataFrame(columns=['T_odb', *_ENERGY_COLUMNS, 'demand'])
        df = df.set_index('T_odb')
        df[_ENERGY_COLUMNS[1:]] = df[_ENERGY_COLUMNS[1:]] * self.n_units
        total = {c: df[c].sum() for c in _ENERGY_COLUMNS}
        total['demand'] = self.peak_demand.m
        df = pd.concat([df, pd.DataFrame([total], index=['TOTAL'])])
        return df


class BinSimulation:
    """Bin simulation of one unit serving the building described by a load
    line.

    Parameters
    ----------
    profile:
        The unit.
    load_line:
        Load line of the building. Must carry the design inputs it was
        derived from (setpoint, setback, indoor humidity, ventilation and
        design pressure).
    bin_table:
        Pandas DataFrame indexed by outdoor dry-bulb temperature (°F) with
        columns `T_wb` (coincident wet-bulb, °F), `occupied` and, optionally,
        `unoccupied` hours.
    unit_name: optional
        Name of the unit used in log messages and errors.
    curves: optional
        Performance curves of the unit; resolved from `profile` if None.
    """
    def __init__(
        self,
        profile: EquipmentProfile,
        load_line: LoadLine,
        bin_table: pd.DataFrame,
        unit_name: str | None = None,
        curves: PerformanceCurves | None = None
    ):
        if load_line.inputs is None:
            raise InputError("The load line does not carry its design inputs.")
        for col in ('T_wb', 'occupied'):
            if col not in bin_table.columns:
                raise InputError(f"Bin table has no column '{col}'.")
        self.profile = profile
        self.load_line = load_line
        self.inputs = load_line.inputs
        self.bin_table = bin_table.sort_index()
        self.unit_name = unit_name or profile.name
        self.curves = curves or resolve_curves(profile)
        self.P = self.inputs.design.P
        self.V_dot_vent = self.inputs.ventilation_cfm(profile.V_dot)
        self.vent_fraction = self.V_dot_vent / profile.V_dot
        self.logger = ModuleLogger.get_unit_logger(logger, self.unit_name)

    def run(self) -> BinSimulationResult:
        """Simulates occupied hours and, if a setback is specified,
        unoccupied hours.

        Raises
        ------
        PsychrometricError
            Tagged with the name of the unit, if the coil model fails.
        """
        T_set = self.load_line.T_setpoint
        try:
            records = self._run_pass(self.profile, T_set, 'occupied')
            if self.inputs.setback > 0.0 and 'unoccupied' in self.bin_table.columns:
                records += self._run_pass(
                    self.profile.for_unoccupied_hours(),
                    T_set + self.inputs.setback,
                    'unoccupied'
                )
        except PsychrometricError as err:
            if err.unit_name is None:
                err.unit_name = self.unit_name
            raise
        result = BinSimulationResult(self.unit_name, records)
        self.logger.info(
            f"annual energy {result.annual_total_energy.m:.0f} kWh, "
            f"peak demand {result.peak_demand.m:.2f} kW"
        )
        return result

    def _run_pass(self, profile: EquipmentProfile, T_set: float, period: str) -> list[BinRecord]:
        records = []
        for T_odb, row in self.bin_table.iterrows():
            hours = float(row[period])
            T_owb = float(row['T_wb'])
            if not hours > 0.0 or not math.isfinite(T_owb):
                continue
            record = self._simulate_bin(profile, float(T_odb), T_owb, hours, T_set, period)
            if record is not None:
                records.append(record)
        return records

    def _simulate_bin(
        self,
        profile: EquipmentProfile,
        T_odb: float,
        T_owb: float,
        hours: float,
        T_set: float,
        period: str
    ) -> BinRecord | None:
        P = self.P
        V_dot_vent = self.V_dot_vent
        W_out = psy.humidity_ratio_from_wet_bulb(T_odb, T_owb, P)
        RH_in = indoor_relative_humidity(
            self.inputs.track_outdoor_humidity, W_out, T_set,
            self.inputs.RH_setpoint, P
        )
        W_in = psy.humidity_ratio_from_rh(T_set, RH_in, P)
        Q_non_vent = self.load_line.non_ventilation_load(T_odb, T_set)
        Q_vent = sensible_ventilation_load(V_dot_vent, W_out, T_odb, T_set, P)
        Q_total = Q_non_vent + Q_vent
        if not (Q_total > 0.0 or (T_set - T_odb) <= DELTA_T_ECONOMIZER):
            return None

        econ = economizer_running(profile, T_odb, T_set, Q_total)
        Q_econ = economizer_sensible_load(
            profile, econ, T_odb, W_out, T_set, V_dot_vent, self.vent_fraction, P
        )
        Q_remaining = max(0.0, Q_total + Q_econ)
        entering = mix_air(
            profile, T_set, W_in, T_odb, W_out, P,
            profile.V_dot if econ else V_dot_vent, profile.V_dot
        )
        if econ and Q_remaining > 0.0 and profile.fan_control.speed != 'V':
            try:
                decision = integrated_economizer(
                    profile, self.curves, T_odb, T_owb, W_out,
                    Q_non_vent, T_set, self.vent_fraction, P
                )
            except StagingFailure as err:
                self.logger.debug(f"{T_odb} °F: integrated economizer failed ({err}).")
                econ = False
                Q_remaining = Q_total
                entering = mix_air(profile, T_set, W_in, T_odb, W_out, P, V_dot_vent, profile.V_dot)
                decision = decide_staging(
                    profile, self.curves, T_odb, entering, max(0.0, Q_remaining),
                    False, self.vent_fraction, P
                )
        else:
            decision = decide_staging(
                profile, self.curves, T_odb, entering, Q_remaining,
                econ, self.vent_fraction, P
            )

        W_peak_cond, W_cond, E_cond = self._condenser(profile, decision, T_odb, entering, hours)
        W_peak_fan, E_fan = self._fan(profile, decision, T_odb, econ, hours)
        E_aux = hours * profile.aux_kW
        demand = W_peak_cond + W_peak_fan + profile.aux_kW

        a, b = decision.a, decision.b
        st = _finite_or_zero(a.st_ratio)
        tcf = _finite_or_zero(a.capacity_cf)
        pcf = _finite_or_zero(a.condenser_power_cf)
        ecf = _finite_or_zero(a.efficiency_cf)
        ocf = pcf / (tcf * (st / profile.st_ratio_at_test)) if tcf != 0.0 and st > 0.0 else 0.0
        Q_latent = Q_remaining / st * (1.0 - st) if st > 0.0 and Q_remaining > 0.0 else 0.0
        return BinRecord(
            T_odb=T_odb,
            period=period,
            hours=hours,
            T_owb=T_owb,
            W_out=W_out,
            T_setpoint=T_set,
            RH_in=RH_in,
            W_in=W_in,
            Q_non_vent=Q_non_vent,
            Q_vent=Q_vent,
            Q_total_sensible=Q_total,
            Q_economizer=Q_econ,
            Q_remaining=Q_remaining,
            Q_latent=Q_latent,
            economizer_running=econ,
            integrated=decision.integrated,
            mode=decision.mode.value,
            stage_level=decision.stage_level,
            runtime_a=a.runtime,
            runtime_bma=decision.bma.runtime,
            load_fraction_a=a.load_fraction,
            flow_fraction_a=a.flow_fraction,
            capacity_fraction_a=a.capacity_fraction,
            capacity_fraction_b=b.capacity_fraction,
            Q_sen_a=a.Q_sen,
            Q_sen_b=b.Q_sen,
            T_edb=entering.T_db,
            T_ewb=entering.T_wb,
            W_ent=entering.W,
            RH_ent=psy.relative_humidity(entering.T_db, entering.W, P),
            st_ratio=st,
            tcf=tcf,
            pcf=pcf,
            ocf=ocf,
            inv_ecf=1.0 / ecf if ecf != 0.0 else 0.0,
            W_dot_cond=W_cond,
            E_cond=E_cond,
            E_fan=E_fan,
            E_aux=E_aux,
            demand=demand
        )

    def _condenser(self, profile, decision: StagingDecision, T_odb, entering, hours):
        # returns (peak condenser power, condenser power, condenser energy)
        def power(stage) -> float:
            return condenser_power(
                profile, self.curves, stage, T_odb, entering.T_wb, entering.T_db
            ).W_dot

        a, bma, b = decision.a, decision.bma, decision.b
        match decision.mode:
            case PairMode.A_ONLY:
                W = power(a)
                W_peak = W if a.runtime != 0.0 else 0.0
                return W_peak, W, hours * W * a.runtime
            case PairMode.A_AND_BMA:
                W_a = power(a)
                W_bma = power(bma)
                W = W_a + W_bma * bma.runtime
                return W_a + W_bma, W, hours * W
            case _:
                W = power(b)
                return W, W, hours * W * b.runtime

    def _fan(self, profile, decision: StagingDecision, T_odb, econ, hours):
        # returns (peak blower power, blower energy)
        ff_off = flow_fraction(
            profile, 0.0, False, econ, T_odb, self.vent_fraction,
            integrated_attempt=decision.integrated
        )
        fan = profile.fan_control
        powers = []

        def power(ff: float) -> float:
            W = fan_power(profile, ff)
            powers.append(W)
            return W

        a, b = decision.a, decision.b
        E = 0.0
        match decision.mode:
            case PairMode.A_ONLY:
                rt = max(0.0, a.runtime)
                if fan.cycles:
                    rt = min(1.0, rt)
                if rt < 1.0:
                    E = hours * (power(a.flow_fraction) * rt + power(ff_off) * (1.0 - rt))
                else:
                    E = hours * power(a.flow_fraction) * rt
            case PairMode.A_AND_BMA:
                rt_b = min(max(b.runtime, 0.0), 1.0)
                E = hours * (power(a.flow_fraction) * (1.0 - rt_b) + power(b.flow_fraction) * rt_b)
            case _:
                E = hours * power(b.flow_fraction) * max(0.0, b.runtime)
        return max(powers, default=0.0), E


def _finite_or_zero(value: float | None) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return value


def run_bin_simulation(
    profile: EquipmentProfile,
    load_line: LoadLine,
    bin_table: pd.DataFrame,
    unit_name: str | None = None
) -> BinSimulationResult:
    """Runs the bin simulation of `profile`. See `BinSimulation`."""
    return BinSimulation(profile, load_line, bin_table, unit_name).run()
