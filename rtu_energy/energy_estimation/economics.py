"""Life-cycle cost comparison of a candidate unit with a standard unit."""
from __future__ import annotations
import math
import warnings
from dataclasses import dataclass
from scipy import optimize
from .. import Quantity
from ..exceptions import InputError
from ..logging import ModuleLogger
from .bin_simulation import BinSimulationResult

logger = ModuleLogger.get_logger(__name__)

Q_ = Quantity

NEWTON_STEP = 0.0005
NPV_TOL = 0.01
MAX_ITER = 10


@dataclass(frozen=True)
class EconomicInputs:
    """Cost inputs of the comparison.

    Attributes
    ----------
    electricity_rate:
        Price of electricity ($/kWh).
    discount_rate:
        Real discount rate (fraction).
    equipment_life:
        Life of the units (years).
    demand_months:
        Number of months per year a demand charge is billed.
    demand_cost:
        Demand charge ($/kW per month).
    unit_cost_candidate, unit_cost_standard:
        Installed cost of one unit (k$).
    maintenance_candidate, maintenance_standard:
        Annual maintenance cost of one unit ($/yr).
    """
    electricity_rate: float = 0.08
    discount_rate: float = 0.05
    equipment_life: float = 15.0
    demand_months: float = 4.0
    demand_cost: float = 0.0
    unit_cost_candidate: float = 4.5
    unit_cost_standard: float = 4.0
    maintenance_candidate: float = 0.0
    maintenance_standard: float = 0.0

    @classmethod
    def create(
        cls,
        electricity_rate: float = 0.08,
        discount_rate: Quantity | float = Q_(5.0, 'pct'),
        equipment_life: Quantity | float = Q_(15.0, 'year'),
        **kwargs
    ) -> EconomicInputs:
        """Creates `EconomicInputs`; the discount rate and the equipment life
        may be given as `Quantity` objects (e.g. ``Q_(7, 'pct')``,
        ``Q_(20, 'year')``).
        """
        if isinstance(discount_rate, Quantity):
            discount_rate = discount_rate.to('frac').m
        if isinstance(equipment_life, Quantity):
            equipment_life = equipment_life.to('year').m
        inputs = cls(
            electricity_rate=electricity_rate,
            discount_rate=float(discount_rate),
            equipment_life=float(equipment_life),
            **kwargs
        )
        if not all(math.isfinite(v) for v in vars(inputs).values()):
            raise InputError("Economic inputs must be finite numbers.")
        if inputs.equipment_life <= 0.0:
            raise InputError(f"Equipment life must be positive, got {inputs.equipment_life}.")
        return inputs


@dataclass(frozen=True)
class EconomicResult:
    """Outcome of the comparison. Costs in $, times in years.

    `simple_payback` is -1 when there are no annual savings.
    `discounted_payback` is 0 when there is nothing to pay back and -1
    when it does not pay back (within 100 years). `ror` is the rate of return
    in percent, or None if it could not be determined.
    """
    annual_cost_candidate: float
    annual_cost_standard: float
    annual_savings: float
    capital_cost_difference: float
    simple_payback: float
    upv: float
    lcc_candidate: float
    lcc_standard: float
    npv: float
    discounted_payback: float
    sir: float
    ror: float | None


def uniform_present_value(life: float, discount_rate: float) -> float:
    """Present value factor of a uniform annual amount over `life` years."""
    if discount_rate == 0.0:
        return life
    base = 1.0 + discount_rate
    a = base ** life if base > 0.0 else 1.0
    if not math.isfinite(a) or a == 0.0:
        a = 1.0
    return (a - 1.0) / (discount_rate * a)


class _Comparison:

    def __init__(self, annual_cost_c: float, annual_cost_s: float, unit_cost_c: float, unit_cost_s: float):
        self.annual_cost_c = annual_cost_c
        self.annual_cost_s = annual_cost_s
        self.unit_cost_c = unit_cost_c
        self.unit_cost_s = unit_cost_s

    def lcc(self, annual_cost: float, unit_cost: float, discount_rate: float, life: float) -> float:
        return unit_cost * 1000.0 + annual_cost * uniform_present_value(life, discount_rate)

    def npv(self, discount_rate: float, life: float) -> float:
        """Life-cycle cost of the standard unit minus that of the candidate."""
        return (
            self.lcc(self.annual_cost_s, self.unit_cost_s, discount_rate, life)
            - self.lcc(self.annual_cost_c, self.unit_cost_c, discount_rate, life)
        )

    def solve(self, func, x0: float) -> float | None:
        """Newton iteration on `func` with a forward-difference derivative.
        Returns None if the iteration does not bring `func` within the NPV
        tolerance or ends at a non-positive value.
        """
        def fprime(x):
            return (func(x + NEWTON_STEP) - func(x)) / NEWTON_STEP

        with warnings.catch_warnings():
            warnings.simplefilter('ignore', RuntimeWarning)
            root, r = optimize.newton(
                func, x0, fprime=fprime, maxiter=MAX_ITER,
                full_output=True, disp=False
            )
        root = float(root)
        if not math.isfinite(root):
            return None
        if not (r.converged or abs(func(root)) < NPV_TOL):
            return None
        return root if root > 0.0 else None


def evaluate_economics(
    candidate: BinSimulationResult,
    standard: BinSimulationResult,
    inputs: EconomicInputs | None = None
) -> EconomicResult:
    """Compares the life-cycle costs of the candidate unit and the standard
    unit. Energy and demand are taken per unit.
    """
    inputs = inputs or EconomicInputs()
    E_c = candidate.for_units(1).annual_total_energy.to('kWh').m
    E_s = standard.for_units(1).annual_total_energy.to('kWh').m
    demand_factor = inputs.demand_cost * inputs.demand_months
    annual_cost_c = (
        E_c * inputs.electricity_rate + inputs.maintenance_candidate
        + candidate.peak_demand.to('kW').m * demand_factor
    )
    annual_cost_s = (
        E_s * inputs.electricity_rate + inputs.maintenance_standard
        + standard.peak_demand.to('kW').m * demand_factor
    )
    savings = annual_cost_s - annual_cost_c
    capital = 1000.0 * (inputs.unit_cost_candidate - inputs.unit_cost_standard)
    simple_payback = capital / savings if savings != 0.0 else -1.0

    cmp = _Comparison(annual_cost_c, annual_cost_s, inputs.unit_cost_candidate, inputs.unit_cost_standard)
    dr, life = inputs.discount_rate, inputs.equipment_life
    upv = uniform_present_value(life, dr)
    lcc_c = cmp.lcc(annual_cost_c, inputs.unit_cost_candidate, dr, life)
    lcc_s = cmp.lcc(annual_cost_s, inputs.unit_cost_standard, dr, life)

    if simple_payback <= 0.0:
        discounted_payback = 0.0
    elif simple_payback > 100.0:
        discounted_payback = -1.0
    else:
        pb = cmp.solve(lambda n: cmp.npv(dr, n), simple_payback)
        discounted_payback = pb if pb is not None else -1.0

    sir = savings * upv / capital if capital != 0.0 else 0.0
    ror = None
    if capital != 0.0:
        rate = cmp.solve(lambda i: cmp.npv(i, life), savings / capital)
        ror = 100.0 * rate if rate is not None else None

    result = EconomicResult(
        annual_cost_candidate=annual_cost_c,
        annual_cost_standard=annual_cost_s,
        annual_savings=savings,
        capital_cost_difference=capital,
        simple_payback=simple_payback,
        upv=upv,
        lcc_candidate=lcc_c,
        lcc_standard=lcc_s,
        npv=lcc_s - lcc_c,
        discounted_payback=discounted_payback,
        sir=sir,
        ror=ror
    )
    logger.debug(
        f"annual savings {savings:.2f} $, simple payback {simple_payback:.2f} yr, "
        f"NPV {result.npv:.2f} $"
    )
    return result
