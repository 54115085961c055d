from dataclasses import dataclass, field
from enum import Enum


class PairMode(Enum):
    A_ONLY = 'A_only'
    A_AND_BMA = 'A_and_BmA'
    B_ONLY = 'B_only'


class StageType(Enum):
    A = 'A'
    BMA = 'BmA'
    B = 'B'


@dataclass
class StageState:
    """Operating state of one stage slot in a bin.

    Attributes
    ----------
    stage_type:
        Slot of the stage: the lower stage A, the upper stage B, or the
        incremental block B-minus-A between them.
    capacity_fraction:
        Capacity fraction of the stage (of B for the BmA slot).
    capacity_fraction_diff:
        Capacity fraction of the incremental block (BmA slot only).
    flow_fraction:
        Fraction of rated airflow the fan delivers while the stage runs.
    Q_sen:
        Net sensible capacity of the stage (kBtuh).
    load_fraction:
        Part of the stage capacity needed to meet the load; None when not
        applicable (modulating units, upper stage in A_and_BmA mode).
    runtime:
        Runtime fraction; values above 1 indicate an undersized unit.
    st_ratio, T_sup:
        Sensible-to-total ratio and supply air dry-bulb of the last capacity
        evaluation of the stage.
    capacity_cf, condenser_power_cf, efficiency_cf:
        Correction factors of the last capacity and power evaluations.
    """
    stage_type: StageType = StageType.A
    capacity_fraction: float = 0.0
    capacity_fraction_diff: float = 0.0
    flow_fraction: float = 0.0
    Q_sen: float = 0.0
    load_fraction: float | None = 0.0
    runtime: float = 0.0
    st_ratio: float | None = None
    T_sup: float | None = None
    capacity_cf: float | None = None
    condenser_power_cf: float | None = None
    efficiency_cf: float | None = None

    def reset_to_zero_load(self) -> None:
        self.capacity_fraction = 0.0
        self.flow_fraction = 0.0
        self.load_fraction = 0.0

    def reset_to_full_load(self) -> None:
        self.capacity_fraction = 1.0
        self.flow_fraction = 1.0
        self.load_fraction = 1.0

    @classmethod
    def full_load(cls) -> 'StageState':
        stage = cls()
        stage.reset_to_full_load()
        return stage


@dataclass
class StagingDecision:
    """Outcome of the staging logic for one bin: how the unit runs to meet
    the sensible load. A new decision is created for each bin.

    Attributes
    ----------
    mode:
        Which stage slots are active.
    a, bma, b:
        States of the stage slots.
    stage_level:
        Summary of the staging: the runtime of stage A in A_only mode,
        (i + 1) + runtime of B when blending stage i and i + 1, and the index
        of the top stage + its runtime in B_only mode.
    economizer_running:
        Whether the economizer runs in this bin.
    integrated:
        Whether the economizer runs integrated with the compressor.
    """
    mode: PairMode = PairMode.A_ONLY
    a: StageState = field(default_factory=lambda: StageState(StageType.A))
    bma: StageState = field(default_factory=lambda: StageState(StageType.BMA))
    b: StageState = field(default_factory=lambda: StageState(StageType.B))
    stage_level: float = 0.0
    economizer_running: bool = False
    integrated: bool = False

    @property
    def active_stages(self) -> list[StageState]:
        match self.mode:
            case PairMode.A_ONLY:
                return [self.a]
            case PairMode.A_AND_BMA:
                return [self.a, self.bma]
            case _:
                return [self.b]
