from .profile import (
    EquipmentProfile,
    FanControl,
    EquipmentFamily,
    CurveSet,
    stage_levels,
    default_blower_power
)
from .curves import PerformanceCurves, resolve_curves
from .stages import StageState, StagingDecision, StageType, PairMode
from .capacity import net_total_capacity, net_sensible_capacity
from .power import condenser_power, fan_power, fan_power_factor, cycling_efficiency
from .air_side import EnteringAir, mix_air, sensible_ventilation_load, indoor_relative_humidity
from .staging import decide_staging, integrated_economizer, flow_fraction
from .manufacturer_data import ManufacturerData, parse_manufacturer_data
