from .load_line import (
    DesignInputs,
    DesignSnapshot,
    LoadLine,
    VentilationUnits,
    fit_load_line,
    compute_load_line
)
from .bin_simulation import (
    BinRecord,
    BinSimulation,
    BinSimulationResult,
    economizer_running,
    economizer_sensible_load,
    run_bin_simulation
)
from .economics import EconomicInputs, EconomicResult, evaluate_economics, uniform_present_value
