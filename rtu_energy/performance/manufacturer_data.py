"""Parsing of a manufacturer's performance data sheet (tab-separated text,
version V1.2) and fitting of performance models to it.

Layout of the sheet:

- row 0: title (ignored);
- row 1: version line, must contain ``V1.2``;
- rows 2 .. n-2: data rows; the last row is ignored.

Data rows start with a key in the first cell:

- ``Cap/Cond/ST``, ``ODB/EWB``, gross capacity (kBtuh), condenser power (kW),
  S/T ratio at entering dry-bulb 75, 80 and 85 °F;
- ``Partload``, load (%), EER at outdoor dry-bulb 95, 81.5, 68 and 65 °F;
- scalar rows: key, (ignored), value.
"""
import math
import re
from dataclasses import dataclass, field
from ..exceptions import InputError
from ..logging import ModuleLogger
from ..regression import FittedModel, try_fit_model

logger = ModuleLogger.get_logger(__name__)

VERSION = 'V1.2'
MAX_ROWS = 40

GROSS_CAPACITY_EXPRESSION = 'X1 + X1^2 + X2^2 + X1*X2 + X1^2*X2^2'
CONDENSER_POWER_EXPRESSION = 'X1^2 + X2^2 + X1*X2 + X1^2*X2^2 + X1^3*X2^3'
ST_RATIO_EXPRESSION = 'X2 + X3 + X2*X3 + X2^2*X3 + X1*X2*X3^2 + X1*X2^2*X3'
PART_LOAD_EXPRESSION = '1 + X1 + X1^2 + X1*X2 + X1^2*X2 + X1^3'

ST_EDB_LEVELS = (75.0, 80.0, 85.0)
PART_LOAD_ODB_LEVELS = (95.0, 81.5, 68.0, 65.0)

# alternative spellings found on sheets
_SCALAR_KEYS = {
    'AirFlow': 'AirFlow',
    'GrossCoolingCapacity': 'GrossCoolingCapacity',
    'NetCoolingCapacity': 'NetCoolingCapacity',
    'ARI_RatedAirFlow': 'ARI_RatedAirFlow',
    'EvaporatorFanPower': 'EvaporatorFanPower',
    'CondenserPower': 'CondenserPower',
    'CondensorPower': 'CondenserPower',
    'AuxilaryPower': 'AuxilaryPower',
    'AuxiliaryPower': 'AuxilaryPower',
    'TotalSystemPower': 'TotalSystemPower',
    'EER': 'EER',
    'IEER': 'IEER',
    'ST_Ratio': 'ST_Ratio',
}


def _to_float(cells: list[str], i: int) -> float:
    try:
        return float(cells[i])
    except (IndexError, ValueError):
        return float('nan')


@dataclass
class PerformancePoint:
    """One ``Cap/Cond/ST`` row of the sheet."""
    T_odb: float
    T_ewb: float
    Q_gross: float
    W_dot_cond: float
    st_ratios: tuple[float, float, float]


@dataclass
class PartLoadPoint:
    """One ``Partload`` row: EER at each outdoor dry-bulb level."""
    load_pct: float
    EER: tuple[float, float, float, float]


@dataclass
class ManufacturerData:
    """Parsed contents of a manufacturer data sheet.

    Attributes
    ----------
    performance_points:
        Gross capacity, condenser power and S/T ratios at outdoor dry-bulb
        and entering wet-bulb combinations.
    part_load_points:
        EER at part load.
    scalars:
        Rated values keyed by their (normalized) sheet name. Values that
        could not be read are NaN.
    """
    performance_points: list[PerformancePoint] = field(default_factory=list)
    part_load_points: list[PartLoadPoint] = field(default_factory=list)
    scalars: dict[str, float] = field(default_factory=dict)

    def gross_capacity_rows(self) -> list[list[float]]:
        return [[p.Q_gross, p.T_odb, p.T_ewb] for p in self.performance_points]

    def condenser_power_rows(self) -> list[list[float]]:
        return [[p.W_dot_cond, p.T_odb, p.T_ewb] for p in self.performance_points]

    def st_ratio_rows(self) -> list[list[float]]:
        """S/T ratios with (ODB, EWB, EDB); only values below 1 are kept
        (a sheet reports 1 for a dry coil).
        """
        rows = []
        for p in self.performance_points:
            for st, T_edb in zip(p.st_ratios, ST_EDB_LEVELS):
                if math.isfinite(st) and st < 1.0:
                    rows.append([st, p.T_odb, p.T_ewb, T_edb])
        return rows

    def normalized_eer_rows(self) -> list[list[float]]:
        """Part-load EER normalized by the EER of the first part-load row at
        the same outdoor dry-bulb, with (load %, ODB).
        """
        if not self.part_load_points:
            return []
        reference = self.part_load_points[0].EER
        rows = []
        for p in self.part_load_points:
            for EER, EER_ref, T_odb in zip(p.EER, reference, PART_LOAD_ODB_LEVELS):
                if math.isfinite(EER) and math.isfinite(EER_ref) and EER_ref != 0.0:
                    rows.append([EER / EER_ref, p.load_pct, T_odb])
        return rows

    def fit_models(self) -> dict[str, FittedModel | None]:
        """Fits the gross capacity, condenser power, S/T ratio and part-load
        EER models to the sheet data.

        Capacity-type models are fitted only when the sheet has more than one
        ``Cap/Cond/ST`` row, the part-load model only when it has more than
        one ``Partload`` row, and each model only when more than 2 usable
        data rows remain. A model that cannot be fitted is None.
        """
        models: dict[str, FittedModel | None] = {
            'gross_capacity_model': None,
            'condenser_power_model': None,
            'st_ratio_model': None,
            'part_load_model': None,
        }
        specs = []
        if len(self.performance_points) > 1:
            specs += [
                ('gross_capacity_model', self.gross_capacity_rows(), GROSS_CAPACITY_EXPRESSION, 'gross capacity'),
                ('condenser_power_model', self.condenser_power_rows(), CONDENSER_POWER_EXPRESSION, 'condenser power'),
                ('st_ratio_model', self.st_ratio_rows(), ST_RATIO_EXPRESSION, 'S/T ratio'),
            ]
        if len(self.part_load_points) > 1:
            specs.append(
                ('part_load_model', self.normalized_eer_rows(), PART_LOAD_EXPRESSION, 'normalized EER')
            )
        for key, rows, expression, name in specs:
            rows = [r for r in rows if math.isfinite(r[0])]
            if len(rows) > 2:
                models[key] = try_fit_model(rows, expression, name=name)
                if models[key] is not None:
                    logger.debug(f"Fitted {name} model: {models[key]}")
        return models


def parse_manufacturer_data(text: str) -> ManufacturerData:
    """Parses the text of a V1.2 manufacturer data sheet.

    Raises
    ------
    InputError
        If the sheet has too few or too many rows or is not version V1.2.
    """
    rows = re.split(r'\r\n|\n|\r', text) if text else []
    if not (1 < len(rows) < MAX_ROWS):
        raise InputError("Manufacturer data sheet is not in the correct form.")
    if VERSION not in rows[1]:
        raise InputError(f"Manufacturer data sheet version is not {VERSION}.")
    data = ManufacturerData()
    for row in rows[2:len(rows) - 1]:
        cells = row.split('\t')
        key = cells[0].strip()
        if key == 'Cap/Cond/ST':
            temps = cells[1].split('/') if len(cells) > 1 else []
            data.performance_points.append(PerformancePoint(
                T_odb=_to_float(temps, 0),
                T_ewb=_to_float(temps, 1),
                Q_gross=_to_float(cells, 2),
                W_dot_cond=_to_float(cells, 3),
                st_ratios=(_to_float(cells, 4), _to_float(cells, 5), _to_float(cells, 6))
            ))
        elif key == 'Partload':
            data.part_load_points.append(PartLoadPoint(
                load_pct=_to_float(cells, 1),
                EER=tuple(_to_float(cells, i) for i in range(2, 6))
            ))
        elif key in _SCALAR_KEYS:
            data.scalars[_SCALAR_KEYS[key]] = _to_float(cells, 2)
    logger.debug(
        f"Manufacturer sheet: {len(data.performance_points)} performance rows, "
        f"{len(data.part_load_points)} part-load rows"
    )
    return data
