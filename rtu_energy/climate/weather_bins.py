"""Weather bin tables and design conditions of cities.

Weather data consists of two tables:

- the station table with the cooling design dry-bulb temperature and the
  elevation of each city;
- the bin table with, for each state, city and occupancy schedule, the hours
  of occurrence of each outdoor dry-bulb temperature bin together with the
  coincident wet-bulb temperature.
"""
from __future__ import annotations
import math
import warnings
from dataclasses import dataclass
import pandas as pd
from scipy.interpolate import interp1d
from .. import Quantity, to_engine
from ..exceptions import InputError, DesignConditionWarning
from ..fluids import psychrometrics as psy
from ..fluids.moist_air import MoistAir
from ..logging import ModuleLogger

logger = ModuleLogger.get_logger(__name__)

Q_ = Quantity

ALL_WEEK = 'All week, All day'

# alternative column names accepted when reading csv-files
_STATION_COLUMNS = {
    'State': 'state',
    'City': 'city',
    'Temp_DB': 'T_db',
    'Elevation': 'elevation',
    'elev': 'elevation'
}
_BIN_COLUMNS = {
    'State': 'state',
    'City': 'city',
    'Schedule': 'schedule',
    'Temp_Outdoor_DB': 'T_db',
    'Temp_Coinc_WB': 'T_wb',
    'Hours_Cooling': 'hours'
}


def _normalize(s: str) -> str:
    return str(s).strip().upper()


@dataclass(frozen=True)
class DesignConditions:
    """Outdoor design conditions used to derive the load line.

    Attributes
    ----------
    T_db:
        Design outdoor dry-bulb temperature (°F).
    T_wb:
        Design outdoor wet-bulb temperature (°F).
    W:
        Design outdoor humidity ratio (lb/lb).
    P:
        Barometric pressure (inHg).
    z:
        Elevation (ft).
    T_db_station:
        Design dry-bulb temperature as listed for the station. Differs from
        `T_db` when no bin hotter than the station's design temperature
        exists.
    warning:
        Message explaining a change of the design temperature, else None.
    """
    T_db: float
    T_wb: float
    W: float
    P: float
    z: float = 0.0
    T_db_station: float | None = None
    warning: str | None = None

    @classmethod
    def create(
        cls,
        T_db: Quantity | float,
        T_wb: Quantity | float,
        z: Quantity | float = 0.0,
        P: Quantity | float | None = None
    ) -> DesignConditions:
        """Creates design conditions directly from a dry-bulb and wet-bulb
        temperature. If `P` is None, barometric pressure follows from the
        elevation `z`.
        """
        T_db = to_engine(T_db, 'T')
        T_wb = to_engine(T_wb, 'T')
        z = to_engine(z, 'z')
        P = to_engine(P, 'P')
        if P is None:
            P = psy.pressure_from_elevation(z)
        if not all(math.isfinite(v) for v in (T_db, T_wb, z, P)):
            raise InputError("Design conditions must be finite numbers.")
        W = psy.humidity_ratio_from_wet_bulb(T_db, T_wb, P)
        return cls(T_db=T_db, T_wb=T_wb, W=W, P=P, z=z, T_db_station=T_db)

    @property
    def outdoor_air(self) -> MoistAir:
        return MoistAir(
            Tdb=Q_(self.T_db, 'degF'),
            W=Q_(self.W, 'lb / lb'),
            P=Q_(self.P, 'inHg')
        )


class WeatherDataset:
    """Read-only handle to the station and weather bin data.

    Parameters
    ----------
    stations:
        DataFrame with columns `state`, `city`, `T_db` (design dry-bulb, °F)
        and `elevation` (ft).
    bins:
        DataFrame with columns `state`, `city`, `schedule`, `T_db`
        (outdoor dry-bulb of the bin, °F), `T_wb` (coincident wet-bulb, °F)
        and `hours`.
    """
    def __init__(self, stations: pd.DataFrame, bins: pd.DataFrame):
        self._stations = stations.rename(columns=_STATION_COLUMNS).copy()
        self._bins = bins.rename(columns=_BIN_COLUMNS).copy()
        for df, cols in ((self._stations, ('state', 'city')), (self._bins, ('state', 'city', 'schedule'))):
            for col in cols:
                df[f'_{col}'] = df[col].map(_normalize)

    @classmethod
    def from_csv(cls, stations_path: str, bins_path: str) -> WeatherDataset:
        """Creates the dataset from a station csv-file and a bin csv-file."""
        return cls(pd.read_csv(stations_path), pd.read_csv(bins_path))

    @property
    def stations(self) -> pd.DataFrame:
        return self._stations.drop(columns=['_state', '_city'])

    def schedules(self, state: str, city: str) -> list[str]:
        """Returns the occupancy schedules available for a city."""
        return list(self._city_bins(state, city)['schedule'].unique())

    def _city_bins(self, state: str, city: str) -> pd.DataFrame:
        mask = (self._bins['_state'] == _normalize(state)) & (self._bins['_city'] == _normalize(city))
        return self._bins[mask]

    def _schedule_bins(self, state: str, city: str, schedule: str) -> pd.DataFrame:
        df = self._city_bins(state, city)
        df = df[df['_schedule'] == _normalize(schedule)]
        return df.sort_values('T_db')

    def get_bin_table(self, state: str, city: str, schedule: str = ALL_WEEK) -> pd.DataFrame:
        """Returns the bin table of a city for an occupancy schedule.

        Returns
        -------
        Pandas DataFrame indexed by the outdoor dry-bulb temperature of the
        bins (°F, ascending) with columns:

        - `T_wb`: coincident wet-bulb temperature (°F);
        - `occupied`: hours in the schedule;
        - `unoccupied`: all-week hours minus the hours in the schedule (zero
          for the all-week schedule itself);
        - `total`: all-week hours.

        Raises
        ------
        InputError
            If there is no bin data for the city and schedule.
        """
        sched = self._schedule_bins(state, city, schedule)
        if sched.empty:
            raise InputError(f"No weather bins for {city}, {state} ({schedule}).")
        occupied = sched.set_index('T_db')
        all_week = self._schedule_bins(state, city, ALL_WEEK).set_index('T_db')
        if all_week.empty:
            all_week = occupied
        index = all_week.index.union(occupied.index)
        T_wb = all_week['T_wb'].reindex(index).fillna(occupied['T_wb'].reindex(index))
        table = pd.DataFrame({
            'T_wb': T_wb,
            'occupied': occupied['hours'].reindex(index, fill_value=0.0),
            'total': all_week['hours'].reindex(index, fill_value=0.0)
        })
        if _normalize(schedule) == _normalize(ALL_WEEK):
            table['unoccupied'] = 0.0
        else:
            table['unoccupied'] = table['total'] - table['occupied']
        table = table[['T_wb', 'occupied', 'unoccupied', 'total']].astype(float)
        table.index = table.index.astype(float)
        table.index.name = 'T_odb'
        return table.sort_index()

    def get_design_conditions(self, state: str, city: str, bin_table: pd.DataFrame) -> DesignConditions:
        """Returns the design conditions of a city.

        The barometric pressure follows from the elevation of the station.
        The design humidity ratio is interpolated linearly between the
        humidity ratios of the bins on either side of the design dry-bulb
        temperature. When the bin table has no bin hotter than the design
        temperature (some cool-summer cities), the warmest bin is taken as the
        design condition and a `DesignConditionWarning` is issued.

        Raises
        ------
        InputError
            If the station is unknown or the bin table is empty.
        """
        mask = (
            (self._stations['_state'] == _normalize(state))
            & (self._stations['_city'] == _normalize(city))
        )
        station = self._stations[mask]
        if station.empty:
            raise InputError(f"Station not found for city: {city}, {state}.")
        if bin_table.empty:
            raise InputError(f"Bin table of {city}, {state} is empty.")
        T_db_station = float(station['T_db'].iloc[0])
        z = float(station['elevation'].iloc[0])
        P = psy.pressure_from_elevation(z)

        T_bins = bin_table.index.to_numpy(dtype=float)
        W_bins = [
            psy.humidity_ratio_from_wet_bulb(T_db, T_wb, P)
            for T_db, T_wb in zip(T_bins, bin_table['T_wb'])
        ]
        warning = None
        if (T_bins > T_db_station).any():
            T_db = T_db_station
            if len(T_bins) > 1:
                W_interp = interp1d(T_bins, W_bins, kind='linear', fill_value='extrapolate')
                W = float(W_interp(T_db))
            else:
                W = W_bins[0]
        else:
            T_db = float(T_bins[-1])
            W = W_bins[-1]
            warning = (
                f"The design temperature for {city} has been changed from "
                f"{T_db_station:.1f} to {T_db:.1f} °F to facilitate calculations "
                f"at design conditions."
            )
            logger.warning(warning)
            warnings.warn(message=warning, category=DesignConditionWarning)
        T_wb = psy.wet_bulb(T_db, W, P)
        return DesignConditions(
            T_db=T_db, T_wb=T_wb, W=W, P=P, z=z,
            T_db_station=T_db_station,
            warning=warning
        )
