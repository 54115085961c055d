import pandas as pd
import pytest
from rtu_energy import Quantity
from rtu_energy.climate import WeatherDataset, DesignConditions, ALL_WEEK
from rtu_energy.exceptions import InputError, DesignConditionWarning
from rtu_energy.fluids import psychrometrics as psy

Q_ = Quantity

OFFICE = 'M-F, 8am-6pm'


@pytest.fixture
def dataset() -> WeatherDataset:
    stations = pd.DataFrame({
        'State': ['AZ', 'WA'],
        'City': ['Phoenix', 'Seattle'],
        'Temp_DB': [107.0, 85.0],
        'Elevation': [1100.0, 400.0],
    })
    rows = []
    for T_db, T_wb, hours, office in [
        (65.0, 52.0, 900.0, 300.0),
        (75.0, 58.0, 1200.0, 450.0),
        (85.0, 63.0, 1000.0, 400.0),
        (95.0, 67.0, 700.0, 350.0),
        (105.0, 70.0, 300.0, 200.0),
        (115.0, 72.0, 50.0, 40.0),
    ]:
        rows.append(('AZ', 'Phoenix', ALL_WEEK, T_db, T_wb, hours))
        rows.append(('AZ', 'Phoenix', OFFICE, T_db, T_wb, office))
    for T_db, T_wb, hours in [(55.0, 50.0, 2000.0), (65.0, 56.0, 900.0), (75.0, 61.0, 200.0)]:
        rows.append(('WA', 'Seattle', ALL_WEEK, T_db, T_wb, hours))
    bins = pd.DataFrame(
        rows,
        columns=['State', 'City', 'Schedule', 'Temp_Outdoor_DB', 'Temp_Coinc_WB', 'Hours_Cooling']
    )
    return WeatherDataset(stations, bins)


class TestBinTable:

    def test_occupied_and_unoccupied_hours(self, dataset):
        table = dataset.get_bin_table('AZ', 'Phoenix', OFFICE)
        assert list(table.columns) == ['T_wb', 'occupied', 'unoccupied', 'total']
        assert table.index.name == 'T_odb'
        assert list(table.index) == [65.0, 75.0, 85.0, 95.0, 105.0, 115.0]
        assert table.loc[75.0, 'occupied'] == 450.0
        assert table.loc[75.0, 'unoccupied'] == 750.0
        assert (table['occupied'] + table['unoccupied'] == table['total']).all()

    def test_all_week_schedule_has_no_unoccupied_hours(self, dataset):
        table = dataset.get_bin_table('AZ', 'Phoenix')
        assert (table['unoccupied'] == 0.0).all()
        assert table['occupied'].sum() == pytest.approx(4150.0)

    def test_names_are_normalized(self, dataset):
        table = dataset.get_bin_table(' az', 'PHOENIX ', 'm-f, 8AM-6PM')
        assert table['occupied'].sum() == pytest.approx(1740.0)

    def test_unknown_city_or_schedule(self, dataset):
        with pytest.raises(InputError):
            dataset.get_bin_table('AZ', 'Tucson')
        with pytest.raises(InputError):
            dataset.get_bin_table('WA', 'Seattle', OFFICE)

    def test_schedules(self, dataset):
        assert dataset.schedules('AZ', 'Phoenix') == [ALL_WEEK, OFFICE]
        assert dataset.schedules('WA', 'Seattle') == [ALL_WEEK]

    def test_stations(self, dataset):
        assert list(dataset.stations['city']) == ['Phoenix', 'Seattle']


class TestDesignConditions:

    def test_design_humidity_is_interpolated(self, dataset):
        table = dataset.get_bin_table('AZ', 'Phoenix')
        design = dataset.get_design_conditions('AZ', 'Phoenix', table)
        P = psy.pressure_from_elevation(1100.0)
        W_105 = psy.humidity_ratio_from_wet_bulb(105.0, 70.0, P)
        W_115 = psy.humidity_ratio_from_wet_bulb(115.0, 72.0, P)
        assert design.T_db == 107.0
        assert design.T_db_station == 107.0
        assert design.warning is None
        assert design.P == pytest.approx(P)
        assert design.z == 1100.0
        assert design.W == pytest.approx(W_105 + 0.2 * (W_115 - W_105))
        assert psy.humidity_ratio_from_wet_bulb(design.T_db, design.T_wb, P) == pytest.approx(design.W, rel=1e-4)

    def test_design_temperature_is_moved_to_warmest_bin(self, dataset):
        table = dataset.get_bin_table('WA', 'Seattle')
        with pytest.warns(DesignConditionWarning, match='Seattle'):
            design = dataset.get_design_conditions('WA', 'Seattle', table)
        assert design.T_db == 75.0
        assert design.T_db_station == 85.0
        assert design.warning is not None
        assert design.T_wb == pytest.approx(61.0, abs=0.05)

    def test_unknown_station(self, dataset):
        table = dataset.get_bin_table('AZ', 'Phoenix')
        with pytest.raises(InputError, match='Station not found'):
            dataset.get_design_conditions('AZ', 'Tucson', table)

    def test_create(self):
        design = DesignConditions.create(Q_(35.0, 'degC'), Q_(24.0, 'degC'), z=Q_(1000.0, 'm'))
        assert design.T_db == pytest.approx(95.0)
        assert design.T_wb == pytest.approx(75.2)
        assert design.z == pytest.approx(3280.84, rel=1e-4)
        assert design.P == pytest.approx(psy.pressure_from_elevation(design.z))
        assert design.P < psy.P_STD
        air = design.outdoor_air
        assert air.Tdb.to('degF').m == pytest.approx(95.0)
        assert air.Twb.to('degF').m == pytest.approx(75.2, abs=0.05)

    def test_create_with_pressure(self):
        design = DesignConditions.create(95.0, 75.0, P=Q_(101.325, 'kPa'))
        assert design.P == pytest.approx(29.921, abs=1e-3)

    def test_create_rejects_nan(self):
        with pytest.raises(InputError):
            DesignConditions.create(float('nan'), 75.0)


def test_from_csv(tmp_path):
    stations_path = tmp_path / 'stations.csv'
    bins_path = tmp_path / 'bins.csv'
    stations_path.write_text('State,City,Temp_DB,elev\nTX,Austin,100,500\n')
    bins_path.write_text(
        'State,City,Schedule,Temp_Outdoor_DB,Temp_Coinc_WB,Hours_Cooling\n'
        f'TX,Austin,"{ALL_WEEK}",95,74,300\n'
        f'TX,Austin,"{ALL_WEEK}",105,75,20\n'
    )
    dataset = WeatherDataset.from_csv(str(stations_path), str(bins_path))
    table = dataset.get_bin_table('TX', 'Austin')
    assert list(table.index) == [95.0, 105.0]
    design = dataset.get_design_conditions('TX', 'Austin', table)
    assert design.T_db == 100.0
    assert design.z == 500.0
