"""Shared fixtures: rooftop units, design inputs and a small bin table."""
import pandas as pd
import pytest
from rtu_energy import Quantity
from rtu_energy.climate import DesignConditions
from rtu_energy.energy_estimation import DesignInputs, LoadLine
from rtu_energy.performance import EquipmentProfile, FanControl, resolve_curves

Q_ = Quantity


@pytest.fixture
def single_stage_unit() -> EquipmentProfile:
    return EquipmentProfile.create(Q_net=Q_(120.0, 'kBtuh'), EER=11.0)


@pytest.fixture
def two_stage_unit() -> EquipmentProfile:
    return EquipmentProfile.create(Q_net=Q_(120.0, 'kBtuh'), EER=11.0, n_stages=2)


@pytest.fixture
def economizer_unit() -> EquipmentProfile:
    return EquipmentProfile.create(
        Q_net=Q_(120.0, 'kBtuh'), EER=11.0, n_stages=2,
        fan_control=FanControl.MULTI_SPEED_ALWAYS_ON,
        economizer=True
    )


@pytest.fixture
def variable_speed_unit() -> EquipmentProfile:
    return EquipmentProfile.create(
        Q_net=Q_(120.0, 'kBtuh'), EER=11.0,
        fan_control=FanControl.VARIABLE_SPEED,
        name='Standard'
    )


@pytest.fixture
def curves(single_stage_unit):
    return resolve_curves(single_stage_unit)


@pytest.fixture
def design() -> DesignConditions:
    return DesignConditions.create(T_db=Q_(95.0, 'degF'), T_wb=Q_(75.0, 'degF'))


@pytest.fixture
def design_inputs(design) -> DesignInputs:
    return DesignInputs(design=design, setback=3.0)


@pytest.fixture
def load_line(design_inputs) -> LoadLine:
    return LoadLine(slope=2.0, intercept=30.0, T_setpoint=75.0, inputs=design_inputs)


@pytest.fixture
def bin_table() -> pd.DataFrame:
    table = pd.DataFrame(
        {
            'T_wb': [40.0, 58.0, 60.0, 63.0, 68.0, 74.0],
            'occupied': [300.0, 500.0, 400.0, 800.0, 600.0, 100.0],
            'unoccupied': [900.0, 700.0, 500.0, 600.0, 300.0, 20.0],
        },
        index=pd.Index([45.0, 65.0, 70.0, 75.0, 85.0, 95.0], name='T_odb')
    )
    return table
