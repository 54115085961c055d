import pint

UNITS = pint.UnitRegistry()
Quantity = UNITS.Quantity

unit_definitions = [
    'fraction = [] = frac',
    'percent = 1e-2 frac = % = pct',
    'thousand_btu_per_hour = 1e3 * Btu / hour = kBtuh'
]
for ud in unit_definitions:
    UNITS.define(ud)

pint.set_application_registry(UNITS)

# The calculation engine works with plain floats expressed in these units.
ENGINE_UNITS = {
    'T': 'degF',
    'DT': 'delta_degF',
    'P': 'inHg',
    'W': 'lb / lb',
    'h': 'Btu / lb',
    'Q_dot': 'kBtuh',
    'V_dot': 'ft ** 3 / min',
    'W_dot': 'kW',
    'E': 'kWh',
    'z': 'ft',
    'frac': 'frac'
}


def to_engine(value: Quantity | float | None, kind: str) -> float | None:
    """Returns the magnitude of `value` expressed in the engine unit of the
    given kind (a key of `ENGINE_UNITS`). Plain numbers are assumed to be
    already expressed in engine units and are returned as floats.
    """
    if value is None:
        return None
    if isinstance(value, Quantity):
        return float(value.to(ENGINE_UNITS[kind]).m)
    return float(value)
