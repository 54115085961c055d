from .pint_setup import UNITS, Quantity, ENGINE_UNITS, to_engine
