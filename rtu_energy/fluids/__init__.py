from .constants import (
    STANDARD_PRESSURE,
    KW_TO_KBTUH,
    RATING_ODB,
    RATING_EWB,
    RATING_EDB
)

from .moist_air import MoistAir
