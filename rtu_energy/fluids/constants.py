from .. import Quantity as Q_

# Barometric pressure at sea level.
STANDARD_PRESSURE = Q_(29.921, 'inHg')

# Conversion factor between kW and kBtuh.
KW_TO_KBTUH = 3.412

# AHRI standard rating conditions for cooling.
RATING_ODB = Q_(95.0, 'degF')
RATING_EWB = Q_(67.0, 'degF')
RATING_EDB = Q_(80.0, 'degF')

# Specific heats and latent heat of the Imperial psychrometric relations
# (Btu/lb/°F resp. Btu/lb).
CP_DRY_AIR = 0.240
CP_WATER_VAPOR = 0.444
H_FG_0 = 1061.0

# Ratio of the molar masses of water vapor and dry air.
MOLAR_MASS_RATIO = 0.62198
