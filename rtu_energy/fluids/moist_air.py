"""Quantity-facing moist air state, computed with the Imperial relations
of `psychrometrics`.
"""
import math
import warnings
from .. import Quantity
from . import psychrometrics as psy
from .constants import STANDARD_PRESSURE

Q_ = Quantity


class MoistAir:
    """State of moist air determined by its dry-bulb temperature and one other
    property.

    The state is calculated with the Imperial psychrometric relations of
    module `psychrometrics`. All properties are returned as `Quantity`
    objects.

    Examples
    --------
    >>> air = MoistAir(Tdb=Q_(95, 'degF'), Twb=Q_(75, 'degF'))
    >>> air.W.to('lb / lb')
    """
    _units: dict[str, str] = {
        'Tdb': 'degF',
        'Twb': 'degF',
        'W': 'lb / lb',
        'RH': 'frac',
        'h': 'Btu / lb',
        'P': 'inHg'
    }

    def __init__(self, **input_qties: Quantity):
        """Creates a `MoistAir` object.

        Parameters
        ----------
        Tdb:
            Dry-bulb temperature (required).
        Twb | W | RH | h:
            Exactly one other property that fixes the state. Should more than
            one be given, only the first one is considered.
        P: optional
            Barometric pressure. Standard pressure at sea level if omitted.
        """
        P = input_qties.pop('P', STANDARD_PRESSURE)
        self._P = P.to(self._units['P']).m
        T_db = input_qties.pop('Tdb', None)
        if T_db is None or not input_qties:
            raise ValueError(
                "Moist air state cannot be determined: "
                "parameter Tdb and one other property are required."
            )
        key, qty = next(iter(input_qties.items()))
        if key not in ('Twb', 'W', 'RH', 'h'):
            raise ValueError(f"Unknown moist air property '{key}'.")
        self._inputs = {
            'Tdb': T_db.to(self._units['Tdb']).m,
            key: qty.to(self._units[key]).m
        }
        self._validate_inputs()
        self._T_db = self._inputs['Tdb']
        self._W = self._humidity_ratio(key)

    def _validate_inputs(self):
        for k, v in self._inputs.items():
            if v is None or math.isnan(v):
                raise ValueError(
                    f"Moist air state cannot be determined: "
                    f"parameter {k} is NaN or None."
                )
        RH = self._inputs.get('RH')
        if RH is not None and RH < 0.0:
            warnings.warn(
                message=(
                    "Negative value for RH detected. "
                    "RH has been reset to 0 %."
                ),
                category=RuntimeWarning
            )
            self._inputs['RH'] = 0.0
        W = self._inputs.get('W')
        if W is not None and W < 0.0:
            warnings.warn(
                message=(
                    "Negative value for W detected. "
                    "W has been reset to 0 lb/lb."
                ),
                category=RuntimeWarning
            )
            self._inputs['W'] = 0.0

    def _humidity_ratio(self, key: str) -> float:
        T_db = self._inputs['Tdb']
        v = self._inputs[key]
        match key:
            case 'Twb':
                return psy.humidity_ratio_from_wet_bulb(T_db, v, self._P)
            case 'RH':
                return psy.humidity_ratio_from_rh(T_db, v, self._P)
            case 'h':
                return psy.humidity_ratio_from_enthalpy(T_db, v)
            case _:
                return v

    def __str__(self):
        return (
            f"{self.Tdb:~P.1f} DB, "
            f"{self.Twb:~P.1f} WB "
            f"({self.RH.to('pct'):~P.0f} RH)"
        )

    @property
    def P(self) -> Quantity:
        return Q_(self._P, 'inHg')

    @property
    def Tdb(self) -> Quantity:
        return Q_(self._T_db, 'degF')

    @property
    def W(self) -> Quantity:
        return Q_(self._W, 'lb / lb')

    @property
    def Twb(self) -> Quantity:
        return Q_(psy.wet_bulb(self._T_db, self._W, self._P), 'degF')

    @property
    def Tdp(self) -> Quantity:
        return Q_(psy.dew_point(self._W, self._P), 'degF')

    @property
    def RH(self) -> Quantity:
        return Q_(psy.relative_humidity(self._T_db, self._W, self._P), 'frac')

    @property
    def h(self) -> Quantity:
        return Q_(psy.enthalpy(self._T_db, self._W), 'Btu / lb')

    @property
    def v(self) -> Quantity:
        return Q_(psy.specific_volume(self._T_db, self._W, self._P), 'ft ** 3 / lb')

    @property
    def rho(self) -> Quantity:
        return 1 / self.v
