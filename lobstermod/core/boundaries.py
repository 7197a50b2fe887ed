"""
Fluxes through the faces of a well-mixed box: sinking to the sediment and air-sea oxygen exchange.

Fluxes are returned as volumetric rates [mmol m-3 s-1] for a box of depth
`setup.water_depth`.
"""
import numpy as np

from .base import BaseBoundary
from .errors import ConfigurationError
from lobstermod.config_model import varinfos

# Garcia and Gordon (1992) oxygen solubility, Benson and Krause fit [umol kg-1]
O2_SOLUBILITY_A = (5.80871, 3.20291, 4.17887, 5.10006, -9.86643e-2, 3.80369)
O2_SOLUBILITY_B = (-7.01577e-3, -7.70028e-3, -1.13864e-2, -9.51519e-3)
O2_SOLUBILITY_C0 = -2.75915e-7

# Wanninkhof (1992) Schmidt number of O2 in seawater
O2_SCHMIDT = (1953.4, -128.00, 3.9918, -0.050091)


def oxygen_saturation(T, S):
    """
    Oxygen saturation concentration [mmol m-3].

    Args:
        T: Temperature [°C]
        S: Salinity [PSU]
    """
    Ts = np.log((298.15 - T) / (varinfos.degCtoK + T))
    A, B = O2_SOLUBILITY_A, O2_SOLUBILITY_B
    lnC = (A[0] + A[1] * Ts + A[2] * Ts ** 2 + A[3] * Ts ** 3 + A[4] * Ts ** 4 + A[5] * Ts ** 5
           + S * (B[0] + B[1] * Ts + B[2] * Ts ** 2 + B[3] * Ts ** 3)
           + O2_SOLUBILITY_C0 * S ** 2)
    return np.exp(lnC) * varinfos.rho_seawater / 1e3


def oxygen_schmidt_number(T):
    a, b, c, d = O2_SCHMIDT
    return a + b * T + c * T ** 2 + d * T ** 3


def gas_transfer_velocity(wind_speed, schmidt_number):
    """Wanninkhof (1992) transfer velocity [m s-1] from 0.31 u^2 (Sc/660)^-1/2 [cm h-1]."""
    return 0.31 * wind_speed ** 2 * (schmidt_number / 660.) ** -0.5 / 100. / 3600.


class SedimentRemineralization(BaseBoundary):
    """
    Sinking tracers leave the box through its bed.

    With `remineralize`, the nitrogen reaching the bed returns instantly as NH4
    and the detritus carbon as DIC when carbonates are tracked; otherwise it is
    buried and leaves the system.
    """

    def __init__(self, name='Sediment', remineralize=True, dtype=np.float64):
        super().__init__(name=name, dtype=dtype)
        self.remineralize = remineralize
        self.burial = {}

    def update_fluxes(self, values, t=None, t_idx=None):
        bgc = self.coupled_bgc
        elements = bgc.descriptor.elements
        depth = self.setup.water_depth

        self.flux = {}
        self.burial = {}
        for tracer, velocity in bgc.sinking_velocities.items():
            loss = velocity * values[tracer] / depth  # velocity < 0
            self.flux[tracer] = loss
            self.burial[elements[tracer]] = self.burial.get(elements[tracer], 0.) - loss

        if self.remineralize:
            self.flux['NH4'] = self.burial.pop('N', 0.)
            if 'DIC' in bgc.tracers:
                self.flux['DIC'] = self.burial.pop('C', 0.)


class OxygenGasExchange(BaseBoundary):
    """Air-sea O2 exchange at the surface of the box."""

    def __init__(self, name='AirSea', wind_speed=None, dtype=np.float64):
        super().__init__(name=name, dtype=dtype)
        self.wind_speed = wind_speed
        self.O2_sat = None
        self.k_O2 = None

    def check_coupling(self):
        if 'OXY' not in self.coupled_bgc.tracers:
            raise ConfigurationError(f"{self.name}: oxygen exchange needs the oxygen tracer group")

    def update_fluxes(self, values, t=None, t_idx=None):
        setup = self.setup
        wind_speed = setup.wind_speed if self.wind_speed is None else self.wind_speed
        self.O2_sat = oxygen_saturation(setup.T, setup.S)
        self.k_O2 = gas_transfer_velocity(wind_speed, oxygen_schmidt_number(setup.T))
        self.flux = {'OXY': self.k_O2 * (self.O2_sat - values['OXY']) / setup.water_depth}
