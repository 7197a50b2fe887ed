import numpy as np

from ..core.particles import BiogeochemicalParticles
from ..core.parameters import Parameters
from . import lobster


class PassiveParticles(BiogeochemicalParticles):
    """Inert particles: advected with the flow, no biology, no exchange with tracers."""

    def __init__(self, name='PassiveParticles', dtype=np.float64):
        super().__init__(name=name, dtype=dtype)
        self.classname = 'Particles'


class NutrientUptakeParticles(BiogeochemicalParticles):
    """
    Particles with a nitrogen biomass growing on ambient NO3 and NH4.

    Uptake uses the LOBSTER light and nutrient limitations; biomass is lost at
    a linear rate to small detritus, so nitrogen is conserved between the
    particles and the tracers.
    """
    capabilities = frozenset({'biology', 'tendencies'})
    conserved_properties = {'N': 'biomass'}

    def __init__(self,
                 name='NutrientUptakeParticles',
                 mu_max=1.0e-5,  # [s-1] Maximum biomass-specific uptake rate
                 mortality=1.0e-6,  # [s-1] Linear biomass loss rate to small detritus
                 K_par=33.0,  # [W m-2] Light limitation half-saturation value
                 psi=3.0,  # [m3 mmol N-1] Inhibition of nitrate uptake by ammonium
                 K_NO3=0.7,  # [mmol N m-3] Nitrate half-saturation value
                 K_NH4=0.001,  # [mmol N m-3] Ammonium half-saturation value
                 dtype=np.float64):

        super().__init__(name=name, dtype=dtype)
        self.classname = 'Particles'
        self.params = Parameters(mu_max=mu_max, mortality=mortality, K_par=K_par,
                                 psi=psi, K_NO3=K_NO3, K_NH4=K_NH4)

        self.biomass = np.zeros(0, dtype=dtype)  # [mmol N per particle]

        # Rates of the last biology update [mmol N s-1 per particle]
        self.uptake_NO3 = np.zeros(0, dtype=dtype)
        self.uptake_NH4 = np.zeros(0, dtype=dtype)
        self.loss = np.zeros(0, dtype=dtype)

    def set_ICs(self, x, y=None, z=None, biomass=0.):
        super().set_ICs(x, y=y, z=z, biomass=biomass)
        n = len(self)
        self.uptake_NO3 = np.zeros(n, dtype=self.dtype)
        self.uptake_NH4 = np.zeros(n, dtype=self.dtype)
        self.loss = np.zeros(n, dtype=self.dtype)

    def update_properties(self, fields, dt):
        params = self.params
        limitation = params.mu_max * lobster.light_limitation(fields['PAR'], params) * self.biomass
        self.uptake_NO3 = limitation * lobster.nitrate_limitation(fields['NO3'], fields['NH4'], params)
        self.uptake_NH4 = limitation * lobster.ammonium_limitation(fields['NH4'], params)
        self.loss = params.mortality * self.biomass
        self.biomass = self.biomass + dt * (self.uptake_NO3 + self.uptake_NH4 - self.loss)

    def update_tendencies(self, fields):
        return {'NO3': -self.uptake_NO3,
                'NH4': -self.uptake_NH4,
                'D': self.loss}
