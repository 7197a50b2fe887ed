import numpy as np

from lobstermod.components import particles
from lobstermod.core import phys
from lobstermod.utils import functions as fns
from lobstermod.config_model import base_config

# LOBSTER box model scenarios
# ===========================
# Model units: [s-1] for rates, [mmol m-3] for all tracers, time axis in [d]

N_group = ['NO3', 'NH4', 'P', 'Z', 'D', 'DD', 'DOM']

# Closed box: no boundary fluxes, nitrogen is conserved
ClosedBox_setup = phys.Setup(name='ClosedBox', tmin=0, tmax=60, dt=0.01, PAR_profile='constant', I=100.)
ClosedBox = fns.deep_update(base_config.LOBSTER, base_config.LOBSTER_diagnostics,
                            {'formulation': 'ClosedBox'})

# Same box under a diel cycle
LightDark_setup = phys.Setup(name='LightDark', tmin=0, tmax=60, dt=0.01,
                             PAR_profile='lightdark', I=200., light_prop=0.5)

# Shallow coastal box: detritus sinks to the bed and is remineralized, O2 exchanges with the atmosphere
Coastal_setup = phys.Setup(name='Coastal', tmin=0, tmax=120, dt=0.01, PAR_profile='lightdark',
                           I=200., water_depth=20., T=12., S=33., wind_speed=6.)
Coastal = fns.deep_update(base_config.LOBSTER_full, base_config.Sediment, base_config.AirSea,
                          base_config.LOBSTER_diagnostics,
                          {'formulation': 'Coastal'})

# Closed box with nutrient-consuming particles
n_particles = 50
Particles_setup = phys.Setup(name='Particles', tmin=0, tmax=30, dt=0.01, PAR_profile='constant', I=100.)
WithParticles = fns.deep_update(base_config.LOBSTER, {
    'formulation': 'WithParticles',
    'Particles': {'class': particles.NutrientUptakeParticles,
                  'parameters': {'mu_max': 1.0e-5,  # [s-1]
                                 'mortality': 1.0e-6},  # [s-1]
                  'initialization': {'x': np.linspace(0., 1., n_particles),
                                     'biomass': 0.02},  # [mmol N per particle]
                  },
})

# Inert particles, carried along without any exchange
WithPassiveParticles = fns.deep_update(base_config.LOBSTER, {
    'formulation': 'WithPassiveParticles',
    'Tracers': {'class': particles.PassiveParticles,
                'initialization': {'x': np.zeros(n_particles)},
                },
})
