from lobstermod.components import lobster
from lobstermod.core import boundaries
from lobstermod.utils import functions as fns

# LOBSTER = Levy et al 2005, Resplandy et al 2012
# ===============================================
# Model units: [s-1] for rates, [mmol m-3] for all tracers, [meq m-3] for ALK.
# Parameters not given here take the defaults of lobstermod.components.lobster.

# ===============================================================================
# DIAGNOSTICS CONFIGURATIONS
# ===============================================================================

LOBSTER_diagnostics = {
    'LOBSTER': {
        'diagnostics': ['L_par', 'L_NO3', 'L_NH4', 'G_p', 'G_d']
    }
}


# ===============================================================================
# BASE CONFIGURATION (core tracers only)
# ===============================================================================

LOBSTER = {
    'formulation': 'LOBSTER',
    'LOBSTER': {'class': lobster.LOBSTER,
                'parameters': {
                    'carbonates': False,
                    'oxygen': False,
                    'variable_redfield': False,
                    'domain_policy': 'clamp',
                },
                'initialization': {
                    'NO3': 10.,  # [mmol N m-3]
                    'NH4': 0.1,  # [mmol N m-3]
                    'P': 0.2,  # [mmol N m-3]
                    'Z': 0.1,  # [mmol N m-3]
                    'D': 0.,  # [mmol N m-3]
                    'DD': 0.,  # [mmol N m-3]
                    'Dc': 0.,  # [mmol C m-3]
                    'DDc': 0.,  # [mmol C m-3]
                    'DOM': 0.,  # [mmol N m-3]
                },
                'diagnostics': [],
                },
}


# ===============================================================================
# OPTIONAL TRACER GROUPS
# ===============================================================================

carbonates = {'LOBSTER': {'parameters': {'carbonates': True},
                          'initialization': {'DIC': 2100.,  # [mmol C m-3]
                                             'ALK': 2350.}}}  # [meq m-3]

oxygen = {'LOBSTER': {'parameters': {'oxygen': True},
                      'initialization': {'OXY': 240.}}}  # [mmol O2 m-3]

variable_redfield = {'LOBSTER': {'parameters': {'variable_redfield': True},
                                 'initialization': {'DOC': 0.}}}  # [mmol C m-3]

LOBSTER_carbonates = fns.deep_update(LOBSTER, carbonates, {'formulation': 'LOBSTER_carbonates'})
LOBSTER_oxygen = fns.deep_update(LOBSTER, oxygen, {'formulation': 'LOBSTER_oxygen'})
LOBSTER_full = fns.deep_update(LOBSTER, carbonates, oxygen, variable_redfield,
                               {'formulation': 'LOBSTER_full'})


# ===============================================================================
# BOUNDARIES
# ===============================================================================

Sediment = {
    'Sediment': {'class': boundaries.SedimentRemineralization,
                 'parameters': {'remineralize': True},
                 'coupling': {'coupled_bgc': 'LOBSTER'},
                 },
}

AirSea = {
    'AirSea': {'class': boundaries.OxygenGasExchange,
               'parameters': {'wind_speed': None},  # None: use the wind speed of the Setup
               'coupling': {'coupled_bgc': 'LOBSTER'},
               },
}
