"""
LOBSTER biogeochemical model (Levy et al. 2005, Resplandy et al. 2012).

Nitrogen-based NPZD-type model with small and large detritus, their carbon
content, and dissolved organic matter, optionally extended with carbonate
chemistry (DIC, ALK), oxygen (OXY) and a dissolved organic carbon pool (DOC).

Model units: [s-1] for rates, [mmol N m-3] for nitrogen tracers, [mmol C m-3]
for carbon tracers, [mmol O2 m-3] for OXY, [meq m-3] for ALK, PAR in [W m-2].
"""
import numpy as np

from ..core.base import BaseStateVar
from ..core import registry
from ..core.dispatch import ForcingDispatcher
from ..core.errors import ConfigurationError
from ..core.parameters import Parameters
from lobstermod.config_model import varinfos
from ..utils import functions as fns

# Smallest positive double, keeps p(P, 0) == 1 exactly while avoiding 0/0
EPS = np.nextafter(0., 1.)


# =============================================================================
# Limitation and rate functions
# =============================================================================

def light_limitation(PAR, params):
    return 1. - np.exp(-np.maximum(PAR, 0.) / params.K_par)


def nitrate_limitation(NO3, NH4, params):
    """Nitrate limitation with inhibition by ammonium."""
    NO3 = np.maximum(NO3, 0.)
    return NO3 * np.exp(-params.psi * np.maximum(NH4, 0.)) / (NO3 + params.K_NO3)


def ammonium_limitation(NH4, params):
    NH4 = np.maximum(NH4, 0.)
    return NH4 / (NH4 + params.K_NH4)


def grazing_preference(P, D, params):
    """Fraction of the zooplankton diet taken from phytoplankton."""
    P, D = np.maximum(P, 0.), np.maximum(D, 0.)
    return params.p_tilde * P / (params.p_tilde * P + (1. - params.p_tilde) * D + EPS)


def grazing_denominator(P, D, params):
    p = grazing_preference(P, D, params)
    return params.K_z + p * np.maximum(P, 0.) + (1. - p) * np.maximum(D, 0.)


def phytoplankton_grazing(P, Z, D, params):
    p = grazing_preference(P, D, params)
    return params.g_z * p * np.maximum(P, 0.) * np.maximum(Z, 0.) / grazing_denominator(P, D, params)


def detritus_grazing(P, Z, D, params):
    p = grazing_preference(P, D, params)
    return params.g_z * (1. - p) * np.maximum(D, 0.) * np.maximum(Z, 0.) / grazing_denominator(P, D, params)


def total_uptake(NO3, NH4, P, PAR, params):
    """Gross phytoplankton nitrogen uptake (nitrate and ammonium)."""
    return (params.mu_p * light_limitation(PAR, params)
            * (nitrate_limitation(NO3, NH4, params) + ammonium_limitation(NH4, params)) * P)


def nitrate_uptake(NO3, NH4, P, PAR, params):
    return params.mu_p * light_limitation(PAR, params) * nitrate_limitation(NO3, NH4, params) * P


def ammonium_uptake(NO3, NH4, P, PAR, params):
    return params.mu_p * light_limitation(PAR, params) * ammonium_limitation(NH4, params) * P


def small_detritus_production(P, Z, D, params):
    """Gains of small detritus (egestion, mortality) minus its grazing, in nitrogen units."""
    grazing = phytoplankton_grazing(P, Z, D, params) + detritus_grazing(P, Z, D, params)
    return ((1. - params.f_d) * (1. - params.a_z) * grazing
            + (1. - params.f_d) * params.m_p * P ** 2
            - detritus_grazing(P, Z, D, params)
            + params.f_z * params.m_z * Z ** 2)


def large_detritus_production(P, Z, D, params):
    grazing = phytoplankton_grazing(P, Z, D, params) + detritus_grazing(P, Z, D, params)
    return (params.f_d * (1. - params.a_z) * grazing
            + params.f_d * params.m_p * P ** 2
            + (1. - params.f_z) * params.m_z * Z ** 2)


# =============================================================================
# Forcing functions [mmol m-3 s-1]
# =============================================================================

def NO3_forcing(x, y, z, t, NO3, NH4, P, PAR, params):
    return (-nitrate_uptake(NO3, NH4, P, PAR, params)
            + params.mu_n * NH4)  # nitrification


def NH4_forcing(x, y, z, t, NO3, NH4, P, Z, D, DD, DOM, PAR, params):
    return (params.alpha_p * params.gamma * total_uptake(NO3, NH4, P, PAR, params)  # exudation
            - ammonium_uptake(NO3, NH4, P, PAR, params)
            - params.mu_n * NH4
            + params.alpha_z * params.mu_z * Z
            + params.alpha_d * params.mu_d * D
            + params.alpha_dd * params.mu_dd * DD
            + params.mu_dom * DOM)


def P_forcing(x, y, z, t, NO3, NH4, P, Z, D, PAR, params):
    return ((1. - params.gamma) * total_uptake(NO3, NH4, P, PAR, params)
            - phytoplankton_grazing(P, Z, D, params)
            - params.m_p * P ** 2)


def Z_forcing(x, y, z, t, P, Z, D, params):
    grazing = phytoplankton_grazing(P, Z, D, params) + detritus_grazing(P, Z, D, params)
    return (params.a_z * grazing
            - params.m_z * Z ** 2
            - params.mu_z * Z)


def D_forcing(x, y, z, t, P, Z, D, params):
    return small_detritus_production(P, Z, D, params) - params.mu_d * D


def DD_forcing(x, y, z, t, P, Z, D, DD, params):
    return large_detritus_production(P, Z, D, params) - params.mu_dd * DD


def Dc_forcing(x, y, z, t, P, Z, D, Dc, params):
    return small_detritus_production(P, Z, D, params) * params.Rd_phy - params.mu_d * Dc


def DDc_forcing(x, y, z, t, P, Z, D, DDc, params):
    return large_detritus_production(P, Z, D, params) * params.Rd_phy - params.mu_dd * DDc


def DOM_forcing(x, y, z, t, NO3, NH4, P, Z, D, DD, DOM, PAR, params):
    return ((1. - params.alpha_p) * params.gamma * total_uptake(NO3, NH4, P, PAR, params)
            - params.mu_dom * DOM
            + (1. - params.alpha_z) * params.mu_z * Z
            + (1. - params.alpha_d) * params.mu_d * D
            + (1. - params.alpha_dd) * params.mu_dd * DD)


def DIC_forcing(x, y, z, t, NO3, NH4, P, Z, Dc, DDc, DOC, PAR, params):
    uptake = total_uptake(NO3, NH4, P, PAR, params)
    return (-uptake * params.Rd_phy * (1. + params.rho_caco3)  # organic production and calcification
            + params.alpha_p * params.gamma * uptake * params.Rd_phy
            + params.alpha_z * params.mu_z * params.Rd_phy * Z
            + params.alpha_d * params.mu_d * Dc
            + params.alpha_dd * params.mu_dd * DDc
            + params.mu_dom * DOC)


def ALK_forcing(x, y, z, t, NO3, NH4, P, PAR, params):
    return (nitrate_uptake(NO3, NH4, P, PAR, params)
            - 2. * params.rho_caco3 * total_uptake(NO3, NH4, P, PAR, params) * params.Rd_phy)


def OXY_forcing(x, y, z, t, NO3, NH4, P, Z, D, DD, DOM, PAR, params):
    production = (nitrate_uptake(NO3, NH4, P, PAR, params)
                  + params.oxy_nh4_production * ammonium_uptake(NO3, NH4, P, PAR, params))
    return (production * params.Rd_oxy
            - (params.Rd_oxy - params.Rd_nit) * NH4_forcing(x, y, z, t, NO3, NH4, P, Z, D, DD, DOM, PAR, params)
            - params.Rd_oxy * params.mu_n * NH4)


# =============================================================================
# Model description
# =============================================================================

day = varinfos.day

defaults = {
    'p_tilde': 0.5,  # [-] Preference for phytoplankton
    'g_z': 9.26e-6,  # [s-1] Zooplankton maximal grazing rate
    'K_z': 1.0,  # [mmol N m-3] Grazing half-saturation value
    'K_par': 33.0,  # [W m-2] Light limitation half-saturation value
    'psi': 3.0,  # [m3 mmol N-1] Inhibition of nitrate uptake by ammonium
    'K_NO3': 0.7,  # [mmol N m-3] Nitrate limitation half-saturation value
    'K_NH4': 0.001,  # [mmol N m-3] Ammonium limitation half-saturation value
    'v_dd_min': 50. / day,  # [m s-1] Minimum large detritus sinking speed
    'v_dd_max': 200. / day,  # [m s-1] Maximum large detritus sinking speed
    'w_d': -3.47e-5,  # [m s-1] Small detritus sinking velocity
    'w_dd': -200. / day,  # [m s-1] Large detritus sinking velocity
    'lambda_': 1.0,  # [-]
    'mu_p': 1.21e-5,  # [s-1] Phytoplankton maximal growth rate
    'a_z': 0.7,  # [-] Assimilated food fraction by zooplankton
    'm_z': 2.31e-6,  # [s-1 (mmol N m-3)-1] Zooplankton mortality rate
    'mu_z': 5.8e-7,  # [s-1] Zooplankton excretion rate
    'm_p': 5.8e-7,  # [s-1 (mmol N m-3)-1] Phytoplankton mortality rate
    'mu_d': 5.78e-7,  # [s-1] Small detritus remineralization rate
    'mu_dd': 5.78e-7,  # [s-1] Large detritus remineralization rate
    'gamma': 0.05,  # [-] Phytoplankton exudation fraction
    'mu_n': 5.8e-7,  # [s-1] Nitrification rate
    'alpha_p': 0.75,  # [-] NH4 fraction of phytoplankton exudation
    'alpha_z': 0.5,  # [-] NH4 fraction of zooplankton excretion
    'alpha_d': 0.0,  # [-] NH4 fraction of small detritus degradation
    'alpha_dd': 0.0,  # [-] NH4 fraction of large detritus degradation
    'Rd_phy': 6.56,  # [mol C mol N-1] C:N ratio of phytoplankton
    'Rd_dom': 6.56,  # [mol C mol N-1] C:N ratio of dissolved organic matter
    'Rd_chl': 1.31,  # [mg Chl mmol N-1]
    'rho_caco3': 0.1,  # [-] Rain ratio of CaCO3 to organic carbon
    'Rd_oxy': 10.75,  # [mol O2 mol N-1] O:N ratio of primary production
    'Rd_nit': 2.0,  # [mol O2 mol N-1] O:N ratio of nitrification
    'f_z': 0.5,  # [-] Fraction of zooplankton mortality to small detritus
    'f_d': 0.5,  # [-] Fraction of faecal pellets and phytoplankton mortality to large detritus
    'mu_dom': 3.86e-7,  # [s-1] DOM breakdown rate
    'oxy_nh4_production': 0.0,  # [-] Share of ammonium-based production counted in O2 production
}

descriptor = registry.register_model(registry.ModelDescriptor(
    name='LOBSTER',
    tracers=('NO3', 'NH4', 'P', 'Z', 'D', 'DD', 'Dc', 'DDc', 'DOM'),
    optional_tracers={
        'carbonates': ('DIC', 'ALK'),
        'oxygen': ('OXY',),
        'variable_redfield': ('DOC',),
    },
    forcing_functions={
        'NO3': NO3_forcing, 'NH4': NH4_forcing, 'P': P_forcing, 'Z': Z_forcing,
        'D': D_forcing, 'DD': DD_forcing, 'Dc': Dc_forcing, 'DDc': DDc_forcing,
        'DOM': DOM_forcing, 'DIC': DIC_forcing, 'ALK': ALK_forcing, 'OXY': OXY_forcing,
    },
    # DOM kinetics are linear in the pools, so the carbon pool is the DOM forcing in carbon units
    forcing_variants={
        'DOC': registry.ForcingVariant('DOM', {
            'P': registry.Conversion('P', 'Rd_phy'),
            'Z': registry.Conversion('Z', 'Rd_phy'),
            'D': registry.Conversion('Dc'),
            'DD': registry.Conversion('DDc'),
            'DOM': registry.Conversion('DOC'),
        }),
    },
    derived_arguments={'DOC': registry.Conversion('DOM', 'Rd_dom')},
    sinking={'D': 'w_d', 'DD': 'w_dd', 'Dc': 'w_d', 'DDc': 'w_dd'},
    required_fields=('PAR',),
    defaults=defaults,
    elements={'NO3': 'N', 'NH4': 'N', 'P': 'N', 'Z': 'N', 'D': 'N', 'DD': 'N', 'DOM': 'N',
              'Dc': 'C', 'DDc': 'C', 'DIC': 'C', 'DOC': 'C', 'ALK': 'Eq', 'OXY': 'O2'},
    flagged={'OXY': 'The O2 production term follows the published formulation, whose source '
                    'equation contains a typo; set oxy_nh4_production to count ammonium-based '
                    'production as well.'},
), replace=True)


class LOBSTER(BaseStateVar):
    """
    A LOBSTER model instance for one optional-tracer configuration.

    Exposes what an external engine needs at build time (tracers, forcing
    handles, sinking velocities, required fields, parameters) and can also be
    used as a component of the box `Model`.

    Required fields are checked against `auxiliary_fields` at construction;
    with the default `None` the check is skipped and a missing field only
    surfaces when tendencies are evaluated. The box `Model` checks them
    against the fields it provides when it builds the component.
    """
    diagnostic_attrs = ('L_par', 'L_NO3', 'L_NH4', 'G_p', 'G_d')

    def __init__(self,
                 name='LOBSTER',
                 carbonates=False,  # DIC and ALK tracers
                 oxygen=False,  # OXY tracer
                 variable_redfield=False,  # DOC tracer
                 domain_policy='clamp',  # 'clamp' or 'strict'
                 auxiliary_fields=None,  # field names provided by the engine, checked against required_fields
                 verbose=False,
                 dtype=np.float64,
                 **parameters):

        super().__init__(dtype=dtype)

        self.name = name
        self.classname = 'LOBSTER'
        self.verbose = verbose
        self.descriptor = registry.get_model(self.classname)
        self.parameters = Parameters.from_defaults(self.descriptor.defaults, parameters, owner=name)

        groups = [group for group, enabled in (('carbonates', carbonates),
                                               ('oxygen', oxygen),
                                               ('variable_redfield', variable_redfield)) if enabled]
        self.dispatcher = ForcingDispatcher(self.descriptor, groups, self.parameters,
                                            auxiliary_fields=auxiliary_fields,
                                            domain_policy=domain_policy)

        # Model rates are per second, the box model runs in days
        self.time_conversion_factor = day

        self.values = None
        self.fields = None
        self.ICs = None
        self.coupled_boundaries = []
        self.flagged = False

        # Diagnostics
        self.L_par = None
        self.L_NO3 = None
        self.L_NH4 = None
        self.G_p = None
        self.G_d = None

        if verbose:
            print(f'{name}: tracers {", ".join(self.tracers)}; '
                  f'optional groups {", ".join(groups) or "none"}')
            overrides = self.parameters.overrides_from(self.descriptor.defaults)
            if overrides:
                print(f'{name}: parameter overrides {overrides}')
            for tracer, note in self.descriptor.flagged.items():
                if tracer in self.tracers:
                    print(f'{name}: note on {tracer} forcing: {note}')

    # Engine contract
    # ---------------

    @property
    def tracers(self):
        return self.dispatcher.tracers

    @property
    def required_fields(self):
        return self.dispatcher.configuration.fields

    @property
    def optional_groups(self):
        return self.dispatcher.configuration.groups

    @property
    def sinking_velocities(self):
        """Signed sinking velocity [m s-1] of each active sinking tracer."""
        return {tracer: self.parameters[parameter]
                for tracer, parameter in self.descriptor.sinking.items() if tracer in self.tracers}

    def sinking_velocity(self, tracer):
        if tracer not in self.tracers:
            raise ConfigurationError(f'{self.name}: unknown tracer {tracer}')
        return self.sinking_velocities.get(tracer)

    def forcing(self, tracer):
        return self.dispatcher.resolve(tracer, self.dispatcher.arity)

    def __call__(self, tracer, x, y, z, t, *values):
        return self.dispatcher(tracer, x, y, z, t, *values)

    def evaluate_tendencies(self, values, fields, x=0., y=0., z=0., t=0.):
        return self.dispatcher.evaluate(values, fields, x=x, y=y, z=z, t=t)

    # Box model component
    # -------------------

    def set_ICs(self, **concentrations):
        unknown = sorted(set(concentrations) - set(self.tracers))
        if unknown:
            raise ConfigurationError(f'{self.name}: initial values given for inactive tracers {unknown}')
        self.values = {tracer: concentrations.get(tracer, 0.) for tracer in self.tracers}
        self.ICs = np.array([self.values[tracer] for tracer in self.tracers], dtype=self.dtype)

    def set_coupling(self):
        self.coupled_boundaries = []

    def register_boundary(self, boundary):
        self.coupled_boundaries.append(boundary)

    def update_val(self, t=None, t_idx=None, debugverbose=False, **concentrations):
        if debugverbose:
            print(f'Checking update_val for {self.name} with values before: ', self.values)
        self.values = concentrations
        self.fields = {'PAR': self.setup.get_PAR(t, t_idx)}

    def get_tendencies(self, t=None, t_idx=None):
        """Tendencies [mmol m-3 s-1] of the active tracers, including boundary fluxes."""
        time = 0. if t is None else t * day
        result = self.evaluate_tendencies(self.values, self.fields, t=time)
        tendencies = result.tendencies

        if self.coupled_boundaries:
            for boundary in self.coupled_boundaries:
                boundary.update_fluxes(self.values, t=t, t_idx=t_idx)
            tendencies = {tracer: tendency + fns.get_all_contributors(self.coupled_boundaries, 'flux', tracer)
                          for tracer, tendency in tendencies.items()}

        self.flagged = bool(np.any(result.flagged))
        self.update_diagnostics()
        return np.array([tendencies[tracer] for tracer in self.tracers], dtype=self.dtype)

    def update_diagnostics(self):
        values, params = self.values, self.parameters
        self.L_par = light_limitation(self.fields['PAR'], params)
        self.L_NO3 = nitrate_limitation(values['NO3'], values['NH4'], params)
        self.L_NH4 = ammonium_limitation(values['NH4'], params)
        self.G_p = phytoplankton_grazing(values['P'], values['Z'], values['D'], params)
        self.G_d = detritus_grazing(values['P'], values['Z'], values['D'], params)
