import time
from functools import wraps
from collections import defaultdict
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Any, Sequence
from scipy import integrate

from lobstermod.utils import functions as fns
from lobstermod.config_model import varinfos
from . import phys
from .base import BaseBoundary
from .errors import ConfigurationError
from .particles import BiogeochemicalParticles, ParticleCoupling


def _track_time(func):
    """Decorator to track function execution time"""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        start = time.time()
        result = func(self, *args, **kwargs)
        duration = time.time() - start
        self.perf_stats[func.__name__].append(duration)
        return result
    return wrapper


class Model:
    """
    Well-mixed box model driving one biogeochemical component.

    The configuration dict maps component names to
    {'class', 'parameters', 'initialization', 'coupling', 'diagnostics'};
    its optional 'formulation' key names the configuration. Exactly one
    component carries tracers; the others are particle collections or
    boundary fluxes coupled to it.
    """
    # Auxiliary fields computed by the box (Setup) for the biogeochemical component
    PROVIDED_FIELDS = ('PAR',)

    def __init__(
            self,
            config_dict: Dict[str, Any],
            setup: Optional[phys.Setup] = None,
            euler: bool = True,
            name: str = 'Model',
            verbose: bool = True,
            debug_budgets: bool = False,
            aggregate_vars: Optional[Dict[str, List[str]]] = None,
            conserved_group: Optional[Sequence[str]] = None,
            do_diagnostics: bool = True,
            full_diagnostics: bool = False,
            rtol: float = 1e-6,
            atol: float = 1e-9,
    ):
        # Basic attributes
        self.setup = setup if setup is not None else phys.Setup()
        self.name = name
        self.verbose = verbose
        self.debug_budgets = debug_budgets
        self.do_diagnostics = do_diagnostics
        self.full_diagnostics = full_diagnostics
        self.error = False
        self.euler = euler
        self.conserved_group = conserved_group
        self.rtol = rtol
        self.atol = atol
        self.config = config_dict.copy()
        self.formulation = self.config.get('formulation', 'default')
        self.aggregate_vars_init = aggregate_vars
        self.flagged_steps = []

        # Performance tracking
        self.perf_stats = defaultdict(list)
        self.start_time = time.time()

        self._initialize_all()

        self._run_model()
        self._process_results()

        if verbose:
            self._report_performance()

    def _initialize_all(self):
        """Initialize all model components"""
        self._initialize_components()
        self._setup_component_couplings()
        self._initialize_tracking_variables()
        self._initialize_particle_couplings()
        self.initial_state = self.bgc.ICs.copy()

    @_track_time
    def _initialize_components(self):
        """Initialize each model component"""
        self.components = {}
        self.particles = {}
        self.boundaries = {}
        bgc_keys = []

        for key, cfg in self.config.items():
            if key == 'formulation':
                continue

            instance = cfg['class'](name=key, **cfg.get('parameters', {}))
            instance.setup = self.setup
            instance.set_ICs(**cfg.get('initialization', {}))

            if isinstance(instance, BiogeochemicalParticles):
                self.particles[key] = instance
            elif isinstance(instance, BaseBoundary):
                self.boundaries[key] = instance
            else:
                bgc_keys.append(key)
            self.components[key] = instance

        if len(bgc_keys) != 1:
            raise ConfigurationError(
                f"{self.name}: expected exactly one biogeochemical component, found {bgc_keys or 'none'}"
            )
        self.bgc_key = bgc_keys[0]
        self.bgc = self.components[self.bgc_key]

        missing = [name for name in self.bgc.required_fields if name not in self.PROVIDED_FIELDS]
        if missing:
            raise ConfigurationError(
                f"{self.name}: {self.bgc_key} requires field(s) {', '.join(missing)}, "
                f"the box model only provides {', '.join(self.PROVIDED_FIELDS)}"
            )

        if self.particles and not self.euler:
            raise ConfigurationError(
                f"{self.name}: particles {list(self.particles)} are updated once per step "
                f"and need Euler integration"
            )

    @_track_time
    def _setup_component_couplings(self):
        """Setup couplings between components"""
        self.bgc.set_coupling()
        for key, cfg in self.config.items():
            if key in ('formulation', self.bgc_key):
                continue
            couplings = self._process_couplings(cfg.get('coupling', {}))
            self.components[key].set_coupling(**couplings)

    def _process_couplings(self, coupling_dict):
        """Process coupling configurations"""
        couplings = {}
        for coupling_key, coupled_component in coupling_dict.items():
            if coupled_component is None:
                continue
            if coupled_component not in self.components:
                raise ConfigurationError(f"{self.name}: coupling to unknown component {coupled_component}")
            couplings[coupling_key] = self.components[coupled_component]
        return couplings

    def _initialize_tracking_variables(self):
        """Pool names, diagnostics and aggregates"""
        self.tracers = list(self.bgc.tracers)
        self.pool_names = [f"{self.bgc_key}_{tracer}" for tracer in self.tracers]
        self.pool_indices = {name: idx for idx, name in enumerate(self.pool_names)}
        self.time_conversion_factor = self.bgc.time_conversion_factor

        # Diagnostics
        diagnostics = self.config[self.bgc_key].get('diagnostics', [])
        if self.full_diagnostics:
            diagnostics = self.bgc.get_all_diagnostics()
        self.bgc.diagnostics = list(diagnostics) if self.do_diagnostics else []
        self.diag_pool_names = [f"{self.bgc_key}_{diag}" for diag in self.bgc.diagnostics]

        # Aggregates: by default, every nitrogen tracer and the particle nitrogen content
        if self.aggregate_vars_init is not None:
            self.aggregate_vars = {k: list(v) for k, v in self.aggregate_vars_init.items()}
        else:
            elements = self.bgc.descriptor.elements
            self.aggregate_vars = {'N_tot': [f"{self.bgc_key}_{tracer}" for tracer in self.tracers
                                             if elements.get(tracer) == 'N']}
            for key, particles in self.particles.items():
                if 'N' in particles.conserved_properties:
                    self.aggregate_vars['N_tot'].append(f"{key}_N")

    def _initialize_particle_couplings(self):
        self.particle_couplings = {
            key: ParticleCoupling(particles, self.tracers, cell_volume=self.setup.box_volume)
            for key, particles in self.particles.items()
        }
        if self.verbose:
            for key, coupling in self.particle_couplings.items():
                print(f'{key}: {coupling.particles.summary()}, '
                      f'capabilities {sorted(coupling.capabilities) or "none (inert)"}')

    @_track_time
    def _compute_derivatives(self, t: float, y: np.ndarray, t_idx: int = None) -> np.ndarray:
        """Tracer tendencies in model time units (d-1)."""
        self.bgc.update_val(t=t, t_idx=t_idx, debugverbose=self.debug_budgets,
                            **{tracer: y[idx] for idx, tracer in enumerate(self.tracers)})
        return self.bgc.get_tendencies(t, t_idx=t_idx) * self.time_conversion_factor

    @_track_time
    def _couple_particles(self, derivatives: np.ndarray) -> np.ndarray:
        """Run every particle collection through one timestep and add its exchanges."""
        fields = dict(self.bgc.values, **self.bgc.fields)
        dt_seconds = self.setup.dt * self.time_conversion_factor
        tendencies = {tracer: np.zeros(1) for tracer in self.tracers}

        for coupling in self.particle_couplings.values():
            coupling.mark_advected()
            coupling.update_biology(fields, dt_seconds)
            coupling.accumulate_tendencies(tendencies, fields)
            coupling.complete()

        exchange = np.array([tendencies[tracer][0] for tracer in self.tracers])
        return derivatives + exchange * self.time_conversion_factor

    def _particle_contents(self) -> np.ndarray:
        return np.array([particles.content(element) / self.setup.box_volume
                         for particles in self.particles.values()
                         for element in particles.conserved_properties])

    @property
    def particle_pool_names(self) -> List[str]:
        return [f"{key}_{element}"
                for key, particles in self.particles.items()
                for element in particles.conserved_properties]

    def _apply_positivity(self, y: np.ndarray) -> np.ndarray:
        if self.conserved_group is None:
            return y
        corrected = fns.scale_negative_tracers(dict(zip(self.tracers, y)), self.conserved_group)
        return np.array([corrected[tracer] for tracer in self.tracers], dtype=np.float64)

    @_track_time
    def _run_model(self) -> None:
        """Run the model using either Euler or ODE solver integration."""
        if self.verbose:
            print(f'Starting simulation {self.name}')

        if self.euler:
            self._run_euler_integration()
        else:
            self._run_ode_integration()

    @_track_time
    def _run_euler_integration(self) -> None:
        """Run model using Euler integration with pre-allocated arrays"""
        t_eval = self.setup.t_eval
        n_steps = len(t_eval)
        n_vars = len(self.initial_state)
        n_particle_pools = len(self.particle_pool_names)

        states = np.full((n_steps, n_vars), np.nan, dtype=np.float64)
        states[0] = self.initial_state
        particle_states = np.full((n_steps, n_particle_pools), np.nan, dtype=np.float64)
        particle_states[0] = self._particle_contents()
        diagnostics = np.full((n_steps, len(self.diag_pool_names)), np.nan, dtype=np.float64)

        y = self.initial_state.copy()
        print_every = max(1, int(round(1 / self.setup.dt)))

        for t_idx in range(1, n_steps):
            t = t_eval[t_idx - 1]
            derivatives = self._compute_derivatives(t, y, t_idx=t_idx - 1)
            if self.bgc.diagnostics:
                diagnostics[t_idx - 1] = self.bgc.get_diagnostic_variables()
            if self.bgc.flagged:
                self.flagged_steps.append(t_idx - 1)
            if self.particle_couplings:
                derivatives = self._couple_particles(derivatives)

            if np.isnan(derivatives).any():
                if self.verbose:
                    print(f'STOP MODEL: NaN values in derivatives: {derivatives}')
                self.error = True
                self.name += '-ERROR'
                break

            y = self._apply_positivity(y + self.setup.dt * derivatives)
            states[t_idx] = y
            particle_states[t_idx] = self._particle_contents()

            if self.verbose and t_idx % print_every == 0:
                print(f'Eulerian integration for t = {t_eval[t_idx]:.2f} d')

        if not self.error and self.bgc.diagnostics:
            self._compute_derivatives(t_eval[-1], y, t_idx=n_steps - 1)
            diagnostics[-1] = self.bgc.get_diagnostic_variables()

        self.t = t_eval
        self.y = states.T
        self.particle_y = particle_states.T
        self.diagnostics = diagnostics.T

    @_track_time
    def _run_ode_integration(self) -> None:
        """Run model using ODE solver"""
        self.t = self.setup.t_eval
        self.particle_y = np.empty((0, len(self.t)))
        try:
            results = integrate.solve_ivp(
                self._compute_derivatives,
                self.setup.t_span,
                self.initial_state,
                method='DOP853',
                t_eval=self.setup.t_eval,
                rtol=self.rtol,
                atol=self.atol,
            )
        except (ValueError, FloatingPointError) as e:
            print(f'Error with {self.name}: {e}')
            results = None

        if results is None or not results.success:
            if results is not None and self.verbose:
                print(f'Error with {self.name}: {results.message}')
            self.error = True
            self.name += '-ERROR'
            self.y = np.full((len(self.initial_state), len(self.t)), np.nan)
        else:
            self.y = results.y
        self.diagnostics = self._diagnostics_along(self.y)

    def _diagnostics_along(self, y: np.ndarray) -> np.ndarray:
        """Recompute diagnostics on a stored trajectory."""
        diagnostics = np.full((len(self.diag_pool_names), y.shape[1]), np.nan)
        if not self.bgc.diagnostics or self.error:
            return diagnostics
        for t_idx, t in enumerate(self.t):
            self._compute_derivatives(t, y[:, t_idx], t_idx=t_idx)
            diagnostics[:, t_idx] = self.bgc.get_diagnostic_variables()
        return diagnostics

    @_track_time
    def _process_results(self) -> None:
        """Process model results into a pandas DataFrame with aggregated variables."""
        self.df = pd.DataFrame(self.y.T, index=self.setup.dates, columns=self.pool_names)

        if self.particle_pool_names:
            particle_df = pd.DataFrame(self.particle_y.T, index=self.setup.dates,
                                       columns=self.particle_pool_names)
            self.df = pd.concat([self.df, particle_df], axis=1)

        self._compute_aggregate_variables()

        if self.diag_pool_names:
            diag_df = pd.DataFrame(self.diagnostics.T, index=self.setup.dates, columns=self.diag_pool_names)
            self.df = pd.concat([self.df, diag_df], axis=1)

        self.df.insert(0, 'time', self.t)
        self.df.attrs['units'] = {col: varinfos.doutput.get(self._generic_name(col), {}).get('units')
                                  for col in self.df.columns}

    def _generic_name(self, column: str) -> str:
        for key, component in self.components.items():
            if column.startswith(f'{key}_'):
                return f"{getattr(component, 'classname', key)}_{column[len(key) + 1:]}"
        return column

    @_track_time
    def _compute_aggregate_variables(self) -> None:
        for agg_var, columns in self.aggregate_vars.items():
            missing = [col for col in columns if col not in self.df.columns]
            if missing:
                raise ConfigurationError(f"{self.name}: aggregate {agg_var} refers to unknown pools {missing}")
            self.df[agg_var] = self.df[columns].to_numpy().sum(axis=1)

    def get_model_summary(self) -> Dict[str, Any]:
        """Get comprehensive model summary for logging"""
        return {
            'runtime': time.time() - self.start_time,
            'component_count': len(self.components),
            'variable_count': len(self.pool_names),
            'optional_groups': sorted(self.bgc.optional_groups),
            'parameter_overrides': self.bgc.parameters.overrides_from(self.bgc.descriptor.defaults),
            'flagged_steps': len(self.flagged_steps),
            'performance': dict(self.perf_stats),
            'error_status': self.error
        }

    def _report_performance(self):
        """Report performance statistics"""
        print("\nPerformance Statistics:")
        print("-" * 80)
        for func_name, times in self.perf_stats.items():
            avg_time = np.mean(times)
            total_time = np.sum(times)
            calls = len(times)
            print(f"{func_name:30s}: {total_time:8.3f}s total, {avg_time * 1000:8.3f}ms/call ({calls} calls)")
