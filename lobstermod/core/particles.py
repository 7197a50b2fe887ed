"""
Coupling between Lagrangian biogeochemical particles and tracer fields.

Particle collections declare explicit capabilities. A collection without any
behaves as an inert, passively advected tracer: the coupling hooks resolve to
the no-op defaults of BiogeochemicalParticles.
"""
import math
from collections import defaultdict
from typing import Callable, Dict, Iterable, Mapping, Optional

import numpy as np

from .errors import ConfigurationError, ParticleStateError

CAPABILITIES = frozenset({'biology', 'tendencies'})

# Per-timestep stages, in order; the integrator drives the transitions
STAGES = ('idle', 'position_advected', 'biology_updated', 'tendencies_accumulated')


class BiogeochemicalParticles:
    """
    Base class for particle collections.

    Every collection has positions (x, y, z arrays, owned by the advection
    scheme). Subclasses list the hooks they implement in `capabilities`:
    'biology' for `update_properties` and 'tendencies' for `update_tendencies`.
    `conserved_properties` maps an element to the property holding the
    particle content of that element (mmol per particle), for budgets.
    """
    capabilities = frozenset()
    conserved_properties = {}

    def __init__(self, name='Particles', dtype=np.float64):
        self.name = name
        self.dtype = dtype
        self.setup = None
        self.x = np.zeros(0, dtype=dtype)
        self.y = np.zeros(0, dtype=dtype)
        self.z = np.zeros(0, dtype=dtype)

    def set_ICs(self, x, y=None, z=None, **properties):
        self.x = np.atleast_1d(np.asarray(x, dtype=self.dtype)).copy()
        n = len(self.x)
        self.y = np.zeros(n, dtype=self.dtype) if y is None else np.broadcast_to(y, (n,)).astype(self.dtype)
        self.z = np.zeros(n, dtype=self.dtype) if z is None else np.broadcast_to(z, (n,)).astype(self.dtype)
        for prop, value in properties.items():
            setattr(self, prop, np.broadcast_to(np.asarray(value, dtype=self.dtype), (n,)).copy())

    def set_coupling(self):
        pass

    def __len__(self):
        return len(self.x)

    @property
    def size(self):
        return self.x.shape

    def property_names(self):
        """Per-particle array attributes (positions first)."""
        n = len(self)
        return [attr for attr, value in vars(self).items()
                if isinstance(value, np.ndarray) and value.shape == (n,)]

    def fetch_output(self) -> Dict[str, np.ndarray]:
        return {prop: getattr(self, prop).copy() for prop in self.property_names()}

    def summary(self):
        return (f"{len(self)} {type(self).__name__} with properties "
                f"{tuple(self.property_names())}")

    def __repr__(self):
        return self.summary()

    def update_properties(self, fields: Mapping[str, np.ndarray], dt: float) -> None:
        """Advance the biological state of every particle by dt [s]. Default: no-op."""
        return None

    def update_tendencies(self, fields: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """
        Per-particle exchange rates with the tracers [mmol s-1 per particle].

        Returns a dict tracer -> array (positive adds to the tracer). Default: nothing.
        """
        return {}

    def content(self, element):
        """Total content of an element over all particles [mmol]."""
        if element not in self.conserved_properties:
            return 0.
        return math.fsum(getattr(self, self.conserved_properties[element]))


def check_capabilities(particles: BiogeochemicalParticles) -> frozenset:
    """
    Validate declared capabilities at build time.

    Raises:
        ConfigurationError: for an unknown capability or a declared hook left
            at its no-op default
    """
    declared = frozenset(particles.capabilities)
    unknown = declared - CAPABILITIES
    if unknown:
        raise ConfigurationError(
            f"{particles.name}: unknown particle capabilities {sorted(unknown)} "
            f"(known: {sorted(CAPABILITIES)})"
        )
    hooks = {'biology': 'update_properties', 'tendencies': 'update_tendencies'}
    for capability in declared:
        hook = hooks[capability]
        if getattr(type(particles), hook) is getattr(BiogeochemicalParticles, hook):
            raise ConfigurationError(
                f"{particles.name}: declares '{capability}' but does not implement {hook}"
            )
    return declared


def single_cell(x, y, z):
    """Locator for a single well-mixed box."""
    return np.zeros(np.shape(x), dtype=int)


class ParticleCoupling:
    """
    Drives one particle collection through the per-timestep stages.

    Args:
        particles: The particle collection
        tracers: Names of the active tracers particles may exchange with
        locate: Maps particle positions (x, y, z) to integer cell indices
        cell_volume: Volume of each cell [m3], scalar or per-cell array
    """

    def __init__(self,
                 particles: BiogeochemicalParticles,
                 tracers: Iterable[str],
                 locate: Optional[Callable] = None,
                 cell_volume=1.):
        self.particles = particles
        self.capabilities = check_capabilities(particles)
        self.tracers = tuple(tracers)
        self.locate = locate or single_cell
        self.cell_volume = cell_volume
        self.stage = 'idle'
        self.cells = None

    def _advance(self, expected, new):
        if self.stage != expected:
            raise ParticleStateError(
                f"{self.particles.name}: cannot go to '{new}' from '{self.stage}' (expected '{expected}')"
            )
        self.stage = new

    def mark_advected(self):
        """Positions have been updated by the external advection scheme."""
        self._advance('idle', 'position_advected')
        self.cells = np.asarray(self.locate(self.particles.x, self.particles.y, self.particles.z), dtype=int)

    def sample(self, fields: Mapping) -> Dict[str, np.ndarray]:
        """Field values at the particle cells; scalars are broadcast to every particle."""
        n = len(self.particles)
        sampled = {}
        for name, value in fields.items():
            value = np.asarray(value, dtype=np.float64)
            sampled[name] = np.full(n, float(value)) if value.ndim == 0 else value[self.cells]
        return sampled

    def update_biology(self, fields: Mapping, dt: float):
        self._advance('position_advected', 'biology_updated')
        if 'biology' in self.capabilities:
            self.particles.update_properties(self.sample(fields), dt)

    def accumulate_tendencies(self, tendencies: Dict[str, np.ndarray], fields: Optional[Mapping] = None):
        """
        Add particle exchanges to the tracer tendencies [mmol m-3 s-1] in place.

        Contributions are grouped per cell and summed with math.fsum, an exactly
        rounded sum, so the result does not depend on particle order.
        """
        self._advance('biology_updated', 'tendencies_accumulated')
        if 'tendencies' not in self.capabilities:
            return tendencies

        exchanges = self.particles.update_tendencies(self.sample(fields or {}))
        for tracer, rates in exchanges.items():
            if tracer not in self.tracers:
                raise ConfigurationError(f"{self.particles.name}: exchange with unknown tracer {tracer}")
            per_cell = defaultdict(list)
            for cell, rate in zip(self.cells, np.broadcast_to(rates, self.cells.shape)):
                per_cell[int(cell)].append(float(rate))
            target = tendencies[tracer]
            for cell, cell_rates in per_cell.items():
                volume = self.cell_volume if np.ndim(self.cell_volume) == 0 else self.cell_volume[cell]
                target[cell] += math.fsum(cell_rates) / volume
        return tendencies

    def complete(self):
        self._advance('tendencies_accumulated', 'idle')
