"""
Forcing dispatch for one optional-tracer configuration.

The configuration is an explicit set of enabled group tags. At construction
every active tracer is bound to a closure that gathers its canonical arguments
from the engine's positional argument list, converting between nitrogen and
carbon currencies where needed, so no resolution happens per evaluation.
"""
import warnings
from collections import namedtuple
from operator import itemgetter
from typing import Callable, Dict, Iterable, Mapping, Optional

import numpy as np

from . import registry
from .errors import ConfigurationError, NumericalDomainWarning
from .parameters import Parameters

DOMAIN_POLICIES = ('clamp', 'strict')

TracerConfiguration = namedtuple('TracerConfiguration',
                                 ['groups', 'tracers', 'fields', 'argument_names', 'arity'])

TendencyResult = namedtuple('TendencyResult', ['tendencies', 'flagged'])


class ForcingDispatcher:
    def __init__(self,
                 descriptor: registry.ModelDescriptor,
                 groups: Iterable[str],
                 parameters: Parameters,
                 auxiliary_fields: Optional[Iterable[str]] = None,
                 domain_policy: str = 'clamp'):
        if domain_policy not in DOMAIN_POLICIES:
            raise ConfigurationError(
                f"Unknown numerical domain policy '{domain_policy}' (use one of {DOMAIN_POLICIES})"
            )
        self.descriptor = descriptor
        self.parameters = parameters
        self.domain_policy = domain_policy

        groups = frozenset(groups)
        tracers = descriptor.active_tracers(groups)
        fields = tuple(descriptor.required_fields)
        if auxiliary_fields is not None:
            missing = [name for name in fields if name not in set(auxiliary_fields)]
            if missing:
                raise ConfigurationError(
                    f"{descriptor.name} requires auxiliary field(s) {', '.join(missing)}, "
                    f"which the engine does not provide"
                )
        argument_names = tracers + fields
        self.configuration = TracerConfiguration(groups, tracers, fields, argument_names, len(argument_names))
        self._index = {name: i for i, name in enumerate(argument_names)}

        self.functions: Dict[str, Callable] = {tracer: self._resolve(tracer) for tracer in tracers}

    @property
    def tracers(self):
        return self.configuration.tracers

    @property
    def arity(self):
        return self.configuration.arity

    def _argument_getter(self, tracer: str, argument: str, substitution: Optional[registry.Conversion]):
        params = self.parameters
        conversion = substitution or registry.Conversion(argument)

        if conversion.source in self._index:
            getter = itemgetter(self._index[conversion.source])
        elif conversion.source in self.descriptor.derived_arguments:
            derived = self.descriptor.derived_arguments[conversion.source]
            if derived.source not in self._index:
                raise ConfigurationError(
                    f"{self.descriptor.name}: forcing of {tracer} needs '{conversion.source}', "
                    f"derived from '{derived.source}' which is not active"
                )
            source_getter = itemgetter(self._index[derived.source])

            def getter(values, source_getter=source_getter, derived=derived):
                return registry.convert(derived, source_getter(values), params)
        else:
            raise ConfigurationError(
                f"{self.descriptor.name}: forcing of {tracer} reads '{conversion.source}', "
                f"which is neither an active tracer nor a required field"
            )

        if conversion.factor is None:
            return getter

        def converted(values, getter=getter, conversion=conversion):
            return registry.convert(conversion, getter(values), params)
        return converted

    def _resolve(self, tracer: str) -> Callable:
        function, substitutions = self.descriptor.canonical_forcing(tracer)
        getters = [self._argument_getter(tracer, argument, substitutions.get(argument))
                   for argument in registry.forcing_arguments(function)]
        params = self.parameters

        def forcing(x, y, z, t, *values):
            return function(x, y, z, t, *[get(values) for get in getters], params)

        forcing.__name__ = f'{tracer}_forcing'
        forcing.__qualname__ = f'{self.descriptor.name}.{tracer}_forcing'
        return forcing

    def resolve(self, tracer: str, n_args: int) -> Callable:
        """
        Forcing closure for a tracer called with `n_args` tracer and field values.

        Raises:
            ConfigurationError: if the tracer is not active or the argument count
                does not match this configuration
        """
        if tracer not in self.functions:
            raise ConfigurationError(
                f"{self.descriptor.name}: no forcing for tracer '{tracer}' in configuration "
                f"{sorted(self.configuration.groups)} (active: {', '.join(self.tracers)})"
            )
        if n_args != self.arity:
            raise ConfigurationError(
                f"{self.descriptor.name}: forcing of {tracer} called with {n_args} arguments, "
                f"this configuration takes {self.arity} ({', '.join(self.configuration.argument_names)})"
            )
        return self.functions[tracer]

    def __call__(self, tracer, x, y, z, t, *values):
        return self.resolve(tracer, len(values))(x, y, z, t, *values)

    def arguments(self, values: Mapping, fields: Mapping) -> list:
        missing = [name for name in self.configuration.argument_names
                   if name not in values and name not in fields]
        if missing:
            raise ConfigurationError(f"{self.descriptor.name}: no value given for {', '.join(missing)}")
        return [values[name] if name in values else fields[name]
                for name in self.configuration.argument_names]

    def check_domain(self, values: Mapping) -> np.ndarray:
        """Cells where any active tracer is negative or not finite."""
        stacked = np.array([np.asarray(values[name], dtype=np.float64) for name in self.tracers])
        return np.any(~np.isfinite(stacked) | (stacked < 0), axis=0)

    def evaluate(self, values: Mapping, fields: Mapping, x=0., y=0., z=0., t=0.) -> TendencyResult:
        """
        Evaluate every active tracer at once over scalars or arrays of grid points.

        Under the 'strict' policy, cells with inputs outside the physical domain
        are flagged and a NumericalDomainWarning is emitted; tracer values are
        never modified here.
        """
        args = self.arguments(values, fields)
        tendencies = {tracer: function(x, y, z, t, *args) for tracer, function in self.functions.items()}

        if self.domain_policy == 'strict':
            flagged = self.check_domain(values)
            if np.any(flagged):
                warnings.warn(
                    f"{self.descriptor.name}: {int(np.sum(flagged))} cell(s) with negative or "
                    f"non-finite tracer values", NumericalDomainWarning
                )
        else:
            shape = np.broadcast(*[np.asarray(values[name]) for name in self.tracers]).shape
            flagged = np.zeros(shape, dtype=bool)
        return TendencyResult(tendencies, flagged)
