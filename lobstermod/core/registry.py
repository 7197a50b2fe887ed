"""
Registry of biogeochemical model variants.

A ModelDescriptor declares everything an external engine needs to know about a
model at build time: its tracers, optional tracer groups, the forcing function
of each tracer, sinking velocities, required auxiliary fields and default
parameters. Descriptors are validated when registered, so a model that would
fail to dispatch is rejected before any model instance exists.
"""
import inspect
import itertools
from collections import namedtuple
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Tuple

from .errors import ConfigurationError

# Positional arguments shared by every forcing function before the tracer arguments
POSITION_ARGUMENTS = ('x', 'y', 'z', 't')
PARAMETERS_ARGUMENT = 'params'

# A pool expressed in another currency: value = source * parameter (or source / parameter if inverse)
Conversion = namedtuple('Conversion', ['source', 'factor', 'inverse'], defaults=(None, False))

# A tracer whose forcing re-uses another tracer's canonical function with substituted arguments
ForcingVariant = namedtuple('ForcingVariant', ['canonical', 'substitutions'])


def to_carbon(value, ratio):
    """Nitrogen-based pool to carbon units (ratio in mol C mol N-1)."""
    return value * ratio


def to_nitrogen(value, ratio):
    """Carbon-based pool to nitrogen-equivalent units (ratio in mol C mol N-1)."""
    return value / ratio


def convert(conversion: Conversion, value, params):
    if conversion.factor is None:
        return value
    ratio = params[conversion.factor]
    return to_nitrogen(value, ratio) if conversion.inverse else to_carbon(value, ratio)


def forcing_arguments(function: Callable) -> Tuple[str, ...]:
    """Names of the tracer and field arguments a canonical forcing function reads."""
    names = list(inspect.signature(function).parameters)
    if tuple(names[:4]) != POSITION_ARGUMENTS or names[-1] != PARAMETERS_ARGUMENT:
        raise ConfigurationError(
            f"Forcing function {function.__name__} must have signature "
            f"(x, y, z, t, <tracers/fields>..., params), got ({', '.join(names)})"
        )
    return tuple(names[4:-1])


@dataclass(frozen=True)
class ModelDescriptor:
    name: str
    tracers: Tuple[str, ...]
    forcing_functions: Dict[str, Callable]
    defaults: Dict[str, Any]
    optional_tracers: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    forcing_variants: Dict[str, ForcingVariant] = field(default_factory=dict)
    derived_arguments: Dict[str, Conversion] = field(default_factory=dict)
    sinking: Dict[str, str] = field(default_factory=dict)
    required_fields: Tuple[str, ...] = ()
    elements: Dict[str, str] = field(default_factory=dict)
    flagged: Dict[str, str] = field(default_factory=dict)

    @property
    def all_tracers(self) -> Tuple[str, ...]:
        return self.tracers + tuple(itertools.chain.from_iterable(self.optional_tracers.values()))

    def active_tracers(self, groups: FrozenSet[str]) -> Tuple[str, ...]:
        """Core tracers followed by the tracers of each enabled group, in declaration order."""
        unknown = set(groups) - set(self.optional_tracers)
        if unknown:
            raise ConfigurationError(
                f"Unknown optional tracer group(s) for {self.name}: {', '.join(sorted(unknown))} "
                f"(available: {', '.join(self.optional_tracers) or 'none'})"
            )
        active = list(self.tracers)
        for group, members in self.optional_tracers.items():
            if group in groups:
                active.extend(members)
        return tuple(active)

    def canonical_forcing(self, tracer: str) -> Tuple[Callable, Dict[str, Conversion]]:
        """Canonical function and argument substitutions used to evaluate a tracer."""
        if tracer in self.forcing_variants:
            variant = self.forcing_variants[tracer]
            return self.forcing_functions[variant.canonical], dict(variant.substitutions)
        return self.forcing_functions[tracer], {}

    def configurations(self) -> List[FrozenSet[str]]:
        """Every combination of optional groups, smallest first."""
        groups = list(self.optional_tracers)
        return [frozenset(combo)
                for n in range(len(groups) + 1)
                for combo in itertools.combinations(groups, n)]


_REGISTRY: Dict[str, ModelDescriptor] = {}


def validate_descriptor(descriptor: ModelDescriptor) -> None:
    """
    Check that every tracer of every configuration can be dispatched.

    Raises:
        ConfigurationError: naming the offending tracer, argument or sinking entry
    """
    all_tracers = descriptor.all_tracers
    duplicated = sorted({t for t in all_tracers if all_tracers.count(t) > 1})
    if duplicated:
        raise ConfigurationError(f"{descriptor.name}: tracers listed more than once: {duplicated}")

    for tracer in all_tracers:
        routes = (tracer in descriptor.forcing_functions) + (tracer in descriptor.forcing_variants)
        if routes != 1:
            raise ConfigurationError(
                f"{descriptor.name}: tracer {tracer} must have exactly one forcing function, found {routes}"
            )

    known = set(all_tracers) | set(descriptor.required_fields)
    for tracer in all_tracers:
        if tracer in descriptor.forcing_variants:
            canonical = descriptor.forcing_variants[tracer].canonical
            if canonical not in descriptor.forcing_functions:
                raise ConfigurationError(
                    f"{descriptor.name}: forcing of {tracer} re-uses {canonical}, which has no canonical function"
                )
        function, substitutions = descriptor.canonical_forcing(tracer)
        for argument in forcing_arguments(function):
            source = substitutions[argument].source if argument in substitutions else argument
            derivable = source in descriptor.derived_arguments and \
                descriptor.derived_arguments[source].source in known
            if source not in known and not derivable:
                raise ConfigurationError(
                    f"{descriptor.name}: forcing of {tracer} reads unregistered tracer or field '{source}'"
                )

    for tracer, parameter in descriptor.sinking.items():
        if tracer not in all_tracers:
            raise ConfigurationError(f"{descriptor.name}: sinking velocity given for unknown tracer {tracer}")
        if parameter not in descriptor.defaults:
            raise ConfigurationError(
                f"{descriptor.name}: sinking velocity of {tracer} refers to unknown parameter {parameter}"
            )


def register_model(descriptor: ModelDescriptor, replace: bool = False) -> ModelDescriptor:
    if descriptor.name in _REGISTRY and not replace:
        raise ConfigurationError(f"A model named {descriptor.name} is already registered")
    validate_descriptor(descriptor)
    _REGISTRY[descriptor.name] = descriptor
    return descriptor


def get_model(name: str) -> ModelDescriptor:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise ConfigurationError(
            f"No model named {name} (registered: {', '.join(available_models()) or 'none'})"
        ) from None


def available_models() -> List[str]:
    return sorted(_REGISTRY)


def signature_table(descriptor: ModelDescriptor) -> Dict[FrozenSet[str], int]:
    """Number of positional tracer and field arguments for each optional-group configuration."""
    return {groups: len(descriptor.active_tracers(groups)) + len(descriptor.required_fields)
            for groups in descriptor.configurations()}


def resolve_configuration(descriptor: ModelDescriptor, n_args: int) -> FrozenSet[str]:
    """
    Recover the optional-group configuration from an argument count alone.

    This only works while every configuration has a distinct argument count;
    model instances carry their configuration explicitly and never need it.
    """
    matches = [groups for groups, arity in signature_table(descriptor).items() if arity == n_args]
    if not matches:
        raise ConfigurationError(f"{descriptor.name}: no configuration takes {n_args} arguments")
    if len(matches) > 1:
        described = ' / '.join('{' + ', '.join(sorted(m)) + '}' for m in matches)
        raise ConfigurationError(
            f"{descriptor.name}: {n_args} arguments are ambiguous between configurations {described}"
        )
    return matches[0]
