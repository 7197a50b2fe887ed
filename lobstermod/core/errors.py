class ConfigurationError(ValueError):
    """Invalid model set-up, raised once while the model is being built."""


class NumericalDomainWarning(RuntimeWarning):
    """Tracer inputs outside the physical domain (negative or non-finite)."""


class ParticleStateError(RuntimeError):
    """Particle coupling hook called out of order within a timestep."""
