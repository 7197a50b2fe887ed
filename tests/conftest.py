import numpy as np
import pytest

from lobstermod.components import lobster

N_TRACERS = ['NO3', 'NH4', 'P', 'Z', 'D', 'DD', 'DOM']


@pytest.fixture
def params():
    return lobster.LOBSTER().parameters


@pytest.fixture
def state():
    return {'NO3': 10., 'NH4': 0.1, 'P': 0.2, 'Z': 0.1, 'D': 0.05, 'DD': 0.02,
            'Dc': 0.3, 'DDc': 0.1, 'DOM': 0.04, 'DIC': 2100., 'ALK': 2350., 'OXY': 240., 'DOC': 0.5}


@pytest.fixture
def random_state():
    """Non-negative tracer values over 200 cells, including exact zeros."""
    rng = np.random.default_rng(42)
    n = 200
    values = {name: rng.uniform(0., 10., n) for name in
              ['NO3', 'NH4', 'P', 'Z', 'D', 'DD', 'Dc', 'DDc', 'DOM', 'DIC', 'ALK', 'OXY', 'DOC']}
    for name in ['NO3', 'NH4', 'P', 'Z', 'D']:
        values[name][rng.integers(0, n, 20)] = 0.
    fields = {'PAR': rng.uniform(0., 300., n)}
    return values, fields
