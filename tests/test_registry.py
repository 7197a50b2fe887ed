import pytest

from lobstermod.components import lobster
from lobstermod.core import registry
from lobstermod.core.errors import ConfigurationError


def decay(x, y, z, t, A, params):
    return -params.k * A


def transfer(x, y, z, t, A, B, params):
    return params.k * A - params.k * B


def toy_descriptor(**changes):
    description = dict(
        name='Toy',
        tracers=('A', 'B'),
        forcing_functions={'A': decay, 'B': transfer},
        defaults={'k': 1e-5, 'w': -1e-4},
    )
    description.update(changes)
    return registry.ModelDescriptor(**description)


def test_lobster_is_registered():
    assert 'LOBSTER' in registry.available_models()
    assert registry.get_model('LOBSTER') is lobster.descriptor


def test_unknown_model():
    with pytest.raises(ConfigurationError, match='NPZD'):
        registry.get_model('NPZD')


def test_signature_table():
    table = registry.signature_table(lobster.descriptor)
    assert len(table) == 8
    assert table[frozenset()] == 10
    assert table[frozenset({'oxygen'})] == 11
    assert table[frozenset({'variable_redfield'})] == 11
    assert table[frozenset({'carbonates'})] == 12
    assert table[frozenset({'carbonates', 'oxygen', 'variable_redfield'})] == 14


def test_resolve_configuration_unique_counts():
    assert registry.resolve_configuration(lobster.descriptor, 10) == frozenset()
    assert registry.resolve_configuration(lobster.descriptor, 14) == \
        frozenset({'carbonates', 'oxygen', 'variable_redfield'})


@pytest.mark.parametrize('n_args', [11, 12, 13])
def test_resolve_configuration_reports_ambiguity(n_args):
    with pytest.raises(ConfigurationError, match='ambiguous'):
        registry.resolve_configuration(lobster.descriptor, n_args)


def test_resolve_configuration_no_match():
    with pytest.raises(ConfigurationError, match='no configuration'):
        registry.resolve_configuration(lobster.descriptor, 9)


def test_active_tracers_order():
    tracers = lobster.descriptor.active_tracers(frozenset({'variable_redfield', 'carbonates'}))
    assert tracers == ('NO3', 'NH4', 'P', 'Z', 'D', 'DD', 'Dc', 'DDc', 'DOM', 'DIC', 'ALK', 'DOC')


def test_unknown_group():
    with pytest.raises(ConfigurationError, match='nitrogen_fixation'):
        lobster.descriptor.active_tracers(frozenset({'nitrogen_fixation'}))


def test_forcing_arguments_from_signature():
    assert registry.forcing_arguments(lobster.NO3_forcing) == ('NO3', 'NH4', 'P', 'PAR')


def test_forcing_signature_checked():
    def bad(A, params):
        return A

    with pytest.raises(ConfigurationError, match='signature'):
        registry.forcing_arguments(bad)


def test_register_and_replace():
    descriptor = registry.register_model(toy_descriptor(), replace=True)
    assert registry.get_model('Toy') is descriptor
    with pytest.raises(ConfigurationError, match='already registered'):
        registry.register_model(toy_descriptor())


def test_missing_forcing_function():
    with pytest.raises(ConfigurationError, match='B'):
        registry.validate_descriptor(toy_descriptor(forcing_functions={'A': decay}))


def test_tracer_with_two_forcing_routes():
    descriptor = toy_descriptor(forcing_variants={'B': registry.ForcingVariant('A', {})})
    with pytest.raises(ConfigurationError, match='exactly one'):
        registry.validate_descriptor(descriptor)


def test_unregistered_argument():
    def reads_C(x, y, z, t, C, params):
        return C

    descriptor = toy_descriptor(forcing_functions={'A': decay, 'B': reads_C})
    with pytest.raises(ConfigurationError, match="'C'"):
        registry.validate_descriptor(descriptor)


def test_sinking_entries_checked():
    with pytest.raises(ConfigurationError, match='unknown tracer'):
        registry.validate_descriptor(toy_descriptor(sinking={'C': 'w'}))
    with pytest.raises(ConfigurationError, match='unknown parameter'):
        registry.validate_descriptor(toy_descriptor(sinking={'A': 'w_missing'}))


def test_redfield_round_trip():
    params = lobster.LOBSTER().parameters
    for value in [0., 1e-12, 0.2, 3.7, 1e4]:
        carbon = registry.to_carbon(value, params.Rd_phy)
        assert registry.to_nitrogen(carbon, params.Rd_phy) == pytest.approx(value, rel=1e-15, abs=0.)
    conversion = registry.Conversion('P', 'Rd_phy')
    inverse = registry.Conversion('P', 'Rd_phy', inverse=True)
    assert registry.convert(inverse, registry.convert(conversion, 0.2, params), params) == pytest.approx(0.2)
    assert registry.convert(registry.Conversion('P'), 0.2, params) == 0.2
