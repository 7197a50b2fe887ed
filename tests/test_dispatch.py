import warnings

import numpy as np
import pytest

from lobstermod.components import lobster
from lobstermod.core import registry
from lobstermod.core.dispatch import ForcingDispatcher
from lobstermod.core.errors import ConfigurationError, NumericalDomainWarning
from lobstermod.core.parameters import Parameters

CONFIGURATIONS = [dict(zip(['carbonates', 'oxygen', 'variable_redfield'], flags))
                  for flags in np.ndindex(2, 2, 2)]


def positional(model, state, PAR=100.):
    return [state[name] for name in model.tracers] + [PAR]


@pytest.mark.parametrize('groups', CONFIGURATIONS)
def test_every_configuration_dispatches_every_tracer(groups, state):
    model = lobster.LOBSTER(**{k: bool(v) for k, v in groups.items()})
    args = positional(model, state)
    assert len(args) == model.dispatcher.arity
    for tracer in model.tracers:
        value = model(tracer, 0., 0., 0., 0., *args)
        assert np.isfinite(value)
        assert model.forcing(tracer)(0., 0., 0., 0., *args) == value


def test_same_arity_configurations_are_told_apart(state):
    oxygen = lobster.LOBSTER(oxygen=True)
    redfield = lobster.LOBSTER(variable_redfield=True)
    assert oxygen.dispatcher.arity == redfield.dispatcher.arity == 11

    assert oxygen.tracers[-1] == 'OXY'
    assert redfield.tracers[-1] == 'DOC'
    assert np.isfinite(oxygen('OXY', 0., 0., 0., 0., *positional(oxygen, state)))
    with pytest.raises(ConfigurationError, match='OXY'):
        redfield('OXY', 0., 0., 0., 0., *positional(redfield, state))


def test_wrong_argument_count(state):
    model = lobster.LOBSTER()
    args = positional(model, state)
    with pytest.raises(ConfigurationError, match='11 arguments'):
        model('NO3', 0., 0., 0., 0., *args, 1.)
    with pytest.raises(ConfigurationError):
        model.dispatcher.resolve('NO3', 9)


def test_positional_and_mapping_evaluation_agree(state):
    model = lobster.LOBSTER(carbonates=True, oxygen=True)
    tendencies = model.evaluate_tendencies(state, {'PAR': 100.}).tendencies
    args = positional(model, state)
    for tracer in model.tracers:
        assert tendencies[tracer] == model(tracer, 0., 0., 0., 0., *args)


def test_missing_value():
    model = lobster.LOBSTER()
    with pytest.raises(ConfigurationError, match='PAR'):
        model.evaluate_tendencies({tracer: 1. for tracer in model.tracers}, {})


def test_doc_tracer_uses_dom_kinetics_in_carbon(state):
    model = lobster.LOBSTER(variable_redfield=True)
    params = model.parameters
    Rd = params.Rd_phy
    expected = lobster.DOM_forcing(0., 0., 0., 0., state['NO3'], state['NH4'], state['P'] * Rd, state['Z'] * Rd,
                                   state['Dc'], state['DDc'], state['DOC'], 100., params)
    assert model('DOC', 0., 0., 0., 0., *positional(model, state)) == pytest.approx(expected, rel=1e-14)


def test_dic_derives_doc_from_dom_when_not_tracked(state):
    model = lobster.LOBSTER(carbonates=True)
    params = model.parameters
    expected = lobster.DIC_forcing(0., 0., 0., 0., state['NO3'], state['NH4'], state['P'], state['Z'],
                                   state['Dc'], state['DDc'], state['DOM'] * params.Rd_dom, 100., params)
    assert model('DIC', 0., 0., 0., 0., *positional(model, state)) == pytest.approx(expected, rel=1e-14)


def test_dic_reads_tracked_doc(state):
    model = lobster.LOBSTER(carbonates=True, variable_redfield=True)
    params = model.parameters
    expected = lobster.DIC_forcing(0., 0., 0., 0., state['NO3'], state['NH4'], state['P'], state['Z'],
                                   state['Dc'], state['DDc'], state['DOC'], 100., params)
    assert model('DIC', 0., 0., 0., 0., *positional(model, state)) == pytest.approx(expected, rel=1e-14)


def test_inverse_conversion_in_a_variant():
    def decay(x, y, z, t, A, params):
        return -params.k * A

    # B is a carbon pool following the nitrogen kinetics of A
    descriptor = registry.ModelDescriptor(
        name='ToyVariant',
        tracers=('A', 'B'),
        forcing_functions={'A': decay},
        forcing_variants={'B': registry.ForcingVariant('A', {'A': registry.Conversion('B', 'r', inverse=True)})},
        defaults={'k': 2e-5, 'r': 4.},
    )
    registry.validate_descriptor(descriptor)
    dispatcher = ForcingDispatcher(descriptor, [], Parameters(descriptor.defaults))
    assert dispatcher.arity == 2
    assert dispatcher('B', 0., 0., 0., 0., 1., 8.) == pytest.approx(-2e-5 * 2.)


def test_strict_policy_flags_cells():
    model = lobster.LOBSTER(domain_policy='strict')
    values = {tracer: np.full(3, 0.5) for tracer in model.tracers}
    values['NO3'][1] = -1.
    values['P'][2] = np.nan
    before = {tracer: array.copy() for tracer, array in values.items()}

    with pytest.warns(NumericalDomainWarning, match='2 cell'):
        result = model.evaluate_tendencies(values, {'PAR': np.full(3, 100.)})

    np.testing.assert_array_equal(result.flagged, [False, True, True])
    for tracer in model.tracers:
        np.testing.assert_array_equal(values[tracer], before[tracer])


def test_strict_policy_quiet_on_valid_state(state):
    model = lobster.LOBSTER(domain_policy='strict')
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        result = model.evaluate_tendencies(state, {'PAR': 100.})
    assert not result.flagged


def test_clamp_policy_never_flags(state):
    model = lobster.LOBSTER()
    negative = dict(state, NO3=-1., NH4=-0.2)
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        result = model.evaluate_tendencies(negative, {'PAR': 100.})
    assert not result.flagged
    # clamped limitation: no nitrate uptake from a negative pool
    params = model.parameters
    assert result.tendencies['NO3'] == pytest.approx(params.mu_n * -0.2)


def test_clamp_policy_keeps_grazing_finite(state):
    model = lobster.LOBSTER()
    # p_tilde P + (1 - p_tilde) D cancels exactly without the clamp
    negative = dict(state, P=0.5, D=-0.5)
    tendencies = model.evaluate_tendencies(negative, {'PAR': 100.}).tendencies
    for tracer, tendency in tendencies.items():
        assert np.isfinite(tendency), tracer

    params = model.parameters
    assert lobster.grazing_preference(0.5, -0.5, params) == 1.
    assert lobster.detritus_grazing(0.5, 0.1, -0.5, params) == 0.
    assert lobster.phytoplankton_grazing(0.5, -0.1, 0.2, params) == 0.
    assert lobster.phytoplankton_grazing(-0.5, 0.1, 0.2, params) == 0.


def test_unknown_domain_policy():
    with pytest.raises(ConfigurationError, match='policy'):
        lobster.LOBSTER(domain_policy='ignore')


def test_auxiliary_fields_checked_at_build_time():
    with pytest.raises(ConfigurationError, match='PAR'):
        lobster.LOBSTER(auxiliary_fields=['T', 'S'])
    assert lobster.LOBSTER(auxiliary_fields=['PAR', 'T']).required_fields == ('PAR',)


def test_sinking_velocities():
    model = lobster.LOBSTER(w_d=-1e-5)
    assert model.sinking_velocity('D') == -1e-5
    assert model.sinking_velocity('DDc') == model.parameters.w_dd
    assert model.sinking_velocity('NO3') is None
    with pytest.raises(ConfigurationError, match='DIC'):
        model.sinking_velocity('DIC')
