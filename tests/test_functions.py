import numpy as np
import pytest
from deepdiff import DeepDiff

from lobstermod.utils import functions as fns

GROUP = ['NO3', 'NH4', 'P']


def test_scale_negative_tracers_conserves_group_total():
    values = {'NO3': np.array([1., -0.5, 2.]), 'NH4': np.array([0.5, 1., -1.]),
              'P': np.array([0.5, 1.5, 2.]), 'Dc': np.array([-1., -1., -1.])}
    corrected = fns.scale_negative_tracers(values, GROUP)

    before = sum(values[name] for name in GROUP)
    after = sum(corrected[name] for name in GROUP)
    np.testing.assert_allclose(after, before, rtol=1e-14)
    for name in GROUP:
        assert np.all(corrected[name] >= 0)
    # untouched cell and tracer outside the group
    assert [corrected[name][0] for name in GROUP] == [1., 0.5, 0.5]
    np.testing.assert_array_equal(corrected['Dc'], values['Dc'])
    # input not modified
    assert values['NO3'][1] == -0.5


def test_scale_negative_tracers_scalars():
    corrected = fns.scale_negative_tracers({'NO3': -1., 'NH4': 1., 'P': 3.}, GROUP)
    assert corrected['NO3'] == 0.
    assert corrected['NH4'] == pytest.approx(0.75)
    assert corrected['P'] == pytest.approx(2.25)


def test_scale_negative_tracers_negative_total():
    values = {'NO3': np.array([-3.]), 'NH4': np.array([1.]), 'P': np.array([1.])}
    with pytest.warns(UserWarning, match='negative total'):
        corrected = fns.scale_negative_tracers(values, GROUP)
    np.testing.assert_array_equal(corrected['NO3'], [-3.])


def test_scale_negative_tracers_unknown_name():
    with pytest.raises(ValueError, match='DOM'):
        fns.scale_negative_tracers({'NO3': 1.}, ['NO3', 'DOM'])


def test_deep_update_does_not_modify_base():
    base = {'LOBSTER': {'parameters': {'carbonates': False, 'mu_p': 1.}}, 'formulation': 'a'}
    updated = fns.deep_update(base, {'LOBSTER': {'parameters': {'carbonates': True}}}, {'formulation': 'b'})
    assert updated == {'LOBSTER': {'parameters': {'carbonates': True, 'mu_p': 1.}}, 'formulation': 'b'}
    assert base['LOBSTER']['parameters']['carbonates'] is False


def test_deep_update_overwrite_keys():
    base = {'LOBSTER': {'initialization': {'NO3': 1., 'NH4': 2.}}}
    updated = fns.deep_update(base, {'LOBSTER': {'initialization': {'NO3': 3.}}}, overwrite_keys=['initialization'])
    assert updated['LOBSTER']['initialization'] == {'NO3': 3.}


def test_compare_configs():
    from lobstermod.config_model import base_config

    same = fns.compare_dicts(base_config.LOBSTER, fns.deep_update(base_config.LOBSTER))
    assert same.startswith('No differences')
    diff = fns.compare_dicts(base_config.LOBSTER, base_config.LOBSTER_oxygen)
    assert "root['LOBSTER']['parameters']['oxygen']: False -> True" in diff
    assert isinstance(fns.compare_dicts(base_config.LOBSTER, base_config.LOBSTER_oxygen, format_output=False),
                      DeepDiff)


def test_get_all_contributors():
    class Flux:
        def __init__(self, **flux):
            self.flux = flux

    assert fns.get_all_contributors([Flux(NH4=1.), Flux(NH4=2., D=-1.)], 'flux', 'NH4') == 3.
    assert fns.get_all_contributors(Flux(D=-1.), 'flux', 'NH4') == 0.
    assert fns.get_all_contributors([], 'flux', 'NH4') == 0
