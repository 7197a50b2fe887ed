import numpy as np
import pytest

from lobstermod.components import lobster
from lobstermod.core.parameters import Parameters

from conftest import N_TRACERS

FRACTIONS = ['p_tilde', 'a_z', 'gamma', 'alpha_p', 'alpha_z', 'alpha_d', 'alpha_dd', 'f_z', 'f_d']


def nitrogen_total(tendencies):
    return sum(tendencies[name] for name in N_TRACERS)


def nitrogen_scale(tendencies):
    return sum(np.abs(tendencies[name]) for name in N_TRACERS)


def test_nitrogen_conserved_with_default_parameters(random_state):
    values, fields = random_state
    model = lobster.LOBSTER()
    tendencies = model.evaluate_tendencies(values, fields).tendencies
    np.testing.assert_allclose(nitrogen_total(tendencies), 0., atol=1e-15)
    assert np.all(nitrogen_scale(tendencies) > 0)


@pytest.mark.parametrize('seed', range(5))
def test_nitrogen_conserved_with_random_parameters(random_state, seed):
    values, fields = random_state
    rng = np.random.default_rng(seed)
    overrides = {name: rng.uniform(0., 1.) for name in FRACTIONS}
    overrides.update(mu_p=rng.uniform(1e-6, 3e-5), g_z=rng.uniform(1e-6, 3e-5),
                     mu_dom=rng.uniform(1e-7, 1e-6), mu_n=rng.uniform(1e-7, 1e-6))
    model = lobster.LOBSTER(**overrides)
    tendencies = model.evaluate_tendencies(values, fields).tendencies
    np.testing.assert_allclose(nitrogen_total(tendencies), 0., atol=1e-14)


@pytest.mark.parametrize('groups', [{}, {'carbonates': True}, {'oxygen': True},
                                    {'carbonates': True, 'oxygen': True, 'variable_redfield': True}])
def test_nitrogen_conserved_in_every_configuration(random_state, groups):
    values, fields = random_state
    tendencies = lobster.LOBSTER(**groups).evaluate_tendencies(values, fields).tendencies
    np.testing.assert_allclose(nitrogen_total(tendencies), 0., atol=1e-15)


def test_zero_state_has_zero_tendencies():
    model = lobster.LOBSTER(carbonates=True, oxygen=True, variable_redfield=True)
    values = {tracer: 0. for tracer in model.tracers}
    tendencies = model.evaluate_tendencies(values, {'PAR': 100.}).tendencies
    for tracer, tendency in tendencies.items():
        assert tendency == 0., tracer


def test_no_production_in_the_dark(state, params):
    assert lobster.total_uptake(state['NO3'], state['NH4'], state['P'], 0., params) == 0.
    dark = lobster.P_forcing(0., 0., 0., 0., state['NO3'], state['NH4'], state['P'], state['Z'], state['D'],
                             0., params)
    assert dark < 0.


def test_nitrification_moves_ammonium_to_nitrate(params):
    # no phytoplankton, grazers, detritus or DOM: only nitrification acts
    args = dict(NO3=1., NH4=0.5, P=0., Z=0., D=0., DD=0., DOM=0., PAR=100.)
    NO3 = lobster.NO3_forcing(0., 0., 0., 0., args['NO3'], args['NH4'], args['P'], args['PAR'], params)
    NH4 = lobster.NH4_forcing(0., 0., 0., 0., *args.values(), params)
    assert NO3 == pytest.approx(params.mu_n * 0.5)
    assert NH4 == pytest.approx(-NO3)


def test_detritus_carbon_follows_nitrogen_at_redfield(state, params):
    P, Z, D = state['P'], state['Z'], state['D']
    Dc = D * params.Rd_phy
    dD = lobster.D_forcing(0., 0., 0., 0., P, Z, D, params)
    dDc = lobster.Dc_forcing(0., 0., 0., 0., P, Z, D, Dc, params)
    assert dDc == pytest.approx(dD * params.Rd_phy, rel=1e-12)


def test_oxygen_production_share_parameter(state):
    published = lobster.LOBSTER(oxygen=True)
    total = lobster.LOBSTER(oxygen=True, oxy_nh4_production=1.)
    fields = {'PAR': 100.}
    difference = (total.evaluate_tendencies(state, fields).tendencies['OXY']
                  - published.evaluate_tendencies(state, fields).tendencies['OXY'])
    params = total.parameters
    expected = params.Rd_oxy * lobster.ammonium_uptake(state['NO3'], state['NH4'], state['P'], 100., params)
    assert difference == pytest.approx(expected, rel=1e-10)


def test_oxygen_forcing_flag_is_reported(capsys):
    lobster.LOBSTER(oxygen=True, verbose=True)
    assert 'oxy_nh4_production' in capsys.readouterr().out
    lobster.LOBSTER(verbose=True)
    assert 'oxy_nh4_production' not in capsys.readouterr().out


def test_alkalinity_from_nitrate_uptake_without_calcification(state):
    model = lobster.LOBSTER(carbonates=True, rho_caco3=0.)
    params = model.parameters
    ALK = model.evaluate_tendencies(state, {'PAR': 50.}).tendencies['ALK']
    assert ALK == pytest.approx(lobster.nitrate_uptake(state['NO3'], state['NH4'], state['P'], 50., params))


def test_forcing_functions_take_plain_parameter_records(state):
    params = Parameters(lobster.defaults)
    value = lobster.Z_forcing(0., 0., 0., 0., state['P'], state['Z'], state['D'], params)
    assert np.isfinite(value)
