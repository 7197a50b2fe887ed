from lobstermod.config_model import config
from lobstermod.core import model
from lobstermod.core import registry


def closed_box():
    sim = model.Model(config.ClosedBox, setup=config.ClosedBox_setup, name='ClosedBox', verbose=False)
    df = sim.df
    print(f"{sim.name}: P peaks at {df['LOBSTER_P'].max():.3f} mmol N m-3 "
          f"on day {df['time'][df['LOBSTER_P'].idxmax()]:.2f}")
    print(f"{sim.name}: N_tot drift {df['N_tot'].iloc[-1] - df['N_tot'].iloc[0]:.3e} mmol N m-3")
    return sim


def light_dark_box():
    sim = model.Model(config.ClosedBox, setup=config.LightDark_setup, name='LightDark', verbose=False)
    df = sim.df
    print(f"{sim.name}: P peaks at {df['LOBSTER_P'].max():.3f} mmol N m-3, "
          f"dark fraction {(df['LOBSTER_L_par'] == 0.).mean():.2f}")
    return sim


def coastal_box():
    sim = model.Model(config.Coastal, setup=config.Coastal_setup, name='Coastal', verbose=False)
    print(sim.df[['LOBSTER_NO3', 'LOBSTER_P', 'LOBSTER_OXY', 'LOBSTER_DIC']].describe())
    return sim


def particles_box():
    sim = model.Model(config.WithParticles, setup=config.Particles_setup, name='WithParticles', verbose=True)
    print(sim.df[['LOBSTER_NO3', 'Particles_N', 'N_tot']].iloc[[0, -1]])
    return sim


if __name__ == "__main__":
    print(registry.signature_table(registry.get_model('LOBSTER')))
    closed_box()
    light_dark_box()
    coastal_box()
    particles_box()
