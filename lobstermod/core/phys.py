"""
Physical setup configuration for box model simulations.
Defines the physical and computational environment for model runs.
"""
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Optional

from lobstermod.config_model import varinfos

PAR_PROFILES = ('constant', 'lightdark', 'seasonal')


@dataclass
class PhysicalConstants:
    """Physical constants used in the model"""
    degCtoK: float = varinfos.degCtoK          # Conversion from Celsius to Kelvin
    day_to_seconds: float = varinfos.day       # Seconds in a day
    rho_seawater: float = varinfos.rho_seawater  # Reference seawater density [kg m-3]


class Setup:
    """
    Physical and computational setup for box model simulations.

    Attributes are organized into categories:
    - Time settings: control simulation timespan and steps (days)
    - Physical parameters: define environmental conditions of the box
    - Light settings: control the PAR forcing (W m-2)
    """

    PHYSICAL_ATTRIBUTES = {
        'time_settings': [
            'tmin',  # Start time in days
            'tmax',  # End time in days
            'dt',  # Timestep in days
        ],
        'physical_params': [
            'T',  # Temperature in °C
            'S',  # Salinity in PSU
            'water_depth',  # Depth of the box in m
            'surface_area',  # Horizontal area of the box in m2
            'wind_speed',  # Wind speed at 10 m in m s-1
        ],
        'light_settings': [
            'PAR_profile',  # 'constant', 'lightdark' or 'seasonal'
            'I',  # PAR during light periods in W m-2
            'light_prop',  # Proportion of time with light ('lightdark')
            'lightfirst',  # Whether light period is at start of day ('lightdark')
        ],
    }

    def __init__(self,
                 name: str = '',
                 tmin: float = 0,
                 tmax: float = 20,
                 dt: float = 0.01,
                 start_date: str = '2023-02-01 00:00:00',
                 PAR_profile: str = 'constant',
                 I: float = 100.,
                 light_prop: float = 0.5,
                 lightfirst: bool = True,
                 T: float = 15.,
                 S: float = 35.,
                 water_depth: float = 10.,
                 surface_area: float = 1.,
                 wind_speed: float = 7.,
                 verbose: bool = False):
        """Initialize physical setup for simulation."""
        if dt <= 0 or tmax <= tmin:
            raise ValueError(f"Invalid time settings: tmin={tmin}, tmax={tmax}, dt={dt}")
        if PAR_profile not in PAR_PROFILES:
            raise ValueError(f"Unknown PAR profile '{PAR_profile}' (use one of {PAR_PROFILES})")

        self.constants = PhysicalConstants()
        self.name = name
        self.verbose = verbose

        # Time settings
        self.tmin = tmin
        self.tmax = tmax
        self.dt = dt
        self.used_dt = dt
        self.start_date = pd.to_datetime(start_date)
        self.t_span = [tmin, tmax]
        self.t_eval = np.arange(tmin, tmax + dt / 2, dt)
        self.dates = self.start_date + pd.to_timedelta(self.t_eval - tmin, unit='D')

        # Physical parameters
        self.T = T
        self.S = S
        self.water_depth = water_depth
        self.surface_area = surface_area
        self.box_volume = water_depth * surface_area
        self.wind_speed = wind_speed

        # Light settings
        self.PAR_profile = PAR_profile
        self.I = I
        self.light_prop = light_prop
        self.lightfirst = lightfirst
        self.PAR = self._initialize_PAR()
        self.PAR_array = self.PAR['PAR'].to_numpy()

        if self.verbose:
            print(f'Setup {name}: {len(self.t_eval)} time steps of {dt} d, PAR profile {PAR_profile}')

    def _initialize_PAR(self) -> pd.DataFrame:
        """Initialize Photosynthetically Active Radiation time series."""
        if self.PAR_profile == 'constant':
            values = np.full(len(self.t_eval), self.I, dtype=np.float64)
        elif self.PAR_profile == 'lightdark':
            values = self.I * self._light_periods()
        else:
            values = self.seasonal_surface_PAR(self.t_eval * self.constants.day_to_seconds)
        return pd.DataFrame(values, index=self.dates, columns=['PAR'])

    def _light_periods(self) -> np.ndarray:
        """1 during the daily light period, 0 otherwise."""
        phase = np.mod(self.t_eval - self.tmin, 1.)
        if self.lightfirst:
            return (phase < self.light_prop).astype(np.float64)
        return (phase >= 1. - self.light_prop).astype(np.float64)

    @staticmethod
    def seasonal_surface_PAR(t):
        """
        Idealised surface PAR [W m-2] with a diel cycle and a seasonal envelope.

        Args:
            t: Time since 1 January [s]
        """
        day = varinfos.day
        diel = np.maximum(0., np.sin(t * np.pi / (12. * 3600.)))
        seasonal = (100. * (1. - np.cos((t + 15. * day) * 2. * np.pi / (365. * day)))
                    * (1. / (1. + 0.2 * np.exp(-((t - 200. * day) / (50. * day)) ** 2))) + 2.)
        return diel * seasonal * 20.

    def get_PAR(self, t: Optional[float] = None, t_idx: Optional[int] = None) -> float:
        """PAR at a time index (Euler) or interpolated at a time in days (ODE solver)."""
        if t_idx is not None:
            return self.PAR_array[t_idx]
        if t is None:
            return self.PAR_array[0]
        return np.interp(t, self.t_eval, self.PAR_array)
