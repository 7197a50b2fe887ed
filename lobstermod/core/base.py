import numpy as np
from ..utils import functions as fns


class BaseStateVar:
    # Names of the numeric attributes refreshed by update_diagnostics
    diagnostic_attrs = ()

    def __init__(self, dtype=np.float64):
        self.dtype = dtype
        self.setup = None
        self.time_conversion_factor = 1
        self.diagnostics = None

    def get_all_diagnostics(self):
        """Get every declared diagnostic."""
        return list(self.diagnostic_attrs)

    def get_diagnostic_variables(self):
        return np.array([fns.get_nested_attr(self, diag) for diag in self.diagnostics], dtype=self.dtype)


class BaseBoundary:
    """
    Flux through a face of the box (surface or bed), coupled to a biogeochemical component.

    Subclasses fill `self.flux` (tracer name -> volumetric rate, mmol m-3 s-1)
    in `update_fluxes`; the coupled component adds them to its tendencies.
    """
    def __init__(self, name, dtype=np.float64):
        self.name = name
        self.dtype = dtype
        self.setup = None
        self.flux = {}
        self.coupled_bgc = None
        self.ICs = np.array([], dtype=dtype)

    def set_ICs(self):
        self.ICs = np.array([], dtype=self.dtype)

    def set_coupling(self, coupled_bgc=None):
        self.coupled_bgc = coupled_bgc
        if coupled_bgc is not None:
            coupled_bgc.register_boundary(self)
            self.check_coupling()

    def check_coupling(self):
        pass

    def update_fluxes(self, values, t=None, t_idx=None):
        raise NotImplementedError
