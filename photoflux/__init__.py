"""
photoflux: Two-stream solar radiation field for photolysis calculations.

Computes spectral irradiance and actinic flux in batches of plane-parallel
atmospheric columns with the delta-Eddington two-stream approximation.

Modules
-------
atmosphere
    Altitude and wavelength grids, and profiles defined on them
radiative_transfer
    Closures, source terms, flux system assembly and solution
config
    Solver configuration (dict, JSON and YAML)
"""

__version__ = "0.1.0"
__author__ = "photoflux Contributors"

from photoflux.atmosphere import Grid, Profile
from photoflux.radiative_transfer import RadiationField, RadiatorState, TwoStreamSolver, solve

__all__ = [
    "__version__",
    "Grid",
    "Profile",
    "RadiationField",
    "RadiatorState",
    "TwoStreamSolver",
    "solve",
]
