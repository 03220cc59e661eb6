"""
Grids and profiles describing the atmospheric column batch.

Classes
-------
Grid
    Cell edges of one dimension (altitude, wavelength) per column
Profile
    Quantity defined on grid edges (temperature, air density, ...)
GridConsistencyError
    Raised when grids, profiles and the column batch disagree
"""

from photoflux.atmosphere.grid import (
    ALTITUDE_GRID,
    WAVELENGTH_GRID,
    Grid,
    GridConsistencyError,
    Profile,
    check_grid_consistency,
)

__all__ = [
    "ALTITUDE_GRID",
    "WAVELENGTH_GRID",
    "Grid",
    "GridConsistencyError",
    "Profile",
    "check_grid_consistency",
]
