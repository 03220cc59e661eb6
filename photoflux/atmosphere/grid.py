"""
Vertical and spectral grids and the profiles defined on them.

Grids and profiles are read-only inputs to the radiative transfer solver.
Every grid carries one set of edges per column so that columns with
different vertical structure can be solved in a single batch.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np

# Keys under which the solver looks up its grids
ALTITUDE_GRID = "altitude [m]"
WAVELENGTH_GRID = "wavelength [m]"


class GridConsistencyError(ValueError):
    """Raised when grids, profiles and the column batch disagree in size."""


def _as_column_array(values, label: str) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values[:, np.newaxis]
    if values.ndim != 2:
        raise ValueError(f"{label} must be 1-D or 2-D (edges, columns), got {values.ndim}-D")
    return values


@dataclass
class Grid:
    """
    Cell edges of one physical dimension, per column.

    Attributes
    ----------
    name : str
        Dimension name, e.g. 'altitude'
    units : str
        Units of the edges, e.g. 'm'
    edges : ndarray
        Cell edges, shape (n_sections + 1, n_columns). A 1-D array is
        treated as a single column.
    """

    name: str
    units: str
    edges: np.ndarray

    def __post_init__(self):
        self.edges = _as_column_array(self.edges, f"Grid '{self.name}' edges")
        if self.edges.shape[0] < 2:
            raise ValueError(f"Grid '{self.name}' needs at least two edges")

    @property
    def key(self) -> str:
        """Lookup key used in grid collections, e.g. 'altitude [m]'."""
        return f"{self.name} [{self.units}]"

    @property
    def number_of_columns(self) -> int:
        return self.edges.shape[1]

    @property
    def number_of_sections(self) -> int:
        return self.edges.shape[0] - 1

    @property
    def mid_points(self) -> np.ndarray:
        """Cell mid-points, shape (n_sections, n_columns)."""
        return 0.5 * (self.edges[:-1] + self.edges[1:])

    @property
    def deltas(self) -> np.ndarray:
        """Cell widths, shape (n_sections, n_columns)."""
        return np.diff(self.edges, axis=0)


@dataclass
class Profile:
    """
    A physical quantity defined on the edges of a grid.

    Attributes
    ----------
    name : str
        Quantity name, e.g. 'temperature'
    units : str
        Units of the values, e.g. 'K'
    edge_values : ndarray
        Values at grid edges, shape (n_sections + 1, n_columns)
    """

    name: str
    units: str
    edge_values: np.ndarray

    def __post_init__(self):
        self.edge_values = _as_column_array(self.edge_values, f"Profile '{self.name}' values")

    @property
    def key(self) -> str:
        return f"{self.name} [{self.units}]"

    @property
    def number_of_columns(self) -> int:
        return self.edge_values.shape[1]

    @property
    def mid_point_values(self) -> np.ndarray:
        """Values averaged onto cell mid-points."""
        return 0.5 * (self.edge_values[:-1] + self.edge_values[1:])


def check_grid_consistency(
    grids: Mapping[str, Grid],
    profiles: Optional[Mapping[str, Profile]],
    number_of_columns: int,
) -> None:
    """
    Check that grids and profiles match a column batch for one wavelength.

    Parameters
    ----------
    grids : mapping
        Grids keyed by ``ALTITUDE_GRID`` and ``WAVELENGTH_GRID``
    profiles : mapping or None
        Profiles passed through to the solver
    number_of_columns : int
        Size of the column batch

    Raises
    ------
    GridConsistencyError
        If a grid is missing or any cardinality disagrees
    """
    for key in (ALTITUDE_GRID, WAVELENGTH_GRID):
        if key not in grids:
            raise GridConsistencyError(f"Missing required grid '{key}'")

    vertical_grid = grids[ALTITUDE_GRID]
    wavelength_grid = grids[WAVELENGTH_GRID]

    if vertical_grid.number_of_columns != number_of_columns:
        raise GridConsistencyError(
            f"Altitude grid has {vertical_grid.number_of_columns} columns, "
            f"expected {number_of_columns}"
        )
    if wavelength_grid.number_of_columns != 1 or wavelength_grid.number_of_sections != 1:
        raise GridConsistencyError(
            "Wavelength grid must hold a single bin in a single column, got "
            f"{wavelength_grid.number_of_sections} bins in "
            f"{wavelength_grid.number_of_columns} columns"
        )

    for key, profile in (profiles or {}).items():
        if profile.number_of_columns != number_of_columns:
            raise GridConsistencyError(
                f"Profile '{key}' has {profile.number_of_columns} columns, "
                f"expected {number_of_columns}"
            )
