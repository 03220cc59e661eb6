"""
Assembly of the tridiagonal flux system of a layered column batch.

With N layers (top-down, n = 0..N-1) the unknowns are the pair of
eigen-solution amplitudes of each layer, Y[2n] and Y[2n + 1]. Row by row:

    row 0           no diffuse flux enters at the top of the atmosphere
    rows 2n + 1     upward flux continuity at the interface below layer n
    rows 2n + 2     downward flux continuity at the interface below layer n
    row 2N - 1      surface reflects R times the flux reaching it

Every column owns a private system; the column index is the last axis of
every array.

References
----------
Toon, O.B., et al., 1989: Rapid calculation of radiative heating rates and
photodissociation rates in inhomogeneous multiple scattering atmospheres.
J. Geophys. Res., 94, 16287-16301. (equations 39-43)
"""

from dataclasses import dataclass

import numpy as np

from photoflux.radiative_transfer.closures import SolutionParameters
from photoflux.radiative_transfer.sources import SourceTerms


@dataclass
class TridiagonalMatrix:
    """
    Banded coefficient matrix of one tridiagonal system per column.

    Row i reads ``lower[i] Y[i-1] + main[i] Y[i] + upper[i] Y[i+1]``;
    ``lower[0]`` and ``upper[-1]`` are always zero.

    Attributes
    ----------
    lower, main, upper : ndarray
        Diagonals, shape (2 n_layers, n_columns)
    """

    lower: np.ndarray
    main: np.ndarray
    upper: np.ndarray

    @classmethod
    def zeros(cls, size: int, n_columns: int) -> "TridiagonalMatrix":
        return cls(
            lower=np.zeros((size, n_columns)),
            main=np.zeros((size, n_columns)),
            upper=np.zeros((size, n_columns)),
        )

    @property
    def size(self) -> int:
        return self.main.shape[0]

    def to_dense(self, column: int = 0) -> np.ndarray:
        """Expand the system of one column into a dense square matrix."""
        dense = np.diag(self.main[:, column])
        dense += np.diag(self.lower[1:, column], k=-1)
        dense += np.diag(self.upper[:-1, column], k=1)
        return dense


def _surface_reflectivity(surface_reflectivity, n_columns: int) -> np.ndarray:
    return np.broadcast_to(np.asarray(surface_reflectivity, dtype=float), (n_columns,))


def assemble_tridiagonal_matrix(
    params: SolutionParameters,
    surface_reflectivity,
) -> TridiagonalMatrix:
    """
    Build the left hand side of the flux system.

    Parameters
    ----------
    params : SolutionParameters
        Closure coefficients with the eigen-solution basis e1..e4, top-down
    surface_reflectivity : float or array_like
        Lambertian surface reflectivity, per column

    Returns
    -------
    matrix : TridiagonalMatrix
        Diagonals of shape (2 n_layers, n_columns)
    """
    n_layers = params.number_of_layers
    reflectivity = _surface_reflectivity(surface_reflectivity, params.number_of_columns)
    e1, e2, e3, e4 = params.e1, params.e2, params.e3, params.e4

    matrix = TridiagonalMatrix.zeros(2 * n_layers, params.number_of_columns)
    lower, main, upper = matrix.lower, matrix.main, matrix.upper

    # top of atmosphere
    main[0] = e1[0]
    upper[0] = -e2[0]

    # interfaces: layer n above, layer n + 1 below
    lower[1:-1:2] = e2[1:] * e1[:-1] - e3[:-1] * e4[1:]
    main[1:-1:2] = e2[:-1] * e2[1:] - e4[:-1] * e4[1:]
    upper[1:-1:2] = e1[1:] * e4[1:] - e2[1:] * e3[1:]

    lower[2:-1:2] = e2[:-1] * e3[:-1] - e4[:-1] * e1[:-1]
    main[2:-1:2] = e1[:-1] * e1[1:] - e3[:-1] * e3[1:]
    upper[2:-1:2] = e3[:-1] * e4[1:] - e1[:-1] * e2[1:]

    # surface
    lower[-1] = e1[-1] - reflectivity * e3[-1]
    main[-1] = e2[-1] - reflectivity * e4[-1]

    return matrix


def assemble_coefficient_vector(
    params: SolutionParameters,
    sources: SourceTerms,
    surface_reflectivity,
    top_diffuse_flux=0.0,
) -> np.ndarray:
    """
    Build the right hand side of the flux system, row-aligned with
    ``assemble_tridiagonal_matrix``.

    Parameters
    ----------
    params : SolutionParameters
        Closure coefficients with the eigen-solution basis e1..e4, top-down
    sources : SourceTerms
        Direct-beam source terms of the same layers
    surface_reflectivity : float or array_like
        Lambertian surface reflectivity, per column
    top_diffuse_flux : float or array_like
        Diffuse downward flux entering at the top of the atmosphere

    Returns
    -------
    vector : ndarray
        Shape (2 n_layers, n_columns)
    """
    n_layers = params.number_of_layers
    n_columns = params.number_of_columns
    reflectivity = _surface_reflectivity(surface_reflectivity, n_columns)
    top_flux = np.broadcast_to(np.asarray(top_diffuse_flux, dtype=float), (n_columns,))
    e1, e2, e3, e4 = params.e1, params.e2, params.e3, params.e4

    vector = np.zeros((2 * n_layers, n_columns))

    vector[0] = top_flux - sources.downwelling_top[0]

    # jumps in the particular solution across each interface
    jump_up = sources.upwelling_top[1:] - sources.upwelling_bottom[:-1]
    jump_down = sources.downwelling_top[1:] - sources.downwelling_bottom[:-1]

    vector[1:-1:2] = e2[1:] * jump_up - e4[1:] * jump_down
    vector[2:-1:2] = e3[:-1] * jump_up - e1[:-1] * jump_down

    vector[-1] = (
        sources.surface_source
        - sources.upwelling_bottom[-1]
        + reflectivity * sources.downwelling_bottom[-1]
    )

    return vector
