"""
Tridiagonal linear solver for batches of independent column systems.
"""

import logging
from typing import Sequence

import numpy as np
from numba import jit, prange

from photoflux.radiative_transfer.tridiagonal import TridiagonalMatrix

logger = logging.getLogger(__name__)

# Pivots smaller than this fraction of their row magnitude are treated as zero
PIVOT_TOLERANCE = 2.220446049250313e-16


class SingularMatrixError(ArithmeticError):
    """Raised when a column's flux system has a (numerically) zero pivot.

    Attributes:
        columns: Indices of the columns whose system could not be solved
    """

    def __init__(self, columns: Sequence[int]):
        self.columns = list(columns)
        super().__init__(
            f"Tridiagonal flux system is singular in column(s) {self.columns}; "
            "check the optical properties of these columns"
        )


@jit(nopython=True, cache=True)
def solve_tridiagonal(
    lower: np.ndarray,
    main: np.ndarray,
    upper: np.ndarray,
    rhs: np.ndarray,
    solution: np.ndarray,
) -> bool:
    """Solve one tridiagonal system with the Thomas algorithm.

    lower[i] * x[i-1] + main[i] * x[i] + upper[i] * x[i+1] = rhs[i]

    Args:
        lower: Sub-diagonal, lower[0] is ignored
        main: Main diagonal
        upper: Super-diagonal, upper[-1] is ignored
        rhs: Right hand side
        solution: Output array, written in place

    Returns:
        False if a pivot vanished (solution is then undefined), True otherwise
    """
    n = main.shape[0]
    c_prime = np.empty(n)
    d_prime = np.empty(n)

    # forward sweep
    for i in range(n):
        if i == 0:
            pivot = main[0]
            scale = abs(main[0]) + abs(upper[0])
            d_prime[0] = rhs[0]
        else:
            pivot = main[i] - lower[i] * c_prime[i - 1]
            scale = abs(lower[i]) + abs(main[i]) + abs(upper[i])
            d_prime[i] = rhs[i] - lower[i] * d_prime[i - 1]

        if not np.isfinite(pivot) or abs(pivot) <= PIVOT_TOLERANCE * scale:
            return False

        c_prime[i] = upper[i] / pivot if i < n - 1 else 0.0
        d_prime[i] = d_prime[i] / pivot

    # back substitution
    solution[n - 1] = d_prime[n - 1]
    for i in range(n - 2, -1, -1):
        solution[i] = d_prime[i] - c_prime[i] * solution[i + 1]

    return True


@jit(nopython=True, cache=True, parallel=True)
def solve_tridiagonal_columns(
    lower: np.ndarray,
    main: np.ndarray,
    upper: np.ndarray,
    rhs: np.ndarray,
):
    """Solve one private tridiagonal system per column in parallel.

    Args:
        lower, main, upper: Diagonals, shape (n_rows, n_columns)
        rhs: Right hand side, shape (n_rows, n_columns)

    Returns:
        Tuple of (solution, solved) with solution shape (n_rows, n_columns)
        and a boolean flag per column
    """
    n_rows, n_columns = main.shape
    solution = np.zeros((n_rows, n_columns))
    solved = np.zeros(n_columns, dtype=np.bool_)

    for column in prange(n_columns):
        x = np.zeros(n_rows)
        solved[column] = solve_tridiagonal(
            np.ascontiguousarray(lower[:, column]),
            np.ascontiguousarray(main[:, column]),
            np.ascontiguousarray(upper[:, column]),
            np.ascontiguousarray(rhs[:, column]),
            x,
        )
        solution[:, column] = x

    return solution, solved


def solve_banded_system(matrix: TridiagonalMatrix, vector: np.ndarray) -> np.ndarray:
    """Solve the flux system of every column.

    Args:
        matrix: Tridiagonal matrix, diagonals of shape (n_rows, n_columns)
        vector: Right hand side, shape (n_rows, n_columns)

    Returns:
        Solution, shape (n_rows, n_columns)

    Raises:
        ValueError: If the matrix and vector sizes differ
        SingularMatrixError: If any column's system is singular
    """
    vector = np.asarray(vector, dtype=float)
    if vector.shape != matrix.main.shape:
        raise ValueError(
            f"Coefficient vector shape {vector.shape} does not match "
            f"matrix shape {matrix.main.shape}"
        )

    solution, solved = solve_tridiagonal_columns(
        np.ascontiguousarray(matrix.lower, dtype=np.float64),
        np.ascontiguousarray(matrix.main, dtype=np.float64),
        np.ascontiguousarray(matrix.upper, dtype=np.float64),
        np.ascontiguousarray(vector, dtype=np.float64),
    )

    if not np.all(solved):
        failed = np.flatnonzero(~solved).tolist()
        logger.error(f"Singular flux system in {len(failed)} column(s): {failed}")
        raise SingularMatrixError(failed)

    return solution
