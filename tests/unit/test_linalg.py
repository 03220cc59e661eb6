"""
Unit tests for the banded tridiagonal solver.
"""

import logging

import pytest
import numpy as np

from photoflux.radiative_transfer import SingularMatrixError, TridiagonalMatrix, solve_banded_system
from photoflux.radiative_transfer.linalg import solve_tridiagonal


def random_system(n_rows, n_columns, seed=0):
    """Diagonally dominant random systems, one per column."""
    rng = np.random.default_rng(seed)
    lower = rng.uniform(-1.0, 1.0, (n_rows, n_columns))
    upper = rng.uniform(-1.0, 1.0, (n_rows, n_columns))
    lower[0] = 0.0
    upper[-1] = 0.0
    main = np.abs(lower) + np.abs(upper) + rng.uniform(0.5, 2.0, (n_rows, n_columns))
    rhs = rng.uniform(-5.0, 5.0, (n_rows, n_columns))
    return TridiagonalMatrix(lower=lower, main=main, upper=upper), rhs


class TestSolveTridiagonal:
    """Tests for the single-system Thomas algorithm."""

    def test_small_system(self):
        # [2 1 0; 1 2 1; 0 1 2] x = [4 8 8] -> x = [1 2 3]
        lower = np.array([0.0, 1.0, 1.0])
        main = np.array([2.0, 2.0, 2.0])
        upper = np.array([1.0, 1.0, 0.0])
        rhs = np.array([4.0, 8.0, 8.0])
        solution = np.zeros(3)

        assert solve_tridiagonal(lower, main, upper, rhs, solution)
        np.testing.assert_allclose(solution, [1.0, 2.0, 3.0])

    def test_zero_pivot_reported(self):
        solution = np.zeros(2)
        ok = solve_tridiagonal(
            np.array([0.0, 1.0]), np.array([0.0, 1.0]), np.array([1.0, 0.0]), np.array([1.0, 1.0]), solution
        )
        assert not ok


class TestSolveBandedSystem:
    """Tests for the column batch solver."""

    @pytest.mark.parametrize("n_rows", [2, 6, 40])
    def test_matches_dense_solve(self, n_rows):
        matrix, rhs = random_system(n_rows, 5, seed=n_rows)
        solution = solve_banded_system(matrix, rhs)

        assert solution.shape == (n_rows, 5)
        for column in range(5):
            expected = np.linalg.solve(matrix.to_dense(column), rhs[:, column])
            np.testing.assert_allclose(solution[:, column], expected, rtol=1e-10, atol=1e-12)

    def test_shape_mismatch(self):
        matrix, rhs = random_system(4, 2)
        with pytest.raises(ValueError, match="shape"):
            solve_banded_system(matrix, rhs[:3])

    def test_singular_columns_reported(self, caplog):
        matrix, rhs = random_system(4, 3)
        matrix.main[:, 1] = 0.0
        matrix.lower[:, 1] = 0.0
        matrix.upper[:, 1] = 0.0

        with caplog.at_level(logging.ERROR):
            with pytest.raises(SingularMatrixError) as excinfo:
                solve_banded_system(matrix, rhs)

        assert excinfo.value.columns == [1]
        assert "Singular" in caplog.text

    def test_non_finite_pivot(self):
        matrix, rhs = random_system(3, 2)
        matrix.main[0, 0] = np.nan
        with pytest.raises(SingularMatrixError) as excinfo:
            solve_banded_system(matrix, rhs)
        assert excinfo.value.columns == [0]

    def test_error_is_arithmetic_error(self):
        assert issubclass(SingularMatrixError, ArithmeticError)
