"""
Two-stream radiative transfer for batches of atmospheric columns.

This module solves the plane-parallel radiative transfer equation for the
diffuse and direct solar radiation field, one wavelength bin at a time.

Classes
-------
TwoStreamSolver
    Solver facade holding a closure and boundary conditions
RadiatorState
    Layer optical depth, single scattering albedo and asymmetry parameter
RadiationField
    Spectral irradiance and actinic flux on every level
DeltaEddingtonApproximation, EddingtonApproximation,
QuadratureApproximation, HemisphericMeanApproximation
    Two-stream closures

Functions
---------
solve
    Run the full pipeline for one column batch and wavelength
"""

from photoflux.radiative_transfer.radiator import RadiatorState, delta_scale
from photoflux.radiative_transfer.closures import (
    DeltaEddingtonApproximation,
    EddingtonApproximation,
    HemisphericMeanApproximation,
    QuadratureApproximation,
    SolutionParameters,
    TwoStreamClosure,
    TwoStreamMethod,
    get_closure,
)
from photoflux.radiative_transfer.sources import SourceTerms
from photoflux.radiative_transfer.tridiagonal import TridiagonalMatrix
from photoflux.radiative_transfer.linalg import SingularMatrixError, solve_banded_system
from photoflux.radiative_transfer.radiation_field import RadiationComponents, RadiationField
from photoflux.radiative_transfer.solver import TwoStreamSolver, solve

__all__ = [
    "RadiatorState",
    "DeltaEddingtonApproximation",
    "EddingtonApproximation",
    "HemisphericMeanApproximation",
    "QuadratureApproximation",
    "SolutionParameters",
    "TwoStreamClosure",
    "TwoStreamMethod",
    "get_closure",
    "SourceTerms",
    "delta_scale",
    "TridiagonalMatrix",
    "SingularMatrixError",
    "solve_banded_system",
    "RadiationComponents",
    "RadiationField",
    "TwoStreamSolver",
    "solve",
]
