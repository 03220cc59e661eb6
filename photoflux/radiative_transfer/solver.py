"""
Two-stream radiative transfer solver for batches of atmospheric columns.

Solves the plane-parallel radiative transfer equation for one wavelength
bin at a time with a pluggable two-stream closure (delta-Eddington by
default). The pipeline per invocation is:

1. closure.prepare   delta scaling of the optical properties
2. closure.compute   gamma coefficients and eigen-solution basis
3. source terms      direct-beam particular solutions
4. assembly          tridiagonal matrix and coefficient vector
5. banded solve      one private system per column
6. reconstruction    irradiance and actinic flux on every level

References
----------
Toon, O.B., et al., 1989: Rapid calculation of radiative heating rates and
photodissociation rates in inhomogeneous multiple scattering atmospheres.
J. Geophys. Res., 94, 16287-16301.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Optional

import numpy as np

from photoflux.atmosphere.grid import (
    ALTITUDE_GRID,
    Grid,
    GridConsistencyError,
    Profile,
    check_grid_consistency,
)
from photoflux.radiative_transfer.closures import (
    DeltaEddingtonApproximation,
    TwoStreamClosure,
    get_closure,
)
from photoflux.radiative_transfer.linalg import solve_banded_system
from photoflux.radiative_transfer.radiation_field import RadiationField, compute_radiation_field
from photoflux.radiative_transfer.radiator import RadiatorState
from photoflux.radiative_transfer.sources import compute_source_terms
from photoflux.radiative_transfer.tridiagonal import (
    assemble_coefficient_vector,
    assemble_tridiagonal_matrix,
)

if TYPE_CHECKING:
    from photoflux.config.settings import SolverConfig

logger = logging.getLogger(__name__)


def _per_column(value, n_columns: int, name: str) -> np.ndarray:
    try:
        return np.broadcast_to(np.asarray(value, dtype=float), (n_columns,)).copy()
    except ValueError:
        raise ValueError(f"{name} must be a scalar or have one value per column ({n_columns})")


def _check_inputs(
    grids: Mapping[str, Grid],
    radiator_state: RadiatorState,
    radiation_field: RadiationField,
    n_columns: int,
    wavelength_index: int,
) -> None:
    n_layers = grids[ALTITUDE_GRID].number_of_sections

    if radiator_state.number_of_columns != n_columns:
        raise GridConsistencyError(
            f"Radiator state has {radiator_state.number_of_columns} columns, expected {n_columns}"
        )
    if radiator_state.number_of_layers != n_layers:
        raise GridConsistencyError(
            f"Radiator state has {radiator_state.number_of_layers} layers but the "
            f"altitude grid has {n_layers} sections"
        )

    n_levels, field_columns, n_wavelengths = radiation_field.shape
    if n_levels != n_layers + 1 or field_columns != n_columns:
        raise GridConsistencyError(
            f"Radiation field shape {radiation_field.shape} does not fit "
            f"{n_layers + 1} levels and {n_columns} columns"
        )
    if not 0 <= wavelength_index < n_wavelengths:
        raise GridConsistencyError(
            f"Wavelength index {wavelength_index} outside radiation field with "
            f"{n_wavelengths} wavelengths"
        )


def solve(
    cos_sza,
    grids: Mapping[str, Grid],
    profiles: Optional[Mapping[str, Profile]],
    closure: TwoStreamClosure,
    radiator_state: RadiatorState,
    radiation_field: RadiationField,
    surface_reflectivity=0.0,
    incident_flux=1.0,
    wavelength_index: int = 0,
    top_diffuse_flux=0.0,
) -> RadiationField:
    """
    Solve the radiative transfer equation for a column batch at one wavelength.

    Parameters
    ----------
    cos_sza : array_like
        Cosine of the solar zenith angle per column. Columns with
        cos_sza <= 0 (sun below the horizon) receive an all-zero
        field; neither the direct beam nor ``top_diffuse_flux`` enters them.
    grids : mapping
        Grids keyed by 'altitude [m]' and 'wavelength [m]'
    profiles : mapping or None
        Profiles on the altitude grid (checked for column count only)
    closure : TwoStreamClosure
        Two-stream closure, e.g. DeltaEddingtonApproximation()
    radiator_state : RadiatorState
        Layer optical properties in altitude grid order; not modified
    radiation_field : RadiationField
        Output field, shape (n_layers + 1, n_columns, n_wavelengths)
    surface_reflectivity : float or array_like
        Lambertian surface reflectivity per column [0-1]
    incident_flux : float or array_like
        Direct beam flux normal to the beam at TOA per column
    wavelength_index : int
        Wavelength slot of ``radiation_field`` to fill
    top_diffuse_flux : float or array_like
        Diffuse downward flux entering at TOA per column

    Returns
    -------
    radiation_field : RadiationField
        The updated output field

    Raises
    ------
    GridConsistencyError
        If grids, profiles, radiator state and field disagree in size
    SingularMatrixError
        If the flux system of any column is singular; the radiation
        field is then left untouched
    """
    cos_sza = np.asarray(cos_sza, dtype=float).reshape(-1)
    n_columns = cos_sza.size

    check_grid_consistency(grids, profiles, n_columns)
    _check_inputs(grids, radiator_state, radiation_field, n_columns, wavelength_index)

    if np.any(~np.isfinite(cos_sza)) or np.any(cos_sza > 1.0):
        raise ValueError("Cosine of the solar zenith angle must be finite and <= 1")

    reflectivity = _per_column(surface_reflectivity, n_columns, "surface_reflectivity")
    if not np.all((reflectivity >= 0) & (reflectivity <= 1)):
        raise ValueError("Surface reflectivity must lie in [0, 1]")
    flux = _per_column(incident_flux, n_columns, "incident_flux")
    top_flux = _per_column(top_diffuse_flux, n_columns, "top_diffuse_flux")

    # night columns: no illumination at all, any cosine keeps the system regular
    daylit = cos_sza > 0
    mu0 = np.where(daylit, cos_sza, 1.0)
    flux = np.where(daylit, flux, 0.0)
    top_flux = np.where(daylit, top_flux, 0.0)

    logger.debug(
        f"Solving {radiator_state.number_of_layers} layers x {n_columns} columns "
        f"({int(daylit.sum())} daylit) with {closure!r}"
    )

    state = closure.prepare(radiator_state.flipped())
    params = closure.compute(state, mu0)
    sources = compute_source_terms(params, state, flux, reflectivity)

    matrix = assemble_tridiagonal_matrix(params, reflectivity)
    vector = assemble_coefficient_vector(params, sources, reflectivity, top_flux)
    solution = solve_banded_system(matrix, vector)
    logger.debug(f"Solved {matrix.size}-row flux system for {n_columns} columns")

    return compute_radiation_field(
        params, sources, solution, flux, radiation_field, wavelength_index
    )


@dataclass
class TwoStreamSolver:
    """
    Two-stream radiative transfer solver with fixed boundary conditions.

    Attributes
    ----------
    closure : TwoStreamClosure
        Two-stream closure to use
    surface_reflectivity : float
        Lambertian surface reflectivity [0-1]
    incident_flux : float
        Direct beam flux normal to the beam at TOA
    top_diffuse_flux : float
        Diffuse downward flux entering at TOA

    Example
    -------
    >>> solver = TwoStreamSolver(surface_reflectivity=0.1)
    >>> field = solver.solve(cos_sza, grids, profiles, radiator_state)
    """

    closure: TwoStreamClosure = field(default_factory=DeltaEddingtonApproximation)
    surface_reflectivity: float = 0.0
    incident_flux: float = 1.0
    top_diffuse_flux: float = 0.0

    @classmethod
    def from_config(cls, config: "SolverConfig") -> "TwoStreamSolver":
        """
        Create a solver from a validated configuration.

        Raises
        ------
        ValueError
            If the configuration does not validate
        """
        errors = config.validate()
        for error in errors:
            logger.warning(f"Configuration validation error: {error}")
        if errors:
            raise ValueError(f"Invalid solver configuration: {'; '.join(errors)}")

        return cls(
            closure=get_closure(
                config.closure.method,
                albedo_epsilon=config.closure.albedo_epsilon,
                use_jax=config.closure.use_jax,
            ),
            surface_reflectivity=config.boundary.surface_reflectivity,
            incident_flux=config.boundary.incident_flux,
            top_diffuse_flux=config.boundary.top_diffuse_flux,
        )

    def solve(
        self,
        cos_sza,
        grids: Mapping[str, Grid],
        profiles: Optional[Mapping[str, Profile]],
        radiator_state: RadiatorState,
        radiation_field: Optional[RadiationField] = None,
        wavelength_index: int = 0,
    ) -> RadiationField:
        """
        Solve one wavelength bin for a column batch.

        Parameters
        ----------
        cos_sza : array_like
            Cosine of the solar zenith angle per column
        grids : mapping
            Grids keyed by 'altitude [m]' and 'wavelength [m]'
        profiles : mapping or None
            Profiles on the altitude grid
        radiator_state : RadiatorState
            Layer optical properties in altitude grid order
        radiation_field : RadiationField, optional
            Output field; a single-wavelength field is allocated if omitted
        wavelength_index : int
            Wavelength slot to fill

        Returns
        -------
        radiation_field : RadiationField
        """
        if radiation_field is None:
            radiation_field = RadiationField.zeros(
                radiator_state.number_of_layers + 1, radiator_state.number_of_columns
            )

        return solve(
            cos_sza,
            grids,
            profiles,
            self.closure,
            radiator_state,
            radiation_field,
            surface_reflectivity=self.surface_reflectivity,
            incident_flux=self.incident_flux,
            wavelength_index=wavelength_index,
            top_diffuse_flux=self.top_diffuse_flux,
        )
