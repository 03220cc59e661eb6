"""
Direct-beam source terms of the two-stream equations.

All functions in this module expect layers ordered from the top of the
atmosphere downward, so cumulative optical depth grows with the layer index.

References
----------
Toon, O.B., et al., 1989: Rapid calculation of radiative heating rates and
photodissociation rates in inhomogeneous multiple scattering atmospheres.
J. Geophys. Res., 94, 16287-16301. (equations 23 and 24)
"""

from dataclasses import dataclass

import numpy as np

from photoflux.radiative_transfer.closures import SolutionParameters
from photoflux.radiative_transfer.radiator import RadiatorState


@dataclass
class SourceTerms:
    """
    Direct-beam driven particular solutions of the two-stream equations.

    Attributes
    ----------
    upwelling_top, upwelling_bottom : ndarray
        C+ at the top and bottom of each layer, shape (n_layers, n_columns)
    downwelling_top, downwelling_bottom : ndarray
        C- at the top and bottom of each layer, shape (n_layers, n_columns)
    cumulative_optical_depth : ndarray
        Optical depth from the top of the atmosphere to each level,
        shape (n_layers + 1, n_columns)
    direct_transmission : ndarray
        Direct beam transmission exp(-tau_c / mu0) at each level
    surface_source : ndarray
        Direct beam reflected upward by the surface, shape (n_columns,)
    """

    upwelling_top: np.ndarray
    upwelling_bottom: np.ndarray
    downwelling_top: np.ndarray
    downwelling_bottom: np.ndarray
    cumulative_optical_depth: np.ndarray
    direct_transmission: np.ndarray
    surface_source: np.ndarray


def cumulative_optical_depth(tau: np.ndarray) -> np.ndarray:
    """
    Optical depth from the top of the atmosphere to every level.

    Parameters
    ----------
    tau : ndarray
        Layer optical depth, top-down, shape (n_layers, n_columns)

    Returns
    -------
    tau_cumulative : ndarray
        Shape (n_layers + 1, n_columns), zero at the top
    """
    tau = np.asarray(tau, dtype=float)
    tau_cumulative = np.zeros((tau.shape[0] + 1,) + tau.shape[1:])
    np.cumsum(tau, axis=0, out=tau_cumulative[1:])
    return tau_cumulative


def compute_source_terms(
    params: SolutionParameters,
    state: RadiatorState,
    incident_flux,
    surface_reflectivity,
) -> SourceTerms:
    """
    Compute the direct-beam source terms C+ and C- of every layer.

    C-(tau) = omega F0 exp(-(tau_c + tau)/mu0) [(gamma1 + 1/mu0) gamma4 + gamma2 gamma3] / (lambda**2 - 1/mu0**2)
    C+(tau) = omega F0 exp(-(tau_c + tau)/mu0) [(gamma1 - 1/mu0) gamma3 + gamma2 gamma4] / (lambda**2 - 1/mu0**2)

    Every term uses ``params.mu0``, which the closure has already moved
    off the lambda = 1/mu0 resonance where needed.

    Parameters
    ----------
    params : SolutionParameters
        Closure coefficients of the (scaled) state
    state : RadiatorState
        Optical properties the coefficients were computed from, top-down
    incident_flux : float or array_like
        Direct beam flux normal to the beam at the top, per column
    surface_reflectivity : float or array_like
        Lambertian surface reflectivity, per column

    Returns
    -------
    sources : SourceTerms
        Source terms at the top and bottom of every layer
    """
    n_columns = params.number_of_columns
    flux = np.broadcast_to(np.asarray(incident_flux, dtype=float), (n_columns,))
    reflectivity = np.broadcast_to(np.asarray(surface_reflectivity, dtype=float), (n_columns,))

    mu0 = params.mu0[np.newaxis, :]
    tau_cumulative = cumulative_optical_depth(state.optical_depth)

    # Thick columns transmit nothing; exp underflows to exactly zero
    with np.errstate(under="ignore"):
        transmission = np.exp(-tau_cumulative / mu0)

    # closure.compute keeps mu0 off the lambda = 1/mu0 resonance
    denominator = params.lambda_ * params.lambda_ - 1.0 / (mu0 * mu0)
    scale = state.single_scattering_albedo * flux[np.newaxis, :] / denominator
    amplitude_down = scale * (
        (params.gamma1 + 1.0 / mu0) * params.gamma4 + params.gamma2 * params.gamma3
    )
    amplitude_up = scale * (
        (params.gamma1 - 1.0 / mu0) * params.gamma3 + params.gamma2 * params.gamma4
    )

    with np.errstate(under="ignore"):
        return SourceTerms(
            upwelling_top=amplitude_up * transmission[:-1],
            upwelling_bottom=amplitude_up * transmission[1:],
            downwelling_top=amplitude_down * transmission[:-1],
            downwelling_bottom=amplitude_down * transmission[1:],
            cumulative_optical_depth=tau_cumulative,
            direct_transmission=transmission,
            surface_source=reflectivity * params.mu0 * flux * transmission[-1],
        )
