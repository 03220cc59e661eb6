"""
Two-stream closures for the plane-parallel radiative transfer equation.

A closure turns the per-layer optical properties of a radiator state into
the coefficients of the two coupled flux equations (gamma1..gamma4), their
decay eigenvalue lambda, and the eigen-solution basis e1..e4 used to build
the tridiagonal flux system.

References
----------
Joseph, J.H., Wiscombe, W.J. and Weinman, J.A., 1976: The delta-Eddington
approximation for radiative flux transfer. J. Atmos. Sci., 33, 2452-2459.

Toon, O.B., et al., 1989: Rapid calculation of radiative heating rates and
photodissociation rates in inhomogeneous multiple scattering atmospheres.
J. Geophys. Res., 94, 16287-16301. (Table 1, equations 21, 22 and 44)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

import numpy as np
import jax.numpy as jnp
from jax import jit, vmap

from photoflux.radiative_transfer.radiator import RadiatorState, delta_scale

logger = logging.getLogger(__name__)

# Largest single scattering albedo fed to the gamma formulas. At exactly
# omega = 1 the eigenvalue vanishes and the flux system becomes singular.
DEFAULT_ALBEDO_EPSILON = 1e-7

# Smallest |lambda**2 - 1/mu0**2| allowed in the direct-beam source terms
RESONANCE_EPSILON = 1e-6


class TwoStreamMethod(Enum):
    """Two-stream approximation variants."""

    EDDINGTON = "eddington"
    QUADRATURE = "quadrature"
    HEMISPHERIC_MEAN = "hemispheric_mean"
    DELTA_EDDINGTON = "delta_eddington"


@dataclass
class SolutionParameters:
    """
    Closure coefficients for every layer of every column.

    All arrays have shape (n_layers, n_columns) and follow the layer order
    of the radiator state they were computed from, except ``mu0`` which
    holds one cosine per column.

    Attributes
    ----------
    gamma1, gamma2, gamma3, gamma4 : ndarray
        Two-stream coefficients (Toon et al. 1989, Table 1)
    mu : ndarray
        Quadrature cosine of the closure
    lambda_ : ndarray
        Decay eigenvalue, sqrt(gamma1**2 - gamma2**2)
    big_gamma : ndarray
        Eigenvector ratio, gamma2 / (gamma1 + lambda)
    e1, e2, e3, e4 : ndarray
        Eigen-solution basis evaluated across each layer
    mu0 : ndarray
        Cosine of the solar zenith angle, shape (n_columns,)
    """

    gamma1: np.ndarray
    gamma2: np.ndarray
    gamma3: np.ndarray
    gamma4: np.ndarray
    mu: np.ndarray
    lambda_: np.ndarray
    big_gamma: np.ndarray
    e1: np.ndarray
    e2: np.ndarray
    e3: np.ndarray
    e4: np.ndarray
    mu0: np.ndarray

    @property
    def number_of_layers(self) -> int:
        return self.gamma1.shape[0]

    @property
    def number_of_columns(self) -> int:
        return self.gamma1.shape[1]


def eigen_basis(
    lambda_: np.ndarray, big_gamma: np.ndarray, tau: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Evaluate the eigen-solution basis across each layer (Toon eq. 44).

    Only decaying exponentials appear, so very thick layers underflow to
    zero instead of overflowing.

    Parameters
    ----------
    lambda_ : ndarray
        Decay eigenvalue per layer
    big_gamma : ndarray
        Eigenvector ratio per layer
    tau : ndarray
        Layer optical depth

    Returns
    -------
    e1, e2, e3, e4 : ndarray
        Basis functions, same shape as ``tau``
    """
    with np.errstate(under="ignore"):
        decay = np.exp(-lambda_ * tau)
    e1 = 1.0 + big_gamma * decay
    e2 = 1.0 - big_gamma * decay
    e3 = big_gamma + decay
    e4 = big_gamma - decay
    return e1, e2, e3, e4


def detune_resonance(
    lambda_: np.ndarray, mu0: np.ndarray, epsilon: float = RESONANCE_EPSILON
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Move mu0 off the lambda = 1/mu0 resonance of the direct-beam sources.

    The particular solution divides by lambda**2 - 1/mu0**2. Where any layer
    of a column comes within ``epsilon`` of zero, 1/mu0**2 of that column is
    raised in steps of 2 * epsilon until every layer clears the band. The
    shift in mu0 is of order epsilon, far below the accuracy of the
    two-stream approximation, and the whole column then uses the shifted
    cosine, so numerator, denominator and transmission stay consistent.

    Parameters
    ----------
    lambda_ : ndarray
        Decay eigenvalue, shape (n_layers, n_columns)
    mu0 : ndarray
        Cosine of the solar zenith angle, shape (n_columns,)
    epsilon : float
        Half width of the excluded band around the resonance

    Returns
    -------
    mu0 : ndarray
        Cosines with resonant columns shifted; other columns are unchanged
    detuned : ndarray of bool
        Columns whose cosine was shifted
    """
    inverse_square = 1.0 / (mu0 * mu0)
    detuned = np.zeros(mu0.shape, dtype=bool)

    # each step clears at least one layer, and never re-enters it
    for _ in range(lambda_.shape[0] + 1):
        resonant = np.any(np.abs(lambda_ * lambda_ - inverse_square) < epsilon, axis=0)
        if not np.any(resonant):
            break
        inverse_square = np.where(resonant, inverse_square + 2.0 * epsilon, inverse_square)
        detuned |= resonant

    return np.where(detuned, 1.0 / np.sqrt(inverse_square), mu0), detuned


def _eddington_column(omega, g, mu0):
    gamma1 = (7.0 - omega * (4.0 + 3.0 * g)) / 4.0
    gamma2 = -(1.0 - omega * (4.0 - 3.0 * g)) / 4.0
    gamma3 = (2.0 - 3.0 * g * mu0) / 4.0
    gamma4 = 1.0 - gamma3
    lambda_ = jnp.sqrt(jnp.maximum(gamma1 * gamma1 - gamma2 * gamma2, 0.0))
    big_gamma = gamma2 / (gamma1 + lambda_)
    return gamma1, gamma2, gamma3, gamma4, lambda_, big_gamma


# Columns are independent: map the single-column closure over axis 1
eddington_coefficients_jax = jit(vmap(_eddington_column, in_axes=(1, 1, 0), out_axes=1))


class TwoStreamClosure(ABC):
    """
    Base class of the two-stream closure family.

    Subclasses supply the gamma coefficients; the base class derives the
    eigenvalue, the eigenvector ratio and the eigen-solution basis.

    Parameters
    ----------
    albedo_epsilon : float
        The single scattering albedo is limited to ``1 - albedo_epsilon``
        in the gamma formulas
    """

    method: TwoStreamMethod
    mu: float = 0.5

    def __init__(self, albedo_epsilon: float = DEFAULT_ALBEDO_EPSILON):
        if not 0.0 < albedo_epsilon < 1.0:
            raise ValueError(f"albedo_epsilon must lie in (0, 1), got {albedo_epsilon}")
        self.albedo_epsilon = albedo_epsilon

    def __repr__(self) -> str:
        return f"{type(self).__name__}(albedo_epsilon={self.albedo_epsilon})"

    def prepare(self, state: RadiatorState) -> RadiatorState:
        """Return the optical properties the closure operates on."""
        return state

    @abstractmethod
    def gammas(
        self, omega: np.ndarray, g: np.ndarray, mu0: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return gamma1..gamma4 for broadcastable omega, g and mu0."""

    def coefficients(self, omega: np.ndarray, g: np.ndarray, mu0: np.ndarray):
        """
        Return gamma1..gamma4, lambda and Gamma for one radiator state.

        Parameters
        ----------
        omega : ndarray
            Single scattering albedo, shape (n_layers, n_columns)
        g : ndarray
            Asymmetry parameter, shape (n_layers, n_columns)
        mu0 : ndarray
            Cosine of the solar zenith angle, shape (n_columns,)
        """
        gamma1, gamma2, gamma3, gamma4 = self.gammas(omega, g, mu0[np.newaxis, :])
        gamma3 = np.broadcast_to(gamma3, omega.shape)
        gamma4 = np.broadcast_to(gamma4, omega.shape)
        lambda_ = np.sqrt(np.maximum(gamma1 * gamma1 - gamma2 * gamma2, 0.0))
        big_gamma = gamma2 / (gamma1 + lambda_)
        return gamma1, gamma2, gamma3, gamma4, lambda_, big_gamma

    def compute(self, state: RadiatorState, cos_sza) -> SolutionParameters:
        """
        Compute the solution parameters of every layer of every column.

        Parameters
        ----------
        state : RadiatorState
            Optical properties, already passed through ``prepare``
        cos_sza : array_like
            Cosine of the solar zenith angle per column, in (0, 1]

        Returns
        -------
        params : SolutionParameters
            Coefficients and eigen-solution basis. ``mu0`` holds the
            cosines the coefficients were evaluated at, which differ from
            ``cos_sza`` only in columns moved off the source resonance
            (see ``detune_resonance``).
        """
        mu0 = np.asarray(cos_sza, dtype=float).reshape(-1)
        if mu0.size != state.number_of_columns:
            raise ValueError(
                f"Got {mu0.size} solar zenith angles for {state.number_of_columns} columns"
            )

        omega = np.minimum(state.single_scattering_albedo, 1.0 - self.albedo_epsilon)
        g = state.asymmetry_parameter

        gamma1, gamma2, gamma3, gamma4, lambda_, big_gamma = (
            np.array(value, dtype=float) for value in self.coefficients(omega, g, mu0)
        )

        mu0, detuned = detune_resonance(lambda_, mu0)
        if np.any(detuned):
            logger.warning(
                f"Shifted mu0 of {int(detuned.sum())} column(s) off the direct-beam "
                f"resonance lambda = 1/mu0"
            )
            # lambda does not depend on mu0, so only gamma3 and gamma4 move
            gamma1, gamma2, gamma3, gamma4, lambda_, big_gamma = (
                np.array(value, dtype=float) for value in self.coefficients(omega, g, mu0)
            )

        e1, e2, e3, e4 = eigen_basis(lambda_, big_gamma, state.optical_depth)

        return SolutionParameters(
            gamma1=gamma1,
            gamma2=gamma2,
            gamma3=gamma3,
            gamma4=gamma4,
            mu=np.full(omega.shape, self.mu),
            lambda_=lambda_,
            big_gamma=big_gamma,
            e1=e1,
            e2=e2,
            e3=e3,
            e4=e4,
            mu0=mu0,
        )


class EddingtonApproximation(TwoStreamClosure):
    """
    Eddington closure without delta scaling.

    Parameters
    ----------
    albedo_epsilon : float
        Limit on the single scattering albedo, see ``TwoStreamClosure``
    use_jax : bool
        Evaluate the coefficients with a jitted ``jax.vmap`` over columns
    """

    method = TwoStreamMethod.EDDINGTON
    mu = 0.5

    def __init__(self, albedo_epsilon: float = DEFAULT_ALBEDO_EPSILON, use_jax: bool = False):
        super().__init__(albedo_epsilon)
        self.use_jax = use_jax

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(albedo_epsilon={self.albedo_epsilon}, "
            f"use_jax={self.use_jax})"
        )

    def gammas(self, omega, g, mu0):
        gamma1 = (7.0 - omega * (4.0 + 3.0 * g)) / 4.0
        gamma2 = -(1.0 - omega * (4.0 - 3.0 * g)) / 4.0
        gamma3 = (2.0 - 3.0 * g * mu0) / 4.0
        gamma4 = 1.0 - gamma3
        return gamma1, gamma2, gamma3, gamma4

    def coefficients(self, omega, g, mu0):
        if not self.use_jax:
            return super().coefficients(omega, g, mu0)
        return eddington_coefficients_jax(jnp.asarray(omega), jnp.asarray(g), jnp.asarray(mu0))


class DeltaEddingtonApproximation(EddingtonApproximation):
    """
    Eddington closure applied to delta-scaled optical properties.

    The forward diffraction peak (fraction g**2 of the scattered light) is
    removed from the phase function and treated as unscattered.
    """

    method = TwoStreamMethod.DELTA_EDDINGTON

    def prepare(self, state: RadiatorState) -> RadiatorState:
        return delta_scale(state)


class QuadratureApproximation(TwoStreamClosure):
    """Quadrature closure, mu = 1/sqrt(3)."""

    method = TwoStreamMethod.QUADRATURE
    mu = 1.0 / np.sqrt(3.0)

    def gammas(self, omega, g, mu0):
        sqrt3 = np.sqrt(3.0)
        gamma1 = sqrt3 * (2.0 - omega * (1.0 + g)) / 2.0
        gamma2 = sqrt3 * omega * (1.0 - g) / 2.0
        gamma3 = (1.0 - sqrt3 * g * mu0) / 2.0
        gamma4 = 1.0 - gamma3
        return gamma1, gamma2, gamma3, gamma4


class HemisphericMeanApproximation(TwoStreamClosure):
    """Hemispheric mean closure, mu = 1/2."""

    method = TwoStreamMethod.HEMISPHERIC_MEAN
    mu = 0.5

    def gammas(self, omega, g, mu0):
        gamma1 = 2.0 - omega * (1.0 + g)
        gamma2 = omega * (1.0 - g)
        # Toon et al. leave gamma3 open for this closure; use the quadrature form
        gamma3 = (1.0 - np.sqrt(3.0) * g * mu0) / 2.0
        gamma4 = 1.0 - gamma3
        return gamma1, gamma2, gamma3, gamma4


_CLOSURES = {
    TwoStreamMethod.EDDINGTON: EddingtonApproximation,
    TwoStreamMethod.QUADRATURE: QuadratureApproximation,
    TwoStreamMethod.HEMISPHERIC_MEAN: HemisphericMeanApproximation,
    TwoStreamMethod.DELTA_EDDINGTON: DeltaEddingtonApproximation,
}


def get_closure(
    method: Union[TwoStreamMethod, str] = TwoStreamMethod.DELTA_EDDINGTON,
    albedo_epsilon: float = DEFAULT_ALBEDO_EPSILON,
    use_jax: bool = False,
) -> TwoStreamClosure:
    """
    Create a closure by method.

    Parameters
    ----------
    method : TwoStreamMethod or str
        Closure variant, e.g. 'delta_eddington'
    albedo_epsilon : float
        Limit on the single scattering albedo
    use_jax : bool
        Use the JAX coefficient path (Eddington family only)

    Returns
    -------
    closure : TwoStreamClosure
    """
    method = TwoStreamMethod(method)
    closure_class = _CLOSURES[method]
    if issubclass(closure_class, EddingtonApproximation):
        return closure_class(albedo_epsilon=albedo_epsilon, use_jax=use_jax)
    if use_jax:
        raise ValueError(f"JAX coefficients are not available for method '{method.value}'")
    return closure_class(albedo_epsilon=albedo_epsilon)
