"""
Per-layer optical properties of the absorbers and scatterers in a column batch,
and delta scaling of those properties.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np


def _as_layer_array(values) -> np.ndarray:
    # 1-D input is one column of layers
    values = np.asarray(values, dtype=float)
    if values.ndim == 0:
        return values.reshape(1, 1)
    if values.ndim == 1:
        return values[:, np.newaxis]
    if values.ndim != 2:
        raise ValueError(f"Expected (n_layers, n_columns) array, got {values.ndim}-D")
    return values


@dataclass
class RadiatorState:
    """
    Optical properties of every layer of every column at one wavelength.

    Layers follow the altitude grid order, so index 0 is the layer
    touching the surface.

    Attributes
    ----------
    optical_depth : ndarray
        Layer optical depth (>= 0), shape (n_layers, n_columns)
    single_scattering_albedo : ndarray
        Fraction of extinction that is scattering, in [0, 1]
    asymmetry_parameter : ndarray
        Mean cosine of the scattering angle, in [0, 1]
    """

    optical_depth: np.ndarray
    single_scattering_albedo: np.ndarray
    asymmetry_parameter: np.ndarray

    def __post_init__(self):
        self.optical_depth = _as_layer_array(self.optical_depth)
        self.single_scattering_albedo = _as_layer_array(self.single_scattering_albedo)
        self.asymmetry_parameter = _as_layer_array(self.asymmetry_parameter)

        shape = self.optical_depth.shape
        if (
            self.single_scattering_albedo.shape != shape
            or self.asymmetry_parameter.shape != shape
        ):
            raise ValueError(
                "Radiator state arrays must share one shape, got "
                f"{shape}, {self.single_scattering_albedo.shape}, "
                f"{self.asymmetry_parameter.shape}"
            )
        if np.any(~np.isfinite(self.optical_depth)) or np.any(self.optical_depth < 0):
            raise ValueError("Optical depth must be finite and non-negative")
        # written so that NaN fails the range checks
        omega, g = self.single_scattering_albedo, self.asymmetry_parameter
        if not np.all((omega >= 0) & (omega <= 1)):
            raise ValueError("Single scattering albedo must lie in [0, 1]")
        if not np.all((g >= 0) & (g <= 1)):
            raise ValueError("Asymmetry parameter must lie in [0, 1]")

    @property
    def number_of_layers(self) -> int:
        return self.optical_depth.shape[0]

    @property
    def number_of_columns(self) -> int:
        return self.optical_depth.shape[1]

    def copy(self) -> "RadiatorState":
        return RadiatorState(
            optical_depth=self.optical_depth.copy(),
            single_scattering_albedo=self.single_scattering_albedo.copy(),
            asymmetry_parameter=self.asymmetry_parameter.copy(),
        )

    def flipped(self) -> "RadiatorState":
        """Return the state with the layer order reversed."""
        return RadiatorState(
            optical_depth=self.optical_depth[::-1].copy(),
            single_scattering_albedo=self.single_scattering_albedo[::-1].copy(),
            asymmetry_parameter=self.asymmetry_parameter[::-1].copy(),
        )

    @classmethod
    def accumulate(cls, states: Sequence["RadiatorState"]) -> "RadiatorState":
        """
        Combine the optical properties of several radiators.

        Optical depths add; the albedo is weighted by extinction and the
        asymmetry parameter by scattering optical depth.

        Parameters
        ----------
        states : sequence of RadiatorState
            Radiators sharing one (n_layers, n_columns) shape

        Returns
        -------
        state : RadiatorState
            Accumulated radiator state
        """
        if not states:
            raise ValueError("Need at least one radiator state")

        shape = states[0].optical_depth.shape
        if any(state.optical_depth.shape != shape for state in states):
            raise ValueError("All radiator states must share one shape")

        total_tau = np.zeros(shape)
        scattering_tau = np.zeros(shape)
        weighted_g = np.zeros(shape)
        for state in states:
            tau_scattering = state.optical_depth * state.single_scattering_albedo
            total_tau += state.optical_depth
            scattering_tau += tau_scattering
            weighted_g += tau_scattering * state.asymmetry_parameter

        # Layers with no extinction (or no scattering) carry no weight
        safe_tau = np.where(total_tau > 0, total_tau, 1.0)
        safe_scattering = np.where(scattering_tau > 0, scattering_tau, 1.0)
        omega = np.where(total_tau > 0, scattering_tau / safe_tau, 0.0)
        g = np.where(scattering_tau > 0, weighted_g / safe_scattering, 0.0)

        return cls(
            optical_depth=total_tau,
            single_scattering_albedo=np.clip(omega, 0.0, 1.0),
            asymmetry_parameter=np.clip(g, 0.0, 1.0),
        )


def delta_scale(state: RadiatorState) -> RadiatorState:
    """
    Remove the forward diffraction peak from the phase function.

    Uses the forward scattering fraction f = g**2:

        omega' = omega (1 - f) / (1 - omega f)
        g'     = g / (1 + g)
        tau'   = tau (1 - omega f)

    The input state is left untouched. Scaling an already scaled state
    does not reproduce it, so this must run exactly once per solve.

    Parameters
    ----------
    state : RadiatorState
        Unscaled optical properties

    Returns
    -------
    scaled : RadiatorState
        New state holding the scaled optical properties

    References
    ----------
    Joseph, J.H., Wiscombe, W.J. and Weinman, J.A., 1976: The delta-Eddington
    approximation for radiative flux transfer. J. Atmos. Sci., 33, 2452-2459.
    """
    tau = state.optical_depth
    omega = state.single_scattering_albedo
    g = state.asymmetry_parameter

    f = g * g
    retained = 1.0 - omega * f

    # omega = g = 1 scatters everything into the peak; keep omega as is
    safe_retained = np.where(retained > 0, retained, 1.0)
    omega_scaled = np.where(retained > 0, omega * (1.0 - f) / safe_retained, omega)

    return RadiatorState(
        optical_depth=tau * retained,
        single_scattering_albedo=np.clip(omega_scaled, 0.0, 1.0),
        asymmetry_parameter=g / (1.0 + g),
    )
