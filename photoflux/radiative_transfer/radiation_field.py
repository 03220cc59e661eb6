"""
Radiation field containers and reconstruction from the solved flux system.
"""

from dataclasses import dataclass

import numpy as np

from photoflux.radiative_transfer.closures import SolutionParameters
from photoflux.radiative_transfer.sources import SourceTerms


@dataclass
class RadiationComponents:
    """
    Direct, upwelling and downwelling parts of one radiation quantity.

    Attributes
    ----------
    direct : ndarray
        Unscattered solar beam, shape (n_levels, n_columns, n_wavelengths)
    upwelling : ndarray
        Diffuse upward component
    downwelling : ndarray
        Diffuse downward component
    """

    direct: np.ndarray
    upwelling: np.ndarray
    downwelling: np.ndarray

    @classmethod
    def zeros(cls, n_levels: int, n_columns: int, n_wavelengths: int = 1) -> "RadiationComponents":
        shape = (n_levels, n_columns, n_wavelengths)
        return cls(direct=np.zeros(shape), upwelling=np.zeros(shape), downwelling=np.zeros(shape))


@dataclass
class RadiationField:
    """
    Spectral irradiance and actinic flux on the levels of a column batch.

    Levels follow the altitude grid edges, so level 0 is the surface and
    the last level is the top of the atmosphere.

    Attributes
    ----------
    spectral_irradiance : RadiationComponents
        Flux through a horizontal surface
    actinic_flux : RadiationComponents
        Flux onto a sphere (scalar flux)
    """

    spectral_irradiance: RadiationComponents
    actinic_flux: RadiationComponents

    @classmethod
    def zeros(cls, n_levels: int, n_columns: int, n_wavelengths: int = 1) -> "RadiationField":
        """Allocate an empty field for a column batch."""
        return cls(
            spectral_irradiance=RadiationComponents.zeros(n_levels, n_columns, n_wavelengths),
            actinic_flux=RadiationComponents.zeros(n_levels, n_columns, n_wavelengths),
        )

    @property
    def shape(self):
        """(n_levels, n_columns, n_wavelengths) shared by all components."""
        return self.spectral_irradiance.direct.shape

    def arrays(self):
        """Iterate over (name, array) for the six components."""
        for quantity in ("spectral_irradiance", "actinic_flux"):
            components = getattr(self, quantity)
            for direction in ("direct", "upwelling", "downwelling"):
                yield f"{quantity}.{direction}", getattr(components, direction)

    def net_irradiance(self, wavelength_index: int = 0) -> np.ndarray:
        """Downward minus upward irradiance, direct beam included."""
        irradiance = self.spectral_irradiance
        return (
            irradiance.direct[..., wavelength_index]
            + irradiance.downwelling[..., wavelength_index]
            - irradiance.upwelling[..., wavelength_index]
        )


def compute_radiation_field(
    params: SolutionParameters,
    sources: SourceTerms,
    solution: np.ndarray,
    incident_flux,
    radiation_field: RadiationField,
    wavelength_index: int = 0,
) -> RadiationField:
    """
    Turn solved eigen-solution amplitudes into irradiance and actinic flux.

    At the top of layer n, with amplitudes Y1 = Y[2n] and Y2 = Y[2n + 1]:

        F+ = Y1 e3 - Y2 e4 + C+(top)
        F- = Y1 e1 - Y2 e2 + C-(top)

    and at the bottom of the lowest layer:

        F+ = Y1 e1 + Y2 e2 + C+(bottom)
        F- = Y1 e3 + Y2 e4 + C-(bottom)

    The direct beam is mu0 F0 exp(-tau_c / mu0) for irradiance and
    F0 exp(-tau_c / mu0) for actinic flux; diffuse actinic flux is the
    diffuse irradiance divided by the closure cosine mu.

    Parameters
    ----------
    params : SolutionParameters
        Closure coefficients, top-down
    sources : SourceTerms
        Source terms of the same layers
    solution : ndarray
        Solved amplitudes, shape (2 n_layers, n_columns)
    incident_flux : float or array_like
        Direct beam flux normal to the beam at the top, per column
    radiation_field : RadiationField
        Output field, written in place at ``wavelength_index``
    wavelength_index : int
        Wavelength slot to fill

    Returns
    -------
    radiation_field : RadiationField
        The updated output field
    """
    n_columns = params.number_of_columns
    flux = np.broadcast_to(np.asarray(incident_flux, dtype=float), (n_columns,))
    e1, e2, e3, e4 = params.e1, params.e2, params.e3, params.e4
    y1 = solution[0::2]
    y2 = solution[1::2]

    n_levels = params.number_of_layers + 1
    upwelling = np.empty((n_levels, n_columns))
    downwelling = np.empty((n_levels, n_columns))

    upwelling[:-1] = y1 * e3 - y2 * e4 + sources.upwelling_top
    downwelling[:-1] = y1 * e1 - y2 * e2 + sources.downwelling_top
    upwelling[-1] = y1[-1] * e1[-1] + y2[-1] * e2[-1] + sources.upwelling_bottom[-1]
    downwelling[-1] = y1[-1] * e3[-1] + y2[-1] * e4[-1] + sources.downwelling_bottom[-1]

    direct_actinic = flux[np.newaxis, :] * sources.direct_transmission
    direct_irradiance = params.mu0[np.newaxis, :] * direct_actinic
    mu = params.mu[0][np.newaxis, :]

    # levels are solved top-down; the field follows the altitude grid
    irradiance = radiation_field.spectral_irradiance
    actinic = radiation_field.actinic_flux
    irradiance.direct[:, :, wavelength_index] = direct_irradiance[::-1]
    irradiance.upwelling[:, :, wavelength_index] = upwelling[::-1]
    irradiance.downwelling[:, :, wavelength_index] = downwelling[::-1]
    actinic.direct[:, :, wavelength_index] = direct_actinic[::-1]
    actinic.upwelling[:, :, wavelength_index] = (upwelling / mu)[::-1]
    actinic.downwelling[:, :, wavelength_index] = (downwelling / mu)[::-1]

    return radiation_field
