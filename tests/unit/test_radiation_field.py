"""
Unit tests for radiation field containers and reconstruction.
"""

import pytest
import numpy as np

from photoflux.radiative_transfer import EddingtonApproximation, RadiationField, RadiatorState
from photoflux.radiative_transfer.radiation_field import compute_radiation_field
from photoflux.radiative_transfer.sources import compute_source_terms


class TestRadiationField:
    """Tests for the RadiationField container."""

    def test_zeros(self):
        field = RadiationField.zeros(5, 3, 2)
        assert field.shape == (5, 3, 2)
        for _, array in field.arrays():
            assert array.shape == (5, 3, 2)
            assert np.all(array == 0.0)

    def test_arrays_names(self):
        names = [name for name, _ in RadiationField.zeros(2, 1).arrays()]
        assert names == [
            "spectral_irradiance.direct",
            "spectral_irradiance.upwelling",
            "spectral_irradiance.downwelling",
            "actinic_flux.direct",
            "actinic_flux.upwelling",
            "actinic_flux.downwelling",
        ]

    def test_net_irradiance(self):
        field = RadiationField.zeros(2, 1, 2)
        field.spectral_irradiance.direct[..., 1] = 0.6
        field.spectral_irradiance.downwelling[..., 1] = 0.3
        field.spectral_irradiance.upwelling[..., 1] = 0.2
        np.testing.assert_allclose(field.net_irradiance(1), 0.7)
        np.testing.assert_allclose(field.net_irradiance(0), 0.0)


class TestComputeRadiationField:
    """Tests for reconstruction from solved amplitudes."""

    @pytest.fixture
    def two_layers(self):
        # top-down order, as the solver hands it over
        state = RadiatorState([[0.2], [0.8]], [[0.0], [0.0]], [[0.0], [0.0]])
        params = EddingtonApproximation().compute(state, [0.5])
        sources = compute_source_terms(params, state, 2.0, 0.0)
        return params, sources

    def test_direct_beam_in_grid_order(self, two_layers):
        params, sources = two_layers
        field = RadiationField.zeros(3, 1)
        compute_radiation_field(params, sources, np.zeros((4, 1)), 2.0, field)

        # level 0 is the surface
        transmission = np.exp(-np.array([1.0, 0.2, 0.0]) / 0.5)
        np.testing.assert_allclose(field.actinic_flux.direct[:, 0, 0], 2.0 * transmission)
        np.testing.assert_allclose(field.spectral_irradiance.direct[:, 0, 0], 0.5 * 2.0 * transmission)

    def test_diffuse_actinic_from_irradiance(self, two_layers):
        params, sources = two_layers
        field = RadiationField.zeros(3, 1)
        solution = np.array([[0.1], [0.05], [0.02], [0.01]])
        compute_radiation_field(params, sources, solution, 2.0, field)

        mu = params.mu[0, 0]
        np.testing.assert_allclose(
            field.actinic_flux.upwelling[:, 0, 0], field.spectral_irradiance.upwelling[:, 0, 0] / mu
        )
        np.testing.assert_allclose(
            field.actinic_flux.downwelling[:, 0, 0], field.spectral_irradiance.downwelling[:, 0, 0] / mu
        )

    def test_only_requested_wavelength_written(self, two_layers):
        params, sources = two_layers
        field = RadiationField.zeros(3, 1, 3)
        compute_radiation_field(params, sources, np.zeros((4, 1)), 2.0, field, wavelength_index=1)

        assert np.all(field.actinic_flux.direct[..., 1] > 0)
        assert np.all(field.actinic_flux.direct[..., 0] == 0)
        assert np.all(field.actinic_flux.direct[..., 2] == 0)
