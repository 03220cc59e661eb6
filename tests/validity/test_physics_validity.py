"""
Physics Validity Checks for photoflux

These tests verify that the radiation field is physically plausible by
checking it against known radiative transfer limits.

Reference: Toon et al. (1989), Joseph et al. (1976).
"""

import pytest
import numpy as np

from photoflux.atmosphere import ALTITUDE_GRID, WAVELENGTH_GRID, Grid
from photoflux.radiative_transfer import (
    DeltaEddingtonApproximation,
    EddingtonApproximation,
    HemisphericMeanApproximation,
    QuadratureApproximation,
    RadiatorState,
    TwoStreamSolver,
)


def make_grids(n_layers, n_columns=1):
    edges = np.tile(np.linspace(0.0, 500.0 * n_layers, n_layers + 1)[:, np.newaxis], (1, n_columns))
    return {
        ALTITUDE_GRID: Grid("altitude", "m", edges),
        WAVELENGTH_GRID: Grid("wavelength", "m", [550e-9, 560e-9]),
    }


def uniform_state(n_layers, tau, omega, g, n_columns=1):
    shape = (n_layers, n_columns)
    return RadiatorState(np.full(shape, tau), np.full(shape, omega), np.full(shape, g))


class TestDirectBeam:
    """Direct beam follows Beer-Lambert attenuation."""

    def test_vacuum_keeps_top_of_atmosphere_value(self):
        solver = TwoStreamSolver(incident_flux=1.3)
        field = solver.solve([0.6], make_grids(5), None, uniform_state(5, 0.0, 0.5, 0.3))

        np.testing.assert_array_equal(field.spectral_irradiance.direct[:, 0, 0], 0.6 * 1.3)
        np.testing.assert_array_equal(field.actinic_flux.direct[:, 0, 0], 1.3)

    @pytest.mark.parametrize("reflectivity", [0.0, 0.3])
    def test_vacuum_diffuse_field(self, reflectivity):
        solver = TwoStreamSolver(surface_reflectivity=reflectivity)
        field = solver.solve([0.6], make_grids(4), None, uniform_state(4, 0.0, 0.5, 0.3))

        irradiance = field.spectral_irradiance
        np.testing.assert_allclose(irradiance.downwelling[:, 0, 0], 0.0, atol=1e-10)
        np.testing.assert_allclose(irradiance.upwelling[:, 0, 0], reflectivity * 0.6, atol=1e-10)

    def test_pure_absorption(self):
        tau = np.array([0.3, 0.2, 0.5])  # surface layer first
        state = RadiatorState(tau, np.zeros(3), np.zeros(3))
        field = TwoStreamSolver(closure=EddingtonApproximation()).solve([0.5], make_grids(3), None, state)

        tau_above = np.array([1.0, 0.7, 0.5, 0.0])
        np.testing.assert_allclose(
            field.spectral_irradiance.direct[:, 0, 0], 0.5 * np.exp(-tau_above / 0.5)
        )
        # no scattering and a black surface leave no diffuse light
        np.testing.assert_array_equal(field.spectral_irradiance.upwelling, 0.0)
        np.testing.assert_array_equal(field.spectral_irradiance.downwelling, 0.0)

    def test_delta_scaling_increases_direct_transmission(self):
        state = uniform_state(3, 0.5, 0.9, 0.8)
        plain = TwoStreamSolver(closure=EddingtonApproximation()).solve([0.7], make_grids(3), None, state)
        scaled = TwoStreamSolver().solve([0.7], make_grids(3), None, state)
        assert scaled.spectral_irradiance.direct[0, 0, 0] > plain.spectral_irradiance.direct[0, 0, 0]


class TestEnergyConservation:
    """Net flux is constant with altitude when nothing absorbs."""

    @pytest.mark.parametrize(
        "closure",
        [
            DeltaEddingtonApproximation(),
            EddingtonApproximation(),
            QuadratureApproximation(),
            HemisphericMeanApproximation(),
        ],
    )
    @pytest.mark.parametrize("cos_sza", [1.0, 0.6, 0.2])
    def test_conservative_scattering(self, closure, cos_sza):
        state = uniform_state(6, 0.5, 1.0, 0.5)
        field = TwoStreamSolver(closure=closure).solve([cos_sza], make_grids(6), None, state)

        net = field.net_irradiance()[:, 0]
        # all incoming flux is either reflected to space or absorbed by the black surface
        np.testing.assert_allclose(net, net[-1], atol=1e-4 * cos_sza)
        reflected = field.spectral_irradiance.upwelling[-1, 0, 0]
        assert 0 < reflected < cos_sza

    def test_absorption_reduces_net_flux_downward(self):
        state = uniform_state(6, 0.4, 0.8, 0.6)
        field = TwoStreamSolver(surface_reflectivity=0.2).solve([0.7], make_grids(6), None, state)

        net = field.net_irradiance()[:, 0]
        assert np.all(np.diff(net) >= -1e-12)
        assert net[-1] <= 0.7


class TestBoundaries:
    """Effects of the surface and of thick layers."""

    def test_brighter_surface_reflects_more(self):
        state = uniform_state(4, 0.3, 0.6, 0.4, n_columns=3)
        field = TwoStreamSolver().solve(
            [0.8, 0.8, 0.8], make_grids(4, 3), None, state
        )
        dark = field.spectral_irradiance.upwelling[-1, 0, 0]

        solver = TwoStreamSolver(surface_reflectivity=0.0)
        bright = []
        for reflectivity in (0.2, 0.6):
            solver.surface_reflectivity = reflectivity
            bright.append(solver.solve([0.8], make_grids(4), None, uniform_state(4, 0.3, 0.6, 0.4)))

        assert dark < bright[0].spectral_irradiance.upwelling[-1, 0, 0]
        assert bright[0].spectral_irradiance.upwelling[-1, 0, 0] < bright[1].spectral_irradiance.upwelling[-1, 0, 0]

    def test_optically_thick_column(self):
        tau = np.array([1e3, 1e3, 1e3, 0.1])
        state = RadiatorState(tau, np.full(4, 0.9), np.full(4, 0.5))

        with np.errstate(over="raise", divide="raise", invalid="raise"):
            field = TwoStreamSolver(surface_reflectivity=0.5).solve([0.5], make_grids(4), None, state)

        for name, array in field.arrays():
            assert np.all(np.isfinite(array)), name
        assert field.spectral_irradiance.direct[0, 0, 0] == 0.0
        assert field.spectral_irradiance.downwelling[0, 0, 0] == pytest.approx(0.0, abs=1e-12)
        assert field.spectral_irradiance.upwelling[-1, 0, 0] > 0

    def test_actinic_flux_exceeds_irradiance(self):
        field = TwoStreamSolver().solve([0.5], make_grids(3), None, uniform_state(3, 0.4, 0.7, 0.3))
        actinic = field.actinic_flux
        irradiance = field.spectral_irradiance
        assert np.all(actinic.direct >= irradiance.direct)
        assert np.all(actinic.downwelling >= irradiance.downwelling - 1e-12)
        assert np.all(actinic.upwelling >= irradiance.upwelling - 1e-12)


class TestResonance:
    """Fields stay continuous across the lambda = 1/mu0 resonance."""

    # Eddington with omega = 0.5 and g = 0 has lambda**2 = 1.5 exactly
    LAMBDA_SQUARED = 1.5

    @staticmethod
    def solve_layer(denominator, omega=0.5):
        # mu0 chosen so that lambda**2 - 1/mu0**2 equals the given denominator
        mu0 = 1.0 / np.sqrt(TestResonance.LAMBDA_SQUARED - denominator)
        solver = TwoStreamSolver(closure=EddingtonApproximation(), surface_reflectivity=0.2)
        return solver.solve([mu0], make_grids(1), None, uniform_state(1, 1.0, omega, 0.0))

    def assert_fields_close(self, field, reference):
        for (name, array), (_, expected) in zip(field.arrays(), reference.arrays()):
            np.testing.assert_allclose(array, expected, rtol=1e-3, atol=1e-8, err_msg=name)

    @pytest.mark.parametrize("denominator", [5e-7, -5e-7, 0.0])
    @pytest.mark.parametrize("reference_denominator", [2e-6, -2e-6])
    def test_continuous_in_solar_angle(self, denominator, reference_denominator):
        field = self.solve_layer(denominator)
        reference = self.solve_layer(reference_denominator)
        self.assert_fields_close(field, reference)

    @pytest.mark.parametrize("delta", [1e-5, -1e-5])
    def test_continuous_in_albedo(self, delta):
        # omega = 0.5 +- delta moves lambda**2 by -+3 delta, well off resonance
        field = self.solve_layer(0.0)
        reference = self.solve_layer(0.0, omega=0.5 + delta)
        self.assert_fields_close(field, reference)

    def test_resonant_field_is_plausible(self):
        field = self.solve_layer(0.0)
        mu0 = 1.0 / np.sqrt(self.LAMBDA_SQUARED)

        upwelling_top = field.spectral_irradiance.upwelling[-1, 0, 0]
        assert 0.02 < upwelling_top < mu0
        assert np.all(field.spectral_irradiance.downwelling[:, 0, 0] > -1e-8)
        assert np.all(np.isfinite(field.net_irradiance()))
