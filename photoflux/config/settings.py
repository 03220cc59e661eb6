"""
Solver configuration data structures.

Defines the configuration schema of the two-stream solver and its loading
from dictionaries, JSON and YAML files.
"""

from dataclasses import dataclass, field
from typing import Dict, Any
import json
import yaml

from photoflux.radiative_transfer.closures import DEFAULT_ALBEDO_EPSILON, TwoStreamMethod


@dataclass
class ClosureConfig:
    """Two-stream closure settings.

    Attributes:
        method: Closure name (eddington, quadrature, hemispheric_mean, delta_eddington)
        albedo_epsilon: Single scattering albedo is limited to 1 - albedo_epsilon
        use_jax: Evaluate the closure coefficients with JAX (Eddington family only)
    """
    method: str = "delta_eddington"
    albedo_epsilon: float = DEFAULT_ALBEDO_EPSILON
    use_jax: bool = False


@dataclass
class BoundaryConfig:
    """Boundary conditions at the top of the atmosphere and the surface.

    Attributes:
        surface_reflectivity: Lambertian surface reflectivity [0-1]
        incident_flux: Direct beam flux normal to the beam at TOA [W/(m²·m)]
        top_diffuse_flux: Diffuse downward flux entering at TOA [W/(m²·m)]
    """
    surface_reflectivity: float = 0.0
    incident_flux: float = 1.0
    top_diffuse_flux: float = 0.0


@dataclass
class SolverConfig:
    """Complete solver configuration.

    Example YAML input:
        closure:
          method: delta_eddington
        boundary:
          surface_reflectivity: 0.1
          incident_flux: 1.5
    """
    closure: ClosureConfig = field(default_factory=ClosureConfig)
    boundary: BoundaryConfig = field(default_factory=BoundaryConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "SolverConfig":
        """Create SolverConfig from a dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            SolverConfig instance
        """
        closure_dict = config_dict.get("closure", {}) or {}
        boundary_dict = config_dict.get("boundary", {}) or {}

        closure = ClosureConfig(
            method=closure_dict.get("method", "delta_eddington"),
            albedo_epsilon=float(closure_dict.get("albedo_epsilon", DEFAULT_ALBEDO_EPSILON)),
            use_jax=bool(closure_dict.get("use_jax", False)),
        )

        boundary = BoundaryConfig(
            surface_reflectivity=float(boundary_dict.get("surface_reflectivity", 0.0)),
            incident_flux=float(boundary_dict.get("incident_flux", 1.0)),
            top_diffuse_flux=float(boundary_dict.get("top_diffuse_flux", 0.0)),
        )

        return cls(closure=closure, boundary=boundary)

    @classmethod
    def from_json(cls, json_path: str) -> "SolverConfig":
        """Load configuration from a JSON file.

        Args:
            json_path: Path to JSON configuration file

        Returns:
            SolverConfig instance
        """
        with open(json_path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "SolverConfig":
        """Load configuration from a YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            SolverConfig instance
        """
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f)
        return cls.from_dict(config_dict or {})

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Configuration as nested dictionary
        """
        return {
            "closure": {
                "method": self.closure.method,
                "albedo_epsilon": self.closure.albedo_epsilon,
                "use_jax": self.closure.use_jax,
            },
            "boundary": {
                "surface_reflectivity": self.boundary.surface_reflectivity,
                "incident_flux": self.boundary.incident_flux,
                "top_diffuse_flux": self.boundary.top_diffuse_flux,
            },
        }

    def to_json(self, json_path: str, indent: int = 2) -> None:
        """Save configuration to JSON file.

        Args:
            json_path: Output file path
            indent: JSON indentation level
        """
        with open(json_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=indent)

    def to_yaml(self, yaml_path: str) -> None:
        """Save configuration to YAML file.

        Args:
            yaml_path: Output file path
        """
        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def validate(self) -> list:
        """Validate configuration parameters.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        valid_methods = [method.value for method in TwoStreamMethod]
        if self.closure.method not in valid_methods:
            errors.append(f"Invalid closure method: {self.closure.method}")
        elif self.closure.use_jax and self.closure.method not in ("eddington", "delta_eddington"):
            errors.append(f"use_jax is not available for closure method {self.closure.method}")

        if not (0 < self.closure.albedo_epsilon < 1):
            errors.append("albedo_epsilon must be between 0 and 1 (exclusive)")

        if not (0 <= self.boundary.surface_reflectivity <= 1):
            errors.append("surface reflectivity must be between 0 and 1")

        if self.boundary.incident_flux < 0:
            errors.append("incident flux must be non-negative")

        if self.boundary.top_diffuse_flux < 0:
            errors.append("top diffuse flux must be non-negative")

        return errors
