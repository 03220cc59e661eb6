"""
Configuration management for photoflux solvers.

This module provides:
- SolverConfig: Data class for solver settings
- ClosureConfig, BoundaryConfig: Its sections
"""

from photoflux.config.settings import SolverConfig, ClosureConfig, BoundaryConfig

__all__ = [
    "SolverConfig",
    "ClosureConfig",
    "BoundaryConfig",
]
