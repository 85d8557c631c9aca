"""
Test suite and synthetic data generators.

Tools for generating test data and validating the processing pipeline.
"""

from .create_test_data import (
    create_grid_mesh,
    create_grid_patch,
    create_sphere_scan,
    create_tetrahedron_mesh,
)

__all__ = [
    "create_grid_mesh",
    "create_grid_patch",
    "create_sphere_scan",
    "create_tetrahedron_mesh",
]
