"""
3D mesh reconstruction from processed point clouds.

This module contains greedy triangulation and voxel-cube surfacing, plus
mesh smoothing, simplification and hole filling.
"""

from .mesh_generator import (
    MeshGenerator,
    collapse_edge,
    find_shortest_edge,
    greedy_triangulation,
    is_valid_triangle,
)
from .hole_filling import ear_clipping, find_boundary_edges, trace_boundary_loops

__all__ = [
    "MeshGenerator",
    "collapse_edge",
    "find_shortest_edge",
    "greedy_triangulation",
    "is_valid_triangle",
    "ear_clipping",
    "find_boundary_edges",
    "trace_boundary_loops",
]
