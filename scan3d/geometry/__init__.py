"""
Geometry primitives: colored points, point clouds, meshes and voxel grids.
"""

from .primitives import ColoredPoint, PointCloud, Vertex, Mesh, apply_affine
from .voxel_grid import VoxelGrid

__all__ = [
    "ColoredPoint",
    "PointCloud",
    "Vertex",
    "Mesh",
    "VoxelGrid",
    "apply_affine",
]
