#!/usr/bin/env python3
"""
Dense voxel occupancy grid used by voxel-cube surfacing.
"""

import math
from typing import Tuple

import numpy as np


class VoxelGrid:
    """Dense 3D array of occupancy values with a world-space origin and cell size."""

    def __init__(self, width: int, height: int, depth: int, voxel_size: float, origin):
        self.width = int(width)
        self.height = int(height)
        self.depth = int(depth)
        self.voxel_size = float(voxel_size)
        self.origin = np.asarray(origin, dtype=np.float64).reshape(3)
        self.values = np.zeros((self.width, self.height, self.depth), dtype=np.float32)

    @classmethod
    def from_points(cls, positions: np.ndarray, voxel_size: float) -> "VoxelGrid":
        """
        Build a grid covering the points' bounding box padded by one voxel.

        Every cell that receives at least one point is set to 1.0.
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        lower = positions.min(axis=0) - voxel_size
        upper = positions.max(axis=0) + voxel_size
        size = upper - lower
        dims = [int(math.ceil(extent / voxel_size)) for extent in size]

        grid = cls(dims[0], dims[1], dims[2], voxel_size, lower)

        cells = grid.world_to_voxel(positions).astype(np.int64)
        valid = grid.is_valid_coordinate(cells)
        cells = cells[valid]
        grid.values[cells[:, 0], cells[:, 1], cells[:, 2]] = 1.0
        return grid

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.width, self.height, self.depth

    def is_valid_coordinate(self, coord) -> np.ndarray:
        """Bounds check for one (3,) or many (N, 3) integer coordinates."""
        coord = np.asarray(coord)
        upper = np.array(self.shape)
        return np.all((coord >= 0) & (coord < upper), axis=-1)

    def get_value(self, x: int, y: int, z: int) -> float:
        if not self.is_valid_coordinate((x, y, z)):
            return 0.0
        return float(self.values[x, y, z])

    def set_value(self, x: int, y: int, z: int, value: float):
        if self.is_valid_coordinate((x, y, z)):
            self.values[x, y, z] = value

    def world_to_voxel(self, world_pos) -> np.ndarray:
        """Fractional cell coordinate of a world position."""
        return (np.asarray(world_pos, dtype=np.float64) - self.origin) / self.voxel_size

    def voxel_to_world(self, voxel_pos) -> np.ndarray:
        return self.origin + np.asarray(voxel_pos, dtype=np.float64) * self.voxel_size

    def occupied_cells(self, iso_value: float, exclude_upper_layer: bool = True) -> np.ndarray:
        """
        Integer coordinates of cells whose value exceeds ``iso_value``.

        Cells are returned in x, y, z lexicographic order. With
        ``exclude_upper_layer`` the last layer along each axis is skipped.
        """
        values = self.values
        if exclude_upper_layer:
            values = values[:-1, :-1, :-1]
        return np.argwhere(values > iso_value)
