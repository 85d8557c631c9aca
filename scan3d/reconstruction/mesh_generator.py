#!/usr/bin/env python3
"""
Mesh Generation from Point Clouds

Surface reconstruction and mesh post-processing:
- Greedy triangulation of unorganized points
- Voxel-cube surfacing (one independent cube per occupied voxel)
- Laplacian mesh smoothing
- Shortest-edge collapse simplification
- Boundary detection and hole filling

Both reconstruction methods are deliberately simple and order dependent;
neither is a Delaunay or Poisson reconstruction.

Author: Scan Processing Team
"""

import logging
from typing import List, Tuple

import numpy as np

from ..geometry.primitives import Mesh, PointCloud
from ..geometry.voxel_grid import VoxelGrid
from ..processing.point_cloud import InvalidParameterError
from .hole_filling import ear_clipping, find_boundary_edges, trace_boundary_loops

logger = logging.getLogger(__name__)

# Minimum cross product magnitude for a triangle to count as non-degenerate
MIN_TRIANGLE_AREA = 1e-6

# Cube corner offsets in units of half the voxel size
CUBE_CORNERS = np.array([
    [-1, -1, -1],
    [1, -1, -1],
    [1, 1, -1],
    [-1, 1, -1],
    [-1, -1, 1],
    [1, -1, 1],
    [1, 1, 1],
    [-1, 1, 1],
], dtype=np.float64)

# Two triangles per cube face: front, back, left, right, top, bottom
CUBE_FACES = np.array([
    0, 1, 2, 0, 2, 3,
    4, 6, 5, 4, 7, 6,
    0, 3, 7, 0, 7, 4,
    1, 5, 6, 1, 6, 2,
    3, 2, 6, 3, 6, 7,
    0, 4, 5, 0, 5, 1,
], dtype=np.int64)


def is_valid_triangle(v1: np.ndarray, v2: np.ndarray, v3: np.ndarray) -> bool:
    """True when the triangle's cross product magnitude exceeds MIN_TRIANGLE_AREA."""
    return float(np.linalg.norm(np.cross(v2 - v1, v3 - v1))) > MIN_TRIANGLE_AREA


def greedy_triangulation(positions: np.ndarray, max_edge_length: float) -> List[int]:
    """
    Greedy, order-dependent triangulation.

    For every unused vertex i (ascending), take the first unused j > i within
    ``max_edge_length`` of i that has a first unused k > j within
    ``max_edge_length`` of both i and j forming a non-degenerate triangle.
    Emit (i, j, k), mark all three used and move on to the next i. Most
    points usually stay unused.
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    n = len(positions)
    faces: List[int] = []
    used = np.zeros(n, dtype=bool)

    for i in range(n - 2):
        if used[i]:
            continue

        dist_i = np.linalg.norm(positions - positions[i], axis=1)
        j_candidates = np.flatnonzero(~used[i + 1:] & (dist_i[i + 1:] <= max_edge_length)) + i + 1

        for j in j_candidates:
            k_range = slice(j + 1, n)
            dist_j = np.linalg.norm(positions[k_range] - positions[j], axis=1)
            cross = np.cross(positions[j] - positions[i], positions[k_range] - positions[i])
            valid = (
                ~used[k_range]
                & (dist_j <= max_edge_length)
                & (dist_i[k_range] <= max_edge_length)
                & (np.linalg.norm(cross, axis=1) > MIN_TRIANGLE_AREA)
            )
            hits = np.flatnonzero(valid)
            if len(hits) == 0:
                continue

            k = int(hits[0]) + j + 1
            faces.extend([i, int(j), k])
            used[[i, j, k]] = True
            break

    return faces


def find_shortest_edge(positions: np.ndarray, faces: np.ndarray) -> Tuple[int, int]:
    """First globally shortest edge, scanning (a, b), (b, c), (c, a) per face; (-1, -1) if none."""
    if len(faces) == 0:
        return -1, -1
    tris = faces.reshape(-1, 3)
    edges = tris[:, [0, 1, 1, 2, 2, 0]].reshape(-1, 2)
    lengths = np.linalg.norm(positions[edges[:, 0]] - positions[edges[:, 1]], axis=1)
    shortest = int(np.argmin(lengths))
    return int(edges[shortest, 0]), int(edges[shortest, 1])


def collapse_edge(positions: np.ndarray, faces: np.ndarray, v1: int, v2: int) -> np.ndarray:
    """
    Collapse edge (v1, v2) into v1.

    v1 moves to the edge midpoint (``positions`` is updated in place),
    triangles referencing both endpoints are removed and remaining
    references to v2 are redirected to v1. Returns the new face array.
    """
    positions[v1] = (positions[v1] + positions[v2]) * 0.5

    tris = faces.reshape(-1, 3)
    has_v1 = np.any(tris == v1, axis=1)
    has_v2 = np.any(tris == v2, axis=1)
    tris = tris[~(has_v1 & has_v2)].copy()
    tris[tris == v2] = v1
    return tris.reshape(-1)


class MeshGenerator:
    """Builds and post-processes triangle meshes from point clouds."""

    def generate_mesh_from_point_cloud(self, cloud: PointCloud, max_edge_length: float = 0.1) -> Mesh:
        """Greedy-triangulate the cloud; every input point becomes a vertex."""
        if len(cloud) < 3:
            logger.debug(f"Greedy meshing skipped: only {len(cloud)} points")
            return Mesh()

        faces = greedy_triangulation(cloud.positions, max_edge_length)
        mesh = Mesh(
            positions=cloud.positions.copy(),
            faces=np.asarray(faces, dtype=np.uint32),
            normals=cloud.normals.copy(),
            colors=cloud.colors.copy(),
        )
        mesh.calculate_bounding_box()
        mesh.calculate_normals()

        logger.info(
            f"Greedy triangulation: {mesh.vertex_count} vertices, {mesh.triangle_count} triangles "
            f"(max edge {max_edge_length})"
        )
        return mesh

    def create_voxel_grid(self, cloud: PointCloud, voxel_size: float) -> VoxelGrid:
        return VoxelGrid.from_points(cloud.positions, voxel_size)

    def generate_mesh_with_voxel_cubes(
        self, cloud: PointCloud, voxel_size: float = 0.01, iso_value: float = 0.0
    ) -> Mesh:
        """
        Emit one cube per occupied voxel.

        Cubes do not share vertices, so faces between neighboring occupied
        voxels appear twice. The last layer of the grid along each axis is
        not visited.
        """
        if voxel_size <= 0:
            raise InvalidParameterError(f"voxel_size must be positive, got {voxel_size}")
        if len(cloud) == 0:
            return Mesh()

        grid = self.create_voxel_grid(cloud, voxel_size)
        cells = grid.occupied_cells(iso_value)

        centers = grid.voxel_to_world(cells)
        half = voxel_size * 0.5
        positions = (centers[:, None, :] + CUBE_CORNERS[None, :, :] * half).reshape(-1, 3)

        base = (np.arange(len(cells), dtype=np.int64) * 8)[:, None]
        faces = (base + CUBE_FACES[None, :]).reshape(-1).astype(np.uint32)

        mesh = Mesh(positions=positions, faces=faces)
        mesh.calculate_bounding_box()
        mesh.calculate_normals()

        logger.info(
            f"Voxel surfacing: grid {grid.shape}, {len(cells)} occupied cells, "
            f"{mesh.triangle_count} triangles"
        )
        return mesh

    def smooth_mesh(self, mesh: Mesh, iterations: int = 3, lambda_: float = 0.5):
        """
        Laplacian smoothing in place.

        Each triangle contributes its other two vertices to every corner's
        neighbor average, so a neighbor shared by two triangles counts twice.
        Isolated vertices do not move.
        """
        if iterations < 0:
            raise InvalidParameterError(f"iterations must be non-negative, got {iterations}")

        tris = mesh.triangles().astype(np.int64)
        neighbor_counts = np.zeros(mesh.vertex_count)
        for corner in range(3):
            np.add.at(neighbor_counts, tris[:, corner], 2)
        connected = neighbor_counts > 0

        for _ in range(iterations):
            positions = mesh.positions
            # Neighbors only: the vertex's own position is not part of the sum
            sums = np.zeros_like(positions)
            for corner in range(3):
                others = positions[tris[:, (corner + 1) % 3]] + positions[tris[:, (corner + 2) % 3]]
                np.add.at(sums, tris[:, corner], others)

            averages = sums[connected] / neighbor_counts[connected, None]
            new_positions = positions.copy()
            new_positions[connected] = positions[connected] + (averages - positions[connected]) * lambda_
            mesh.positions = new_positions

        mesh.invalidate()
        mesh.calculate_normals()

    def simplify_mesh(self, mesh: Mesh, target_reduction: float = 0.5) -> Mesh:
        """
        Shortest-edge collapse until the triangle count reaches the target.

        Returns a new mesh; vertices orphaned by collapses are kept so
        indices stay stable.
        """
        target_triangles = int(mesh.triangle_count * (1.0 - target_reduction))

        positions = mesh.positions.copy()
        faces = mesh.faces.astype(np.int64)

        while len(faces) // 3 > target_triangles and len(faces) > 6:
            v1, v2 = find_shortest_edge(positions, faces)
            if v1 < 0:
                break
            faces = collapse_edge(positions, faces, v1, v2)

        simplified = Mesh(
            positions=positions,
            faces=faces.astype(np.uint32),
            normals=mesh.normals.copy(),
            colors=mesh.colors.copy(),
            tex_coords=mesh.tex_coords.copy(),
        )
        simplified.calculate_bounding_box()
        simplified.calculate_normals()

        logger.info(
            f"Simplified mesh: {mesh.triangle_count} -> {simplified.triangle_count} triangles "
            f"(target {target_triangles})"
        )
        return simplified

    def find_boundary_edges(self, mesh: Mesh) -> List[Tuple[int, int]]:
        return find_boundary_edges(mesh.faces)

    def fill_holes(self, mesh: Mesh) -> int:
        """Close every boundary loop in place; returns the number of triangles added."""
        loops = trace_boundary_loops(mesh.faces)
        new_faces: List[int] = []
        for loop in loops:
            new_faces.extend(ear_clipping(mesh.positions, loop))

        if new_faces:
            mesh.faces = np.concatenate([mesh.faces, np.asarray(new_faces, dtype=np.uint32)])
            mesh.invalidate()

        mesh.calculate_normals()
        added = len(new_faces) // 3
        logger.info(f"Hole filling: {len(loops)} boundary loops, {added} triangles added")
        return added
