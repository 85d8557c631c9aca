#!/usr/bin/env python3
"""
Point Cloud Processing

Cleanup and alignment of colored point clouds captured by a depth sensor:
- Voxel grid downsampling
- Surface normal estimation from k-nearest neighborhoods
- Statistical outlier removal
- Laplacian smoothing
- Merging of several clouds with simplified ICP registration

Every operation returns a new PointCloud and leaves its input untouched.
Insufficient input (too few points for a neighborhood) is passed through
unchanged rather than treated as an error.

Author: Scan Processing Team
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..geometry.primitives import PointCloud
from .icp import perform_icp
from .neighbors import find_nearest_neighbors, nearest_neighbor_indices

logger = logging.getLogger(__name__)

# Neighborhood size used by Laplacian smoothing
SMOOTHING_NEIGHBORS = 20

# Power iteration settings for normal estimation
POWER_ITERATION_STEPS = 10
POWER_ITERATION_SEED = (1.0, 1.0, 1.0)


class InvalidParameterError(ValueError):
    """Raised for processing parameters outside their valid range."""
    pass


def _map_points(func: Callable[[int], object], count: int, workers: int) -> list:
    """Evaluate func(i) for every point index, optionally on a thread pool."""
    if workers <= 1 or count < 2:
        return [func(i) for i in range(count)]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, range(count)))


def estimate_normal_from_neighbors(neighbors: np.ndarray) -> np.ndarray:
    """
    Approximate a surface normal from neighbor positions.

    Builds the (unnormalized) covariance of the neighbors around their
    centroid and runs a fixed number of power-iteration steps from
    (1, 1, 1). This tends toward the dominant eigenvector of the covariance,
    not the smallest one; the seed and step count are fixed so results are
    reproducible.
    """
    if len(neighbors) < 3:
        return np.array([0.0, 1.0, 0.0])

    centroid = neighbors.mean(axis=0)
    diff = neighbors - centroid
    covariance = diff.T @ diff

    vector = np.array(POWER_ITERATION_SEED)
    for _ in range(POWER_ITERATION_STEPS):
        candidate = covariance @ vector
        length = np.linalg.norm(candidate)
        if length > 0:
            vector = candidate / length

    return vector / np.linalg.norm(vector)


class PointCloudProcessor:
    """Point cloud filtering, smoothing and registration."""

    def __init__(self, workers: int = 1):
        """
        Args:
            workers: threads used for per-point neighbor queries (1 = serial)
        """
        self.workers = max(1, int(workers))

    def voxel_grid_filter(self, cloud: PointCloud, voxel_size: float = 0.005) -> PointCloud:
        """
        Downsample by averaging all points that fall into the same voxel.

        Cells are ``floor(coordinate / voxel_size)``. Output points appear in
        the order their cell was first seen in the input.
        """
        if voxel_size <= 0:
            raise InvalidParameterError(f"voxel_size must be positive, got {voxel_size}")
        if len(cloud) == 0:
            return cloud

        keys = np.floor(cloud.positions / voxel_size).astype(np.int64)
        _, first_index, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)
        inverse = np.asarray(inverse).reshape(-1)

        # Relabel groups by first appearance
        order = np.argsort(first_index, kind="stable")
        rank = np.empty_like(order)
        rank[order] = np.arange(len(order))
        groups = rank[inverse]

        n_cells = len(order)
        counts = np.bincount(groups, minlength=n_cells).astype(np.float64)[:, None]

        def group_mean(values: np.ndarray) -> np.ndarray:
            sums = np.zeros((n_cells, 3))
            np.add.at(sums, groups, values)
            return sums / counts

        positions = group_mean(cloud.positions)
        colors = group_mean(cloud.colors)
        normals = group_mean(cloud.normals)

        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0
        normals[nonzero] /= lengths[nonzero, None]

        logger.info(f"Voxel grid filter ({voxel_size}): {len(cloud)} -> {n_cells} points")
        return PointCloud(positions, colors, normals)

    def estimate_normals(self, cloud: PointCloud, neighborhood_size: int = 20) -> PointCloud:
        """
        Estimate a normal per point from its k nearest neighbors.

        A neighborhood smaller than 3 can never yield an estimate, so the
        cloud is returned unchanged in that case.
        """
        if len(cloud) < 3 or neighborhood_size < 3:
            logger.debug(
                f"Normal estimation skipped: {len(cloud)} points, k={neighborhood_size}"
            )
            return cloud

        positions = cloud.positions

        def normal_for(i: int) -> Optional[np.ndarray]:
            neighbors = find_nearest_neighbors(positions, positions[i], neighborhood_size)
            if len(neighbors) < 3:
                return None
            return estimate_normal_from_neighbors(neighbors)

        results = _map_points(normal_for, len(cloud), self.workers)

        normals = cloud.normals.copy()
        estimated = 0
        for i, normal in enumerate(results):
            if normal is not None:
                normals[i] = normal
                estimated += 1

        logger.info(f"Estimated normals for {estimated}/{len(cloud)} points (k={neighborhood_size})")
        return cloud.with_normals(normals)

    def mean_distances(self, cloud: PointCloud, k: int) -> np.ndarray:
        """Mean distance from every point to its k nearest neighbors (0.0 when it has none)."""
        positions = cloud.positions

        def mean_distance_for(i: int) -> float:
            _, distances = nearest_neighbor_indices(positions, positions[i], k)
            if len(distances) == 0:
                return 0.0
            return float(distances.mean())

        return np.array(_map_points(mean_distance_for, len(cloud), self.workers), dtype=np.float64)

    def remove_statistical_outliers(
        self, cloud: PointCloud, mean_k: int = 20, std_ratio: float = 2.0
    ) -> PointCloud:
        """
        Drop points whose mean neighbor distance exceeds mean + std_ratio * stddev.

        Statistics use the population standard deviation over the whole cloud.
        Clouds smaller than ``mean_k`` are returned unchanged.
        """
        if mean_k <= 0:
            raise InvalidParameterError(f"mean_k must be positive, got {mean_k}")
        if len(cloud) < mean_k:
            logger.debug(f"Outlier removal skipped: {len(cloud)} points < mean_k={mean_k}")
            return cloud

        distances = self.mean_distances(cloud, mean_k)
        mean_distance = distances.mean()
        std_dev = np.sqrt(np.mean((distances - mean_distance) ** 2))
        threshold = mean_distance + std_ratio * std_dev

        keep = distances <= threshold
        filtered = cloud.select(keep)

        logger.info(
            f"Outlier removal: {len(cloud)} -> {len(filtered)} points "
            f"(threshold {threshold:.5f})"
        )
        return filtered

    def laplacian_smoothing(
        self, cloud: PointCloud, iterations: int = 3, lambda_: float = 0.5
    ) -> PointCloud:
        """
        Move every point toward the mean of its nearest neighbors.

        Each iteration queries neighbors in the previous iteration's output.
        Colors and normals are carried over unchanged.
        """
        if iterations < 0:
            raise InvalidParameterError(f"iterations must be non-negative, got {iterations}")

        smoothed = cloud.copy()
        for iteration in range(iterations):
            current = smoothed.positions

            def smoothed_position(i: int) -> np.ndarray:
                neighbors = find_nearest_neighbors(current, current[i], SMOOTHING_NEIGHBORS)
                if len(neighbors) == 0:
                    return current[i]
                average = neighbors.mean(axis=0)
                return current[i] + (average - current[i]) * lambda_

            new_positions = np.array(
                _map_points(smoothed_position, len(smoothed), self.workers)
            ).reshape(-1, 3)
            smoothed = smoothed.with_positions(new_positions)
            logger.debug(f"Laplacian smoothing iteration {iteration + 1}/{iterations} done")

        return smoothed

    def merge_point_clouds(
        self,
        clouds: Sequence[PointCloud],
        use_icp: bool = True,
        max_iterations: int = 20,
        convergence_threshold: float = 0.001,
    ) -> PointCloud:
        """
        Merge clouds in order, optionally aligning each one onto the running merge.

        Each incoming cloud is registered against everything merged so far
        before it is appended.
        """
        if len(clouds) == 0:
            return PointCloud()
        if len(clouds) == 1:
            return clouds[0]

        merged: List[PointCloud] = [clouds[0]]
        merged_positions = clouds[0].positions

        for index, current in enumerate(clouds[1:], start=1):
            if use_icp and len(merged_positions) > 0 and len(current) > 0:
                result = perform_icp(
                    current.positions,
                    merged_positions,
                    max_iterations=max_iterations,
                    convergence_threshold=convergence_threshold,
                )
                current = current.transformed(result.transformation)
                logger.info(
                    f"Cloud {index}: aligned with translation {np.round(result.translation, 5).tolist()}"
                )

            merged.append(current)
            merged_positions = np.vstack([merged_positions, current.positions])

        result_cloud = PointCloud.concatenate(merged)
        logger.info(f"Merged {len(clouds)} clouds into {len(result_cloud)} points")
        return result_cloud
