#!/usr/bin/env python3
"""
Brute-force k-nearest-neighbor queries over point arrays.

Each query scans every point (O(N log N)); there is no spatial index.
Points located exactly at the query position are never returned, so a
point is not its own neighbor and neither are its exact duplicates.
"""

from typing import Tuple

import numpy as np
from scipy.spatial.distance import cdist


def nearest_neighbor_indices(
    positions: np.ndarray, query, k: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Indices and distances of the k nearest points to ``query``.

    Args:
        positions: (N, 3) point positions
        query: (3,) query position
        k: number of neighbors requested

    Returns:
        (indices, distances) sorted ascending by distance, ties in index
        order. Fewer than k entries when fewer eligible points exist.
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    query = np.asarray(query, dtype=np.float64).reshape(1, 3)
    if len(positions) == 0 or k <= 0:
        return np.zeros(0, dtype=np.int64), np.zeros(0)

    distances = cdist(query, positions)[0]
    eligible = np.flatnonzero(np.any(positions != query, axis=1))
    order = np.argsort(distances[eligible], kind="stable")[:k]
    indices = eligible[order]
    return indices, distances[indices]


def find_nearest_neighbors(positions: np.ndarray, query, k: int) -> np.ndarray:
    """Positions of the k nearest neighbors of ``query`` as a (<=k, 3) array."""
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    indices, _ = nearest_neighbor_indices(positions, query, k)
    return positions[indices]
