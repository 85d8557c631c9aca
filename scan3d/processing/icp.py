#!/usr/bin/env python3
"""
Simplified Iterative Closest Point registration.

Each iteration pairs every source point with its nearest target point and
moves the source by the difference of the paired centroids. Only a
translation is estimated; the returned 4x4 matrix never carries rotation.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.spatial.distance import cdist

from ..geometry.primitives import apply_affine

logger = logging.getLogger(__name__)

# Rows of the source processed per cdist call when searching correspondences
CORRESPONDENCE_CHUNK = 2048


class RegistrationError(Exception):
    """Raised when registration cannot be attempted."""
    pass


@dataclass
class Correspondences:
    """Source points paired with their nearest target points."""
    source: np.ndarray
    target: np.ndarray
    target_indices: np.ndarray

    def __len__(self) -> int:
        return len(self.source)

    @property
    def mean_distance(self) -> float:
        if len(self.source) == 0:
            return 0.0
        return float(np.linalg.norm(self.source - self.target, axis=1).mean())


@dataclass
class IcpResult:
    """Outcome of a registration run."""
    transformation: np.ndarray
    iterations: int
    converged: bool
    mean_distance: float

    @property
    def translation(self) -> np.ndarray:
        return self.transformation[:3, 3].copy()


def transform_points(positions: np.ndarray, transformation: np.ndarray) -> np.ndarray:
    """Apply a 4x4 affine transformation to (N, 3) positions."""
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    return apply_affine(positions, transformation)


def find_correspondences(source: np.ndarray, target: np.ndarray) -> Correspondences:
    """Pair each source point with the first nearest target point in scan order."""
    nearest = np.empty(len(source), dtype=np.int64)
    for start in range(0, len(source), CORRESPONDENCE_CHUNK):
        block = source[start:start + CORRESPONDENCE_CHUNK]
        nearest[start:start + len(block)] = np.argmin(cdist(block, target), axis=1)
    return Correspondences(source.copy(), target[nearest], nearest)


def estimate_translation(correspondences: Correspondences) -> np.ndarray:
    """Translation-only transform mapping the paired source centroid onto the target centroid."""
    transformation = np.eye(4)
    if len(correspondences) == 0:
        return transformation
    transformation[:3, 3] = (
        correspondences.target.mean(axis=0) - correspondences.source.mean(axis=0)
    )
    return transformation


def perform_icp(
    source: np.ndarray,
    target: np.ndarray,
    max_iterations: int = 20,
    convergence_threshold: float = 0.001,
) -> IcpResult:
    """
    Estimate the transform aligning ``source`` onto ``target``.

    Args:
        source: (N, 3) positions to move
        target: (M, 3) reference positions, must be non-empty
        max_iterations: iteration cap
        convergence_threshold: stop once the mean distance between the moved
            source points and their paired targets falls below this value.
            The check runs after every update including the first, so
            already-aligned clouds stop after one iteration; the
            accumulated transform is the same as when iterating further.

    Returns:
        IcpResult with the accumulated 4x4 transformation
    """
    source = np.asarray(source, dtype=np.float64).reshape(-1, 3)
    target = np.asarray(target, dtype=np.float64).reshape(-1, 3)

    if len(target) == 0:
        raise RegistrationError("Cannot register against an empty target cloud")

    transformation = np.eye(4)
    if len(source) == 0:
        return IcpResult(transformation, 0, True, 0.0)

    current = source.copy()
    mean_distance = float("inf")
    iterations = 0
    converged = False

    for iteration in range(max_iterations):
        iterations = iteration + 1
        correspondences = find_correspondences(current, target)

        step = estimate_translation(correspondences)
        current = transform_points(current, step)
        transformation = transformation @ step

        moved = Correspondences(current, correspondences.target, correspondences.target_indices)
        mean_distance = moved.mean_distance
        logger.debug(f"ICP iteration {iterations}: mean distance {mean_distance:.6f}")

        if mean_distance < convergence_threshold:
            converged = True
            break

    if converged:
        logger.info(f"ICP converged after {iterations} iterations (mean distance {mean_distance:.6f})")
    else:
        logger.info(f"ICP stopped at iteration cap {max_iterations} (mean distance {mean_distance:.6f})")

    return IcpResult(transformation, iterations, converged, mean_distance)
