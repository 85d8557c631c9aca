"""
Point cloud processing: neighbor queries, filtering, smoothing and registration.

This module turns raw colored point arrays into cleaned, aligned point
clouds ready for surface reconstruction.
"""

from .neighbors import find_nearest_neighbors, nearest_neighbor_indices
from .icp import (
    Correspondences,
    IcpResult,
    RegistrationError,
    find_correspondences,
    perform_icp,
    transform_points,
)
from .point_cloud import (
    InvalidParameterError,
    PointCloudProcessor,
    estimate_normal_from_neighbors,
)

__all__ = [
    "find_nearest_neighbors",
    "nearest_neighbor_indices",
    "Correspondences",
    "IcpResult",
    "RegistrationError",
    "find_correspondences",
    "perform_icp",
    "transform_points",
    "InvalidParameterError",
    "PointCloudProcessor",
    "estimate_normal_from_neighbors",
]
