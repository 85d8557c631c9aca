#!/usr/bin/env python3
"""
Scan-to-Mesh Reconstruction Pipeline

Runs the full chain on one or more captured point clouds:
merge (with registration) -> downsample -> normals -> outlier removal ->
optional point smoothing -> meshing -> optional mesh smoothing,
simplification and hole filling.

Author: Scan Processing Team
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from .geometry.primitives import Mesh, PointCloud
from .processing.point_cloud import PointCloudProcessor
from .reconstruction.mesh_generator import MeshGenerator
from .settings import ProcessingConfig

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outputs and bookkeeping of a pipeline run."""
    cloud: PointCloud
    mesh: Mesh
    point_counts: Dict[str, int] = field(default_factory=dict)
    timings: Dict[str, float] = field(default_factory=dict)

    def summary(self) -> str:
        lines = [f"  {stage}: {count} points" for stage, count in self.point_counts.items()]
        lines.append(f"  mesh: {self.mesh.vertex_count} vertices, {self.mesh.triangle_count} triangles")
        lines.append(f"  total time: {sum(self.timings.values()):.2f}s")
        return "\n".join(lines)


class ReconstructionPipeline:
    """Configurable scan-to-mesh pipeline."""

    def __init__(self, config: Optional[ProcessingConfig] = None):
        self.config = config or ProcessingConfig()
        self.processor = PointCloudProcessor(workers=self.config.workers)
        self.mesh_generator = MeshGenerator()

    def _timed(self, result: PipelineResult, stage: str, func, *args, **kwargs):
        start = time.perf_counter()
        output = func(*args, **kwargs)
        result.timings[stage] = time.perf_counter() - start
        if isinstance(output, PointCloud):
            result.point_counts[stage] = len(output)
        return output

    def process_point_cloud(self, cloud: PointCloud, result: Optional[PipelineResult] = None) -> PointCloud:
        """Downsample, estimate normals, remove outliers and optionally smooth."""
        cfg = self.config
        result = result or PipelineResult(cloud, Mesh())

        cloud = self._timed(result, "downsampled", self.processor.voxel_grid_filter,
                            cloud, cfg.downsampling.voxel_size)
        cloud = self._timed(result, "normals", self.processor.estimate_normals,
                            cloud, cfg.normals.neighborhood_size)
        cloud = self._timed(result, "cleaned", self.processor.remove_statistical_outliers,
                            cloud, cfg.outliers.mean_k, cfg.outliers.std_ratio)

        if cfg.smoothing.point_iterations > 0:
            cloud = self._timed(result, "smoothed", self.processor.laplacian_smoothing,
                                cloud, cfg.smoothing.point_iterations, cfg.smoothing.lambda_)
        return cloud

    def build_mesh(self, cloud: PointCloud, result: Optional[PipelineResult] = None) -> Mesh:
        """Reconstruct a surface and apply the configured mesh post-processing."""
        cfg = self.config
        result = result or PipelineResult(cloud, Mesh())

        if cfg.meshing.method == "voxel":
            mesh = self._timed(result, "meshing", self.mesh_generator.generate_mesh_with_voxel_cubes,
                               cloud, cfg.meshing.voxel_size, cfg.meshing.iso_value)
        else:
            mesh = self._timed(result, "meshing", self.mesh_generator.generate_mesh_from_point_cloud,
                               cloud, cfg.meshing.max_edge_length)

        if cfg.smoothing.mesh_iterations > 0 and mesh.triangle_count > 0:
            self._timed(result, "mesh_smoothing", self.mesh_generator.smooth_mesh,
                        mesh, cfg.smoothing.mesh_iterations, cfg.smoothing.lambda_)

        if cfg.simplification.target_reduction > 0 and mesh.triangle_count > 0:
            mesh = self._timed(result, "simplification", self.mesh_generator.simplify_mesh,
                               mesh, cfg.simplification.target_reduction)

        if cfg.hole_filling.enabled and mesh.triangle_count > 0:
            self._timed(result, "hole_filling", self.mesh_generator.fill_holes, mesh)

        return mesh

    def run(self, clouds: Sequence[PointCloud]) -> PipelineResult:
        """Merge the captured clouds and reconstruct a mesh from the result."""
        cfg = self.config
        result = PipelineResult(PointCloud(), Mesh())
        result.point_counts["input"] = sum(len(c) for c in clouds)

        merged = self._timed(
            result, "merged", self.processor.merge_point_clouds, list(clouds),
            cfg.registration.use_icp, cfg.registration.max_iterations,
            cfg.registration.convergence_threshold,
        )

        if len(merged) == 0:
            logger.warning("No input points; returning empty result")
            return result

        result.cloud = self.process_point_cloud(merged, result)
        result.mesh = self.build_mesh(result.cloud, result)

        logger.info(
            f"Pipeline finished: {len(result.cloud)} points, "
            f"{result.mesh.triangle_count} triangles"
        )
        return result
