"""
scan3d: point cloud processing and mesh reconstruction for depth-sensor scans.

Modules:
- geometry: colored points, point clouds, meshes and voxel grids
- processing: neighbor queries, filtering, smoothing and ICP registration
- reconstruction: greedy triangulation, voxel surfacing and mesh post-processing
- pipeline: end-to-end scan-to-mesh processing
- settings: YAML-backed processing configuration
- utils: logging setup
- tests: unit tests and synthetic data generation

Open3D conversion and file export live in scan3d.interop, which is not
imported here.
"""

from . import geometry
from . import processing
from . import reconstruction
from . import utils
from .geometry import ColoredPoint, Mesh, PointCloud, Vertex, VoxelGrid
from .processing import PointCloudProcessor, perform_icp
from .reconstruction import MeshGenerator
from .pipeline import PipelineResult, ReconstructionPipeline
from .settings import ProcessingConfig, load_config

__version__ = "1.0.0"
__all__ = [
    "geometry",
    "processing",
    "reconstruction",
    "utils",
    "ColoredPoint",
    "Mesh",
    "PointCloud",
    "Vertex",
    "VoxelGrid",
    "PointCloudProcessor",
    "perform_icp",
    "MeshGenerator",
    "PipelineResult",
    "ReconstructionPipeline",
    "ProcessingConfig",
    "load_config",
]
