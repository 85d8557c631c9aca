#!/usr/bin/env python3
"""
Conversion between scan3d geometry and Open3D geometry.

Open3D is the file-export and viewer collaborator: the processing core never
reads or writes files itself.
"""

import logging
from pathlib import Path
from typing import List, Union

import numpy as np
import open3d as o3d

from .geometry.primitives import Mesh, PointCloud

logger = logging.getLogger(__name__)


def to_open3d_point_cloud(cloud: PointCloud) -> o3d.geometry.PointCloud:
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(cloud.positions)
    pcd.colors = o3d.utility.Vector3dVector(np.clip(cloud.colors, 0.0, 1.0))
    if np.any(cloud.normals):
        pcd.normals = o3d.utility.Vector3dVector(cloud.normals)
    return pcd


def from_open3d_point_cloud(pcd: o3d.geometry.PointCloud) -> PointCloud:
    positions = np.asarray(pcd.points)
    colors = np.asarray(pcd.colors) if pcd.has_colors() else None
    normals = np.asarray(pcd.normals) if pcd.has_normals() else None
    return PointCloud.from_arrays(positions, colors, normals)


def to_open3d_mesh(mesh: Mesh) -> o3d.geometry.TriangleMesh:
    o3d_mesh = o3d.geometry.TriangleMesh()
    o3d_mesh.vertices = o3d.utility.Vector3dVector(mesh.positions)
    o3d_mesh.triangles = o3d.utility.Vector3iVector(mesh.triangles().astype(np.int32))
    o3d_mesh.vertex_normals = o3d.utility.Vector3dVector(mesh.normals)
    o3d_mesh.vertex_colors = o3d.utility.Vector3dVector(np.clip(mesh.colors, 0.0, 1.0))
    return o3d_mesh


def from_open3d_mesh(o3d_mesh: o3d.geometry.TriangleMesh) -> Mesh:
    mesh = Mesh(
        positions=np.asarray(o3d_mesh.vertices),
        faces=np.asarray(o3d_mesh.triangles).reshape(-1),
        normals=np.asarray(o3d_mesh.vertex_normals) if o3d_mesh.has_vertex_normals() else None,
        colors=np.asarray(o3d_mesh.vertex_colors) if o3d_mesh.has_vertex_colors() else None,
    )
    mesh.calculate_bounding_box()
    return mesh


def load_point_cloud(path: Union[str, Path]) -> PointCloud:
    pcd = o3d.io.read_point_cloud(str(path))
    if pcd.is_empty():
        raise ValueError(f"Point cloud '{path}' is empty or could not be loaded.")
    logger.info(f"Loaded {len(pcd.points)} points from {path}")
    return from_open3d_point_cloud(pcd)


def save_point_cloud(cloud: PointCloud, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not o3d.io.write_point_cloud(str(path), to_open3d_point_cloud(cloud)):
        raise IOError(f"Failed to write point cloud to {path}")
    logger.info(f"Saved point cloud to {path}")
    return path


def save_mesh(mesh: Mesh, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    o3d_mesh = to_open3d_mesh(mesh)
    if path.suffix.lower() == ".stl":
        # STL export needs triangle normals
        o3d_mesh.compute_triangle_normals()
    if not o3d.io.write_triangle_mesh(str(path), o3d_mesh):
        raise IOError(f"Failed to write mesh to {path}")
    logger.info(f"Saved mesh to {path}")
    return path


def visualize(geometries: List[Union[PointCloud, Mesh]], window_name: str = "Scan Reconstruction") -> None:
    converted = []
    for geometry in geometries:
        if isinstance(geometry, Mesh):
            converted.append(to_open3d_mesh(geometry))
        else:
            converted.append(to_open3d_point_cloud(geometry))
    o3d.visualization.draw_geometries(converted, window_name=window_name)
