#!/usr/bin/env python3
"""
Geometry Primitives

Value types shared by the processing and reconstruction packages:
- ColoredPoint: a single depth-sensor sample (position, color, normal)
- PointCloud: an ordered array of samples stored column-wise
- Vertex / Mesh: triangulated surface with flat triangle indices

Author: Scan Processing Team
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np


def _as_rows(value, width: int, count: int) -> np.ndarray:
    if value is None:
        return np.zeros((count, width), dtype=np.float64)
    array = np.asarray(value, dtype=np.float64)
    if array.size == 0:
        return np.zeros((count, width), dtype=np.float64)
    return array.reshape(-1, width).copy()


def apply_affine(positions: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Apply a 4x4 affine matrix (column-vector convention) to (N, 3) positions."""
    matrix = np.asarray(matrix, dtype=np.float64)
    return positions @ matrix[:3, :3].T + matrix[:3, 3]


@dataclass(frozen=True)
class ColoredPoint:
    """A 3D sample with RGB color in [0, 1]; a zero normal means unestimated."""
    position: Tuple[float, float, float]
    color: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    normal: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def has_normal(self) -> bool:
        return any(component != 0.0 for component in self.normal)


@dataclass(frozen=True)
class Vertex:
    """Mesh vertex."""
    position: Tuple[float, float, float]
    normal: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    color: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    tex_coord: Tuple[float, float] = (0.0, 0.0)


class PointCloud:
    """
    Ordered collection of colored points.

    Samples are stored as three (N, 3) float64 arrays. Processing steps build
    new clouds instead of writing into an existing one.
    """

    def __init__(self, positions=None, colors=None, normals=None):
        if positions is None:
            self.positions = np.zeros((0, 3), dtype=np.float64)
        else:
            self.positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3).copy()
        count = len(self.positions)
        self.colors = _as_rows(colors, 3, count)
        self.normals = _as_rows(normals, 3, count)

        if len(self.colors) != count or len(self.normals) != count:
            raise ValueError(
                f"Attribute length mismatch: {count} positions, "
                f"{len(self.colors)} colors, {len(self.normals)} normals"
            )

    @classmethod
    def from_points(cls, points: Iterable[ColoredPoint]) -> "PointCloud":
        points = list(points)
        if not points:
            return cls()
        return cls(
            [p.position for p in points],
            [p.color for p in points],
            [p.normal for p in points],
        )

    @classmethod
    def from_arrays(cls, positions, colors=None, normals=None) -> "PointCloud":
        return cls(positions, colors, normals)

    @classmethod
    def concatenate(cls, clouds: Sequence["PointCloud"]) -> "PointCloud":
        clouds = [c for c in clouds if len(c) > 0]
        if not clouds:
            return cls()
        return cls(
            np.vstack([c.positions for c in clouds]),
            np.vstack([c.colors for c in clouds]),
            np.vstack([c.normals for c in clouds]),
        )

    def __len__(self) -> int:
        return len(self.positions)

    def __getitem__(self, index: int) -> ColoredPoint:
        return ColoredPoint(
            tuple(self.positions[index].tolist()),
            tuple(self.colors[index].tolist()),
            tuple(self.normals[index].tolist()),
        )

    def __iter__(self) -> Iterator[ColoredPoint]:
        for i in range(len(self)):
            yield self[i]

    def __repr__(self) -> str:
        return f"PointCloud({len(self)} points)"

    def is_empty(self) -> bool:
        return len(self) == 0

    def copy(self) -> "PointCloud":
        return PointCloud(self.positions, self.colors, self.normals)

    def select(self, mask_or_indices) -> "PointCloud":
        """Subset of the cloud, keeping the original order."""
        return PointCloud(
            self.positions[mask_or_indices],
            self.colors[mask_or_indices],
            self.normals[mask_or_indices],
        )

    def with_positions(self, positions: np.ndarray) -> "PointCloud":
        return PointCloud(positions, self.colors, self.normals)

    def with_normals(self, normals: np.ndarray) -> "PointCloud":
        return PointCloud(self.positions, self.colors, normals)

    def transformed(self, matrix: np.ndarray) -> "PointCloud":
        """Positions moved by a 4x4 affine matrix; colors and normals pass through."""
        if self.is_empty():
            return self.copy()
        return self.with_positions(apply_affine(self.positions, matrix))


@dataclass(eq=False)
class Mesh:
    """
    Triangle mesh.

    Vertex attributes are stored column-wise; ``faces`` is a flat uint32
    index array where each consecutive triple is one triangle.

    The bounding box is cached. Every operation in this package that moves
    vertices or changes topology calls ``invalidate()``; code that writes to
    ``positions`` directly must do the same.
    """
    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    faces: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.uint32))
    normals: Optional[np.ndarray] = None
    colors: Optional[np.ndarray] = None
    tex_coords: Optional[np.ndarray] = None

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
        count = len(self.positions)
        self.normals = _as_rows(self.normals, 3, count)
        self.colors = _as_rows(self.colors, 3, count)
        self.tex_coords = _as_rows(self.tex_coords, 2, count)
        self.faces = np.asarray(self.faces, dtype=np.uint32).reshape(-1)
        self._bounding_box: Optional[Tuple[np.ndarray, np.ndarray]] = None

        if len(self.faces) % 3 != 0:
            raise ValueError(f"Face index count {len(self.faces)} is not a multiple of 3")
        if len(self.faces) and int(self.faces.max()) >= count:
            raise ValueError(
                f"Face index {int(self.faces.max())} out of range for {count} vertices"
            )

    @classmethod
    def from_vertices(cls, vertices: Sequence[Vertex], faces=()) -> "Mesh":
        if not vertices:
            return cls(faces=faces)
        return cls(
            positions=[v.position for v in vertices],
            faces=faces,
            normals=[v.normal for v in vertices],
            colors=[v.color for v in vertices],
            tex_coords=[v.tex_coord for v in vertices],
        )

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.faces) // 3

    def vertex(self, index: int) -> Vertex:
        return Vertex(
            tuple(self.positions[index].tolist()),
            tuple(self.normals[index].tolist()),
            tuple(self.colors[index].tolist()),
            tuple(self.tex_coords[index].tolist()),
        )

    @property
    def vertices(self) -> List[Vertex]:
        return [self.vertex(i) for i in range(self.vertex_count)]

    def triangles(self) -> np.ndarray:
        """(T, 3) view of the face indices."""
        return self.faces.reshape(-1, 3)

    def copy(self) -> "Mesh":
        return Mesh(
            positions=self.positions.copy(),
            faces=self.faces.copy(),
            normals=self.normals.copy(),
            colors=self.colors.copy(),
            tex_coords=self.tex_coords.copy(),
        )

    def is_empty(self) -> bool:
        return self.vertex_count == 0

    def invalidate(self):
        """Drop cached derived attributes after positions or topology change."""
        self._bounding_box = None

    def calculate_bounding_box(self) -> Tuple[np.ndarray, np.ndarray]:
        if self.vertex_count == 0:
            self._bounding_box = (np.zeros(3), np.zeros(3))
        else:
            self._bounding_box = (self.positions.min(axis=0), self.positions.max(axis=0))
        return self._bounding_box

    @property
    def bounding_box(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._bounding_box is None:
            return self.calculate_bounding_box()
        return self._bounding_box

    @property
    def bounding_box_min(self) -> np.ndarray:
        return self.bounding_box[0]

    @property
    def bounding_box_max(self) -> np.ndarray:
        return self.bounding_box[1]

    def calculate_normals(self):
        """
        Recompute per-vertex normals from the faces.

        Each face adds its unnormalized cross product (area weighted) to its
        three vertices; the sums are then normalized. Vertices whose sum is
        zero keep a zero normal.
        """
        normals = np.zeros_like(self.positions)
        if self.triangle_count:
            tris = self.triangles().astype(np.int64)
            p0 = self.positions[tris[:, 0]]
            face_normals = np.cross(self.positions[tris[:, 1]] - p0,
                                    self.positions[tris[:, 2]] - p0)
            for corner in range(3):
                np.add.at(normals, tris[:, corner], face_normals)

        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0
        normals[nonzero] /= lengths[nonzero, None]
        self.normals = normals

    def transform(self, matrix: np.ndarray):
        """Transform positions by a 4x4 affine matrix and normals by its inverse transpose."""
        matrix = np.asarray(matrix, dtype=np.float64)
        self.positions = apply_affine(self.positions, matrix)

        try:
            normal_matrix = np.linalg.inv(matrix[:3, :3]).T
        except np.linalg.LinAlgError:
            normal_matrix = None

        if normal_matrix is not None:
            normals = self.normals @ normal_matrix.T
            lengths = np.linalg.norm(normals, axis=1)
            nonzero = lengths > 0
            normals[nonzero] /= lengths[nonzero, None]
            self.normals = normals

        self.invalidate()
        self.calculate_bounding_box()
