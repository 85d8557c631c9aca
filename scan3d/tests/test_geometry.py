#!/usr/bin/env python3
"""
Unit Tests for Geometry Primitives

Covers:
- PointCloud construction, indexing and transformation
- Mesh invariants, bounding box caching and normal recomputation
- VoxelGrid coordinate conversion and occupancy

Author: Scan Processing Team
"""

import sys
import os
import unittest
import numpy as np

# Add package root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from scan3d.geometry import ColoredPoint, Mesh, PointCloud, Vertex, VoxelGrid
from scan3d.tests.create_test_data import create_grid_mesh, create_tetrahedron_mesh


class TestPointCloud(unittest.TestCase):
    """Test cases for PointCloud."""

    def test_from_points_round_trip(self):
        """Points built from ColoredPoint values read back unchanged."""
        points = [
            ColoredPoint((1.0, 2.0, 3.0), (0.5, 0.6, 0.7), (0.0, 1.0, 0.0)),
            ColoredPoint((4.0, 5.0, 6.0), (0.1, 0.2, 0.3)),
        ]
        cloud = PointCloud.from_points(points)

        self.assertEqual(len(cloud), 2)
        self.assertEqual(cloud[0], points[0])
        self.assertEqual(cloud[1].normal, (0.0, 0.0, 0.0))
        self.assertFalse(cloud[1].has_normal)
        self.assertEqual(list(cloud), points)

    def test_default_attributes(self):
        """Colors and normals default to zero."""
        cloud = PointCloud(np.ones((4, 3)))
        np.testing.assert_array_equal(cloud.colors, np.zeros((4, 3)))
        np.testing.assert_array_equal(cloud.normals, np.zeros((4, 3)))
        self.assertTrue(PointCloud().is_empty())

    def test_attribute_length_mismatch(self):
        with self.assertRaises(ValueError):
            PointCloud(np.zeros((3, 3)), np.zeros((2, 3)))

    def test_input_arrays_are_copied(self):
        positions = np.zeros((2, 3))
        cloud = PointCloud(positions)
        positions[0] = 5.0
        np.testing.assert_array_equal(cloud.positions[0], [0.0, 0.0, 0.0])

    def test_transformed_moves_positions_only(self):
        cloud = PointCloud([[1.0, 0.0, 0.0]], [[0.2, 0.3, 0.4]], [[0.0, 0.0, 1.0]])
        matrix = np.eye(4)
        matrix[:3, 3] = [1.0, 2.0, 3.0]

        moved = cloud.transformed(matrix)

        np.testing.assert_allclose(moved.positions[0], [2.0, 2.0, 3.0])
        np.testing.assert_array_equal(moved.colors, cloud.colors)
        np.testing.assert_array_equal(moved.normals, cloud.normals)
        np.testing.assert_array_equal(cloud.positions[0], [1.0, 0.0, 0.0])

    def test_concatenate_skips_empty(self):
        a = PointCloud(np.zeros((2, 3)))
        b = PointCloud(np.ones((3, 3)))
        merged = PointCloud.concatenate([a, PointCloud(), b])
        self.assertEqual(len(merged), 5)
        self.assertEqual(len(PointCloud.concatenate([])), 0)


class TestMesh(unittest.TestCase):
    """Test cases for Mesh."""

    def test_counts(self):
        mesh = create_grid_mesh(rows=3, cols=3)
        self.assertEqual(mesh.vertex_count, 9)
        self.assertEqual(mesh.triangle_count, 8)
        self.assertEqual(mesh.faces.dtype, np.uint32)
        self.assertEqual(mesh.triangles().shape, (8, 3))

    def test_index_out_of_range_rejected(self):
        with self.assertRaises(ValueError):
            Mesh(positions=np.zeros((3, 3)), faces=[0, 1, 3])

    def test_index_count_not_multiple_of_three(self):
        with self.assertRaises(ValueError):
            Mesh(positions=np.zeros((3, 3)), faces=[0, 1])

    def test_from_vertices(self):
        vertices = [
            Vertex((0.0, 0.0, 0.0), color=(1.0, 0.0, 0.0), tex_coord=(0.0, 0.0)),
            Vertex((1.0, 0.0, 0.0), tex_coord=(1.0, 0.0)),
            Vertex((0.0, 1.0, 0.0), tex_coord=(0.0, 1.0)),
        ]
        mesh = Mesh.from_vertices(vertices, [0, 1, 2])
        self.assertEqual(mesh.vertex(0), vertices[0])
        self.assertEqual(mesh.vertex(2).tex_coord, (0.0, 1.0))
        self.assertEqual(len(mesh.vertices), 3)

    def test_empty_mesh(self):
        mesh = Mesh()
        self.assertTrue(mesh.is_empty())
        self.assertEqual(mesh.triangle_count, 0)
        np.testing.assert_array_equal(mesh.bounding_box_min, np.zeros(3))
        np.testing.assert_array_equal(mesh.bounding_box_max, np.zeros(3))

    def test_bounding_box_cached_until_invalidated(self):
        mesh = create_grid_mesh(rows=2, cols=2, spacing=2.0)
        np.testing.assert_allclose(mesh.bounding_box_max, [2.0, 2.0, 0.0])

        mesh.positions[3] = [5.0, 5.0, 5.0]
        np.testing.assert_allclose(mesh.bounding_box_max, [2.0, 2.0, 0.0])

        mesh.invalidate()
        np.testing.assert_allclose(mesh.bounding_box_max, [5.0, 5.0, 5.0])

    def test_normals_of_flat_grid(self):
        mesh = create_grid_mesh(rows=3, cols=3)
        np.testing.assert_allclose(mesh.normals, np.tile([0.0, 0.0, 1.0], (9, 1)))

    def test_normal_recomputation_is_fixed_point(self):
        mesh = create_tetrahedron_mesh()
        first = mesh.normals.copy()
        mesh.calculate_normals()
        np.testing.assert_array_equal(mesh.normals, first)

    def test_area_weighted_normals(self):
        """Face contributions are unnormalized cross products."""
        positions = [
            [0.0, 0.0, 0.0],
            [2.0, 0.0, 0.0],
            [0.0, 2.0, 0.0],
            [0.0, 0.0, 1.0],
        ]
        # Large face with +z normal, small face with -y normal, sharing vertex 0
        mesh = Mesh(positions=positions, faces=[0, 1, 2, 0, 1, 3])
        mesh.calculate_normals()

        expected = np.array([0.0, -2.0, 4.0]) / np.linalg.norm([0.0, -2.0, 4.0])
        np.testing.assert_allclose(mesh.normals[0], expected)
        np.testing.assert_allclose(mesh.normals[2], [0.0, 0.0, 1.0])
        np.testing.assert_allclose(mesh.normals[3], [0.0, -1.0, 0.0])

    def test_unreferenced_vertex_keeps_zero_normal(self):
        mesh = Mesh(positions=np.vstack([np.eye(3), [[9.0, 9.0, 9.0]]]), faces=[0, 1, 2])
        mesh.calculate_normals()
        np.testing.assert_array_equal(mesh.normals[3], np.zeros(3))

    def test_transform(self):
        mesh = create_grid_mesh(rows=2, cols=2)
        rotation = np.array([
            [1.0, 0.0, 0.0, 0.0],
            [0.0, 0.0, -1.0, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ])
        rotation[:3, 3] = [0.0, 0.0, 1.0]

        mesh.transform(rotation)

        np.testing.assert_allclose(mesh.normals, np.tile([0.0, -1.0, 0.0], (4, 1)), atol=1e-12)
        np.testing.assert_allclose(mesh.positions[2], [0.0, 0.0, 2.0])
        np.testing.assert_allclose(mesh.bounding_box_max, [1.0, 0.0, 2.0], atol=1e-12)

    def test_copy_is_independent(self):
        mesh = create_grid_mesh(rows=2, cols=2)
        clone = mesh.copy()
        clone.positions[0] = [7.0, 7.0, 7.0]
        np.testing.assert_array_equal(mesh.positions[0], [0.0, 0.0, 0.0])


class TestVoxelGrid(unittest.TestCase):
    """Test cases for VoxelGrid."""

    def setUp(self):
        self.grid = VoxelGrid(4, 3, 2, 0.5, [1.0, 1.0, 1.0])

    def test_get_set_value(self):
        self.grid.set_value(1, 2, 1, 1.0)
        self.assertEqual(self.grid.get_value(1, 2, 1), 1.0)
        self.assertEqual(self.grid.get_value(0, 0, 0), 0.0)

    def test_out_of_range_access(self):
        self.grid.set_value(4, 0, 0, 1.0)
        self.assertEqual(self.grid.get_value(4, 0, 0), 0.0)
        self.assertEqual(self.grid.get_value(-1, 0, 0), 0.0)
        self.assertEqual(float(self.grid.values.sum()), 0.0)

    def test_coordinate_conversion(self):
        np.testing.assert_allclose(self.grid.world_to_voxel([2.0, 1.5, 1.25]), [2.0, 1.0, 0.5])
        np.testing.assert_allclose(self.grid.voxel_to_world([2, 1, 0]), [2.0, 1.5, 1.0])

    def test_from_points_pads_bounds(self):
        positions = np.array([[0.0, 0.0, 0.0], [0.5, 0.5, 0.5]])
        grid = VoxelGrid.from_points(positions, 1.0)

        self.assertEqual(grid.shape, (3, 3, 3))
        np.testing.assert_allclose(grid.origin, [-1.0, -1.0, -1.0])
        self.assertEqual(grid.get_value(1, 1, 1), 1.0)
        self.assertEqual(float(grid.values.sum()), 1.0)

    def test_occupied_cells_skip_upper_layer(self):
        grid = VoxelGrid(2, 2, 2, 1.0, [0.0, 0.0, 0.0])
        grid.set_value(0, 0, 0, 1.0)
        grid.set_value(1, 1, 1, 1.0)

        np.testing.assert_array_equal(grid.occupied_cells(0.0), [[0, 0, 0]])
        self.assertEqual(len(grid.occupied_cells(0.0, exclude_upper_layer=False)), 2)
        self.assertEqual(len(grid.occupied_cells(1.0)), 0)


if __name__ == '__main__':
    unittest.main(verbosity=2)
