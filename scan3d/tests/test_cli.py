#!/usr/bin/env python3
"""
Unit Tests for the Command-Line Interface

Author: Scan Processing Team
"""

import sys
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

# Add package root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from scan3d.__main__ import build_config, main, parse_args
from scan3d.geometry import Mesh, PointCloud
from scan3d.pipeline import PipelineResult


class TestCommandLine(unittest.TestCase):
    """Test cases for argument handling and the main entry point."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_source_required(self):
        with self.assertRaises(SystemExit):
            parse_args([])

    def test_demo_and_input_exclusive(self):
        with self.assertRaises(SystemExit):
            parse_args(["--demo", "--input", "scan.ply"])

    def test_overrides_applied(self):
        args = parse_args([
            "--demo",
            "--config", os.path.join(self.temp_dir, "missing.yaml"),
            "--voxel-size", "0.02",
            "--max-edge-length", "0.05",
            "--method", "voxel",
            "--no-icp",
        ])
        config = build_config(args)

        self.assertEqual(config.downsampling.voxel_size, 0.02)
        self.assertEqual(config.meshing.max_edge_length, 0.05)
        self.assertEqual(config.meshing.method, "voxel")
        self.assertFalse(config.registration.use_icp)

    def test_multiple_inputs(self):
        args = parse_args(["--input", "a.ply", "--input", "b.pcd"])
        self.assertEqual([p.name for p in args.input], ["a.ply", "b.pcd"])

    def test_demo_run(self):
        fake = PipelineResult(PointCloud(), Mesh(), {"input": 10500})
        with patch("scan3d.pipeline.ReconstructionPipeline.run", return_value=fake) as mock_run:
            code = main(["--demo", "--config", os.path.join(self.temp_dir, "missing.yaml")])

        self.assertEqual(code, 0)
        clouds = mock_run.call_args[0][0]
        self.assertEqual(len(clouds), 1)
        self.assertEqual(len(clouds[0]), 10500)

    def test_log_file_written(self):
        log_path = os.path.join(self.temp_dir, "logs", "run.log")
        fake = PipelineResult(PointCloud(), Mesh())
        with patch("scan3d.pipeline.ReconstructionPipeline.run", return_value=fake):
            main(["--demo", "--log-file", log_path])

        self.assertTrue(os.path.exists(log_path))

    def test_bad_config_returns_error(self):
        path = os.path.join(self.temp_dir, "bad.yaml")
        with open(path, "w") as f:
            f.write("meshing:\n  method: poisson\n")

        self.assertEqual(main(["--demo", "--config", path]), 1)

    def test_pipeline_failure_returns_error(self):
        with patch("scan3d.pipeline.ReconstructionPipeline.run", side_effect=RuntimeError("boom")):
            self.assertEqual(main(["--demo"]), 1)


if __name__ == '__main__':
    unittest.main(verbosity=2)
