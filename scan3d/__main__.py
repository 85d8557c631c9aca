#!/usr/bin/env python3
"""
Command-line interface for the scan3d package.

Usage:
    python -m scan3d --demo [options]
    python -m scan3d --input FILE [--input FILE ...] [options]

Options:
    --demo                  Reconstruct the synthetic sphere scan (seed 42)
    --input FILE            Point cloud file (.ply/.pcd); repeat to merge several
    --config FILE           Processing configuration YAML
    --voxel-size SIZE       Override downsampling voxel size (meters)
    --max-edge-length LEN   Override greedy triangulation max edge length
    --method NAME           Meshing method: greedy or voxel
    --no-icp                Merge inputs without ICP alignment
    --output-dir DIR        Write cleaned cloud (.ply) and mesh (.ply/.obj/.stl)
    --log-file FILE         Also write log output to FILE
    --verbose               Debug logging
    --visualize             Show the result in a 3D viewer
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .settings import ConfigurationError, MESHING_METHODS, load_config
from .utils.logger import setup_logger


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="scan3d",
        description="Reconstruct a triangle mesh from captured point clouds",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--demo", action="store_true", help="Use the synthetic sphere scan")
    source.add_argument("--input", type=Path, action="append", help="Point cloud file; repeat to merge")
    parser.add_argument("--config", type=str, help="Processing configuration YAML")
    parser.add_argument("--voxel-size", type=float, help="Downsampling voxel size (m)")
    parser.add_argument("--max-edge-length", type=float, help="Greedy triangulation max edge length (m)")
    parser.add_argument("--method", choices=MESHING_METHODS, help="Meshing method")
    parser.add_argument("--no-icp", action="store_true", help="Merge inputs without ICP alignment")
    parser.add_argument("--output-dir", type=Path, help="Directory for exported cloud and meshes")
    parser.add_argument("--log-file", type=Path, help="Log file path")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--visualize", action="store_true", help="Show result in a 3D viewer")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace):
    config = load_config(args.config)
    if args.voxel_size is not None:
        config.downsampling = replace(config.downsampling, voxel_size=args.voxel_size)
    if args.max_edge_length is not None:
        config.meshing = replace(config.meshing, max_edge_length=args.max_edge_length)
    if args.method is not None:
        config.meshing = replace(config.meshing, method=args.method)
    if args.no_icp:
        config.registration = replace(config.registration, use_icp=False)
    return config


def main(argv=None) -> int:
    args = parse_args(argv)
    logger = setup_logger(
        "scan3d",
        log_file=args.log_file,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    try:
        config = build_config(args)

        if args.demo:
            from .tests.create_test_data import create_sphere_scan
            clouds = [create_sphere_scan()]
            logger.info(f"Generated synthetic sphere scan with {len(clouds[0])} points")
        else:
            from .interop import load_point_cloud
            clouds = [load_point_cloud(path) for path in args.input]

        from .pipeline import ReconstructionPipeline
        result = ReconstructionPipeline(config).run(clouds)
        logger.info("Pipeline summary:\n" + result.summary())

        if args.output_dir:
            from .interop import save_mesh, save_point_cloud
            save_point_cloud(result.cloud, args.output_dir / "pointcloud.ply")
            for name in ("mesh.ply", "mesh.obj", "mesh.stl"):
                save_mesh(result.mesh, args.output_dir / name)

        if args.visualize:
            from .interop import visualize
            visualize([result.mesh] if result.mesh.triangle_count else [result.cloud])

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
