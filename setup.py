#!/usr/bin/env python3
"""
Setup script for the scan3d point cloud processing package
"""

from setuptools import setup, find_packages

setup(
    name="scan3d",
    version="1.0.0",
    description="Point cloud processing and mesh reconstruction for depth-sensor scans",
    author="Scan Processing Team",
    packages=find_packages(include=["scan3d", "scan3d.*"]),
    package_data={"scan3d": ["config/*.yaml"]},
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "pyyaml>=5.3",
    ],
    extras_require={
        "open3d": ["open3d>=0.17.0"],
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["scan3d=scan3d.__main__:main"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
