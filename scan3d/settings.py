#!/usr/bin/env python3
"""
Processing configuration.

Every tunable threshold of the pipeline lives in ProcessingConfig. Values
come from a YAML file (``scan3d/config/processing.yaml`` by default);
sections or keys missing from the file keep their defaults.
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

MESHING_METHODS = ("greedy", "voxel")

# YAML keys that are not valid Python identifiers
_KEY_ALIASES = {"lambda": "lambda_"}


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be used."""
    pass


@dataclass
class DownsamplingConfig:
    voxel_size: float = 0.01


@dataclass
class NormalsConfig:
    neighborhood_size: int = 20


@dataclass
class OutlierConfig:
    mean_k: int = 20
    std_ratio: float = 2.0


@dataclass
class SmoothingConfig:
    point_iterations: int = 0
    mesh_iterations: int = 2
    lambda_: float = 0.5


@dataclass
class RegistrationConfig:
    use_icp: bool = True
    max_iterations: int = 20
    convergence_threshold: float = 0.001


@dataclass
class MeshingConfig:
    method: str = "greedy"
    max_edge_length: float = 0.1
    voxel_size: float = 0.01
    iso_value: float = 0.0


@dataclass
class SimplificationConfig:
    target_reduction: float = 0.0


@dataclass
class HoleFillingConfig:
    enabled: bool = False


@dataclass
class ProcessingConfig:
    """All pipeline parameters, grouped the way the YAML file groups them."""
    downsampling: DownsamplingConfig = field(default_factory=DownsamplingConfig)
    normals: NormalsConfig = field(default_factory=NormalsConfig)
    outliers: OutlierConfig = field(default_factory=OutlierConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    registration: RegistrationConfig = field(default_factory=RegistrationConfig)
    meshing: MeshingConfig = field(default_factory=MeshingConfig)
    simplification: SimplificationConfig = field(default_factory=SimplificationConfig)
    hole_filling: HoleFillingConfig = field(default_factory=HoleFillingConfig)
    workers: int = 1

    def __post_init__(self):
        if self.meshing.method not in MESHING_METHODS:
            raise ConfigurationError(
                f"Unknown meshing method '{self.meshing.method}', expected one of {MESHING_METHODS}"
            )
        if not 0.0 <= self.simplification.target_reduction < 1.0:
            raise ConfigurationError(
                f"simplification.target_reduction must be in [0, 1), got {self.simplification.target_reduction}"
            )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProcessingConfig":
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping, got {type(data).__name__}")

        defaults = cls()
        kwargs = {}
        for section in fields(cls):
            if section.name not in data:
                continue
            default_value = getattr(defaults, section.name)
            if section.name == "workers":
                kwargs["workers"] = _check_value("workers", data["workers"], default_value)
            else:
                kwargs[section.name] = _build_section(section.name, data[section.name], default_value)

        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Ignoring unknown configuration section: {key}")

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["smoothing"]["lambda"] = data["smoothing"].pop("lambda_")
        return data


def _check_value(name: str, value: Any, default: Any) -> Any:
    expected = type(default)
    if expected is float and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if expected is int and isinstance(value, int) and not isinstance(value, bool):
        return value
    if expected in (bool, str) and isinstance(value, expected):
        return value
    raise ConfigurationError(
        f"Invalid value for '{name}': expected {expected.__name__}, got {value!r}"
    )


def _build_section(section_name: str, values: Any, default_section: Any) -> Any:
    if values is None:
        return default_section
    if not isinstance(values, dict):
        raise ConfigurationError(f"Section '{section_name}' must be a mapping")

    section_cls = type(default_section)
    names = {f.name for f in fields(section_cls)}
    kwargs = {}
    for key, value in values.items():
        attr = _KEY_ALIASES.get(key, key)
        if attr not in names:
            logger.warning(f"Ignoring unknown key '{key}' in section '{section_name}'")
            continue
        kwargs[attr] = _check_value(f"{section_name}.{key}", value, getattr(default_section, attr))
    return section_cls(**kwargs)


def get_default_config_path() -> str:
    """Get default path to the processing configuration."""
    possible_paths = [
        os.path.join(os.path.dirname(__file__), "config", "processing.yaml"),
        os.path.join(os.getcwd(), "config", "processing.yaml"),
    ]

    for path in possible_paths:
        abs_path = os.path.abspath(path)
        if os.path.exists(abs_path):
            return abs_path

    # Return first path as default even if it doesn't exist
    return os.path.abspath(possible_paths[0])


def load_config(config_path: Optional[str] = None) -> ProcessingConfig:
    """
    Load processing configuration from YAML.

    Args:
        config_path: Path to the YAML file; the packaged default when omitted

    Returns:
        ProcessingConfig; defaults when the file does not exist
    """
    config_path = config_path or get_default_config_path()

    if not os.path.exists(config_path):
        logger.warning(f"Configuration file not found: {config_path}, using defaults")
        return ProcessingConfig()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse configuration {config_path}: {e}")
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    config = ProcessingConfig.from_dict(data)
    logger.info(f"Processing configuration loaded from: {config_path}")
    return config
