"""
Configuration for tsdf_submaps.

TsdfMapConfig is the runtime configuration shared by every submap of a
collection. YAML files are validated through the pydantic TsdfMapParams model
before a TsdfMapConfig is built from them.

Usage:
    from tsdf_submaps.config import load_tsdf_map_config

    # Base file, then overrides (later files win)
    config = load_tsdf_map_config("base.yaml", "site.yaml")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from tsdf_submaps.common import constants
from tsdf_submaps.common.param_models import TsdfMapParams


@dataclass(frozen=True)
class TsdfMapConfig:
    """TSDF map configuration (voxel grid layout and merge limits)."""
    tsdf_voxel_size: float = constants.TSDF_VOXEL_SIZE_DEFAULT
    tsdf_voxels_per_side: int = constants.TSDF_VOXELS_PER_SIDE_DEFAULT
    truncation_distance: float = constants.TSDF_TRUNCATION_DISTANCE_DEFAULT
    max_weight: float = constants.TSDF_MAX_WEIGHT_DEFAULT

    def __post_init__(self) -> None:
        """
        Raises:
            ValueError: If the values would be rejected when loaded from YAML
        """
        try:
            self.to_params()
        except ValidationError as e:
            raise ValueError(f"Invalid TSDF map configuration:\n{e}") from e

    @property
    def block_size(self) -> float:
        """Edge length of one block (meters)."""
        return self.tsdf_voxel_size * self.tsdf_voxels_per_side

    @property
    def voxels_per_block(self) -> int:
        return self.tsdf_voxels_per_side ** 3

    @classmethod
    def from_params(cls, params: TsdfMapParams) -> "TsdfMapConfig":
        """Create configuration from validated parameters."""
        return cls(
            tsdf_voxel_size=float(params.tsdf_voxel_size),
            tsdf_voxels_per_side=int(params.tsdf_voxels_per_side),
            truncation_distance=float(params.truncation_distance),
            max_weight=float(params.max_weight),
        )

    def to_params(self) -> TsdfMapParams:
        return TsdfMapParams(
            tsdf_voxel_size=self.tsdf_voxel_size,
            tsdf_voxels_per_side=self.tsdf_voxels_per_side,
            truncation_distance=self.truncation_distance,
            max_weight=self.max_weight,
        )


def load_yaml_config(config_path: str | Path) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge configuration dictionaries (later configs override earlier)."""
    result: Dict[str, Any] = {}
    for config in configs:
        if config:
            _deep_merge(result, config)
    return result


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override dict into base dict (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def validate_tsdf_map_params(values: Dict[str, Any]) -> TsdfMapParams:
    """
    Validate a raw parameter dict.

    Accepts either the parameters at top level or nested under a
    "tsdf_map" key.

    Raises:
        ValueError: If validation fails (message lists every bad field)
    """
    if "tsdf_map" in values and isinstance(values["tsdf_map"], dict):
        values = values["tsdf_map"]
    try:
        return TsdfMapParams(**values)
    except ValidationError as e:
        raise ValueError(f"Invalid TSDF map configuration:\n{e}") from e


def load_tsdf_map_config(*config_paths: str | Path) -> TsdfMapConfig:
    """Load, merge and validate one or more YAML files into a TsdfMapConfig."""
    merged = merge_configs(*(load_yaml_config(p) for p in config_paths))
    return TsdfMapConfig.from_params(validate_tsdf_map_params(merged))
