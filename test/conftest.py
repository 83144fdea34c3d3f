import os
import pytest
from typing import Callable

import numpy as np

from tsdf_submaps.config import TsdfMapConfig
from tsdf_submaps.map.tsdf_map import TsdfMap
from tsdf_submaps.map.tsdf_submap import TsdfSubmap

# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def base_config_path() -> str:
    """Path to the repository's base TSDF map YAML."""
    test_dir = os.path.dirname(__file__)
    repo_root = os.path.dirname(test_dir)
    return os.path.join(repo_root, "config", "tsdf_map_base.yaml")


@pytest.fixture
def map_config() -> TsdfMapConfig:
    """
    Small test grid.

    Voxel size is a power of two so voxel centres and whole-voxel
    translations are exact in binary floating point. max_weight is large
    enough that no test saturates it unless it means to.
    """
    return TsdfMapConfig(
        tsdf_voxel_size=0.25,
        tsdf_voxels_per_side=4,
        truncation_distance=1.0,
        max_weight=1e6,
    )


# =============================================================================
# Pose Fixtures
# =============================================================================


@pytest.fixture
def identity_pose():
    """Return identity SE(3) pose as 6D vector [x, y, z, rx, ry, rz]."""
    return np.zeros(6, dtype=np.float64)


@pytest.fixture
def random_pose():
    """Generate a random SE(3) pose for testing."""
    rng = np.random.default_rng(42)
    trans = rng.normal(size=3)
    rot = rng.normal(size=3) * 0.5
    return np.concatenate([trans, rot])


# =============================================================================
# Content Fixtures
# =============================================================================


def fill_random_voxels(tsdf_map: TsdfMap, n_voxels: int, seed: int, extent: int = 6) -> None:
    """Write n_voxels distinct observed voxels with indices in [-extent, extent)."""
    rng = np.random.default_rng(seed)
    candidates = np.stack(
        np.meshgrid(*[np.arange(-extent, extent)] * 3, indexing="ij"), axis=-1
    ).reshape(-1, 3)
    chosen = candidates[rng.choice(candidates.shape[0], size=n_voxels, replace=False)]
    centers = tsdf_map.voxel_centers(chosen)
    distances = rng.uniform(-0.5, 0.5, size=n_voxels)
    weights = rng.uniform(0.5, 3.0, size=n_voxels)
    for center, d, w in zip(centers, distances, weights):
        tsdf_map.set_voxel(center, d, w)


@pytest.fixture
def make_filled_submap(map_config) -> Callable[..., TsdfSubmap]:
    """Factory: submap at a pose with random voxel content."""

    def _make(T_M_S=None, n_voxels: int = 60, seed: int = 0) -> TsdfSubmap:
        if T_M_S is None:
            T_M_S = np.zeros(6)
        submap = TsdfSubmap(T_M_S, map_config)
        fill_random_voxels(submap.tsdf_map, n_voxels, seed)
        return submap

    return _make
