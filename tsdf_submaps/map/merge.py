"""
Layer merge with a rigid-body transform.

merge_tsdf_layer(src, dst, T_dst_src) moves every observed voxel of src into
dst's frame and combines it with dst through TsdfMap.integrate_voxels.

Resampling is nearest-containing-voxel: a src voxel centre p_src lands in the
dst voxel floor(T_dst_src * p_src / voxel_size_dst). When T_dst_src is a
translation by whole voxels (and both grids share a voxel size) this is an
exact voxel-to-voxel copy; otherwise it is a resampling approximation.
"""

from __future__ import annotations

import numpy as np

from tsdf_submaps.common import constants
from tsdf_submaps.common.geometry import as_pose, rotation_angle, se3_apply
from tsdf_submaps.map.tsdf_map import TsdfMap


def merge_tsdf_layer(src: TsdfMap, dst: TsdfMap, T_dst_src: np.ndarray) -> int:
    """
    Merge src into dst (dst is modified in place).

    Args:
        src: Donor layer (read only)
        dst: Receiving layer
        T_dst_src: 6D pose mapping src-frame points into dst's frame

    Returns:
        Number of src voxels contributed
    """
    T_dst_src = as_pose(T_dst_src)
    voxel_indices, distances, weights = src.get_voxel_arrays()
    n_src = int(voxel_indices.shape[0])
    if n_src == 0:
        return 0
    centers_src = src.voxel_centers(voxel_indices)
    centers_dst = se3_apply(T_dst_src, centers_src)
    dst.integrate_voxels(dst.point_to_voxel_index(centers_dst), distances, weights)
    return n_src


def is_voxel_aligned(T: np.ndarray, voxel_size: float, atol: float = 1e-9) -> bool:
    """True when T is a pure translation by a whole number of voxels."""
    T = as_pose(T)
    if rotation_angle(T) > constants.ROTATION_IDENTITY_EPSILON:
        return False
    steps = T[:3] / voxel_size
    return bool(np.allclose(steps, np.round(steps), atol=atol))
