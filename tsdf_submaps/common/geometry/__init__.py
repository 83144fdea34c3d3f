"""
Geometry package for tsdf_submaps.

Usage:
    from tsdf_submaps.common.geometry import (
        se3_compose,
        se3_inverse,
        se3_relative,
        se3_apply,
    )
"""

from __future__ import annotations

from tsdf_submaps.common.geometry.se3_numpy import (
    # Constants
    ROTATION_EPSILON,
    SINGULARITY_EPSILON,
    # Validation
    as_pose,
    se3_identity,
    # SO(3) operations
    skew,
    rotvec_to_rotmat,
    rotmat_to_rotvec,
    # SE(3) operations
    se3_to_matrix,
    se3_from_matrix,
    se3_compose,
    se3_inverse,
    se3_relative,
    se3_apply,
    rotation_angle,
)

__all__ = [
    # Constants
    "ROTATION_EPSILON",
    "SINGULARITY_EPSILON",
    # Validation
    "as_pose",
    "se3_identity",
    # SO(3) operations
    "skew",
    "rotvec_to_rotmat",
    "rotmat_to_rotvec",
    # SE(3) operations
    "se3_to_matrix",
    "se3_from_matrix",
    "se3_compose",
    "se3_inverse",
    "se3_relative",
    "se3_apply",
    "rotation_angle",
]
