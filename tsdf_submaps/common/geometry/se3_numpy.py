"""
SE(3) geometry on 6D pose vectors.

Pose representation: (x, y, z, rx, ry, rz) where:
- (x, y, z): translation in R^3
- (rx, ry, rz): rotation vector (axis-angle) in so(3)

A submap pose T_M_S maps points expressed in the submap frame S into the
collection frame M:  p_M = R_M_S @ p_S + t_M_S.

Numerical Policy:
    - ROTATION_EPSILON = 1e-10: below this angle the first-order expansion
      of Rodrigues' formula is used
    - SINGULARITY_EPSILON = 1e-6: threshold for the theta ~ pi branch of log

    These affect the computational path only, not the mathematical result.
"""

from __future__ import annotations

import math

import numpy as np


# =============================================================================
# Numerical Constants (stability, not policy)
# =============================================================================

ROTATION_EPSILON: float = 1e-10

SINGULARITY_EPSILON: float = 1e-6


# =============================================================================
# Validation
# =============================================================================


def as_pose(T) -> np.ndarray:
    """
    Return T as a float64 6-vector copy.

    Raises ValueError for anything that is not six finite numbers.
    """
    T = np.array(T, dtype=float).reshape(-1)
    if T.shape != (6,):
        raise ValueError(f"Expected 6D pose vector, got shape {T.shape}")
    if not np.all(np.isfinite(T)):
        raise ValueError(f"Pose contains non-finite values: {T}")
    return T


def se3_identity() -> np.ndarray:
    """Identity pose."""
    return np.zeros(6, dtype=float)


# =============================================================================
# so(3) <-> SO(3)
# =============================================================================


def skew(v: np.ndarray) -> np.ndarray:
    """Skew-symmetric matrix [v]_x of a 3-vector."""
    v = np.asarray(v, dtype=float).reshape(-1)
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ], dtype=float)


def rotvec_to_rotmat(rotvec: np.ndarray) -> np.ndarray:
    """
    Exponential map so(3) -> SO(3) via Rodrigues' formula.

    R = I + sin(theta) K + (1 - cos(theta)) K^2, K = [axis]_x
    """
    rotvec = np.asarray(rotvec, dtype=float).reshape(-1)
    theta = float(np.linalg.norm(rotvec))
    if theta < ROTATION_EPSILON:
        return np.eye(3, dtype=float) + skew(rotvec)
    K = skew(rotvec / theta)
    return np.eye(3, dtype=float) + math.sin(theta) * K + (1.0 - math.cos(theta)) * (K @ K)


def rotmat_to_rotvec(R: np.ndarray) -> np.ndarray:
    """
    Logarithmic map SO(3) -> so(3).

    Branches on the rotation angle: near zero, near pi, and the general case.
    """
    R = np.asarray(R, dtype=float)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")
    if not np.allclose(R @ R.T, np.eye(3), atol=1e-6):
        raise ValueError("Input matrix is not orthogonal (R @ R.T != I)")

    cos_theta = np.clip((np.trace(R) - 1.0) / 2.0, -1.0, 1.0)
    theta = math.acos(cos_theta)
    vee = np.array([R[2, 1] - R[1, 2], R[0, 2] - R[2, 0], R[1, 0] - R[0, 1]], dtype=float)

    if theta < ROTATION_EPSILON:
        return 0.5 * vee

    if abs(theta - math.pi) < SINGULARITY_EPSILON:
        # R = 2 a a^T - I at theta = pi; take the best-conditioned column.
        B = 0.5 * (R + np.eye(3, dtype=float))
        col = int(np.argmax(np.diag(B)))
        axis = B[:, col] / math.sqrt(max(B[col, col], 0.0))
        axis = axis / np.linalg.norm(axis)
        # Resolve the sign with the (small) antisymmetric part when present.
        if float(np.dot(axis, vee)) < 0.0:
            axis = -axis
        return axis * theta

    return vee * (theta / (2.0 * math.sin(theta)))


# =============================================================================
# SE(3) group operations
# =============================================================================


def se3_to_matrix(T: np.ndarray) -> np.ndarray:
    """4x4 homogeneous matrix of a 6D pose."""
    T = as_pose(T)
    M = np.eye(4, dtype=float)
    M[:3, :3] = rotvec_to_rotmat(T[3:6])
    M[:3, 3] = T[:3]
    return M


def se3_from_matrix(M: np.ndarray) -> np.ndarray:
    """6D pose of a 4x4 homogeneous rigid-body matrix."""
    M = np.asarray(M, dtype=float)
    if M.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got shape {M.shape}")
    if not np.allclose(M[3, :], [0.0, 0.0, 0.0, 1.0]):
        raise ValueError("Bottom row of a rigid-body matrix must be [0, 0, 0, 1]")
    return np.concatenate([M[:3, 3], rotmat_to_rotvec(M[:3, :3])])


def se3_compose(T1: np.ndarray, T2: np.ndarray) -> np.ndarray:
    """
    Compose two poses: T1 * T2.

    R = R1 R2, t = R1 t2 + t1
    """
    T1 = as_pose(T1)
    T2 = as_pose(T2)
    R1 = rotvec_to_rotmat(T1[3:6])
    R2 = rotvec_to_rotmat(T2[3:6])
    t = R1 @ T2[:3] + T1[:3]
    return np.concatenate([t, rotmat_to_rotvec(R1 @ R2)])


def se3_inverse(T: np.ndarray) -> np.ndarray:
    """Inverse pose: T^-1 = [R^T, -R^T t]."""
    T = as_pose(T)
    R_inv = rotvec_to_rotmat(T[3:6]).T
    return np.concatenate([-R_inv @ T[:3], -T[3:6]])


def se3_relative(T_from: np.ndarray, T_to: np.ndarray) -> np.ndarray:
    """
    Relative pose T_from^-1 * T_to.

    With T_from = T_M_A and T_to = T_M_B this is T_A_B, which maps points in
    frame B into frame A.
    """
    return se3_compose(se3_inverse(T_from), T_to)


def se3_apply(T: np.ndarray, p: np.ndarray) -> np.ndarray:
    """
    Apply a pose to a point (3,) or a batch of points (N, 3).

    Returns the transformed point(s) with the input shape.
    """
    T = as_pose(T)
    p = np.asarray(p, dtype=float)
    R = rotvec_to_rotmat(T[3:6])
    t = T[:3]
    if p.ndim == 1:
        if p.shape[0] != 3:
            raise ValueError(f"Expected 3D point, got shape {p.shape}")
        return R @ p + t
    if p.ndim == 2:
        if p.shape[1] != 3:
            raise ValueError(f"Expected (N, 3) points, got shape {p.shape}")
        return p @ R.T + t
    raise ValueError(f"Expected 1D or 2D array, got shape {p.shape}")


def rotation_angle(T: np.ndarray) -> float:
    """Rotation angle (rad) of a pose."""
    return float(np.linalg.norm(as_pose(T)[3:6]))
