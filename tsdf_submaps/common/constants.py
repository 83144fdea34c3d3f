"""
tsdf_submaps constants.

All magic numbers are centralized here with clear documentation.
"""

# =============================================================================
# TSDF Map Defaults
# =============================================================================

# Voxel edge length (meters)
TSDF_VOXEL_SIZE_DEFAULT = 0.2

# Voxels along one edge of a block (block holds VPS^3 voxels)
TSDF_VOXELS_PER_SIDE_DEFAULT = 16

# Stored distances are clipped to +/- this value (meters)
TSDF_TRUNCATION_DISTANCE_DEFAULT = 3.0 * TSDF_VOXEL_SIZE_DEFAULT

# Per-voxel weight saturation
TSDF_MAX_WEIGHT_DEFAULT = 10000.0

# =============================================================================
# Numerical Stability Thresholds
# =============================================================================

# Voxels with weight at or below this are unobserved
WEIGHT_EPSILON = 1e-12

# Rotation angle (rad) below which a relative transform counts as
# translation-only (no resampling approximation in the op report)
ROTATION_IDENTITY_EPSILON = 1e-12

# =============================================================================
# Persistence
# =============================================================================

# Version tag written into every saved collection record
RECORD_FORMAT_VERSION = 1

# Suffix of the temporary file written before an atomic rename
SAVE_TMP_SUFFIX = ".tmp"
