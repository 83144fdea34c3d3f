"""
Common package for tsdf_submaps.

Shared constants, geometry and reporting used by the map and collection layers.

Subpackages:
- geometry/: SE(3) operations on 6D pose vectors
"""

from tsdf_submaps.common.op_report import MapOpReport
from tsdf_submaps.common import constants

__all__ = [
    "MapOpReport",
    "constants",
]
