"""
Persistence records for tsdf_submaps.

Save/load helpers live in tsdf_submaps.io.persistence.
"""

from tsdf_submaps.io.records import (
    SubmapRecord,
    TsdfBlockRecord,
    TsdfMapRecord,
    TsdfSubmapCollectionRecord,
)

__all__ = [
    "SubmapRecord",
    "TsdfBlockRecord",
    "TsdfMapRecord",
    "TsdfSubmapCollectionRecord",
]
