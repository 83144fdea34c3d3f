"""
Submap collection management.
"""

from tsdf_submaps.collection.tsdf_submap_collection import TsdfSubmapCollection

__all__ = ["TsdfSubmapCollection"]
