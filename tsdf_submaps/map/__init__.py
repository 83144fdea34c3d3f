"""
Map layer for tsdf_submaps.

TsdfMap is the block-sparse voxel layer; TsdfSubmap anchors one in the
collection frame.
"""

from tsdf_submaps.map.tsdf_map import TsdfBlock, TsdfMap, create_empty_block
from tsdf_submaps.map.merge import is_voxel_aligned, merge_tsdf_layer
from tsdf_submaps.map.tsdf_submap import TsdfSubmap

__all__ = [
    "TsdfBlock",
    "TsdfMap",
    "TsdfSubmap",
    "create_empty_block",
    "is_voxel_aligned",
    "merge_tsdf_layer",
]
