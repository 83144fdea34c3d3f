"""
tsdf_submaps: management of posed TSDF submaps.

Submaps are independently built TSDF fragments, each anchored in a shared
collection frame by a rigid-body pose. TsdfSubmapCollection provides lookup
by id, pose correction, pairwise fusion and projection into a single map.

Usage:
    from tsdf_submaps import TsdfMapConfig, TsdfSubmapCollection

    collection = TsdfSubmapCollection(TsdfMapConfig())
    collection.create_new_submap(np.zeros(6))
    collection.get_active_tsdf_map().set_voxel([0.1, 0.1, 0.1], 0.05, 1.0)
    projected = collection.get_projected_map()
"""

from tsdf_submaps.config import TsdfMapConfig, load_tsdf_map_config
from tsdf_submaps.map import TsdfMap, TsdfSubmap, merge_tsdf_layer
from tsdf_submaps.collection import TsdfSubmapCollection
from tsdf_submaps.io.persistence import (
    load_collection_from_file,
    save_collection_to_file,
)

__all__ = [
    "TsdfMapConfig",
    "load_tsdf_map_config",
    "TsdfMap",
    "TsdfSubmap",
    "merge_tsdf_layer",
    "TsdfSubmapCollection",
    "load_collection_from_file",
    "save_collection_to_file",
]
