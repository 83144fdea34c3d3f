"""
TsdfSubmap: one TSDF fragment plus its pose in the collection frame.

The pose T_M_S maps submap-frame points into the collection frame M. Voxel
content is always stored in the submap frame; poses are only composed in at
fusion and projection time.
"""

from __future__ import annotations

import numpy as np

from tsdf_submaps.common.geometry import as_pose, se3_identity
from tsdf_submaps.config import TsdfMapConfig
from tsdf_submaps.io.records import SubmapRecord
from tsdf_submaps.map.merge import merge_tsdf_layer
from tsdf_submaps.map.tsdf_map import TsdfMap


class TsdfSubmap:
    """A TSDF layer anchored by a rigid-body pose T_M_S."""

    def __init__(self, T_M_S: np.ndarray, config: TsdfMapConfig, tsdf_map: TsdfMap | None = None):
        self._T_M_S = as_pose(T_M_S)
        self._tsdf_map = tsdf_map if tsdf_map is not None else TsdfMap(config)

    @classmethod
    def empty(cls, config: TsdfMapConfig) -> "TsdfSubmap":
        """Empty submap at the identity pose."""
        return cls(se3_identity(), config)

    @property
    def pose(self) -> np.ndarray:
        """Copy of the pose T_M_S."""
        return self._T_M_S.copy()

    @pose.setter
    def pose(self, T_M_S: np.ndarray) -> None:
        self._T_M_S = as_pose(T_M_S)

    def get_pose(self) -> np.ndarray:
        return self.pose

    def set_pose(self, T_M_S: np.ndarray) -> None:
        self.pose = T_M_S

    @property
    def tsdf_map(self) -> TsdfMap:
        """The underlying layer (shared, mutable in place)."""
        return self._tsdf_map

    @property
    def config(self) -> TsdfMapConfig:
        return self._tsdf_map.config

    def block_size(self) -> float:
        return self._tsdf_map.block_size

    def get_number_allocated_blocks(self) -> int:
        return self._tsdf_map.get_number_allocated_blocks()

    def copy(self) -> "TsdfSubmap":
        """Deep copy of pose and voxel content."""
        return TsdfSubmap(self._T_M_S.copy(), self.config, self._tsdf_map.copy())

    def merge_from(self, other: "TsdfSubmap", T_self_other: np.ndarray) -> int:
        """
        Merge other's voxels into this submap.

        T_self_other maps other's frame into this submap's frame.
        Returns the number of voxels contributed.
        """
        return merge_tsdf_layer(other.tsdf_map, self._tsdf_map, T_self_other)

    def to_record(self, submap_id: int) -> SubmapRecord:
        map_record = self._tsdf_map.to_record()
        return SubmapRecord(
            submap_id=int(submap_id),
            T_M_S=self._T_M_S.tolist(),
            num_blocks=len(map_record.blocks),
            tsdf_map=map_record,
        )

    @classmethod
    def from_record(cls, record: SubmapRecord, config: TsdfMapConfig) -> "TsdfSubmap":
        return cls(record.T_M_S, config, TsdfMap.from_record(record.tsdf_map, config))
