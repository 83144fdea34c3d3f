"""
TsdfSubmapCollection: identity, pose, fusion and projection for a set of submaps.

Each submap is registered under a unique integer id and held by shared
reference: a handle returned by get_submap() and the collection's entry are
the same object, and a handle outlives clear()/remove_submap().

Ids:
- explicit ids must be unused (create returns False otherwise)
- auto ids come from a counter kept above every id ever registered, so ids
  are never reused within a collection's lifetime (clear() included)
- iteration, bulk pose access, projection and records all use ascending id
  order

Active submap:
- every creation makes the new submap active
- removing the active submap (remove_submap, fuse_submap_pair donor) moves
  the active id to the highest remaining id, or None when empty
- active accessors raise RuntimeError when there is no valid active submap

Fusion removes the donor submap so a later projection does not count its
voxels twice.

All structural mutations and id-set walks hold a single re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence

import numpy as np

from tsdf_submaps.common import constants
from tsdf_submaps.common.geometry import as_pose, rotation_angle, se3_relative
from tsdf_submaps.common.op_report import MapOpReport
from tsdf_submaps.config import TsdfMapConfig
from tsdf_submaps.io.records import TsdfSubmapCollectionRecord
from tsdf_submaps.map.merge import is_voxel_aligned, merge_tsdf_layer
from tsdf_submaps.map.tsdf_map import TsdfMap
from tsdf_submaps.map.tsdf_submap import TsdfSubmap

logger = logging.getLogger(__name__)


class TsdfSubmapCollection:
    """Ordered collection of TSDF submaps keyed by submap id."""

    def __init__(
        self,
        config: TsdfMapConfig,
        submaps: Optional[Sequence[TsdfSubmap]] = None,
    ):
        """
        Args:
            config: Map configuration shared by every submap this collection creates
            submaps: Optional initial submaps; registered under ids 0..N-1 in
                list order (any ids they had elsewhere are not carried over)
        """
        self._config = config
        self._lock = threading.RLock()
        self._id_to_submap: Dict[int, TsdfSubmap] = {}
        self._active_submap_id: Optional[int] = None
        self._next_submap_id = 0

        if submaps:
            for submap in submaps:
                if submap is None:
                    raise ValueError("TsdfSubmapCollection: initial submaps must not be None")
                self._register(self._next_submap_id, submap)
            logger.info(f"Created submap collection from {len(self._id_to_submap)} submaps")

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _register(self, submap_id: int, submap: TsdfSubmap) -> None:
        self._id_to_submap[submap_id] = submap
        self._active_submap_id = submap_id
        self._next_submap_id = max(self._next_submap_id, submap_id + 1)

    def _register_passive(self, submap_id: int, submap: TsdfSubmap) -> None:
        self._id_to_submap[submap_id] = submap
        self._next_submap_id = max(self._next_submap_id, submap_id + 1)

    def _sorted_ids(self) -> List[int]:
        return sorted(self._id_to_submap.keys())

    def _remove(self, submap_id: int) -> None:
        del self._id_to_submap[submap_id]
        if self._active_submap_id == submap_id:
            self._active_submap_id = max(self._id_to_submap) if self._id_to_submap else None

    def _active_submap(self) -> TsdfSubmap:
        submap = None
        if self._active_submap_id is not None:
            submap = self._id_to_submap.get(self._active_submap_id)
        if submap is None:
            raise RuntimeError(
                f"No active submap (active id {self._active_submap_id}, "
                f"{len(self._id_to_submap)} submaps)"
            )
        return submap

    # ------------------------------------------------------------------
    # Identity & storage
    # ------------------------------------------------------------------

    def get_ids(self) -> List[int]:
        """Submap ids in ascending order."""
        with self._lock:
            return self._sorted_ids()

    def exists(self, submap_id: int) -> bool:
        with self._lock:
            return submap_id in self._id_to_submap

    def create_new_submap(self, T_M_S: np.ndarray, submap_id: Optional[int] = None) -> bool:
        """
        Create an empty submap at T_M_S and make it active.

        Args:
            T_M_S: 6D pose of the new submap in the collection frame
            submap_id: Explicit id, or None to take the next unused id

        Returns:
            False (collection unchanged) if submap_id is already registered
        """
        T_M_S = as_pose(T_M_S)
        with self._lock:
            if submap_id is None:
                submap_id = self._next_submap_id
            else:
                submap_id = int(submap_id)
                if submap_id in self._id_to_submap:
                    logger.warning(f"create_new_submap: submap id {submap_id} already exists")
                    return False
            self._register(submap_id, TsdfSubmap(T_M_S, self._config))
            logger.debug(f"Created submap {submap_id} at {T_M_S.tolist()}")
            return True

    def duplicate_submap(self, source_submap_id: int, new_submap_id: int) -> bool:
        """
        Deep-copy a submap (pose and voxels) under a new id.

        The active id is unchanged. Returns False if the source is missing or
        new_submap_id is already registered.
        """
        with self._lock:
            source = self._id_to_submap.get(source_submap_id)
            if source is None:
                logger.warning(f"duplicate_submap: source submap {source_submap_id} not found")
                return False
            new_submap_id = int(new_submap_id)
            if new_submap_id in self._id_to_submap:
                logger.warning(f"duplicate_submap: submap id {new_submap_id} already exists")
                return False
            self._register_passive(new_submap_id, source.copy())
            logger.debug(f"Duplicated submap {source_submap_id} -> {new_submap_id}")
            return True

    def remove_submap(self, submap_id: int) -> bool:
        """Remove a submap. Returns False if submap_id is unknown."""
        with self._lock:
            if submap_id not in self._id_to_submap:
                return False
            self._remove(submap_id)
            logger.debug(f"Removed submap {submap_id}; active is now {self._active_submap_id}")
            return True

    def get_submap(self, submap_id: int) -> Optional[TsdfSubmap]:
        """Shared handle to the submap, or None if submap_id is unknown."""
        with self._lock:
            return self._id_to_submap.get(submap_id)

    def get_submaps(self) -> List[TsdfSubmap]:
        """Shared handles to every submap in ascending id order."""
        with self._lock:
            return [self._id_to_submap[i] for i in self._sorted_ids()]

    def clear(self) -> None:
        """Drop every submap. The id counter is kept, so ids are not reused."""
        with self._lock:
            self._id_to_submap.clear()
            self._active_submap_id = None

    def empty(self) -> bool:
        with self._lock:
            return not self._id_to_submap

    def size(self) -> int:
        with self._lock:
            return len(self._id_to_submap)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, submap_id: object) -> bool:
        return self.exists(submap_id)

    def num_patches(self) -> int:
        return self.size()

    def block_size(self) -> float:
        """Block size shared by every submap of the collection."""
        return self._config.block_size

    @property
    def config(self) -> TsdfMapConfig:
        return self._config

    def get_config(self) -> TsdfMapConfig:
        return self._config

    # ------------------------------------------------------------------
    # Active submap
    # ------------------------------------------------------------------

    @property
    def active_submap_id(self) -> Optional[int]:
        with self._lock:
            return self._active_submap_id

    def get_active_submap_id(self) -> int:
        with self._lock:
            self._active_submap()
            return int(self._active_submap_id)

    def get_active_submap(self) -> TsdfSubmap:
        with self._lock:
            return self._active_submap()

    def get_active_submap_pose(self) -> np.ndarray:
        with self._lock:
            return self._active_submap().pose

    def get_active_tsdf_map(self) -> TsdfMap:
        """The active submap's layer, for in-place integration."""
        with self._lock:
            return self._active_submap().tsdf_map

    # ------------------------------------------------------------------
    # Poses
    # ------------------------------------------------------------------

    def set_submap_pose(self, submap_id: int, T_M_S: np.ndarray) -> bool:
        T_M_S = as_pose(T_M_S)
        with self._lock:
            submap = self._id_to_submap.get(submap_id)
            if submap is None:
                return False
            submap.set_pose(T_M_S)
            return True

    def get_submap_pose(self, submap_id: int) -> Optional[np.ndarray]:
        """Copy of the submap's pose, or None if submap_id is unknown."""
        with self._lock:
            submap = self._id_to_submap.get(submap_id)
            if submap is None:
                return None
            return submap.get_pose()

    def set_submap_poses(self, poses: Sequence[np.ndarray]) -> None:
        """
        Set every submap's pose, in ascending id order.

        Raises:
            ValueError: If len(poses) != size() or any pose is malformed;
                no pose is applied in that case
        """
        with self._lock:
            if len(poses) != len(self._id_to_submap):
                raise ValueError(
                    f"set_submap_poses: got {len(poses)} poses for "
                    f"{len(self._id_to_submap)} submaps"
                )
            validated = [as_pose(T) for T in poses]
            for submap_id, T_M_S in zip(self._sorted_ids(), validated):
                self._id_to_submap[submap_id].set_pose(T_M_S)

    def get_submap_poses(self) -> List[np.ndarray]:
        """Poses of every submap in ascending id order."""
        with self._lock:
            return [self._id_to_submap[i].get_pose() for i in self._sorted_ids()]

    # ------------------------------------------------------------------
    # Fusion / projection
    # ------------------------------------------------------------------

    def fuse_submap_pair(self, submap_id_a: int, submap_id_b: int) -> bool:
        """
        Fuse submap B into submap A and remove B.

        B's voxels are moved into A's frame with T_A_B = T_M_A^-1 * T_M_B.

        Projecting after the fusion reproduces the projection before it
        voxel for voxel only when T_A_B and T_M_A are grid-aligned (whole-voxel
        translations, quarter turns). Otherwise B is resampled twice and voxel
        indices may shift; total weight and weighted distance are still
        conserved (below weight saturation and truncation clipping).

        Returns:
            False (nothing changed) if either id is unknown or they are equal
        """
        with self._lock:
            if submap_id_a == submap_id_b:
                logger.warning(f"fuse_submap_pair: cannot fuse submap {submap_id_a} with itself")
                return False
            submap_a = self._id_to_submap.get(submap_id_a)
            submap_b = self._id_to_submap.get(submap_id_b)
            if submap_a is None or submap_b is None:
                missing = [i for i, s in ((submap_id_a, submap_a), (submap_id_b, submap_b)) if s is None]
                logger.warning(f"fuse_submap_pair: submap(s) {missing} not found")
                return False

            T_A_B = se3_relative(submap_a.get_pose(), submap_b.get_pose())
            n_merged = submap_a.merge_from(submap_b, T_A_B)
            self._remove(submap_id_b)

            exact = is_voxel_aligned(T_A_B, submap_a.tsdf_map.voxel_size)
            report = MapOpReport(
                name="SubmapPairFuse",
                exact=exact,
                approximation_triggers=[] if exact else ["VoxelResampling"],
                metrics={
                    "submap_id_a": int(submap_id_a),
                    "submap_id_b": int(submap_id_b),
                    "T_A_B": T_A_B.tolist(),
                    "rotation_angle": rotation_angle(T_A_B),
                    "voxels_merged": int(n_merged),
                    "blocks_after": submap_a.get_number_allocated_blocks(),
                },
                notes="Donor submap removed after fusion.",
            )
            report.validate()
            logger.info(f"Fused submap {submap_id_b} into {submap_id_a} ({n_merged} voxels)")
            logger.debug(report.to_json())
            return True

    def get_projected_map(self) -> TsdfMap:
        """
        Flatten every submap into one layer in the collection frame.

        Submaps are merged in ascending id order. An empty collection gives an
        empty layer.
        """
        with self._lock:
            projected = TsdfMap(self._config)
            n_voxels = 0
            approximate_ids = []
            for submap_id in self._sorted_ids():
                submap = self._id_to_submap[submap_id]
                T_M_S = submap.get_pose()
                n_voxels += merge_tsdf_layer(submap.tsdf_map, projected, T_M_S)
                if not is_voxel_aligned(T_M_S, self._config.tsdf_voxel_size):
                    approximate_ids.append(submap_id)

            report = MapOpReport(
                name="CollectionProject",
                exact=not approximate_ids,
                approximation_triggers=["VoxelResampling"] if approximate_ids else [],
                metrics={
                    "num_submaps": len(self._id_to_submap),
                    "voxels_merged": n_voxels,
                    "blocks_out": projected.get_number_allocated_blocks(),
                    "resampled_submap_ids": approximate_ids,
                },
            )
            report.validate()
            logger.debug(report.to_json())
            return projected

    # ------------------------------------------------------------------
    # Accounting / records
    # ------------------------------------------------------------------

    def get_number_allocated_blocks(self) -> int:
        """Sum of allocated blocks over every submap."""
        with self._lock:
            return sum(s.get_number_allocated_blocks() for s in self._id_to_submap.values())

    def get_record(self) -> TsdfSubmapCollectionRecord:
        """Structured record of the config and every submap (ascending id order)."""
        with self._lock:
            return TsdfSubmapCollectionRecord(
                format_version=constants.RECORD_FORMAT_VERSION,
                config=self._config.to_params(),
                submaps=[
                    self._id_to_submap[i].to_record(i) for i in self._sorted_ids()
                ],
            )

    @classmethod
    def from_record(cls, record: TsdfSubmapCollectionRecord) -> "TsdfSubmapCollection":
        """
        Rebuild a collection from its record, keeping the recorded ids.

        The highest recorded id becomes active.
        """
        config = TsdfMapConfig.from_params(record.config)
        collection = cls(config)
        for submap_record in sorted(record.submaps, key=lambda s: s.submap_id):
            collection._register(
                int(submap_record.submap_id),
                TsdfSubmap.from_record(submap_record, config),
            )
        return collection

    def save_to_file(self, file_path: str) -> bool:
        """Write the collection record to file_path atomically. False on I/O failure."""
        from tsdf_submaps.io.persistence import save_collection_to_file

        return save_collection_to_file(self, file_path)
