"""
TsdfMap: block-sparse truncated signed distance layer.

Voxels are addressed by a global integer index g = floor(p / voxel_size) in
the map's own frame. Blocks group voxels_per_side^3 voxels:

    block_index = floor(g / voxels_per_side)
    local_index = g - block_index * voxels_per_side

Each block stores distance and weight arrays (float64). A voxel with weight
<= WEIGHT_EPSILON is unobserved.

Merge rule (integrate_voxels):
    contributions to one voxel are reduced first: sum(d * w), sum(w)
    w' = w0 + sum(w)
    d' = (d0 * w0 + sum(d * w)) / w'
    d' clipped to +/- truncation_distance, w' saturated at max_weight

The reduction is order independent, so merging a set of layers gives the
same result regardless of contribution order (up to float summation order).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from tsdf_submaps.common import constants
from tsdf_submaps.common.jax_init import jax, jnp
from tsdf_submaps.config import TsdfMapConfig
from tsdf_submaps.io.records import TsdfBlockRecord, TsdfMapRecord

BlockIndex = Tuple[int, int, int]


# =============================================================================
# Block
# =============================================================================


@dataclass
class TsdfBlock:
    """
    Single voxel block.

    Attributes:
        block_index: Integer block address
        distances: (VPS, VPS, VPS) signed distances (meters)
        weights: (VPS, VPS, VPS) accumulated weights
    """
    block_index: BlockIndex
    distances: np.ndarray
    weights: np.ndarray

    @property
    def num_observed(self) -> int:
        return int(np.count_nonzero(self.weights > constants.WEIGHT_EPSILON))

    def copy(self) -> "TsdfBlock":
        return TsdfBlock(
            block_index=self.block_index,
            distances=self.distances.copy(),
            weights=self.weights.copy(),
        )


def create_empty_block(block_index: BlockIndex, voxels_per_side: int) -> TsdfBlock:
    """Create a block with every voxel unobserved."""
    shape = (voxels_per_side,) * 3
    return TsdfBlock(
        block_index=tuple(int(i) for i in block_index),
        distances=np.zeros(shape, dtype=np.float64),
        weights=np.zeros(shape, dtype=np.float64),
    )


# =============================================================================
# Merge kernels
# =============================================================================


def _reduce_contributions(
    segment_ids: np.ndarray,
    distances: np.ndarray,
    weights: np.ndarray,
    num_segments: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """Sum d * w and w over contributions sharing a target voxel."""
    seg = jnp.asarray(segment_ids, dtype=jnp.int64)
    d = jnp.asarray(distances, dtype=jnp.float64)
    w = jnp.asarray(weights, dtype=jnp.float64)
    sum_dw = jax.ops.segment_sum(d * w, seg, num_segments=num_segments)
    sum_w = jax.ops.segment_sum(w, seg, num_segments=num_segments)
    return np.asarray(sum_dw), np.asarray(sum_w)


@jax.jit
def _weighted_merge_core(
    d0: jnp.ndarray,
    w0: jnp.ndarray,
    sum_dw: jnp.ndarray,
    sum_w: jnp.ndarray,
    truncation_distance: float,
    max_weight: float,
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Combine stored voxels (d0, w0) with reduced contributions."""
    w_total = w0 + sum_w
    d_new = (d0 * w0 + sum_dw) / jnp.maximum(w_total, constants.WEIGHT_EPSILON)
    d_new = jnp.clip(d_new, -truncation_distance, truncation_distance)
    w_new = jnp.minimum(w_total, max_weight)
    return d_new, w_new


# =============================================================================
# TsdfMap
# =============================================================================


class TsdfMap:
    """Block-sparse TSDF layer with a fixed voxel grid."""

    def __init__(self, config: TsdfMapConfig):
        self._config = config
        self._blocks: Dict[BlockIndex, TsdfBlock] = {}

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def config(self) -> TsdfMapConfig:
        return self._config

    @property
    def voxel_size(self) -> float:
        return self._config.tsdf_voxel_size

    @property
    def voxels_per_side(self) -> int:
        return self._config.tsdf_voxels_per_side

    @property
    def block_size(self) -> float:
        return self._config.block_size

    def point_to_voxel_index(self, points: np.ndarray) -> np.ndarray:
        """Global voxel index (int64) of point(s) in this map's frame."""
        points = np.asarray(points, dtype=float)
        return np.floor(points / self.voxel_size).astype(np.int64)

    def voxel_centers(self, voxel_indices: np.ndarray) -> np.ndarray:
        """Centre (meters) of global voxel index/indices."""
        voxel_indices = np.asarray(voxel_indices, dtype=np.int64)
        return (voxel_indices.astype(float) + 0.5) * self.voxel_size

    def split_voxel_index(self, voxel_indices: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Split global voxel indices into (block_index, local_index)."""
        voxel_indices = np.asarray(voxel_indices, dtype=np.int64)
        block_idx = np.floor_divide(voxel_indices, self.voxels_per_side)
        local_idx = voxel_indices - block_idx * self.voxels_per_side
        return block_idx, local_idx

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def get_number_allocated_blocks(self) -> int:
        return len(self._blocks)

    def block_indices(self) -> List[BlockIndex]:
        """Allocated block indices in ascending order."""
        return sorted(self._blocks.keys())

    def blocks(self) -> Iterator[TsdfBlock]:
        """Allocated blocks in ascending index order."""
        for index in self.block_indices():
            yield self._blocks[index]

    def has_block(self, block_index: BlockIndex) -> bool:
        return tuple(int(i) for i in block_index) in self._blocks

    def get_block(self, block_index: BlockIndex) -> Optional[TsdfBlock]:
        return self._blocks.get(tuple(int(i) for i in block_index))

    def allocate_block(self, block_index: BlockIndex) -> TsdfBlock:
        """Return the block at block_index, allocating it when missing."""
        key = tuple(int(i) for i in block_index)
        block = self._blocks.get(key)
        if block is None:
            block = create_empty_block(key, self.voxels_per_side)
            self._blocks[key] = block
        return block

    def clear(self) -> None:
        self._blocks.clear()

    # ------------------------------------------------------------------
    # Voxels
    # ------------------------------------------------------------------

    def set_voxel(self, point: np.ndarray, distance: float, weight: float) -> None:
        """Overwrite the voxel containing point (map frame)."""
        g = self.point_to_voxel_index(np.asarray(point, dtype=float).reshape(3))
        block_idx, local = self.split_voxel_index(g)
        block = self.allocate_block(tuple(block_idx))
        lx, ly, lz = (int(i) for i in local)
        t = self._config.truncation_distance
        block.distances[lx, ly, lz] = float(np.clip(distance, -t, t))
        block.weights[lx, ly, lz] = float(min(max(weight, 0.0), self._config.max_weight))

    def get_voxel(self, point: np.ndarray) -> Optional[Tuple[float, float]]:
        """(distance, weight) of the voxel containing point, None if its block is unallocated."""
        g = self.point_to_voxel_index(np.asarray(point, dtype=float).reshape(3))
        block_idx, local = self.split_voxel_index(g)
        block = self.get_block(tuple(block_idx))
        if block is None:
            return None
        lx, ly, lz = (int(i) for i in local)
        return float(block.distances[lx, ly, lz]), float(block.weights[lx, ly, lz])

    def get_voxel_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Observed voxels in ascending block order.

        Returns:
            (voxel_indices (N, 3) int64, distances (N,), weights (N,))
        """
        idx_list = []
        d_list = []
        w_list = []
        vps = self.voxels_per_side
        for block in self.blocks():
            observed = block.weights > constants.WEIGHT_EPSILON
            if not np.any(observed):
                continue
            local = np.argwhere(observed).astype(np.int64)
            idx_list.append(np.asarray(block.block_index, dtype=np.int64) * vps + local)
            d_list.append(block.distances[observed])
            w_list.append(block.weights[observed])
        if not idx_list:
            return (
                np.empty((0, 3), dtype=np.int64),
                np.empty((0,), dtype=np.float64),
                np.empty((0,), dtype=np.float64),
            )
        return np.concatenate(idx_list), np.concatenate(d_list), np.concatenate(w_list)

    def integrate_voxels(
        self,
        voxel_indices: np.ndarray,
        distances: np.ndarray,
        weights: np.ndarray,
    ) -> int:
        """
        Merge weighted distance contributions into the layer.

        Args:
            voxel_indices: (N, 3) global voxel indices in this map's grid
            distances: (N,) signed distances
            weights: (N,) weights; entries <= WEIGHT_EPSILON are ignored

        Returns:
            Number of distinct voxels updated
        """
        g = np.asarray(voxel_indices, dtype=np.int64).reshape(-1, 3)
        d = np.asarray(distances, dtype=np.float64).reshape(-1)
        w = np.asarray(weights, dtype=np.float64).reshape(-1)
        if not (g.shape[0] == d.shape[0] == w.shape[0]):
            raise ValueError(
                f"integrate_voxels: mismatched lengths {g.shape[0]}, {d.shape[0]}, {w.shape[0]}"
            )
        keep = w > constants.WEIGHT_EPSILON
        if not np.any(keep):
            return 0
        g, d, w = g[keep], d[keep], w[keep]

        targets, inverse = np.unique(g, axis=0, return_inverse=True)
        inverse = np.asarray(inverse).reshape(-1)
        n_targets = int(targets.shape[0])
        sum_dw, sum_w = _reduce_contributions(inverse, d, w, n_targets)

        block_idx, local = self.split_voxel_index(targets)
        blocks = [self.allocate_block(tuple(b)) for b in block_idx]
        d0 = np.empty(n_targets, dtype=np.float64)
        w0 = np.empty(n_targets, dtype=np.float64)
        for i, (block, (lx, ly, lz)) in enumerate(zip(blocks, local)):
            d0[i] = block.distances[lx, ly, lz]
            w0[i] = block.weights[lx, ly, lz]

        d_new, w_new = _weighted_merge_core(
            jnp.asarray(d0),
            jnp.asarray(w0),
            jnp.asarray(sum_dw),
            jnp.asarray(sum_w),
            float(self._config.truncation_distance),
            float(self._config.max_weight),
        )
        d_new = np.asarray(d_new)
        w_new = np.asarray(w_new)
        for i, (block, (lx, ly, lz)) in enumerate(zip(blocks, local)):
            block.distances[lx, ly, lz] = d_new[i]
            block.weights[lx, ly, lz] = w_new[i]
        return n_targets

    # ------------------------------------------------------------------
    # Copy / records
    # ------------------------------------------------------------------

    def copy(self) -> "TsdfMap":
        """Deep copy: independent block storage, same config."""
        new_map = TsdfMap(self._config)
        for index, block in self._blocks.items():
            new_map._blocks[index] = block.copy()
        return new_map

    def to_record(self) -> TsdfMapRecord:
        return TsdfMapRecord(
            blocks=[
                TsdfBlockRecord(
                    index=block.block_index,
                    distances=block.distances.reshape(-1).tolist(),
                    weights=block.weights.reshape(-1).tolist(),
                )
                for block in self.blocks()
            ]
        )

    @classmethod
    def from_record(cls, record: TsdfMapRecord, config: TsdfMapConfig) -> "TsdfMap":
        """
        Rebuild a layer from its record.

        Raises:
            ValueError: If a block's array length does not match the config
        """
        tsdf_map = cls(config)
        n_voxels = config.voxels_per_block
        shape = (config.tsdf_voxels_per_side,) * 3
        for block_record in record.blocks:
            if len(block_record.distances) != n_voxels:
                raise ValueError(
                    f"block {block_record.index}: expected {n_voxels} voxels, "
                    f"got {len(block_record.distances)}"
                )
            block = tsdf_map.allocate_block(block_record.index)
            block.distances[...] = np.asarray(block_record.distances, dtype=np.float64).reshape(shape)
            block.weights[...] = np.asarray(block_record.weights, dtype=np.float64).reshape(shape)
        return tsdf_map
