"""
Structured records for persisting submap collections.

The record tree mirrors the runtime objects:

    TsdfSubmapCollectionRecord
      config: TsdfMapParams
      submaps: [SubmapRecord]
        submap_id, T_M_S, num_blocks
        tsdf_map: TsdfMapRecord
          blocks: [TsdfBlockRecord]  (index + flattened distances/weights)

Records serialize to JSON through pydantic; floats round-trip exactly.
"""

from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tsdf_submaps.common import constants
from tsdf_submaps.common.param_models import TsdfMapParams


class TsdfBlockRecord(BaseModel):
    """One voxel block; arrays are flattened in C order (x, y, z)."""

    model_config = ConfigDict(extra="forbid")

    index: Tuple[int, int, int]
    distances: List[float]
    weights: List[float]

    @model_validator(mode="after")
    def _check_lengths(self) -> "TsdfBlockRecord":
        if len(self.distances) != len(self.weights):
            raise ValueError(
                f"block {self.index}: {len(self.distances)} distances vs "
                f"{len(self.weights)} weights"
            )
        return self


class TsdfMapRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    blocks: List[TsdfBlockRecord] = Field(default_factory=list)


class SubmapRecord(BaseModel):
    """A submap: its identifier, pose (6D vector) and voxel content."""

    model_config = ConfigDict(extra="forbid")

    submap_id: int
    T_M_S: List[float]
    num_blocks: int = Field(ge=0)
    tsdf_map: TsdfMapRecord

    @field_validator("T_M_S")
    @classmethod
    def _check_pose(cls, value: List[float]) -> List[float]:
        if len(value) != 6:
            raise ValueError(f"T_M_S must have 6 entries, got {len(value)}")
        return value

    @model_validator(mode="after")
    def _check_num_blocks(self) -> "SubmapRecord":
        if self.num_blocks != len(self.tsdf_map.blocks):
            raise ValueError(
                f"submap {self.submap_id}: num_blocks={self.num_blocks} but "
                f"{len(self.tsdf_map.blocks)} blocks stored"
            )
        return self


class TsdfSubmapCollectionRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    format_version: int = constants.RECORD_FORMAT_VERSION
    config: TsdfMapParams
    submaps: List[SubmapRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "TsdfSubmapCollectionRecord":
        ids = [s.submap_id for s in self.submaps]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate submap ids in record: {sorted(ids)}")
        return self
