"""
Pydantic validation models for map parameters.

These models are the validated boundary between untyped input (YAML files,
saved collection records) and the TsdfMapConfig dataclass used at runtime.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tsdf_submaps.common import constants


class TsdfMapParams(BaseModel):
    """Shared TSDF map parameters applied to every submap of a collection."""

    model_config = ConfigDict(extra="forbid")

    tsdf_voxel_size: float = Field(default=constants.TSDF_VOXEL_SIZE_DEFAULT, gt=0.0)
    tsdf_voxels_per_side: int = Field(default=constants.TSDF_VOXELS_PER_SIDE_DEFAULT, ge=1)
    truncation_distance: float = Field(
        default=constants.TSDF_TRUNCATION_DISTANCE_DEFAULT, gt=0.0
    )
    max_weight: float = Field(default=constants.TSDF_MAX_WEIGHT_DEFAULT, gt=0.0)

    @model_validator(mode="after")
    def _check_truncation(self) -> "TsdfMapParams":
        # A band thinner than one voxel cannot hold a zero crossing.
        if self.truncation_distance < self.tsdf_voxel_size:
            raise ValueError(
                f"truncation_distance ({self.truncation_distance}) must be >= "
                f"tsdf_voxel_size ({self.tsdf_voxel_size})"
            )
        return self
