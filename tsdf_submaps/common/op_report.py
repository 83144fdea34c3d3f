"""
Operation reports for map maintenance operators.

Fusion and projection each emit a MapOpReport describing what was merged and
whether the result is exact. A report is exact only when no voxel had to be
resampled (the relative transform is a pure translation). Reports are
validated before being logged so a malformed report fails loudly.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MapOpReport:
    """
    Audit report for a single map operator invocation.

    Attributes:
        name: Operator name (e.g., "SubmapPairFuse")
        exact: True if no approximation was made
        approximation_triggers: What caused approximation (e.g., "VoxelResampling")
        metrics: Additional metrics for debugging
        notes: Human-readable explanation
        timestamp: When the report was generated
    """
    name: str
    exact: bool
    approximation_triggers: list[str] = field(default_factory=list)
    metrics: dict = field(default_factory=dict)
    notes: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def validate(self) -> None:
        """
        Validate report consistency.

        Raises ValueError if validation fails.
        """
        if not self.name:
            raise ValueError("Op report must name its operator.")
        if self.exact and self.approximation_triggers:
            raise ValueError("Exact op cannot declare approximation triggers.")
        if not self.exact and not self.approximation_triggers:
            raise ValueError(
                f"Inexact op '{self.name}' must declare at least one approximation trigger."
            )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "exact": self.exact,
            "approximation_triggers": list(self.approximation_triggers),
            "metrics": dict(self.metrics),
            "notes": self.notes,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)
