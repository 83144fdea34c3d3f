#!/usr/bin/env python3
"""
Summarize a saved submap collection (ids, poses, block counts).
"""
from __future__ import annotations

import argparse
import json
import logging
from typing import List, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from tsdf_submaps.collection.tsdf_submap_collection import TsdfSubmapCollection
from tsdf_submaps.io.persistence import load_collection_from_file


def summarize_collection(collection: TsdfSubmapCollection, project: bool = False) -> dict:
    """JSON-serializable summary; quaternions are (x, y, z, w)."""
    config = collection.config
    submaps = []
    for submap_id in collection.get_ids():
        submap = collection.get_submap(submap_id)
        if submap is None:
            # Removed since get_ids()
            continue
        T_M_S = submap.get_pose()
        quat_xyzw = Rotation.from_rotvec(T_M_S[3:6]).as_quat()
        submaps.append({
            "submap_id": int(submap_id),
            "position": [float(v) for v in T_M_S[:3]],
            "quat_xyzw": [float(v) for v in quat_xyzw],
            "num_blocks": submap.get_number_allocated_blocks(),
        })

    summary = {
        "num_submaps": collection.size(),
        "active_submap_id": collection.active_submap_id,
        "tsdf_voxel_size": config.tsdf_voxel_size,
        "tsdf_voxels_per_side": config.tsdf_voxels_per_side,
        "block_size": config.block_size,
        "total_blocks": collection.get_number_allocated_blocks(),
        "submaps": submaps,
    }
    if project:
        projected = collection.get_projected_map()
        _, _, weights = projected.get_voxel_arrays()
        summary["projected_blocks"] = projected.get_number_allocated_blocks()
        summary["projected_observed_voxels"] = int(weights.shape[0])
        summary["projected_total_weight"] = float(np.sum(weights))
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Summarize a saved TSDF submap collection")
    ap.add_argument("collection", help="Collection file written by save_to_file")
    ap.add_argument("--project", action="store_true", help="Also project the collection and report the result")
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    collection = load_collection_from_file(args.collection)
    if collection is None:
        return 1

    print(json.dumps(summarize_collection(collection, project=args.project), indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
