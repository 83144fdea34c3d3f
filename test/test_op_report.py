"""
Tests for MapOpReport validation and serialization.
"""

import json

import pytest

from tsdf_submaps.common.op_report import MapOpReport


def test_exact_report_validates():
    MapOpReport(name="SubmapPairFuse", exact=True).validate()


def test_inexact_report_with_trigger_validates():
    MapOpReport(name="CollectionProject", exact=False, approximation_triggers=["VoxelResampling"]).validate()


def test_exact_report_with_trigger_fails():
    report = MapOpReport(name="SubmapPairFuse", exact=True, approximation_triggers=["VoxelResampling"])
    with pytest.raises(ValueError):
        report.validate()


def test_inexact_report_without_trigger_fails():
    with pytest.raises(ValueError):
        MapOpReport(name="SubmapPairFuse", exact=False).validate()


def test_unnamed_report_fails():
    with pytest.raises(ValueError):
        MapOpReport(name="", exact=True).validate()


def test_to_json():
    report = MapOpReport(
        name="SubmapPairFuse",
        exact=False,
        approximation_triggers=["VoxelResampling"],
        metrics={"voxels_merged": 12},
        notes="test",
        timestamp=1.5,
    )
    payload = json.loads(report.to_json())
    assert payload == {
        "name": "SubmapPairFuse",
        "exact": False,
        "approximation_triggers": ["VoxelResampling"],
        "metrics": {"voxels_merged": 12},
        "notes": "test",
        "timestamp": 1.5,
    }
