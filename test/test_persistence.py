"""
Tests for saving and loading submap collections.
"""

import json
import logging

import numpy as np

from tsdf_submaps.collection import TsdfSubmapCollection
from tsdf_submaps.common import constants
from tsdf_submaps.io.persistence import (
    load_collection_from_file,
    load_collection_record,
    save_collection_to_file,
)


def _saved_collection(map_config, random_pose):
    collection = TsdfSubmapCollection(map_config)
    collection.create_new_submap(random_pose, submap_id=3)
    collection.get_active_tsdf_map().set_voxel([0.3, -0.2, 0.1], -0.125, 2.5)
    collection.create_new_submap(np.zeros(6), submap_id=8)
    collection.duplicate_submap(3, 5)
    return collection


class TestRoundTrip:

    def test_save_and_load_preserves_collection(self, tmp_path, map_config, random_pose):
        collection = _saved_collection(map_config, random_pose)
        path = tmp_path / "collection.json"
        assert collection.save_to_file(str(path))

        loaded = load_collection_from_file(path)
        assert loaded is not None
        assert loaded.get_ids() == [3, 5, 8]
        assert loaded.get_config() == map_config
        assert loaded.active_submap_id == 8
        for submap_id in loaded.get_ids():
            assert np.array_equal(loaded.get_submap_pose(submap_id), collection.get_submap_pose(submap_id))
            original = collection.get_submap(submap_id).tsdf_map.get_voxel_arrays()
            restored = loaded.get_submap(submap_id).tsdf_map.get_voxel_arrays()
            for a, b in zip(original, restored):
                assert np.array_equal(a, b)

    def test_loaded_collection_continues_ids(self, tmp_path, map_config, random_pose):
        path = tmp_path / "collection.json"
        _saved_collection(map_config, random_pose).save_to_file(str(path))
        loaded = load_collection_from_file(path)
        assert loaded.create_new_submap(np.zeros(6))
        assert loaded.active_submap_id == 9

    def test_random_content_round_trip(self, tmp_path, map_config, make_filled_submap):
        collection = TsdfSubmapCollection(
            map_config, [make_filled_submap(seed=i, n_voxels=80) for i in range(3)]
        )
        path = tmp_path / "random.json"
        assert save_collection_to_file(collection, path)
        loaded = load_collection_from_file(path)
        assert loaded.get_number_allocated_blocks() == collection.get_number_allocated_blocks()
        for a, b in zip(
            collection.get_projected_map().get_voxel_arrays(),
            loaded.get_projected_map().get_voxel_arrays(),
        ):
            assert np.array_equal(a, b)

    def test_empty_collection_round_trip(self, tmp_path, map_config):
        path = tmp_path / "empty.json"
        assert TsdfSubmapCollection(map_config).save_to_file(str(path))
        loaded = load_collection_from_file(path)
        assert loaded is not None
        assert loaded.empty()
        assert loaded.active_submap_id is None

    def test_overwrite_existing_file(self, tmp_path, map_config, identity_pose):
        path = tmp_path / "collection.json"
        first = TsdfSubmapCollection(map_config)
        first.create_new_submap(identity_pose)
        assert first.save_to_file(str(path))
        first.create_new_submap(identity_pose)
        assert first.save_to_file(str(path))
        assert load_collection_from_file(path).get_ids() == [0, 1]


class TestSaveFailures:

    def test_missing_directory_returns_false(self, tmp_path, map_config, caplog):
        path = tmp_path / "missing" / "collection.json"
        with caplog.at_level(logging.ERROR):
            assert not TsdfSubmapCollection(map_config).save_to_file(str(path))
        assert not path.exists()
        assert any("Could not save" in r.getMessage() for r in caplog.records)

    def test_no_temporary_files_left(self, tmp_path, map_config, identity_pose):
        collection = TsdfSubmapCollection(map_config)
        collection.create_new_submap(identity_pose)
        assert collection.save_to_file(str(tmp_path / "collection.json"))
        leftovers = [p for p in tmp_path.iterdir() if p.name.endswith(constants.SAVE_TMP_SUFFIX)]
        assert leftovers == []
        assert [p.name for p in tmp_path.iterdir()] == ["collection.json"]


class TestLoadFailures:

    def test_missing_file(self, tmp_path):
        assert load_collection_from_file(tmp_path / "nope.json") is None

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "garbage.json"
        path.write_text("not json at all")
        assert load_collection_from_file(path) is None

    def test_non_utf8_file(self, tmp_path, caplog):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with caplog.at_level(logging.ERROR):
            assert load_collection_record(path) is None
            assert load_collection_from_file(path) is None
        assert any("Invalid submap collection file" in r.getMessage() for r in caplog.records)

    def test_unknown_format_version(self, tmp_path, map_config):
        record = TsdfSubmapCollection(map_config).get_record()
        payload = json.loads(record.model_dump_json())
        payload["format_version"] = constants.RECORD_FORMAT_VERSION + 1
        path = tmp_path / "future.json"
        path.write_text(json.dumps(payload))
        assert load_collection_record(path) is None
        assert load_collection_from_file(path) is None

    def test_inconsistent_block_count(self, tmp_path, map_config, identity_pose):
        collection = TsdfSubmapCollection(map_config)
        collection.create_new_submap(identity_pose)
        collection.get_active_tsdf_map().set_voxel([0.0, 0.0, 0.0], 0.1, 1.0)
        payload = json.loads(collection.get_record().model_dump_json())
        payload["submaps"][0]["num_blocks"] = 7
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(payload))
        assert load_collection_from_file(path) is None

    def test_wrong_block_size(self, tmp_path, map_config, identity_pose):
        collection = TsdfSubmapCollection(map_config)
        collection.create_new_submap(identity_pose)
        collection.get_active_tsdf_map().set_voxel([0.0, 0.0, 0.0], 0.1, 1.0)
        payload = json.loads(collection.get_record().model_dump_json())
        payload["config"]["tsdf_voxels_per_side"] = 2
        path = tmp_path / "mismatch.json"
        path.write_text(json.dumps(payload))
        assert load_collection_from_file(path) is None


class TestRecord:

    def test_record_fields(self, map_config, random_pose):
        collection = TsdfSubmapCollection(map_config)
        collection.create_new_submap(random_pose, submap_id=4)
        collection.get_active_tsdf_map().set_voxel([0.1, 0.1, 0.1], 0.2, 1.0)
        collection.get_active_tsdf_map().set_voxel([2.1, 0.1, 0.1], 0.2, 1.0)
        collection.create_new_submap(np.zeros(6), submap_id=1)

        record = collection.get_record()
        assert record.format_version == constants.RECORD_FORMAT_VERSION
        assert record.config.tsdf_voxel_size == map_config.tsdf_voxel_size
        assert [s.submap_id for s in record.submaps] == [1, 4]
        assert record.submaps[1].T_M_S == random_pose.tolist()
        assert record.submaps[1].num_blocks == 2
        assert record.submaps[0].num_blocks == 0
        block = record.submaps[1].tsdf_map.blocks[0]
        assert len(block.distances) == map_config.voxels_per_block
