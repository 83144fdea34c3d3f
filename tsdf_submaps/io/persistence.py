"""
Save and load submap collections.

Files hold one TsdfSubmapCollectionRecord as JSON. Saving writes a temporary
file next to the destination and renames it into place, so readers never see
a partially written collection. I/O and validation failures are logged and
reported through the return value.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from tsdf_submaps.collection.tsdf_submap_collection import TsdfSubmapCollection
from tsdf_submaps.common import constants
from tsdf_submaps.io.records import TsdfSubmapCollectionRecord

logger = logging.getLogger(__name__)


def save_collection_to_file(collection: TsdfSubmapCollection, file_path: str | Path) -> bool:
    """
    Atomically write the collection record to file_path.

    Returns:
        True on success, False if the destination could not be written
    """
    file_path = Path(file_path)
    payload = collection.get_record().model_dump_json()

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(file_path.parent),
            prefix=f".{file_path.name}.",
            suffix=constants.SAVE_TMP_SUFFIX,
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, file_path)
        tmp_path = None
    except OSError as e:
        logger.error(f"Could not save submap collection to {file_path}: {e}")
        return False
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    logger.info(f"Saved {collection.size()} submaps to {file_path}")
    return True


def load_collection_record(file_path: str | Path) -> Optional[TsdfSubmapCollectionRecord]:
    """Read and validate a record file. None (logged) on failure."""
    file_path = Path(file_path)
    try:
        payload = file_path.read_bytes()
    except OSError as e:
        logger.error(f"Could not read submap collection from {file_path}: {e}")
        return None
    try:
        record = TsdfSubmapCollectionRecord.model_validate_json(payload)
    except ValueError as e:
        logger.error(f"Invalid submap collection file {file_path}: {e}")
        return None
    if record.format_version != constants.RECORD_FORMAT_VERSION:
        logger.error(
            f"Unsupported submap collection format {record.format_version} in {file_path} "
            f"(expected {constants.RECORD_FORMAT_VERSION})"
        )
        return None
    return record


def load_collection_from_file(file_path: str | Path) -> Optional[TsdfSubmapCollection]:
    """
    Load a collection saved with save_collection_to_file.

    Recorded submap ids are kept. Returns None (logged) on I/O or
    validation failure.
    """
    record = load_collection_record(file_path)
    if record is None:
        return None
    try:
        collection = TsdfSubmapCollection.from_record(record)
    except ValueError as e:
        logger.error(f"Invalid submap content in {file_path}: {e}")
        return None
    logger.info(f"Loaded {collection.size()} submaps from {file_path}")
    return collection
