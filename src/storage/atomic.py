# src/storage/atomic.py - v1
"""Whole-file JSON persistence for state files.

Every store reads the entire document, mutates it in memory and writes
it back through ``write_json_atomic``: temp file then rename, with a
direct write as fallback. If the fallback fails too, the error surfaces.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from ceremonykit.storage.errors import StorageWriteError

logger = logging.getLogger(__name__)


def read_json(path: Path) -> Any | None:
    """Load a JSON document, or None if the file does not exist.

    Raises:
        json.JSONDecodeError: If the file is not valid JSON.
    """
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def write_json_atomic(path: Path, data: Any, indent: int = 2) -> None:
    """Write a JSON document as one unit.

    Raises:
        StorageWriteError: If neither the atomic nor the direct write succeeds.
    """
    payload = json.dumps(data, indent=indent, ensure_ascii=False, default=str)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")

    try:
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)
        return
    except OSError as e:
        logger.warning(
            "Atomic write of %s failed (%s), falling back to direct write", path, e
        )
        _discard(tmp_path)

    try:
        path.write_text(payload, encoding="utf-8")
    except OSError as e:
        logger.error("Direct write of %s failed: %s", path, e)
        raise StorageWriteError(f"Failed to write {path}: {e}") from e


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not remove temp file %s: %s", path, e)
