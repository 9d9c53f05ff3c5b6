# src/storage/progress_store.py - v1
"""Crash-safe progress checkpoint for one in-flight ceremony.

The file's existence is the "incomplete run" signal: it is written after
every completed step and removed only once the execution succeeds.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ceremonykit.core.models import Clock, utc_now
from ceremonykit.storage import layout
from ceremonykit.storage.atomic import read_json, write_json_atomic
from ceremonykit.storage.models import ProgressCheckpoint

logger = logging.getLogger(__name__)


class ProgressStore:
    """Full-overwrite checkpoint file for one ceremony kind."""

    def __init__(
        self,
        ceremony: str,
        state_dir: Path | str = layout.DEFAULT_STATE_DIR,
        clock: Clock | None = None,
    ) -> None:
        self._ceremony = ceremony
        self._path = layout.progress_path(Path(state_dir), ceremony)
        self._clock = clock or utc_now

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        """True when an incomplete run left a checkpoint behind."""
        return self._path.exists()

    def read(self) -> ProgressCheckpoint | None:
        """Return the last checkpoint, or None if absent or unreadable."""
        try:
            data = read_json(self._path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read progress file %s: %s", self._path, e)
            return None
        if data is None:
            return None
        try:
            return ProgressCheckpoint.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring malformed progress file %s: %s", self._path, e)
            return None

    def write(self, checkpoint: ProgressCheckpoint) -> ProgressCheckpoint:
        """Overwrite the checkpoint, stamping its last-update time.

        Returns the checkpoint exactly as persisted.
        """
        stamped = checkpoint.model_copy(update={"last_update": self._clock()})
        write_json_atomic(self._path, stamped.to_json_dict())
        logger.debug(
            "Checkpoint %s: stage=%s (%d/%d)",
            self._ceremony, stamped.stage, stamped.completed_steps, stamped.total_steps,
        )
        return stamped

    def clear(self) -> None:
        """Remove the checkpoint after a successful execution."""
        if self._path.exists():
            self._path.unlink()
            logger.debug("Cleared progress for %s", self._ceremony)
