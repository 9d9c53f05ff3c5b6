# src/storage/history_ledger.py - v1
"""Execution history ledger: the lifecycle of every ceremony run.

Persisted in {state_dir}/ceremonies-history.json. Each mutating call is
a whole-file transaction: load, mutate in memory, write back atomically.
Safe for a single writer only.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from ceremonykit.core.models import Clock, utc_now
from ceremonykit.storage import layout
from ceremonykit.storage.atomic import read_json, write_json_atomic
from ceremonykit.storage.errors import (
    CeremonyNotFoundError,
    ExecutionNotFoundError,
    StorageError,
)
from ceremonykit.storage.models import (
    DEFAULT_INITIAL_STAGE,
    GENERATION_STAGE,
    OUTCOME_TO_STATUS,
    CeremonyEntry,
    CeremonyLedger,
    CeremonyStats,
    ExecutionOutcome,
    ExecutionRecord,
)

logger = logging.getLogger(__name__)

ABRUPT_TERMINATION_NOTE = "Process was interrupted during LLM generation"

# Metadata keys merged into a record by complete_execution().
_COMPLETION_FIELDS = (
    "answers",
    "files_generated",
    "token_usage",
    "cost",
    "model",
    "stage",
    "error",
    "note",
)

# Set only when an execution reaches its terminal outcome.
_TERMINAL_FIELDS = frozenset({"status", "outcome", "end_time", "duration"})


def generate_execution_id(ceremony: str, timestamp: datetime | None = None) -> str:
    """Generate an execution id: {ceremony}-YYYY-MM-DD-HH-MM-SS (UTC)."""
    ts = timestamp or utc_now()
    return f"{ceremony}-{ts.strftime('%Y-%m-%d-%H-%M-%S')}"


class HistoryLedger:
    """Append-style ledger of ceremony executions."""

    def __init__(
        self,
        state_dir: Path | str = layout.DEFAULT_STATE_DIR,
        clock: Clock | None = None,
    ) -> None:
        self._path = layout.history_path(Path(state_dir))
        self._clock = clock or utc_now

    @property
    def path(self) -> Path:
        return self._path

    # --- Persistence ---

    def load(self) -> CeremonyLedger:
        """Read the whole ledger, creating an empty one on first use."""
        try:
            data = read_json(self._path)
        except json.JSONDecodeError as e:
            raise StorageError(f"Ceremony history {self._path} is corrupt: {e}") from e

        if data is None:
            ledger = CeremonyLedger(last_updated=self._clock())
            self._save(ledger)
            return ledger
        return CeremonyLedger.model_validate(data)

    def _save(self, ledger: CeremonyLedger) -> None:
        ledger.last_updated = self._clock()
        write_json_atomic(self._path, ledger.to_json_dict())

    @staticmethod
    def _find(
        ledger: CeremonyLedger, ceremony: str, execution_id: str
    ) -> ExecutionRecord:
        entry = ledger.ceremonies.get(ceremony)
        if entry is None:
            raise CeremonyNotFoundError(ceremony)
        for record in entry.executions:
            if record.id == execution_id:
                return record
        raise ExecutionNotFoundError(ceremony, execution_id)

    # --- Mutations ---

    def start_execution(
        self, ceremony: str, initial_stage: str = DEFAULT_INITIAL_STAGE
    ) -> str:
        """Append a new in-progress record and return its id."""
        ledger = self.load()
        entry = ledger.ceremonies.setdefault(ceremony, CeremonyEntry())

        now = self._clock()
        execution_id = generate_execution_id(ceremony, now)
        existing = {r.id for r in entry.executions}
        base_id, n = execution_id, 2
        while execution_id in existing:
            execution_id = f"{base_id}-{n}"
            n += 1

        entry.executions.append(
            ExecutionRecord(id=execution_id, start_time=now, stage=initial_stage)
        )
        entry.last_run = now
        self._save(ledger)

        logger.info("Started %s execution %s at stage %s", ceremony, execution_id, initial_stage)
        return execution_id

    def update_execution(self, ceremony: str, execution_id: str, **fields: Any) -> ExecutionRecord:
        """Merge fields into an existing record.

        Raises:
            NotFoundError: If the ceremony or execution id is unknown.
            ValueError: If a terminal field is passed; use complete_execution().
        """
        terminal = _TERMINAL_FIELDS.intersection(fields)
        if terminal:
            raise ValueError(
                f"Fields {sorted(terminal)} can only be set by complete_execution()"
            )
        ledger = self.load()
        record = self._find(ledger, ceremony, execution_id)
        updated = record.model_validate({**record.model_dump(), **fields})
        self._replace(ledger, ceremony, updated)
        self._save(ledger)
        return updated

    def archive_answers(
        self, ceremony: str, execution_id: str, answers: dict[str, Any]
    ) -> ExecutionRecord:
        """Store a copy of the collected answers on the record."""
        return self.update_execution(ceremony, execution_id, answers=dict(answers))

    def complete_execution(
        self,
        ceremony: str,
        execution_id: str,
        outcome: ExecutionOutcome,
        metadata: dict[str, Any] | None = None,
    ) -> ExecutionRecord:
        """Finalize a record with its terminal outcome.

        Raises:
            NotFoundError: If the ceremony or execution id is unknown.
        """
        ledger = self.load()
        record = self._find(ledger, ceremony, execution_id)

        now = self._clock()
        values = record.model_dump()
        values.update(
            end_time=now,
            duration=int((now - record.start_time).total_seconds() * 1000),
            status=OUTCOME_TO_STATUS.get(outcome, "completed"),
            outcome=outcome,
        )
        for key, value in (metadata or {}).items():
            if key in _COMPLETION_FIELDS and value is not None:
                values[key] = value

        completed = ExecutionRecord.model_validate(values)
        self._replace(ledger, ceremony, completed)

        entry = ledger.ceremonies[ceremony]
        entry.total_executions = len(entry.executions)
        if outcome == "success":
            entry.last_success = now
        self._save(ledger)

        logger.info(
            "Completed %s execution %s: %s (%dms)",
            ceremony, execution_id, outcome, completed.duration or 0,
        )
        return completed

    @staticmethod
    def _replace(ledger: CeremonyLedger, ceremony: str, record: ExecutionRecord) -> None:
        executions = ledger.ceremonies[ceremony].executions
        for i, existing in enumerate(executions):
            if existing.id == record.id:
                executions[i] = record
                return

    # --- Queries ---

    def get_last_execution(self, ceremony: str) -> ExecutionRecord | None:
        """Final element of the insertion-ordered list, or None."""
        entry = self.load().ceremonies.get(ceremony)
        if entry is None or not entry.executions:
            return None
        return entry.executions[-1]

    def get_execution_by_id(self, ceremony: str, execution_id: str) -> ExecutionRecord | None:
        entry = self.load().ceremonies.get(ceremony)
        if entry is None:
            return None
        return next((r for r in entry.executions if r.id == execution_id), None)

    def get_all_executions(self, ceremony: str) -> list[ExecutionRecord]:
        """All executions, newest first by start time."""
        entry = self.load().ceremonies.get(ceremony)
        if entry is None:
            return []
        return sorted(entry.executions, key=lambda r: r.start_time, reverse=True)

    def get_all_ceremony_names(self) -> list[str]:
        return sorted(self.load().ceremonies)

    def detect_abrupt_termination(self, ceremony: str) -> bool:
        """True iff the last execution is in-progress at the generation stage."""
        last = self.get_last_execution(ceremony)
        if last is None:
            return False
        return not last.is_terminal and last.stage == GENERATION_STAGE

    def cleanup_abrupt_termination(self, ceremony: str) -> ExecutionRecord | None:
        """Force-complete a dangling in-progress execution as aborted.

        Returns the finalized record, or None if there was nothing to clean.
        """
        last = self.get_last_execution(ceremony)
        if last is None or last.is_terminal:
            return None

        logger.warning(
            "Marking %s execution %s as abruptly terminated (stage %s)",
            ceremony, last.id, last.stage,
        )
        return self.complete_execution(
            ceremony,
            last.id,
            "abrupt-termination",
            {"stage": last.stage, "note": ABRUPT_TERMINATION_NOTE},
        )

    def get_stats(self, ceremony: str) -> CeremonyStats:
        """Counts by outcome plus last-run/last-success; zeroed if never run."""
        entry = self.load().ceremonies.get(ceremony)
        if entry is None:
            return CeremonyStats()
        return CeremonyStats(
            total_executions=len(entry.executions),
            successful=sum(1 for r in entry.executions if r.status == "completed"),
            cancelled=sum(1 for r in entry.executions if r.status == "cancelled"),
            aborted=sum(1 for r in entry.executions if r.status == "aborted"),
            last_run=entry.last_run,
            last_success=entry.last_success,
        )
