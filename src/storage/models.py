# src/storage/models.py - v1
"""Storage domain models: ExecutionRecord, CeremonyLedger, ProgressCheckpoint."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from ceremonykit.core.models import PersistedModel
from ceremonykit.tracking.models import CostBreakdown

LEDGER_VERSION = "1.0"

ExecutionStatus = Literal["in-progress", "completed", "cancelled", "aborted"]
ExecutionOutcome = Literal["success", "user-cancelled", "abrupt-termination"]

# Stage during which a crash loses unrecoverable work.
GENERATION_STAGE = "llm-generation"
DEFAULT_INITIAL_STAGE = "questionnaire"

OUTCOME_TO_STATUS: dict[str, ExecutionStatus] = {
    "success": "completed",
    "user-cancelled": "cancelled",
    "abrupt-termination": "aborted",
}


class TokenUsageSnapshot(PersistedModel):
    """Token totals attached to a finished execution."""

    input: int = 0
    output: int = 0
    total: int = 0


class ExecutionRecord(PersistedModel):
    """One run of a ceremony, from start to its terminal outcome."""

    id: str
    start_time: datetime
    end_time: datetime | None = None
    status: ExecutionStatus = "in-progress"
    stage: str = DEFAULT_INITIAL_STAGE
    answers: dict[str, Any] | None = None
    files_generated: list[str] = Field(default_factory=list)
    token_usage: TokenUsageSnapshot | None = None
    cost: CostBreakdown | None = None
    model: str | None = None
    duration: int | None = None
    outcome: ExecutionOutcome | None = None
    error: str | None = None
    note: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != "in-progress"


class CeremonyEntry(PersistedModel):
    """All executions of one ceremony, in insertion order."""

    executions: list[ExecutionRecord] = Field(default_factory=list)
    total_executions: int = 0
    last_run: datetime | None = None
    last_success: datetime | None = None


class CeremonyLedger(PersistedModel):
    """Whole history file."""

    version: str = LEDGER_VERSION
    last_updated: datetime | None = None
    ceremonies: dict[str, CeremonyEntry] = Field(default_factory=dict)


class CeremonyStats(PersistedModel):
    """Execution counts by outcome for one ceremony."""

    total_executions: int = 0
    successful: int = 0
    cancelled: int = 0
    aborted: int = 0
    last_run: datetime | None = None
    last_success: datetime | None = None


class ProgressCheckpoint(PersistedModel):
    """Durable state of an in-flight ceremony at its last step boundary."""

    stage: str
    total_steps: int = Field(default=0, alias="totalQuestions")
    completed_steps: int = Field(default=0, alias="answeredQuestions")
    collected_values: dict[str, Any] = Field(default_factory=dict)
    last_update: datetime | None = None
