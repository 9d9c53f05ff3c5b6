# src/ceremony/context.py - v1
"""Explicit handles for one ceremony, built once by the workflow driver.

CeremonyContext bundles the stores, the provider and the verification
tracker so nothing in the core relies on process-wide singletons.
CeremonyRun wraps one execution: ledger start, credential pre-flight,
checkpoints, and the terminal bookkeeping on exit.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ceremonykit.config.settings import Settings
from ceremonykit.core.models import Clock
from ceremonykit.llm.base_client import BaseLLMProvider
from ceremonykit.llm.client_factory import create_provider
from ceremonykit.llm.errors import ProviderConfigurationError
from ceremonykit.logging.context import set_ceremony_context
from ceremonykit.storage.history_ledger import HistoryLedger
from ceremonykit.storage.models import (
    GENERATION_STAGE,
    ExecutionOutcome,
    ExecutionRecord,
    ProgressCheckpoint,
)
from ceremonykit.storage.progress_store import ProgressStore
from ceremonykit.tracking.usage_aggregator import UsageAggregator
from ceremonykit.verification.engine import LLMVerifier
from ceremonykit.verification.tracker import VerificationTracker

logger = logging.getLogger(__name__)

COMPLETED_STAGE = "completed"


class ResumeDecision(str, Enum):
    """What the driver should do with the previous run."""

    FRESH = "fresh"
    RESUME = "resume"
    ABRUPT = "abrupt"


@dataclass
class ResumeState:
    decision: ResumeDecision
    checkpoint: ProgressCheckpoint | None = None
    last_execution: ExecutionRecord | None = None


def assess_resume(
    ceremony: str,
    history: HistoryLedger,
    progress: ProgressStore,
) -> ResumeState:
    """Inspect the ledger and checkpoint left by the previous process.

    An incomplete run is always reported with a warning, never hidden.
    """
    last = history.get_last_execution(ceremony)
    checkpoint = progress.read()

    if history.detect_abrupt_termination(ceremony):
        logger.warning(
            "An incomplete ceremony was found: %s execution %s was interrupted "
            "during LLM generation",
            ceremony, last.id if last else "?",
        )
        return ResumeState(ResumeDecision.ABRUPT, checkpoint, last)

    if checkpoint is not None:
        logger.warning(
            "An incomplete ceremony was found: %s stopped at stage %s (%d/%d steps)",
            ceremony, checkpoint.stage, checkpoint.completed_steps, checkpoint.total_steps,
        )
        return ResumeState(ResumeDecision.RESUME, checkpoint, last)

    return ResumeState(ResumeDecision.FRESH, None, last)


@dataclass
class CeremonyContext:
    """All per-ceremony handles, passed down explicitly."""

    ceremony: str
    settings: Settings
    history: HistoryLedger
    progress: ProgressStore
    usage: UsageAggregator
    tracker: VerificationTracker
    _provider: BaseLLMProvider | None = field(default=None, repr=False)

    @classmethod
    def from_settings(
        cls,
        ceremony: str,
        settings: Settings | None = None,
        provider: BaseLLMProvider | None = None,
        clock: Clock | None = None,
    ) -> CeremonyContext:
        settings = settings or Settings()
        state_dir = Path(settings.state_dir)
        return cls(
            ceremony=ceremony,
            settings=settings,
            history=HistoryLedger(state_dir, clock=clock),
            progress=ProgressStore(ceremony, state_dir, clock=clock),
            usage=UsageAggregator(state_dir, clock=clock),
            tracker=VerificationTracker(
                ceremony,
                state_dir,
                skip_stable_rules=settings.verification_skip_stable_rules,
                clock=clock,
            ),
            _provider=provider,
        )

    @property
    def provider(self) -> BaseLLMProvider:
        """Provider for this ceremony, created from settings on first use."""
        if self._provider is None:
            self._provider = create_provider(
                self.settings.llm_default_provider,
                self.settings.llm_default_model or None,
                self.settings,
            )
        return self._provider

    def assess_resume(self) -> ResumeState:
        return assess_resume(self.ceremony, self.history, self.progress)

    def cleanup_abrupt_termination(self) -> ExecutionRecord | None:
        return self.history.cleanup_abrupt_termination(self.ceremony)

    def verifier(self, agent_name: str) -> LLMVerifier:
        return LLMVerifier(
            self.provider,
            agent_name,
            rules_dir=self.settings.rules_dir,
            tracker=self.tracker,
            enabled=self.settings.verification_enabled,
        )

    def run(
        self,
        stage: str = GENERATION_STAGE,
        validate_credentials: bool = True,
    ) -> CeremonyRun:
        return CeremonyRun(self, stage=stage, validate_credentials=validate_credentials)


class CeremonyRun:
    """Async context manager around one ceremony execution.

    On a clean exit the execution completes as a success, usage is tallied
    and the checkpoint is removed. An exception completes it as an abrupt
    termination and propagates. ``cancel()`` records a user cancellation.
    """

    def __init__(
        self,
        ctx: CeremonyContext,
        stage: str = GENERATION_STAGE,
        validate_credentials: bool = True,
    ) -> None:
        self._ctx = ctx
        self._stage = stage
        self._validate = validate_credentials
        self._cancel_note: str | None = None
        self._cancelled = False
        self._started = 0.0
        self.execution_id: str | None = None
        self.answers: dict[str, Any] | None = None
        self.files_generated: list[str] = []
        self.record: ExecutionRecord | None = None

    @property
    def stage(self) -> str:
        return self._stage

    async def __aenter__(self) -> CeremonyRun:
        ctx = self._ctx
        self._started = time.perf_counter()
        self.execution_id = ctx.history.start_execution(ctx.ceremony, self._stage)
        set_ceremony_context(ctx.ceremony, self.execution_id)

        provider = ctx.provider
        if self._validate:
            result = await provider.validate()
            if not result.valid:
                self.record = ctx.history.complete_execution(
                    ctx.ceremony,
                    self.execution_id,
                    "abrupt-termination",
                    {"error": f"API key validation failed: {result.error}"},
                )
                raise ProviderConfigurationError(
                    provider.provider_name,
                    result.error or "API key validation failed",
                )
        provider.reset_token_usage()
        return self

    def checkpoint(
        self,
        completed_steps: int,
        total_steps: int,
        collected_values: dict[str, Any] | None = None,
        stage: str | None = None,
    ) -> ProgressCheckpoint:
        """Persist a step boundary; a stage change is mirrored into the ledger."""
        ctx = self._ctx
        if stage and stage != self._stage:
            self._stage = stage
            ctx.history.update_execution(ctx.ceremony, self.execution_id, stage=stage)
        if collected_values is not None:
            self.answers = dict(collected_values)
        return ctx.progress.write(
            ProgressCheckpoint(
                stage=self._stage,
                total_steps=total_steps,
                completed_steps=completed_steps,
                collected_values=collected_values or {},
            )
        )

    def add_file(self, path: str | Path) -> None:
        self.files_generated.append(str(path))

    def cancel(self, note: str | None = None) -> None:
        """Mark the run as cancelled by the user; recorded on exit."""
        self._cancelled = True
        self._cancel_note = note

    def _elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def _complete(self, outcome: ExecutionOutcome, metadata: dict[str, Any]) -> None:
        ctx = self._ctx
        provider = ctx.provider
        usage = provider.get_token_usage()
        cost = ctx.usage.calculate_cost(usage.input_tokens, usage.output_tokens, provider.model)
        metadata.update(
            answers=self.answers,
            files_generated=self.files_generated or None,
            token_usage={
                "input": usage.input_tokens,
                "output": usage.output_tokens,
                "total": usage.total_tokens,
            },
            cost=cost.model_dump(),
            model=provider.model,
        )
        self.record = ctx.history.complete_execution(
            ctx.ceremony, self.execution_id, outcome, metadata
        )

    async def __aexit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> bool:
        ctx = self._ctx

        if exc is None and not self._cancelled:
            usage = ctx.provider.get_token_usage()
            ctx.usage.add_execution(
                ctx.ceremony, usage.input_tokens, usage.output_tokens, ctx.provider.model
            )
            self._complete("success", {"stage": COMPLETED_STAGE})
            ctx.progress.clear()
            ctx.tracker.save_to_file(
                ceremony_time_ms=self._elapsed_ms(),
                retention=ctx.settings.verification_report_retention,
            )
            return False

        if self._cancelled or isinstance(exc, KeyboardInterrupt):
            self._complete("user-cancelled", {"note": self._cancel_note})
            logger.info("%s execution %s cancelled", ctx.ceremony, self.execution_id)
            return False

        logger.error(
            "%s execution %s failed at stage %s: %s",
            ctx.ceremony, self.execution_id, self._stage, exc,
        )
        self._complete("abrupt-termination", {"error": str(exc), "stage": self._stage})
        return False
