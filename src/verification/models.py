# src/verification/models.py - v1
"""Verification domain models: rules, results, sessions and summaries.

Rule files and reports use camelCase keys on disk.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from ceremonykit.core.models import PersistedModel

# The only check grammar implemented: a strict YES (violated) / NO decision.
YES_NO_GRAMMAR = "YES|NO"

CHECK_ERROR = "ERROR"
CHECK_FAST_PATH = "FAST_PATH"


# === RULES ===


class CheckDirective(PersistedModel):
    """Prompt asking whether the content violates the rule."""

    prompt: str
    max_tokens: int = 10
    expected_response: str = YES_NO_GRAMMAR


class FixDirective(PersistedModel):
    """Prompt producing a corrected version of the content."""

    prompt: str
    max_tokens: int = 4096


class FastPath(PersistedModel):
    """Deterministic pre-check that avoids an LLM call where possible."""

    enabled: bool = True
    type: Literal["json-parse", "json-fields", "none"] = "none"
    required_fields: list[str] = Field(default_factory=list)


class VerificationRule(PersistedModel):
    """One atomic concern: checked once, fixed once."""

    id: str
    name: str
    severity: str = "major"
    enabled: bool = True
    description: str = ""
    check: CheckDirective
    fix: FixDirective
    fast_path: FastPath | None = None


# === RESULTS ===


class AppliedRule(PersistedModel):
    """Reporting metadata of a rule whose fix changed the content."""

    id: str
    name: str
    severity: str


class VerificationResult(PersistedModel):
    """Content after all enabled rules, plus the rules that changed it."""

    content: str
    rules_applied: list[AppliedRule] = Field(default_factory=list)
    no_violations: bool = True
    timestamp: datetime


# === INSTRUMENTATION ===


class ContentFingerprint(PersistedModel):
    content_length: int
    content_preview: str
    content_hash: str


class RuleExecution(PersistedModel):
    """Timing and verdict of one rule within one session."""

    rule_id: str
    rule_name: str
    severity: str
    skipped: bool = False
    check_duration_ms: float | None = None
    check_result: str | None = None
    check_api_call: bool = False
    was_violated: bool = False
    fix_duration_ms: float | None = None
    fix_api_call: bool = False
    fix_applied: bool = False
    content_length_before: int | None = None
    content_length_after: int | None = None
    content_changed_by: int | None = None


class RuleStats(PersistedModel):
    total_rules_checked: int = 0
    rules_passed: int = 0
    rules_violated: int = 0
    rules_fixed: int = 0
    rules_skipped: int = 0


class ApiCallStats(PersistedModel):
    check_calls: int = 0
    fix_calls: int = 0
    total_calls: int = 0


class VerificationSession(PersistedModel):
    """One verify() pass over one piece of content."""

    session_id: str
    agent_name: str
    started_at: datetime
    ended_at: datetime | None = None
    duration_ms: float | None = None
    input: ContentFingerprint
    output: ContentFingerprint | None = None
    rule_executions: list[RuleExecution] = Field(default_factory=list)
    violations: list[AppliedRule] = Field(default_factory=list)
    rule_stats: RuleStats = Field(default_factory=RuleStats)
    api_calls: ApiCallStats = Field(default_factory=ApiCallStats)


class AgentSummary(PersistedModel):
    sessions: int = 0
    rules_checked: int = 0
    rules_violated: int = 0
    rules_fixed: int = 0
    api_calls: int = 0
    duration_ms: float = 0.0


class RuleViolationCount(PersistedModel):
    agent_name: str
    rule_id: str
    rule_name: str
    severity: str
    count: int = 0


class CeremonySummary(PersistedModel):
    """Aggregate verification statistics of one ceremony run."""

    ceremony: str
    generated_at: datetime
    total_verification_sessions: int = 0
    total_rules_checked: int = 0
    total_rules_violated: int = 0
    total_rules_fixed: int = 0
    total_api_calls: int = 0
    total_verification_time_ms: float = 0.0
    total_ceremony_time_ms: float | None = None
    verification_time_percentage: float | None = None
    by_agent: dict[str, AgentSummary] = Field(default_factory=dict)
    most_violated_rules: list[RuleViolationCount] = Field(default_factory=list)


class VerificationReport(PersistedModel):
    """Machine-readable report written at the end of a ceremony run."""

    summary: CeremonySummary
    sessions: list[VerificationSession] = Field(default_factory=list)


class RuleProfile(PersistedModel):
    """Historical pass/violation counts of one rule for one agent."""

    checks: int = 0
    passed: int = 0
    violated: int = 0
    pass_rate: float = 0.0
    last_updated: datetime | None = None


class RuleProfiles(PersistedModel):
    """verification-profiles.json: agent -> rule id -> profile."""

    version: str = "1.0"
    agents: dict[str, dict[str, RuleProfile]] = Field(default_factory=dict)
