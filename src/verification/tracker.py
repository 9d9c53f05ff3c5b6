# src/verification/tracker.py - v1
"""Verification instrumentation sink.

Receives start/end events per session and per rule, keeps the result
cache for the ceremony run, maintains per-rule pass/violation profiles
and builds the aggregate summary exported at the end of the run.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ceremonykit.core.models import Clock, utc_now
from ceremonykit.storage import layout
from ceremonykit.storage.atomic import read_json, write_json_atomic
from ceremonykit.verification.models import (
    AgentSummary,
    AppliedRule,
    CeremonySummary,
    ContentFingerprint,
    RuleExecution,
    RuleProfile,
    RuleProfiles,
    RuleViolationCount,
    VerificationResult,
    VerificationRule,
    VerificationSession,
)

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200

# A rule is considered stable once it passed this many times without a violation.
STABLE_RULE_MIN_PASSES = 20

MOST_VIOLATED_LIMIT = 10


def content_hash(content: str) -> str:
    return hashlib.md5(content.encode("utf-8")).hexdigest()  # noqa: S324


def fingerprint(content: str) -> ContentFingerprint:
    return ContentFingerprint(
        content_length=len(content),
        content_preview=content[:PREVIEW_CHARS],
        content_hash=content_hash(content),
    )


@dataclass
class _ActiveSession:
    session: VerificationSession
    started: float
    pending: dict[str, float] = field(default_factory=dict)


class VerificationTracker:
    """Per-ceremony-run collector of verification events."""

    def __init__(
        self,
        ceremony: str,
        state_dir: Path | str = layout.DEFAULT_STATE_DIR,
        skip_stable_rules: bool = False,
        clock: Clock | None = None,
        timer: Callable[[], float] | None = None,
    ) -> None:
        self.ceremony = ceremony
        self._state_dir = Path(state_dir)
        self._skip_stable_rules = skip_stable_rules
        self._clock = clock or utc_now
        self._timer = timer or time.perf_counter
        self._counter = 0
        self._active: dict[str, _ActiveSession] = {}
        self._sessions: list[VerificationSession] = []
        self._cache: dict[str, VerificationResult] = {}
        self._profiles = self._load_profiles()

    @property
    def sessions(self) -> list[VerificationSession]:
        return list(self._sessions)

    # --- Result cache ---

    @staticmethod
    def _cache_key(agent_name: str, content: str) -> str:
        return f"{agent_name}:{content_hash(content)}"

    def get_cached(self, agent_name: str, content: str) -> VerificationResult | None:
        return self._cache.get(self._cache_key(agent_name, content))

    def cache_result(self, agent_name: str, content: str, result: VerificationResult) -> None:
        self._cache[self._cache_key(agent_name, content)] = result

    def clear_cache(self) -> None:
        self._cache.clear()

    # --- Session events ---

    def start_session(self, agent_name: str, content: str) -> str:
        self._counter += 1
        session_id = f"verify-{self._counter}"
        session = VerificationSession(
            session_id=session_id,
            agent_name=agent_name,
            started_at=self._clock(),
            input=fingerprint(content),
        )
        self._active[session_id] = _ActiveSession(session=session, started=self._timer())
        logger.debug(
            "Verification session %s started for %s (%d chars)",
            session_id, agent_name, len(content),
        )
        return session_id

    def end_session(
        self,
        session_id: str,
        output: str,
        violations: list[AppliedRule],
    ) -> VerificationSession:
        active = self._active.pop(session_id)
        session = active.session
        session.ended_at = self._clock()
        session.duration_ms = (self._timer() - active.started) * 1000
        session.output = fingerprint(output)
        session.violations = list(violations)
        self._sessions.append(session)

        stats = session.rule_stats
        logger.info(
            "Verification %s for %s: %d checked, %d violated, %d fixed, %d API calls",
            session_id, session.agent_name, stats.total_rules_checked,
            stats.rules_violated, stats.rules_fixed, session.api_calls.total_calls,
            extra={"data": session.rule_stats.to_json_dict()},
        )
        return session

    # --- Rule events ---

    def _execution(self, session_id: str, rule_id: str) -> RuleExecution:
        for execution in reversed(self._active[session_id].session.rule_executions):
            if execution.rule_id == rule_id:
                return execution
        raise KeyError(f"Rule {rule_id!r} was not started in session {session_id!r}")

    def start_rule_check(self, session_id: str, rule: VerificationRule) -> None:
        active = self._active[session_id]
        active.session.rule_executions.append(
            RuleExecution(rule_id=rule.id, rule_name=rule.name, severity=rule.severity)
        )
        active.pending[f"check:{rule.id}"] = self._timer()

    def end_rule_check(
        self,
        session_id: str,
        rule_id: str,
        result: str,
        violated: bool,
        api_call: bool = True,
    ) -> None:
        active = self._active[session_id]
        execution = self._execution(session_id, rule_id)
        started = active.pending.pop(f"check:{rule_id}", self._timer())
        execution.check_duration_ms = (self._timer() - started) * 1000
        execution.check_result = result
        execution.check_api_call = api_call
        execution.was_violated = violated

        stats = active.session.rule_stats
        stats.total_rules_checked += 1
        if violated:
            stats.rules_violated += 1
        else:
            stats.rules_passed += 1
        if api_call:
            active.session.api_calls.check_calls += 1
            active.session.api_calls.total_calls += 1

        self._update_profile(active.session.agent_name, rule_id, violated)

    def start_rule_fix(self, session_id: str, rule_id: str) -> None:
        self._active[session_id].pending[f"fix:{rule_id}"] = self._timer()

    def end_rule_fix(
        self,
        session_id: str,
        rule_id: str,
        before: str,
        after: str,
        api_call: bool = True,
    ) -> None:
        active = self._active[session_id]
        execution = self._execution(session_id, rule_id)
        started = active.pending.pop(f"fix:{rule_id}", self._timer())
        execution.fix_duration_ms = (self._timer() - started) * 1000
        execution.fix_api_call = api_call
        execution.content_length_before = len(before)
        execution.content_length_after = len(after)
        execution.content_changed_by = len(after) - len(before)
        execution.fix_applied = after != before

        if execution.fix_applied:
            active.session.rule_stats.rules_fixed += 1
        if api_call:
            active.session.api_calls.fix_calls += 1
            active.session.api_calls.total_calls += 1

    def skip_rule(self, session_id: str, rule: VerificationRule) -> None:
        active = self._active[session_id]
        active.session.rule_executions.append(
            RuleExecution(
                rule_id=rule.id, rule_name=rule.name, severity=rule.severity, skipped=True,
            )
        )
        active.session.rule_stats.rules_skipped += 1

    # --- Rule profiles ---

    def _load_profiles(self) -> RuleProfiles:
        path = layout.profiles_path(self._state_dir)
        try:
            data = read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable rule profiles %s: %s", path, e)
            return RuleProfiles()
        return RuleProfiles.model_validate(data) if data else RuleProfiles()

    def save_profiles(self) -> None:
        write_json_atomic(layout.profiles_path(self._state_dir), self._profiles.to_json_dict())

    def get_profile(self, agent_name: str, rule_id: str) -> RuleProfile | None:
        return self._profiles.agents.get(agent_name, {}).get(rule_id)

    def _update_profile(self, agent_name: str, rule_id: str, violated: bool) -> None:
        profile = self._profiles.agents.setdefault(agent_name, {}).setdefault(
            rule_id, RuleProfile()
        )
        profile.checks += 1
        if violated:
            profile.violated += 1
        else:
            profile.passed += 1
        profile.pass_rate = profile.passed / profile.checks
        profile.last_updated = self._clock()

    def should_skip_rule(self, agent_name: str, rule_id: str) -> bool:
        """True for rules that never failed over a long history, when skipping is on."""
        if not self._skip_stable_rules:
            return False
        profile = self.get_profile(agent_name, rule_id)
        if profile is None:
            return False
        return (
            profile.passed > STABLE_RULE_MIN_PASSES
            and profile.violated == 0
            and profile.pass_rate == 1.0
        )

    # --- Summary ---

    def build_summary(self, ceremony_time_ms: float | None = None) -> CeremonySummary:
        """Aggregate all closed sessions of this run."""
        by_agent: dict[str, AgentSummary] = {}
        violation_counts: Counter[tuple[str, str]] = Counter()
        rule_meta: dict[tuple[str, str], AppliedRule] = {}

        for s in self._sessions:
            agent = by_agent.setdefault(s.agent_name, AgentSummary())
            agent.sessions += 1
            agent.rules_checked += s.rule_stats.total_rules_checked
            agent.rules_violated += s.rule_stats.rules_violated
            agent.rules_fixed += s.rule_stats.rules_fixed
            agent.api_calls += s.api_calls.total_calls
            agent.duration_ms += s.duration_ms or 0.0
            for execution in s.rule_executions:
                if execution.was_violated:
                    key = (s.agent_name, execution.rule_id)
                    violation_counts[key] += 1
                    rule_meta[key] = AppliedRule(
                        id=execution.rule_id,
                        name=execution.rule_name,
                        severity=execution.severity,
                    )

        total_ms = sum(a.duration_ms for a in by_agent.values())
        percentage = None
        if ceremony_time_ms:
            percentage = total_ms / ceremony_time_ms * 100

        return CeremonySummary(
            ceremony=self.ceremony,
            generated_at=self._clock(),
            total_verification_sessions=len(self._sessions),
            total_rules_checked=sum(a.rules_checked for a in by_agent.values()),
            total_rules_violated=sum(a.rules_violated for a in by_agent.values()),
            total_rules_fixed=sum(a.rules_fixed for a in by_agent.values()),
            total_api_calls=sum(a.api_calls for a in by_agent.values()),
            total_verification_time_ms=total_ms,
            total_ceremony_time_ms=ceremony_time_ms,
            verification_time_percentage=percentage,
            by_agent=by_agent,
            most_violated_rules=[
                RuleViolationCount(
                    agent_name=agent_name,
                    rule_id=rule_id,
                    rule_name=rule_meta[(agent_name, rule_id)].name,
                    severity=rule_meta[(agent_name, rule_id)].severity,
                    count=count,
                )
                for (agent_name, rule_id), count in violation_counts.most_common(
                    MOST_VIOLATED_LIMIT
                )
            ],
        )

    def save_to_file(
        self,
        ceremony_time_ms: float | None = None,
        retention: int | None = 10,
    ) -> tuple[Path, Path] | None:
        """Export the run's reports, persist profiles and reset the cache.

        Returns (json_path, text_path), or None if no session was recorded.
        """
        from ceremonykit.verification.exporter import cleanup_old_reports, write_report

        self.save_profiles()
        self.clear_cache()
        if not self._sessions:
            return None

        logs = layout.logs_dir(self._state_dir)
        paths = write_report(
            self.build_summary(ceremony_time_ms), self._sessions, logs, self._clock()
        )
        if retention is not None:
            cleanup_old_reports(self.ceremony, logs, keep=retention)
        return paths
