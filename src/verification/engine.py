# src/verification/engine.py - v1
"""Rule-based verify-and-fix loop over generated content.

For each enabled rule in declared order: ask whether the current content
violates it, and if so ask for a corrected version. Each fix applies to
the result of all earlier fixes, so rules compose sequentially. One call
is in flight at a time.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ceremonykit.core.models import Clock, utc_now
from ceremonykit.llm.base_client import BaseLLMProvider
from ceremonykit.llm.errors import ProviderConfigurationError
from ceremonykit.logging.context import set_agent_context
from ceremonykit.verification.fast_path import apply_fast_fix, evaluate_fast_path
from ceremonykit.verification.models import (
    CHECK_ERROR,
    CHECK_FAST_PATH,
    YES_NO_GRAMMAR,
    AppliedRule,
    VerificationResult,
    VerificationRule,
)
from ceremonykit.verification.rules import load_rules
from ceremonykit.verification.tracker import VerificationTracker

logger = logging.getLogger(__name__)

CONTENT_PLACEHOLDER = "{content}"

# Fixes changing the length by more than this ratio are logged for review.
LARGE_CHANGE_RATIO = 0.30


def render_prompt(template: str, content: str) -> str:
    return template.replace(CONTENT_PLACEHOLDER, content)


def interpret_check_response(answer: str, expected_response: str = YES_NO_GRAMMAR) -> bool:
    """Map a normalized (stripped, uppercased) check answer to a violation flag.

    Only the YES/NO grammar is implemented: exactly YES means violated,
    anything else means not violated. Other grammars are never violated.
    """
    if expected_response.upper() != YES_NO_GRAMMAR:
        logger.warning("Unsupported check grammar %r, treating as not violated", expected_response)
        return False
    answer = answer.strip().upper()
    if answer not in ("YES", "NO"):
        logger.warning("Unexpected check answer %r, treating as not violated", answer[:50])
    return answer == "YES"


class LLMVerifier:
    """Runs one agent's verification rules against generated content."""

    def __init__(
        self,
        provider: BaseLLMProvider,
        agent_name: str,
        rules: list[VerificationRule] | None = None,
        rules_dir: Path | str = "agents",
        tracker: VerificationTracker | None = None,
        clock: Clock | None = None,
        enabled: bool = True,
    ) -> None:
        self._provider = provider
        self.agent_name = agent_name
        loaded = rules if rules is not None else load_rules(agent_name, rules_dir)
        self._rules = [r for r in loaded if r.enabled]
        self._tracker = tracker
        self._clock = clock or utc_now
        self.enabled = enabled

    def get_rules(self) -> list[VerificationRule]:
        return list(self._rules)

    def get_rule_count(self) -> int:
        return len(self._rules)

    # --- Single rule ---

    async def check_rule(
        self,
        content: str,
        rule: VerificationRule,
        session_id: str | None = None,
    ) -> bool:
        """Return True if the content violates the rule.

        A failing check call is logged and counted as not violated.
        """
        tracker = self._tracker if session_id else None
        if tracker:
            tracker.start_rule_check(session_id, rule)

        verdict = evaluate_fast_path(rule, content)
        if verdict is not None:
            logger.debug("Rule %s fast path: %s", rule.id, verdict.reason)
            if tracker:
                tracker.end_rule_check(
                    session_id, rule.id, CHECK_FAST_PATH, verdict.violated, api_call=False
                )
            return verdict.violated

        prompt = render_prompt(rule.check.prompt, content)
        try:
            response = await self._provider.generate(prompt, rule.check.max_tokens)
        except ProviderConfigurationError:
            raise
        except Exception as e:  # noqa: BLE001
            logger.error("Check for rule %s (%s) failed: %s", rule.id, rule.name, e)
            if tracker:
                tracker.end_rule_check(session_id, rule.id, CHECK_ERROR, False)
            return False

        answer = response.strip().upper()
        violated = interpret_check_response(answer, rule.check.expected_response)
        if tracker:
            tracker.end_rule_check(session_id, rule.id, answer[:20], violated)
        return violated

    async def fix_content(
        self,
        content: str,
        rule: VerificationRule,
        session_id: str | None = None,
    ) -> str:
        """Return a corrected version of the content for one rule.

        A failing fix call is logged and the content is returned unchanged.
        """
        tracker = self._tracker if session_id else None
        if tracker:
            tracker.start_rule_fix(session_id, rule.id)

        fast = apply_fast_fix(rule, content)
        if fast is not None:
            if tracker:
                tracker.end_rule_fix(session_id, rule.id, content, fast, api_call=False)
            return fast

        prompt = render_prompt(rule.fix.prompt, content)
        try:
            fixed = (await self._provider.generate(prompt, rule.fix.max_tokens)).strip()
        except ProviderConfigurationError:
            raise
        except Exception as e:  # noqa: BLE001
            logger.error("Fix for rule %s (%s) failed: %s", rule.id, rule.name, e)
            if tracker:
                tracker.end_rule_fix(session_id, rule.id, content, content)
            return content

        if content and abs(len(fixed) - len(content)) / len(content) > LARGE_CHANGE_RATIO:
            logger.warning(
                "Fix for rule %s changed content length by more than %d%% (%d -> %d chars)",
                rule.id, int(LARGE_CHANGE_RATIO * 100), len(content), len(fixed),
            )
        if tracker:
            tracker.end_rule_fix(session_id, rule.id, content, fixed)
        return fixed

    # --- Session ---

    async def verify(self, content: str) -> VerificationResult:
        """Apply every enabled rule in order and return the final content.

        A disabled verifier returns the content unchanged without any calls.
        """
        if not self.enabled:
            return VerificationResult(
                content=content, rules_applied=[], no_violations=True, timestamp=self._clock()
            )
        set_agent_context(self.agent_name)
        tracker = self._tracker

        if tracker:
            cached = tracker.get_cached(self.agent_name, content)
            if cached is not None:
                logger.debug("Verification cache hit for %s", self.agent_name)
                return cached.model_copy(deep=True)

        session_id = tracker.start_session(self.agent_name, content) if tracker else None
        working = content
        applied: list[AppliedRule] = []

        for rule in self._rules:
            set_agent_context(self.agent_name, rule.id)
            if tracker and session_id and tracker.should_skip_rule(self.agent_name, rule.id):
                logger.debug("Skipping stable rule %s", rule.id)
                tracker.skip_rule(session_id, rule)
                continue

            if not await self.check_rule(working, rule, session_id):
                continue

            fixed = await self.fix_content(working, rule, session_id)
            if fixed != working:
                working = fixed
                applied.append(AppliedRule(id=rule.id, name=rule.name, severity=rule.severity))
                logger.info("Applied rule %s (%s) for %s", rule.id, rule.severity, self.agent_name)

        set_agent_context(self.agent_name)
        result = VerificationResult(
            content=working,
            rules_applied=applied,
            no_violations=not applied,
            timestamp=self._clock(),
        )

        if tracker and session_id:
            tracker.end_session(session_id, working, applied)
            tracker.cache_result(self.agent_name, content, result)
        return result
