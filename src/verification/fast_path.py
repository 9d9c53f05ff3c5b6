# src/verification/fast_path.py - v1
"""Deterministic rule checks that run without an LLM call.

A fast path either returns a verdict, in which case the LLM check is
skipped, or None to fall through to the rule's check prompt.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from ceremonykit.llm.parsing import is_code_fenced, strip_code_fence
from ceremonykit.verification.models import VerificationRule


@dataclass(frozen=True)
class FastPathVerdict:
    violated: bool
    reason: str


def evaluate_fast_path(rule: VerificationRule, content: str) -> FastPathVerdict | None:
    """Run the rule's fast path, if it has an enabled one."""
    fp = rule.fast_path
    if fp is None or not fp.enabled or fp.type == "none":
        return None

    if fp.type == "json-parse":
        if is_code_fenced(content):
            return FastPathVerdict(violated=True, reason="code-fenced JSON")
        try:
            json.loads(content)
        except json.JSONDecodeError:
            # Not fence-wrapped but still invalid: let the LLM judge it.
            return None
        return FastPathVerdict(violated=False, reason="valid JSON")

    if fp.type == "json-fields":
        try:
            value = json.loads(strip_code_fence(content))
        except json.JSONDecodeError:
            return None
        if not isinstance(value, dict):
            return None
        missing = [f for f in fp.required_fields if f not in value]
        if missing:
            return FastPathVerdict(
                violated=True, reason=f"missing fields: {', '.join(missing)}"
            )
        return FastPathVerdict(violated=False, reason="all required fields present")

    return None


def apply_fast_fix(rule: VerificationRule, content: str) -> str | None:
    """Deterministic fix for the rule, or None when an LLM fix is needed."""
    fp = rule.fast_path
    if fp is None or not fp.enabled:
        return None
    if fp.type == "json-parse" and is_code_fenced(content):
        return strip_code_fence(content)
    return None
