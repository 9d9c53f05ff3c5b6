# src/verification/rules.py - v1
"""Declarative verification rule loading.

Rules live in one JSON document per agent: {rules_dir}/{agent}.json with
a top-level "verifications" array. Declared order is execution order.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ceremonykit.verification.models import VerificationRule

logger = logging.getLogger(__name__)


def rule_file_path(agent_name: str, rules_dir: Path | str) -> Path:
    return Path(rules_dir) / f"{agent_name}.json"


def parse_rules(data: Any, source: str = "<memory>") -> list[VerificationRule]:
    """Validate raw rule entries, skipping malformed ones with a warning."""
    entries = data.get("verifications", []) if isinstance(data, dict) else []
    rules: list[VerificationRule] = []
    for i, entry in enumerate(entries):
        try:
            rules.append(VerificationRule.model_validate(entry))
        except ValidationError as e:
            logger.warning("Skipping invalid rule #%d in %s: %s", i, source, e)
    return rules


def load_rules(
    agent_name: str,
    rules_dir: Path | str,
    include_disabled: bool = False,
) -> list[VerificationRule]:
    """Load an agent's rules in declared order.

    A missing or unreadable file yields an empty list: the agent simply
    has nothing to verify.
    """
    path = rule_file_path(agent_name, rules_dir)
    if not path.exists():
        logger.warning("No verification rules for agent %s at %s", agent_name, path)
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Failed to load verification rules from %s: %s", path, e)
        return []

    rules = parse_rules(data, source=str(path))
    if not include_disabled:
        rules = [r for r in rules if r.enabled]
    logger.debug("Loaded %d verification rules for %s", len(rules), agent_name)
    return rules
