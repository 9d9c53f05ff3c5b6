# src/logging/context.py - v1
"""Contextual logging support: attach ceremony, execution_id, agent and rule to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per ceremony execution.
_ceremony: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "ceremony", default=None
)
_execution_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "execution_id", default=None
)
_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "agent", default=None
)
_rule: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "rule", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    ceremony: str | None = None
    execution_id: str | None = None
    agent: str | None = None
    rule: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        ceremony=_ceremony.get(),
        execution_id=_execution_id.get(),
        agent=_agent.get(),
        rule=_rule.get(),
    )


def set_ceremony_context(ceremony: str, execution_id: str | None = None) -> None:
    """Set ceremony-level context (called once per execution)."""
    _ceremony.set(ceremony)
    _execution_id.set(execution_id)


def set_agent_context(agent: str, rule: str | None = None) -> None:
    """Set agent-level context (called per verification session or rule)."""
    _agent.set(agent)
    _rule.set(rule)


def clear_context() -> None:
    """Reset all context variables."""
    _ceremony.set(None)
    _execution_id.set(None)
    _agent.set(None)
    _rule.set(None)
