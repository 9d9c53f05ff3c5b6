# src/llm/retry.py - v1
"""Retry policy with error classification and dual-mode backoff.

A failed call is retryable when its status code normalizes into the
transient set, or when its message matches a known "busy, try again"
phrase. The wait is either the server-provided retry-after hint, taken
as-is, or exponential backoff driven by a counter that only advances on
self-paced waits.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ceremonykit.llm.errors import LLMError

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]

# Rate-limited, service-unavailable, overloaded.
TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 503, 529})

# Provider-specific status names normalized to the transient codes.
_STATUS_ALIASES: dict[str, int] = {
    "RESOURCE_EXHAUSTED": 429,
    "TOO_MANY_REQUESTS": 429,
    "UNAVAILABLE": 503,
    "SERVICE_UNAVAILABLE": 503,
    "rate_limit_error": 429,
    "overloaded_error": 529,
}

_TRANSIENT_PHRASES: tuple[str, ...] = (
    "high demand",
    "try again later",
    "overloaded",
    "rate limit",
    "rate_limit",
    "temporarily unavailable",
    "service unavailable",
    "resource exhausted",
    "resource_exhausted",
)

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*s?\s*$")


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration of a provider instance.

    ``max_retries`` counts retries, so a call is attempted at most
    ``max_retries + 1`` times.
    """

    max_retries: int = 3
    initial_delay_s: float = 2.0
    max_delay_s: float = 60.0
    backoff_multiplier: float = 2.0
    jitter: bool = False


DEFAULT_RETRY_POLICY = RetryPolicy()


@dataclass(frozen=True)
class ErrorClassification:
    """Verdict for a single failed attempt."""

    retryable: bool
    status: int | None = None
    retry_after_s: float | None = None
    reason: str = "unknown"


def _normalize_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value.isdigit():
            return int(value)
        return _STATUS_ALIASES.get(value) or _STATUS_ALIASES.get(value.upper())
    return None


def _extract_status(error: Exception) -> int | None:
    """Find a status code on an SDK exception, normalizing provider names."""
    for attr in ("status_code", "code", "status"):
        status = _normalize_status(getattr(error, attr, None))
        if status is not None:
            return status

    # Anthropic error bodies: {"type": "error", "error": {"type": "overloaded_error"}}
    body = getattr(error, "body", None)
    if isinstance(body, Mapping):
        inner = body.get("error", body)
        if isinstance(inner, Mapping):
            return _normalize_status(inner.get("type")) or _normalize_status(
                inner.get("status")
            )
    return None


def _parse_duration(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _DURATION_RE.match(value)
        if match:
            return float(match.group(1))
    return None


def _find_retry_delay(payload: Any) -> float | None:
    """Search a decoded error payload for a Gemini ``retryDelay`` entry."""
    if isinstance(payload, Mapping):
        for key, value in payload.items():
            if key in ("retryDelay", "retry_delay"):
                parsed = _parse_duration(value)
                if parsed is not None:
                    return parsed
            found = _find_retry_delay(value)
            if found is not None:
                return found
    elif isinstance(payload, (list, tuple)):
        for item in payload:
            found = _find_retry_delay(item)
            if found is not None:
                return found
    return None


def extract_retry_after(error: Exception) -> float | None:
    """Return the server-directed wait in seconds, or None if absent."""
    explicit = _parse_duration(getattr(error, "retry_after", None))
    if explicit is not None:
        return explicit

    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is not None:
        ms = _parse_duration(headers.get("retry-after-ms"))
        if ms is not None:
            return ms / 1000.0
        seconds = _parse_duration(headers.get("retry-after"))
        if seconds is not None:
            return seconds

    for attr in ("details", "body"):
        found = _find_retry_delay(getattr(error, attr, None))
        if found is not None:
            return found
    return None


def classify_error(error: Exception) -> ErrorClassification:
    """Classify an exception as retryable or fatal."""
    if isinstance(error, LLMError):
        return ErrorClassification(retryable=False, reason=type(error).__name__)

    status = _extract_status(error)
    retry_after = extract_retry_after(error)

    if status is not None and status in TRANSIENT_STATUS_CODES:
        return ErrorClassification(
            retryable=True, status=status, retry_after_s=retry_after,
            reason=f"status_{status}",
        )

    msg = str(error).lower()
    for phrase in _TRANSIENT_PHRASES:
        if phrase in msg:
            return ErrorClassification(
                retryable=True, status=status, retry_after_s=retry_after,
                reason=phrase,
            )

    return ErrorClassification(retryable=False, status=status)


def compute_backoff_delay(policy: RetryPolicy, step: int) -> float:
    """Self-paced wait for the given backoff step (0-based), capped at max delay."""
    delay = policy.initial_delay_s * (policy.backoff_multiplier ** step)
    delay = min(delay, policy.max_delay_s)
    if policy.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
        delay = min(delay, policy.max_delay_s)
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    policy: RetryPolicy | None = None,
    label: str = "llm",
    sleep: SleepFn | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async callable, retrying transient failures.

    Non-retryable errors propagate on the first occurrence. When attempts
    are exhausted the last error propagates unchanged.
    """
    policy = policy or DEFAULT_RETRY_POLICY
    sleep = sleep or asyncio.sleep
    attempt = 0
    backoff_step = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            verdict = classify_error(e)
            attempt += 1

            if not verdict.retryable:
                raise

            if attempt > policy.max_retries:
                logger.error(
                    "%s: giving up after %d attempts (%s): %s",
                    label, attempt, verdict.reason, e,
                )
                raise

            if verdict.retry_after_s is not None:
                delay = verdict.retry_after_s
                source = "server retry-after"
            else:
                delay = compute_backoff_delay(policy, backoff_step)
                backoff_step += 1
                source = "backoff"

            logger.warning(
                "%s: %s (attempt %d/%d), retrying in %.1fs (%s)",
                label, verdict.reason, attempt, policy.max_retries + 1,
                delay, source,
            )
            await sleep(delay)
