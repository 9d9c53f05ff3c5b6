# src/verification/exporter.py - v1
"""Verification report export to JSON and summary text, with retention cleanup."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from ceremonykit.storage.atomic import write_json_atomic
from ceremonykit.verification.models import (
    CeremonySummary,
    VerificationReport,
    VerificationSession,
)

logger = logging.getLogger(__name__)

_RULE = "=" * 80
_SUB = "-" * 80


def report_timestamp(ts: datetime) -> str:
    """Filesystem-safe, lexically sortable timestamp for report names."""
    return ts.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def report_paths(ceremony: str, logs_dir: Path, ts: datetime) -> tuple[Path, Path]:
    stamp = report_timestamp(ts)
    return (
        logs_dir / f"{ceremony}-verification-{stamp}.json",
        logs_dir / f"{ceremony}-verification-summary-{stamp}.txt",
    )


def format_summary_text(summary: CeremonySummary) -> str:
    """Generate the human-readable verification summary.

    Args:
        summary: Aggregated ceremony statistics.

    Returns:
        Formatted summary string.
    """
    lines: list[str] = [
        _RULE,
        f"VERIFICATION SUMMARY: {summary.ceremony}",
        f"Generated: {summary.generated_at.isoformat()}",
        _RULE,
        "",
        "OVERALL STATISTICS",
        _SUB,
        f"Verification sessions : {summary.total_verification_sessions}",
        f"Rules checked         : {summary.total_rules_checked}",
        f"Rules violated        : {summary.total_rules_violated}",
        f"Rules fixed           : {summary.total_rules_fixed}",
        f"API calls             : {summary.total_api_calls}",
        f"Verification time     : {summary.total_verification_time_ms / 1000:.1f}s",
    ]
    if summary.verification_time_percentage is not None:
        lines.append(
            f"Share of ceremony     : {summary.verification_time_percentage:.1f}%"
        )

    lines += ["", "BY AGENT", _SUB]
    if not summary.by_agent:
        lines.append("  (none)")
    for name, agent in sorted(summary.by_agent.items()):
        lines.append(
            f"  {name:30s} | {agent.sessions:3d} sessions | "
            f"{agent.rules_checked:4d} checked | {agent.rules_violated:3d} violated | "
            f"{agent.rules_fixed:3d} fixed | {agent.api_calls:4d} calls | "
            f"{agent.duration_ms / 1000:.1f}s"
        )

    lines += ["", "MOST VIOLATED RULES", _SUB]
    if not summary.most_violated_rules:
        lines.append("  (none)")
    for i, rule in enumerate(summary.most_violated_rules, start=1):
        lines.append(
            f"  {i:2d}. [{rule.severity}] {rule.rule_name} ({rule.agent_name}/{rule.rule_id})"
            f" - {rule.count}x"
        )

    lines += ["", _RULE]
    return "\n".join(lines)


def write_report(
    summary: CeremonySummary,
    sessions: list[VerificationSession],
    logs_dir: Path,
    ts: datetime,
) -> tuple[Path, Path]:
    """Write the JSON report and the text summary for one ceremony run.

    Returns:
        Tuple of (json_path, text_path).
    """
    json_path, text_path = report_paths(summary.ceremony, logs_dir, ts)
    report = VerificationReport(summary=summary, sessions=sessions)
    write_json_atomic(json_path, report.to_json_dict())
    text_path.write_text(format_summary_text(summary), encoding="utf-8")
    logger.info("Verification report written to %s", json_path)
    return json_path, text_path


def load_report(path: Path) -> VerificationReport:
    return VerificationReport.model_validate(json.loads(path.read_text(encoding="utf-8")))


def cleanup_old_reports(ceremony: str, logs_dir: Path, keep: int = 10) -> int:
    """Keep only the newest ``keep`` reports of each kind for a ceremony.

    Returns:
        Number of files deleted.
    """
    if not logs_dir.is_dir():
        return 0

    deleted = 0
    patterns = (
        f"{ceremony}-verification-summary-*.txt",
        f"{ceremony}-verification-*.json",
    )
    for pattern in patterns:
        files = sorted(
            logs_dir.glob(pattern),
            key=lambda p: (p.stat().st_mtime, p.name),
            reverse=True,
        )
        for old in files[keep:]:
            old.unlink()
            deleted += 1

    if deleted:
        logger.debug("Removed %d old verification reports for %s", deleted, ceremony)
    return deleted
