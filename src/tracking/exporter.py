# src/tracking/exporter.py - v1
"""Token usage export to JSON and summary text."""

from __future__ import annotations

import logging
from pathlib import Path

from ceremonykit.storage.atomic import write_json_atomic
from ceremonykit.tracking.cost_calculator import format_cost
from ceremonykit.tracking.models import UsageBucket
from ceremonykit.tracking.usage_aggregator import UsageAggregator

logger = logging.getLogger(__name__)


def _bucket_line(label: str, bucket: UsageBucket) -> str:
    return (
        f"  {label:10s} | {bucket.executions:4d} runs | "
        f"{bucket.total:10,} tokens (in: {bucket.input:,}, out: {bucket.output:,}) | "
        f"{format_cost(bucket.cost.total)}"
    )


def export_usage_summary(aggregator: UsageAggregator, ceremony: str | None = None) -> str:
    """Generate a human-readable usage report.

    Args:
        aggregator: Usage ledger to report on.
        ceremony: Restrict the detailed section to one ceremony (None = all).

    Returns:
        Formatted summary string.
    """
    lines: list[str] = [
        "=== Token Usage: all ceremonies ===",
        _bucket_line("Today", aggregator.get_totals_today()),
        _bucket_line("This week", aggregator.get_totals_this_week()),
        _bucket_line("This month", aggregator.get_totals_this_month()),
        _bucket_line("All time", aggregator.get_totals_all_time()),
    ]

    names = [ceremony] if ceremony else aggregator.get_all_ceremony_types()
    for name in names:
        lines += [
            "",
            f"--- {name} ---",
            _bucket_line("Today", aggregator.get_ceremony_today(name)),
            _bucket_line("This week", aggregator.get_ceremony_this_week(name)),
            _bucket_line("This month", aggregator.get_ceremony_this_month(name)),
            _bucket_line("All time", aggregator.get_ceremony_all_time(name)),
        ]

    return "\n".join(lines)


def export_usage_json(aggregator: UsageAggregator, path: Path) -> None:
    """Export the full usage ledger document.

    Args:
        aggregator: Usage ledger to export.
        path: Output file path.
    """
    write_json_atomic(path, aggregator.load().to_document())
    logger.debug("Usage ledger exported to %s", path)
