# tests/unit/tracking/test_unit_usage_exporter.py - v1
"""Tests for tracking/exporter.py."""

from __future__ import annotations

import json

from ceremonykit.tracking.exporter import export_usage_json, export_usage_summary
from ceremonykit.tracking.usage_aggregator import UsageAggregator


class TestExportUsage:
    def test_summary_lists_ceremonies(self, state_dir, clock):
        aggregator = UsageAggregator(state_dir, clock=clock)
        aggregator.add_execution("sponsor-call", 1200, 300, "gpt-4o")
        aggregator.add_execution("sprint-planning", 10, 10)

        text = export_usage_summary(aggregator)
        assert text.startswith("=== Token Usage: all ceremonies ===")
        assert "--- sponsor-call ---" in text
        assert "--- sprint-planning ---" in text
        assert "1,500 tokens" in text
        assert "Free" in text

    def test_summary_single_ceremony(self, state_dir, clock):
        aggregator = UsageAggregator(state_dir, clock=clock)
        aggregator.add_execution("sponsor-call", 1, 1)
        aggregator.add_execution("sprint-planning", 1, 1)
        text = export_usage_summary(aggregator, ceremony="sprint-planning")
        assert "--- sprint-planning ---" in text
        assert "--- sponsor-call ---" not in text

    def test_empty_summary(self, state_dir, clock):
        text = export_usage_summary(UsageAggregator(state_dir, clock=clock))
        assert "0 runs" in text
        assert "---" not in text

    def test_json_export(self, state_dir, clock, tmp_path):
        aggregator = UsageAggregator(state_dir, clock=clock)
        aggregator.add_execution("sponsor-call", 2, 3)
        out = tmp_path / "export" / "usage.json"
        export_usage_json(aggregator, out)
        doc = json.loads(out.read_text())
        assert doc["sponsor-call"]["allTime"]["total"] == 5
