# tests/unit/verification/test_unit_verification_exporter.py - v1
"""Tests for verification/exporter.py: text summary, reports and retention."""

from __future__ import annotations

import os
from datetime import datetime, timezone

from ceremonykit.verification.exporter import (
    cleanup_old_reports,
    format_summary_text,
    load_report,
    report_paths,
    write_report,
)
from ceremonykit.verification.models import (
    AgentSummary,
    CeremonySummary,
    ContentFingerprint,
    RuleViolationCount,
    VerificationSession,
)

_TS = datetime(2026, 10, 17, 12, 30, 45, 123456, tzinfo=timezone.utc)


def _summary(**kwargs) -> CeremonySummary:
    return CeremonySummary(ceremony="sponsor-call", generated_at=_TS, **kwargs)


class TestFormatSummaryText:
    def test_sections(self):
        text = format_summary_text(_summary(
            total_verification_sessions=3,
            total_rules_checked=12,
            total_rules_violated=2,
            total_rules_fixed=2,
            total_api_calls=14,
            total_verification_time_ms=4200.0,
            verification_time_percentage=35.0,
            by_agent={"doc-writer": AgentSummary(sessions=3, rules_checked=12)},
            most_violated_rules=[RuleViolationCount(
                agent_name="doc-writer", rule_id="no-placeholders",
                rule_name="No placeholder text", severity="major", count=2,
            )],
        ))
        assert "=" * 80 in text
        assert "VERIFICATION SUMMARY: sponsor-call" in text
        assert "OVERALL STATISTICS" in text
        assert "Rules checked         : 12" in text
        assert "Verification time     : 4.2s" in text
        assert "Share of ceremony     : 35.0%" in text
        assert "doc-writer" in text
        assert "[major] No placeholder text (doc-writer/no-placeholders) - 2x" in text

    def test_empty_sections(self):
        text = format_summary_text(_summary())
        assert text.count("(none)") == 2
        assert "Share of ceremony" not in text


class TestWriteReport:
    def test_paths(self, tmp_path):
        json_path, text_path = report_paths("sponsor-call", tmp_path, _TS)
        assert json_path.name == "sponsor-call-verification-2026-10-17T12-30-45-123456Z.json"
        assert text_path.name == "sponsor-call-verification-summary-2026-10-17T12-30-45-123456Z.txt"

    def test_write_and_load(self, tmp_path):
        session = VerificationSession(
            session_id="verify-1",
            agent_name="doc-writer",
            started_at=_TS,
            input=ContentFingerprint(content_length=1, content_preview="x", content_hash="h"),
        )
        json_path, text_path = write_report(_summary(), [session], tmp_path / "logs", _TS)
        report = load_report(json_path)
        assert report.summary.ceremony == "sponsor-call"
        assert report.sessions[0].session_id == "verify-1"
        assert text_path.read_text(encoding="utf-8").startswith("=" * 80)


class TestCleanupOldReports:
    def _make(self, logs, ceremony, stamp, mtime):
        for name in (
            f"{ceremony}-verification-{stamp}.json",
            f"{ceremony}-verification-summary-{stamp}.txt",
        ):
            path = logs / name
            path.write_text("{}")
            os.utime(path, (mtime, mtime))

    def test_keeps_newest(self, tmp_path):
        for i in range(5):
            self._make(tmp_path, "sponsor-call", f"2026-10-1{i}", 1_000_000 + i)
        deleted = cleanup_old_reports("sponsor-call", tmp_path, keep=3)
        assert deleted == 4
        remaining = sorted(p.name for p in tmp_path.glob("*.json"))
        assert remaining == [
            "sponsor-call-verification-2026-10-12.json",
            "sponsor-call-verification-2026-10-13.json",
            "sponsor-call-verification-2026-10-14.json",
        ]
        assert len(list(tmp_path.glob("*.txt"))) == 3

    def test_other_ceremonies_untouched(self, tmp_path):
        for i in range(3):
            self._make(tmp_path, "sponsor-call", f"s{i}", 1_000_000 + i)
            self._make(tmp_path, "sprint-planning", f"p{i}", 1_000_000 + i)
        cleanup_old_reports("sponsor-call", tmp_path, keep=1)
        assert len(list(tmp_path.glob("sprint-planning-*"))) == 6
        assert len(list(tmp_path.glob("sponsor-call-*"))) == 2

    def test_missing_dir(self, tmp_path):
        assert cleanup_old_reports("sponsor-call", tmp_path / "none") == 0
