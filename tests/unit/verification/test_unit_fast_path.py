# tests/unit/verification/test_unit_fast_path.py - v1
"""Tests for verification/fast_path.py."""

from __future__ import annotations

import pytest

from ceremonykit.verification.fast_path import apply_fast_fix, evaluate_fast_path
from ceremonykit.verification.models import VerificationRule


def _rule(sample_rule_data, **fast_path) -> VerificationRule:
    data = dict(sample_rule_data)
    if fast_path:
        data["fastPath"] = fast_path
    return VerificationRule.model_validate(data)


class TestJsonParse:
    def test_fenced_json_violated(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-parse")
        verdict = evaluate_fast_path(rule, '```json\n{"a": 1}\n```')
        assert verdict.violated

    def test_valid_json_passes(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-parse")
        verdict = evaluate_fast_path(rule, '{"a": 1}')
        assert verdict is not None
        assert not verdict.violated

    def test_invalid_unfenced_falls_through(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-parse")
        assert evaluate_fast_path(rule, "Sure! {a: 1}") is None

    def test_fast_fix_unwraps_fence(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-parse")
        assert apply_fast_fix(rule, '```json\n{"a": 1}\n```') == '{"a": 1}'
        assert apply_fast_fix(rule, "Sure! {a: 1}") is None


class TestJsonFields:
    def test_missing_fields(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-fields", requiredFields=["name", "epics"])
        verdict = evaluate_fast_path(rule, '{"name": "x"}')
        assert verdict.violated
        assert "epics" in verdict.reason

    def test_all_fields(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-fields", requiredFields=["name"])
        assert not evaluate_fast_path(rule, '```json\n{"name": "x"}\n```').violated

    @pytest.mark.parametrize("content", ["not json", "[1, 2]"])
    def test_non_object_falls_through(self, sample_rule_data, content):
        rule = _rule(sample_rule_data, type="json-fields", requiredFields=["name"])
        assert evaluate_fast_path(rule, content) is None

    def test_no_fast_fix(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-fields", requiredFields=["name"])
        assert apply_fast_fix(rule, "{}") is None


class TestDisabled:
    def test_no_fast_path(self, sample_rule_data):
        assert evaluate_fast_path(_rule(sample_rule_data), "{}") is None
        assert apply_fast_fix(_rule(sample_rule_data), "```\n{}\n```") is None

    def test_disabled_fast_path(self, sample_rule_data):
        rule = _rule(sample_rule_data, type="json-parse", enabled=False)
        assert evaluate_fast_path(rule, "```\n{}\n```") is None
        assert apply_fast_fix(rule, "```\n{}\n```") is None
