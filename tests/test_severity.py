"""Tests for faultline.severity — keyword classification, escalation, scores."""

from __future__ import annotations

import pytest

from faultline.severity import (
    PRIORITY_SCORES,
    classify,
    display_symbol,
    priority_score,
    requires_immediate_attention,
)
from faultline.types import Severity


class TestClassifyKeywords:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Segmentation fault in worker thread", Severity.CRITICAL),
            ("Possible data loss while writing cache", Severity.CRITICAL),
            ("Module not found: lodash", Severity.HIGH),
            ("Cannot read property 'id' of undefined", Severity.HIGH),
            ("Parse error near token '}'", Severity.MEDIUM),
            ("Warning: unused variable 'x'", Severity.MEDIUM),
            ("Line too long (formatting)", Severity.LOW),
            ("Consider extracting this block", Severity.INFO),
        ],
    )
    def test_message_keywords(self, message, expected):
        assert classify(message) == expected

    def test_first_matching_row_wins(self):
        """A message hitting both CRITICAL and HIGH keywords is CRITICAL."""
        assert classify("Fatal exception: cannot allocate") == Severity.CRITICAL

    def test_case_insensitive(self):
        assert classify("STACK OVERFLOW in recursion") == Severity.CRITICAL

    def test_type_name_matches_keywords(self):
        assert classify("something odd happened", "FatalError") == Severity.CRITICAL

    def test_info_keywords_ignore_type(self):
        """The INFO row only looks at the message text."""
        assert classify("odd", "consider") == Severity.MEDIUM


class TestClassifyFallback:
    def test_unknown_defaults_to_medium(self):
        assert classify("something odd happened") == Severity.MEDIUM

    def test_empty_message(self):
        assert classify("") == Severity.MEDIUM
        assert classify(None) == Severity.MEDIUM

    def test_type_fallback_table(self):
        assert classify("odd", "SyntaxError") == Severity.MEDIUM
        assert classify("odd", "RuntimeError") == Severity.HIGH

    def test_deprecation_type_is_low(self):
        assert classify("odd", "Deprecation") == Severity.LOW


class TestEscalation:
    def test_deep_stack_escalates_high(self):
        assert classify("Request failed", stack_depth=11) == Severity.CRITICAL

    def test_stack_at_threshold_stays_high(self):
        assert classify("Request failed", stack_depth=10) == Severity.HIGH

    def test_wide_impact_escalates_high(self):
        assert classify("Request failed", affected_file_count=6) == Severity.CRITICAL
        assert classify("Request failed", affected_file_count=5) == Severity.HIGH

    def test_escalation_only_applies_to_high(self):
        assert classify("Parse error", stack_depth=50) == Severity.MEDIUM


class TestScores:
    def test_priority_scores(self):
        assert [priority_score(s) for s in Severity] == [100, 75, 50, 25, 10]

    def test_scores_strictly_ordered(self):
        scores = [PRIORITY_SCORES[s] for s in Severity]
        assert scores == sorted(scores, reverse=True)

    def test_requires_immediate_attention(self):
        assert requires_immediate_attention(Severity.CRITICAL)
        assert requires_immediate_attention(Severity.HIGH)
        assert not requires_immediate_attention(Severity.MEDIUM)
        assert not requires_immediate_attention(Severity.INFO)

    def test_display_symbol(self):
        assert display_symbol(Severity.CRITICAL) == "[CRIT]"
        assert display_symbol(Severity.LOW) == "[LOW]"
