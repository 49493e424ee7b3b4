"""Tests for faultline.report — combined diagnosis over grouping + correlation."""

from __future__ import annotations

from faultline.history import ErrorHistoryStore
from faultline.report import diagnose, format_report
from tests.factories import InMemoryStorage, make_location, make_snapshot


def _batch():
    locations = [
        make_location(file_path="a.ts", line_number=10),
        make_location(file_path="a.ts", line_number=12),
        make_location(file_path="b.ts", line_number=1),
    ]
    messages = [
        "ReferenceError: config is not defined",
        "TypeError: db.execute is not a function",
        "ReferenceError: config is not defined",
    ]
    return locations, messages


class TestDiagnose:
    def test_empty(self):
        report = diagnose([], [])
        assert report.is_empty
        assert report.analysis.groups == []
        assert report.correlation.fix_order == []

    def test_views_share_nodes(self):
        locations, messages = _batch()
        report = diagnose(locations, messages, make_snapshot(dependencies={"b.ts": ["a.ts"]}))
        assert [e.error_id for e in report.errors] == ["error_0", "error_1", "error_2"]
        assert report.analysis.total_errors == 3
        assert sorted(report.correlation.fix_order) == ["error_0", "error_1", "error_2"]
        assert {g.group_id for g in report.analysis.groups} == {"file:a.ts", "type:ReferenceError"}

    def test_api_mismatch_flagged(self):
        locations, messages = _batch()
        report = diagnose(locations, messages)
        assert list(report.api_mismatches) == ["error_1"]
        assert report.api_mismatches["error_1"].error_type == "SQLite API Mismatch"

    def test_records_history(self):
        locations, messages = _batch()
        store = ErrorHistoryStore("/ws", InMemoryStorage())
        report = diagnose(locations, messages, history=store)
        assert set(report.history_ids) == {"error_0", "error_1", "error_2"}
        assert len(store) == 3

    def test_repeat_batch_bumps_frequency(self):
        locations, messages = _batch()
        store = ErrorHistoryStore("/ws", InMemoryStorage())
        diagnose(locations, messages, history=store)
        diagnose(locations, messages, history=store)
        assert [e.frequency for e in store.entries()] == [2, 2, 2]

    def test_suggests_fix_from_history(self):
        locations, messages = _batch()
        store = ErrorHistoryStore("/ws", InMemoryStorage())
        first = diagnose(locations, messages, history=store)
        store.record_fix(first.history_ids["error_0"], "import config from './config'", True)

        second = diagnose(locations, messages, history=store)
        assert second.suggested_fixes == {"error_0": "import config from './config'"}


class TestFormatReport:
    def test_empty(self):
        assert "_No errors to analyze._" in format_report(diagnose([], []))

    def test_sections(self):
        locations, messages = _batch()
        text = format_report(diagnose(locations, messages))
        assert text.startswith("# Diagnostic Report")
        assert "`error_0` a.ts:10" in text
        assert "## Error Groups" in text
        assert "## Error Correlation" in text
        assert "## Known Fixes" in text
        assert "SQLite API Mismatch" in text
