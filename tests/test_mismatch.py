"""Tests for faultline.mismatch — API mismatch pattern table."""

from __future__ import annotations

from faultline.mismatch import MISMATCH_PATTERNS, detect_api_mismatch


class TestDetectApiMismatch:
    def test_sqlite_execute_message(self):
        pattern = detect_api_mismatch("TypeError: db.execute is not a function")
        assert pattern is not None
        assert pattern.error_type == "SQLite API Mismatch"

    def test_dataframe_append_message(self):
        pattern = detect_api_mismatch("AttributeError: 'DataFrame' object has no attribute 'append'")
        assert pattern.error_type == "Removed DataFrame.append"

    def test_collections_import_message(self):
        pattern = detect_api_mismatch("ImportError: cannot import name 'Mapping' from 'collections'")
        assert pattern.error_type == "Removed collections ABC Import"

    def test_no_match(self):
        assert detect_api_mismatch("SyntaxError: unexpected token") is None

    def test_empty(self):
        assert detect_api_mismatch("") is None


class TestCodePatterns:
    def _matching(self, line: str) -> list[str]:
        return [p.error_type for p in MISMATCH_PATTERNS if p.matches_code(line)]

    def test_new_buffer(self):
        assert self._matching("const b = new Buffer(10);") == ["Deprecated Buffer Constructor"]

    def test_buffer_from_is_fine(self):
        assert self._matching("const b = Buffer.from('x');") == []

    def test_react_dom_render(self):
        assert self._matching("ReactDOM.render(<App />, root);") == ["React Root API Mismatch"]

    def test_fs_then(self):
        assert self._matching("fs.readFile(path).then(show);") == ["Promise/Callback Mismatch"]

    def test_collections_abc_is_fine(self):
        assert self._matching("from collections.abc import Mapping") == []
        assert self._matching("from collections import Mapping") == ["Removed collections ABC Import"]
