"""Tests for faultline.config — defaults, env overrides, caching."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from faultline.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for key in ("HISTORY_DIR", "HISTORY_FILE", "HISTORY_FLUSH_EVERY", "PROXIMITY_WINDOW", "LOG_LEVEL"):
            monkeypatch.delenv(f"FAULTLINE_{key}", raising=False)
        settings = Settings()
        assert settings.history_dir == ".faultline"
        assert settings.history_file == "error_history.json"
        assert settings.history_flush_every == 10
        assert settings.dedup_similarity == 0.7
        assert settings.suggest_similarity == 0.6
        assert settings.proximity_window == 10
        assert settings.max_chain_length == 10
        assert settings.recurring_min_frequency == 2

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FAULTLINE_PROXIMITY_WINDOW", "4")
        monkeypatch.setenv("FAULTLINE_DEDUP_SIMILARITY", "0.9")
        settings = get_settings()
        assert settings.proximity_window == 4
        assert settings.dedup_similarity == 0.9

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FAULTLINE_HISTORY_DIR", raising=False)
        (tmp_path / ".env").write_text("FAULTLINE_HISTORY_DIR=.cache/history\n")
        monkeypatch.chdir(tmp_path)
        assert Settings().history_dir == ".cache/history"

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_zero_flush_cadence_rejected(self, monkeypatch):
        monkeypatch.setenv("FAULTLINE_HISTORY_FLUSH_EVERY", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_override_flows_into_correlation(self, monkeypatch):
        from faultline.correlation import correlate
        from tests.factories import make_node

        monkeypatch.setenv("FAULTLINE_PROXIMITY_WINDOW", "2")
        errors = [
            make_node("e0", line_number=1, error_type=None),
            make_node("e1", line_number=3, error_type=None),
        ]
        assert correlate(errors).graph.edges == []
