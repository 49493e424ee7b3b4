"""Shared pytest fixtures for the faultline test suite."""

from __future__ import annotations

import pytest

from faultline.config import get_settings

# ---------------------------------------------------------------------------
# Environment isolation — no real .env ever loaded in tests
# ---------------------------------------------------------------------------

_PINNED_ENV = {
    "FAULTLINE_HISTORY_DIR": ".faultline",
    "FAULTLINE_HISTORY_FILE": "error_history.json",
    "FAULTLINE_HISTORY_FLUSH_EVERY": "10",
    "FAULTLINE_PROXIMITY_WINDOW": "10",
    "FAULTLINE_LOG_LEVEL": "INFO",
}


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch, tmp_path):
    """Every test gets isolated settings with no real env leakage."""
    get_settings.cache_clear()

    for key, value in _PINNED_ENV.items():
        monkeypatch.setenv(key, value)

    # Keep a developer's .env in the repo root out of reach
    monkeypatch.chdir(tmp_path)

    yield

    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_node():
    from tests.factories import make_node

    return make_node


@pytest.fixture
def memory_storage():
    from tests.factories import InMemoryStorage

    return InMemoryStorage()


@pytest.fixture
def history_store(memory_storage):
    """History store backed by in-memory storage."""
    from faultline.history import ErrorHistoryStore

    return ErrorHistoryStore("/workspace", memory_storage)
