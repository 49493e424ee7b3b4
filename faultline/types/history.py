"""Persisted error-history types.

The on-disk document is ``{"entries": [...], "lastUpdated": <epoch ms>}`` with
camelCase entry keys; ``None`` fields are omitted on write.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from faultline.types.core import Severity


class HistoryEntry(BaseModel):
    """A previously observed error and what became of it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    error_id: str
    timestamp: int  # epoch millis of first sighting
    error_message: str
    error_type: str | None = None
    severity: Severity = Severity.MEDIUM
    file_path: str | None = None
    line_number: int | None = None
    function_name: str | None = None
    fix_applied: str | None = None
    fix_successful: bool | None = None
    user_correction: str | None = None
    frequency: int = Field(default=1)

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> Severity:
        try:
            return Severity(str(value).upper())
        except ValueError:
            return Severity.MEDIUM

    @field_validator("frequency", mode="before")
    @classmethod
    def _at_least_one(cls, value: Any) -> int:
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return 1

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class HistoryDocument(BaseModel):
    """Whole persisted history for one workspace."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entries: list[HistoryEntry] = []
    last_updated: int = 0

    def to_document(self) -> dict[str, Any]:
        return {
            "entries": [e.to_document() for e in self.entries],
            "lastUpdated": self.last_updated,
        }
