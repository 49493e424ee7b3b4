"""Multi-error grouping and group-level fix ordering types."""

from __future__ import annotations

from dataclasses import dataclass, field

from faultline.types.core import GroupType
from faultline.types.errors import ErrorNode


@dataclass
class ErrorGroup:
    """A cluster of errors sharing one criterion (file, type or critical severity)."""

    group_id: str
    group_type: GroupType
    errors: list[ErrorNode]
    priority: int
    root_cause: str = ""

    @property
    def files(self) -> set[str]:
        return {e.file_path for e in self.errors}

    @property
    def error_ids(self) -> list[str]:
        return [e.error_id for e in self.errors]


@dataclass
class FixOrderItem:
    """One remediation step over a group. ``dependencies`` are earlier step numbers."""

    step_number: int
    group_id: str
    description: str
    errors_to_fix: list[str] = field(default_factory=list)
    dependencies: list[int] = field(default_factory=list)


@dataclass
class MultiErrorAnalysis:
    """Grouping view over a batch: prioritized groups and their fix order."""

    groups: list[ErrorGroup] = field(default_factory=list)
    fix_order: list[FixOrderItem] = field(default_factory=list)
    total_errors: int = 0
    critical_errors: int = 0
    estimated_time: str | None = None
