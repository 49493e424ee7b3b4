"""Core enums shared by every faultline component."""

from __future__ import annotations

from enum import StrEnum

# --- Enums ---


class Severity(StrEnum):
    """Ordinal urgency of a detected error, most urgent first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


class RiskLevel(StrEnum):
    """Predictive-only severity for errors that have not happened yet."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RelationshipType(StrEnum):
    FILE_DEPENDENCY = "file-dependency"
    IMPORT_DEPENDENCY = "import-dependency"
    LINE_PROXIMITY = "line-proximity"
    SAME_TYPE = "same-type"


class GroupType(StrEnum):
    BY_FILE = "by_file"
    BY_TYPE = "by_type"
    BY_SEVERITY = "by_severity"
    SINGLE = "single"
