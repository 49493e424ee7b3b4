"""Predictive (not yet observed) error types."""

from __future__ import annotations

from dataclasses import dataclass, field

from faultline.types.core import RiskLevel


@dataclass
class PredictedError:
    """An unconfirmed error candidate raised by a heuristic source scan."""

    error_type: str
    description: str
    confidence: float
    risk_level: RiskLevel
    file_path: str | None = None
    line_number: int | None = None
    preventive_fix: str | None = None
    code_pattern: str | None = None


@dataclass
class RiskAssessment:
    """Aggregate risk over a set of predictions."""

    overall_risk: RiskLevel
    predicted_errors: list[PredictedError] = field(default_factory=list)
    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
