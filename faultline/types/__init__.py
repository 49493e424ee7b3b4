"""faultline type system — domain-segmented type definitions.

Import all types from this package:
    from faultline.types import ErrorNode, Severity, HistoryEntry

Or import from specific submodules:
    from faultline.types.core import RelationshipType
    from faultline.types.prediction import PredictedError
"""

from __future__ import annotations

# --- core.py: enums ---
from faultline.types.core import (
    GroupType,
    RelationshipType,
    RiskLevel,
    Severity,
)

# --- errors.py: error graph ---
from faultline.types.errors import (
    CorrelationResult,
    ErrorChain,
    ErrorEdge,
    ErrorGraph,
    ErrorLocation,
    ErrorNode,
    RootCause,
)

# --- grouping.py: multi-error grouping ---
from faultline.types.grouping import (
    ErrorGroup,
    FixOrderItem,
    MultiErrorAnalysis,
)

# --- history.py: persisted history ---
from faultline.types.history import (
    HistoryDocument,
    HistoryEntry,
)

# --- prediction.py: predicted errors ---
from faultline.types.prediction import (
    PredictedError,
    RiskAssessment,
)

# --- snapshot.py: dependency snapshot ---
from faultline.types.snapshot import (
    DependencySnapshot,
    FileMetadata,
)

__all__ = [
    # core
    "GroupType",
    "RelationshipType",
    "RiskLevel",
    "Severity",
    # errors
    "CorrelationResult",
    "ErrorChain",
    "ErrorEdge",
    "ErrorGraph",
    "ErrorLocation",
    "ErrorNode",
    "RootCause",
    # grouping
    "ErrorGroup",
    "FixOrderItem",
    "MultiErrorAnalysis",
    # history
    "HistoryDocument",
    "HistoryEntry",
    # prediction
    "PredictedError",
    "RiskAssessment",
    # snapshot
    "DependencySnapshot",
    "FileMetadata",
]
