"""Error graph types: locations, nodes, edges, root causes and chains."""

from __future__ import annotations

from dataclasses import dataclass, field

from faultline.types.core import RelationshipType, Severity


@dataclass(frozen=True)
class ErrorLocation:
    """Where a single error was detected, as reported by the upstream extractor."""

    file_path: str
    line_number: int | None = None
    column_number: int | None = None
    function_name: str | None = None
    severity: Severity | None = None

    def __post_init__(self) -> None:
        if not self.file_path:
            raise ValueError("ErrorLocation.file_path must be non-empty")
        if self.line_number is not None and self.line_number < 1:
            raise ValueError(f"ErrorLocation.line_number must be >= 1, got {self.line_number}")


@dataclass(frozen=True)
class ErrorNode:
    """One error of a batch, with its batch-local id and resolved severity."""

    error_id: str
    location: ErrorLocation
    message: str
    severity: Severity
    error_type: str | None = None

    @property
    def file_path(self) -> str:
        return self.location.file_path

    @property
    def line_number(self) -> int | None:
        return self.location.line_number


@dataclass(frozen=True)
class ErrorEdge:
    """Directed relation between two errors of the same batch."""

    from_id: str
    to_id: str
    relationship_type: RelationshipType
    confidence: float

    @property
    def key(self) -> tuple[str, str, RelationshipType]:
        return (self.from_id, self.to_id, self.relationship_type)


@dataclass
class ErrorGraph:
    """Nodes of one batch plus their deduplicated edges. Rebuilt per batch."""

    nodes: list[ErrorNode] = field(default_factory=list)
    edges: list[ErrorEdge] = field(default_factory=list)

    def node(self, error_id: str) -> ErrorNode | None:
        for node in self.nodes:
            if node.error_id == error_id:
                return node
        return None

    def incoming(self, error_id: str) -> list[ErrorEdge]:
        return [e for e in self.edges if e.to_id == error_id]

    def outgoing(self, error_id: str) -> list[ErrorEdge]:
        return [e for e in self.edges if e.from_id == error_id]

    def in_degree(self, error_id: str) -> int:
        return sum(1 for e in self.edges if e.to_id == error_id)

    @property
    def is_empty(self) -> bool:
        return not self.nodes


@dataclass
class RootCause:
    """An error inferred to have caused others (zero in-degree in the graph).

    ``fallback`` marks roots chosen by severity because the graph had no
    zero in-degree node at all; those are exempt from the in-degree rule.
    """

    error_id: str
    description: str
    confidence: float
    affected_errors: list[str] = field(default_factory=list)
    suggested_fix: str | None = None
    fallback: bool = False


@dataclass
class ErrorChain:
    """Ordered error ids following a single relationship type."""

    chain_id: str
    errors: list[str]
    relationship_type: RelationshipType
    description: str


@dataclass
class CorrelationResult:
    """Output of the correlation engine for one batch."""

    graph: ErrorGraph = field(default_factory=ErrorGraph)
    root_causes: list[RootCause] = field(default_factory=list)
    chains: list[ErrorChain] = field(default_factory=list)
    fix_order: list[str] = field(default_factory=list)
    residual_cycle: list[str] = field(default_factory=list)  # appended by cycle fallback
