"""Error correlation engine — relate errors, find root causes, order fixes.

Builds a directed graph over one batch of errors from dependency-snapshot and
proximity heuristics, then derives:
- root causes: nodes with no incoming edge
- chains: walks along a single relationship type
- fix order: root causes first, then a topological sort of the rest

Edges are heuristic hints, not proven causality. They are deduplicated by
(from, to, relationship type), so different relationship types between the
same pair coexist. Line-proximity and same-type are symmetric relations and
are stored once per pair, oriented from the lower line (proximity) or the
earlier batch position (same type). Cross-file edges attach to one error per
target file: the one with the highest line, i.e. the tail of that file's
proximity chain.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from faultline.config import get_settings
from faultline.severity import display_symbol
from faultline.types.core import RelationshipType, Severity
from faultline.types.errors import (
    CorrelationResult,
    ErrorChain,
    ErrorEdge,
    ErrorGraph,
    ErrorNode,
    RootCause,
)
from faultline.types.snapshot import DependencySnapshot

logger = logging.getLogger("faultline.correlation")

EDGE_CONFIDENCE: dict[RelationshipType, float] = {
    RelationshipType.FILE_DEPENDENCY: 0.9,
    RelationshipType.IMPORT_DEPENDENCY: 0.85,
    RelationshipType.LINE_PROXIMITY: 0.7,
    RelationshipType.SAME_TYPE: 0.6,
}

ROOT_WITH_AFFECTED_CONFIDENCE = 0.9
ROOT_ISOLATED_CONFIDENCE = 0.7
ROOT_FALLBACK_CONFIDENCE = 0.8

_CHAIN_DESCRIPTIONS: dict[RelationshipType, str] = {
    RelationshipType.FILE_DEPENDENCY: "File dependency chain",
    RelationshipType.IMPORT_DEPENDENCY: "Import dependency chain",
    RelationshipType.LINE_PROXIMITY: "Nearby-lines chain",
    RelationshipType.SAME_TYPE: "Same error type chain",
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def correlate(
    errors: list[ErrorNode],
    snapshot: DependencySnapshot | dict[str, Any] | None = None,
    *,
    proximity_window: int | None = None,
    max_chain_length: int | None = None,
) -> CorrelationResult:
    """Correlate a batch of errors.

    Args:
        errors: Error nodes of one batch, in batch order.
        snapshot: Dependency snapshot of the workspace (or a plain mapping of
            the same shape). ``None`` means no dependency information.
        proximity_window: Max line distance (exclusive) for line-proximity edges.
        max_chain_length: Max number of error ids per chain.

    Returns:
        Graph, root causes, chains and a fix order covering every error once.
    """
    if not errors:
        return CorrelationResult()

    settings = get_settings()
    window = proximity_window if proximity_window is not None else settings.proximity_window
    chain_limit = max_chain_length if max_chain_length is not None else settings.max_chain_length

    if not isinstance(snapshot, DependencySnapshot):
        snapshot = DependencySnapshot.from_mapping(snapshot)

    graph = build_graph(errors, snapshot, proximity_window=window)
    root_causes = find_root_causes(graph)
    chains = build_chains(graph, max_length=chain_limit)
    fix_order, residual = determine_fix_order(graph, root_causes)

    logger.info(
        f"Correlated {len(errors)} errors: {len(graph.edges)} edges, "
        f"{len(root_causes)} root causes, {len(chains)} chains"
    )
    if residual:
        logger.debug(f"Residual cycle appended in batch order: {residual}")

    return CorrelationResult(
        graph=graph,
        root_causes=root_causes,
        chains=chains,
        fix_order=fix_order,
        residual_cycle=residual,
    )


def build_graph(
    errors: list[ErrorNode],
    snapshot: DependencySnapshot,
    proximity_window: int = 10,
) -> ErrorGraph:
    """Pairwise edge construction over the batch (O(n²), batches are small)."""
    position = {node.error_id: index for index, node in enumerate(errors)}
    tails = _file_tails(errors)

    edges: list[ErrorEdge] = []
    seen: set[tuple[str, str, RelationshipType]] = set()

    def add(source: ErrorNode, target: ErrorNode, relationship: RelationshipType) -> None:
        edge = ErrorEdge(
            from_id=source.error_id,
            to_id=target.error_id,
            relationship_type=relationship,
            confidence=EDGE_CONFIDENCE[relationship],
        )
        if edge.key not in seen:
            seen.add(edge.key)
            edges.append(edge)

    for a in errors:
        for b in errors:
            if a.error_id == b.error_id:
                continue

            cross_file = a.file_path != b.file_path
            is_tail = tails.get(b.file_path) == b.error_id

            if cross_file and is_tail and snapshot.depends_on(a.file_path, b.file_path):
                add(a, b, RelationshipType.FILE_DEPENDENCY)

            if cross_file and is_tail and snapshot.imports_reference(a.file_path, b.file_path):
                add(a, b, RelationshipType.IMPORT_DEPENDENCY)

            if _within_proximity(a, b, proximity_window) and _proximity_order(a, b, position):
                add(a, b, RelationshipType.LINE_PROXIMITY)

            if a.error_type and a.error_type == b.error_type and position[a.error_id] < position[b.error_id]:
                add(a, b, RelationshipType.SAME_TYPE)

    return ErrorGraph(nodes=list(errors), edges=edges)


def find_root_causes(graph: ErrorGraph) -> list[RootCause]:
    """Zero in-degree nodes, or CRITICAL/HIGH nodes when no such node exists.

    Returns:
        Root causes sorted by confidence descending (batch order on ties).
    """
    with_incoming = {e.to_id for e in graph.edges}
    candidates = [n for n in graph.nodes if n.error_id not in with_incoming]

    root_causes: list[RootCause] = []
    for node in candidates:
        affected = _direct_targets(graph, node.error_id)
        root_causes.append(
            RootCause(
                error_id=node.error_id,
                description=describe_root_cause(node, len(affected)),
                confidence=ROOT_WITH_AFFECTED_CONFIDENCE if affected else ROOT_ISOLATED_CONFIDENCE,
                affected_errors=affected,
                suggested_fix=suggest_fix(node),
            )
        )

    if not candidates:
        for node in graph.nodes:
            if node.severity not in (Severity.CRITICAL, Severity.HIGH):
                continue
            root_causes.append(
                RootCause(
                    error_id=node.error_id,
                    description=f"High severity error: {node.message[:100]}",
                    confidence=ROOT_FALLBACK_CONFIDENCE,
                    affected_errors=_direct_targets(graph, node.error_id),
                    suggested_fix=suggest_fix(node),
                    fallback=True,
                )
            )

    root_causes.sort(key=lambda r: -r.confidence)
    return root_causes


def build_chains(graph: ErrorGraph, max_length: int = 10) -> list[ErrorChain]:
    """Chains per relationship type, deduplicated by their id sequence."""
    chains: list[ErrorChain] = []
    seen: set[tuple[str, ...]] = set()

    for relationship in RelationshipType:
        for chain in _chains_for(graph, relationship, max_length):
            key = tuple(chain.errors)
            if key not in seen:
                seen.add(key)
                chains.append(chain)

    return chains


def determine_fix_order(
    graph: ErrorGraph, root_causes: list[RootCause]
) -> tuple[list[str], list[str]]:
    """Root causes first, then the remaining nodes topologically sorted.

    Returns:
        ``(fix_order, residual_cycle)`` where ``residual_cycle`` lists the ids
        the sort could not place (cycles), appended in batch order.
    """
    order: list[str] = []
    for root in root_causes:
        if root.error_id not in order:
            order.append(root.error_id)

    placed = set(order)
    remaining = [n.error_id for n in graph.nodes if n.error_id not in placed]
    sorted_ids, residual = topological_sort(remaining, graph.edges)

    return order + sorted_ids + residual, residual


def topological_sort(
    error_ids: list[str], edges: list[ErrorEdge]
) -> tuple[list[str], list[str]]:
    """Kahn's algorithm over ``error_ids`` using only edges among them.

    Ties resolve first-in-first-out, starting from ``error_ids`` order.

    Returns:
        ``(sorted_ids, leftover_ids)``; leftovers sit on cycles.
    """
    members = set(error_ids)
    internal = [e for e in edges if e.from_id in members and e.to_id in members]

    in_degree = dict.fromkeys(error_ids, 0)
    for edge in internal:
        in_degree[edge.to_id] += 1

    queue = deque(i for i in error_ids if in_degree[i] == 0)
    result: list[str] = []
    while queue:
        current = queue.popleft()
        result.append(current)
        for edge in internal:
            if edge.from_id != current:
                continue
            in_degree[edge.to_id] -= 1
            if in_degree[edge.to_id] == 0:
                queue.append(edge.to_id)

    done = set(result)
    return result, [i for i in error_ids if i not in done]


def suggest_fix(node: ErrorNode) -> str | None:
    """Keyword-rule fix advice for a root-cause error, or None."""
    lower = node.message.lower()
    if "import" in lower or "module" in lower or "require" in lower:
        return "Check import path and ensure module exists. Verify file paths match import statements."
    if "undefined" in lower:
        return "Variable or function is undefined. Check if it's declared, imported, or exported correctly."
    if "not a function" in lower:
        return (
            "API mismatch detected. Check library version and API documentation. "
            "May need to use different method name."
        )
    if node.error_type == "SyntaxError":
        return "Fix syntax error first. Check for missing brackets, quotes, or semicolons."
    if node.error_type == "TypeError":
        return "Type mismatch. Check variable types and function parameter types."
    return None


def describe_root_cause(node: ErrorNode, affected_count: int) -> str:
    parts = [f"Root cause: {node.message[:80]}"]
    if node.file_path:
        parts.append(f" in {node.file_path}")
    if node.line_number is not None:
        parts.append(f" at line {node.line_number}")
    if affected_count > 0:
        parts.append(f" (affects {affected_count} other error(s))")
    return "".join(parts)


def format_correlation_result(result: CorrelationResult) -> str:
    """Format a correlation result as a markdown section."""
    lines = ["## Error Correlation", ""]

    lines.append(f"### Root Causes ({len(result.root_causes)})")
    lines.append("")
    if not result.root_causes:
        lines.append("_No root causes identified._")
    for index, root in enumerate(result.root_causes, start=1):
        node = result.graph.node(root.error_id)
        badge = f"{display_symbol(node.severity)} " if node else ""
        lines.append(f"{index}. {badge}{root.description}")
        lines.append(f"   - Confidence: {root.confidence:.0%}")
        if root.affected_errors:
            lines.append(f"   - Affects: {', '.join(root.affected_errors)}")
        if root.suggested_fix:
            lines.append(f"   - Suggested fix: {root.suggested_fix}")
    lines.append("")

    if result.chains:
        lines.append(f"### Error Chains ({len(result.chains)})")
        lines.append("")
        for index, chain in enumerate(result.chains[:5], start=1):
            lines.append(f"{index}. {chain.description} ({len(chain.errors)} errors): {' -> '.join(chain.errors)}")
        lines.append("")

    lines.append("### Suggested Fix Order")
    lines.append("")
    residual = set(result.residual_cycle)
    for index, error_id in enumerate(result.fix_order, start=1):
        suffix = " (cycle)" if error_id in residual else ""
        lines.append(f"{index}. {error_id}{suffix}")
    lines.append("")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _file_tails(errors: list[ErrorNode]) -> dict[str, str]:
    """Per file, the id of the error with the highest line (later batch position on ties)."""
    tails: dict[str, tuple[int, int, str]] = {}
    for index, node in enumerate(errors):
        rank = (node.line_number or 0, index, node.error_id)
        current = tails.get(node.file_path)
        if current is None or rank[:2] > current[:2]:
            tails[node.file_path] = rank
    return {path: rank[2] for path, rank in tails.items()}


def _within_proximity(a: ErrorNode, b: ErrorNode, window: int) -> bool:
    if a.file_path != b.file_path:
        return False
    if a.line_number is None or b.line_number is None:
        return False
    return abs(a.line_number - b.line_number) < window


def _proximity_order(a: ErrorNode, b: ErrorNode, position: dict[str, int]) -> bool:
    """True when ``a`` precedes ``b``: lower line first, batch order on ties."""
    return (a.line_number, position[a.error_id]) < (b.line_number, position[b.error_id])


def _direct_targets(graph: ErrorGraph, error_id: str) -> list[str]:
    targets: list[str] = []
    for edge in graph.edges:
        if edge.from_id == error_id and edge.to_id not in targets:
            targets.append(edge.to_id)
    return targets


def _chains_for(
    graph: ErrorGraph, relationship: RelationshipType, max_length: int
) -> list[ErrorChain]:
    edges = [e for e in graph.edges if e.relationship_type == relationship]
    if not edges:
        return []

    with_incoming = {e.to_id for e in edges}
    chains: list[ErrorChain] = []

    for start in graph.nodes:
        if start.error_id in with_incoming:
            continue

        chain = [start.error_id]
        current = start.error_id
        while len(chain) < max_length:
            next_edge = next(
                (e for e in edges if e.from_id == current and e.to_id not in chain),
                None,
            )
            if next_edge is None:
                break
            chain.append(next_edge.to_id)
            current = next_edge.to_id

        if len(chain) > 1:
            chains.append(
                ErrorChain(
                    chain_id=f"chain_{relationship}_{start.error_id}",
                    errors=chain,
                    relationship_type=relationship,
                    description=_CHAIN_DESCRIPTIONS[relationship],
                )
            )

    return chains
