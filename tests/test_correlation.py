"""Tests for faultline.correlation — graph edges, root causes, chains, fix order."""

from __future__ import annotations

from faultline.correlation import (
    EDGE_CONFIDENCE,
    build_chains,
    build_graph,
    correlate,
    find_root_causes,
    format_correlation_result,
    suggest_fix,
    topological_sort,
)
from faultline.types import (
    DependencySnapshot,
    ErrorEdge,
    ErrorGraph,
    RelationshipType,
    Severity,
)
from tests.factories import make_node, make_snapshot


def _cross_file_batch():
    """a.ts:10, a.ts:12 and b.ts:1 where b.ts depends on a.ts."""
    errors = [
        make_node("a1", file_path="a.ts", line_number=10, error_type=None, message="x is undefined"),
        make_node("a2", file_path="a.ts", line_number=12, error_type=None, message="y failed"),
        make_node("b", file_path="b.ts", line_number=1, error_type=None, message="z failed"),
    ]
    return errors, make_snapshot(dependencies={"b.ts": ["a.ts"]})


def _edge_triples(graph: ErrorGraph):
    return {(e.from_id, e.to_id, e.relationship_type) for e in graph.edges}


class TestBuildGraph:
    def test_cross_file_scenario_edges(self):
        errors, snapshot = _cross_file_batch()
        graph = build_graph(errors, snapshot)
        assert _edge_triples(graph) == {
            ("a1", "a2", RelationshipType.LINE_PROXIMITY),
            ("b", "a2", RelationshipType.FILE_DEPENDENCY),
        }

    def test_edge_confidences(self):
        errors, snapshot = _cross_file_batch()
        graph = build_graph(errors, snapshot)
        for edge in graph.edges:
            assert edge.confidence == EDGE_CONFIDENCE[edge.relationship_type]

    def test_proximity_window_is_strict(self):
        errors = [
            make_node("e0", line_number=1, error_type=None),
            make_node("e1", line_number=11, error_type=None),
        ]
        assert build_graph(errors, DependencySnapshot(), proximity_window=10).edges == []
        assert len(build_graph(errors, DependencySnapshot(), proximity_window=11).edges) == 1

    def test_proximity_points_from_lower_line(self):
        errors = [
            make_node("late", line_number=20, error_type=None),
            make_node("early", line_number=15, error_type=None),
        ]
        graph = build_graph(errors, DependencySnapshot())
        assert _edge_triples(graph) == {("early", "late", RelationshipType.LINE_PROXIMITY)}

    def test_proximity_needs_line_numbers(self):
        errors = [
            make_node("e0", line_number=None, error_type=None),
            make_node("e1", line_number=3, error_type=None),
        ]
        assert build_graph(errors, DependencySnapshot()).edges == []

    def test_same_type_follows_batch_order(self):
        errors = [
            make_node("e0", file_path="a.ts", error_type="TypeError"),
            make_node("e1", file_path="b.ts", error_type="TypeError"),
        ]
        graph = build_graph(errors, DependencySnapshot())
        assert _edge_triples(graph) == {("e0", "e1", RelationshipType.SAME_TYPE)}

    def test_missing_type_never_same_type(self):
        errors = [
            make_node("e0", file_path="a.ts", error_type=None),
            make_node("e1", file_path="b.ts", error_type=None),
        ]
        assert build_graph(errors, DependencySnapshot()).edges == []

    def test_import_dependency(self):
        errors = [
            make_node("e0", file_path="src/app.ts", error_type=None),
            make_node("e1", file_path="src/utils.ts", error_type=None),
        ]
        snapshot = make_snapshot(imports={"src/app.ts": ["./utils"], "src/utils.ts": []})
        graph = build_graph(errors, snapshot)
        assert _edge_triples(graph) == {("e0", "e1", RelationshipType.IMPORT_DEPENDENCY)}

    def test_different_relationships_coexist(self):
        errors = [
            make_node("e0", file_path="app.ts", error_type="TypeError"),
            make_node("e1", file_path="utils.ts", error_type="TypeError"),
        ]
        snapshot = make_snapshot(
            dependencies={"app.ts": ["utils.ts"]},
            imports={"app.ts": ["./utils"], "utils.ts": []},
        )
        graph = build_graph(errors, snapshot)
        assert _edge_triples(graph) == {
            ("e0", "e1", RelationshipType.FILE_DEPENDENCY),
            ("e0", "e1", RelationshipType.IMPORT_DEPENDENCY),
            ("e0", "e1", RelationshipType.SAME_TYPE),
        }

    def test_edges_unique_by_triple(self):
        errors, snapshot = _cross_file_batch()
        graph = build_graph(errors, snapshot)
        keys = [e.key for e in graph.edges]
        assert len(keys) == len(set(keys))

    def test_every_edge_endpoint_is_a_node(self):
        errors, snapshot = _cross_file_batch()
        graph = build_graph(errors, snapshot)
        ids = {n.error_id for n in graph.nodes}
        for edge in graph.edges:
            assert edge.from_id in ids and edge.to_id in ids
            assert edge.from_id != edge.to_id


class TestRootCauses:
    def test_cross_file_scenario_roots(self):
        errors, snapshot = _cross_file_batch()
        roots = find_root_causes(build_graph(errors, snapshot))
        assert [r.error_id for r in roots] == ["a1", "b"]
        assert all(r.confidence == 0.9 for r in roots)
        assert roots[0].affected_errors == ["a2"]

    def test_isolated_root_confidence(self):
        graph = build_graph([make_node("e0")], DependencySnapshot())
        (root,) = find_root_causes(graph)
        assert root.confidence == 0.7
        assert root.affected_errors == []
        assert root.fallback is False

    def test_roots_have_no_incoming_edges(self):
        errors, snapshot = _cross_file_batch()
        graph = build_graph(errors, snapshot)
        for root in find_root_causes(graph):
            if not root.fallback:
                assert graph.in_degree(root.error_id) == 0

    def test_description(self):
        errors, snapshot = _cross_file_batch()
        roots = find_root_causes(build_graph(errors, snapshot))
        assert roots[0].description == (
            "Root cause: x is undefined in a.ts at line 10 (affects 1 other error(s))"
        )

    def test_fallback_to_high_severity_on_full_cycle(self):
        errors = [
            make_node("e0", file_path="a.ts", error_type=None, severity=Severity.HIGH),
            make_node("e1", file_path="b.ts", error_type=None, severity=Severity.LOW),
        ]
        snapshot = make_snapshot(dependencies={"a.ts": ["b.ts"], "b.ts": ["a.ts"]})
        roots = find_root_causes(build_graph(errors, snapshot))
        assert [r.error_id for r in roots] == ["e0"]
        assert roots[0].fallback is True
        assert roots[0].confidence == 0.8

    def test_no_roots_on_low_severity_cycle(self):
        errors = [
            make_node("e0", file_path="a.ts", error_type=None, severity=Severity.LOW),
            make_node("e1", file_path="b.ts", error_type=None, severity=Severity.LOW),
        ]
        snapshot = make_snapshot(dependencies={"a.ts": ["b.ts"], "b.ts": ["a.ts"]})
        assert find_root_causes(build_graph(errors, snapshot)) == []


class TestChains:
    def test_proximity_chain(self):
        errors = [
            make_node("e0", line_number=1, error_type=None),
            make_node("e1", line_number=5, error_type=None),
            make_node("e2", line_number=9, error_type=None),
        ]
        chains = build_chains(build_graph(errors, DependencySnapshot()))
        assert chains[0].errors == ["e0", "e1", "e2"]
        assert chains[0].relationship_type == RelationshipType.LINE_PROXIMITY
        assert chains[0].chain_id == "chain_line-proximity_e0"

    def test_chain_length_bounded(self):
        errors = [make_node(f"e{i}", line_number=i + 1, error_type=None) for i in range(6)]
        chains = build_chains(build_graph(errors, DependencySnapshot()), max_length=3)
        assert chains
        assert all(len(c.errors) <= 3 for c in chains)

    def test_no_repeated_ids_in_chain(self):
        errors = [
            make_node("e0", file_path="a.ts", error_type=None),
            make_node("e1", file_path="b.ts", error_type=None),
        ]
        snapshot = make_snapshot(dependencies={"a.ts": ["b.ts"], "b.ts": ["a.ts"]})
        for chain in build_chains(build_graph(errors, snapshot)):
            assert len(chain.errors) == len(set(chain.errors))

    def test_no_edges_no_chains(self):
        assert build_chains(build_graph([make_node("e0")], DependencySnapshot())) == []


class TestTopologicalSort:
    def test_fifo_tie_breaking(self):
        edges = [ErrorEdge("a", "c", RelationshipType.SAME_TYPE, 0.6)]
        assert topological_sort(["a", "b", "c"], edges) == (["a", "b", "c"], [])

    def test_ignores_external_edges(self):
        edges = [ErrorEdge("outside", "b", RelationshipType.SAME_TYPE, 0.6)]
        assert topological_sort(["b"], edges) == (["b"], [])

    def test_cycle_leftovers(self):
        edges = [
            ErrorEdge("a", "b", RelationshipType.FILE_DEPENDENCY, 0.9),
            ErrorEdge("b", "a", RelationshipType.FILE_DEPENDENCY, 0.9),
        ]
        assert topological_sort(["a", "b", "c"], edges) == (["c"], ["a", "b"])


class TestCorrelate:
    def test_empty_batch(self):
        result = correlate([])
        assert result.graph.is_empty
        assert result.root_causes == []
        assert result.chains == []
        assert result.fix_order == []

    def test_cross_file_scenario_fix_order(self):
        errors, snapshot = _cross_file_batch()
        result = correlate(errors, snapshot)
        assert result.fix_order == ["a1", "b", "a2"]
        assert result.residual_cycle == []

    def test_accepts_plain_mapping_snapshot(self):
        errors, _ = _cross_file_batch()
        result = correlate(errors, {"dependencies": {"b.ts": ["a.ts"]}, "files": {}})
        assert result.fix_order == ["a1", "b", "a2"]

    def test_fix_order_is_a_permutation(self):
        errors = [
            make_node(f"e{i}", file_path=f"f{i % 3}.ts", line_number=i + 1, error_type="TypeError")
            for i in range(9)
        ]
        result = correlate(errors, make_snapshot(dependencies={"f0.ts": ["f1.ts"]}))
        assert sorted(result.fix_order) == sorted(e.error_id for e in errors)

    def test_fix_order_respects_edges_outside_cycles(self):
        errors = [
            make_node(f"e{i}", file_path=f"f{i % 3}.ts", line_number=i + 1, error_type="TypeError")
            for i in range(9)
        ]
        result = correlate(errors, make_snapshot(dependencies={"f0.ts": ["f1.ts"]}))
        roots = {r.error_id for r in result.root_causes}
        position = {eid: i for i, eid in enumerate(result.fix_order)}
        for edge in result.graph.edges:
            if edge.to_id in roots:
                continue
            assert position[edge.from_id] < position[edge.to_id]

    def test_cycle_appended_and_flagged(self):
        errors = [
            make_node("e0", file_path="a.ts", error_type=None, severity=Severity.LOW),
            make_node("e1", file_path="b.ts", error_type=None, severity=Severity.LOW),
        ]
        snapshot = make_snapshot(dependencies={"a.ts": ["b.ts"], "b.ts": ["a.ts"]})
        result = correlate(errors, snapshot)
        assert result.fix_order == ["e0", "e1"]
        assert result.residual_cycle == ["e0", "e1"]
        assert "e0 (cycle)" in format_correlation_result(result)

    def test_deterministic(self):
        errors, snapshot = _cross_file_batch()
        first = correlate(errors, snapshot)
        second = correlate(errors, snapshot)
        assert first.fix_order == second.fix_order
        assert [e.key for e in first.graph.edges] == [e.key for e in second.graph.edges]


class TestSuggestFix:
    def test_import_rule(self):
        node = make_node(message="Cannot find module './utils'", error_type=None)
        assert suggest_fix(node).startswith("Check import path")

    def test_type_rule(self):
        node = make_node(message="bad operand", error_type="TypeError")
        assert suggest_fix(node).startswith("Type mismatch")

    def test_no_rule(self):
        assert suggest_fix(make_node(message="boom", error_type=None)) is None


class TestFormat:
    def test_markdown_sections(self):
        errors, snapshot = _cross_file_batch()
        text = format_correlation_result(correlate(errors, snapshot))
        assert "## Error Correlation" in text
        assert "### Root Causes (2)" in text
        assert "### Suggested Fix Order" in text
        assert "1. a1" in text
