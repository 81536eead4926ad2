from pathlib import Path

from workgraph.core.graph.edge_policy import EdgePolicy
from workgraph.core.io.load_scope import load_scope
from workgraph.core.lint.lint_scope import lint_scope

EXAMPLES = Path(__file__).resolve().parents[1] / "examples"


def _codes(errors) -> list[str]:
    return [e.code for e in errors]


def test_basic_scope_is_clean():
    assert lint_scope(load_scope(str(EXAMPLES / "basic-scope.yaml"))) == []


def test_cycle_detected():
    errors = lint_scope(load_scope(str(EXAMPLES / "cyclic-scope.json")))
    assert _codes(errors) == ["L_CYCLE_DETECTED"]
    assert "A -> B -> C -> A" in errors[0].message


def test_related_cycle_depends_on_policy():
    scope = {
        "nodes": [{"id": "A", "kind": "issue"}, {"id": "B", "kind": "issue"}],
        "edges": [
            {"id": "1", "from_id": "A", "to_id": "B"},
            {"id": "2", "from_id": "B", "to_id": "A", "kind": "related"},
        ],
    }
    assert lint_scope(scope) == []
    assert _codes(lint_scope(scope, policy=EdgePolicy.uniform())) == ["L_CYCLE_DETECTED"]


def test_dangling_and_duplicate_edges():
    scope = {
        "nodes": [{"id": "A", "kind": "issue"}, {"id": "B", "kind": "issue"}],
        "edges": [
            {"id": "1", "from_id": "A", "to_id": "B"},
            {"id": "2", "from_id": "A", "to_id": "B"},
            {"id": "3", "from_id": "A", "to_id": "GONE"},
        ],
    }
    errors = lint_scope(scope)
    assert _codes(errors) == ["L_DUPLICATE_EDGE", "W_DANGLING_EDGE"]
    assert errors[0].path == "edges[1]"
    assert errors[1].severity == "warning"


def test_hierarchy_rules():
    scope = {
        "nodes": [
            {"id": "P", "kind": "project"},
            {"id": "E1", "kind": "epic", "parent_id": "E2"},
            {"id": "E2", "kind": "epic", "parent_id": "E1"},
            {"id": "I", "kind": "issue", "parent_id": "MISSING"},
            {"id": "Q", "kind": "project", "parent_id": "P"},
        ],
    }
    codes = {(e.path, e.code) for e in lint_scope(scope)}
    assert ("nodes[3].parent_id", "L_UNKNOWN_PARENT") in codes
    assert ("nodes[4].parent_id", "L_INVALID_CONTAINMENT") in codes
    assert ("nodes[1].parent_id", "L_INVALID_CONTAINMENT") in codes
    assert ("nodes[1].parent_id", "L_HIERARCHY_CYCLE") in codes


def test_inverted_window():
    scope = {
        "nodes": [
            {
                "id": "A",
                "kind": "issue",
                "not_before": "2026-05-02T00:00:00",
                "not_after": "2026-05-01T00:00:00",
            },
        ],
    }
    assert _codes(lint_scope(scope)) == ["L_WINDOW_INVERTED"]


def test_lint_tolerates_bad_shape():
    assert lint_scope({"nodes": "nope"}) == []
    assert lint_scope({"nodes": ["x", {"id": 3}], "edges": "nope"}) == []
