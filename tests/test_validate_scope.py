from datetime import datetime
from pathlib import Path

from workgraph.core.io.load_scope import load_scope
from workgraph.core.validate.validate_scope import ALLOWED_STATUSES, summarize_scope, validate_scope

EXAMPLES = Path(__file__).resolve().parents[1] / "examples"


def _raw(nodes, edges=None) -> dict:
    return {"schema_version": "0.1.0", "nodes": nodes, "edges": edges or []}


def test_validate_happy_path():
    scope, errors, warnings = validate_scope(load_scope(str(EXAMPLES / "basic-scope.yaml")))
    assert errors == []
    assert warnings == []
    assert scope is not None
    assert scope.nodes_by_id["A"].status == "done"
    assert scope.nodes_by_id["D"].estimate_minutes is None
    assert scope.nodes_by_id["C"].not_before == datetime(2026, 3, 1, 9, 0)
    assert [e.kind for e in scope.edges] == ["depends_on", "blocks", "related"]


def test_status_aliases_and_defaults():
    scope, errors, _ = validate_scope(
        _raw(
            [
                {"id": "A", "kind": "issue", "status": "open"},
                {"id": "B", "kind": "issue", "status": "closed"},
                {"id": "C", "kind": "epic"},
            ]
        )
    )
    assert errors == []
    assert [n.status for n in scope.nodes] == ["not_started", "cancelled", "not_started"]


def test_zero_and_absent_estimates_differ():
    scope, _, _ = validate_scope(
        _raw([{"id": "A", "kind": "issue", "estimate_minutes": 0}, {"id": "B", "kind": "issue"}])
    )
    a, b = scope.nodes
    assert a.weight == b.weight == 0
    assert a.has_estimate and not b.has_estimate


def test_dangling_edge_is_a_warning():
    scope, errors, warnings = validate_scope(load_scope(str(EXAMPLES / "dangling-scope.yaml")))
    assert errors == []
    assert scope is not None
    assert [w.code for w in warnings] == ["W_DANGLING_EDGE"]
    assert warnings[0].edge_id == "ghost"
    assert warnings[0].severity == "warning"


def test_shape_errors():
    scope, errors, _ = validate_scope(
        _raw(
            [
                {"id": "A", "kind": "story"},
                {"id": "B", "kind": "issue", "status": "paused"},
                {"id": "C", "kind": "issue", "estimate_minutes": -5},
                {"id": "D", "kind": "issue", "estimate_minutes": 1.5},
                {"id": "E", "kind": "issue", "not_before": "next tuesday"},
                {"id": "E", "kind": "issue"},
                "nope",
            ],
            [{"id": "e1", "from_id": "A"}],
        )
    )
    assert scope is None
    codes = {(e.path, e.code) for e in errors}
    assert ("nodes[0].kind", "E_INVALID_ENUM") in codes
    assert ("nodes[1].status", "E_INVALID_ENUM") in codes
    assert ("nodes[2].estimate_minutes", "E_NEGATIVE_ESTIMATE") in codes
    assert ("nodes[3].estimate_minutes", "E_INVALID_TYPE") in codes
    assert ("nodes[4].not_before", "E_INVALID_TYPE") in codes
    assert ("nodes[5].id", "E_DUPLICATE_ID") not in codes  # E was rejected above
    assert ("nodes[6]", "E_INVALID_TYPE") in codes
    assert ("edges[0].to_id", "E_REQUIRED_FIELD") in codes


def test_duplicate_ids():
    _, errors, _ = validate_scope(
        _raw(
            [{"id": "A", "kind": "issue"}, {"id": "A", "kind": "issue"}],
            [{"id": "e", "from_id": "A", "to_id": "A"}, {"id": "e", "from_id": "A", "to_id": "A"}],
        )
    )
    assert {(e.path, e.code) for e in errors} == {
        ("nodes[1].id", "E_DUPLICATE_ID"),
        ("edges[1].id", "E_DUPLICATE_ID"),
    }


def test_missing_nodes():
    scope, errors, _ = validate_scope({"schema_version": "0.1.0"})
    assert scope is None
    assert [e.code for e in errors] == ["E_REQUIRED_FIELD"]


def test_edge_ids_default_to_position():
    scope, _, _ = validate_scope(
        _raw([{"id": "A", "kind": "issue"}, {"id": "B", "kind": "issue"}], [{"from_id": "B", "to_id": "A"}])
    )
    assert scope.edges[0].id == "edges[0]"
    assert scope.edges[0].kind == "depends_on"


def test_summary():
    scope, _, _ = validate_scope(load_scope(str(EXAMPLES / "basic-scope.yaml")))
    text = summarize_scope(scope)
    assert text.startswith("OK: 6 nodes (project=1, initiative=0, epic=1, issue=4), 3 edges")
    assert "Estimated: 3/6" in text


def test_allowed_statuses_follow_model():
    assert ALLOWED_STATUSES == {"not_started", "in_progress", "blocked", "done", "cancelled"}
