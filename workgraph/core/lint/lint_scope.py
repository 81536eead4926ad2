from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Optional

from workgraph.core.errors import DanglingEdgeWarning, GraphError, ScopeValidationError
from workgraph.core.graph.edge_policy import DEFAULT_POLICY, EdgePolicy
from workgraph.core.graph.validator import find_cycle, get_valid_parent_kinds
from workgraph.core.validate.validate_scope import parse_timestamp


# Scope lint rules:
# - L_DUPLICATE_EDGE: same (from_id, to_id, kind) listed more than once
# - L_CYCLE_DETECTED: weight-bearing dependency cycle
# - L_UNKNOWN_PARENT: parent_id references a node outside the scope
# - L_HIERARCHY_CYCLE: parent_id chain loops back on itself
# - L_INVALID_CONTAINMENT: parent kind cannot contain the child kind
# - L_WINDOW_INVERTED: not_before is later than not_after
# - W_DANGLING_EDGE: edge references a node outside the scope (warning)


def lint_scope(scope: dict[str, Any], *, policy: EdgePolicy = DEFAULT_POLICY) -> list[GraphError]:
    """Lint a scope.

    Lint runs *in addition to* shape validation and works best effort on
    partially-invalid input.
    """

    file = _cast_optional_str(scope.get("__file__"))

    nodes = scope.get("nodes")
    if not isinstance(nodes, list):
        # Let validator handle shape.
        return []

    id_to_index: dict[str, int] = {}
    id_to_raw: dict[str, dict[str, Any]] = {}
    for i, raw in enumerate(nodes):
        if not isinstance(raw, dict):
            continue
        nid = raw.get("id")
        if isinstance(nid, str):
            id_to_index.setdefault(nid, i)
            id_to_raw.setdefault(nid, raw)

    errors: list[GraphError] = []

    def lint(code: str, message: str, path: str) -> None:
        errors.append(ScopeValidationError(code=code, message=message, file=file, path=path))

    # Edges (best effort).
    raw_edges = scope.get("edges")
    edge_rows: list[tuple[int, str, str, str, str]] = []
    if isinstance(raw_edges, list):
        for i, raw in enumerate(raw_edges):
            if not isinstance(raw, dict):
                continue
            src, dst = raw.get("from_id"), raw.get("to_id")
            if not isinstance(src, str) or not isinstance(dst, str):
                continue
            kind = raw.get("kind", "depends_on")
            kind = kind if isinstance(kind, str) else "depends_on"
            eid = raw.get("id")
            edge_rows.append((i, eid if isinstance(eid, str) else f"edges[{i}]", src, dst, kind))

    # Rule: dangling edges
    for i, eid, src, dst, _ in edge_rows:
        missing = [x for x in (src, dst) if x not in id_to_raw]
        if missing:
            errors.append(
                DanglingEdgeWarning(
                    code="W_DANGLING_EDGE",
                    message=f"edge references unknown node(s): {', '.join(missing)}",
                    file=file,
                    path=f"edges[{i}]",
                    edge_id=eid,
                )
            )

    # Rule: duplicate edges
    counts = Counter((src, dst, kind) for _, _, src, dst, kind in edge_rows)
    seen: set[tuple[str, str, str]] = set()
    for i, _, src, dst, kind in edge_rows:
        key = (src, dst, kind)
        if counts[key] < 2:
            continue
        if key not in seen:
            seen.add(key)
            continue
        lint("L_DUPLICATE_EDGE", f"duplicate {kind} edge {src} -> {dst} (count={counts[key]})", f"edges[{i}]")

    # Rule: dependency cycles
    adj: dict[str, list[str]] = {nid: [] for nid in id_to_raw}
    for _, _, src, dst, kind in edge_rows:
        if src in adj and dst in adj and policy.is_weight_bearing(kind) and dst not in adj[src]:
            adj[src].append(dst)
    cycle = find_cycle({k: sorted(v) for k, v in adj.items()})
    if cycle:
        lint(
            "L_CYCLE_DETECTED",
            "dependency cycle detected: " + " -> ".join(cycle),
            f"nodes[{id_to_index[cycle[0]]}].id",
        )

    # Rules: hierarchy
    parent_of: dict[str, str] = {}
    for nid, raw in id_to_raw.items():
        parent = raw.get("parent_id")
        if not isinstance(parent, str):
            continue
        if parent not in id_to_raw:
            lint("L_UNKNOWN_PARENT", f"parent_id references unknown id: {parent}", f"nodes[{id_to_index[nid]}].parent_id")
            continue
        parent_of[nid] = parent

        child_kind, parent_kind = raw.get("kind"), id_to_raw[parent].get("kind")
        if isinstance(child_kind, str) and isinstance(parent_kind, str):
            if parent_kind not in get_valid_parent_kinds(child_kind):
                lint(
                    "L_INVALID_CONTAINMENT",
                    f"{parent_kind} cannot contain {child_kind}",
                    f"nodes[{id_to_index[nid]}].parent_id",
                )

    hierarchy_cycle = find_cycle({nid: [parent_of[nid]] if nid in parent_of else [] for nid in id_to_raw})
    if hierarchy_cycle:
        lint(
            "L_HIERARCHY_CYCLE",
            "parent chain loops: " + " -> ".join(hierarchy_cycle),
            f"nodes[{id_to_index[hierarchy_cycle[0]]}].parent_id",
        )

    # Rule: inverted scheduling window
    for nid, raw in id_to_raw.items():
        start, end = _window_bound(raw.get("not_before")), _window_bound(raw.get("not_after"))
        if start is None or end is None:
            continue
        if (start.tzinfo is None) != (end.tzinfo is None):
            continue
        if start > end:
            lint("L_WINDOW_INVERTED", "not_before is later than not_after", f"nodes[{id_to_index[nid]}].not_before")

    return _sorted(errors)


def _window_bound(v: Any) -> Optional[datetime]:
    if v is None:
        return None
    try:
        return parse_timestamp(v)
    except ValueError:
        return None


def _sorted(errors: list[GraphError]) -> list[GraphError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))


def _cast_optional_str(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None
