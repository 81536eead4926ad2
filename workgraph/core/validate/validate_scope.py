from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable, Optional, cast, get_args

from workgraph.core.errors import DanglingEdgeWarning, ScopeValidationError
from workgraph.core.model import (
    KIND_RANK,
    STATUS_ALIASES,
    DependencyEdge,
    Kind,
    Status,
    WorkItemNode,
    WorkScope,
)


ALLOWED_KINDS: set[str] = set(KIND_RANK)
ALLOWED_STATUSES: set[str] = set(get_args(Status))


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def parse_timestamp(v: Any) -> Optional[datetime]:
    if isinstance(v, datetime):
        return v
    if isinstance(v, date):
        return datetime(v.year, v.month, v.day)
    if isinstance(v, str):
        return datetime.fromisoformat(v.strip())
    raise ValueError(f"not a timestamp: {v!r}")


def validate_scope(
    scope: dict[str, Any],
) -> tuple[Optional[WorkScope], list[ScopeValidationError], list[DanglingEdgeWarning]]:
    """Validate a raw scope dict.

    Returns (scope, errors, warnings). Scope is None when errors exist. Dangling
    edges are warnings only: the edge stays in the scope and the engine skips it.
    """

    file = cast(Optional[str], scope.get("__file__"))
    errors: list[ScopeValidationError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(ScopeValidationError(code=code, message=message, file=file, path=path))

    schema_version = scope.get("schema_version")
    if not isinstance(schema_version, str) or not schema_version.strip():
        err("E_REQUIRED_FIELD", "schema_version is required and must be a non-empty string", "schema_version")

    raw_nodes = scope.get("nodes")
    if not isinstance(raw_nodes, list):
        err("E_REQUIRED_FIELD", "nodes is required and must be an array", "nodes")
        return None, _sorted(errors), []

    nodes: list[WorkItemNode] = []
    nodes_by_id: dict[str, WorkItemNode] = {}

    for i, raw in enumerate(raw_nodes):
        node_path = f"nodes[{i}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "node must be an object", node_path)
            continue

        nid = raw.get("id")
        if not isinstance(nid, str) or not nid.strip():
            err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", f"{node_path}.id")
            continue
        if nid in nodes_by_id:
            err("E_DUPLICATE_ID", f"duplicate node id: {nid}", f"{node_path}.id")
            continue

        kind = raw.get("kind")
        if not isinstance(kind, str) or kind not in ALLOWED_KINDS:
            err("E_INVALID_ENUM", f"kind must be one of {sorted(ALLOWED_KINDS)}", f"{node_path}.kind")
            continue

        status = raw.get("status", "not_started")
        if isinstance(status, str):
            status = STATUS_ALIASES.get(status, status)
        if not isinstance(status, str) or status not in ALLOWED_STATUSES:
            err("E_INVALID_ENUM", f"status must be one of {sorted(ALLOWED_STATUSES)}", f"{node_path}.status")
            continue

        estimate = raw.get("estimate_minutes")
        if estimate is not None:
            if not _is_int(estimate):
                err("E_INVALID_TYPE", "estimate_minutes must be an integer", f"{node_path}.estimate_minutes")
                continue
            if estimate < 0:
                err("E_NEGATIVE_ESTIMATE", "estimate_minutes must be >= 0", f"{node_path}.estimate_minutes")
                continue

        parent_id = raw.get("parent_id")
        if parent_id is not None and not isinstance(parent_id, str):
            err("E_INVALID_TYPE", "parent_id must be a string", f"{node_path}.parent_id")
            continue

        title = raw.get("title")
        if title is not None and not isinstance(title, str):
            err("E_INVALID_TYPE", "title must be a string", f"{node_path}.title")
            continue

        window: dict[str, Optional[datetime]] = {}
        for key in ("not_before", "not_after"):
            value = raw.get(key)
            try:
                window[key] = None if value is None else parse_timestamp(value)
            except ValueError:
                err("E_INVALID_TYPE", f"{key} must be an ISO-8601 timestamp", f"{node_path}.{key}")
        if len(window) != 2:
            continue

        node = WorkItemNode(
            id=nid,
            kind=cast(Kind, kind),
            status=cast(Status, status),
            estimate_minutes=cast(Optional[int], estimate),
            parent_id=parent_id,
            title=title or "",
            not_before=window["not_before"],
            not_after=window["not_after"],
        )
        nodes.append(node)
        nodes_by_id[nid] = node

    edges, warnings = _validate_edges(scope.get("edges", []), set(nodes_by_id), file, errors)

    if errors:
        return None, _sorted(errors), warnings

    return (
        WorkScope(
            schema_version=cast(str, schema_version),
            nodes=nodes,
            edges=edges,
            nodes_by_id=nodes_by_id,
        ),
        [],
        warnings,
    )


def _validate_edges(
    raw_edges: Any,
    node_ids: set[str],
    file: Optional[str],
    errors: list[ScopeValidationError],
) -> tuple[list[DependencyEdge], list[DanglingEdgeWarning]]:
    if raw_edges is None:
        return [], []
    if not isinstance(raw_edges, list):
        errors.append(
            ScopeValidationError(
                code="E_INVALID_TYPE",
                message="edges must be an array",
                file=file,
                path="edges",
            )
        )
        return [], []

    edges: list[DependencyEdge] = []
    warnings: list[DanglingEdgeWarning] = []
    seen_ids: set[str] = set()

    for i, raw in enumerate(raw_edges):
        edge_path = f"edges[{i}]"
        if not isinstance(raw, dict):
            errors.append(
                ScopeValidationError(code="E_INVALID_TYPE", message="edge must be an object", file=file, path=edge_path)
            )
            continue

        bad = [k for k in ("from_id", "to_id") if not isinstance(raw.get(k), str) or not raw.get(k, "").strip()]
        if bad:
            for k in bad:
                errors.append(
                    ScopeValidationError(
                        code="E_REQUIRED_FIELD",
                        message=f"{k} is required and must be a non-empty string",
                        file=file,
                        path=f"{edge_path}.{k}",
                    )
                )
            continue

        kind = raw.get("kind", "depends_on")
        if not isinstance(kind, str) or not kind.strip():
            errors.append(
                ScopeValidationError(
                    code="E_INVALID_TYPE",
                    message="kind must be a non-empty string",
                    file=file,
                    path=f"{edge_path}.kind",
                )
            )
            continue

        # Edge ids are optional in hand-written scopes.
        eid = raw.get("id", edge_path)
        if not isinstance(eid, str) or not eid.strip():
            errors.append(
                ScopeValidationError(
                    code="E_INVALID_TYPE",
                    message="id must be a non-empty string",
                    file=file,
                    path=f"{edge_path}.id",
                )
            )
            continue
        if eid in seen_ids:
            errors.append(
                ScopeValidationError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate edge id: {eid}",
                    file=file,
                    path=f"{edge_path}.id",
                )
            )
            continue
        seen_ids.add(eid)

        edge = DependencyEdge(id=eid, from_id=raw["from_id"], to_id=raw["to_id"], kind=kind)
        missing = [x for x in (edge.from_id, edge.to_id) if x not in node_ids]
        if missing:
            warnings.append(
                DanglingEdgeWarning(
                    code="W_DANGLING_EDGE",
                    message=f"edge references unknown node(s): {', '.join(missing)}",
                    file=file,
                    path=edge_path,
                    edge_id=eid,
                )
            )
        edges.append(edge)

    return edges, warnings


def summarize_scope(scope: WorkScope) -> str:
    counts = Counter([n.kind for n in scope.nodes])
    parts = [f"{k}={counts.get(k, 0)}" for k in sorted(KIND_RANK, key=KIND_RANK.__getitem__)]
    estimated = sum(1 for n in scope.nodes if n.has_estimate)
    return (
        f"OK: {len(scope.nodes)} nodes ("
        + ", ".join(parts)
        + f"), {len(scope.edges)} edges"
        + f"\nEstimated: {estimated}/{len(scope.nodes)}"
    )


def _sorted(errors: Iterable[ScopeValidationError]) -> list[ScopeValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
