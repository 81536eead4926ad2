from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from workgraph.core.errors import ScopeLoadError


def load_scope(path: str) -> dict[str, Any]:
    """Load a YAML/JSON work-item scope file.

    Returns a dict with keys: schema_version, nodes, edges, __file__.
    `edges` is always a list: a missing or null `edges` key means no explicit
    edges, and nodes may list their dependencies inline as `depends_on: [ids]`,
    which is appended as depends_on edges. `__file__` is the source path that
    validation and lint errors report against.

    Node and edge fields are not coerced; validator owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise ScopeLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:  # pragma: no cover
        raise ScopeLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise ScopeLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except ScopeLoadError:
        raise
    except (yaml.YAMLError, ValueError) as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise ScopeLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise ScopeLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    edges = data.get("edges")
    if edges is None:
        edges = []
    if not isinstance(edges, list):
        raise ScopeLoadError(
            code="E_INVALID_EDGES",
            message="edges must be a list of edge objects",
            file=str(p),
            path="edges",
        )

    nodes = data.get("nodes")
    return {
        "schema_version": data.get("schema_version"),
        "nodes": nodes,
        "edges": [*edges, *_inline_edges(nodes, str(p))],
        "__file__": str(p),
    }


def _inline_edges(nodes: Any, file: str) -> list[dict[str, Any]]:
    """Expand per-node `depends_on: [ids]` shorthand into depends_on edges.

    Generated edge ids are `<from_id>->dep[<j>]`, which cannot collide with
    positional ids the validator assigns to edges written out in full.
    """
    if not isinstance(nodes, list):
        return []

    out: list[dict[str, Any]] = []
    for i, raw in enumerate(nodes):
        if not isinstance(raw, dict) or "depends_on" not in raw:
            continue
        deps = raw.get("depends_on")
        nid = raw.get("id")
        if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            raise ScopeLoadError(
                code="E_INVALID_DEPENDS_ON",
                message="depends_on must be a list of work item ids",
                file=file,
                path=f"nodes[{i}].depends_on",
            )
        if not isinstance(nid, str):
            # Validator reports the missing id.
            continue
        for j, dep in enumerate(deps):
            out.append({"id": f"{nid}->dep[{j}]", "from_id": nid, "to_id": dep, "kind": "depends_on"})
    return out
