from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from workgraph.core.errors import CyclicGraphError, DanglingEdgeWarning
from workgraph.core.graph.critical_path import CriticalPath, critical_path_for
from workgraph.core.graph.edge_policy import DEFAULT_POLICY, EdgePolicy
from workgraph.core.graph.index import build_index
from workgraph.core.graph.layout import levels_for
from workgraph.core.model import DependencyEdge, WorkItemNode, WorkScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeveledNode:
    node: WorkItemNode
    level: Optional[int]


@dataclass(frozen=True)
class GraphView:
    """What the graph and timeline views render."""

    nodes: list[LeveledNode]
    edges: list[DependencyEdge]
    critical_path: CriticalPath = field(default_factory=CriticalPath)
    dangling: list[DanglingEdgeWarning] = field(default_factory=list)
    error: Optional[CyclicGraphError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def levels(self) -> dict[str, Optional[int]]:
        return {ln.node.id: ln.level for ln in self.nodes}

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "nodes": [
                {
                    "id": ln.node.id,
                    "title": ln.node.title,
                    "kind": ln.node.kind,
                    "status": ln.node.status,
                    "estimate_minutes": ln.node.estimate_minutes,
                    "parent_id": ln.node.parent_id,
                    "level": ln.level,
                }
                for ln in self.nodes
            ],
            "edges": [
                {"id": e.id, "from_id": e.from_id, "to_id": e.to_id, "kind": e.kind}
                for e in self.edges
            ],
            "critical_path": self.critical_path.to_dict(),
            "dangling_edge_ids": [w.edge_id for w in self.dangling],
            "error": None
            if self.error is None
            else {
                "code": self.error.code,
                "message": self.error.message,
                "node_ids": list(self.error.node_ids),
                "cycle": list(self.error.cycle),
            },
        }


def build_graph_view(scope: WorkScope, *, policy: EdgePolicy = DEFAULT_POLICY) -> GraphView:
    """Levels + critical path for one scope.

    A cyclic graph is an upstream invariant violation: it is logged and returned
    as `error`, with every node kept and no levels assigned.
    """
    index = build_index(scope.nodes, scope.edges, policy=policy)

    try:
        levels = levels_for(index)
        path = critical_path_for(index)
    except CyclicGraphError as e:
        logger.error("cannot lay out cyclic dependency graph: %s", e)
        return GraphView(
            nodes=[LeveledNode(node=n, level=None) for n in index.nodes],
            edges=index.edges,
            dangling=index.dangling,
            error=e,
        )

    leveled = sorted(
        (LeveledNode(node=n, level=levels[n.id]) for n in index.nodes),
        key=lambda ln: (ln.level, ln.node.id),
    )
    logger.debug(
        "graph view: %d nodes, %d edges, %d dangling, critical path %d min",
        len(leveled),
        len(index.edges),
        len(index.dangling),
        path.total_minutes,
    )
    return GraphView(
        nodes=leveled,
        edges=index.edges,
        critical_path=path,
        dangling=index.dangling,
    )
