from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from workgraph.core.errors import DanglingEdgeWarning
from workgraph.core.graph.edge_policy import DEFAULT_POLICY, EdgePolicy
from workgraph.core.model import DependencyEdge, WorkItemNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphIndex:
    """Dense, index-addressed view of one computation scope.

    Nodes are sorted by id, so a lower index always means a lower id. Adjacency
    lists hold indices, never node objects, and are sorted ascending.
    """

    ids: list[str]
    nodes: list[WorkItemNode]
    index_of: dict[str, int]
    deps: list[list[int]]  # deps[i]: what node i depends on
    dependents: list[list[int]]  # dependents[i]: what depends on node i
    edges: list[DependencyEdge]
    dangling: list[DanglingEdgeWarning]

    def __len__(self) -> int:
        return len(self.ids)


def build_index(
    nodes: Iterable[WorkItemNode],
    edges: Iterable[DependencyEdge],
    *,
    policy: EdgePolicy = DEFAULT_POLICY,
) -> GraphIndex:
    """Resolve ids to indices once and build adjacency for weight-bearing edges.

    Edges touching a node outside the scope are skipped and reported as
    DanglingEdgeWarning. Informational edges are dropped silently. Parallel
    edges between the same pair collapse to one.
    """
    by_id: dict[str, WorkItemNode] = {}
    for n in nodes:
        if n.id in by_id:
            raise ValueError(f"duplicate node id in scope: {n.id}")
        by_id[n.id] = n

    ids = sorted(by_id)
    index_of = {nid: i for i, nid in enumerate(ids)}
    deps: list[set[int]] = [set() for _ in ids]
    dependents: list[set[int]] = [set() for _ in ids]
    kept: list[DependencyEdge] = []
    dangling: list[DanglingEdgeWarning] = []

    for e in sorted(edges, key=lambda x: (x.from_id, x.to_id, x.kind, x.id)):
        missing = [x for x in (e.from_id, e.to_id) if x not in index_of]
        if missing:
            logger.warning("skipping dangling edge %s: unknown node(s) %s", e.id, ", ".join(missing))
            dangling.append(
                DanglingEdgeWarning(
                    code="W_DANGLING_EDGE",
                    message=f"edge references unknown node(s): {', '.join(missing)}",
                    path=f"edges[{e.id}]",
                    edge_id=e.id,
                )
            )
            continue
        if not policy.is_weight_bearing(e.kind):
            continue
        kept.append(e)
        deps[index_of[e.from_id]].add(index_of[e.to_id])
        dependents[index_of[e.to_id]].add(index_of[e.from_id])

    return GraphIndex(
        ids=ids,
        nodes=[by_id[nid] for nid in ids],
        index_of=index_of,
        deps=[sorted(s) for s in deps],
        dependents=[sorted(s) for s in dependents],
        edges=kept,
        dangling=dangling,
    )
