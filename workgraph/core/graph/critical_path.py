from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from workgraph.core.graph.edge_policy import DEFAULT_POLICY, EdgePolicy
from workgraph.core.graph.index import GraphIndex, build_index
from workgraph.core.graph.layout import topological_order
from workgraph.core.model import DependencyEdge, WorkItemNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathStep:
    id: str
    title: str
    estimate_minutes: Optional[int]


@dataclass(frozen=True)
class CriticalPath:
    node_ids: tuple[str, ...] = ()
    total_minutes: int = 0
    steps: tuple[PathStep, ...] = ()
    # Path nodes with no estimate at all, as opposed to an estimate of 0.
    unestimated_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_ids": list(self.node_ids),
            "total_minutes": self.total_minutes,
            "steps": [
                {"id": s.id, "title": s.title, "estimate_minutes": s.estimate_minutes}
                for s in self.steps
            ],
            "unestimated_ids": list(self.unestimated_ids),
        }


def critical_path_for(index: GraphIndex) -> CriticalPath:
    """Longest root-to-leaf path by summed estimate.

    The path ends at the leaf (a node nothing depends on) with the largest
    cumulative duration, so a trailing zero-estimate node is still included:
    for A(10) <- B(0) the path is [A, B]. Ties between dependencies and
    between end leaves go to the lower node id.
    """
    if not len(index):
        return CriticalPath()

    longest = [0] * len(index)
    via = [-1] * len(index)
    for i in topological_order(index):
        best = -1
        for d in index.deps[i]:
            if best == -1 or longest[d] > longest[best]:
                best = d
        via[i] = best
        longest[i] = index.nodes[i].weight + (longest[best] if best != -1 else 0)

    # Weights are non-negative, so the best leaf is also the global maximum.
    leaves = [i for i in range(len(index)) if not index.dependents[i]]
    end = max(leaves, key=lambda i: (longest[i], -i))

    chain: list[int] = []
    cur = end
    while cur != -1:
        chain.append(cur)
        cur = via[cur]
    chain.reverse()

    nodes = [index.nodes[i] for i in chain]
    return CriticalPath(
        node_ids=tuple(n.id for n in nodes),
        total_minutes=longest[end],
        steps=tuple(PathStep(id=n.id, title=n.title, estimate_minutes=n.estimate_minutes) for n in nodes),
        unestimated_ids=tuple(n.id for n in nodes if not n.has_estimate),
    )


def compute_critical_path(
    nodes: Iterable[WorkItemNode],
    edges: Iterable[DependencyEdge],
    *,
    policy: EdgePolicy = DEFAULT_POLICY,
) -> CriticalPath:
    index = build_index(nodes, edges, policy=policy)
    path = critical_path_for(index)
    logger.debug("critical path: %s (%d min)", " -> ".join(path.node_ids), path.total_minutes)
    return path
