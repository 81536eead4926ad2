from __future__ import annotations

import heapq
import logging
from typing import Iterable

from workgraph.core.errors import CyclicGraphError
from workgraph.core.graph.edge_policy import DEFAULT_POLICY, EdgePolicy
from workgraph.core.graph.index import GraphIndex, build_index
from workgraph.core.graph.validator import find_cycle
from workgraph.core.model import DependencyEdge, WorkItemNode

logger = logging.getLogger(__name__)


def topological_order(index: GraphIndex) -> list[int]:
    """Kahn's algorithm, dependencies first. Ready nodes are released lowest id first.

    Raises CyclicGraphError when some nodes can never become ready.
    """
    waiting = [len(d) for d in index.deps]
    ready = [i for i, count in enumerate(waiting) if count == 0]
    heapq.heapify(ready)

    order: list[int] = []
    while ready:
        i = heapq.heappop(ready)
        order.append(i)
        for j in index.dependents[i]:
            waiting[j] -= 1
            if waiting[j] == 0:
                heapq.heappush(ready, j)

    if len(order) != len(index):
        stuck = [i for i, count in enumerate(waiting) if count > 0]
        raise _cyclic_error(index, stuck)
    return order


def _cyclic_error(index: GraphIndex, stuck: list[int]) -> CyclicGraphError:
    adj = {index.ids[i]: [index.ids[d] for d in index.deps[i]] for i in stuck}
    cycle = find_cycle(adj)
    return CyclicGraphError(
        code="E_CYCLIC_GRAPH",
        message="dependency graph is not acyclic: " + " -> ".join(cycle),
        path="edges",
        node_ids=tuple(index.ids[i] for i in stuck),
        cycle=cycle,
    )


def levels_for(index: GraphIndex) -> dict[str, int]:
    level = [0] * len(index)
    for i in topological_order(index):
        if index.deps[i]:
            level[i] = 1 + max(level[d] for d in index.deps[i])
    return {nid: level[i] for i, nid in enumerate(index.ids)}


def assign_levels(
    nodes: Iterable[WorkItemNode],
    edges: Iterable[DependencyEdge],
    *,
    policy: EdgePolicy = DEFAULT_POLICY,
) -> dict[str, int]:
    """Map each node id to its longest hop distance from any root.

    Roots (nodes that depend on nothing in scope) are level 0.
    """
    index = build_index(nodes, edges, policy=policy)
    levels = levels_for(index)
    logger.debug("assigned levels to %d nodes (max level %d)", len(levels), max(levels.values(), default=0))
    return levels
