from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from workgraph.core.errors import CycleDetected, GraphError, ScopeValidationError
from workgraph.core.graph.edge_policy import DEFAULT_POLICY, EdgePolicy
from workgraph.core.model import KIND_RANK, DependencyEdge, WorkItemNode

logger = logging.getLogger(__name__)


# Write-path checks. Nothing here raises for a would-be cycle; callers get a
# boolean or a list of error envelopes and decide how to reject the write.


@dataclass(frozen=True)
class CycleReport:
    has_cycle: bool
    cycle_node_ids: tuple[str, ...] = ()


def _adjacency(edges: Iterable[DependencyEdge], policy: EdgePolicy) -> dict[str, list[str]]:
    adj: dict[str, set[str]] = defaultdict(set)
    for e in policy.filter(edges):
        adj[e.from_id].add(e.to_id)
        adj.setdefault(e.to_id, set())
    return {nid: sorted(targets) for nid, targets in adj.items()}


def _find_path(adj: Mapping[str, Sequence[str]], start: str, goal: str) -> Optional[list[str]]:
    """BFS along depends-on edges. Returns [start, ..., goal] or None."""
    parent: dict[str, Optional[str]] = {start: None}
    q: deque[str] = deque([start])
    while q:
        cur = q.popleft()
        if cur == goal:
            path: list[str] = []
            node: Optional[str] = cur
            while node is not None:
                path.append(node)
                node = parent[node]
            return list(reversed(path))
        for nxt in adj.get(cur, ()):
            if nxt not in parent:
                parent[nxt] = cur
                q.append(nxt)
    return None


def find_cycle(adj: Mapping[str, Sequence[str]]) -> tuple[str, ...]:
    """Three-color DFS. Returns the first cycle found (closed: first == last) or ()."""
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {}

    for start in sorted(adj):
        if state.get(start, WHITE) != WHITE:
            continue
        state[start] = GRAY
        stack: list[str] = [start]
        pending = [iter(adj.get(start, ()))]
        while stack:
            nxt = next(pending[-1], None)
            if nxt is None:
                state[stack.pop()] = BLACK
                pending.pop()
                continue
            s = state.get(nxt, WHITE)
            if s == GRAY:
                return tuple(stack[stack.index(nxt):] + [nxt])
            if s == WHITE:
                state[nxt] = GRAY
                stack.append(nxt)
                pending.append(iter(adj.get(nxt, ())))
    return ()


def would_create_cycle(
    existing_edges: Iterable[DependencyEdge],
    candidate: DependencyEdge,
    *,
    policy: EdgePolicy = DEFAULT_POLICY,
) -> bool:
    """True when committing `candidate` would close a dependency cycle."""
    return bool(_closing_cycle(existing_edges, candidate, policy))


def _closing_cycle(
    existing_edges: Iterable[DependencyEdge],
    candidate: DependencyEdge,
    policy: EdgePolicy,
) -> tuple[str, ...]:
    if not policy.is_weight_bearing(candidate.kind):
        return ()
    if candidate.from_id == candidate.to_id:
        return (candidate.from_id, candidate.to_id)
    path = _find_path(_adjacency(existing_edges, policy), candidate.to_id, candidate.from_id)
    if path is None:
        return ()
    return (candidate.from_id, *path)


def detect_circular_dependency(
    edges: Iterable[DependencyEdge],
    *,
    policy: EdgePolicy = DEFAULT_POLICY,
) -> CycleReport:
    """Check a whole edge set, e.g. an imported scope, for a dependency cycle."""
    cycle = find_cycle(_adjacency(edges, policy))
    if cycle:
        logger.debug("dependency cycle found: %s", " -> ".join(cycle))
    return CycleReport(has_cycle=bool(cycle), cycle_node_ids=cycle)


def check_new_dependency(
    existing_edges: Iterable[DependencyEdge],
    candidate: DependencyEdge,
    *,
    policy: EdgePolicy = DEFAULT_POLICY,
) -> list[GraphError]:
    """Gate for inserting one dependency edge. An empty list means it may be committed."""
    existing = list(existing_edges)
    loc = f"{candidate.from_id}->{candidate.to_id}"

    if candidate.from_id == candidate.to_id:
        return [
            CycleDetected(
                code="E_SELF_DEPENDENCY",
                message=f"work item cannot depend on itself: {candidate.from_id}",
                path=loc,
                node_ids=(candidate.from_id, candidate.to_id),
            )
        ]

    for e in existing:
        if (e.from_id, e.to_id, e.kind) == (candidate.from_id, candidate.to_id, candidate.kind):
            return [
                ScopeValidationError(
                    code="E_DUPLICATE_DEPENDENCY",
                    message=f"dependency already exists (id={e.id}, kind={e.kind})",
                    path=loc,
                )
            ]

    cycle = _closing_cycle(existing, candidate, policy)
    if cycle:
        return [
            CycleDetected(
                code="E_DEPENDENCY_CYCLE",
                message="dependency would create a cycle: " + " -> ".join(cycle),
                path=loc,
                node_ids=cycle,
            )
        ]
    return []


def get_valid_parent_kinds(kind: str) -> list[str]:
    rank = KIND_RANK.get(kind)
    if rank is None:
        return []
    return [k for k, r in sorted(KIND_RANK.items(), key=lambda kv: kv[1]) if r < rank]


def hierarchy_edges_from_nodes(nodes: Iterable[WorkItemNode]) -> list[tuple[str, str]]:
    return [(n.parent_id, n.id) for n in nodes if n.parent_id]


def _descendants(item_id: str, hierarchy_edges: Iterable[tuple[str, str]]) -> set[str]:
    children: dict[str, list[str]] = defaultdict(list)
    for parent, child in hierarchy_edges:
        children[parent].append(child)

    seen: set[str] = set()
    q: deque[str] = deque(children.get(item_id, []))
    while q:
        cur = q.popleft()
        if cur in seen:
            continue
        seen.add(cur)
        q.extend(children.get(cur, []))
    return seen


def _can_contain(parent_kind: Optional[str], child_kind: Optional[str]) -> bool:
    if parent_kind is None or child_kind is None:
        return True
    return parent_kind in get_valid_parent_kinds(child_kind)


def can_move_to_parent(
    item_id: str,
    candidate_parent_id: Optional[str],
    hierarchy_edges: Iterable[tuple[str, str]],
    *,
    kinds: Optional[Mapping[str, str]] = None,
) -> bool:
    """Whether `item_id` may be re-parented under `candidate_parent_id`.

    `hierarchy_edges` are (parent_id, child_id) pairs. Kind containment is only
    checked when `kinds` is given. None as the candidate means top level.
    """
    if candidate_parent_id is None:
        return True
    if candidate_parent_id == item_id:
        return False
    if candidate_parent_id in _descendants(item_id, hierarchy_edges):
        return False
    if kinds is not None and not _can_contain(kinds.get(candidate_parent_id), kinds.get(item_id)):
        return False
    return True


def check_dependency_endpoints(
    candidate: DependencyEdge,
    nodes: Iterable[WorkItemNode],
) -> list[GraphError]:
    """Both ends of a new dependency must be work items in the scope."""
    known = {n.id for n in nodes}
    loc = f"{candidate.from_id}->{candidate.to_id}"
    missing = sorted({x for x in (candidate.from_id, candidate.to_id) if x not in known})
    return [
        ScopeValidationError(
            code="E_UNKNOWN_ITEM",
            message=f"unknown work item: {nid}",
            path=loc,
        )
        for nid in missing
    ]


def check_move(
    item_id: str,
    candidate_parent_id: Optional[str],
    nodes: Iterable[WorkItemNode],
) -> list[GraphError]:
    """Gate for a re-parenting write. An empty list means the move is allowed."""
    nodes_by_id = {n.id: n for n in nodes}
    loc = f"{item_id}->{candidate_parent_id or '<top>'}"

    if item_id not in nodes_by_id:
        return [
            ScopeValidationError(
                code="E_UNKNOWN_ITEM",
                message=f"unknown work item: {item_id}",
                path=loc,
            )
        ]
    if candidate_parent_id is None:
        return []
    if candidate_parent_id not in nodes_by_id:
        return [
            ScopeValidationError(
                code="E_UNKNOWN_PARENT",
                message=f"unknown parent: {candidate_parent_id}",
                path=loc,
            )
        ]

    edges = hierarchy_edges_from_nodes(nodes_by_id.values())
    if candidate_parent_id == item_id or candidate_parent_id in _descendants(item_id, edges):
        return [
            CycleDetected(
                code="E_HIERARCHY_CYCLE",
                message=f"cannot move {item_id} under itself or one of its descendants ({candidate_parent_id})",
                path=loc,
                node_ids=(item_id, candidate_parent_id),
            )
        ]

    item, parent = nodes_by_id[item_id], nodes_by_id[candidate_parent_id]
    if not _can_contain(parent.kind, item.kind):
        allowed = get_valid_parent_kinds(item.kind)
        return [
            ScopeValidationError(
                code="E_INVALID_CONTAINMENT",
                message=(
                    f"{parent.kind} cannot contain {item.kind}"
                    f" (valid parents: {', '.join(allowed) if allowed else 'none'})"
                ),
                path=loc,
            )
        ]
    return []
