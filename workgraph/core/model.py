from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional


Kind = Literal["project", "initiative", "epic", "issue"]
Status = Literal["not_started", "in_progress", "blocked", "done", "cancelled"]

# Lower rank contains higher rank.
KIND_RANK: dict[str, int] = {"project": 0, "initiative": 1, "epic": 2, "issue": 3}
STATUS_ALIASES: dict[str, str] = {"open": "not_started", "closed": "cancelled"}


@dataclass(frozen=True)
class WorkItemNode:
    id: str
    kind: Kind
    status: Status = "not_started"
    estimate_minutes: Optional[int] = None
    parent_id: Optional[str] = None
    title: str = ""
    not_before: Optional[datetime] = None
    not_after: Optional[datetime] = None

    @property
    def has_estimate(self) -> bool:
        return self.estimate_minutes is not None

    @property
    def weight(self) -> int:
        return self.estimate_minutes or 0


@dataclass(frozen=True)
class DependencyEdge:
    id: str
    from_id: str  # the dependent item
    to_id: str  # the item it depends on
    kind: str = "depends_on"


@dataclass(frozen=True)
class WorkScope:
    schema_version: str
    nodes: list[WorkItemNode]
    edges: list[DependencyEdge]
    nodes_by_id: dict[str, WorkItemNode] = field(default_factory=dict)
