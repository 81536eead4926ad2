from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import yaml

from workgraph.core.model import DependencyEdge


DEFAULT_INFORMATIONAL_KINDS: frozenset[str] = frozenset({"related"})


class PolicyConfigError(ValueError):
    pass


@dataclass(frozen=True)
class EdgePolicy:
    """Decides which dependency kinds carry weight.

    Any kind not listed as informational is weight-bearing, unknown kinds included.
    """

    informational_kinds: frozenset[str] = DEFAULT_INFORMATIONAL_KINDS

    @classmethod
    def uniform(cls) -> "EdgePolicy":
        return cls(informational_kinds=frozenset())

    def is_weight_bearing(self, kind: str) -> bool:
        return kind not in self.informational_kinds

    def filter(self, edges: Iterable[DependencyEdge]) -> list[DependencyEdge]:
        return [e for e in edges if self.is_weight_bearing(e.kind)]


DEFAULT_POLICY = EdgePolicy()


def load_policy_file(path: str | Path) -> EdgePolicy:
    """Load an edge policy from a YAML file.

    Format:
      informational_kinds: ["related", ...]

    An empty file yields the default policy.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return DEFAULT_POLICY
    if not isinstance(raw, dict):
        raise PolicyConfigError("policy file must be a mapping")

    unknown = sorted(str(k) for k in raw.keys() if k != "informational_kinds")
    if unknown:
        raise PolicyConfigError(f"unknown policy keys: {', '.join(unknown)}")

    kinds = raw.get("informational_kinds", [])
    if kinds is None:
        kinds = []
    if not isinstance(kinds, list):
        raise PolicyConfigError("informational_kinds must be a list of strings")

    out: set[str] = set()
    for item in kinds:
        if not isinstance(item, str) or not item.strip():
            raise PolicyConfigError("informational_kinds items must be non-empty strings")
        out.add(item.strip())
    return EdgePolicy(informational_kinds=frozenset(out))


def load_policy(policy_file: str | None) -> EdgePolicy:
    if not policy_file:
        return DEFAULT_POLICY
    return load_policy_file(policy_file)
