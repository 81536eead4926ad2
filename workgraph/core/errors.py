from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GraphError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    @property
    def severity(self) -> str:
        return "warning" if self.code.startswith("W_") else "error"

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<scope>"
        return f"{loc}: {self.code}: {self.message}"


class ScopeLoadError(GraphError):
    pass


class ScopeValidationError(GraphError):
    pass


@dataclass(frozen=True)
class CycleDetected(GraphError):
    """A candidate edge or move would close a cycle. Recoverable: reject the write."""

    node_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class CyclicGraphError(GraphError):
    """The engine was handed a graph that is not acyclic."""

    node_ids: tuple[str, ...] = ()
    cycle: tuple[str, ...] = ()


@dataclass(frozen=True)
class DanglingEdgeWarning(GraphError):
    edge_id: Optional[str] = None
