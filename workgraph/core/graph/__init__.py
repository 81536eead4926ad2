"""Dependency graph engine.

Cycle checks for the write path, plus layout levels and the critical path for
the graph and timeline views. Everything here is a pure function of the nodes
and edges passed in.
"""
from workgraph.core.graph.critical_path import CriticalPath, compute_critical_path
from workgraph.core.graph.edge_policy import DEFAULT_POLICY, EdgePolicy
from workgraph.core.graph.engine import GraphView, build_graph_view
from workgraph.core.graph.layout import assign_levels
from workgraph.core.graph.validator import (
    CycleReport,
    can_move_to_parent,
    detect_circular_dependency,
    would_create_cycle,
)

__all__ = [
    "DEFAULT_POLICY",
    "CriticalPath",
    "CycleReport",
    "EdgePolicy",
    "GraphView",
    "assign_levels",
    "build_graph_view",
    "can_move_to_parent",
    "compute_critical_path",
    "detect_circular_dependency",
    "would_create_cycle",
]
