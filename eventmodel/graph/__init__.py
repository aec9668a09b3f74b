"""Dependency graph analysis: reachability, cycle detection, edge symmetry."""

from .dependency_graph import DependencyGraph, symmetry_check

__all__ = ["DependencyGraph", "symmetry_check"]
