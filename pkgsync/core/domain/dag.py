"""
L1 Domain — Package dependency graph (pure).

Functions for building the namespace → dependencies map,
checking that every referenced dependency exists, and ordering
packages so dependencies come first (with cycle detection).
No I/O, no subprocess.
"""

from __future__ import annotations

from collections.abc import Iterable

from pkgsync.core.errors import CircularDependency, ConfigError, UndefinedDependency
from pkgsync.core.models.package import PackageRecord

DependencyGraph = dict[str, list[str]]

# DFS marks
_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


def _index_records(records: Iterable[PackageRecord]) -> dict[str, PackageRecord]:
    """Map namespace → record, rejecting duplicate namespaces."""
    index: dict[str, PackageRecord] = {}
    for record in records:
        if record.namespace in index:
            raise ConfigError(f"Duplicate package namespace: {record.namespace}")
        index[record.namespace] = record
    return index


def build_dependency_graph(records: Iterable[PackageRecord]) -> DependencyGraph:
    """Build the dependency map and validate every reference.

    Only existence is checked here; install order is derived by the
    planner, which does its own cycle check.

    Args:
        records: Packages with unique namespaces.

    Returns:
        ``{namespace: [dependency namespaces]}`` in declared order.

    Raises:
        UndefinedDependency: On the first dependency that is not a key.
    """
    index = _index_records(records)
    graph: DependencyGraph = {
        ns: list(record.depends_on_packages) for ns, record in index.items()
    }

    for ns, deps in graph.items():
        for dep in deps:
            if dep not in graph:
                raise UndefinedDependency(ns, dep)

    return graph


def resolve_load_order(records: Iterable[PackageRecord]) -> list[PackageRecord]:
    """Order records so every package follows its dependencies.

    Depth-first with three-state marking, seeded in declared order,
    so unrelated packages keep their relative position.

    Raises:
        UndefinedDependency: If a dependency is not declared.
        CircularDependency: If a package is reached while in progress.
    """
    index = _index_records(records)
    graph = build_dependency_graph(index.values())
    marks = {ns: _UNVISITED for ns in graph}
    ordered: list[PackageRecord] = []

    def visit(ns: str) -> None:
        if marks[ns] == _DONE:
            return
        if marks[ns] == _IN_PROGRESS:
            raise CircularDependency(ns)

        marks[ns] = _IN_PROGRESS
        for dep in graph[ns]:
            visit(dep)
        marks[ns] = _DONE
        ordered.append(index[ns])

    for ns in graph:
        visit(ns)

    return ordered


def transitive_dependencies(graph: DependencyGraph, namespace: str) -> set[str]:
    """All namespaces ``namespace`` depends on, directly or indirectly."""
    seen: set[str] = set()
    stack = list(graph.get(namespace, []))
    while stack:
        dep = stack.pop()
        if dep in seen:
            continue
        seen.add(dep)
        stack.extend(graph.get(dep, []))
    return seen
