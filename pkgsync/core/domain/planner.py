"""
L1 Domain — Installation planning (pure).

Turns a diff into an install order: dependencies before dependents,
each package at most once, declared order as the tie-break.
No I/O, no subprocess.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pkgsync.core.domain.dag import DependencyGraph, build_dependency_graph
from pkgsync.core.errors import CircularDependency, PackageNotFound
from pkgsync.core.models.package import Mismatch, PackageRecord


def plan_installation(
    declared: Iterable[PackageRecord],
    mismatches: Iterable[Mismatch],
    graph: DependencyGraph | None = None,
) -> list[PackageRecord]:
    """Order the packages that need action so dependencies go first.

    Every declared package needing an update is visited in declared
    order. A visit walks the package's dependencies first, whether or
    not they need updating, so a satisfied dependency still places its
    own outdated dependencies ahead. Only packages needing an update
    are emitted, and no package is visited twice.

    Args:
        declared: Full declared collection (config order).
        mismatches: Diff result for the target org.
        graph: Pre-built dependency graph. Built (and validated) from
            ``declared`` when omitted.

    Returns:
        Records to install, in install order.

    Raises:
        UndefinedDependency: If the graph references an unknown package.
        CircularDependency: If a dependency cycle is reached.
    """
    records = list(declared)
    if graph is None:
        graph = build_dependency_graph(records)

    index = {record.namespace: record for record in records}
    needs_update = {m.namespace for m in mismatches if m.needs_update}

    in_progress: set[str] = set()
    visited: set[str] = set()
    plan: list[PackageRecord] = []

    def visit(ns: str) -> None:
        if ns in visited:
            return
        if ns in in_progress:
            raise CircularDependency(ns)

        in_progress.add(ns)
        for dep in graph.get(ns, []):
            visit(dep)
        in_progress.discard(ns)
        visited.add(ns)

        if ns in needs_update:
            plan.append(index[ns])

    for record in records:
        if record.namespace in needs_update:
            visit(record.namespace)

    return plan


def select_packages(
    declared: Iterable[PackageRecord],
    namespaces: Sequence[str],
) -> list[PackageRecord]:
    """Pick exactly the named packages, in the order given.

    Dependency order is not applied: the caller owns it.

    Raises:
        PackageNotFound: If a namespace is not in ``declared``.
    """
    index = {record.namespace: record for record in declared}
    selected: list[PackageRecord] = []
    seen: set[str] = set()

    for ns in namespaces:
        if ns in seen:
            continue
        record = index.get(ns)
        if record is None:
            raise PackageNotFound(ns)
        selected.append(record)
        seen.add(ns)

    return selected
