"""
Tests for the dependency graph — validation, load order, cycles.
"""

import pytest

from pkgsync.core.domain.dag import (
    build_dependency_graph,
    resolve_load_order,
    transitive_dependencies,
)
from pkgsync.core.errors import CircularDependency, ConfigError, UndefinedDependency


class TestBuildDependencyGraph:
    def test_adjacency(self, make_record):
        graph = build_dependency_graph([
            make_record("a", depends=("b", "c")),
            make_record("b"),
            make_record("c", depends=("b",)),
        ])
        assert graph == {"a": ["b", "c"], "b": [], "c": ["b"]}

    def test_undefined_dependency(self, make_record):
        with pytest.raises(UndefinedDependency) as exc:
            build_dependency_graph([make_record("a", depends=("c",)), make_record("b")])
        assert exc.value.namespace == "a"
        assert exc.value.missing == "c"

    def test_cycles_not_checked(self, make_record):
        graph = build_dependency_graph([
            make_record("a", depends=("b",)),
            make_record("b", depends=("a",)),
        ])
        assert graph == {"a": ["b"], "b": ["a"]}

    def test_duplicate_namespace(self, make_record):
        with pytest.raises(ConfigError, match="Duplicate"):
            build_dependency_graph([make_record("a"), make_record("a", "2.0.0.0")])


class TestResolveLoadOrder:
    def _names(self, records):
        return [r.namespace for r in records]

    def test_dependencies_first(self, make_record):
        ordered = resolve_load_order([
            make_record("app", depends=("lib",)),
            make_record("lib", depends=("core",)),
            make_record("core"),
        ])
        assert self._names(ordered) == ["core", "lib", "app"]

    def test_independent_packages_keep_order(self, make_record):
        ordered = resolve_load_order([make_record("z"), make_record("a"), make_record("m")])
        assert self._names(ordered) == ["z", "a", "m"]

    def test_diamond_visits_once(self, make_record):
        ordered = resolve_load_order([
            make_record("a", depends=("b", "c")),
            make_record("b", depends=("d",)),
            make_record("c", depends=("d",)),
            make_record("d"),
        ])
        assert self._names(ordered) == ["d", "b", "c", "a"]

    def test_two_node_cycle(self, make_record):
        with pytest.raises(CircularDependency):
            resolve_load_order([
                make_record("a", depends=("b",)),
                make_record("b", depends=("a",)),
            ])

    def test_self_cycle(self, make_record):
        with pytest.raises(CircularDependency) as exc:
            resolve_load_order([make_record("a", depends=("a",))])
        assert exc.value.namespace == "a"

    def test_longer_cycle(self, make_record):
        with pytest.raises(CircularDependency):
            resolve_load_order([
                make_record("x"),
                make_record("a", depends=("b",)),
                make_record("b", depends=("c",)),
                make_record("c", depends=("a",)),
            ])

    def test_undefined_dependency(self, make_record):
        with pytest.raises(UndefinedDependency):
            resolve_load_order([make_record("a", depends=("c",))])


class TestTransitiveDependencies:
    def test_collects_all_levels(self):
        graph = {"a": ["b"], "b": ["c"], "c": [], "d": []}
        assert transitive_dependencies(graph, "a") == {"b", "c"}

    def test_leaf(self):
        assert transitive_dependencies({"a": []}, "a") == set()

    def test_unknown_namespace(self):
        assert transitive_dependencies({}, "nope") == set()
