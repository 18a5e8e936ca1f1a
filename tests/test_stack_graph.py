"""
Tests for stack graph construction and queries.
"""

import pytest

from git_stack.models import IssueKind, StackGraph
from git_stack.stack_graph import (
    ancestor_path,
    build_stack_graph,
    collect_branch_and_descendants,
    diagnose_graph,
    find_root_for_branch,
    stack_selection,
)


class TestBuildStackGraph:
    """Test build_stack_graph."""

    def test_linear_chain(self):
        graph = build_stack_graph({"f1": "main", "f2": "f1", "f3": "f2"})

        assert graph.parents == {"f1": "main", "f2": "f1", "f3": "f2"}
        assert graph.children == {
            "main": ("f1",),
            "f1": ("f2",),
            "f2": ("f3",),
            "f3": (),
        }
        assert graph.roots == frozenset({"main"})

    def test_children_sorted(self):
        graph = build_stack_graph({"zeta": "main", "alpha": "main", "Mid": "main"})
        assert graph.children["main"] == ("Mid", "alpha", "zeta")

    def test_every_branch_has_children_entry(self):
        lookup = {"a": "root", "b": "a", "c": "a", "d": "c"}
        graph = build_stack_graph(lookup)

        for child, parent in lookup.items():
            assert child in graph.children
            assert parent in graph.children
        for kids in graph.children.values():
            for kid in kids:
                assert kid in graph.children

    def test_independent_roots(self):
        graph = build_stack_graph({"a": "main", "x": "develop"})
        assert graph.roots == frozenset({"main", "develop"})

    def test_empty_parent_is_root(self):
        graph = build_stack_graph({"solo": "", "child": "solo"})
        assert graph.parents["solo"] is None
        assert graph.roots == frozenset({"solo"})

    def test_empty_lookup(self):
        graph = build_stack_graph({})
        assert graph == StackGraph()
        assert graph.branches == []

    def test_cycle_does_not_raise(self):
        graph = build_stack_graph({"a": "b", "b": "a"})
        assert graph.roots == frozenset()
        assert graph.children["a"] == ("b",)
        assert graph.children["b"] == ("a",)

    def test_graph_is_immutable(self):
        graph = build_stack_graph({"f1": "main"})
        with pytest.raises(Exception):
            graph.roots = frozenset()


class TestFindRootForBranch:
    """Test find_root_for_branch."""

    def test_walks_to_implicit_root(self):
        parents = {"f1": "main", "f2": "f1", "f3": "f2"}
        assert find_root_for_branch("f3", parents) == "main"
        assert find_root_for_branch("f1", parents) == "main"

    def test_parent_only_branch_is_own_root(self):
        assert find_root_for_branch("main", {"f1": "main"}) == "main"

    def test_unknown_branch_has_no_root(self):
        assert find_root_for_branch("nope", {"f1": "main"}) is None
        assert find_root_for_branch("anything", {}) is None

    def test_branch_without_parent(self):
        assert find_root_for_branch("solo", {"solo": None, "c": "solo"}) == "solo"

    def test_cycle_returns_none(self):
        parents = {"a": "b", "b": "c", "c": "a"}
        assert find_root_for_branch("a", parents) is None

    def test_root_has_no_further_parent(self):
        parents = {"a": "root", "b": "a", "c": "a", "d": "c"}
        for branch in parents:
            root = find_root_for_branch(branch, parents)
            assert root is not None
            assert not parents.get(root)
            # root is reachable by following parent links
            cursor = branch
            seen = []
            while cursor != root:
                seen.append(cursor)
                cursor = parents[cursor]
            assert cursor == root


class TestCollectBranchAndDescendants:
    """Test collect_branch_and_descendants."""

    def test_includes_start_and_descendants(self):
        graph = build_stack_graph({"a": "root", "b": "a", "c": "a", "d": "c"})
        assert collect_branch_and_descendants("a", graph.children) == {"a", "b", "c", "d"}
        assert collect_branch_and_descendants("c", graph.children) == {"c", "d"}

    def test_leaf_and_unknown(self):
        graph = build_stack_graph({"a": "root"})
        assert collect_branch_and_descendants("a", graph.children) == {"a"}
        assert collect_branch_and_descendants("ghost", graph.children) == {"ghost"}

    def test_closed_under_children_and_excludes_ancestors(self):
        graph = build_stack_graph({"a": "root", "b": "a", "c": "a", "d": "c"})
        found = collect_branch_and_descendants("c", graph.children)
        for branch in found:
            for kid in graph.children[branch]:
                assert kid in found
        assert "a" not in found
        assert "root" not in found

    def test_terminates_on_cycle(self):
        children = {"a": ("b",), "b": ("c",), "c": ("a",)}
        assert collect_branch_and_descendants("a", children) == {"a", "b", "c"}


class TestAncestorPath:
    """Test ancestor_path."""

    def test_root_first(self):
        parents = {"f1": "main", "f2": "f1", "f3": "f2"}
        assert ancestor_path("f3", parents) == ["main", "f1", "f2", "f3"]

    def test_standalone(self):
        assert ancestor_path("standalone", {}) == ["standalone"]

    def test_cycle_guard(self):
        assert ancestor_path("a", {"a": "b", "b": "a"}) == ["b", "a"]


class TestStackSelection:
    """Test stack_selection."""

    def test_ancestors_plus_descendants(self):
        graph = build_stack_graph(
            {"a": "main", "b": "a", "c": "a", "d": "c", "other": "main"}
        )
        root, allowed = stack_selection("c", graph)
        assert root == "main"
        assert allowed == frozenset({"main", "a", "c", "d"})

    def test_root_always_included(self):
        graph = build_stack_graph({"a": "main"})
        root, allowed = stack_selection("main", graph)
        assert root == "main"
        assert allowed == frozenset({"main", "a"})

    def test_not_part_of_stack(self):
        graph = build_stack_graph({"a": "main"})
        assert stack_selection("unrelated", graph) is None


class TestDiagnoseGraph:
    """Test diagnose_graph."""

    def test_clean_graph(self):
        parents = {"f1": "main", "f2": "f1"}
        assert diagnose_graph(parents, known_branches=["main", "f1", "f2"]) == ()

    def test_missing_parent(self):
        parents = {"f1": "gone", "f2": "f1"}
        issues = diagnose_graph(parents, known_branches=["f1", "f2"])

        assert len(issues) == 1
        assert issues[0].kind == IssueKind.MISSING_PARENT
        assert issues[0].branch == "f1"
        assert "gone" in issues[0].detail

    def test_unknown_parent_without_branch_list_is_implicit_root(self):
        assert diagnose_graph({"f1": "main"}) == ()

    def test_cycle_flags_every_member(self):
        parents = {"a": "b", "b": "c", "c": "a", "tail": "a"}
        issues = diagnose_graph(parents)

        cyclic = {i.branch for i in issues if i.kind == IssueKind.CYCLE}
        assert cyclic == {"a", "b", "c"}
        assert all("loops" in i.detail for i in issues)

    def test_self_parent_is_cycle(self):
        issues = diagnose_graph({"a": "a"})
        assert [(i.kind, i.branch) for i in issues] == [(IssueKind.CYCLE, "a")]

    def test_results_sorted_and_mixed(self):
        parents = {"x": "y", "y": "x", "f": "missing"}
        issues = diagnose_graph(parents, known_branches=["x", "y", "f"])
        assert [(i.kind, i.branch) for i in issues] == [
            (IssueKind.CYCLE, "x"),
            (IssueKind.CYCLE, "y"),
            (IssueKind.MISSING_PARENT, "f"),
        ]
