"""
Tests for rebase planning.
"""

from unittest.mock import Mock

import pytest

from git_stack.models import PlanFlags, PlanningError, RebasePlan, RebaseStep
from git_stack.planner import plan_rebase
from git_stack.stack_graph import build_stack_graph


CHAIN = {"f1": "main", "f2": "f1", "f3": "f2"}


def guess_origin_main() -> str:
    return "origin/main"


def step_strings(plan: RebasePlan):
    return [f"{s.branch}->{s.onto}" for s in plan.steps]


class TestPlanRebase:
    """Test plan_rebase scenarios."""

    def test_linear_chain_ancestors_then_descendants(self):
        graph = build_stack_graph(CHAIN)
        plan = plan_rebase("f2", graph, PlanFlags(), guess_origin_main)

        assert plan.base_ref == "origin/main"
        assert step_strings(plan) == [
            "main->origin/main",
            "f1->main",
            "f2->f1",
            "f3->f2",
        ]

    def test_from_trims_earlier_ancestors(self):
        graph = build_stack_graph(CHAIN)
        plan = plan_rebase("f3", graph, PlanFlags(from_branch="f2"), guess_origin_main)

        assert step_strings(plan) == ["f2->origin/main", "f3->f2"]

    def test_from_not_an_ancestor_raises(self):
        graph = build_stack_graph({"f1": "main", "f2": "f1"})
        with pytest.raises(PlanningError) as ei:
            plan_rebase("f2", graph, PlanFlags(from_branch="zzz"), guess_origin_main)
        assert "zzz" in str(ei.value)

    def test_from_descendant_is_rejected(self):
        graph = build_stack_graph(CHAIN)
        with pytest.raises(PlanningError):
            plan_rebase("f1", graph, PlanFlags(from_branch="f3"), guess_origin_main)

    def test_from_root_keeps_full_path(self):
        graph = build_stack_graph(CHAIN)
        plan = plan_rebase("f2", graph, PlanFlags(from_branch="main"), guess_origin_main)
        assert step_strings(plan)[0] == "main->origin/main"
        assert len(plan.steps) == 4

    def test_current_only_skips_descendants(self):
        graph = build_stack_graph(CHAIN)
        plan = plan_rebase("f2", graph, PlanFlags(current_only=True), guess_origin_main)

        assert step_strings(plan) == ["main->origin/main", "f1->main", "f2->f1"]

    def test_standalone_branch(self):
        graph = build_stack_graph({})
        plan = plan_rebase("standalone", graph, PlanFlags(), guess_origin_main)

        assert plan.steps == (RebaseStep("standalone", "origin/main"),)

    def test_branching_tree_order(self):
        graph = build_stack_graph({"a": "root", "b": "a", "c": "a", "d": "c"})
        plan = plan_rebase("a", graph, PlanFlags(), lambda: "base")

        assert step_strings(plan) == [
            "root->base",
            "a->root",
            "b->a",
            "c->a",
            "d->c",
        ]
        branches = [s.branch for s in plan.steps]
        assert branches.index("b") < branches.index("c") < branches.index("d")

    def test_parent_before_child_in_wide_tree(self):
        lookup = {"a": "main", "z": "a", "b": "a", "z1": "z", "b1": "b", "b2": "b1"}
        graph = build_stack_graph(lookup)
        plan = plan_rebase("a", graph, PlanFlags(), guess_origin_main)

        position = {s.branch: i for i, s in enumerate(plan.steps)}
        for child, parent in lookup.items():
            assert position[parent] < position[child]

    def test_explicit_onto_skips_guess(self):
        guess = Mock(return_value="origin/main")
        graph = build_stack_graph(CHAIN)
        plan = plan_rebase("f1", graph, PlanFlags(onto="upstream/dev"), guess)

        guess.assert_not_called()
        assert plan.base_ref == "upstream/dev"
        assert plan.steps[0] == RebaseStep("main", "upstream/dev")

    def test_guess_called_without_onto(self):
        guess = Mock(return_value="trunk")
        plan = plan_rebase("f1", build_stack_graph(CHAIN), PlanFlags(), guess)

        guess.assert_called_once_with()
        assert plan.base_ref == "trunk"

    def test_planning_is_idempotent(self):
        graph = build_stack_graph({"a": "root", "b": "a", "c": "a", "d": "c"})
        first = plan_rebase("a", graph, PlanFlags(), guess_origin_main)
        second = plan_rebase("a", graph, PlanFlags(), guess_origin_main)

        assert first == second
        assert first.describe() == second.describe()

    def test_planning_does_not_mutate_graph(self):
        graph = build_stack_graph(CHAIN)
        before = (dict(graph.parents), dict(graph.children), graph.roots)
        plan_rebase("f2", graph, PlanFlags(), guess_origin_main)
        assert (dict(graph.parents), dict(graph.children), graph.roots) == before

    def test_cyclic_metadata_terminates_without_duplicates(self):
        graph = build_stack_graph({"a": "b", "b": "a"})
        plan = plan_rebase("a", graph, PlanFlags(), guess_origin_main)

        branches = [s.branch for s in plan.steps]
        assert branches == ["b", "a"]
        assert len(set(branches)) == len(branches)

    def test_describe(self):
        graph = build_stack_graph({"f1": "main"})
        plan = plan_rebase("f1", graph, PlanFlags(), guess_origin_main)

        assert plan.describe() == [
            "Base: origin/main",
            "Plan:",
            "  1. main -> origin/main",
            "  2. f1 -> main",
        ]
