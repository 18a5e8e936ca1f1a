"""
git-stack - stacked branch management on top of Git.

This package keeps a graph of branches with declared parents and restacks
them in dependency order, pausing cleanly when a rebase hits conflicts.
"""

__version__ = "0.1.0"

from .models import (
    ExecutionFailure,
    ExecutionResult,
    ExecutionStatus,
    GitRepositoryError,
    GraphIssue,
    IssueKind,
    PlanFlags,
    PlanningError,
    RebasePlan,
    RebaseStep,
    StackError,
    StackGraph,
)
from .stack_graph import (
    ancestor_path,
    build_stack_graph,
    collect_branch_and_descendants,
    diagnose_graph,
    find_root_for_branch,
    stack_selection,
)
from .planner import plan_rebase
from .executor import ExecutionContext, PlanExecutor
from .tree_renderer import render_forest, render_pruned
from .git_manager import GitManager

__all__ = [
    "StackGraph",
    "PlanFlags",
    "RebaseStep",
    "RebasePlan",
    "GraphIssue",
    "IssueKind",
    "ExecutionStatus",
    "ExecutionResult",
    "StackError",
    "PlanningError",
    "ExecutionFailure",
    "GitRepositoryError",
    "build_stack_graph",
    "find_root_for_branch",
    "collect_branch_and_descendants",
    "ancestor_path",
    "stack_selection",
    "diagnose_graph",
    "plan_rebase",
    "PlanExecutor",
    "ExecutionContext",
    "render_forest",
    "render_pruned",
    "GitManager",
]
