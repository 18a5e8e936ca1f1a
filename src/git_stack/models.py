"""
Data models for the stacked branch tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class StackGraph:
    """Navigable view of the declared parent links between branches.

    Built once per invocation by ``build_stack_graph`` and never mutated.
    """

    parents: Dict[str, Optional[str]] = field(default_factory=dict)
    children: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    roots: FrozenSet[str] = frozenset()

    @property
    def branches(self) -> List[str]:
        """All branches known to the graph, sorted."""
        return sorted(self.children.keys())

    def children_of(self, branch: str) -> Tuple[str, ...]:
        return self.children.get(branch, ())


@dataclass(frozen=True)
class PlanFlags:
    """User options that shape a rebase plan."""

    onto: Optional[str] = None
    from_branch: Optional[str] = None
    current_only: bool = False


@dataclass(frozen=True)
class RebaseStep:
    """A single branch to move and the ref it lands on."""

    branch: str
    onto: str

    def __str__(self) -> str:
        return f"{self.branch} -> {self.onto}"


@dataclass(frozen=True)
class RebasePlan:
    """Ordered rebase steps plus the base ref the topmost ancestor moves onto."""

    base_ref: str
    steps: Tuple[RebaseStep, ...] = ()

    def describe(self) -> List[str]:
        """Return the plan as plain text lines."""
        lines = [f"Base: {self.base_ref}", "Plan:"]
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step}")
        return lines


class IssueKind(Enum):
    """Kinds of non-fatal inconsistencies found in stack metadata."""

    MISSING_PARENT = "missing_parent"
    CYCLE = "cycle"


@dataclass(frozen=True)
class GraphIssue:
    """A warning about the stack metadata of one branch."""

    kind: IssueKind
    branch: str
    detail: str

    def __str__(self) -> str:
        return f"{self.branch}: {self.detail}"


class ExecutionStatus(Enum):
    """How a plan execution stopped."""

    DRY_RUN = "dry_run"
    COMPLETED = "completed"
    PAUSED_ON_CONFLICT = "paused_on_conflict"
    BLOCKED_IN_PROGRESS = "blocked_in_progress"


@dataclass
class ExecutionResult:
    """Outcome of running a rebase plan."""

    status: ExecutionStatus
    completed_steps: List[RebaseStep] = field(default_factory=list)
    conflict_step: Optional[RebaseStep] = None

    @property
    def ok(self) -> bool:
        return self.status in (ExecutionStatus.DRY_RUN, ExecutionStatus.COMPLETED)


class StackError(Exception):
    """Base exception for stack operations."""

    pass


class PlanningError(StackError):
    """Exception raised when a rebase plan cannot be built from the request."""

    pass


class GitRepositoryError(StackError):
    """Exception raised for Git repository related errors."""

    pass


class ExecutionFailure(StackError):
    """Exception raised when a rebase step fails without leaving a rebase to resolve."""

    def __init__(self, step: RebaseStep, exit_status: int) -> None:
        self.step = step
        self.exit_status = exit_status
        super().__init__(
            f"Rebase failed for {step.branch} onto {step.onto} (exit code {exit_status})"
        )
