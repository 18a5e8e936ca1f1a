"""
UI-agnostic reporting interface for rebase plan execution.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .models import RebasePlan, RebaseStep


class PlanReporter(ABC):
    """Abstract sink for progress messages emitted while a plan runs."""

    @abstractmethod
    def show_plan(self, plan: RebasePlan) -> None:
        """Display the resolved base ref and the ordered steps."""
        pass

    @abstractmethod
    def step_started(self, index: int, total: int, step: RebaseStep) -> None:
        """
        Announce that a step is about to run.

        Args:
            index: 1-based position of the step in the plan
            total: Number of steps in the plan
            step: The step being run
        """
        pass

    @abstractmethod
    def step_completed(self, step: RebaseStep) -> None:
        pass

    @abstractmethod
    def conflict(self, step: RebaseStep) -> None:
        """Explain that ``step`` stopped on conflicts and how to resume."""
        pass

    @abstractmethod
    def blocked(self) -> None:
        """Explain that an unresolved rebase must be finished first."""
        pass

    @abstractmethod
    def summary(self, total: int) -> None:
        pass


class NoOpReporter(PlanReporter):
    """Reporter that discards every message."""

    def show_plan(self, plan: RebasePlan) -> None:
        pass

    def step_started(self, index: int, total: int, step: RebaseStep) -> None:
        pass

    def step_completed(self, step: RebaseStep) -> None:
        pass

    def conflict(self, step: RebaseStep) -> None:
        pass

    def blocked(self) -> None:
        pass

    def summary(self, total: int) -> None:
        pass


class ConsoleReporter(PlanReporter):
    """Reporter that prints to a rich console."""

    def __init__(self, console: Console = None):
        self.console = console or Console()

    def show_plan(self, plan: RebasePlan) -> None:
        self.console.print(f"[bold]Base:[/bold] {escape(plan.base_ref)}", highlight=False)
        self.console.print("[bold]Plan:[/bold]")
        for i, step in enumerate(plan.steps, 1):
            self.console.print(f"  {i}. {escape(str(step))}", highlight=False)

    def step_started(self, index: int, total: int, step: RebaseStep) -> None:
        self.console.print(
            f"\n\\[{index}/{total}] [bold]{escape(step.branch)}[/bold] -> {escape(step.onto)}",
            highlight=False,
        )

    def step_completed(self, step: RebaseStep) -> None:
        self.console.print(f"Completed {step.branch}", style="green", highlight=False, markup=False)

    def conflict(self, step: RebaseStep) -> None:
        self.console.print(
            f"\nConflict while rebasing {step.branch} onto {step.onto}",
            style="bold red",
            highlight=False,
            markup=False,
        )
        instructions = [
            "1. Resolve the conflicts reported by `git status`",
            "2. Stage your changes: `git add <resolved-files>`",
            "3. Continue the rebase: `git rebase --continue`",
            "4. After that, rerun: `git stack rebase`",
        ]
        self.console.print(
            Panel(
                "\n".join(instructions),
                title="Instructions",
                title_align="left",
                border_style="blue",
            )
        )

    def blocked(self) -> None:
        self.console.print(
            "Active git rebase detected. Complete it (git rebase --continue/--abort) "
            "before running git stack rebase.",
            style="bold yellow",
        )

    def summary(self, total: int) -> None:
        self.console.print(f"\nAll {total} rebase steps completed.", style="bold green")
