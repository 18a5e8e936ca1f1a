"""
Execution of rebase plans against the working tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .models import (
    ExecutionFailure,
    ExecutionResult,
    ExecutionStatus,
    RebasePlan,
    RebaseStep,
)
from .reporter import NoOpReporter, PlanReporter


logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """Version-control callables the executor drives.

    ``rebase`` rebases the checked-out branch onto the given ref and returns
    the exit status; it must not raise on a non-zero status.
    """

    checkout: Callable[[str], None]
    current_branch: Callable[[], Optional[str]]
    rebase: Callable[[str], int]
    is_rebase_in_progress: Callable[[], bool]
    fetch: Optional[Callable[[], None]] = None


class PlanExecutor:
    """Runs rebase steps one at a time and stops cleanly on conflicts.

    Completed steps are never rolled back. A conflict pauses the run so the
    operator can resolve it with git and invoke the tool again, which replans
    from current metadata.
    """

    def __init__(self, context: ExecutionContext, reporter: PlanReporter = None) -> None:
        self.context = context
        self.reporter = reporter or NoOpReporter()

    def execute(self, plan: RebasePlan, dry_run: bool = False) -> ExecutionResult:
        """
        Execute ``plan``.

        Returns:
            ExecutionResult describing where the run stopped

        Raises:
            ExecutionFailure: a step failed without leaving a rebase in progress
        """
        self.reporter.show_plan(plan)
        for line in plan.describe():
            logger.info(line)

        if dry_run:
            logger.info("Dry run requested; no branches were changed")
            return ExecutionResult(status=ExecutionStatus.DRY_RUN)

        if self.context.fetch is not None:
            self.context.fetch()

        if self.context.is_rebase_in_progress():
            logger.warning("A rebase is already in progress; refusing to start another")
            self.reporter.blocked()
            return ExecutionResult(status=ExecutionStatus.BLOCKED_IN_PROGRESS)

        completed: List[RebaseStep] = []
        total = len(plan.steps)
        for index, step in enumerate(plan.steps, 1):
            self.reporter.step_started(index, total, step)
            logger.info(f"[{index}/{total}] Rebasing {step.branch} onto {step.onto}")

            if self.context.current_branch() != step.branch:
                self.context.checkout(step.branch)

            exit_status = self.context.rebase(step.onto)
            if exit_status == 0:
                completed.append(step)
                logger.info(f"Completed {step.branch}")
                self.reporter.step_completed(step)
                continue

            if self.context.is_rebase_in_progress():
                logger.warning(
                    f"Conflict while rebasing {step.branch} onto {step.onto}; "
                    f"{len(completed)} of {total} step(s) completed"
                )
                self.reporter.conflict(step)
                return ExecutionResult(
                    status=ExecutionStatus.PAUSED_ON_CONFLICT,
                    completed_steps=completed,
                    conflict_step=step,
                )

            logger.error(
                f"Rebase of {step.branch} onto {step.onto} exited with {exit_status}; "
                f"completed before failure: {[s.branch for s in completed]}"
            )
            raise ExecutionFailure(step, exit_status)

        logger.info(f"All {total} rebase steps completed")
        self.reporter.summary(total)
        return ExecutionResult(status=ExecutionStatus.COMPLETED, completed_steps=completed)
