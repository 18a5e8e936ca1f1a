"""
Rebase planning for a stack of branches.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, List, Set

from .models import PlanFlags, PlanningError, RebasePlan, RebaseStep, StackGraph
from .stack_graph import ancestor_path, find_root_for_branch


logger = logging.getLogger(__name__)


def plan_rebase(
    current: str,
    graph: StackGraph,
    flags: PlanFlags,
    guess_base: Callable[[], str],
) -> RebasePlan:
    """Plan a stack rebase anchored on ``current``.

    Ordering is the ancestor path root -> ... -> current, then the descendants
    of ``current`` parent-first with siblings alphabetical (skipped with
    ``current_only``). The first ancestor moves onto the base ref, every other
    ancestor onto the one before it, and every descendant onto its declared
    parent. Only ``guess_base`` may touch the outside world, and it is not
    called when ``flags.onto`` is given.

    Raises:
        PlanningError: ``flags.from_branch`` is not on the ancestor path.
    """
    base_ref = flags.onto or guess_base()

    root = find_root_for_branch(current, graph.parents)
    if root is None:
        logger.debug(f"{current} has no discoverable root; planning it as standalone")

    ancestors = ancestor_path(current, graph.parents)

    trimmed = ancestors
    if flags.from_branch:
        if flags.from_branch not in ancestors:
            raise PlanningError(
                f"--from {flags.from_branch} is not an ancestor of {current}"
            )
        trimmed = ancestors[ancestors.index(flags.from_branch):]

    steps: List[RebaseStep] = []
    for i, branch in enumerate(trimmed):
        onto = base_ref if i == 0 else trimmed[i - 1]
        steps.append(RebaseStep(branch=branch, onto=onto))

    if not flags.current_only:
        for branch in _descendant_order(current, graph, seen=set(ancestors)):
            parent = graph.parents.get(branch)
            if not parent or parent not in graph.children:
                logger.warning(
                    f"{branch} has no known parent; rebasing it directly onto {base_ref}"
                )
                parent = base_ref
            steps.append(RebaseStep(branch=branch, onto=parent))

    plan = RebasePlan(base_ref=base_ref, steps=tuple(steps))
    logger.info(f"Planned {len(plan.steps)} rebase step(s) for {current} onto {base_ref}")
    return plan


def _descendant_order(current: str, graph: StackGraph, seen: Set[str]) -> List[str]:
    # Breadth-first so every parent is visited before its children.
    order: List[str] = []
    seen.add(current)
    queue = deque([current])
    while queue:
        branch = queue.popleft()
        for child in graph.children_of(branch):
            if child in seen:
                continue
            seen.add(child)
            order.append(child)
            queue.append(child)
    return order
