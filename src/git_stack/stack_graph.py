"""
Stack graph construction and queries over declared branch parents.

The graph is derived from a flat ``{branch: parent}`` mapping read from
``stack.parent.<branch>`` metadata. Malformed metadata (unknown parents,
hand-edited cycles) never raises here: unknown parents become implicit
roots, and every walk carries a visited set so cycles terminate.
"""

from __future__ import annotations

import logging
from typing import (
    Collection,
    Dict,
    FrozenSet,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
)

from .models import GraphIssue, IssueKind, StackGraph


logger = logging.getLogger(__name__)

ParentsMap = Mapping[str, Optional[str]]
ChildrenMap = Mapping[str, Tuple[str, ...]]


def build_stack_graph(lookup: Mapping[str, Optional[str]]) -> StackGraph:
    """Build parents, sorted children and roots from a child -> parent mapping."""
    parents: Dict[str, Optional[str]] = {}
    children: Dict[str, Set[str]] = {}

    for child, parent in lookup.items():
        parent = parent or None
        parents[child] = parent
        children.setdefault(child, set())
        if parent:
            children.setdefault(parent, set())

    for child, parent in parents.items():
        if parent and parent in children:
            children[parent].add(child)

    roots = frozenset(
        branch
        for branch in children
        if not parents.get(branch) or parents[branch] not in children
    )

    graph = StackGraph(
        parents=parents,
        children={branch: tuple(sorted(kids)) for branch, kids in children.items()},
        roots=roots,
    )
    logger.debug(
        f"Built stack graph: {len(graph.children)} branches, roots={sorted(graph.roots)}"
    )
    return graph


def find_root_for_branch(branch: str, parents: ParentsMap) -> Optional[str]:
    """Return the top-most ancestor of ``branch``, or None.

    A branch that only appears as somebody's parent (e.g. ``main``) is its own
    root. Unknown branches and branches on a parent cycle have no root.
    """
    if branch not in parents:
        if any(parent == branch for parent in parents.values()):
            return branch
        return None

    visited: Set[str] = set()
    cursor: Optional[str] = branch
    while cursor is not None and cursor not in visited:
        visited.add(cursor)
        parent = parents.get(cursor)
        if not parent:
            return cursor
        if parent not in parents:
            return parent
        cursor = parent

    logger.debug(f"Parent chain of {branch} loops back to {cursor}; no root")
    return None


def collect_branch_and_descendants(start: str, children: ChildrenMap) -> Set[str]:
    """Return ``start`` plus every branch reachable through children links."""
    found: Set[str] = set()
    pending = [start]
    while pending:
        branch = pending.pop()
        if branch in found:
            continue
        found.add(branch)
        pending.extend(children.get(branch, ()))
    return found


def ancestor_path(branch: str, parents: ParentsMap) -> List[str]:
    """Return the branches from the top-most reachable ancestor down to ``branch``."""
    path: List[str] = []
    visited: Set[str] = set()
    cursor: Optional[str] = branch
    while cursor and cursor not in visited:
        path.append(cursor)
        visited.add(cursor)
        cursor = parents.get(cursor)
    path.reverse()
    return path


def stack_selection(
    branch: str, graph: StackGraph
) -> Optional[Tuple[str, FrozenSet[str]]]:
    """Return ``(root, allowed)`` for the stack containing ``branch``.

    ``allowed`` is the ancestor path from the root down to ``branch`` plus all
    descendants of ``branch``; the root is always included. Returns None when
    ``branch`` is not part of any stack.
    """
    root = find_root_for_branch(branch, graph.parents)
    if root is None:
        return None

    allowed = collect_branch_and_descendants(branch, graph.children)
    allowed.update(ancestor_path(branch, graph.parents))
    allowed.add(root)
    return root, frozenset(allowed)


def diagnose_graph(
    parents: ParentsMap, known_branches: Optional[Collection[str]] = None
) -> Tuple[GraphIssue, ...]:
    """Report missing parents and parent cycles without raising.

    Missing parents are only reported when ``known_branches`` is given, since
    otherwise an unknown parent is indistinguishable from an implicit root.
    """
    issues: Set[GraphIssue] = set()

    if known_branches is not None:
        known = set(known_branches) | set(parents)
        for branch, parent in parents.items():
            if parent and parent not in known:
                issues.add(
                    GraphIssue(
                        IssueKind.MISSING_PARENT,
                        branch,
                        f"parent '{parent}' does not exist",
                    )
                )

    finished: Set[str] = set()
    for start in sorted(parents):
        path: List[str] = []
        on_path: Set[str] = set()
        cursor: Optional[str] = start
        while cursor is not None and cursor in parents and cursor not in finished:
            if cursor in on_path:
                loop = path[path.index(cursor):]
                chain = " -> ".join(loop + [cursor])
                for member in loop:
                    issues.add(
                        GraphIssue(IssueKind.CYCLE, member, f"parent chain loops: {chain}")
                    )
                break
            path.append(cursor)
            on_path.add(cursor)
            cursor = parents.get(cursor) or None
        finished.update(path)

    ordered = tuple(sorted(issues, key=lambda i: (i.kind.value, i.branch)))
    for issue in ordered:
        logger.warning(f"Stack metadata issue: {issue}")
    return ordered
