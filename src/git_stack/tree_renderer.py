"""
Text rendering of stack trees.

Renderers return lines instead of printing, so callers decide whether they
go to the console, a log, or a test assertion.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Mapping, Optional, Set, Tuple

TEE = "├─"
LAST = "└─"
PIPE = "│  "
INDENT = "   "
CURRENT_MARKER = " *"


def format_branch_line(name: str, current_branch: Optional[str] = None) -> str:
    marker = CURRENT_MARKER if name == current_branch else ""
    return f"{name}{marker}"


def render_forest(
    roots: Iterable[str],
    children: Mapping[str, Tuple[str, ...]],
    current_branch: Optional[str] = None,
) -> List[str]:
    """Render every root with its full subtree, blank line between roots."""
    lines: List[str] = []
    visited: Set[str] = set()
    for index, root in enumerate(sorted(roots)):
        if index > 0:
            lines.append("")
        _render_node(root, children, current_branch, lines, visited)
    return lines


def render_pruned(
    root: str,
    allowed: AbstractSet[str],
    children: Mapping[str, Tuple[str, ...]],
    current_branch: Optional[str] = None,
) -> List[str]:
    """Render ``root`` and only those descendants that are in ``allowed``.

    With ``allowed`` built from an ancestor path plus a branch's descendants,
    this shows the single chain from the root down to that branch followed
    by its subtree, hiding unrelated siblings.
    """
    lines: List[str] = []
    _render_node(root, children, current_branch, lines, set(), allowed)
    return lines


def _render_node(
    root: str,
    children: Mapping[str, Tuple[str, ...]],
    current_branch: Optional[str],
    lines: List[str],
    visited: Set[str],
    allowed: Optional[AbstractSet[str]] = None,
) -> None:
    if root in visited:
        return
    visited.add(root)
    lines.append(format_branch_line(root, current_branch))
    kids = _visible_children(root, children, visited, allowed)
    for i, child in enumerate(kids):
        _render_subtree(
            child, children, current_branch, "", i == len(kids) - 1, lines, visited, allowed
        )


def _render_subtree(
    branch: str,
    children: Mapping[str, Tuple[str, ...]],
    current_branch: Optional[str],
    prefix: str,
    is_last: bool,
    lines: List[str],
    visited: Set[str],
    allowed: Optional[AbstractSet[str]],
) -> None:
    if branch in visited:
        return
    visited.add(branch)
    connector = LAST if is_last else TEE
    lines.append(f"{prefix}{connector} {format_branch_line(branch, current_branch)}")

    kids = _visible_children(branch, children, visited, allowed)
    next_prefix = prefix + (INDENT if is_last else PIPE)
    for i, child in enumerate(kids):
        _render_subtree(
            child, children, current_branch, next_prefix, i == len(kids) - 1, lines, visited, allowed
        )


def _visible_children(
    branch: str,
    children: Mapping[str, Tuple[str, ...]],
    visited: Set[str],
    allowed: Optional[AbstractSet[str]],
) -> List[str]:
    # Filtered up front so the last visible child gets the closing glyph.
    return [
        child
        for child in children.get(branch, ())
        if child not in visited and (allowed is None or child in allowed)
    ]
