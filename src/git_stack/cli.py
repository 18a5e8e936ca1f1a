"""
Command-line interface for the stacked branch tool.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__ as PACKAGE_VERSION
from .executor import PlanExecutor
from .git_manager import GitManager, check_stack_parent_key
from .models import ExecutionStatus, PlanFlags, StackError
from .planner import plan_rebase
from .reporter import ConsoleReporter
from .stack_graph import build_stack_graph, diagnose_graph, stack_selection
from .tree_renderer import render_forest, render_pruned


console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"git-stack {PACKAGE_VERSION}")
    ctx.exit()


def _default_log_path() -> Path:
    """Determine default log file path ($GIT_STACK_LOG or ~/.git-stack/git-stack.log)."""
    env_path = os.environ.get("GIT_STACK_LOG")
    if env_path:
        p = Path(env_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    base = Path.home() / ".git-stack"
    base.mkdir(parents=True, exist_ok=True)
    return base / "git-stack.log"


def setup_logging(
    verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None
) -> Path:
    """Set up file logging plus optional console logging.

    - Per-run log file: <stem>-YYYYMMDD_HHMMSS.log
    - Aggregate log: <stem>.log (rotated)
    - Console logging only with --verbose or --log-level

    Returns the aggregate log path.
    """
    aggregate_path = Path(log_file) if log_file else _default_log_path()
    base_dir = aggregate_path.parent
    base_stem = aggregate_path.stem or "git-stack"
    base_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    per_run_path = base_dir / f"{base_stem}-{timestamp}.log"

    root = logging.getLogger()
    # Avoid duplicate handlers across repeated invocations (tests)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root.setLevel(logging.DEBUG)

    file_fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    run_file_handler = logging.FileHandler(str(per_run_path), encoding="utf-8")
    run_file_handler.setLevel(logging.DEBUG)
    run_file_handler.setFormatter(file_fmt)
    root.addHandler(run_file_handler)

    aggregate_handler = RotatingFileHandler(
        str(aggregate_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    aggregate_handler.setLevel(logging.DEBUG)
    aggregate_handler.setFormatter(file_fmt)
    root.addHandler(aggregate_handler)

    if verbose or console_level:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        console_handler = RichHandler(console=err_console, rich_tracebacks=True)
        console_handler.setLevel(level_map.get((console_level or "info").lower(), logging.INFO))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    return aggregate_path


def _fail(message: str) -> NoReturn:
    err_console.print(f"Error: {message}", style="bold red", markup=False, highlight=False)
    sys.exit(1)


def _git(ctx: click.Context) -> GitManager:
    return GitManager(ctx.obj.get("repo_path"))


def _print_lines(lines) -> None:
    for line in lines:
        console.print(line, markup=False, highlight=False)


def _print_issues(issues) -> None:
    for issue in issues:
        err_console.print(f"Warning: {issue}", style="yellow", markup=False, highlight=False)


@click.group()
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--repo-path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to repository (defaults to current directory)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_level: Optional[str], repo_path: Optional[Path]) -> None:
    """git-stack - manage stacked branches and restack them in dependency order."""
    log_path = setup_logging(verbose, console_level=log_level)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["log_path"] = log_path
    ctx.obj["repo_path"] = repo_path.resolve() if isinstance(repo_path, Path) else None
    logger.debug(f"CLI init: cwd={Path.cwd()} repo_path={ctx.obj['repo_path']}")


@cli.command()
@click.argument("name")
@click.argument("parent", required=False)
@click.option("--dry-run", "-n", is_flag=True, help="Print what would be done without making any changes")
@click.pass_context
def add(ctx: click.Context, name: str, parent: Optional[str], dry_run: bool) -> None:
    """
    Create branch NAME on top of PARENT (default: current branch).

    Example: git stack add part-2
    """
    try:
        check_stack_parent_key(name)
        gm = _git(ctx)
        exists = gm.branch_exists(name)
        recorded_parent = gm.get_stack_parent(name)
        parent = parent or gm.get_current_branch()

        if not parent:
            _fail("Could not determine parent branch. Please specify it explicitly.")

        if exists and recorded_parent and recorded_parent != parent:
            _fail(
                f'Branch "{name}" already exists and is part of a different stack. '
                f'Try "git switch {name}" instead.'
            )

        if dry_run:
            if not exists:
                console.print(f'Would create branch "{name}".', highlight=False)
            console.print(f'Would set stack parent of "{name}" to "{parent}".', highlight=False)
            console.print(f'Would switch to branch "{name}".', highlight=False)
            return

        # Parent is recorded before the branch exists; undone if creation fails
        gm.set_stack_parent(name, parent)
        if not exists:
            try:
                gm.create_branch(name, parent)
            except StackError:
                if recorded_parent:
                    gm.set_stack_parent(name, recorded_parent)
                else:
                    gm.unset_stack_parent(name)
                raise

        gm.switch_branch(name)
        console.print(f"Created {name} on top of {parent}", style="green", highlight=False)
    except StackError as e:
        logger.debug("add failed", exc_info=True)
        _fail(str(e))


@cli.command("list")
@click.option("--all", "-a", "show_all", is_flag=True, help="List all stacks")
@click.argument("branch", required=False)
@click.pass_context
def list_cmd(ctx: click.Context, show_all: bool, branch: Optional[str]) -> None:
    """List the stack containing BRANCH (default: current branch)."""
    try:
        if show_all and branch:
            _fail("Cannot use --all and specify a branch at the same time.")

        gm = _git(ctx)
        branch = branch or gm.get_current_branch()
        graph = build_stack_graph(gm.get_stack_lookup())
        issues = diagnose_graph(graph.parents, gm.list_known_refs())

        if show_all:
            if not graph.roots:
                console.print("No stacks found.")
            _print_lines(render_forest(graph.roots, graph.children, branch))
        else:
            if not branch:
                _fail("Could not determine current branch. Please specify one.")
            selection = stack_selection(branch, graph)
            if selection is None:
                _print_issues(issues)
                _fail(f'Branch "{branch}" is not part of a stack.')
            root, allowed = selection
            _print_lines(render_pruned(root, allowed, graph.children, branch))

        _print_issues(issues)
    except StackError as e:
        logger.debug("list failed", exc_info=True)
        _fail(str(e))


@cli.command()
@click.option("--onto", help="Explicit base ref to rebase onto (overrides guess)")
@click.option("--from", "from_branch", help="Ancestor at which to start (trim earlier ancestors)")
@click.option("--current-only", is_flag=True, help="Only rebase the ancestor path (no descendants)")
@click.option("--dry-run", "-n", is_flag=True, help="Print the rebase plan without executing")
@click.pass_context
def rebase(
    ctx: click.Context,
    onto: Optional[str],
    from_branch: Optional[str],
    current_only: bool,
    dry_run: bool,
) -> None:
    """
    Rebase the current stack: ancestors (root to current), then descendants.

    Example: git stack rebase --onto origin/main
    """
    try:
        gm = _git(ctx)
        current = gm.get_current_branch()
        if not current:
            _fail("Could not determine current branch (detached HEAD?)")

        graph = build_stack_graph(gm.get_stack_lookup())
        flags = PlanFlags(
            onto=onto or None, from_branch=from_branch or None, current_only=current_only
        )
        plan = plan_rebase(current, graph, flags, guess_base=gm.guess_main_branch)

        executor = PlanExecutor(gm.execution_context(), ConsoleReporter(console))
        result = executor.execute(plan, dry_run=dry_run)

        if result.status == ExecutionStatus.DRY_RUN:
            console.print("\nDry run complete - no changes made")
        elif not result.ok:
            sys.exit(1)
    except StackError as e:
        logger.debug("rebase aborted", exc_info=True)
        _fail(str(e))


@cli.command("graph")
@click.pass_context
def graph_cmd(ctx: click.Context) -> None:
    """Show a graphical representation of all branches."""
    try:
        console.print(_git(ctx).log_graph(), markup=False, highlight=False)
    except StackError as e:
        _fail(str(e))


@cli.command()
@click.option("--dry-run", "-n", is_flag=True, help="Print what would be done without making any changes")
@click.pass_context
def clean(ctx: click.Context, dry_run: bool) -> None:
    """Clean up rerere records and stack metadata of deleted branches."""
    try:
        gm = _git(ctx)
        if dry_run:
            console.print("Would run rerere garbage collection.")
        else:
            gm.rerere_gc()

        local = set(gm.list_local_branches())
        stale = sorted(b for b in gm.get_stack_lookup() if b not in local)
        if not stale:
            console.print("No stale stack metadata.")
            return

        for branch in stale:
            if dry_run:
                console.print(f'Would remove stack metadata for "{branch}".', highlight=False)
            else:
                gm.unset_stack_parent(branch)
                console.print(f'Removed stack metadata for "{branch}".', highlight=False)
    except StackError as e:
        logger.debug("clean failed", exc_info=True)
        _fail(str(e))


@cli.command()
def version() -> None:
    """Print the current git-stack version."""
    console.print(f"git-stack {PACKAGE_VERSION}", highlight=False)


def main() -> None:
    """Main entry point for the CLI."""
    try:
        rv = cli(standalone_mode=False)
    except (KeyboardInterrupt, click.Abort):
        err_console.print("\nOperation cancelled by user", style="bold yellow")
        logger.debug("Top-level cancellation", exc_info=True)
        sys.exit(130)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        err_console.print(f"\nUnexpected error: {e}", style="bold red", markup=False)
        logger.debug("Unexpected error in main()", exc_info=True)
        sys.exit(1)

    # Without standalone mode click returns the code of ctx.exit() instead of exiting
    if isinstance(rv, int) and rv:
        sys.exit(rv)


if __name__ == "__main__":
    main()
