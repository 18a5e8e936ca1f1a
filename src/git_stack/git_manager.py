"""
Git repository management and operations.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from git import InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import GitCommandError

from .executor import ExecutionContext
from .models import GitRepositoryError


logger = logging.getLogger(__name__)

STACK_PARENT_PREFIX = "stack.parent."

# Last component of a git config key: a letter, then letters, digits or '-'
_CONFIG_VARIABLE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")


def check_stack_parent_key(branch_name: str) -> None:
    """Raise GitRepositoryError if ``stack.parent.<branch_name>`` is not a valid config key.

    Git only restricts the part after the last dot, so ``feature.part-2`` is
    storable while ``feature/part-2`` and ``release-v1.2`` are not.
    """
    variable = branch_name.rsplit(".", 1)[-1]
    if not _CONFIG_VARIABLE_RE.match(variable):
        raise GitRepositoryError(
            f'Branch name "{branch_name}" cannot be recorded in git config as '
            f'"{STACK_PARENT_PREFIX}{branch_name}": the part after the last "." must '
            'start with a letter and contain only letters, digits and "-".'
        )


class GitManager:
    """Manages Git operations and stack metadata for a repository."""

    def __init__(self, repo_path: Optional[Path] = None) -> None:
        """Initialize Git manager with optional repository path."""
        self.repo_path = (repo_path or Path.cwd()).resolve()
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the Git repository instance."""
        if self._repo is None:
            self._repo = self._discover_repository()
        return self._repo

    def _discover_repository(self) -> Repo:
        """Discover the Git repository from current or specified path."""
        logger.debug(f"Discovering repository in: {self.repo_path}")
        try:
            repo = Repo(self.repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitRepositoryError(
                f"No Git repository found at {self.repo_path} or any parent directory"
            ) from e
        logger.info(f"Found Git repository at: {repo.working_dir}")
        return repo

    # --- Branches ---
    def get_current_branch(self) -> Optional[str]:
        """Return the checked-out branch name, or None for a detached HEAD."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            logger.debug("HEAD is detached; no current branch")
            return None

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists (supports full names with slashes)."""
        return branch_name in self.list_local_branches()

    def list_local_branches(self) -> List[str]:
        """List local branch names (full names, including slashes)."""
        return [h.name for h in self.repo.heads]

    def list_known_refs(self) -> List[str]:
        """List names of every ref a stack parent may point at (heads, remote refs, tags)."""
        return [ref.name for ref in self.repo.refs]

    def create_branch(self, branch_name: str, start_point: str) -> None:
        try:
            self.repo.git.branch(branch_name, start_point)
            logger.info(f"Created branch {branch_name} at {start_point}")
        except GitCommandError as e:
            logger.error(f"Error creating branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to create branch {branch_name}: {e}") from e

    def switch_branch(self, branch_name: str) -> None:
        try:
            self.repo.git.switch(branch_name)
            logger.info(f"Switched to branch: {branch_name}")
        except GitCommandError as e:
            logger.error(f"Error switching to branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to switch to branch {branch_name}: {e}") from e

    def checkout_branch(self, branch_name: str) -> None:
        """Checkout a specific branch."""
        try:
            self.repo.git.checkout(branch_name)
            logger.info(f"Checked out branch: {branch_name}")
        except GitCommandError as e:
            logger.error(f"Error checking out branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to checkout branch {branch_name}: {e}") from e

    # --- Stack metadata ---
    def get_stack_parent(self, branch_name: str) -> Optional[str]:
        """Return the declared parent of ``branch_name``, if any."""
        try:
            value = self.repo.git.config("--get", f"{STACK_PARENT_PREFIX}{branch_name}")
        except GitCommandError:
            # git config exits 1 when the key is unset
            return None
        return value.strip() or None

    def set_stack_parent(self, branch_name: str, parent_name: str) -> None:
        check_stack_parent_key(branch_name)
        try:
            self.repo.git.config(f"{STACK_PARENT_PREFIX}{branch_name}", parent_name)
            logger.info(f"Recorded stack parent of {branch_name}: {parent_name}")
        except GitCommandError as e:
            logger.error(f"Error recording stack parent of {branch_name}: {e}")
            raise GitRepositoryError(
                f"Failed to record stack parent of {branch_name}: {e}"
            ) from e

    def unset_stack_parent(self, branch_name: str) -> None:
        try:
            self.repo.git.config("--unset", f"{STACK_PARENT_PREFIX}{branch_name}")
            logger.info(f"Removed stack parent of {branch_name}")
        except GitCommandError as e:
            logger.error(f"Error removing stack parent of {branch_name}: {e}")
            raise GitRepositoryError(
                f"Failed to remove stack parent of {branch_name}: {e}"
            ) from e

    def get_stack_lookup(self) -> Dict[str, str]:
        """Return ``{branch: parent}`` for every recorded stack parent.

        Git lowercases the last component of a config key, so recorded names
        are matched back to local branches case-insensitively when that is
        unambiguous.
        """
        try:
            output = self.repo.git.config("--get-regexp", r"^stack\.parent\.")
        except GitCommandError:
            # No matching keys
            return {}

        by_lower: Dict[str, List[str]] = {}
        for name in self.list_local_branches():
            by_lower.setdefault(name.lower(), []).append(name)

        lookup: Dict[str, str] = {}
        for line in output.splitlines():
            key, _, parent = line.strip().partition(" ")
            if not key.startswith(STACK_PARENT_PREFIX) or not parent.strip():
                continue
            branch = key[len(STACK_PARENT_PREFIX):]
            matches = by_lower.get(branch.lower(), [])
            if branch not in matches and len(matches) == 1:
                branch = matches[0]
            lookup[branch] = parent.strip()
        logger.debug(f"Read {len(lookup)} stack parent entries")
        return lookup

    # --- Remotes ---
    def has_remote(self, remote_name: str = "origin") -> bool:
        return any(r.name == remote_name for r in self.repo.remotes)

    def fetch_remote(self, remote_name: str = "origin") -> None:
        """Fetch updates from a remote."""
        try:
            self.repo.remote(remote_name).fetch()
            logger.info(f"Fetched updates from {remote_name} in {self.repo.working_dir}")
        except (GitCommandError, ValueError) as e:
            logger.error(f"Failed to fetch from {remote_name}: {e}")
            raise GitRepositoryError(f"Failed to fetch from {remote_name}: {e}") from e

    def maybe_fetch_origin(self) -> None:
        if self.has_remote("origin"):
            self.fetch_remote("origin")
        else:
            logger.debug("No origin remote configured; skipping fetch")

    def guess_main_branch(self) -> str:
        """Guess the default branch: origin/HEAD, then main, then master."""
        if self.has_remote("origin"):
            try:
                value = self.repo.git.rev_parse("--abbrev-ref", "origin/HEAD").strip()
                if value and value != "origin/HEAD":
                    return value
            except GitCommandError:
                logger.debug("origin/HEAD is not set; falling back to local branches")

        for candidate in ("main", "master"):
            if self.branch_exists(candidate):
                return candidate

        raise GitRepositoryError(
            "Could not guess the main branch. Please specify the base explicitly with --onto."
        )

    # --- Rebase ---
    def rebase_onto(self, onto: str) -> int:
        """Rebase the checked-out branch onto ``onto`` and return git's exit status.

        Runs with autostash, dependent ref updates and rerere enabled so that
        recorded conflict resolutions are reused when a rebase is retried.
        """
        command = [
            "git",
            "-c",
            "rerere.enabled=true",
            "-c",
            "rerere.autoupdate=true",
            "rebase",
            "--autostash",
            "--update-refs",
            onto,
        ]
        logger.debug(f"Running {' '.join(command)} in {self.repo.working_dir}")
        status, stdout, stderr = self.repo.git.execute(
            command, with_extended_output=True, with_exceptions=False
        )
        if stdout:
            logger.debug(stdout)
        if status != 0:
            logger.warning(f"git rebase {onto} exited with {status}: {stderr}")
        return status

    def is_rebase_in_progress(self) -> bool:
        """Check if a rebase is currently in progress."""
        git_dir = Path(self.repo.git_dir)
        return any((git_dir / name).exists() for name in ("rebase-merge", "rebase-apply"))

    def execution_context(self) -> ExecutionContext:
        """Build the execution context that drives this repository."""
        return ExecutionContext(
            checkout=self.checkout_branch,
            current_branch=self.get_current_branch,
            rebase=self.rebase_onto,
            is_rebase_in_progress=self.is_rebase_in_progress,
            fetch=self.maybe_fetch_origin,
        )

    # --- Housekeeping ---
    def rerere_gc(self) -> None:
        try:
            self.repo.git.rerere("gc")
            logger.info("Ran rerere garbage collection")
        except GitCommandError as e:
            logger.error(f"rerere gc failed: {e}")
            raise GitRepositoryError(f"Failed to run rerere gc: {e}") from e

    def log_graph(self) -> str:
        """Return the decorated one-line commit graph of all refs."""
        try:
            return self.repo.git.log("--graph", "--oneline", "--all", "--decorate")
        except GitCommandError as e:
            raise GitRepositoryError(f"Failed to read commit graph: {e}") from e
