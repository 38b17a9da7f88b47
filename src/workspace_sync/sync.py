"""Repository synchronization for the developer workspace.

For every configured repository the routine acquires a working copy, resolves the
branch to track from an ordered candidate list, and reconciles the local branch and
working tree with it. Local modifications are never discarded unless the run was
started with `force`.
"""

import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console

from .constants import APP_NAME, DEFAULT_BRANCH_CANDIDATES, DEFAULT_REMOTE
from .git_wrapper import GitRepo
from .models import (
    Outcome,
    RepositorySpec,
    RepositoryState,
    RunOptions,
    SyncSummary,
)

console = Console()
logger = logging.getLogger(APP_NAME)


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Context manager that enters a directory and always restores the previous one.

    Args:
        path (Path): The directory to enter.

    Yields:
        Path: The directory that was entered.
    """
    previous = Path.cwd()
    os.chdir(path)
    try:
        yield path
    finally:
        os.chdir(previous)


class WorkspaceSync:
    """Synchronizes a fixed list of repositories inside a workspace directory.

    Attributes:
        root (Path): The workspace directory holding one sub-directory per repository.
        options (RunOptions): The force/quiet flags for this run.
        branch_candidates (list[str]): Branch names to look for, highest priority first.
        remote (str): The remote name used for branch listing, fetch and pull.
        repo_factory (type[GitRepo]): The version-control collaborator. Must provide
            a `clone(url, dest)` classmethod and the per-repository operations of
            `GitRepo`.
    """

    def __init__(
        self,
        root: Path,
        options: RunOptions | None = None,
        branch_candidates: list[str] | None = None,
        remote: str = DEFAULT_REMOTE,
        repo_factory: type[GitRepo] = GitRepo,
    ):
        self.root = Path(root).resolve()
        self.options = options or RunOptions()
        self.branch_candidates = list(branch_candidates or DEFAULT_BRANCH_CANDIDATES)
        self.remote = remote
        self.repo_factory = repo_factory

    def _say(self, message: str) -> None:
        if not self.options.quiet:
            console.print(message)

    def _warn(self, outcome_warnings: list[str], name: str, message: str) -> None:
        logger.warning(f"{name}: {message}")
        outcome_warnings.append(message)
        self._say(f"   [bold yellow]WARNING:[/bold yellow] {message}")

    def run(
        self,
        specs: list[RepositorySpec],
        on_outcome: Callable[[Outcome], None] | None = None,
    ) -> SyncSummary:
        """Processes every spec in order and aggregates the outcomes.

        Args:
            specs (list[RepositorySpec]): The repositories to synchronize.
            on_outcome (Callable[[Outcome], None] | None): Invoked after each
                repository finishes.

        Returns:
            SyncSummary: One outcome per spec, in list order.
        """
        summary = SyncSummary()
        for spec in specs:
            outcome = self.sync_repository(spec)
            summary.outcomes.append(outcome)
            if on_outcome:
                on_outcome(outcome)

        logger.info(
            f"Sync finished: {summary.succeeded} succeeded, {summary.skipped} skipped, "
            f"{summary.failed} failed ({summary.total} total)"
        )
        return summary

    def sync_repository(self, spec: RepositorySpec) -> Outcome:
        """Acquires, resolves and reconciles a single repository.

        Errors raised by the version-control tool are confined to this repository
        and reported as a failed outcome.

        Args:
            spec (RepositorySpec): The repository to synchronize.

        Returns:
            Outcome: The result for this repository.
        """
        self._say(f"[bold blue]SYNC:[/bold blue] {spec.name}")
        logger.info(f"{spec.name}: starting sync (force={self.options.force})")
        try:
            outcome = self._sync(spec)
        except (RuntimeError, OSError, ValueError) as e:
            logger.error(f"{spec.name}: unexpected error: {e}")
            outcome = Outcome.failed(spec.name, f"unexpected error: {e}")

        logger.info(f"{spec.name}: {outcome.kind.value} ({outcome.reason})")
        return outcome

    def _acquire(self, spec: RepositorySpec) -> str | None:
        """Ensures a working copy exists. Returns a failure reason, or None."""
        dest = self.root / spec.name
        if dest.exists():
            return None

        self._say(f"   Cloning {spec.primary_url}...")
        try:
            self.repo_factory.clone(spec.primary_url, dest)
            return None
        except RuntimeError as e:
            logger.warning(f"{spec.name}: clone from {spec.primary_url} failed: {e}")

        self._say(f"   Primary remote failed. Trying {spec.fallback_url}...")
        try:
            self.repo_factory.clone(spec.fallback_url, dest)
            return None
        except RuntimeError as e:
            logger.error(f"{spec.name}: clone from {spec.fallback_url} failed: {e}")

        return "clone failed on both remotes"

    def resolve_branch(self, repo: GitRepo) -> str | None:
        """Returns the first branch candidate present on the remote, or None.

        Raises:
            RuntimeError: If the remote cannot be queried.
        """
        available = set(repo.list_remote_branches(self.remote))
        for candidate in self.branch_candidates:
            if candidate in available:
                return candidate
        return None

    def _switch(self, repo: GitRepo, branch: str, force: bool = False) -> None:
        """Checks out `branch`, creating a tracking branch when none exists locally."""
        repo.fetch(self.remote, branch)
        if repo.local_branch_exists(branch):
            repo.checkout(branch, force=force)
        else:
            repo.checkout_tracking(branch, self.remote)

    def _pull(
        self, repo: GitRepo, spec: RepositorySpec, branch: str, warnings: list[str]
    ) -> None:
        try:
            repo.pull(self.remote, branch)
        except RuntimeError as e:
            logger.debug(f"{spec.name}: pull error: {e}")
            self._warn(warnings, spec.name, f"pull from {self.remote}/{branch} failed")

    def _sync(self, spec: RepositorySpec) -> Outcome:
        name = spec.name

        # 1. Acquire
        failure = self._acquire(spec)
        if failure:
            return Outcome.failed(name, failure)

        with working_directory(self.root / name) as path:
            try:
                repo = self.repo_factory(path)
            except ValueError:
                return Outcome.failed(name, "not a git repository")

            # 2. Resolve target branch
            try:
                branch = self.resolve_branch(repo)
            except RuntimeError as e:
                logger.error(f"{name}: could not list remote branches: {e}")
                return Outcome.failed(name, "could not list remote branches")
            if branch is None:
                return Outcome.failed(
                    name,
                    "no recognized branch found "
                    f"(looked for {', '.join(self.branch_candidates)})",
                )

            # 3. Reconcile
            try:
                current = repo.current_branch() or None
                dirty = repo.has_local_changes()
            except RuntimeError as e:
                logger.error(f"{name}: could not inspect working copy: {e}")
                return Outcome.failed(name, "could not inspect working copy", branch)

            return self._reconcile(repo, spec, branch, current, dirty)

    def _reconcile(
        self,
        repo: GitRepo,
        spec: RepositorySpec,
        branch: str,
        current: str | None,
        dirty: bool,
    ) -> Outcome:
        name = spec.name
        force = self.options.force
        warnings: list[str] = []

        if current == branch:
            if dirty and force:
                self._say("   Discarding local changes (--force)...")
                try:
                    repo.discard_changes()
                except RuntimeError as e:
                    logger.error(f"{name}: discard failed: {e}")
                    return Outcome.failed(
                        name, "failed to discard local changes", branch
                    )
            elif dirty:
                self._say("   Local changes left in place (already on target branch).")

            self._say(f"   Pulling {self.remote}/{branch}...")
            self._pull(repo, spec, branch, warnings)
            return Outcome.succeeded(name, f"on {branch}", branch, warnings)

        if dirty and not force:
            logger.warning(
                f"{name}: local changes on '{current}', not switching to '{branch}'"
            )
            return Outcome.skipped(
                name,
                f"local changes on '{current or 'detached HEAD'}'; "
                f"stash or commit them, or rerun with --force to switch to '{branch}'",
                branch,
            )

        if dirty:
            self._say("   Discarding local changes (--force)...")
            try:
                repo.discard_changes()
                self._say(f"   Switching to {branch}...")
                self._switch(repo, branch, force=True)
            except RuntimeError as e:
                logger.error(f"{name}: forced switch to '{branch}' failed: {e}")
                return Outcome.failed(name, f"failed to switch to '{branch}'", branch)
        else:
            self._say(f"   Switching to {branch}...")
            try:
                self._switch(repo, branch)
            except RuntimeError as e:
                logger.debug(f"{name}: checkout error: {e}")
                self._warn(
                    warnings,
                    name,
                    f"checkout of '{branch}' failed; staying on "
                    f"'{current or 'detached HEAD'}'",
                )
                return Outcome.succeeded(
                    name, f"on {current or 'detached HEAD'}", branch, warnings
                )

        self._say(f"   Pulling {self.remote}/{branch}...")
        self._pull(repo, spec, branch, warnings)
        return Outcome.succeeded(name, f"switched to {branch}", branch, warnings)

    def inspect(self, spec: RepositorySpec) -> RepositoryState:
        """Derives the live state of one repository without modifying anything.

        Remote errors leave `resolved_branch` unset rather than raising.

        Args:
            spec (RepositorySpec): The repository to inspect.

        Returns:
            RepositoryState: The observed state.
        """
        path = self.root / spec.name
        state = RepositoryState(
            exists=path.exists(),
            remote_branch_candidates=list(self.branch_candidates),
        )
        if not state.exists:
            return state

        with working_directory(path) as cwd:
            try:
                repo = self.repo_factory(cwd)
            except ValueError:
                return state

            try:
                state.resolved_branch = self.resolve_branch(repo)
            except RuntimeError as e:
                logger.warning(f"{spec.name}: could not list remote branches: {e}")

            try:
                state.current_branch = repo.current_branch() or None
                state.has_local_changes = repo.has_local_changes()
            except RuntimeError as e:
                logger.warning(f"{spec.name}: could not inspect working copy: {e}")
        return state
