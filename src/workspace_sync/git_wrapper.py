import logging
import os
import subprocess
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    Every method maps onto a single git invocation. Failures are detected through
    the exit status only and surface as `RuntimeError`, so callers never have to
    inspect git's error text.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    def clone(cls, url: str, dest: Path) -> "GitRepo":
        """Clones a remote repository into a new directory.

        Args:
            url (str): The remote address (SSH or HTTPS form).
            dest (Path): The directory to create. Its parent must exist.

        Returns:
            GitRepo: A wrapper around the fresh working copy.

        Raises:
            RuntimeError: If git reports a non-zero exit status.
        """
        # A credential prompt must fail instead of blocking the run.
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        try:
            subprocess.run(
                ["git", "clone", url, str(dest)],
                cwd=dest.parent,
                capture_output=True,
                text=True,
                check=True,
                env=env,
            )
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"Git error: {e.stderr or e}") from e
        return cls(dest)

    def _run(self, args: list[str]) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.

        Returns:
            str: The stripped stdout of the command.

        Raises:
            RuntimeError: If the git command returns a non-zero exit code.
        """
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                check=True,
            )
            return res.stdout.strip()
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"Git error: {e.stderr or e}") from e

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The name of the current branch, or an empty string when HEAD
                is detached.
        """
        return self._run(["branch", "--show-current"])

    def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the repository.

        Returns:
            list[str]: A list of status lines returned by `git status --porcelain`.
        """
        output = self._run(["status", "--porcelain"])
        return output.splitlines() if output else []

    def has_local_changes(self) -> bool:
        """Whether the working tree has staged, unstaged, or untracked changes."""
        return bool(self.status_porcelain())

    def list_remote_branches(self, remote: str) -> list[str]:
        """Lists the branch heads advertised by a remote.

        Args:
            remote (str): The remote name (e.g., 'origin').

        Returns:
            list[str]: Branch names without the `refs/heads/` prefix.

        Raises:
            RuntimeError: If the remote cannot be queried.
        """
        # ls-remote returns: <SHA>\trefs/heads/<branch>
        output = self._run(["ls-remote", "--heads", remote])
        branches = []
        for line in output.splitlines():
            parts = line.split()
            if len(parts) < 2 or not parts[1].startswith("refs/heads/"):
                continue
            branches.append(parts[1][len("refs/heads/") :])
        return branches

    def rev_parse(self, rev: str) -> str | None:
        """Resolves a revision (tag, branch, relative ref) to a full SHA-1 hash.

        Args:
            rev (str): The revision to parse (e.g., 'HEAD', 'refs/heads/master').

        Returns:
            Optional[str]:  The full SHA-1 hash,
                            or None if the revision could not be resolved.
        """
        try:
            return self._run(["rev-parse", "--verify", "--quiet", rev])
        except Exception as e:
            logger.debug(f"rev-parse failed for '{rev}': {e}")
            return None

    def local_branch_exists(self, branch: str) -> bool:
        return self.rev_parse(f"refs/heads/{branch}") is not None

    def fetch(self, remote: str, branch: str) -> None:
        """Updates the remote-tracking ref for a single branch.

        Args:
            remote (str): The remote name.
            branch (str): The branch to fetch.
        """
        self._run(["fetch", remote, branch])

    def checkout(self, branch: str, force: bool = False) -> None:
        """Switches to an existing local branch.

        Args:
            branch (str): The target branch name.
            force (bool, optional): Whether to force the checkout (discarding changes).
                                    Defaults to False.
        """
        cmd = ["checkout"]
        if force:
            cmd.append("-f")
        cmd.append(branch)
        self._run(cmd)

    def checkout_tracking(self, branch: str, remote: str) -> None:
        """Creates a local branch tracking `remote/branch` and switches to it.

        Args:
            branch (str): The branch name to create.
            remote (str): The remote whose tracking ref seeds the new branch.
        """
        self._run(["checkout", "-b", branch, "--track", f"{remote}/{branch}"])

    def discard_changes(self) -> None:
        """Resets tracked files to HEAD and removes untracked files and directories.

        This is destructive: uncommitted work is lost.
        """
        self._run(["reset", "--hard", "HEAD"])
        self._run(["clean", "-fd"])

    def pull(self, remote: str, branch: str) -> None:
        """Fast-forwards the current branch to `remote/branch`.

        Args:
            remote (str): The remote name.
            branch (str): The branch to pull.
        """
        self._run(["pull", "--ff-only", remote, branch])
