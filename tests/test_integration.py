"""End-to-end tests against real git repositories on the local filesystem."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from workspace_sync.git_wrapper import GitRepo
from workspace_sync.models import OutcomeKind, RepositorySpec, RunOptions
from workspace_sync.sync import WorkspaceSync

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@example.com",
}


@pytest.fixture(autouse=True)
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)


def git(cwd: Path, *args: str) -> str:
    res = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return res.stdout.strip()


def make_remote(tmp_path: Path, branches: list[str]) -> Path:
    """Creates a bare repository whose HEAD points at the first branch given."""
    remote = tmp_path / "remotes" / "project.git"
    remote.mkdir(parents=True)
    git(remote, "init", "--bare")
    git(remote, "symbolic-ref", "HEAD", f"refs/heads/{branches[0]}")

    seed = tmp_path / "seed"
    seed.mkdir()
    git(seed, "init")
    git(seed, "symbolic-ref", "HEAD", f"refs/heads/{branches[0]}")
    (seed / "README.md").write_text("hello\n")
    git(seed, "add", "README.md")
    git(seed, "commit", "-m", "initial")
    for branch in branches[1:]:
        git(seed, "branch", branch)
    git(seed, "remote", "add", "origin", str(remote))
    for branch in branches:
        git(seed, "push", "origin", branch)
    return remote


def make_syncer(workspace: Path, force: bool = False) -> WorkspaceSync:
    return WorkspaceSync(workspace, RunOptions(force=force, quiet=True))


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws


def test_clone_with_fallback_and_master_only_remote(
    tmp_path: Path, workspace: Path
) -> None:
    """Verifies fallback cloning and branch resolution against a real remote."""
    remote = make_remote(tmp_path, ["master"])
    spec = RepositorySpec("A", str(tmp_path / "does-not-exist.git"), str(remote))

    summary = make_syncer(workspace).run([spec])

    assert summary.all_succeeded
    assert summary.outcomes[0].branch == "master"
    assert GitRepo(workspace / "A").current_branch() == "master"
    assert (workspace / "A" / "README.md").read_text() == "hello\n"


def test_switches_to_development_and_is_idempotent(
    tmp_path: Path, workspace: Path
) -> None:
    """Verifies the tracking-branch switch and a clean second run."""
    remote = make_remote(tmp_path, ["master", "development"])
    spec = RepositorySpec("A", str(remote), str(remote))
    syncer = make_syncer(workspace)

    first = syncer.run([spec])
    second = syncer.run([spec])

    assert first.all_succeeded and second.all_succeeded
    repo = GitRepo(workspace / "A")
    assert repo.current_branch() == "development"
    assert not repo.has_local_changes()
    assert git(workspace / "A", "rev-parse", "--abbrev-ref", "@{upstream}") == (
        "origin/development"
    )


def test_dirty_feature_branch_is_left_alone(tmp_path: Path, workspace: Path) -> None:
    """Verifies the data-safety skip: no file is touched and cwd is restored."""
    remote = make_remote(tmp_path, ["development"])
    spec = RepositorySpec("A", str(remote), str(remote))
    git(workspace, "clone", str(remote), "A")
    local = workspace / "A"
    git(local, "checkout", "-b", "feature-x")
    (local / "README.md").write_text("edited\n")
    (local / "scratch.txt").write_text("untracked\n")
    before = os.getcwd()

    outcome = make_syncer(workspace).sync_repository(spec)

    assert outcome.kind is OutcomeKind.SKIPPED
    assert os.getcwd() == before
    assert GitRepo(local).current_branch() == "feature-x"
    assert (local / "README.md").read_text() == "edited\n"
    assert (local / "scratch.txt").read_text() == "untracked\n"


def test_force_discards_and_switches(tmp_path: Path, workspace: Path) -> None:
    """Verifies that force mode ends clean on the resolved branch."""
    remote = make_remote(tmp_path, ["development"])
    spec = RepositorySpec("A", str(remote), str(remote))
    git(workspace, "clone", str(remote), "A")
    local = workspace / "A"
    git(local, "checkout", "-b", "feature-x")
    (local / "README.md").write_text("edited\n")
    (local / "scratch").mkdir()
    (local / "scratch" / "notes.txt").write_text("untracked\n")

    outcome = make_syncer(workspace, force=True).sync_repository(spec)

    assert outcome.kind is OutcomeKind.SUCCEEDED
    repo = GitRepo(local)
    assert repo.current_branch() == "development"
    assert not repo.has_local_changes()
    assert not (local / "scratch").exists()


def test_remote_without_candidates_fails(tmp_path: Path, workspace: Path) -> None:
    remote = make_remote(tmp_path, ["main"])
    spec = RepositorySpec("A", str(remote), str(remote))

    outcome = make_syncer(workspace).sync_repository(spec)

    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.reason.startswith("no recognized branch found")
    assert GitRepo(workspace / "A").current_branch() == "main"
