"""Value types shared by the configuration, sync, and CLI layers."""

from dataclasses import dataclass, field
from enum import Enum

_FORBIDDEN_NAME_CHARS = ("/", "\\", "\0")


def validate_repository_name(name: str) -> str:
    """Ensures a repository name is usable as a single directory name.

    Args:
        name (str): The candidate name.

    Returns:
        str: The name, unchanged.

    Raises:
        ValueError: If the name is empty, a relative path marker, or contains
            a path separator.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Repository name must be a non-empty string")
    if name in (".", ".."):
        raise ValueError(f"Invalid repository name '{name}'")
    if any(c in name for c in _FORBIDDEN_NAME_CHARS):
        raise ValueError(f"Repository name '{name}' must be a single path segment")
    return name


@dataclass(frozen=True)
class RepositorySpec:
    """A statically configured repository to keep in the workspace.

    Attributes:
        name (str): Unique short identifier, also the local directory name.
        primary_url (str): Preferred remote address (usually the SSH form).
        fallback_url (str): Address tried only when cloning from `primary_url` fails.
    """

    name: str
    primary_url: str
    fallback_url: str

    def __post_init__(self) -> None:
        validate_repository_name(self.name)
        for key in ("primary_url", "fallback_url"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(
                    f"Repository '{self.name}': {key} must be a non-empty string"
                )


@dataclass(frozen=True)
class RunOptions:
    """Options for a single sync invocation.

    Attributes:
        force (bool): Permit discarding local changes to reach the resolved branch.
        quiet (bool): Suppress progress narration. Outcome reporting is unaffected.
    """

    force: bool = False
    quiet: bool = False


@dataclass
class RepositoryState:
    """Live view of a local working copy, derived at run time."""

    exists: bool
    remote_branch_candidates: list[str] = field(default_factory=list)
    resolved_branch: str | None = None
    current_branch: str | None = None
    has_local_changes: bool = False

    @property
    def on_resolved_branch(self) -> bool:
        return (
            self.resolved_branch is not None
            and self.current_branch == self.resolved_branch
        )


class OutcomeKind(Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class Outcome:
    """The result of processing one repository.

    Attributes:
        name (str): The repository name.
        kind (OutcomeKind): Whether the repository succeeded, was skipped because
            of local changes, or failed.
        reason (str): Human-readable explanation.
        warnings (list[str]): Non-fatal problems encountered along the way.
        branch (str | None): The resolved branch, when one was found.
    """

    name: str
    kind: OutcomeKind
    reason: str = ""
    warnings: list[str] = field(default_factory=list)
    branch: str | None = None

    @classmethod
    def succeeded(
        cls,
        name: str,
        reason: str,
        branch: str | None = None,
        warnings: list[str] | None = None,
    ) -> "Outcome":
        return cls(name, OutcomeKind.SUCCEEDED, reason, list(warnings or []), branch)

    @classmethod
    def skipped(cls, name: str, reason: str, branch: str | None = None) -> "Outcome":
        return cls(name, OutcomeKind.SKIPPED, reason, [], branch)

    @classmethod
    def failed(
        cls,
        name: str,
        reason: str,
        branch: str | None = None,
        warnings: list[str] | None = None,
    ) -> "Outcome":
        return cls(name, OutcomeKind.FAILED, reason, list(warnings or []), branch)


@dataclass
class SyncSummary:
    """Aggregate of every outcome produced by one run, in processing order."""

    outcomes: list[Outcome] = field(default_factory=list)

    def _count(self, kind: OutcomeKind) -> int:
        return sum(1 for o in self.outcomes if o.kind is kind)

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeKind.SUCCEEDED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeKind.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeKind.FAILED)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def all_succeeded(self) -> bool:
        """True only if every processed repository reached `SUCCEEDED`."""
        return self.succeeded == self.total
