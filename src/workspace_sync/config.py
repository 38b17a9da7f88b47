import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_BRANCH_CANDIDATES,
    DEFAULT_REMOTE,
    DEFAULT_REPOSITORIES,
    LOCAL_CONFIG_NAME,
    PYPROJECT_SECTION,
)
from .models import RepositorySpec

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_branch_candidates(value: Any) -> list[str]:
    """Validates an ordered list of branch names."""
    if not isinstance(value, list) or not value:
        raise ValueError("Expected a non-empty list of branch names")
    branches = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"Invalid branch name {item!r}")
        branches.append(item.strip())
    return list(dict.fromkeys(branches))


def parse_repositories(records: Any, source: str) -> list[RepositorySpec]:
    """Builds repository specs from `[[repositories]]` records.

    Invalid records and duplicate names are dropped with a warning; the first
    occurrence of a name wins.

    Args:
        records (Any): The decoded TOML value (expected: a list of tables).
        source (str): A label for log messages (usually the file path).

    Returns:
        list[RepositorySpec]: The valid specs, in declaration order.
    """
    if not isinstance(records, list):
        logger.warning(f"Config error in {source}: 'repositories' must be a list")
        return []

    specs: list[RepositorySpec] = []
    seen: set[str] = set()
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning(f"Config error in {source}: repository #{index} is not a table")
            continue

        unknown = set(record) - {"name", "primary_url", "fallback_url"}
        if unknown:
            logger.warning(
                f"Unknown config keys in [[repositories]] #{index}: "
                f"{', '.join(sorted(unknown))}. Ignoring."
            )

        primary = record.get("primary_url", "")
        try:
            spec = RepositorySpec(
                name=record.get("name", ""),
                primary_url=primary,
                fallback_url=record.get("fallback_url") or primary,
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Config error in {source}: repository #{index}: {e}")
            continue

        if spec.name in seen:
            logger.warning(
                f"Config error in {source}: duplicate repository '{spec.name}'. Ignoring."
            )
            continue
        seen.add(spec.name)
        specs.append(spec)
    return specs


@dataclass
class CoreConfig:
    """Core synchronization settings.

    Attributes:
        remote_name (str): The git remote branches are resolved against and pulled from.
        branch_candidates (list[str]): Branch names to look for, highest priority first.
    """

    remote_name: str = DEFAULT_REMOTE
    branch_candidates: list[str] = field(
        default_factory=lambda: list(DEFAULT_BRANCH_CANDIDATES)
    )


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


def _default_repositories() -> list[RepositorySpec]:
    return [RepositorySpec(**record) for record in DEFAULT_REPOSITORIES]


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        core (CoreConfig): Core settings.
        limits (LimitsConfig): Resource limits.
        repositories (list[RepositorySpec]): The repositories to keep in the workspace.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    repositories: list[RepositorySpec] = field(default_factory=_default_repositories)

    # Cache for the base global configuration
    _global_cache: "Config | None" = None

    @classmethod
    def load(cls, workspace: Path | None = None) -> "Config":
        """Loads and merges configuration from defaults, global, and workspace sources.

        Args:
            workspace (Path | None): The workspace root to search for local config.

        Returns:
            Config: The fully merged configuration object.
        """
        # 1. Load or Retrieve Global Config
        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._global_cache = instance

        # Start with a copy of the cached global config
        base = cls._global_cache
        instance = replace(
            base,
            core=replace(
                base.core, branch_candidates=list(base.core.branch_candidates)
            ),
            limits=replace(base.limits),
            repositories=list(base.repositories),
        )

        # 2. Load Workspace Config (if applicable)
        if workspace:
            local_toml = workspace / LOCAL_CONFIG_NAME
            pyproject = workspace / "pyproject.toml"

            if local_toml.exists():
                instance._merge_from_file(local_toml)
            elif pyproject.exists():
                instance._merge_from_file(pyproject, section=PYPROJECT_SECTION)

        return instance

    def _merge_from_file(self, path: Path, section: str | None = None) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
            section (str | None): Dot-separated section path (e.g., 'tool.workspace-sync').
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if section:
                for key in section.split("."):
                    data = data.get(key, {})

            if not data:
                return

            # Merge Logic
            if "core" in data:
                self.core = self._update_dataclass("core", self.core, data["core"])
            if "limits" in data:
                self.limits = self._update_dataclass(
                    "limits", self.limits, data["limits"]
                )
            if "repositories" in data:
                specs = parse_repositories(data["repositories"], str(path))
                if specs:
                    self.repositories = specs
                else:
                    logger.warning(
                        f"No valid repositories in {path}. Keeping previous list."
                    )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                # Route specific keys through our parsers
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "branch_candidates":
                    filtered_updates[k] = parse_branch_candidates(v)
                elif k == "remote_name":
                    if not isinstance(v, str) or not v.strip():
                        raise ValueError(f"Invalid remote name {v!r}")
                    filtered_updates[k] = v.strip()
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
