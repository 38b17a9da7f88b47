import os
from pathlib import Path

"""Global constants and configuration path definitions for workspace-sync.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the embedded repository list used when no configuration
file overrides it.
"""

# --- Identity ---
APP_NAME = "workspace-sync"
"""str: The human-readable application name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "workspace-sync"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "sync.log"
"""Path: The file path for the sync logs."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/workspace-sync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The global configuration file path."""

LOCAL_CONFIG_NAME = "workspace-sync.toml"
"""str: The workspace-local configuration file name."""

PYPROJECT_SECTION = "tool.workspace-sync"
"""str: The pyproject.toml table holding workspace-local configuration."""

# --- Git / Logic Constants ---
DEFAULT_REMOTE = "origin"
"""str: The remote that clones are registered under and branches are pulled from."""

DEFAULT_BRANCH_CANDIDATES = ["development", "master"]
"""list[str]: Branch names searched for on the remote, highest priority first."""

DEFAULT_REPOSITORIES = [
    {
        "name": "FTL",
        "primary_url": "git@github.com:pi-hole/FTL.git",
        "fallback_url": "https://github.com/pi-hole/FTL.git",
    },
    {
        "name": "pi-hole",
        "primary_url": "git@github.com:pi-hole/pi-hole.git",
        "fallback_url": "https://github.com/pi-hole/pi-hole.git",
    },
    {
        "name": "web",
        "primary_url": "git@github.com:pi-hole/web.git",
        "fallback_url": "https://github.com/pi-hole/web.git",
    },
    {
        "name": "docker-pi-hole",
        "primary_url": "git@github.com:pi-hole/docker-pi-hole.git",
        "fallback_url": "https://github.com/pi-hole/docker-pi-hole.git",
    },
]
"""
list[dict[str, str]]: The repositories synchronized when no configuration layer
provides its own `[[repositories]]` list.
"""
