"""workspace-sync: Bootstrap and synchronize a multi-repository developer workspace.

This package provides the command-line interface, configuration layer, git wrapper,
and the reconciliation routine that keeps each workspace repository on its
development branch without discarding uncommitted work.
"""

from . import (
    cli,
    config,
    constants,
    git_wrapper,
    models,
    sync,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "git_wrapper",
    "models",
    "sync",
]
