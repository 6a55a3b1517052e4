"""git-sync: Periodic synchronization and deployment of git working trees.

This package provides the background daemon that keeps a list of local
working trees up to date with their remotes, rebuilds and republishes the
artifacts of deployable ones, and the command-line interface to manage it.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    errors,
    git_wrapper,
    processor,
    publisher,
    registry,
    service,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "errors",
    "git_wrapper",
    "processor",
    "publisher",
    "registry",
    "service",
]
