"""Git Vault: keep local git repositories current and back them up.

This package provides the command-line interface, the repository discovery and
synchronization engine, and the publisher that turns synced working copies into
a mirrored directory or a zip archive.
"""

from . import (
    branches,
    cli,
    config,
    constants,
    discovery,
    errors,
    git_wrapper,
    github,
    models,
    publish,
    runner,
    sync,
    system,
)

__all__ = [
    "branches",
    "cli",
    "config",
    "constants",
    "discovery",
    "errors",
    "git_wrapper",
    "github",
    "models",
    "publish",
    "runner",
    "sync",
    "system",
]
