import os
from pathlib import Path

"""Global constants and path definitions for Git Vault.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the default exclusion and branch-priority values used
across the application.
"""

# --- Identity ---
APP_NAME = "git-vault"
"""str: The human-readable application name (also the logger name)."""

USER_AGENT = "git-vault/0.1"
"""str: The User-Agent header sent to the hosting provider API."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-vault"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "backup.log"
"""Path: The run log, every level."""

ERROR_LOG_FILE = STATE_DIR / "backup-error.log"
"""Path: The error log, ERROR and above only."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/git-vault"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Git / Backup Constants ---
DEFAULT_REMOTE = "origin"
"""str: The git remote fetched from and pulled when none is configured."""

LOCAL_BRANCH_FALLBACKS = ["main", "master", "release"]
"""list[str]: Local branch names tried, in order, when backing up existing clones."""

CLONE_BRANCH_FALLBACKS = ["main", "master", "develop"]
"""list[str]: Local branch names tried, in order, after cloning from the provider."""

VCS_METADATA = [".git"]
"""list[str]: Version-control metadata directories never copied into a backup."""

OS_NOISE = [".DS_Store", "._*", "Thumbs.db", "desktop.ini"]
"""list[str]: Operating-system noise files never copied into a backup."""

ARCHIVE_ONLY_EXCLUDES = ["*.log"]
"""list[str]: Additional patterns excluded from zip archives."""

REQUIRED_TOOLS = ["git"]
"""list[str]: External executables that must be on PATH before a run starts."""

GITHUB_API_URL = "https://api.github.com"
"""str: The hosting provider REST API base URL."""

GITHUB_PAGE_SIZE = 100
"""int: Repositories requested per listing page (the API maximum)."""
