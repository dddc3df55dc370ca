import logging
import os
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CLONE_BRANCH_FALLBACKS,
    CONFIG_FILE,
    DEFAULT_REMOTE,
    GITHUB_API_URL,
    GITHUB_PAGE_SIZE,
    LOCAL_BRANCH_FALLBACKS,
)

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


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '30m') to seconds."""
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


def _parse_choice(value: str, choices: tuple[str, ...]) -> str:
    value = str(value).strip().lower()
    if value not in choices:
        raise ValueError(f"Expected one of {', '.join(choices)}, got '{value}'")
    return value


def _parse_branch_list(value: Any) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ValueError("Expected a non-empty list of branch names")
    if not all(isinstance(v, str) and v for v in value):
        raise ValueError("Branch names must be non-empty strings")
    return list(value)


@dataclass
class CoreConfig:
    """Core settings.

    Attributes:
        projects_dir (Path): Directory holding the working copies.
        remote_name (str): The git remote to fetch from and pull.
    """

    projects_dir: Path = field(default_factory=lambda: Path.home() / "Projects")
    remote_name: str = DEFAULT_REMOTE


@dataclass
class BranchConfig:
    """Fallback branch priorities.

    The local backup and clone-all workflows historically used different lists,
    so both are exposed.

    Attributes:
        local_fallbacks (list[str]): Tried when updating existing clones.
        clone_fallbacks (list[str]): Tried after cloning from the provider.
    """

    local_fallbacks: list[str] = field(
        default_factory=lambda: list(LOCAL_BRANCH_FALLBACKS)
    )
    clone_fallbacks: list[str] = field(
        default_factory=lambda: list(CLONE_BRANCH_FALLBACKS)
    )

    def discrepancy(self) -> str | None:
        """Describes how the two fallback lists differ, or None if they agree."""
        if self.local_fallbacks == self.clone_fallbacks:
            return None
        return (
            f"Fallback branch lists differ: backup uses "
            f"{', '.join(self.local_fallbacks)}; clone-all uses "
            f"{', '.join(self.clone_fallbacks)}."
        )


@dataclass
class BackupConfig:
    """Artifact settings.

    Attributes:
        mode (str): ``mirror`` (directory copy) or ``archive`` (zip file). Empty
            to use the command default: mirror for backup, archive for clone-all.
        destination (Path): Mirror destination directory.
        timestamp (bool): Suffix the mirror destination with the run date.
        archive_dir (Path): Directory receiving zip archives.
        exclude (list[str]): Extra glob patterns (appended to defaults).
    """

    mode: str = ""
    destination: Path = field(
        default_factory=lambda: Path.home() / "Projects-Backup"
    )
    timestamp: bool = False
    archive_dir: Path = field(default_factory=Path.home)
    exclude: list[str] = field(default_factory=list)


@dataclass
class GitHubConfig:
    """Hosting provider settings.

    Attributes:
        user (str): Account whose repositories are listed. Empty to auto-detect.
        token (str): API token. Falls back to the GITHUB_TOKEN environment variable.
        api_url (str): REST API base URL.
        page_size (int): Repositories requested per page.
        protocol (str): ``https`` or ``ssh`` clone URLs.
        timeout (int): Seconds before an API request is abandoned.
    """

    user: str = ""
    token: str = ""
    api_url: str = GITHUB_API_URL
    page_size: int = GITHUB_PAGE_SIZE
    protocol: str = "https"
    timeout: int = 30

    def resolved_token(self) -> str | None:
        return self.token or os.environ.get("GITHUB_TOKEN") or None


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


_PATH_KEYS = {"projects_dir", "destination", "archive_dir"}


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        core (CoreConfig): Core settings.
        branches (BranchConfig): Fallback branch priorities.
        backup (BackupConfig): Artifact settings.
        github (GitHubConfig): Provider settings.
        limits (LimitsConfig): Resource limits.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    branches: BranchConfig = field(default_factory=BranchConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from disk, applying defaults where necessary.

        Args:
            path (Path | None): Config file to read. Defaults to CONFIG_FILE.

        Returns:
            Config: The populated configuration object.
        """
        instance = cls()
        source = path or CONFIG_FILE
        if source.exists():
            instance._merge_from_file(source)
        elif path is not None:
            logger.warning(f"Config file {path} not found. Using defaults.")
        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
            return
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return

        unknown = set(data) - set(self.__dataclass_fields__)
        if unknown:
            logger.warning(
                f"Unknown config sections: {', '.join(sorted(unknown))}. Ignoring."
            )

        for section in self.__dataclass_fields__:
            if section not in data:
                continue
            if not isinstance(data[section], dict):
                logger.warning(f"Config section [{section}] is not a table. Ignoring.")
                continue
            updates = dict(data[section])
            current = getattr(self, section)
            if section == "backup":
                # Extra excludes extend the defaults instead of replacing them.
                extra = updates.pop("exclude", [])
                current = self._update_dataclass(section, current, updates)
                if isinstance(extra, list) and extra:
                    current.exclude = list(dict.fromkeys([*current.exclude, *extra]))
            else:
                current = self._update_dataclass(section, current, updates)
            setattr(self, section, current)

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "timeout":
                    filtered_updates[k] = parse_time(v)
                elif k in _PATH_KEYS:
                    filtered_updates[k] = Path(str(v)).expanduser()
                elif k in ("local_fallbacks", "clone_fallbacks"):
                    filtered_updates[k] = _parse_branch_list(v)
                elif k == "mode":
                    filtered_updates[k] = _parse_choice(v, ("mirror", "archive"))
                elif k == "protocol":
                    filtered_updates[k] = _parse_choice(v, ("https", "ssh"))
                elif k == "page_size":
                    if not isinstance(v, int) or not 1 <= v <= 100:
                        raise ValueError("page_size must be an integer from 1 to 100")
                    filtered_updates[k] = v
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
