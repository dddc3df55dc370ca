"""Exception hierarchy for Git Vault.

Anything deriving from :class:`VaultError` is fatal for a run: it propagates
to the top level and terminates the run with a single diagnostic. Git command
failures are raised as :class:`GitError` and are recoverable; the sync engine
converts them into a failed outcome for the affected repository.
"""


class VaultError(Exception):
    """Base class for fatal run errors."""


class ConfigError(VaultError):
    """Raised when a required setting is missing or unusable."""


class ToolMissingError(VaultError):
    """Raised when a required external executable is not on PATH."""

    def __init__(self, tools: list[str]):
        self.tools = tools
        super().__init__(f"Required tool(s) not found on PATH: {', '.join(tools)}")


class DiscoveryError(VaultError):
    """Raised when the set of repositories to process cannot be determined."""


class ProviderError(DiscoveryError):
    """Raised when the hosting provider API returns an error or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PublishError(VaultError):
    """Raised when the backup artifact cannot be created or written."""


class GitError(RuntimeError):
    """Raised when a git command exits with a non-zero status."""
