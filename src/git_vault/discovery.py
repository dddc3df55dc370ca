import logging
from pathlib import Path

from .constants import APP_NAME
from .errors import DiscoveryError
from .github import GitHubClient
from .models import RepositorySource

logger = logging.getLogger(APP_NAME)


def discover_local(projects_dir: Path) -> list[RepositorySource]:
    """Lists the git working copies directly under `projects_dir`.

    Entries are returned in sorted name order. Directories without a `.git`
    entry are logged and skipped; plain files are ignored.

    Raises:
        DiscoveryError: If `projects_dir` does not exist or cannot be listed.
    """
    if not projects_dir.is_dir():
        raise DiscoveryError(f"Projects directory not found: {projects_dir}")

    try:
        entries = sorted(projects_dir.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise DiscoveryError(f"Cannot list {projects_dir}: {e}") from e

    sources = []
    for entry in entries:
        if not entry.is_dir():
            continue
        if (entry / ".git").exists():
            sources.append(RepositorySource.local(entry))
        else:
            logger.info(f"Skipping non-git directory: {entry.name}")
    return sources


def discover_remote(
    client: GitHubClient, user: str, protocol: str = "https"
) -> list[RepositorySource]:
    """Lists every repository `user` owns on the provider, in provider order.

    The whole listing is materialized before returning so that an API error on
    any page aborts discovery with nothing processed.

    Args:
        client (GitHubClient): The provider client.
        user (str): Account name.
        protocol (str): ``https`` or ``ssh`` clone URLs.

    Raises:
        ProviderError: If any page returns an error.
    """
    sources = []
    for repo in client.iter_repositories(user):
        url = repo.ssh_url if protocol == "ssh" and repo.ssh_url else repo.clone_url
        sources.append(RepositorySource.remote(url))
    logger.info(f"Discovered {len(sources)} repositories for {user}")
    return sources
