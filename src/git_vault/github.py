"""GitHub REST API client used for clone-all discovery."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import requests
from rich.prompt import Prompt

from .constants import APP_NAME, GITHUB_API_URL, GITHUB_PAGE_SIZE, USER_AGENT
from .errors import ConfigError, ProviderError
from .git_wrapper import global_config_get

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class RemoteRepository:
    """A repository entry returned by the provider.

    Attributes:
        name (str): Repository name.
        clone_url (str): HTTPS clone URL.
        ssh_url (str): SSH clone URL.
    """

    name: str
    clone_url: str
    ssh_url: str = ""


class GitHubClient:
    """Minimal GitHub API client with token authentication.

    Attributes:
        api_url (str): REST API base URL.
        page_size (int): Entries requested per listing page.
        timeout (int): Per-request timeout in seconds.
        session (requests.Session): The underlying HTTP session.
    """

    def __init__(
        self,
        api_url: str = GITHUB_API_URL,
        token: str | None = None,
        page_size: int = GITHUB_PAGE_SIZE,
        timeout: int = 30,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout
        self.authenticated = bool(token)
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
            }
        )
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    def _get(self, endpoint: str, params: dict | None = None) -> object:
        """Performs a GET request and returns the decoded JSON body.

        Raises:
            ProviderError: On transport failure, a non-2xx status, a body that is
                           not JSON, or a JSON error payload.
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Request to {url} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Invalid JSON from {url} (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not response.ok or (isinstance(data, dict) and "message" in data):
            message = data.get("message") if isinstance(data, dict) else None
            raise ProviderError(
                f"GitHub API error (HTTP {response.status_code}): "
                f"{message or response.reason}",
                status_code=response.status_code,
            )
        return data

    def list_repositories(self, user: str, page: int) -> list[RemoteRepository]:
        """Fetches one page of a user's repositories, most recently updated first.

        Args:
            user (str): The account name.
            page (int): 1-based page number.

        Returns:
            list[RemoteRepository]: The entries on that page.

        Raises:
            ProviderError: If the API reports an error.
        """
        data = self._get(
            f"/users/{user}/repos",
            params={"per_page": self.page_size, "page": page, "sort": "updated"},
        )
        if not isinstance(data, list):
            raise ProviderError(f"Unexpected repository listing payload for {user}")
        try:
            return [
                RemoteRepository(
                    name=item["name"],
                    clone_url=item["clone_url"],
                    ssh_url=item.get("ssh_url", ""),
                )
                for item in data
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise ProviderError(
                f"Unexpected repository listing payload for {user}: {e!r}"
            ) from e

    def iter_repositories(self, user: str) -> Iterator[RemoteRepository]:
        """Yields every repository of `user`, walking pages until a short one.

        Iteration stops after an empty page or one holding fewer than
        `page_size` entries. Errors propagate as ProviderError.
        """
        page = 1
        while True:
            entries = self.list_repositories(user, page)
            logger.debug(f"Page {page}: {len(entries)} repositories")
            yield from entries
            if len(entries) < self.page_size:
                return
            page += 1

    def current_user(self) -> str | None:
        """Returns the login of the authenticated user, or None if unavailable."""
        if not self.authenticated:
            return None
        try:
            data = self._get("/user")
        except ProviderError as e:
            logger.debug(f"Could not determine authenticated user: {e}")
            return None
        if isinstance(data, dict):
            return data.get("login") or None
        return None


def resolve_username(
    client: GitHubClient,
    configured: str | None = None,
    cwd: Path | None = None,
    interactive: bool = True,
) -> str:
    """Determines which account's repositories to list.

    Tries, in order: the configured value, ``git config github.user``, the
    provider's authenticated user, then an interactive prompt.

    Raises:
        ConfigError: If no username could be determined.
    """
    if configured:
        return configured

    if user := global_config_get("github.user", cwd=cwd):
        logger.info(f"Using GitHub user from git config: {user}")
        return user

    if user := client.current_user():
        logger.info(f"Using authenticated GitHub user: {user}")
        return user

    if interactive:
        user = Prompt.ask("GitHub username").strip()
        if user:
            return user

    raise ConfigError(
        "Could not determine GitHub username. Set github.user or pass --user."
    )
