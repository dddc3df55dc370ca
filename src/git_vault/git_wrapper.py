import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME
from .errors import GitError

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    Every command runs with the repository root as an explicit working directory;
    the process-wide current directory is never changed.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    def _run(self, args: list[str], capture: bool = True) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.

        Returns:
            str:    The stripped stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            GitError: If the git command returns a non-zero exit code.
        """
        return _git(args, cwd=self.path, capture=capture)

    @classmethod
    def clone(cls, url: str, dest: Path) -> "GitRepo":
        """Clones a remote repository into `dest` and wraps the new working copy.

        Args:
            url (str): The clone URL.
            dest (Path): The directory to create. Its parent must exist.

        Returns:
            GitRepo: The freshly cloned repository.

        Raises:
            GitError: If the clone fails.
        """
        _git(["clone", url, str(dest)], cwd=dest.parent)
        return cls(dest)

    def fetch(self, remote: str) -> None:
        """Downloads objects and refs from `remote`."""
        self._run(["fetch", remote])

    def remote_head_branch(self, remote: str) -> str | None:
        """Queries the branch the remote advertises as its HEAD.

        Parses the ``HEAD branch:`` line of ``git remote show``. This contacts the
        remote, so it fails when offline.

        Args:
            remote (str): The remote name.

        Returns:
            str | None: The branch name, or None if the remote does not say.

        Raises:
            GitError: If the query itself fails.
        """
        output = self._run(["remote", "show", remote])
        for line in output.splitlines():
            line = line.strip()
            if line.startswith("HEAD branch:"):
                name = line.split(":", 1)[1].strip()
                if name and name != "(unknown)":
                    return name
        return None

    def branch_exists(self, name: str) -> bool:
        """Checks whether a local branch called `name` exists."""
        try:
            self._run(["show-ref", "--verify", "--quiet", f"refs/heads/{name}"])
            return True
        except GitError:
            return False

    def remote_tracking_branches(self) -> list[str]:
        """Lists remote-tracking branches in the order git reports them.

        Returns:
            list[str]: Short ref names such as ``origin/main``. The symbolic
                       ``origin/HEAD`` entry is omitted.
        """
        try:
            output = self._run(["branch", "-r", "--format=%(refname:short)"])
        except GitError as e:
            logger.warning(f"Git error listing remote branches in {self.path.name}: {e}")
            return []
        branches = []
        for line in output.splitlines():
            ref = line.strip()
            # `origin/HEAD` shortens to plain `origin`.
            if not ref or "/" not in ref or ref.endswith("/HEAD"):
                continue
            branches.append(ref)
        return branches

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The branch name, or an empty string on a detached HEAD.
        """
        return self._run(["branch", "--show-current"])

    def checkout(self, branch: str) -> None:
        """Checks out `branch`, creating a tracking branch if only the remote has it."""
        self._run(["checkout", branch])

    def pull(self, remote: str, branch: str) -> None:
        """Fast-forwards `branch` from `remote`.

        Raises:
            GitError: If the pull fails or the branches have diverged.
        """
        self._run(["pull", "--ff-only", remote, branch])

    def config_get(self, key: str) -> str | None:
        """Reads a git configuration value, or None if it is unset."""
        try:
            return self._run(["config", "--get", key]) or None
        except GitError:
            return None


def _git(args: list[str], cwd: Path, capture: bool = True) -> str:
    try:
        res = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=capture,
            text=True,
            check=True,
        )
        return res.stdout.strip() if capture else ""
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or str(e)
        raise GitError(f"git {args[0]} failed: {detail}") from e


def global_config_get(key: str, cwd: Path | None = None) -> str | None:
    """Reads a git configuration value outside of any particular repository.

    Args:
        key (str): The configuration key, e.g. ``github.user``.
        cwd (Path | None): Directory to run in. Defaults to the user's home.

    Returns:
        str | None: The value, or None if unset or git fails.
    """
    try:
        return _git(["config", "--get", key], cwd=cwd or Path.home()) or None
    except (GitError, OSError) as e:
        logger.debug(f"git config lookup for {key} failed: {e}")
        return None
