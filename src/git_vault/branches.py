import logging

from .constants import APP_NAME, DEFAULT_REMOTE
from .errors import GitError
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)


class BranchResolver:
    """Determines which branch of a working copy should be synchronized.

    Checks run in strict priority order and the first hit wins:

    1. The HEAD branch advertised by the remote.
    2. The first name in `fallbacks` that exists as a local branch.
    3. If `use_remote_tracking` is set, the first remote-tracking branch in
       listing order, with the remote prefix stripped.

    Attributes:
        fallbacks (list[str]): Ordered local branch names to try.
        remote (str): The remote to query.
        use_remote_tracking (bool): Whether step 3 is enabled.
    """

    def __init__(
        self,
        fallbacks: list[str],
        remote: str = DEFAULT_REMOTE,
        use_remote_tracking: bool = False,
    ):
        self.fallbacks = list(fallbacks)
        self.remote = remote
        self.use_remote_tracking = use_remote_tracking

    def resolve(self, repo: GitRepo) -> str | None:
        """Returns the default branch name for `repo`, or None if nothing matches.

        Never raises for git failures; a failing query simply moves on to the
        next check.
        """
        try:
            if head := repo.remote_head_branch(self.remote):
                return head
        except GitError as e:
            logger.debug(f"Remote HEAD query failed for {repo.path.name}: {e}")

        for name in self.fallbacks:
            if repo.branch_exists(name):
                return name

        if self.use_remote_tracking:
            if tracking := repo.remote_tracking_branches():
                # Strip the remote name.
                return tracking[0].split("/", 1)[1]

        return None
