import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from .branches import BranchResolver
from .constants import APP_NAME, DEFAULT_REMOTE
from .errors import GitError
from .git_wrapper import GitRepo
from .models import RepositorySource, RunSummary, SourceKind, SyncOutcome, SyncStatus

logger = logging.getLogger(APP_NAME)


class SyncEngine:
    """Brings working copies up to date with their default branch.

    Repositories are processed strictly one after another. A failure in one
    repository is recorded in its outcome and never stops the run.

    Attributes:
        resolver (BranchResolver): Picks the branch to sync.
        projects_dir (Path): Where remote sources are cloned.
        remote (str): The remote to fetch and pull from.
    """

    def __init__(
        self,
        resolver: BranchResolver,
        projects_dir: Path,
        remote: str = DEFAULT_REMOTE,
        repo_factory: Callable[[Path], GitRepo] | None = None,
        cloner: Callable[[str, Path], GitRepo] | None = None,
    ):
        self.resolver = resolver
        self.projects_dir = projects_dir
        self.remote = remote
        self._open = repo_factory or GitRepo
        self._clone = cloner or GitRepo.clone

    def run(self, sources: Iterable[RepositorySource]) -> RunSummary:
        """Syncs every source in order and returns the finalized summary."""
        summary = RunSummary()
        for source in sources:
            outcome = self.sync(source)
            summary.record(outcome)
            self._log_outcome(outcome)
        return summary.finalize()

    def sync(self, source: RepositorySource) -> SyncOutcome:
        """Processes one repository. Never raises."""
        name = source.name
        if source.kind is SourceKind.LOCAL:
            path = Path(source.location)
        else:
            path = self.projects_dir / name

        logger.info(f"Processing repository: {name}")
        try:
            if source.kind is SourceKind.REMOTE and not (path / ".git").exists():
                return self._clone_new(name, source.location, path)
            return self._update(name, path)
        except Exception as e:
            logger.exception(f"Unexpected error while syncing {name}")
            return SyncOutcome(name, path, SyncStatus.FAILED, reason=str(e))

    def _update(self, name: str, path: Path) -> SyncOutcome:
        try:
            repo = self._open(path)
        except ValueError as e:
            return SyncOutcome(name, path, SyncStatus.FAILED, reason=str(e))

        try:
            repo.fetch(self.remote)
        except GitError as e:
            return SyncOutcome(name, path, SyncStatus.FAILED, reason=str(e))

        branch = self.resolver.resolve(repo)
        if not branch:
            return SyncOutcome(name, path, SyncStatus.SKIPPED_NO_BRANCH)

        try:
            if repo.current_branch() != branch:
                repo.checkout(branch)
            repo.pull(self.remote, branch)
        except GitError as e:
            return SyncOutcome(name, path, SyncStatus.FAILED, branch=branch, reason=str(e))

        return SyncOutcome(name, path, SyncStatus.SYNCED, branch=branch)

    def _clone_new(self, name: str, url: str, path: Path) -> SyncOutcome:
        logger.info(f"Cloning {url} into {path}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            repo = self._clone(url, path)
        except (GitError, OSError) as e:
            return SyncOutcome(name, path, SyncStatus.FAILED, reason=str(e))

        branch = self.resolver.resolve(repo)
        if not branch:
            logger.warning(f"{name}: cloned, but no default branch could be determined.")
            return SyncOutcome(name, path, SyncStatus.CLONED)

        try:
            if repo.current_branch() != branch:
                repo.checkout(branch)
        except GitError as e:
            logger.warning(f"{name}: cloned, but checkout of {branch} failed: {e}")

        return SyncOutcome(name, path, SyncStatus.CLONED, branch=branch)

    @staticmethod
    def _log_outcome(outcome: SyncOutcome) -> None:
        if outcome.status is SyncStatus.FAILED:
            logger.error(f"FAILED {outcome.name}: {outcome.reason}")
        elif outcome.status is SyncStatus.SKIPPED_NO_BRANCH:
            logger.warning(f"SKIPPED {outcome.name}: no valid default branch found.")
        else:
            logger.info(
                f"{outcome.status.value.upper()} {outcome.name} ({outcome.branch or '-'})"
            )
