import contextlib
import datetime
import fnmatch
import logging
import os
import shutil
import zipfile
from collections.abc import Iterable
from pathlib import Path

from .config import BackupConfig
from .constants import APP_NAME, ARCHIVE_ONLY_EXCLUDES, OS_NOISE, VCS_METADATA
from .errors import PublishError
from .models import BackupArtifact, RunSummary, SyncOutcome

logger = logging.getLogger(APP_NAME)


def is_excluded(name: str, patterns: Iterable[str]) -> bool:
    """Checks a single path component against glob patterns."""
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


class BackupPublisher:
    """Materializes synced working copies into a backup artifact.

    Exclusion is applied per path component, so an excluded directory name
    removes its whole subtree.

    Attributes:
        excludes (list[str]): Patterns excluded from every artifact.
    """

    def __init__(self, extra_excludes: Iterable[str] = ()):
        self.excludes = list(dict.fromkeys([*VCS_METADATA, *OS_NOISE, *extra_excludes]))

    @property
    def archive_excludes(self) -> list[str]:
        return [*self.excludes, *ARCHIVE_ONLY_EXCLUDES]

    def publish(
        self,
        summary: RunSummary,
        config: BackupConfig,
        projects_dir: Path,
        now: datetime.datetime | None = None,
    ) -> BackupArtifact:
        """Publishes the successful outcomes of `summary` using `config.mode`.

        Raises:
            PublishError: If the artifact cannot be written.
        """
        now = now or datetime.datetime.now()
        outcomes = summary.successful()
        if config.mode == "archive":
            return self.archive(outcomes, config.archive_dir, projects_dir.name, now)
        return self.mirror(
            outcomes, config.destination, config.timestamp, now, projects_dir
        )

    def mirror(
        self,
        outcomes: list[SyncOutcome],
        destination: Path,
        timestamp: bool = False,
        now: datetime.datetime | None = None,
        projects_dir: Path | None = None,
    ) -> BackupArtifact:
        """Copies each working tree to ``destination/<name>/``.

        An existing destination is removed first, so repeated runs replace the
        previous contents instead of merging into them. A destination that
        overlaps a working copy, or holds the projects directory, is refused
        before anything is removed.

        Args:
            outcomes (list[SyncOutcome]): Successful outcomes to copy.
            destination (Path): Target directory.
            timestamp (bool): Append ``-YYYY-MM-DD`` to the destination name.
            now (datetime.datetime | None): Run time, defaults to now.
            projects_dir (Path | None): Directory the working copies live in.

        Raises:
            PublishError: If the destination overlaps a source or cannot be written.
        """
        now = now or datetime.datetime.now()
        if timestamp:
            destination = destination.with_name(
                f"{destination.name}-{now:%Y-%m-%d}"
            )

        if projects_dir is not None and _contains(destination, projects_dir):
            raise PublishError(
                f"Backup destination {destination} would overwrite the projects "
                f"directory {projects_dir}"
            )
        if clash := _overlapping(destination, [o.path for o in outcomes]):
            raise PublishError(
                f"Backup destination {destination} overlaps the repository {clash}"
            )

        def ignore(_dir: str, names: list[str]) -> set[str]:
            return {n for n in names if is_excluded(n, self.excludes)}

        try:
            if destination.exists():
                logger.info(f"Clearing existing backup directory {destination}")
                shutil.rmtree(destination)
            destination.mkdir(parents=True)

            for outcome in outcomes:
                target = destination / outcome.name
                logger.info(f"Copying {outcome.name} to {target}")
                shutil.copytree(outcome.path, target, symlinks=True, ignore=ignore)
        except (OSError, shutil.Error) as e:
            raise PublishError(f"Cannot write backup to {destination}: {e}") from e

        return BackupArtifact(
            path=destination,
            created_at=now,
            mode="mirror",
            repositories=frozenset(o.name for o in outcomes),
        )

    def archive(
        self,
        outcomes: list[SyncOutcome],
        archive_dir: Path,
        root_name: str,
        now: datetime.datetime | None = None,
    ) -> BackupArtifact:
        """Writes all working trees into one timestamped zip file.

        Entries are laid out as ``<root_name>/<repo>/<relative path>``. Log
        files are excluded in addition to the usual patterns. A partially
        written archive is removed on failure.

        Raises:
            PublishError: If `archive_dir` lies inside a working copy or the
                archive cannot be written.
        """
        now = now or datetime.datetime.now()
        target = archive_dir / f"{root_name}-backup-{now:%Y-%m-%d_%H-%M-%S}.zip"
        patterns = self.archive_excludes
        for outcome in outcomes:
            if _contains(outcome.path, archive_dir):
                raise PublishError(
                    f"Archive directory {archive_dir} lies inside the repository "
                    f"{outcome.path}"
                )

        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zf:
                for outcome in outcomes:
                    logger.info(f"Archiving {outcome.name}")
                    for file, rel in _walk(outcome.path, patterns):
                        zf.write(file, str(Path(root_name, outcome.name, rel)))
        except OSError as e:
            with contextlib.suppress(OSError):
                target.unlink()
            raise PublishError(f"Cannot write archive {target}: {e}") from e

        return BackupArtifact(
            path=target,
            created_at=now,
            mode="archive",
            repositories=frozenset(o.name for o in outcomes),
        )


def _contains(parent: Path, child: Path) -> bool:
    """True if `child` is `parent` or lies beneath it, after resolving links."""
    return child.resolve().is_relative_to(parent.resolve())


def _overlapping(target: Path, sources: Iterable[Path]) -> Path | None:
    """Returns the first source that overlaps `target` in either direction."""
    for source in sources:
        if _contains(source, target) or _contains(target, source):
            return source
    return None


def _walk(root: Path, patterns: list[str]) -> Iterable[tuple[Path, Path]]:
    """Yields ``(absolute, relative)`` file paths under `root`, pruning excludes."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not is_excluded(d, patterns))
        base = Path(dirpath)
        for name in sorted(filenames):
            if is_excluded(name, patterns):
                continue
            file = base / name
            if not file.exists():
                logger.debug(f"Skipping dangling symlink {file}")
                continue
            yield file, file.relative_to(root)
