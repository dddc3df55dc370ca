"""Value types shared by discovery, the sync engine and the publisher."""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SourceKind(Enum):
    LOCAL = "local"
    REMOTE = "remote"


class SyncStatus(Enum):
    SYNCED = "synced"
    CLONED = "cloned"
    SKIPPED_NO_BRANCH = "skipped"
    FAILED = "failed"


def repo_name_from(location: str) -> str:
    """Derives a repository's canonical name from a path or clone URL.

    Examples:
        ``/home/me/Projects/tool`` -> ``tool``
        ``https://github.com/me/tool.git`` -> ``tool``
        ``git@github.com:me/tool.git`` -> ``tool``
    """
    tail = location.rstrip("/\\")
    for sep in ("/", "\\", ":"):
        tail = tail.rsplit(sep, 1)[-1]
    if tail.endswith(".git"):
        tail = tail[: -len(".git")]
    return tail


@dataclass(frozen=True)
class RepositorySource:
    """One repository to process.

    Attributes:
        kind (SourceKind): Whether the repository is already on disk or must be cloned.
        location (str): A filesystem path for LOCAL, a clone URL for REMOTE.
    """

    kind: SourceKind
    location: str

    @classmethod
    def local(cls, path: Path | str) -> "RepositorySource":
        return cls(SourceKind.LOCAL, str(path))

    @classmethod
    def remote(cls, clone_url: str) -> "RepositorySource":
        return cls(SourceKind.REMOTE, clone_url)

    @property
    def name(self) -> str:
        return repo_name_from(self.location)


@dataclass(frozen=True)
class SyncOutcome:
    """The result of processing a single repository.

    Attributes:
        name (str): Canonical repository name.
        path (Path): Final location of the working copy.
        status (SyncStatus): What happened.
        branch (str | None): The resolved default branch, if any.
        reason (str | None): Failure diagnostic, set only for FAILED.
    """

    name: str
    path: Path
    status: SyncStatus
    branch: str | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status in (SyncStatus.SYNCED, SyncStatus.CLONED)


@dataclass
class RunSummary:
    """Accumulates outcomes over a run.

    Mutated only by the sequential main loop via :meth:`record`, then frozen
    with :meth:`finalize`.
    """

    outcomes: list[SyncOutcome] = field(default_factory=list)
    finalized: bool = False

    def record(self, outcome: SyncOutcome) -> None:
        if self.finalized:
            raise RuntimeError("RunSummary is finalized; no further outcomes accepted")
        self.outcomes.append(outcome)

    def finalize(self) -> "RunSummary":
        self.finalized = True
        return self

    def _count(self, *statuses: SyncStatus) -> int:
        return sum(1 for o in self.outcomes if o.status in statuses)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return self._count(SyncStatus.SYNCED, SyncStatus.CLONED)

    @property
    def failed(self) -> int:
        return self._count(SyncStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(SyncStatus.SKIPPED_NO_BRANCH)

    def successful(self) -> list[SyncOutcome]:
        """Returns the outcomes eligible for publishing, in processing order."""
        return [o for o in self.outcomes if o.succeeded]


@dataclass(frozen=True)
class BackupArtifact:
    """A published backup.

    Attributes:
        path (Path): The mirror directory or archive file.
        created_at (datetime.datetime): When publishing started.
        mode (str): ``mirror`` or ``archive``.
        repositories (frozenset[str]): Names of the repositories it contains.
    """

    path: Path
    created_at: datetime.datetime
    mode: str
    repositories: frozenset[str]
