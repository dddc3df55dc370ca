from unittest.mock import MagicMock

import pytest

from git_vault.branches import BranchResolver
from git_vault.errors import GitError


@pytest.fixture
def repo() -> MagicMock:
    mock = MagicMock()
    mock.remote_head_branch.return_value = None
    mock.branch_exists.return_value = False
    mock.remote_tracking_branches.return_value = []
    return mock


def test_remote_head_takes_precedence(repo: MagicMock) -> None:
    """Verifies the remote's HEAD wins even when a fallback branch exists locally."""
    repo.remote_head_branch.return_value = "develop"
    repo.branch_exists.return_value = True

    resolver = BranchResolver(["main", "master", "release"])

    assert resolver.resolve(repo) == "develop"
    repo.remote_head_branch.assert_called_once_with("origin")
    repo.branch_exists.assert_not_called()


def test_fallbacks_are_tried_in_order(repo: MagicMock) -> None:
    """Verifies the first existing fallback is chosen."""
    repo.branch_exists.side_effect = lambda name: name in {"master", "release"}

    resolver = BranchResolver(["main", "master", "release"])

    assert resolver.resolve(repo) == "master"
    assert [c.args[0] for c in repo.branch_exists.call_args_list] == ["main", "master"]


def test_remote_query_failure_falls_back(repo: MagicMock) -> None:
    """Verifies that an unreachable remote does not prevent local resolution."""
    repo.remote_head_branch.side_effect = GitError("could not read from remote")
    repo.branch_exists.side_effect = lambda name: name == "main"

    assert BranchResolver(["main"]).resolve(repo) == "main"


def test_uses_configured_remote(repo: MagicMock) -> None:
    repo.remote_head_branch.return_value = "main"
    BranchResolver(["main"], remote="upstream").resolve(repo)
    repo.remote_head_branch.assert_called_once_with("upstream")


def test_remote_tracking_fallback_strips_prefix(repo: MagicMock) -> None:
    """Verifies the first remote-tracking branch is used, without its remote name."""
    repo.remote_tracking_branches.return_value = ["origin/feature/x", "origin/dev"]

    resolver = BranchResolver(["main", "master", "develop"], use_remote_tracking=True)

    assert resolver.resolve(repo) == "feature/x"


def test_remote_tracking_disabled_by_default(repo: MagicMock) -> None:
    repo.remote_tracking_branches.return_value = ["origin/dev"]

    assert BranchResolver(["main"]).resolve(repo) is None
    repo.remote_tracking_branches.assert_not_called()


def test_not_found(repo: MagicMock) -> None:
    """Verifies that nothing matching yields None rather than an exception."""
    resolver = BranchResolver(["main", "master", "develop"], use_remote_tracking=True)
    assert resolver.resolve(repo) is None
