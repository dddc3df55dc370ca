import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_vault.errors import GitError
from git_vault.git_wrapper import GitRepo, global_config_get


@pytest.fixture
def repo(tmp_path: Path) -> GitRepo:
    (tmp_path / ".git").mkdir()
    return GitRepo(tmp_path)


def test_rejects_non_repository(tmp_path: Path) -> None:
    """Verifies that a directory without .git is refused."""
    with pytest.raises(ValueError, match="Not a git repository"):
        GitRepo(tmp_path)


def test_run_uses_explicit_working_directory(
    repo: GitRepo, mocker: MagicMock
) -> None:
    """Verifies that commands run in the repository without changing directory."""
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value.stdout = "main\n"

    assert repo.current_branch() == "main"
    mock_run.assert_called_once_with(
        ["git", "branch", "--show-current"],
        cwd=repo.path,
        capture_output=True,
        text=True,
        check=True,
    )


def test_run_wraps_failures_with_stderr(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies that a non-zero exit becomes a GitError carrying git's diagnostic."""
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            128, ["git", "fetch"], stderr="fatal: could not read from remote\n"
        ),
    )

    with pytest.raises(GitError, match="fatal: could not read from remote"):
        repo.fetch("origin")


def test_remote_head_branch_parsing(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies the HEAD branch line is extracted and '(unknown)' is treated as absent."""
    mock_run = mocker.patch.object(repo, "_run")

    mock_run.return_value = (
        "* remote origin\n"
        "  Fetch URL: git@github.com:me/tool.git\n"
        "  Push  URL: git@github.com:me/tool.git\n"
        "  HEAD branch: trunk\n"
        "  Remote branches:\n"
    )
    assert repo.remote_head_branch("origin") == "trunk"
    mock_run.assert_called_with(["remote", "show", "origin"])

    mock_run.return_value = "* remote origin\n  HEAD branch: (unknown)\n"
    assert repo.remote_head_branch("origin") is None

    mock_run.return_value = ""
    assert repo.remote_head_branch("origin") is None


def test_branch_exists(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies that show-ref failure means the branch is absent."""
    mock_run = mocker.patch.object(repo, "_run", return_value="")
    assert repo.branch_exists("main") is True
    mock_run.assert_called_with(
        ["show-ref", "--verify", "--quiet", "refs/heads/main"]
    )

    mock_run.side_effect = GitError("git show-ref failed")
    assert repo.branch_exists("release") is False


def test_remote_tracking_branches_skips_head(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies the symbolic HEAD entry is dropped and listing order is kept."""
    mocker.patch.object(
        repo, "_run", return_value="origin\norigin/HEAD\norigin/develop\norigin/main\n"
    )
    assert repo.remote_tracking_branches() == ["origin/develop", "origin/main"]


def test_remote_tracking_branches_logs_failure(
    repo: GitRepo, mocker: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that a listing failure is logged and yields no branches."""
    mocker.patch.object(repo, "_run", side_effect=GitError("broken"))

    assert repo.remote_tracking_branches() == []
    assert "Git error listing remote branches" in caplog.text


def test_pull_is_fast_forward_only(repo: GitRepo, mocker: MagicMock) -> None:
    """Verifies that pulls never create merge commits."""
    mock_run = mocker.patch.object(repo, "_run")
    repo.pull("origin", "main")
    mock_run.assert_called_once_with(["pull", "--ff-only", "origin", "main"])


def test_clone_runs_in_parent_directory(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies that clone targets the destination and returns a wrapper for it."""
    dest = tmp_path / "tool"
    (dest / ".git").mkdir(parents=True)
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value.stdout = ""

    cloned = GitRepo.clone("https://github.com/me/tool.git", dest)

    assert cloned.path == dest
    args, kwargs = mock_run.call_args
    assert args[0] == ["git", "clone", "https://github.com/me/tool.git", str(dest)]
    assert kwargs["cwd"] == tmp_path


def test_global_config_get(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies unset keys and git failures both read as None."""
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value.stdout = "octocat\n"
    assert global_config_get("github.user", cwd=tmp_path) == "octocat"

    mock_run.side_effect = subprocess.CalledProcessError(1, ["git"], stderr="")
    assert global_config_get("github.user", cwd=tmp_path) is None
