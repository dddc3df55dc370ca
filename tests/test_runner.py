import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_vault import runner
from git_vault.config import Config
from git_vault.errors import GitError, ProviderError, ToolMissingError
from git_vault.github import RemoteRepository


@pytest.fixture(autouse=True)
def reset_logger() -> None:
    """Detaches the handlers a run attaches so later tests start clean."""
    yield
    logger = logging.getLogger("git-vault")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def context(tmp_path: Path, mocker: MagicMock) -> runner.RunContext:
    mocker.patch("git_vault.runner.system.require_tools")
    conf = Config()
    conf.core.projects_dir = tmp_path / "Projects"
    conf.backup.destination = tmp_path / "Backup"
    conf.backup.archive_dir = tmp_path / "archives"
    return runner.RunContext(
        config=conf,
        log_file=tmp_path / "logs" / "backup.log",
        error_log_file=tmp_path / "logs" / "backup-error.log",
        interactive=False,
    )


def _make_repo(projects: Path, name: str) -> None:
    (projects / name / ".git").mkdir(parents=True)
    (projects / name / f"{name}.txt").write_text(name)


def test_partial_failure_scenario(context: runner.RunContext, mocker: MagicMock) -> None:
    """Two local repositories: one pulls cleanly, one cannot fetch.

    The run reports one success and one failure, and the backup holds only the
    first repository's files.
    """
    projects = context.config.core.projects_dir
    _make_repo(projects, "good")
    _make_repo(projects, "broken")

    good, broken = MagicMock(), MagicMock()
    good.remote_head_branch.return_value = "main"
    good.current_branch.return_value = "main"
    broken.fetch.side_effect = GitError("git fetch failed: Could not resolve host")
    repos = {"good": good, "broken": broken}
    mocker.patch("git_vault.sync.GitRepo", side_effect=lambda p: repos[p.name])

    result = runner.execute("backup", context)

    assert result is not None
    assert result.summary.total == 2
    assert result.summary.succeeded == 1
    assert result.summary.failed == 1
    dest = context.config.backup.destination
    assert (dest / "good" / "good.txt").read_text() == "good"
    assert not (dest / "broken").exists()
    assert result.artifact.repositories == frozenset({"good"})
    good.pull.assert_called_once_with("origin", "main")

    error_log = context.error_log_file.read_text()
    assert "FAILED broken" in error_log
    assert "good" not in error_log


def test_missing_projects_dir_is_fatal(context: runner.RunContext) -> None:
    result = runner.execute("backup", context)

    assert result is None
    assert "FATAL: Projects directory not found" in context.error_log_file.read_text()
    assert "FATAL" in context.log_file.read_text()
    assert not context.config.backup.destination.exists()


def test_missing_tool_is_fatal(context: runner.RunContext, mocker: MagicMock) -> None:
    mocker.patch(
        "git_vault.runner.system.require_tools",
        side_effect=ToolMissingError(["git"]),
    )

    assert runner.execute("backup", context) is None
    assert "Required tool(s) not found on PATH: git" in context.error_log_file.read_text()


def test_provider_error_aborts_clone_all(
    context: runner.RunContext, mocker: MagicMock
) -> None:
    """Verifies that a discovery API error processes no repositories at all."""
    context.user = "octo"
    client_cls = mocker.patch("git_vault.runner.GitHubClient")
    client_cls.return_value.iter_repositories.side_effect = ProviderError(
        "GitHub API error (HTTP 403): API rate limit exceeded"
    )
    git_cls = mocker.patch("git_vault.sync.GitRepo")

    assert runner.execute("clone-all", context) is None
    git_cls.clone.assert_not_called()
    git_cls.assert_not_called()
    assert "rate limit" in context.error_log_file.read_text()


def test_clone_all_archives_synced_repositories(
    context: runner.RunContext, mocker: MagicMock
) -> None:
    context.user = "octo"
    context.config.backup.mode = "archive"
    projects = context.config.core.projects_dir

    client = mocker.patch("git_vault.runner.GitHubClient").return_value
    client.iter_repositories.return_value = iter(
        [
            RemoteRepository("fresh", "https://h/octo/fresh.git"),
            RemoteRepository("dead", "https://h/octo/dead.git"),
        ]
    )

    def clone(url: str, dest: Path) -> MagicMock:
        if "dead" in url:
            raise GitError("git clone failed: repository not found")
        _make_repo(dest.parent, dest.name)
        repo = MagicMock()
        repo.remote_head_branch.return_value = "main"
        repo.current_branch.return_value = "main"
        return repo

    git_cls = mocker.patch("git_vault.sync.GitRepo")
    git_cls.clone.side_effect = clone

    result = runner.execute("clone-all", context)

    assert result is not None
    assert result.summary.succeeded == 1
    assert result.summary.failed == 1
    assert result.artifact.path.parent == context.config.backup.archive_dir
    assert result.artifact.path.name.startswith("Projects-backup-")
    assert result.artifact.repositories == frozenset({"fresh"})


def test_setup_logging_splits_error_log(context: runner.RunContext) -> None:
    runner.setup_logging(context)
    logger = logging.getLogger("git-vault")

    logger.info("routine message")
    logger.error("something broke")

    assert "routine message" in context.log_file.read_text()
    assert "something broke" in context.log_file.read_text()
    assert "routine message" not in context.error_log_file.read_text()
    assert "something broke" in context.error_log_file.read_text()

    # A second setup must not duplicate output.
    runner.setup_logging(context)
    assert len(logger.handlers) == 3
