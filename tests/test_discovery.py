from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_vault.discovery import discover_local, discover_remote
from git_vault.errors import DiscoveryError, ProviderError
from git_vault.github import RemoteRepository
from git_vault.models import SourceKind


def test_discover_local_lists_git_directories_in_order(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    import logging

    caplog.set_level(logging.INFO, logger="git-vault")
    for name in ["zeta", "alpha", "mid"]:
        (tmp_path / name / ".git").mkdir(parents=True)
    (tmp_path / "notes").mkdir()
    (tmp_path / "todo.txt").write_text("x")

    sources = discover_local(tmp_path)

    assert [s.name for s in sources] == ["alpha", "mid", "zeta"]
    assert all(s.kind is SourceKind.LOCAL for s in sources)
    assert "Skipping non-git directory: notes" in caplog.text


def test_discover_local_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(DiscoveryError, match="not found"):
        discover_local(tmp_path / "missing")


def test_discover_remote_keeps_provider_order() -> None:
    client = MagicMock()
    client.iter_repositories.return_value = iter(
        [
            RemoteRepository("newest", "https://h/o/newest.git", "git@h:o/newest.git"),
            RemoteRepository("older", "https://h/o/older.git", ""),
        ]
    )

    sources = discover_remote(client, "o", protocol="ssh")

    assert [s.name for s in sources] == ["newest", "older"]
    assert sources[0].location == "git@h:o/newest.git"
    # No SSH URL advertised, fall back to HTTPS.
    assert sources[1].location == "https://h/o/older.git"
    assert all(s.kind is SourceKind.REMOTE for s in sources)


def test_discover_remote_propagates_provider_error() -> None:
    client = MagicMock()
    client.iter_repositories.side_effect = ProviderError("boom")

    with pytest.raises(ProviderError):
        discover_remote(client, "o")
