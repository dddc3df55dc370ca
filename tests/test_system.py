from unittest.mock import MagicMock

import pytest

from git_vault import system
from git_vault.errors import ToolMissingError


def test_missing_tools(mocker: MagicMock) -> None:
    mocker.patch(
        "shutil.which", side_effect=lambda t: None if t == "git" else f"/usr/bin/{t}"
    )
    assert system.missing_tools(["git", "zip"]) == ["git"]


def test_require_tools_raises(mocker: MagicMock) -> None:
    mocker.patch("shutil.which", return_value=None)

    with pytest.raises(ToolMissingError, match="git") as exc:
        system.require_tools()
    assert exc.value.tools == ["git"]


def test_require_tools_passes(mocker: MagicMock) -> None:
    mocker.patch("shutil.which", return_value="/usr/bin/git")
    system.require_tools()
