import logging
import shutil

from .constants import APP_NAME, REQUIRED_TOOLS
from .errors import ToolMissingError

logger = logging.getLogger(APP_NAME)


def missing_tools(tools: list[str] | None = None) -> list[str]:
    """Returns the executables from `tools` that are not on PATH.

    Args:
        tools (list[str] | None): Executables to check. Defaults to REQUIRED_TOOLS.
    """
    return [t for t in (tools or REQUIRED_TOOLS) if shutil.which(t) is None]


def require_tools(tools: list[str] | None = None) -> None:
    """Ensures every required executable is installed.

    Raises:
        ToolMissingError: If any of them is missing.
    """
    if missing := missing_tools(tools):
        raise ToolMissingError(missing)
    logger.debug(f"Tools available: {', '.join(tools or REQUIRED_TOOLS)}")
