"""Required system tool check."""

import logging
import shutil
from typing import Callable, List, Optional, Sequence

from gitrepo.primitives.errors import MissingToolError
from gitrepo.runtime.settings import Settings

logger = logging.getLogger(__name__)

VENV_HINT = (
    "For 'python3 -m venv' functionality, ensure your Python 3 installation "
    "includes the 'venv' module (e.g., on Debian/Ubuntu: 'sudo apt install python3-venv')."
)


def required_tools(settings: Settings, need_python: bool = True) -> List[str]:
    tools = ["git"]
    if need_python:
        tools.append(settings.python)
    return tools


def check_system_dependencies(
    tools: Sequence[str],
    which: Optional[Callable[[str], Optional[str]]] = None,
) -> None:
    """Fail if any of the given executables is not on PATH.

    Raises:
        MissingToolError: Listing every missing tool.
    """
    which = which or shutil.which
    logger.info("Checking for required system tools...")
    missing = [tool for tool in tools if not which(tool)]
    if missing:
        raise MissingToolError(
            "The following required system tools are not installed or not in PATH: "
            f"{' '.join(missing)}. Please install them and try again. {VENV_HINT}",
            tools=missing,
        )
    logger.info("All required system tools found.")
