"""Remove tool - delete a project's run target and directory.

Nothing is deleted unless:
- the project directory resolves strictly inside the clone root, and
- the run target sits directly inside the bin directory, and
- the user typed 'yes' at the confirmation prompt.
"""

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from gitrepo.primitives.errors import GitRepoError, UnsafePathError
from gitrepo.primitives.lockfile import ProjectLock
from gitrepo.runtime.settings import Settings
from gitrepo.utils.path_utils import ProjectPaths, is_strictly_within

logger = logging.getLogger(__name__)

CONFIRM_PROMPT = "Are you absolutely sure you want to proceed? (type 'yes' to confirm): "
CONFIRM_PATTERN = re.compile(r"^yes$", re.IGNORECASE)


def is_confirmed(answer: Optional[str]) -> bool:
    return bool(answer) and CONFIRM_PATTERN.match(answer.strip()) is not None


class RemoveTool:
    """Undo a project setup after interactive confirmation."""

    def __init__(self, settings: Settings, ask: Callable[[str], str]):
        """
        Args:
            settings: Resolved settings.
            ask: Prompt function returning the user's answer.
        """
        self.settings = settings
        self.ask = ask

    def handle(self, name: str) -> Dict[str, Any]:
        """Remove a project.

        Returns:
            Summary dict with keys project, confirmed, bin_entry_removed,
            project_dir_removed.

        Raises:
            UnsafePathError: If either path fails the containment checks.
            GitRepoError: If the project directory cannot be removed.
        """
        paths = ProjectPaths.for_project(self.settings, name)
        summary = {
            "project": name,
            "confirmed": False,
            "bin_entry_removed": False,
            "project_dir_removed": False,
        }

        logger.info("Initiating removal process for repository '%s'...", name)
        self._validate(paths)

        logger.warning(
            "This will permanently delete the executable/symbolic link at '%s' "
            "and the entire directory '%s'.",
            paths.bin_entry,
            paths.project_dir,
        )
        if not is_confirmed(self.ask(CONFIRM_PROMPT)):
            logger.info("Removal cancelled by user.")
            return summary
        summary["confirmed"] = True

        with ProjectLock(self.settings.base_dir, name):
            summary["bin_entry_removed"] = self._remove_bin_entry(paths)
            summary["project_dir_removed"] = self._remove_project_dir(paths)

        logger.info("Removal process for '%s' completed.", name)
        return summary

    def _validate(self, paths: ProjectPaths) -> None:
        project_dir = paths.project_dir
        if not is_strictly_within(project_dir, self.settings.base_dir):
            raise UnsafePathError(
                f"Attempted to remove an invalid or potentially dangerous path: '{project_dir}'. "
                "Refusing to proceed.",
                path=str(project_dir),
            )

        bin_entry = paths.bin_entry
        bin_dir = Path(os.path.abspath(self.settings.bin_dir))
        if bin_entry.parent != bin_dir or bin_entry.name in ("", ".", ".."):
            raise UnsafePathError(
                f"Attempted to remove an invalid or potentially dangerous path: '{bin_entry}'. "
                "Refusing to proceed.",
                path=str(bin_entry),
            )

    def _remove_bin_entry(self, paths: ProjectPaths) -> bool:
        bin_entry = paths.bin_entry
        if not (bin_entry.is_symlink() or bin_entry.is_file()):
            logger.warning(
                "Executable/symbolic link '%s' does not exist or is not a symlink/file. "
                "Skipping removal.",
                bin_entry,
            )
            return False

        logger.info("Removing executable/symbolic link: '%s'...", bin_entry)
        try:
            bin_entry.unlink()
        except OSError as e:
            logger.warning(
                "Failed to remove executable/symbolic link '%s' (%s). "
                "Manual removal may be required. Please check permissions.",
                bin_entry,
                e,
            )
            return False
        logger.info("Executable/symbolic link '%s' removed.", bin_entry)
        return True

    def _remove_project_dir(self, paths: ProjectPaths) -> bool:
        project_dir = paths.project_dir
        if not project_dir.is_dir():
            logger.warning(
                "Project directory '%s' does not exist. Skipping directory removal.", project_dir
            )
            return False

        logger.info("Removing project directory: '%s'...", project_dir)
        try:
            shutil.rmtree(project_dir)
        except OSError as e:
            raise GitRepoError(
                f"Failed to remove project directory '{project_dir}'. "
                "Manual removal may be required. Please check permissions.",
                cause=e,
            ) from e
        logger.info("Project directory '%s' removed successfully.", project_dir)
        return True
