"""Update tool - pull the latest upstream changes into a project.

Local edits are stashed (untracked files included) before the pull and
popped afterwards, whether or not the pull succeeded. Only the two
precondition checks are fatal; every later problem is a warning.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from gitrepo.primitives.errors import ProjectStateError
from gitrepo.primitives.lockfile import ProjectLock
from gitrepo.primitives.subprocess import ProcessRunner, Severity
from gitrepo.runtime.settings import Settings
from gitrepo.tools.preflight import check_system_dependencies, required_tools
from gitrepo.utils.path_utils import CACHE_DIR_NAME, ProjectPaths

logger = logging.getLogger(__name__)

STASH_MESSAGE = "git-repo-py update: temporary stash for {name}"


def remove_cache_dirs(root: Path) -> List[Path]:
    """Delete every __pycache__ directory under root.

    Returns:
        Directories that could not be removed.
    """
    failed: List[Path] = []
    for cache_dir in sorted(root.rglob(CACHE_DIR_NAME)):
        if cache_dir.is_symlink() or not cache_dir.is_dir():
            continue
        try:
            shutil.rmtree(cache_dir)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug("Could not remove %s: %s", cache_dir, e)
            failed.append(cache_dir)
    return failed


class UpdateTool:
    """Clean caches, stash, pull and restore a project checkout."""

    def __init__(self, settings: Settings, runner: Optional[ProcessRunner] = None):
        self.settings = settings
        self.runner = runner or ProcessRunner()

    async def handle(self, name: str) -> Dict[str, Any]:
        """Update a project.

        Returns:
            Summary dict with keys project, stashed, pulled and restored
            (None when nothing was stashed).

        Raises:
            ProjectStateError: If the project directory is missing or is not
                a Git repository.
        """
        paths = ProjectPaths.for_project(self.settings, name)
        project_dir = paths.project_dir

        logger.info("Initiating update process for repository '%s'...", name)
        if not project_dir.is_dir():
            raise ProjectStateError(
                f"Project directory '{project_dir}' does not exist. Cannot update.",
                path=str(project_dir),
            )
        if not paths.git_dir.exists():
            raise ProjectStateError(
                f"Project directory '{project_dir}' is not a Git repository. Cannot update.",
                path=str(project_dir),
            )
        check_system_dependencies(required_tools(self.settings, need_python=False))

        with ProjectLock(self.settings.base_dir, name):
            self._clean_caches(project_dir)

            stashed = False
            if await self._has_local_changes(project_dir):
                logger.info("Local changes detected. Stashing them before pull.")
                stashed = await self._stash(project_dir, name)
            else:
                logger.info("No local changes detected. Skipping stash.")

            pulled = await self._pull(project_dir, name)

            restored = None
            if stashed:
                restored = await self._pop(project_dir, name)

        logger.info("Update process for '%s' completed.", name)
        return {
            "project": name,
            "stashed": stashed,
            "pulled": pulled,
            "restored": restored,
        }

    def _clean_caches(self, project_dir: Path) -> None:
        logger.info("Cleaning up '%s' directories in '%s'...", CACHE_DIR_NAME, project_dir)
        try:
            failed = remove_cache_dirs(project_dir)
        except OSError as e:
            logger.warning("Failed to scan '%s' for cache directories: %s", project_dir, e)
            return
        if failed:
            logger.warning(
                "Failed to remove some '%s' directories. "
                "This might indicate permission issues or active processes.",
                CACHE_DIR_NAME,
            )
        else:
            logger.info("'%s' directories cleaned.", CACHE_DIR_NAME)

    async def _has_local_changes(self, project_dir: Path) -> bool:
        """Unstaged changes, staged changes or untracked (non-ignored) files."""
        logger.info("Checking for local changes in '%s'...", project_dir)
        unstaged = await self.runner.execute(
            ["git", "diff", "--quiet", "--exit-code"],
            cwd=project_dir,
            on_failure=Severity.WARNING,
        )
        if not unstaged.success:
            return True

        staged = await self.runner.execute(
            ["git", "diff", "--cached", "--quiet", "--exit-code"],
            cwd=project_dir,
            on_failure=Severity.WARNING,
        )
        if not staged.success:
            return True

        untracked = await self.runner.execute(
            ["git", "ls-files", "--others", "--exclude-standard"],
            cwd=project_dir,
            on_failure=Severity.WARNING,
        )
        return bool(untracked.stdout.strip())

    async def _stash(self, project_dir: Path, name: str) -> bool:
        result = await self.runner.execute(
            ["git", "stash", "push", "-u", "-m", STASH_MESSAGE.format(name=name)],
            cwd=project_dir,
            capture=False,
            on_failure=Severity.WARNING,
        )
        if result.is_warning:
            logger.warning(
                "Failed to stash local changes. Attempting pull without stashing, "
                "but this may lead to merge issues if there are conflicts. Please check manually."
            )
            return False
        logger.info("Local changes stashed.")
        return True

    async def _pull(self, project_dir: Path, name: str) -> bool:
        logger.info("Pulling latest changes for '%s'...", name)
        result = await self.runner.execute(
            ["git", "pull"],
            cwd=project_dir,
            capture=False,
            on_failure=Severity.WARNING,
        )
        if result.is_warning:
            logger.warning(
                "Git pull failed for '%s'. You may have merge conflicts or other issues "
                "that require manual resolution. (Exit status: %s)",
                name,
                result.return_code,
            )
            return False
        logger.info("Git pull completed successfully.")
        return True

    async def _pop(self, project_dir: Path, name: str) -> bool:
        logger.info("Attempting to pop stashed changes...")
        result = await self.runner.execute(
            ["git", "stash", "pop"],
            cwd=project_dir,
            capture=False,
            on_failure=Severity.WARNING,
        )
        if result.is_warning:
            logger.warning(
                "Failed to pop stashed changes for '%s'. This might be due to merge conflicts. "
                "You may need to resolve conflicts and run 'git stash pop' manually.",
                name,
            )
            return False
        logger.info("Stashed changes popped successfully.")
        return True
