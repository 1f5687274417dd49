"""Setup tool - clone, provision and register a project.

Steps, in order:
1. Ensure the clone root exists
2. Clone the repository unless the project directory already exists
3. Create <project>/.venv unless it already exists
4. Make venv executables group-executable (best effort)
5. Run build.sh, else pip install -r requirements.txt, else skip
6. Install the run target into the bin directory

Cloning runs with an isolated environment so a private or mistyped URL fails
at once instead of waiting on a credential prompt.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

from gitrepo import __version__
from gitrepo.primitives.errors import CommandFailedError, GitRepoError
from gitrepo.primitives.lockfile import ProjectLock
from gitrepo.primitives.subprocess import ProcessRunner
from gitrepo.runtime.settings import Settings
from gitrepo.runtime.venv import activated, make_executable, make_group_executable, venv_bin_dir
from gitrepo.tools.preflight import check_system_dependencies, required_tools
from gitrepo.tools.run_target import RunTargetInstaller
from gitrepo.utils.path_utils import ProjectPaths, ensure_directory

logger = logging.getLogger(__name__)

# Variables carried over from the caller into the clone environment
CLONE_ENV_KEEP = ("PATH", "LANG", "LC_ALL", "LC_CTYPE")


def isolated_git_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Build the complete environment for a non-interactive clone.

    Nothing credential-related (GITHUB_TOKEN, GIT_SSH_COMMAND, SSH_AUTH_SOCK,
    ...) survives; git is told never to prompt.
    """
    source = os.environ if environ is None else environ
    env = {key: source[key] for key in CLONE_ENV_KEEP if key in source}
    env.setdefault("PATH", os.defpath)
    env["HOME"] = "/tmp"
    env["GIT_ASKPASS"] = ""
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


class SetupTool:
    """Clone a repository and make it runnable from the bin directory."""

    def __init__(self, settings: Settings, runner: Optional[ProcessRunner] = None):
        self.settings = settings
        self.runner = runner or ProcessRunner()
        self.installer = RunTargetInstaller(settings.bin_dir)

    async def handle(self, name: str, url: str, force_create: bool = False) -> Dict[str, Any]:
        """Run the full setup for one project.

        Args:
            name: Project name.
            url: Git URL to clone from (ignored if the project already exists).
            force_create: Always generate a wrapper, even if run.sh exists.

        Returns:
            Summary dict with keys project, cloned, venv_created,
            dependencies ("build", "requirements" or "none") and run_target.

        Raises:
            GitRepoError: On any fatal condition.
        """
        logger.info("Starting project setup script (Version: %s)...", __version__)
        check_system_dependencies(required_tools(self.settings))

        paths = ProjectPaths.for_project(self.settings, name)
        self._ensure_base_dir()

        with ProjectLock(self.settings.base_dir, name):
            cloned = await self._clone(paths, url)
            venv_created = await self._create_venv(paths)
            self._relax_venv_permissions(paths)
            dependencies = await self._install_dependencies(paths)
            kind = self.installer.install(paths, force_create=force_create)

        logger.info("Project setup for '%s' completed successfully!", name)
        return {
            "project": name,
            "cloned": cloned,
            "venv_created": venv_created,
            "dependencies": dependencies,
            "run_target": kind.value,
        }

    def _ensure_base_dir(self) -> None:
        base_dir = self.settings.base_dir
        logger.info("Ensuring base directory '%s' exists...", base_dir)
        if base_dir.is_dir():
            logger.info("Base directory '%s' already exists.", base_dir)
            return
        try:
            ensure_directory(base_dir)
        except OSError as e:
            raise GitRepoError(
                f"Failed to create base directory '{base_dir}'. Please check permissions.",
                cause=e,
            ) from e
        logger.info("Base directory '%s' created.", base_dir)

    async def _clone(self, paths: ProjectPaths, url: str) -> bool:
        logger.info("Checking repository '%s' at '%s'...", paths.name, paths.project_dir)
        if paths.project_dir.is_dir():
            logger.warning(
                "Repository '%s' already exists at '%s'. Skipping cloning.",
                paths.name,
                paths.project_dir,
            )
            return False

        logger.info("Cloning '%s' to '%s'...", url, paths.project_dir)
        result = await self.runner.execute(
            ["git", "clone", url, str(paths.project_dir)],
            env=isolated_git_env(),
            inherit_env=False,
            capture=False,
        )
        if result.is_fatal:
            raise CommandFailedError(
                f"Failed to clone repository '{url}'. Check network access and URL.",
                result=result,
            )
        logger.info("Repository '%s' cloned successfully.", paths.name)
        return True

    async def _create_venv(self, paths: ProjectPaths) -> bool:
        logger.info(
            "Setting up virtual environment for '%s' at '%s'...", paths.name, paths.venv_dir
        )
        if paths.venv_dir.is_dir():
            logger.warning(
                "Virtual environment for '%s' already exists at '%s'. Skipping creation.",
                paths.name,
                paths.venv_dir,
            )
            return False

        result = await self.runner.execute(
            [self.settings.python, "-m", "venv", str(paths.venv_dir)],
            capture=False,
        )
        if result.is_fatal:
            raise CommandFailedError(
                f"Failed to create virtual environment for '{paths.name}'. "
                "Ensure 'python3-venv' or similar package is installed.",
                result=result,
            )
        logger.info("Virtual environment for '%s' created.", paths.name)
        return True

    def _relax_venv_permissions(self, paths: ProjectPaths) -> None:
        bin_dir = venv_bin_dir(paths.venv_dir)
        if not bin_dir.is_dir():
            return
        logger.info("Making virtual environment executables in '%s' group-executable...", bin_dir)
        try:
            failed = make_group_executable(bin_dir)
        except OSError as e:
            logger.warning("Failed to list virtual environment binaries in '%s': %s", bin_dir, e)
            return
        if failed:
            logger.warning(
                "Failed to set executable permissions for some venv binaries in '%s'. "
                "This might cause issues later.",
                bin_dir,
            )

    async def _install_dependencies(self, paths: ProjectPaths) -> str:
        if paths.build_script.is_file():
            await self._run_build_script(paths)
            return "build"
        if paths.requirements_file.is_file():
            await self._install_requirements(paths)
            return "requirements"
        logger.warning(
            "Neither 'build.sh' nor 'requirements.txt' found for '%s'. "
            "Skipping dependency/build step.",
            paths.name,
        )
        return "none"

    async def _run_build_script(self, paths: ProjectPaths) -> None:
        build_script = paths.build_script
        logger.info(
            "Found '%s' for '%s'. Running build script instead of installing from requirements.txt...",
            build_script,
            paths.name,
        )
        try:
            make_executable(build_script)
        except OSError as e:
            raise GitRepoError(f"Failed to make '{build_script}' executable.", cause=e) from e

        logger.info("Executing '%s' in '%s'...", build_script, paths.project_dir)
        result = await self.runner.execute(
            [str(build_script)], cwd=paths.project_dir, capture=False
        )
        if result.is_fatal:
            raise CommandFailedError(
                f"Build script '{build_script}' failed for '{paths.name}' "
                f"(exit status {result.return_code}). Check its output for details.",
                result=result,
            )
        logger.info("Build script '%s' executed successfully.", build_script)

    async def _install_requirements(self, paths: ProjectPaths) -> None:
        requirements = paths.requirements_file
        logger.info(
            "No 'build.sh' found. Installing dependencies for '%s' from '%s'...",
            paths.name,
            requirements,
        )
        if not paths.activate_script.is_file():
            raise GitRepoError(
                f"Virtual environment activation script not found at '{paths.activate_script}'. "
                "Cannot install dependencies."
            )

        pip = [
            str(venv_bin_dir(paths.venv_dir) / "python"),
            "-m",
            "pip",
            "install",
            "-r",
            str(requirements),
            "--no-input",
            "--disable-pip-version-check",
        ]
        with activated(paths.venv_dir) as env:
            result = await self.runner.execute(
                pip, cwd=paths.project_dir, env=env, inherit_env=False, capture=False
            )

        if result.is_fatal:
            raise CommandFailedError(
                f"Failed to install dependencies for '{paths.name}'. "
                f"Check '{requirements}' and log for detailed pip errors.",
                result=result,
            )
        logger.info("Dependencies for '%s' installed.", paths.name)
