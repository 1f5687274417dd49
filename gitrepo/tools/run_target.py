"""Run-target resolution and generation.

Every project gets exactly one entry at <bin_dir>/<name>:

    run.sh exists | force_create | entry
    --------------+--------------+------------------------------------
    yes           | no           | symlink -> <project>/run.sh
    yes           | yes          | generated wrapper script
    no            | either       | generated wrapper script

Whatever sat at that path before is replaced. The new entry is created under
a temporary name in the bin directory and renamed over the old one, so the
path is never missing.
"""

import logging
import os
import shlex
from enum import Enum
from pathlib import Path
from typing import Callable

from gitrepo import __version__
from gitrepo.primitives.errors import GitRepoError
from gitrepo.runtime.venv import VENV_DIR_NAME, make_executable
from gitrepo.utils.path_utils import MAIN_SCRIPT_NAME, ProjectPaths, ensure_directory

logger = logging.getLogger(__name__)


class RunTargetKind(Enum):
    SYMLINK = "symlink"
    WRAPPER = "wrapper"


WRAPPER_TEMPLATE = """\
#!/bin/bash
# This script was automatically generated by git-repo (Version: {version}).
# It acts as a wrapper to run the main Python application within its virtual environment.

# The actual project directory where the repository was cloned
PROJECT_ROOT={project_root}
VENV_DIR="${{PROJECT_ROOT}}/{venv_dir_name}"
MAIN_PYTHON_SCRIPT="${{PROJECT_ROOT}}/{main_script_name}"
ACTIVATE_SCRIPT="${{VENV_DIR}}/bin/activate"

if [ ! -d "$PROJECT_ROOT" ]; then
    echo "ERROR: Project directory '$PROJECT_ROOT' not found or accessible." >&2
    exit 1
fi

if [ ! -f "$MAIN_PYTHON_SCRIPT" ]; then
    echo "ERROR: Main Python script '$MAIN_PYTHON_SCRIPT' not found in project directory." >&2
    echo "Please ensure '{main_script_name}' exists in '$PROJECT_ROOT' or adjust the generated script." >&2
    exit 1
fi

if [ ! -f "$ACTIVATE_SCRIPT" ]; then
    echo "ERROR: Virtual environment activation script not found at '$ACTIVATE_SCRIPT'." >&2
    echo "Please ensure the virtual environment is correctly set up in '$VENV_DIR'." >&2
    exit 1
fi

source "$ACTIVATE_SCRIPT"
if [ $? -ne 0 ]; then
    echo "ERROR: Failed to activate virtual environment at '$ACTIVATE_SCRIPT'." >&2
    exit 1
fi

python "$MAIN_PYTHON_SCRIPT" "$@"
RUN_STATUS=$?

if declare -f deactivate &>/dev/null; then
    deactivate
fi

exit $RUN_STATUS
"""


def resolve_run_target(project_run_script_exists: bool, force_create: bool) -> RunTargetKind:
    """Pick the run-target form for a project."""
    if project_run_script_exists and not force_create:
        return RunTargetKind.SYMLINK
    return RunTargetKind.WRAPPER


def render_wrapper(project_dir: Path) -> str:
    """Return the wrapper script text for a project directory."""
    return WRAPPER_TEMPLATE.format(
        version=__version__,
        project_root=shlex.quote(str(project_dir)),
        venv_dir_name=VENV_DIR_NAME,
        main_script_name=MAIN_SCRIPT_NAME,
    )


class RunTargetInstaller:
    """Install the run target for a project into the bin directory."""

    def __init__(self, bin_dir: Path):
        self.bin_dir = Path(bin_dir)

    def install(self, paths: ProjectPaths, force_create: bool = False) -> RunTargetKind:
        """Resolve and write the run target.

        Returns:
            The kind of entry now present at paths.bin_entry.

        Raises:
            GitRepoError: If the bin directory, the symlink or the wrapper
                cannot be created.
        """
        self._ensure_bin_dir()

        target = paths.bin_entry
        if target.is_symlink() or target.exists():
            logger.warning(
                "Existing file or symlink found at '%s'. Replacing it with a new one.", target
            )

        kind = resolve_run_target(paths.run_script.is_file(), force_create)
        if kind is RunTargetKind.SYMLINK:
            self._install_symlink(paths)
        else:
            if force_create:
                logger.info(
                    "Force-creating default Python wrapper script at '%s' "
                    "(ignoring existing project 'run.sh' if any).",
                    target,
                )
            else:
                logger.warning(
                    "No 'run.sh' found in project directory ('%s'). "
                    "Generating default Python wrapper script directly at '%s'.",
                    paths.run_script,
                    target,
                )
            self._install_wrapper(paths)
        return kind

    def _ensure_bin_dir(self) -> None:
        logger.info("Ensuring target bin directory '%s' exists...", self.bin_dir)
        if self.bin_dir.is_dir():
            logger.info("Target bin directory '%s' already exists.", self.bin_dir)
            return
        try:
            ensure_directory(self.bin_dir)
        except OSError as e:
            raise GitRepoError(
                f"Failed to create target bin directory '{self.bin_dir}'. Please check permissions.",
                cause=e,
            ) from e
        logger.info("Target bin directory '%s' created.", self.bin_dir)

    def _install_symlink(self, paths: ProjectPaths) -> None:
        run_script = paths.run_script
        logger.info(
            "'run.sh' found in project directory ('%s'). "
            "Making it executable and creating a symbolic link.",
            run_script,
        )
        try:
            make_executable(run_script)
        except OSError as e:
            raise GitRepoError(f"Failed to make '{run_script}' executable.", cause=e) from e

        logger.info("Creating symlink from '%s' to '%s'...", run_script, paths.bin_entry)
        try:
            self._replace(paths.bin_entry, lambda tmp: tmp.symlink_to(run_script))
        except OSError as e:
            raise GitRepoError(
                f"Failed to create symbolic link for '{paths.name}' at '{paths.bin_entry}'. "
                "This might require sudo privileges.",
                cause=e,
            ) from e
        logger.info(
            "Symbolic link for '%s' created successfully at '%s' pointing to '%s'.",
            paths.name,
            paths.bin_entry,
            run_script,
        )

    def _install_wrapper(self, paths: ProjectPaths) -> None:
        content = render_wrapper(paths.project_dir)

        def write(tmp: Path) -> None:
            try:
                tmp.write_text(content, encoding="utf-8")
            except OSError as e:
                raise GitRepoError(
                    f"Failed to create wrapper script at '{paths.bin_entry}'. Please check permissions.",
                    cause=e,
                ) from e
            try:
                tmp.chmod(0o755)
            except OSError as e:
                raise GitRepoError(
                    f"Failed to make wrapper script '{paths.bin_entry}' executable.", cause=e
                ) from e

        try:
            self._replace(paths.bin_entry, write)
        except OSError as e:
            raise GitRepoError(
                f"Failed to create wrapper script at '{paths.bin_entry}'. Please check permissions.",
                cause=e,
            ) from e
        logger.info(
            "Wrapper script for '%s' created successfully at '%s'.", paths.name, paths.bin_entry
        )

    def _replace(self, target: Path, create: Callable[[Path], None]) -> None:
        """Create a new entry via create(tmp) and rename it over target."""
        tmp = target.with_name(f".{target.name}.{os.getpid()}.tmp")
        self._discard(tmp)
        try:
            create(tmp)
            os.replace(tmp, target)
        except BaseException:
            self._discard(tmp)
            raise

    @staticmethod
    def _discard(path: Path) -> None:
        if path.is_symlink() or path.exists():
            try:
                path.unlink()
            except OSError:
                logger.debug("Could not remove temporary entry %s", path)
