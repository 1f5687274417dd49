"""Path utilities for project layout and safe deletion.

Provides:
- ProjectPaths: every path git-repo touches for one project
- is_strictly_within: containment check used before any recursive delete
- ensure_directory: mkdir -p
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from gitrepo.runtime.settings import Settings
from gitrepo.runtime.venv import VENV_DIR_NAME, activate_script

logger = logging.getLogger(__name__)

RUN_SCRIPT_NAME = "run.sh"
MAIN_SCRIPT_NAME = "main.py"
REQUIREMENTS_FILE_NAME = "requirements.txt"
BUILD_SCRIPT_NAME = "build.sh"
GIT_DIR_NAME = ".git"
CACHE_DIR_NAME = "__pycache__"


@dataclass(frozen=True)
class ProjectPaths:
    """Filesystem layout of one managed project.

    Attributes:
        name: Project name (directory basename and run-target basename).
        project_dir: <base_dir>/<name>
        bin_entry: <bin_dir>/<name>, the project's run target
    """

    name: str
    project_dir: Path
    bin_entry: Path

    @classmethod
    def for_project(cls, settings: Settings, name: str) -> "ProjectPaths":
        return cls(
            name=name,
            project_dir=Path(os.path.abspath(settings.base_dir / name)),
            bin_entry=Path(os.path.abspath(settings.bin_dir / name)),
        )

    @property
    def venv_dir(self) -> Path:
        return self.project_dir / VENV_DIR_NAME

    @property
    def activate_script(self) -> Path:
        return activate_script(self.venv_dir)

    @property
    def run_script(self) -> Path:
        return self.project_dir / RUN_SCRIPT_NAME

    @property
    def main_script(self) -> Path:
        return self.project_dir / MAIN_SCRIPT_NAME

    @property
    def requirements_file(self) -> Path:
        return self.project_dir / REQUIREMENTS_FILE_NAME

    @property
    def build_script(self) -> Path:
        return self.project_dir / BUILD_SCRIPT_NAME

    @property
    def git_dir(self) -> Path:
        return self.project_dir / GIT_DIR_NAME


def is_strictly_within(path: Path, root: Path) -> bool:
    """True if path resolves to a location strictly below root.

    Symlinks are followed on both sides, so a link pointing out of root is
    reported as outside. The filesystem root and root itself are never
    "within".
    """
    if not str(path).strip():
        return False
    resolved = Path(path).resolve()
    resolved_root = Path(root).resolve()
    if resolved == Path(resolved.anchor) or resolved == resolved_root:
        return False
    return resolved_root in resolved.parents


def ensure_directory(path: Path) -> Path:
    """Ensure directory exists, creating it and all parents if necessary.

    Raises:
        OSError: If directory cannot be created
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
