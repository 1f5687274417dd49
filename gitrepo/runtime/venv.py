"""Virtual environment helpers.

"Activating" a venv for a child process means what bin/activate does to a
shell: VIRTUAL_ENV is set, the venv's bin directory goes first on PATH and
PYTHONHOME is dropped. The parent's own environment is never modified.
"""

import logging
import os
import stat
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

logger = logging.getLogger(__name__)

VENV_DIR_NAME = ".venv"


def venv_bin_dir(venv_dir: Path) -> Path:
    return Path(venv_dir) / "bin"


def activate_script(venv_dir: Path) -> Path:
    return venv_bin_dir(venv_dir) / "activate"


def activated_env(
    venv_dir: Path, base_env: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Return a copy of base_env as bin/activate would leave it."""
    env = dict(os.environ if base_env is None else base_env)
    bin_dir = str(venv_bin_dir(venv_dir))
    env["VIRTUAL_ENV"] = str(venv_dir)
    env["PATH"] = os.pathsep.join(p for p in (bin_dir, env.get("PATH", "")) if p)
    env.pop("PYTHONHOME", None)
    return env


@contextmanager
def activated(venv_dir: Path) -> Iterator[Dict[str, str]]:
    """Yield an activated environment for child processes started in the block.

    Activation is per child: nothing here touches os.environ, so leaving the
    block is all the deactivation there is.
    """
    logger.debug("Activating virtual environment %s", venv_dir)
    try:
        yield activated_env(venv_dir)
    finally:
        logger.debug("Deactivated virtual environment %s", venv_dir)


def make_group_executable(bin_dir: Path) -> List[Path]:
    """Add g+x to every regular file in bin_dir.

    Returns:
        Files whose mode could not be changed. Empty on full success.
    """
    failed: List[Path] = []
    for entry in sorted(Path(bin_dir).iterdir()):
        if entry.is_symlink() or not entry.is_file():
            continue
        try:
            mode = entry.stat().st_mode
            entry.chmod(mode | stat.S_IXGRP)
        except OSError as e:
            logger.debug("chmod g+x failed for %s: %s", entry, e)
            failed.append(entry)
    return failed


def make_executable(path: Path) -> None:
    """chmod +x (user, group, other). Raises OSError on failure."""
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
