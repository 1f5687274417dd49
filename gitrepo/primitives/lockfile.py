"""Advisory per-project lock.

Two invocations against the same project name would otherwise race on the
clone, the venv and the bin entry. The lock is an exclusive, non-blocking
flock on <base_dir>/.locks/<name>.lock; the file itself is left in place.
"""

import fcntl
import logging
import os
from pathlib import Path
from typing import Optional

from gitrepo.primitives.errors import LockError

logger = logging.getLogger(__name__)

LOCK_DIR_NAME = ".locks"


class ProjectLock:
    """Context manager holding the lock for one project.

    Usage:
        with ProjectLock(settings.base_dir, "demo"):
            ...
    """

    def __init__(self, base_dir: Path, name: str):
        self.path = Path(base_dir) / LOCK_DIR_NAME / f"{name}.lock"
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> "ProjectLock":
        """Take the lock or raise LockError if another process holds it."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(self.path), os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise LockError(
                f"Cannot create lock file '{self.path}': {e}", path=str(self.path)
            ) from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            raise LockError(
                f"Another git-repo operation is in progress for this project "
                f"(lock held on '{self.path}').",
                path=str(self.path),
            ) from e

        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        self._fd = fd
        logger.debug("Acquired lock %s", self.path)
        return self

    def release(self) -> None:
        if not self.held:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug("Released lock %s", self.path)

    def __enter__(self) -> "ProjectLock":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
