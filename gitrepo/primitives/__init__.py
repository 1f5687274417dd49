"""git-repo primitives: error types, process execution, locking."""

from gitrepo.primitives.errors import (
    CommandFailedError,
    ConfigurationError,
    GitRepoError,
    LockError,
    MissingToolError,
    ProjectStateError,
    UnsafePathError,
    UsageError,
)
from gitrepo.primitives.lockfile import ProjectLock
from gitrepo.primitives.subprocess import ProcessRunner, Severity, ToolResult

__all__ = [
    # Errors
    "GitRepoError",
    "UsageError",
    "ConfigurationError",
    "MissingToolError",
    "CommandFailedError",
    "UnsafePathError",
    "ProjectStateError",
    "LockError",
    # Lock
    "ProjectLock",
    # Subprocess
    "ProcessRunner",
    "Severity",
    "ToolResult",
]
