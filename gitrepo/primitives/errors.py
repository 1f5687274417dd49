"""Error types for git-repo.

Every exception here is fatal: it aborts the current invocation and the CLI
turns it into a non-zero exit. Recoverable problems are logged as warnings
and never raised. External commands that fail do not raise by themselves;
the runner returns a ToolResult and the caller decides.
"""

from typing import Any, List, Optional


class GitRepoError(Exception):
    """Base exception for fatal git-repo failures.

    Attributes:
        message: Error description.
        cause: Optional underlying exception being wrapped.
    """

    exit_code = 1

    def __init__(self, message: str, cause: Optional[Exception] = None):
        """Initialize GitRepoError.

        Args:
            message: Description of the error.
            cause: Optional exception that triggered this error.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause


class UsageError(GitRepoError):
    """Required command-line arguments are missing."""

    exit_code = 2


class ConfigurationError(GitRepoError):
    """Configuration error (bad config file, invalid value, etc).

    Attributes:
        message: Description of the error.
        field: Optional field name that failed.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class MissingToolError(GitRepoError):
    """One or more required system tools are not on PATH.

    Attributes:
        tools: Names of the missing tools.
    """

    def __init__(self, message: str, tools: Optional[List[str]] = None):
        super().__init__(message)
        self.tools = list(tools or [])


class CommandFailedError(GitRepoError):
    """An external command exited non-zero where that is fatal.

    Attributes:
        result: The ToolResult of the failed command, if any.
    """

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result


class UnsafePathError(GitRepoError):
    """A path failed the containment check and must not be deleted.

    Attributes:
        path: The offending path.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ProjectStateError(GitRepoError):
    """The project on disk is not in the state an operation requires.

    Attributes:
        path: The project path that was checked.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class LockError(GitRepoError):
    """Another invocation holds the project lock.

    Attributes:
        path: Path to the lock file.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
