"""Subprocess execution primitive.

Every external command (git, python -m venv, pip, build scripts) goes through
ProcessRunner. A failed command is reported through the returned ToolResult,
never raised; callers pick the severity a failure carries.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

logger = logging.getLogger(__name__)


class Severity(Enum):
    """How a command outcome should be treated by the caller."""

    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass
class ToolResult:
    """Result of running an external command.

    Attributes:
        success: True if return code is 0.
        stdout: Captured standard output ("" when not captured).
        stderr: Captured standard error ("" when not captured).
        return_code: Exit code from process (127 if the executable is missing).
        duration_ms: Time taken for execution in milliseconds.
        severity: OK on success, otherwise the severity requested by the caller.
    """

    success: bool
    stdout: str
    stderr: str
    return_code: int
    duration_ms: float
    severity: Severity = Severity.OK

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.FATAL

    @property
    def is_warning(self) -> bool:
        return self.severity is Severity.WARNING


class ProcessRunner:
    """Runs external commands one at a time and reports ToolResults."""

    async def execute(
        self,
        argv: Sequence[Union[str, Path]],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Dict[str, str]] = None,
        inherit_env: bool = True,
        capture: bool = True,
        timeout: Optional[float] = None,
        on_failure: Severity = Severity.FATAL,
    ) -> ToolResult:
        """Execute a command and wait for it.

        Args:
            argv: Command and arguments. argv[0] is looked up on PATH.
            cwd: Working directory for the child (optional).
            env: Environment variables for the child (optional).
            inherit_env: Merge env over os.environ when True, use env
                as the complete environment when False.
            capture: Capture stdout/stderr when True, let the child write
                to the terminal when False.
            timeout: Seconds before the child is killed. None waits forever.
            on_failure: Severity attached to the result if the command fails.

        Returns:
            ToolResult with execution details.
        """
        start_time = time.time()
        args = [str(a) for a in argv]
        process_env = self._prepare_env(env, inherit_env)
        pipe = asyncio.subprocess.PIPE if capture else None

        logger.debug("exec %s (cwd=%s)", " ".join(args), cwd or os.getcwd())

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd else None,
                env=process_env,
                stdout=pipe,
                stderr=pipe,
            )
        except FileNotFoundError:
            return self._result(
                start_time,
                return_code=127,
                stderr=f"command not found: {args[0]}",
                on_failure=on_failure,
            )
        except (NotADirectoryError, PermissionError) as e:
            return self._result(
                start_time,
                return_code=126,
                stderr=str(e),
                on_failure=on_failure,
            )

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return self._result(
                start_time,
                return_code=-1,
                stderr=f"{args[0]} timed out after {timeout} seconds",
                on_failure=on_failure,
            )

        return self._result(
            start_time,
            return_code=proc.returncode,
            stdout=stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else "",
            stderr=stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else "",
            on_failure=on_failure,
        )

    def _result(
        self,
        start_time: float,
        return_code: int,
        stdout: str = "",
        stderr: str = "",
        on_failure: Severity = Severity.FATAL,
    ) -> ToolResult:
        success = return_code == 0
        return ToolResult(
            success=success,
            stdout=stdout,
            stderr=stderr,
            return_code=return_code,
            duration_ms=(time.time() - start_time) * 1000,
            severity=Severity.OK if success else on_failure,
        )

    def _prepare_env(
        self, env: Optional[Dict[str, str]], inherit_env: bool
    ) -> Dict[str, str]:
        if not inherit_env:
            return dict(env or {})
        result = os.environ.copy()
        if env:
            result.update(env)
        return result
