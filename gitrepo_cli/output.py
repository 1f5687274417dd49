"""Shared output utilities for CLI modes."""

import asyncio
import logging
import sys
from typing import Any, Coroutine

from gitrepo.primitives.errors import GitRepoError

logger = logging.getLogger(__name__)


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync context."""
    return asyncio.run(coro)


def prompt_user(prompt: str) -> str:
    """Read one line from the terminal. End of input counts as no answer."""
    try:
        return input(prompt)
    except EOFError:
        print(file=sys.stderr)
        return ""


def fail(error: GitRepoError) -> int:
    """Log a fatal error and return the exit code for it."""
    logger.error("%s", error.message)
    if error.cause is not None:
        logger.debug("Caused by: %r", error.cause)
    return error.exit_code
