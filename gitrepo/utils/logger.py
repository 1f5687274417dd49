"""
Logger utility for git-repo.

Console output mirrors the classic shell tool:
- [INFO] lines on stdout, [WARN]/[ERROR] lines on stderr, each stamped with
  the local time and coloured when the stream is a terminal.

Rotating file logs in the log directory (default ~/.local/state/git-repo/logs):
- git-repo.log: Main log with 5MB rotation, keeps 3 backups
- git-repo.json: Structured JSON, 5MB rotation, keeps 2 backups
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

LOGGER_NAMES = ("gitrepo", "gitrepo_cli")

RESET = "\033[0m"
LEVEL_STYLES = {
    logging.DEBUG: ("DEBUG", "\033[0;36m"),
    logging.INFO: ("INFO", "\033[0;32m"),
    logging.WARNING: ("WARN", "\033[0;33m"),
    logging.ERROR: ("ERROR", "\033[0;31m"),
    logging.CRITICAL: ("ERROR", "\033[0;31m"),
}


class ConsoleFormatter(logging.Formatter):
    """[LEVEL] YYYY-mm-dd HH:MM:SS message, optionally coloured."""

    def __init__(self, color: bool = False):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        label, color = LEVEL_STYLES.get(record.levelno, (record.levelname, ""))
        line = f"[{label}] {self.formatTime(record, self.datefmt)} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        if self.color and color:
            return f"{color}{line}{RESET}"
        return line


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class _MaxLevelFilter(logging.Filter):
    """Pass records strictly below a level."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.max_level


def _is_tty(stream) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _console_handlers(debug: bool):
    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    out_handler.addFilter(_MaxLevelFilter(logging.WARNING))
    out_handler.setFormatter(ConsoleFormatter(color=_is_tty(sys.stdout)))

    err_handler = logging.StreamHandler(sys.stderr)
    err_handler.setLevel(logging.WARNING)
    err_handler.setFormatter(ConsoleFormatter(color=_is_tty(sys.stderr)))
    return [out_handler, err_handler]


def _file_handlers(log_dir: Path):
    log_dir.mkdir(parents=True, exist_ok=True)

    main_handler = RotatingFileHandler(
        log_dir / "git-repo.log", maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    main_handler.setLevel(logging.DEBUG)
    main_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    json_handler = RotatingFileHandler(
        log_dir / "git-repo.json", maxBytes=5 * 1024 * 1024, backupCount=2, encoding="utf-8"
    )
    json_handler.setLevel(logging.INFO)
    json_handler.setFormatter(JsonFormatter())
    return [main_handler, json_handler]


def setup_logging(
    log_dir: Optional[Path] = None,
    debug: bool = False,
    names: Iterable[str] = LOGGER_NAMES,
) -> None:
    """
    (Re)configure the package loggers.

    Existing handlers are closed and replaced so repeated calls (one per CLI
    invocation) never duplicate output.

    Args:
        log_dir: Directory for rotating file logs. None disables file logging.
        debug: Lower the console threshold to DEBUG.
        names: Logger names to configure.
    """
    handlers = _console_handlers(debug)
    if log_dir is not None:
        try:
            handlers.extend(_file_handlers(Path(log_dir)))
        except OSError:
            pass  # console handlers still attached

    for name in names:
        logger = logging.getLogger(name)
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        for handler in handlers:
            logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
