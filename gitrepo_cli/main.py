"""git-repo entry point.

Classifies the command line into exactly one operating mode and dispatches
to the matching handler in gitrepo_cli.modes:

    git-repo <name> <url>                         setup
    git-repo --build-python-run|-bpr <name> <url> setup (same as default)
    git-repo --force-create-run|-fcr <name> <url> setup, always generate wrapper
    git-repo --remove|-r <name>                   removal
    git-repo --update|-u <name>                   update
    git-repo --help|-h                            usage

When several mode flags are given: help > remove > update >
force-create-run > build-python-run > setup. Unknown flags and surplus
positionals are reported and ignored.
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from gitrepo import __version__
from gitrepo.primitives.errors import ConfigurationError, GitRepoError, UsageError
from gitrepo.runtime.settings import Settings, load_settings
from gitrepo.utils.logger import setup_logging
from gitrepo_cli.modes import remove, setup, update
from gitrepo_cli.output import fail

logger = logging.getLogger(__name__)

PROG = "git-repo"


class Mode(Enum):
    HELP = "help"
    REMOVE = "remove"
    UPDATE = "update"
    FORCE_CREATE_RUN = "force-create-run"
    BUILD_RUN = "build-python-run"
    SETUP = "setup"


# (parsed flag attribute, mode) in precedence order
MODE_FLAGS = [
    ("help", Mode.HELP),
    ("remove", Mode.REMOVE),
    ("update", Mode.UPDATE),
    ("force_create_run", Mode.FORCE_CREATE_RUN),
    ("build_run", Mode.BUILD_RUN),
]

USAGE = {
    Mode.REMOVE: (
        f"Usage for removal: {PROG} --remove <repository_name>\n"
        f"Example: {PROG} --remove my-web-app"
    ),
    Mode.UPDATE: (
        f"Usage for update: {PROG} --update <repository_name>\n"
        f"Example: {PROG} --update my-web-app"
    ),
    Mode.FORCE_CREATE_RUN: (
        f"Usage for setup modes (--build-python-run/-bpr, --force-create-run/-fcr): "
        f"{PROG} <option> <repository_name> <github_url>\n"
        f"Example: {PROG} --force-create-run my-web-app https://github.com/myuser/my-web-app.git"
    ),
    Mode.SETUP: (
        f"Usage for default setup: {PROG} <repository_name> <github_url>\n"
        f"Example: {PROG} my-web-app https://github.com/myuser/my-web-app.git"
    ),
}
USAGE[Mode.BUILD_RUN] = USAGE[Mode.FORCE_CREATE_RUN]

HANDLERS: Dict[Mode, Callable] = {
    Mode.SETUP: setup.handle,
    Mode.BUILD_RUN: setup.handle,
    Mode.FORCE_CREATE_RUN: setup.handle,
    Mode.REMOVE: remove.handle,
    Mode.UPDATE: update.handle,
}


@dataclass
class Invocation:
    """One classified command line."""

    mode: Mode
    name: Optional[str] = None
    url: Optional[str] = None
    debug: bool = False
    ignored: List[str] = field(default_factory=list)

    @property
    def force_create(self) -> bool:
        return self.mode is Mode.FORCE_CREATE_RUN

    @property
    def needs_url(self) -> bool:
        return self.mode in (Mode.SETUP, Mode.BUILD_RUN, Mode.FORCE_CREATE_RUN)

    def require_arguments(self) -> None:
        """Raise UsageError if the mode's positionals are missing."""
        if self.mode is Mode.HELP:
            return
        if not self.name or (self.needs_url and not self.url):
            raise UsageError(USAGE[self.mode])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        usage=f"{PROG} [OPTIONS] <repository_name> [github_url]",
        description="Set up, remove and update Python projects cloned from Git repositories.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("-h", "--help", action="store_true",
                        help="Display this help message and exit")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")

    remove.register(parser)
    update.register(parser)
    setup.register(parser)

    return parser


def classify(argv: Sequence[str], parser: Optional[argparse.ArgumentParser] = None) -> Invocation:
    """Turn an argument list into an Invocation. Never fails on bad input."""
    parser = parser or build_parser()

    # Only exact flag spellings reach argparse; combined short flags and
    # "--flag=value" forms would otherwise make it exit.
    ignored = []
    known = []
    for token in argv:
        if token.startswith("-") and token not in parser._option_string_actions:
            ignored.append(f"Unknown option: {token}. Ignoring.")
        else:
            known.append(token)

    # Mode flags take no values, so every leftover token is a positional.
    args, positionals = parser.parse_known_args(known)

    for extra in positionals[2:]:
        ignored.append(f"Unexpected argument: {extra}. Ignoring.")
    name = positionals[0] if len(positionals) > 0 else None
    url = positionals[1] if len(positionals) > 1 else None

    mode = Mode.SETUP
    for attr, candidate in MODE_FLAGS:
        if getattr(args, attr):
            mode = candidate
            break

    return Invocation(mode=mode, name=name, url=url, debug=args.debug, ignored=ignored)


def help_epilog(settings: Settings) -> str:
    return (
        "Default setup mode (no option):\n"
        f"  {PROG} <repository_name> <github_url>\n"
        "  Clones the repository into the base directory, creates a virtual environment and\n"
        "  installs dependencies (build.sh, else requirements.txt). If 'run.sh' exists in the\n"
        f"  project it is symlinked into {settings.bin_dir}; otherwise a default Python run\n"
        "  script is generated there.\n"
        "\n"
        "Environment:\n"
        f"  TOOLS_BASE_DIR  clone root (current: {settings.base_dir})\n"
        f"  TOOLS_BIN_DIR   run-target directory (current: {settings.bin_dir})\n"
        "\n"
        f"Version: {__version__}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    invocation = classify(sys.argv[1:] if argv is None else argv, parser)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging(None, debug=invocation.debug)
        return fail(e)

    setup_logging(settings.log_dir, debug=invocation.debug)
    for message in invocation.ignored:
        logger.warning(message)

    if invocation.mode is Mode.HELP:
        parser.epilog = help_epilog(settings)
        parser.print_help()
        return 0

    try:
        invocation.require_arguments()
        return HANDLERS[invocation.mode](invocation, settings)
    except GitRepoError as e:
        return fail(e)
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
