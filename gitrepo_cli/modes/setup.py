"""git-repo [--build-python-run|-bpr | --force-create-run|-fcr] <name> <url>"""

import logging

from gitrepo.runtime.settings import Settings
from gitrepo.tools.setup import SetupTool
from gitrepo_cli.output import run_async

logger = logging.getLogger(__name__)


def register(parser):
    parser.add_argument("-bpr", "--build-python-run", action="store_true", dest="build_run",
                        help="Set up the project; generate a wrapper only if it has no run.sh")
    parser.add_argument("-fcr", "--force-create-run", action="store_true", dest="force_create_run",
                        help="Set up the project and always generate the wrapper script, "
                             "ignoring any run.sh in the project")


def handle(invocation, settings: Settings) -> int:
    tool = SetupTool(settings)
    result = run_async(tool.handle(
        name=invocation.name,
        url=invocation.url,
        force_create=invocation.force_create,
    ))
    logger.debug("setup result: %s", result)
    return 0
