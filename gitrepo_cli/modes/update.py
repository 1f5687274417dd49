"""git-repo --update|-u <name>"""

import logging

from gitrepo.runtime.settings import Settings
from gitrepo.tools.update import UpdateTool
from gitrepo_cli.output import run_async

logger = logging.getLogger(__name__)


def register(parser):
    parser.add_argument("-u", "--update", action="store_true",
                        help="Clean __pycache__, stash local changes, pull from the remote "
                             "and pop the stash")


def handle(invocation, settings: Settings) -> int:
    tool = UpdateTool(settings)
    result = run_async(tool.handle(invocation.name))
    logger.debug("update result: %s", result)
    return 0
