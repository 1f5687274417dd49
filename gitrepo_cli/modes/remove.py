"""git-repo --remove|-r <name>"""

import logging

from gitrepo.runtime.settings import Settings
from gitrepo.tools.remove import RemoveTool
from gitrepo_cli.output import prompt_user

logger = logging.getLogger(__name__)


def register(parser):
    parser.add_argument("-r", "--remove", action="store_true",
                        help="Delete the run target and the entire project directory "
                             "(asks for confirmation)")


def handle(invocation, settings: Settings) -> int:
    tool = RemoveTool(settings, ask=prompt_user)
    result = tool.handle(invocation.name)
    logger.debug("remove result: %s", result)
    return 0
