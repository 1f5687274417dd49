"""git-repo tools: one class per operating mode."""

from gitrepo.tools.remove import RemoveTool
from gitrepo.tools.run_target import RunTargetInstaller, RunTargetKind, resolve_run_target
from gitrepo.tools.setup import SetupTool
from gitrepo.tools.update import UpdateTool

__all__ = [
    "SetupTool",
    "RemoveTool",
    "UpdateTool",
    "RunTargetInstaller",
    "RunTargetKind",
    "resolve_run_target",
]
