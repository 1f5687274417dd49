"""git-repo runtime services."""

from gitrepo.runtime.settings import Settings, load_settings
from gitrepo.runtime.venv import activated, activated_env

__all__ = [
    "Settings",
    "load_settings",
    "activated",
    "activated_env",
]
