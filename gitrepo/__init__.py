"""git-repo: clone, provision and manage Python projects from Git repositories."""

__version__ = "1.9.0"
