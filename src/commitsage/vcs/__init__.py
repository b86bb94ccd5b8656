"""
Version control integration.

:class:`GitClient` reads staged changes from a Git repository and
creates commits.
"""

from .git_client import GitClient, GitError  # noqa: F401
