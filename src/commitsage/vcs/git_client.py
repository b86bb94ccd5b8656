"""
Git client implementation for commitsage.

This module wraps the Git operations required to read staged changes
and to commit them. All subprocess calls go through
:meth:`GitClient._run` so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from commitsage.diff.diff_parser import DEFAULT_LOCK_FILE_POLICY, LockFilePolicy, parse_diff
from commitsage.diff.models import ChangeRecord


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path, timeout: float = 10.0) -> None:
        self.repo_root = repo_root
        self.timeout = timeout

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command cannot be started, times out, or exits with a
            non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            logger.error("Git command timed out after %ss: %s", self.timeout, " ".join(full_cmd))
            raise GitError(f"git {args[0]} timed out after {self.timeout}s") from exc
        except OSError as exc:
            logger.error("Failed to run git: %s", exc)
            raise GitError(f"Failed to run git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Staged changes
    # ------------------------------------------------------------------
    def has_staged_changes(self) -> bool:
        """Return True if the index differs from HEAD.

        ``git diff --cached --quiet`` exits with 1 when there are staged
        changes and 0 when there are none.
        """
        result = self._run(["diff", "--cached", "--quiet"], check=False)
        if result.returncode == 0:
            return False
        if result.returncode == 1:
            return True
        raise GitError(result.stderr.strip() or "git diff --cached --quiet failed")

    def get_staged_diff(self) -> str:
        """Return the unified diff of the staged changes."""
        return self._run(["diff", "--cached"]).stdout

    def get_staged_numstat(self) -> str:
        """Return ``git diff --cached --numstat`` output."""
        return self._run(["diff", "--cached", "--numstat"]).stdout

    def get_staged_records(
        self, lock_policy: LockFilePolicy = DEFAULT_LOCK_FILE_POLICY
    ) -> List[ChangeRecord]:
        """Read and parse the staged changes into change records."""
        return parse_diff(self.get_staged_diff(), self.get_staged_numstat(), lock_policy)

    # ------------------------------------------------------------------
    # Committing
    # ------------------------------------------------------------------
    def commit(self, message: str) -> None:
        """Create a commit with the given message.

        Multi-line commit messages are supported. If the commit fails,
        a GitError is raised.
        """
        self._run(["commit", "-m", message], check=True)
