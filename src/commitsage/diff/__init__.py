"""
Diff parsing for commitsage.

:mod:`commitsage.diff.diff_parser` turns the raw output of
``git diff --cached`` and ``git diff --cached --numstat`` into
:class:`~commitsage.diff.models.ChangeRecord` objects.
"""

from .diff_parser import DEFAULT_LOCK_FILE_POLICY, LockFilePolicy, parse_diff  # noqa: F401
from .models import ChangeRecord, ChangeType, DiffStats, FileStat  # noqa: F401
