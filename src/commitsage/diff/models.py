"""
Data models for parsed diffs.

A :class:`ChangeRecord` describes the change made to a single file in a
staged diff. Records are immutable; stages that need a modified record
(for example the processor shrinking oversized content) build a new one
with :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class ChangeType(Enum):
    """Kind of change applied to a file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"

    @property
    def marker(self) -> str:
        """One-letter marker used in summaries (A, M, D or R)."""
        return self.value[0].upper()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FileStat:
    """Line statistics for one file as reported by ``git diff --numstat``."""

    additions: int = 0
    deletions: int = 0
    is_binary: bool = False


@dataclass(frozen=True)
class ChangeRecord:
    """Representation of one file's change within a diff.

    Attributes
    ----------
    file_path : str
        Final path of the file.
    change_type : ChangeType
        The kind of change.
    content : str
        Raw per-file diff text, starting with the ``diff --git`` header.
    additions : int
        Number of added lines.
    deletions : int
        Number of deleted lines.
    old_path : str
        Original path for renames, empty otherwise.
    is_lock_file : bool
        Whether the file is a dependency manager lock file.
    is_binary : bool
        Whether the file is binary.
    """

    file_path: str
    change_type: ChangeType = ChangeType.MODIFIED
    content: str = ""
    additions: int = 0
    deletions: int = 0
    old_path: str = ""
    is_lock_file: bool = False
    is_binary: bool = False

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class DiffStats:
    """Aggregate statistics over a sequence of records."""

    total_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0

    @classmethod
    def from_records(cls, records: Iterable[ChangeRecord]) -> "DiffStats":
        files = additions = deletions = 0
        for record in records:
            files += 1
            additions += record.additions
            deletions += record.deletions
        return cls(total_files=files, total_additions=additions, total_deletions=deletions)
