"""
Parsing of staged git diffs into :class:`ChangeRecord` objects.

Two pieces of git output are combined here: the unified diff produced by
``git diff --cached`` and the per-file line statistics produced by
``git diff --cached --numstat``. The parser is best effort. Segments it
does not understand still yield a record (typed as modified) with
whatever path could be extracted, and malformed statistics lines are
skipped rather than reported.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, FrozenSet, List

from commitsage.diff.models import ChangeRecord, ChangeType, FileStat


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DIFF_HEADER = "diff --git "
RENAME_MARKER = " => "

_BRACE_RENAME = re.compile(r"\{([^}]*) => ([^}]*)\}")


@dataclass(frozen=True)
class LockFilePolicy:
    """Names and suffix identifying dependency manager lock files."""

    names: FrozenSet[str]
    suffix: str = ".lock"

    def matches(self, file_path: str) -> bool:
        base_name = PurePosixPath(file_path).name
        if base_name in self.names:
            return True
        return bool(self.suffix) and base_name.endswith(self.suffix)


DEFAULT_LOCK_FILE_POLICY = LockFilePolicy(
    names=frozenset(
        {
            "package-lock.json",
            "yarn.lock",
            "pnpm-lock.yaml",
            "go.sum",
            "Cargo.lock",
            "Gemfile.lock",
            "composer.lock",
            "poetry.lock",
            "Pipfile.lock",
        }
    )
)


def extract_new_path(rename_path: str) -> str:
    """Return the destination path from git's numstat rename notation.

    Examples
    --------
    >>> extract_new_path("old.txt => new.txt")
    'new.txt'
    >>> extract_new_path("{old => new}/file.txt")
    'new/file.txt'
    >>> extract_new_path("dir/{old.txt => new.txt}")
    'dir/new.txt'
    """
    if RENAME_MARKER in rename_path and "{" not in rename_path:
        parts = rename_path.split(RENAME_MARKER)
        if len(parts) == 2:
            return parts[1].strip()
    result = _BRACE_RENAME.sub(lambda match: match.group(2), rename_path)
    # "dir/{sub => }/file" leaves an empty segment behind
    while "//" in result:
        result = result.replace("//", "/")
    return result


def parse_numstat(output: str) -> Dict[str, FileStat]:
    """Parse ``git diff --numstat`` output into a path to :class:`FileStat` map.

    Each line has the form ``additions<TAB>deletions<TAB>path``. Binary
    files are reported as ``-<TAB>-<TAB>path``. Rename paths are keyed by
    their destination.
    """
    stats: Dict[str, FileStat] = {}
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        add_str, del_str, file_path = parts
        if RENAME_MARKER in file_path:
            file_path = extract_new_path(file_path)

        if add_str == "-" and del_str == "-":
            stats[file_path] = FileStat(is_binary=True)
            continue
        stats[file_path] = FileStat(
            additions=_to_count(add_str),
            deletions=_to_count(del_str),
        )
    return stats


def _to_count(value: str) -> int:
    try:
        return max(int(value.strip()), 0)
    except ValueError:
        logger.debug("Ignoring non-numeric numstat count: %r", value)
        return 0


def split_file_diffs(diff_text: str) -> List[str]:
    """Split a full diff into per-file segments.

    The ``diff --git`` boundary is kept at the start of every segment
    except the first piece, which is whatever preceded the first boundary
    (empty for regular git output, and then dropped).
    """
    segments: List[str] = []
    for index, part in enumerate(diff_text.split(DIFF_HEADER)):
        if not part:
            continue
        if index > 0:
            part = DIFF_HEADER + part
        segments.append(part)
    return segments


def extract_file_path(header_line: str) -> str:
    """Extract the file path from a ``diff --git a/<path> b/<path>`` line."""
    line = header_line[len(DIFF_HEADER):] if header_line.startswith(DIFF_HEADER) else header_line
    parts = line.split(" b/")
    if len(parts) >= 2:
        return parts[1]
    if line.startswith("a/"):
        return line.split(" ", 1)[0][len("a/"):]
    return line


def parse_file_diff(
    segment: str,
    stats: Dict[str, FileStat],
    lock_policy: LockFilePolicy = DEFAULT_LOCK_FILE_POLICY,
) -> ChangeRecord:
    """Parse a single file's diff segment into a :class:`ChangeRecord`."""
    file_path = ""
    old_path = ""
    change_type = ChangeType.MODIFIED
    is_binary = False

    for line in segment.split("\n"):
        if line.startswith("@@"):
            # Hunks start here; everything below is file content.
            break
        if line.startswith(DIFF_HEADER):
            file_path = extract_file_path(line)
        elif line.startswith("new file mode"):
            change_type = ChangeType.ADDED
        elif line.startswith("deleted file mode"):
            change_type = ChangeType.DELETED
        elif line.startswith("rename from "):
            old_path = line[len("rename from "):]
            change_type = ChangeType.RENAMED
        elif line.startswith("rename to "):
            file_path = line[len("rename to "):]
        elif line.startswith("Binary files"):
            is_binary = True

    additions = deletions = 0
    stat = stats.get(file_path)
    if stat is not None:
        additions = stat.additions
        deletions = stat.deletions
        is_binary = stat.is_binary

    return ChangeRecord(
        file_path=file_path,
        change_type=change_type,
        content=segment,
        additions=additions,
        deletions=deletions,
        old_path=old_path,
        is_lock_file=lock_policy.matches(file_path),
        is_binary=is_binary,
    )


def parse_diff(
    diff_text: str,
    numstat_text: str = "",
    lock_policy: LockFilePolicy = DEFAULT_LOCK_FILE_POLICY,
) -> List[ChangeRecord]:
    """Parse raw diff and numstat output into an ordered list of records.

    Parameters
    ----------
    diff_text : str
        Output of ``git diff --cached``.
    numstat_text : str, optional
        Output of ``git diff --cached --numstat``. Files without an entry
        keep zero counts.
    lock_policy : LockFilePolicy, optional
        Policy used to flag lock files.

    Returns
    -------
    List[ChangeRecord]
        One record per file segment, in diff order.
    """
    stats = parse_numstat(numstat_text)
    records = [parse_file_diff(segment, stats, lock_policy) for segment in split_file_diffs(diff_text)]
    logger.debug("Parsed %d file diff(s), %d numstat entr(ies)", len(records), len(stats))
    return records
