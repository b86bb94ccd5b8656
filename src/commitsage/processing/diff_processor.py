"""
Preparation of parsed diffs for commit message generation.

The :class:`DiffProcessor` drops lock files, measures what is left and,
when the diff is too large to send in one request, shrinks oversized
files to a statistics-only description and partitions the records into
groups that can be sent to the language model concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Sequence, Tuple

from commitsage.diff.models import ChangeRecord


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_SIZE_THRESHOLD = 10 * 1024
DEFAULT_MAX_CHUNK_CONTENT_SIZE = 100 * 1024
DEFAULT_MAX_CONCURRENCY = 3


@dataclass(frozen=True)
class ProcessorConfig:
    """Thresholds controlling how a diff is prepared.

    Parameters
    ----------
    size_threshold : int
        Total diff size in bytes above which the diff is split into groups.
    max_chunk_content_size : int
        Per-file content size above which a file's diff is replaced by a
        statistics-only summary (only applied when splitting).
    max_concurrency : int
        Maximum number of groups, and therefore of concurrent requests.
    """

    size_threshold: int = DEFAULT_SIZE_THRESHOLD
    max_chunk_content_size: int = DEFAULT_MAX_CHUNK_CONTENT_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    def __post_init__(self) -> None:
        for name in ("size_threshold", "max_chunk_content_size", "max_concurrency"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"'{name}' must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class ChangeGroup:
    """A disjoint subset of records dispatched as one generation request."""

    records: Tuple[ChangeRecord, ...]
    total_size: int = 0

    @property
    def file_paths(self) -> List[str]:
        return [record.file_path for record in self.records]


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of :meth:`DiffProcessor.process`.

    ``groups`` and ``summary`` are only populated when
    ``requires_chunking`` is true.
    """

    records: Tuple[ChangeRecord, ...] = ()
    total_size: int = 0
    requires_chunking: bool = False
    groups: Tuple[ChangeGroup, ...] = field(default_factory=tuple)
    summary: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.records


class DiffProcessor:
    """Filter, measure and partition change records."""

    def __init__(self, config: ProcessorConfig = ProcessorConfig()) -> None:
        self.config = config

    def process(self, records: Sequence[ChangeRecord]) -> ProcessingResult:
        """Prepare ``records`` for generation.

        Lock files are removed first. If the remaining content exceeds
        the configured size threshold, oversized files are shrunk and the
        records are distributed round-robin over at most
        ``max_concurrency`` groups.
        """
        filtered = self._filter_lock_files(records)
        total_size = sum(record.size for record in filtered)
        requires_chunking = total_size > self.config.size_threshold

        if not requires_chunking:
            logger.debug(
                "Diff size %d bytes within threshold %d; no chunking",
                total_size,
                self.config.size_threshold,
            )
            return ProcessingResult(records=tuple(filtered), total_size=total_size)

        shrunk = self._shrink_large_records(filtered)
        groups = self._group_records(shrunk)
        logger.debug(
            "Diff size %d bytes exceeds threshold %d; split %d file(s) into %d group(s)",
            total_size,
            self.config.size_threshold,
            len(shrunk),
            len(groups),
        )
        return ProcessingResult(
            records=tuple(shrunk),
            total_size=total_size,
            requires_chunking=True,
            groups=tuple(groups),
            summary=build_summary(shrunk),
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _filter_lock_files(self, records: Sequence[ChangeRecord]) -> List[ChangeRecord]:
        kept = [record for record in records if not record.is_lock_file]
        if len(kept) != len(records):
            logger.debug("Excluded %d lock file(s) from the diff", len(records) - len(kept))
        return kept

    def _shrink_large_records(self, records: Sequence[ChangeRecord]) -> List[ChangeRecord]:
        limit = self.config.max_chunk_content_size
        return [
            replace(record, content=describe_record(record)) if record.size > limit else record
            for record in records
        ]

    def _group_records(self, records: Sequence[ChangeRecord]) -> List[ChangeGroup]:
        if not records:
            return []
        num_groups = min(self.config.max_concurrency, len(records))
        buckets: List[List[ChangeRecord]] = [[] for _ in range(num_groups)]
        for index, record in enumerate(records):
            buckets[index % num_groups].append(record)
        return [
            ChangeGroup(records=tuple(bucket), total_size=sum(r.size for r in bucket))
            for bucket in buckets
            if bucket
        ]


def describe_record(record: ChangeRecord) -> str:
    """Statistics-only stand-in for a record whose diff is too large to send."""
    lines = [
        f"File: {record.file_path}",
        f"Change Type: {record.change_type}",
        f"Additions: +{record.additions}",
        f"Deletions: -{record.deletions}",
    ]
    if record.is_binary:
        lines.append("Note: Binary file (content not shown)")
    else:
        lines.append(f"Note: Large file ({record.size} bytes) - showing statistics only")
    if record.old_path:
        lines.append(f"Renamed from: {record.old_path}")
    return "\n".join(lines) + "\n"


def build_summary(records: Sequence[ChangeRecord]) -> str:
    """Human-readable digest of all records with aggregate totals."""
    if not records:
        return "No changes"

    lines = ["Summary of changes:"]
    total_additions = total_deletions = 0
    for record in records:
        lines.append(
            f"  [{record.change_type.marker}] {record.file_path} "
            f"(+{record.additions}/-{record.deletions})"
        )
        if record.old_path:
            lines.append(f"      (renamed from {record.old_path})")
        total_additions += record.additions
        total_deletions += record.deletions

    lines.append("")
    lines.append(
        f"Total: {len(records)} files, +{total_additions} additions, -{total_deletions} deletions"
    )
    return "\n".join(lines) + "\n"
