"""
Merging of per-group commit messages into one message.

When a large diff is split into groups, each group produces its own
message. :func:`aggregate_responses` combines them: the subject is
rebuilt from the dominant commit type, bodies are concatenated and
footers are deduplicated line by line.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from commitsage.llm.models import GenerationResponse
from commitsage.llm.response_parser import extract_commit_type


@dataclass(frozen=True)
class AggregationPolicy:
    """Rules used when combining several subjects.

    Attributes
    ----------
    type_priority : Tuple[str, ...]
        Commit types from highest to lowest priority; breaks ties between
        equally frequent types.
    fallback_type : str
        Type used when no subject carries a recognised type.
    """

    type_priority: Tuple[str, ...] = (
        "feat",
        "fix",
        "perf",
        "refactor",
        "docs",
        "test",
        "style",
        "ci",
        "build",
        "chore",
        "revert",
    )
    fallback_type: str = "chore"

    def rank(self, commit_type: str) -> int:
        """Position of ``commit_type`` in the priority order (lower wins).

        Types missing from ``type_priority`` rank after every listed type.
        """
        try:
            return self.type_priority.index(commit_type)
        except ValueError:
            return len(self.type_priority)


DEFAULT_AGGREGATION_POLICY = AggregationPolicy()


def combine_subjects(
    subjects: Sequence[str],
    policy: AggregationPolicy = DEFAULT_AGGREGATION_POLICY,
) -> str:
    """Combine several subjects into ``"<type>: multiple changes across N files"``."""
    if not subjects:
        return ""
    if len(subjects) == 1:
        return subjects[0]

    counts = Counter(t for t in (extract_commit_type(s) for s in subjects) if t)
    if counts:
        commit_type = min(counts, key=lambda t: (-counts[t], policy.rank(t)))
    else:
        commit_type = policy.fallback_type
    return f"{commit_type}: multiple changes across {len(subjects)} files"


def deduplicate_footers(footers: Iterable[str]) -> str:
    """Join footer lines, trimmed, keeping only the first occurrence of each."""
    seen = set()
    unique: List[str] = []
    for footer in footers:
        for line in footer.split("\n"):
            line = line.strip()
            if line and line not in seen:
                seen.add(line)
                unique.append(line)
    return "\n".join(unique)


def aggregate_responses(
    responses: Sequence[Optional[GenerationResponse]],
    policy: AggregationPolicy = DEFAULT_AGGREGATION_POLICY,
) -> GenerationResponse:
    """Merge ``responses`` (in group order) into a single response.

    ``None`` entries stand for groups that failed and are skipped.
    """
    present = [response for response in responses if response is not None]
    subjects = [r.subject for r in present if r.subject]
    bodies = [r.body for r in present if r.body]
    footers = [r.footer for r in present if r.footer]

    subject = combine_subjects(subjects, policy)
    body = "\n\n".join(bodies)
    footer = deduplicate_footers(footers) if footers else ""

    raw_parts: List[str] = []
    if subject:
        raw_parts.append(subject)
    if body:
        raw_parts.extend(["", body])
    if footer:
        raw_parts.extend(["", footer])

    return GenerationResponse(
        subject=subject,
        body=body,
        footer=footer,
        raw_text="\n".join(raw_parts),
    )
