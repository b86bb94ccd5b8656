"""
Prompt construction for commit message generation.
"""

from __future__ import annotations

from textwrap import dedent
from typing import List

from commitsage.llm.models import GenerationRequest
from commitsage.processing.diff_processor import DEFAULT_SIZE_THRESHOLD


DEFAULT_SYSTEM_PROMPT = dedent(
    """
    You are an expert at writing semantic git commit messages.

    Format Requirements:
    - Use Conventional Commits format: <type>(<scope>): <subject>
    - Types: feat, fix, docs, style, refactor, test, chore, perf, ci, build, revert
    - Subject: imperative mood, no period, max 72 characters
    - Body: optional, explain what and why (not how)
    - Footer: optional, reference issues or breaking changes

    Rules:
    1. Be concise and specific
    2. Focus on the "what" and "why", not the "how"
    3. Use present tense ("add" not "added")
    4. First line should be standalone summary
    5. Separate subject from body with blank line

    Output only the commit message, no explanations.
    """
).strip()


def build_user_prompt(request: GenerationRequest, requires_chunking: bool = False) -> str:
    """Render the user prompt for ``request``.

    When ``requires_chunking`` is set only per-file statistics are listed
    instead of the raw diffs. A custom context supplied by the user is
    returned unchanged.
    """
    if request.custom_context:
        return request.custom_context

    stats = request.stats
    sections: List[str] = [
        "Generate a commit message for these changes:",
        f"Files changed: {stats.total_files}\n"
        f"Additions: {stats.total_additions}\n"
        f"Deletions: {stats.total_deletions}",
    ]

    if requires_chunking:
        lines = ["Summary of changes:"]
        for record in request.records:
            lines.append(
                f"- {record.file_path}: {record.change_type} "
                f"(+{record.additions} -{record.deletions})"
            )
        sections.append("\n".join(lines))
    else:
        diffs = "\n".join(record.content.rstrip("\n") for record in request.records)
        sections.append(f"Diff:\n{diffs}")

    if request.stats_summary:
        sections.append(
            "These files are part of a larger change. Overview of the whole change:\n"
            + request.stats_summary.rstrip("\n")
        )

    if request.previous_attempt:
        sections.append(
            "Previous attempt (user requested regeneration, write a different message):\n"
            + request.previous_attempt
        )

    return "\n\n".join(sections)


def build_prompt(request: GenerationRequest) -> str:
    """Render the user prompt, choosing the statistics-only form for large payloads."""
    return build_user_prompt(request, requires_chunking=request.total_size > DEFAULT_SIZE_THRESHOLD)
