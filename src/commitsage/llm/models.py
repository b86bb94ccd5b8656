"""
Request and response types exchanged with a commit message generator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from commitsage.diff.models import ChangeRecord, DiffStats


@dataclass(frozen=True)
class GenerationRequest:
    """Input for one generator call.

    Attributes
    ----------
    records : Tuple[ChangeRecord, ...]
        The file changes to describe.
    stats_summary : str
        Digest of the whole diff, set when the diff was split into groups.
    custom_context : str
        Free-text prompt supplied by the user; replaces the default prompt.
    previous_attempt : str
        The message from the previous round when the user asked to
        regenerate.
    """

    records: Tuple[ChangeRecord, ...]
    stats_summary: str = ""
    custom_context: str = ""
    previous_attempt: str = ""

    @property
    def stats(self) -> DiffStats:
        return DiffStats.from_records(self.records)

    @property
    def total_size(self) -> int:
        return sum(record.size for record in self.records)


@dataclass(frozen=True)
class GenerationResponse:
    """A commit message split into its Conventional Commits parts."""

    subject: str = ""
    body: str = ""
    footer: str = ""
    raw_text: str = ""

    def format_message(self) -> str:
        """Render the message for ``git commit``.

        Falls back to the raw text when no subject was parsed.
        """
        if not self.subject:
            return self.raw_text.strip()
        parts = [self.subject]
        if self.body:
            parts.extend(["", self.body])
        if self.footer:
            parts.extend(["", self.footer])
        return "\n".join(parts)
