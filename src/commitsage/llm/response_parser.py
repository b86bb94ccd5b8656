"""
Parsing of language model output into structured commit messages.

Models do not always return just the commit message. Reasoning models
wrap their deliberation in ``<think>``-style tags and chatty models
prefix the message with sentences such as "Here is the commit message".
:func:`clean_model_output` removes both before
:func:`parse_commit_message` splits the text into Conventional Commits
type, scope, subject, body and footer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

from commitsage.llm.models import GenerationResponse


VALID_COMMIT_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
    "perf",
    "ci",
    "build",
    "revert",
)

MAX_SUBJECT_LENGTH = 72

_CONVENTIONAL_SUBJECT = re.compile(
    r"^(" + "|".join(VALID_COMMIT_TYPES) + r")(\([^)]+\))?:\s*(.+)$"
)

_THINKING_PATTERNS = (
    r"<think>.*?</think>",
    r"<thinking>.*?</thinking>",
    r"<thought>.*?</thought>",
    r"<reasoning>.*?</reasoning>",
)

_THINKING_MARKERS = (
    "let me",
    "i will",
    "i'll",
    "based on",
    "looking at",
    "analyzing",
    "here's the",
    "here is the",
)

FOOTER_PREFIXES = (
    "BREAKING CHANGE:",
    "BREAKING-CHANGE:",
    "Refs:",
    "Closes:",
    "Fixes:",
    "Resolves:",
    "See:",
    "Co-authored-by:",
    "Signed-off-by:",
    "Reviewed-by:",
    "Acked-by:",
)


def strip_thinking_tags(text: str) -> str:
    """Remove thinking process tags from LLM responses.

    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    """
    result = text
    for pattern in _THINKING_PATTERNS:
        result = re.sub(pattern, "", result, flags=re.DOTALL | re.IGNORECASE)
    return result.strip()


def clean_model_output(raw_text: str) -> str:
    """Strip thinking tags and any preamble before the commit subject.

    If no line looks like a Conventional Commits subject the text is
    returned with only the thinking tags removed.
    """
    text = strip_thinking_tags(raw_text)
    lines = text.splitlines()
    for index, line in enumerate(lines):
        stripped = line.strip()
        if not stripped:
            continue
        if _CONVENTIONAL_SUBJECT.match(stripped):
            if any(marker in stripped.lower()[:40] for marker in _THINKING_MARKERS):
                continue
            return "\n".join(lines[index:]).strip()
    return text


@dataclass
class ParsedCommitMessage:
    """A commit message split into its Conventional Commits parts."""

    type: str = ""
    scope: str = ""
    subject: str = ""
    body: str = ""
    footer: str = ""
    is_valid: bool = False

    def format_subject(self) -> str:
        if not self.type:
            return self.subject
        if self.scope:
            return f"{self.type}({self.scope}): {self.subject}"
        return f"{self.type}: {self.subject}"

    def format(self) -> str:
        parts = [self.format_subject()]
        if self.body:
            parts.extend(["", self.body])
        if self.footer:
            parts.extend(["", self.footer])
        return "\n".join(parts)

    def to_response(self, raw_text: str) -> GenerationResponse:
        return GenerationResponse(
            subject=self.format_subject(),
            body=self.body,
            footer=self.footer,
            raw_text=raw_text,
        )


def is_valid_commit_type(commit_type: str) -> bool:
    return commit_type in VALID_COMMIT_TYPES


def is_footer_line(line: str) -> bool:
    """Return True if ``line`` starts a commit message footer."""
    upper = line.upper()
    if any(upper.startswith(prefix.upper()) for prefix in FOOTER_PREFIXES):
        return True
    return line.startswith("#")


def _parse_subject(subject: str, result: ParsedCommitMessage) -> None:
    match = _CONVENTIONAL_SUBJECT.match(subject)
    if match:
        result.type = match.group(1)
        if match.group(2):
            result.scope = match.group(2).strip("()")
        result.subject = match.group(3).strip()
        result.is_valid = True
        return

    result.subject = subject
    potential_type, sep, rest = subject.partition(":")
    if sep and potential_type.strip() and is_valid_commit_type(potential_type.strip()):
        result.type = potential_type.strip()
        result.subject = rest.strip()
        result.is_valid = True


def parse_commit_message(raw_text: str) -> ParsedCommitMessage:
    """Parse commit message text into a :class:`ParsedCommitMessage`.

    The first line is the subject. The first blank line after it is
    skipped; from the first footer line onward (``Refs:``, ``Closes:``,
    ``BREAKING CHANGE:``, ``#123`` ...) everything belongs to the footer
    and the lines before it form the body.
    """
    result = ParsedCommitMessage()
    text = raw_text.strip()
    if not text:
        return result

    lines = text.split("\n")
    _parse_subject(lines[0].strip(), result)

    body_lines: List[str] = []
    footer_lines: List[str] = []
    in_footer = False
    found_blank = False
    for line in lines[1:]:
        stripped = line.strip()
        if not found_blank and not stripped:
            found_blank = True
            continue
        if is_footer_line(stripped):
            in_footer = True
        if in_footer:
            footer_lines.append(line)
        elif found_blank:
            body_lines.append(line)

    result.body = "\n".join(body_lines).strip()
    result.footer = "\n".join(footer_lines).strip()
    return result


def extract_commit_type(subject: str) -> str:
    """Return the Conventional Commits type of ``subject`` or ``""``."""
    return parse_commit_message(subject).type


def validate_commit_message(raw_text: str) -> List[str]:
    """Return a list of problems with ``raw_text`` (empty when valid)."""
    issues: List[str] = []
    parsed = parse_commit_message(raw_text)
    if not parsed.is_valid:
        issues.append("message does not follow Conventional Commits format")
    if not parsed.type:
        issues.append("missing commit type")
    if not parsed.subject:
        issues.append("missing commit subject")
    if len(parsed.format_subject()) > MAX_SUBJECT_LENGTH:
        issues.append(f"subject line exceeds {MAX_SUBJECT_LENGTH} characters")
    return issues
