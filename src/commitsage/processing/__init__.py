"""
Diff processing for commitsage.

See :mod:`commitsage.processing.diff_processor` for the filtering, sizing
and grouping rules applied before generation.
"""

from .diff_processor import (  # noqa: F401
    ChangeGroup,
    DiffProcessor,
    ProcessingResult,
    ProcessorConfig,
)
