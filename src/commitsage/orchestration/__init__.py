"""
Generation orchestration for commitsage.

:class:`GenerationOrchestrator` sends processed diffs to a generator,
concurrently when the diff was split, and merges the results.
"""

from .aggregation import AggregationPolicy, aggregate_responses  # noqa: F401
from .cache import ResponseCache, make_cache_key  # noqa: F401
from .orchestrator import (  # noqa: F401
    AllGroupsFailedError,
    GenerationError,
    GenerationOrchestrator,
)
