"""
Dispatch of processed diffs to a commit message generator.

Small diffs are sent in a single request. Diffs that the processor split
into several groups are sent concurrently, one worker thread per group,
with a bounded semaphore limiting how many generator calls are in flight.
Results are written into a slot per group index, so the merged message
does not depend on the order in which calls complete.

Failure policy: if every group fails, :class:`AllGroupsFailedError` is
raised with the first error in group order. If only some groups fail,
their slots are left out of the merge and the remaining messages are
combined; no retry happens here.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from commitsage.cancellation import CancellationToken, GenerationCancelledError
from commitsage.llm.models import GenerationRequest, GenerationResponse
from commitsage.orchestration.aggregation import (
    DEFAULT_AGGREGATION_POLICY,
    AggregationPolicy,
    aggregate_responses,
)
from commitsage.orchestration.cache import ResponseCache, make_cache_key
from commitsage.processing.diff_processor import ChangeGroup, ProcessingResult


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_MAX_CONCURRENT_CALLS = 3


class CommitGenerator(Protocol):
    """Anything that can turn a :class:`GenerationRequest` into a message.

    Implementations must be safe to call from several threads at once
    and should honour ``token`` for calls that are already in flight.
    """

    def generate(
        self,
        token: Optional[CancellationToken],
        request: GenerationRequest,
    ) -> GenerationResponse:
        ...


class GenerationError(Exception):
    """Raised when a commit message could not be generated."""

    pass


class AllGroupsFailedError(GenerationError):
    """Raised when every group of a split diff failed.

    Attributes
    ----------
    errors : List[BaseException]
        The error of each group, in group order.
    first_error : BaseException
        The first error in group order; also set as ``__cause__``.
    """

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors = list(errors)
        self.first_error = self.errors[0]
        super().__init__(
            f"all {len(self.errors)} chunk groups failed: {self.first_error}"
        )


@dataclass
class _GroupOutcome:
    index: int
    response: Optional[GenerationResponse] = None
    error: Optional[BaseException] = None


class GenerationOrchestrator:
    """Generate one commit message for a :class:`ProcessingResult`.

    Parameters
    ----------
    generator : CommitGenerator
        The generator capability; shared by all worker threads.
    max_concurrent_calls : int, optional
        Upper bound on simultaneous generator calls. Defaults to 3.
    policy : AggregationPolicy, optional
        Rules for merging per-group messages.
    cache : ResponseCache, optional
        Cache of previously generated messages. No caching when omitted.
    cache_scope : str, optional
        Part of the cache key identifying the backend, usually the model.
    """

    def __init__(
        self,
        generator: CommitGenerator,
        max_concurrent_calls: int = DEFAULT_MAX_CONCURRENT_CALLS,
        policy: AggregationPolicy = DEFAULT_AGGREGATION_POLICY,
        cache: Optional[ResponseCache] = None,
        cache_scope: str = "",
    ) -> None:
        if max_concurrent_calls <= 0:
            raise ValueError("'max_concurrent_calls' must be a positive integer")
        self.generator = generator
        self.max_concurrent_calls = max_concurrent_calls
        self.policy = policy
        self.cache = cache
        self.cache_scope = cache_scope

    def generate(
        self,
        result: ProcessingResult,
        token: Optional[CancellationToken] = None,
        custom_context: str = "",
        previous_attempt: str = "",
        use_cache: bool = True,
    ) -> GenerationResponse:
        """Generate a commit message for ``result``.

        A cached message is returned when one exists for the same diff,
        scope and custom context. The cache is neither read nor written
        when ``use_cache`` is false or ``previous_attempt`` is set, since a
        regeneration must produce a fresh message.

        Raises
        ------
        AllGroupsFailedError
            If the diff was split and every group failed.
        Exception
            Whatever the generator raises, unchanged, when a single
            request is made.
        """
        if token is None:
            token = CancellationToken()

        cache_key = None
        if self.cache is not None and use_cache and not previous_attempt:
            cache_key = make_cache_key(result.records, self.cache_scope, custom_context)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Using cached commit message")
                return cached

        response = self._generate(result, token, custom_context, previous_attempt)
        if cache_key is not None:
            self.cache.set(cache_key, response)
        return response

    def _generate(
        self,
        result: ProcessingResult,
        token: CancellationToken,
        custom_context: str,
        previous_attempt: str,
    ) -> GenerationResponse:
        if not result.requires_chunking or len(result.groups) <= 1:
            request = GenerationRequest(
                records=tuple(result.records),
                stats_summary=result.summary,
                custom_context=custom_context,
                previous_attempt=previous_attempt,
            )
            return self.generator.generate(token, request)

        return self._generate_from_groups(result, token, custom_context, previous_attempt)

    def _generate_from_groups(
        self,
        result: ProcessingResult,
        token: CancellationToken,
        custom_context: str,
        previous_attempt: str,
    ) -> GenerationResponse:
        groups = result.groups
        worker_limit = min(self.max_concurrent_calls, len(groups))
        semaphore = threading.BoundedSemaphore(worker_limit)
        slots: List[Optional[_GroupOutcome]] = [None] * len(groups)

        logger.debug(
            "Dispatching %d group(s) with at most %d concurrent call(s)",
            len(groups),
            worker_limit,
        )
        with ThreadPoolExecutor(max_workers=len(groups), thread_name_prefix="commitsage") as executor:
            try:
                futures = [
                    executor.submit(
                        self._run_group,
                        index,
                        group,
                        semaphore,
                        token,
                        result.summary,
                        custom_context,
                        previous_attempt,
                    )
                    for index, group in enumerate(groups)
                ]
                for future in as_completed(futures):
                    outcome = future.result()
                    slots[outcome.index] = outcome
            except BaseException:
                # The executor joins every worker on exit; queued groups
                # must see the cancellation instead of calling the model.
                token.cancel()
                raise

        errors = [slot.error for slot in slots if slot is not None and slot.error is not None]
        if len(errors) == len(groups):
            failure = AllGroupsFailedError(errors)
            logger.error("%s", failure)
            raise failure from failure.first_error
        if errors:
            for slot in slots:
                if slot is not None and slot.error is not None:
                    logger.warning("Group %d failed and is left out of the message: %s", slot.index, slot.error)

        responses = [slot.response if slot is not None else None for slot in slots]
        return aggregate_responses(responses, self.policy)

    def _run_group(
        self,
        index: int,
        group: ChangeGroup,
        semaphore: threading.BoundedSemaphore,
        token: CancellationToken,
        summary: str,
        custom_context: str,
        previous_attempt: str,
    ) -> _GroupOutcome:
        with semaphore:
            if token.is_cancelled():
                return _GroupOutcome(index=index, error=GenerationCancelledError("generation cancelled"))
            request = GenerationRequest(
                records=group.records,
                stats_summary=summary,
                custom_context=custom_context,
                previous_attempt=previous_attempt,
            )
            try:
                response = self.generator.generate(token, request)
            except Exception as exc:  # recorded per group, see module docstring
                logger.debug("Group %d failed: %s", index, exc)
                return _GroupOutcome(index=index, error=exc)
            return _GroupOutcome(index=index, response=response)
