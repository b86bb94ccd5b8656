"""
Commit message generation backed by an Ollama model.

:class:`OllamaCommitGenerator` is the generator used by the
orchestrator: it renders a prompt for a set of change records, calls the
model through :class:`OllamaClient` and parses the reply into a
:class:`GenerationResponse`. It holds no mutable state, so one instance
can serve several worker threads at once.
"""

from __future__ import annotations

import logging
from typing import Optional

from commitsage.cancellation import CancellationToken
from commitsage.llm.models import GenerationRequest, GenerationResponse
from commitsage.llm.ollama_client import LLMError, OllamaClient
from commitsage.llm.prompt_builder import DEFAULT_SYSTEM_PROMPT, build_prompt
from commitsage.llm.response_parser import clean_model_output, parse_commit_message


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class OllamaCommitGenerator:
    """Generate commit messages for change records with an Ollama model."""

    def __init__(self, client: OllamaClient, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
        self.client = client
        self.system_prompt = system_prompt

    def generate(
        self,
        token: Optional[CancellationToken],
        request: GenerationRequest,
    ) -> GenerationResponse:
        """Generate a commit message for ``request``.

        Raises
        ------
        GenerationCancelledError
            If ``token`` is cancelled or past its deadline before the call
            or while the client waits to retry.
        LLMError
            If the request has no records, the model call fails or the
            model returns an empty message.
        """
        if not request.records:
            raise LLMError("no diff records provided")
        if token is not None:
            token.raise_if_cancelled()

        prompt = build_prompt(request)
        logger.debug("Generating message for %d file(s)", len(request.records))
        raw = self.client.generate(prompt, system=self.system_prompt, token=token)

        text = clean_model_output(raw)
        if not text:
            raise LLMError("LLM returned an empty commit message")
        parsed = parse_commit_message(text)
        if not parsed.is_valid:
            logger.debug("Model reply is not a Conventional Commits message: %r", text[:80])
        return parsed.to_response(text)
