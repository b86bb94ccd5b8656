"""
Client for interacting with an Ollama LLM server.

This client wraps HTTP requests to the Ollama REST API. It supports
making text generation requests via the `/api/generate` endpoint. On
error conditions (HTTP errors, timeouts), a :class:`LLMError` is
raised. Connection failures, timeouts and 5xx gateway errors are
retried with exponential backoff before giving up.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from commitsage.cancellation import CancellationToken, GenerationCancelledError
from commitsage.llm.response_parser import strip_thinking_tags


logger = logging.getLogger(__name__)
# Attach a null handler to avoid errors when the root logger is missing a
# stream. Messages will still propagate to the root logger if configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRY_DELAY = 10.0

RETRYABLE_STATUS_CODES = frozenset({500, 502, 503, 504})


class LLMError(Exception):
    """Raised when communication with the LLM server fails.

    ``retryable`` is set for transient failures (connection errors,
    timeouts and 5xx gateway responses).
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


@dataclass
class OllamaClient:
    """Client for interacting with an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the Ollama server, e.g. ``"http://localhost"``.
    port : int
        Port number of the Ollama server, e.g. ``11434``.
    model : str
        Name of the model to use for generation, e.g. ``"llama3"``.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 60 seconds.
    max_tokens : int, optional
        Maximum number of tokens to generate. If provided, passed via
        the ``options`` payload.
    temperature : float, optional
        Sampling temperature, passed via the ``options`` payload.
    max_attempts : int, optional
        Total number of attempts for transient failures. Defaults to 3.
    initial_retry_delay : float, optional
        Delay before the first retry; doubled for each further retry.
    max_retry_delay : float, optional
        Upper bound for the delay between attempts.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY
    max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY

    def _endpoint(self) -> str:
        return f"{self.base_url}:{self.port}/api/generate"

    def retry_delay(self, retry: int) -> float:
        """Backoff before retry number ``retry`` (0 for the first retry)."""
        return min(self.initial_retry_delay * (2 ** retry), self.max_retry_delay)

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> str:
        """Generate a completion from the model.

        Parameters
        ----------
        prompt : str
            The prompt to send to the model.
        system : str, optional
            System prompt overriding the one defined in the model file.
        timeout : float, optional
            Timeout for each attempt; defaults to ``request_timeout``.
        token : CancellationToken, optional
            Checked before every attempt. Its deadline bounds the timeout
            of each attempt and it interrupts the wait between attempts.

        Returns
        -------
        str
            The generated response text with thinking tags removed.

        Raises
        ------
        LLMError
            If the request fails or the server returns an error.
        GenerationCancelledError
            If ``token`` is cancelled or its deadline passes.
        """
        payload = self._build_payload(prompt, system)
        url = self._endpoint()
        attempt = 0
        while True:
            attempt += 1
            attempt_timeout = self._attempt_timeout(timeout, token)
            logger.debug(
                "Sending request to LLM at %s (model=%s, prompt=%d chars, attempt %d/%d)",
                url,
                self.model,
                len(prompt),
                attempt,
                self.max_attempts,
            )
            try:
                return self._post(url, payload, attempt_timeout)
            except LLMError as exc:
                if not exc.retryable or attempt >= self.max_attempts:
                    raise
                delay = self.retry_delay(attempt - 1)
                logger.warning(
                    "LLM request failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt,
                    self.max_attempts,
                    delay,
                    exc,
                )
                if token is None:
                    time.sleep(delay)
                elif token.wait(delay):
                    raise GenerationCancelledError("generation cancelled while waiting to retry") from exc

    def _build_payload(self, prompt: str, system: Optional[str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if system:
            payload["system"] = system
        options: Dict[str, Any] = {}
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if self.temperature is not None:
            options["temperature"] = self.temperature
        if options:
            payload["options"] = options
        return payload

    def _attempt_timeout(
        self, timeout: Optional[float], token: Optional[CancellationToken]
    ) -> float:
        limit = timeout if timeout is not None else self.request_timeout
        if token is None:
            return limit
        token.raise_if_cancelled()
        remaining = token.remaining()
        if remaining is None:
            return limit
        # requests rejects a zero timeout with ValueError
        if remaining <= 0:
            raise GenerationCancelledError("generation deadline exceeded")
        return min(limit, remaining)

    def _post(self, url: str, payload: Dict[str, Any], timeout: float) -> str:
        try:
            response = requests.post(url, json=payload, timeout=timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise LLMError(str(exc), retryable=True) from exc
        except requests.RequestException as exc:
            logger.error("LLM request failed: %s", exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error(
                "LLM returned non-200 status %s: %s", response.status_code, response.text
            )
            raise LLMError(
                f"LLM returned status {response.status_code}: {response.text}",
                retryable=response.status_code in RETRYABLE_STATUS_CODES,
            )
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise LLMError("Failed to parse LLM response") from exc
        if not isinstance(data, dict):
            raise LLMError("Unexpected response structure from LLM")
        if data.get("error"):
            raise LLMError(f"LLM reported an error: {data['error']}")
        # /api/generate returns 'response'; /api/chat returns 'message'.
        if "response" in data:
            return strip_thinking_tags(str(data.get("response") or ""))
        if isinstance(data.get("message"), dict):
            return strip_thinking_tags(str(data["message"].get("content") or ""))
        raise LLMError("Unexpected response structure from LLM")
