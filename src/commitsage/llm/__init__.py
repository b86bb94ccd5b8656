"""
Language model integration for commitsage.

This package contains the :class:`OllamaClient` for communicating with
an Ollama LLM server and the :class:`OllamaCommitGenerator` which turns
change records into commit messages with it.
"""

from .commit_generator import OllamaCommitGenerator  # noqa: F401
from .models import GenerationRequest, GenerationResponse  # noqa: F401
from .ollama_client import LLMError, OllamaClient  # noqa: F401
