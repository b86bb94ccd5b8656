"""
Configuration loader for commitsage.

The tool expects a JSON configuration file named ``config.json`` in the
``~/.commitsage/`` directory. This loader validates the structure of the
configuration and returns a dictionary with the settings for connecting
to an Ollama server and for sizing the diff sent to it. Processing
settings that are absent are filled in from :data:`DEFAULT_SETTINGS`.

If the configuration file is missing, malformed, missing required
keys, or has values of the wrong type, a :class:`ConfigError` is raised.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping

from commitsage.llm.ollama_client import DEFAULT_MAX_ATTEMPTS
from commitsage.orchestration.cache import DEFAULT_MAX_ENTRIES
from commitsage.processing.diff_processor import (
    DEFAULT_MAX_CHUNK_CONTENT_SIZE,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_SIZE_THRESHOLD,
    ProcessorConfig,
)


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings when the root logger
# is not configured. The CLI configures logging explicitly.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILE_NAME = "config.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "request_timeout": 60,
    "size_threshold": DEFAULT_SIZE_THRESHOLD,
    "max_chunk_content_size": DEFAULT_MAX_CHUNK_CONTENT_SIZE,
    "max_concurrent_calls": DEFAULT_MAX_CONCURRENCY,
    "max_attempts": DEFAULT_MAX_ATTEMPTS,
    "cache_enabled": True,
    "cache_max_entries": DEFAULT_MAX_ENTRIES,
    "cache_ttl_minutes": 60,
}

_POSITIVE_INT_KEYS = (
    "size_threshold",
    "max_chunk_content_size",
    "max_concurrent_calls",
    "max_attempts",
    "cache_max_entries",
    "cache_ttl_minutes",
)


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""

    pass


def _get_config_directory() -> Path:
    """Return the directory holding the commitsage configuration."""
    return Path.home() / ".commitsage"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a configuration mapping and return it with defaults applied.

    Raises
    ------
    ConfigError
        If required keys are missing or values have the wrong type.
    """
    required_keys = ["base_url", "port", "model"]
    missing = [key for key in required_keys if key not in data]
    if missing:
        logger.error("Configuration file missing required keys: %s", missing)
        raise ConfigError(f"Missing required configuration keys: {', '.join(missing)}")

    if not isinstance(data.get("base_url"), str):
        raise ConfigError("'base_url' must be a string")
    if not isinstance(data.get("port"), int) or isinstance(data.get("port"), bool):
        raise ConfigError("'port' must be an integer")
    if not isinstance(data.get("model"), str):
        raise ConfigError("'model' must be a string")

    if "request_timeout" in data and not _is_number(data["request_timeout"]):
        raise ConfigError("'request_timeout' must be a number")
    if "max_tokens" in data and not (
        isinstance(data["max_tokens"], int) and not isinstance(data["max_tokens"], bool)
    ):
        raise ConfigError("'max_tokens' must be an integer")
    if "temperature" in data and not _is_number(data["temperature"]):
        raise ConfigError("'temperature' must be a number")
    if "generation_timeout" in data and not (
        _is_number(data["generation_timeout"]) and data["generation_timeout"] > 0
    ):
        raise ConfigError("'generation_timeout' must be a positive number")
    if "cache_enabled" in data and not isinstance(data["cache_enabled"], bool):
        raise ConfigError("'cache_enabled' must be a boolean")
    for key in _POSITIVE_INT_KEYS:
        if key in data and not _is_positive_int(data[key]):
            raise ConfigError(f"'{key}' must be a positive integer")

    config = dict(DEFAULT_SETTINGS)
    config.update(data)
    return config


def load_config() -> Dict[str, Any]:
    """Load the configuration from ``~/.commitsage/config.json``.

    Returns
    -------
    Dict[str, Any]
        The validated configuration with keys:

        - base_url (str): The base URL of the Ollama server
        - port (int): The port number
        - model (str): The model name
        - request_timeout (int|float): Per-request timeout in seconds
        - max_tokens (int, optional): Maximum tokens for generation
        - temperature (int|float, optional): Sampling temperature
        - generation_timeout (int|float, optional): Deadline for one generation round
        - size_threshold (int): Diff size that triggers splitting
        - max_chunk_content_size (int): Per-file size that triggers shrinking
        - max_concurrent_calls (int): Maximum concurrent generator calls
        - max_attempts (int): Attempts per model request for transient errors
        - cache_enabled (bool): Whether generated messages are cached
        - cache_max_entries (int): Maximum number of cached messages
        - cache_ttl_minutes (int): Lifetime of a cached message

    Raises
    ------
    ConfigError
        If the configuration file is missing, malformed, or invalid.
    """
    config_dir = _get_config_directory()
    config_path = config_dir / CONFIG_FILE_NAME

    if not config_path.exists():
        logger.error("Configuration file '%s' does not exist", config_path)
        raise ConfigError(
            f"Missing configuration file: {config_path}. "
            f"Create it with at least 'base_url', 'port' and 'model'."
        )

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")

    config = validate_config(data)
    logger.debug("Loaded configuration from: %s", config_path)
    return config


def processor_config_from(config: Mapping[str, Any]) -> ProcessorConfig:
    """Build a :class:`ProcessorConfig` from a loaded configuration."""
    return ProcessorConfig(
        size_threshold=config.get("size_threshold", DEFAULT_SIZE_THRESHOLD),
        max_chunk_content_size=config.get("max_chunk_content_size", DEFAULT_MAX_CHUNK_CONTENT_SIZE),
        max_concurrency=config.get("max_concurrent_calls", DEFAULT_MAX_CONCURRENCY),
    )
