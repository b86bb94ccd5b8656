"""
Configuration loading for commitsage.

Provides a simple loader for the JSON configuration file in the user's
home directory. See :mod:`commitsage.config.loader` for details.
"""

from .loader import ConfigError, load_config, processor_config_from  # noqa: F401
