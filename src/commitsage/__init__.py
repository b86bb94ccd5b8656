"""
Top-level package for commitsage.

This package exposes the main CLI entry point via the
``commitsage.cli`` module.
"""

from importlib.metadata import PackageNotFoundError, version

__all__ = ["__version__"]

try:
    __version__ = version("commitsage")
except PackageNotFoundError:
    # Running from a source checkout without an installed distribution
    __version__ = "0.1.0.dev0"
