"""
Local package for the Backend Shell application.

This package provides the merged application configuration through the
effective_settings object, plus the supervisor and console subpackages.
"""

from .config import effective_settings, ConfigurationError

__all__ = ["effective_settings", "ConfigurationError"]
