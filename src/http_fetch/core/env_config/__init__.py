"""
Environment-based configuration.

Example:
    >>> from http_fetch.core.env_config import load_from_env
    >>> config = load_from_env(env_file=".env")
"""

from .loader import load_from_env, load_settings
from .validator import FetchSettings

__all__ = [
    "FetchSettings",
    "load_from_env",
    "load_settings",
]
