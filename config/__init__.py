"""Configuration module for Makamesco.

Provides environment-driven settings for the catalog, proxy and logging.
"""

from .settings import (
    AppConfig,
    DEFAULT_UPSTREAM_ORIGIN,
    DEFAULT_PROXY_PREFIX
)

__all__ = [
    'AppConfig',
    'DEFAULT_UPSTREAM_ORIGIN',
    'DEFAULT_PROXY_PREFIX'
]
