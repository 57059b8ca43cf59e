"""Sources package for Makamesco.

Provides the upstream category list and its loader.
"""

from .loader import (
    CategoryConfig,
    CategoryLoader,
    DEFAULT_CATEGORIES_FILE,
    load_categories,
    normalize_slug
)

__all__ = [
    'CategoryConfig',
    'CategoryLoader',
    'DEFAULT_CATEGORIES_FILE',
    'load_categories',
    'normalize_slug'
]
