"""Category list loader for Makamesco.

Loads the ordered list of upstream documentation categories from YAML.
"""

import yaml
from pathlib import Path
from typing import List, Optional, Union
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES_FILE = Path(__file__).parent / "categories.yaml"


def normalize_slug(slug: str) -> str:
    """Strip whitespace and the leading path separator from a category slug."""
    return str(slug).strip().lstrip("/").strip()


@dataclass
class CategoryConfig:
    """Ordered category slugs scraped from the upstream documentation."""
    categories: List[str] = field(default_factory=list)
    
    def __post_init__(self):
        """Normalize slugs, keeping the first occurrence of each."""
        seen = set()
        cleaned = []
        for raw in self.categories:
            slug = normalize_slug(raw)
            if not slug or slug in seen:
                continue
            seen.add(slug)
            cleaned.append(slug)
        
        if not cleaned:
            raise ValueError("Category list cannot be empty")
        
        self.categories = cleaned
    
    @classmethod
    def from_dict(cls, data: dict) -> 'CategoryConfig':
        """Create CategoryConfig from a parsed YAML document."""
        categories = data.get('categories')
        if not isinstance(categories, list):
            raise ValueError("'categories' must be a list of slugs")
        return cls(categories=categories)


class CategoryLoader:
    """Loads category configurations from YAML files."""
    
    def __init__(self, path: Optional[Union[str, Path]] = None):
        """Initialize category loader.
        
        Args:
            path: YAML file holding the category list.
                  Defaults to 'categories.yaml' next to this file.
        """
        self.path = Path(path) if path else DEFAULT_CATEGORIES_FILE
    
    def load(self) -> CategoryConfig:
        """Read and validate the category list.
        
        Raises:
            FileNotFoundError: if the YAML file does not exist
            ValueError: if the file is empty or malformed
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Category configuration not found: {self.path}")
        
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse YAML file {self.path}: {e}") from e
        
        if not isinstance(data, dict):
            raise ValueError(f"Empty or invalid YAML file: {self.path}")
        
        config = CategoryConfig.from_dict(data)
        
        logger.info(f"Loaded {len(config.categories)} categories from {self.path}")
        return config


def load_categories(path: Optional[Union[str, Path]] = None) -> List[str]:
    """Convenience function returning the ordered category slugs."""
    return CategoryLoader(path).load().categories
