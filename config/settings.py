"""Application configuration for Makamesco.

Settings are read from environment variables; the category list comes
from the YAML file under ``sources/``.
"""

import os
import logging
from typing import List, Optional
from urllib.parse import urlparse
from pydantic import BaseModel, Field, field_validator

from sources.loader import DEFAULT_CATEGORIES_FILE, load_categories

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_ORIGIN = "https://api.bk9.dev"
DEFAULT_PROXY_PREFIX = "/makamesco"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class AppConfig(BaseModel):
    """Service configuration."""
    upstream_origin: str = Field(default=DEFAULT_UPSTREAM_ORIGIN, description="Upstream API origin")
    proxy_prefix: str = Field(default=DEFAULT_PROXY_PREFIX, description="Path prefix forwarded upstream")
    service_name: str = Field(default="makamesco", description="Service name reported in proxy errors")
    user_agent: str = Field(default="Makamesco-API/1.0", description="User-Agent sent upstream")
    powered_by: str = Field(default="Makamesco API", description="X-Powered-By response header")
    
    sqlite_path: str = Field(default="makamesco.db", description="SQLite database path")
    categories: List[str] = Field(default_factory=lambda: load_categories(), description="Ordered category slugs")
    auto_scrape: bool = Field(default=True, description="Scrape on startup when the store is empty")
    upstream_timeout: Optional[float] = Field(default=None, description="Total upstream timeout in seconds")
    
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file")
    
    @field_validator('upstream_origin')
    @classmethod
    def _check_origin(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValueError(f"Upstream origin must be an absolute http(s) URL: {value!r}")
        return value.rstrip('/')
    
    @field_validator('proxy_prefix')
    @classmethod
    def _check_prefix(cls, value: str) -> str:
        if not value.startswith('/') or value.endswith('/'):
            raise ValueError(f"Proxy prefix must start with '/' and not end with '/': {value!r}")
        return value
    
    @field_validator('categories')
    @classmethod
    def _check_categories(cls, value: List[str]) -> List[str]:
        cleaned = [slug.strip().lstrip('/') for slug in value if slug and slug.strip().lstrip('/')]
        if not cleaned:
            raise ValueError("At least one category is required")
        return cleaned
    
    @property
    def upstream_host(self) -> str:
        """Host name the proxy reports in X-Proxied-From."""
        return urlparse(self.upstream_origin).netloc
    
    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Create configuration from environment variables."""
        timeout = os.getenv('MAKAMESCO_UPSTREAM_TIMEOUT')
        categories_file = os.getenv('MAKAMESCO_CATEGORIES_FILE', str(DEFAULT_CATEGORIES_FILE))
        
        return cls(
            upstream_origin=os.getenv('MAKAMESCO_UPSTREAM_ORIGIN', DEFAULT_UPSTREAM_ORIGIN),
            proxy_prefix=os.getenv('MAKAMESCO_PROXY_PREFIX', DEFAULT_PROXY_PREFIX),
            service_name=os.getenv('MAKAMESCO_SERVICE_NAME', 'makamesco'),
            user_agent=os.getenv('MAKAMESCO_USER_AGENT', 'Makamesco-API/1.0'),
            powered_by=os.getenv('MAKAMESCO_POWERED_BY', 'Makamesco API'),
            sqlite_path=os.getenv('SQLITE_PATH', 'makamesco.db'),
            categories=load_categories(categories_file),
            auto_scrape=_env_bool('MAKAMESCO_AUTO_SCRAPE', True),
            upstream_timeout=float(timeout) if timeout else None,
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            log_json=_env_bool('LOG_JSON', False),
            log_file=os.getenv('LOG_FILE') or None
        )
