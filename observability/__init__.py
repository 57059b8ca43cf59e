"""Observability package for Makamesco."""

from .logging import setup_logging, JSONFormatter, ColoredFormatter
from .prometheus_metrics import (
    setup_prometheus_metrics,
    record_scrape_run,
    record_scrape_category,
    record_proxy_request,
    PrometheusMiddleware,
    makamesco_registry
)

__all__ = [
    'setup_logging',
    'JSONFormatter',
    'ColoredFormatter',
    'setup_prometheus_metrics',
    'record_scrape_run',
    'record_scrape_category',
    'record_proxy_request',
    'PrometheusMiddleware',
    'makamesco_registry'
]
