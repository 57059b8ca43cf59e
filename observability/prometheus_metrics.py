"""Prometheus metrics integration for the Makamesco API."""

from prometheus_client import Counter, Histogram, Info, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry
from fastapi import FastAPI, Request, Response
import re
import time
from typing import Optional
import logging
import os

logger = logging.getLogger(__name__)

# Create custom registry for Makamesco metrics
makamesco_registry = CollectorRegistry()

# Request metrics
request_count = Counter(
    'makamesco_http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=makamesco_registry
)

request_duration = Histogram(
    'makamesco_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=makamesco_registry
)

# Scrape metrics
scrape_runs = Counter(
    'makamesco_scrape_runs_total',
    'Total number of scrape runs',
    ['status'],
    registry=makamesco_registry
)

scrape_records = Counter(
    'makamesco_scrape_records_total',
    'Endpoint records inserted by scrape runs',
    ['category'],
    registry=makamesco_registry
)

scrape_category_failures = Counter(
    'makamesco_scrape_category_failures_total',
    'Categories that yielded no or partial rows',
    ['category', 'reason'],
    registry=makamesco_registry
)

# Proxy metrics
proxy_requests = Counter(
    'makamesco_proxy_requests_total',
    'Requests forwarded to the upstream API',
    ['method', 'outcome'],
    registry=makamesco_registry
)

# Application info
app_info = Info(
    'makamesco_app_info',
    'Makamesco application information',
    registry=makamesco_registry
)


class PrometheusMiddleware:
    """Middleware to collect Prometheus metrics for HTTP requests."""
    
    def __init__(self, app, proxy_prefix: Optional[str] = None):
        self.app = app
        self.proxy_prefix = proxy_prefix
    
    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        
        request = Request(scope, receive)
        method = request.method
        endpoint = self._normalize_endpoint(request.url.path)
        
        start_time = time.time()
        status_code = 500  # Default to error
        
        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)
        
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            request_count.labels(
                method=method,
                endpoint=endpoint,
                status_code=str(status_code)
            ).inc()
            
            request_duration.labels(
                method=method,
                endpoint=endpoint
            ).observe(time.time() - start_time)
    
    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        # Every proxied path collapses into one label
        if self.proxy_prefix and (path == self.proxy_prefix or path.startswith(self.proxy_prefix + "/")):
            return self.proxy_prefix + "/*"
        
        return re.sub(r'/\d+', '/{id}', path)


def setup_prometheus_metrics(app: FastAPI, proxy_prefix: Optional[str] = None) -> None:
    """Setup Prometheus metrics collection for FastAPI app."""
    app.add_middleware(PrometheusMiddleware, proxy_prefix=proxy_prefix)
    
    @app.get("/metrics", include_in_schema=False)
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(generate_latest(makamesco_registry), media_type=CONTENT_TYPE_LATEST)
    
    app_info.info({
        'version': os.getenv('APP_VERSION', 'unknown'),
        'environment': os.getenv('ENVIRONMENT', 'development')
    })
    
    logger.info("Prometheus metrics configured")


def record_scrape_run(status: str) -> None:
    scrape_runs.labels(status=status).inc()


def record_scrape_category(category: str, inserted: int, reason: Optional[str] = None) -> None:
    """Record the outcome of scraping one category page."""
    if inserted:
        scrape_records.labels(category=category).inc(inserted)
    if reason:
        scrape_category_failures.labels(category=category, reason=reason).inc()


def record_proxy_request(method: str, outcome: str) -> None:
    """Record a proxied request; outcome is json, binary or upstream_error."""
    proxy_requests.labels(method=method, outcome=outcome).inc()
