"""Makamesco HTTP service.

Serves the scraped endpoint catalog under ``/api`` and forwards every
request under the proxy prefix to the upstream API.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from typing import Callable, Dict, List, Optional
from urllib.parse import quote
import asyncio
import logging
import datetime
import os

import aiohttp

from config import AppConfig
from indexer.models import CategorySummary, EndpointRecord
from indexer.sqlite_adapter import EndpointStore
from observability.logging import setup_logging
from observability.prometheus_metrics import record_proxy_request, setup_prometheus_metrics
from pipelines.crawler import PageFetcher
from pipelines.scraper import ScrapePipeline
from pipelines.table_parser import parse_parameters, proxy_path
from .proxy import (
    PROXY_METHODS,
    BinaryPayload,
    ReverseProxy,
    UpstreamError,
    proxy_error,
    render_payload
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
NO_CATEGORY_FILTER = {"", "all"}


def _default_session_factory(config: AppConfig) -> Callable[[], aiohttp.ClientSession]:
    def factory() -> aiohttp.ClientSession:
        kwargs = {}
        if config.upstream_timeout is not None:
            kwargs['timeout'] = aiohttp.ClientTimeout(total=config.upstream_timeout)
        return aiohttp.ClientSession(headers={'User-Agent': config.user_agent}, **kwargs)
    return factory


def category_filter(category: Optional[str]) -> Optional[str]:
    """Map the ``category`` query value to a store filter; "All" means no filter."""
    if category is None or category.strip().lower() in NO_CATEGORY_FILTER:
        return None
    return category


def upstream_path(request: Request, prefix: str) -> str:
    """Path to forward, still percent-encoded as the client sent it."""
    raw = request.scope.get("raw_path")
    if raw:
        raw_path = raw.decode("latin-1").partition("?")[0]
        if raw_path.startswith(prefix):
            return raw_path[len(prefix):] or "/"
    return quote(request.url.path)[len(prefix):] or "/"


def summarize_categories(records: List[EndpointRecord], order: List[str]) -> List[CategorySummary]:
    """Count records per category, configured categories first."""
    counts: Dict[str, int] = {}
    for record in records:
        counts[record.category] = counts.get(record.category, 0) + 1
    
    ordered = [c for c in order if c in counts]
    ordered += sorted(c for c in counts if c not in order)
    return [CategorySummary(category=c, count=counts[c]) for c in ordered]


def create_app(config: Optional[AppConfig] = None,
               store: Optional[EndpointStore] = None,
               http_session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None) -> FastAPI:
    """Build the application.
    
    Args:
        config: settings; read from the environment when omitted
        store: endpoint store; a SQLite store at ``config.sqlite_path`` when omitted
        http_session_factory: builds the HTTP session shared by the scraper and the proxy
    """
    config = config or AppConfig.from_env()
    store = store or EndpointStore(config.sqlite_path)
    session_factory = http_session_factory or _default_session_factory(config)
    
    app = FastAPI(title="Makamesco API", version=VERSION)
    app.state.config = config
    app.state.store = store
    app.state.session = None
    app.state.proxy = None
    app.state.pipeline = None
    app.state.initial_scrape = None
    
    setup_prometheus_metrics(app, proxy_prefix=config.proxy_prefix)
    
    proxy_headers = {
        'X-Powered-By': config.powered_by,
        'X-Proxied-From': config.upstream_host,
        'Access-Control-Allow-Origin': '*'
    }
    
    @app.on_event("startup")
    async def startup_event():
        """Open the store and HTTP session, then seed an empty catalog."""
        await store.initialize()
        
        session = session_factory()
        app.state.session = session
        app.state.proxy = ReverseProxy(session, config.upstream_origin, config.user_agent)
        app.state.pipeline = ScrapePipeline(
            store,
            PageFetcher(session),
            upstream_origin=config.upstream_origin,
            categories=config.categories
        )
        
        if config.auto_scrape:
            # Runs in the background so a slow upstream never holds up serving
            app.state.initial_scrape = asyncio.ensure_future(seed_empty_catalog())

    async def seed_empty_catalog():
        try:
            if await store.count_endpoints() == 0:
                logger.info("Database empty, starting initial scrape...")
                count = await app.state.pipeline.trigger()
                logger.info(f"Initial scrape complete: {count} endpoints", extra={"inserted": count})
        except Exception as e:
            logger.error(f"Initial scrape failed: {e}", exc_info=True)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Clean up resources on shutdown."""
        task = app.state.initial_scrape
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Initial scrape cancelled by shutdown")
        if app.state.pipeline is not None:
            await app.state.pipeline.cancel()

        if app.state.session is not None:
            await app.state.session.close()
            app.state.session = None
        await store.close()
    
    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "Makamesco API",
            "version": VERSION,
            "docs": "/docs",
            "health": "/health",
            "proxy": config.proxy_prefix,
            "upstream": config.upstream_origin
        }
    
    @app.get("/health")
    async def health_check():
        try:
            count = await store.count_endpoints()
        except Exception as e:
            logger.error(f"Health check could not read the store: {e}")
            return {"status": "degraded", "endpoints": None, "error": str(e)}
        
        pipeline = app.state.pipeline
        seeding = app.state.initial_scrape is not None and not app.state.initial_scrape.done()
        return {
            "status": "healthy",
            "endpoints": count,
            "scraping": bool(pipeline and pipeline.running) or seeding,
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat()
        }
    
    @app.get("/api/endpoints", response_model=List[EndpointRecord])
    async def list_endpoints(search: Optional[str] = None, category: Optional[str] = None):
        try:
            return await store.list_endpoints(search=search or None, category=category_filter(category))
        except Exception as e:
            logger.error(f"Failed to fetch endpoints: {e}")
            return JSONResponse(status_code=500, content={"message": "Failed to fetch endpoints"})
    
    @app.get("/api/categories", response_model=List[CategorySummary])
    async def list_categories():
        try:
            records = await store.list_endpoints()
        except Exception as e:
            logger.error(f"Failed to fetch categories: {e}")
            return JSONResponse(status_code=500, content={"message": "Failed to fetch categories"})
        return summarize_categories(records, config.categories)
    
    @app.get("/api/docs")
    async def api_docs():
        """Catalog grouped by category, each entry described as a proxied call."""
        try:
            records = await store.list_endpoints()
        except Exception as e:
            logger.error(f"Failed to build API docs: {e}")
            return JSONResponse(status_code=500, content={"message": "Failed to fetch endpoints"})
        
        groups: Dict[str, list] = {}
        for record in records:
            groups.setdefault(record.category, []).append({
                "id": record.id,
                "name": record.name,
                "method": "GET",
                "path": proxy_path(record.link, config.proxy_prefix),
                "description": record.description,
                "returnType": record.return_type,
                "parameters": parse_parameters(record.parameters),
                "example": config.proxy_prefix + record.link
            })
        
        return [
            {"category": summary.category, "count": summary.count, "endpoints": groups[summary.category]}
            for summary in summarize_categories(records, config.categories)
        ]
    
    @app.post("/api/scrape")
    async def trigger_scrape():
        try:
            count = await app.state.pipeline.trigger()
        except Exception as e:
            logger.error(f"Scrape failed: {e}", exc_info=True)
            return JSONResponse(status_code=500, content={"message": "Failed to scrape endpoints"})
        return {"message": "Scraping completed", "count": count}
    
    @app.api_route(config.proxy_prefix, methods=PROXY_METHODS, include_in_schema=False)
    @app.api_route(config.proxy_prefix + "/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy_request(request: Request):
        method = request.method
        path = upstream_path(request, config.proxy_prefix)
        body = None
        if method not in ("GET", "HEAD"):
            body = await request.body()

        try:
            payload = await app.state.proxy.forward(
                method, path, request.query_params.multi_items(), body,
                content_type=request.headers.get("content-type")
            )
        except UpstreamError as e:
            logger.error(f"Proxy error for {method} {path}: {e}",
                         extra={"method": method, "path": path, "outcome": "upstream_error"})
            record_proxy_request(method, "upstream_error")
            return proxy_error("Failed to proxy request to upstream API", config.service_name, proxy_headers)
        
        record_proxy_request(method, "binary" if isinstance(payload, BinaryPayload) else "json")
        return render_payload(payload, proxy_headers)
    
    return app


def main():
    """Run the service with uvicorn."""
    import uvicorn
    
    config = AppConfig.from_env()
    setup_logging(
        level=config.log_level,
        service_name=config.service_name,
        log_file=config.log_file,
        use_json=config.log_json
    )
    uvicorn.run(
        create_app(config),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None
    )


if __name__ == "__main__":
    main()
