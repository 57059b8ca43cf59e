"""Scrape pipeline for Makamesco.

Rebuilds the endpoint store from the upstream documentation pages. Each
run clears the store, then walks the configured categories in order,
inserting the rows of each page concurrently.
"""

import asyncio
import logging
from typing import List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from indexer.models import EndpointRecordInput
from observability.prometheus_metrics import record_scrape_category, record_scrape_run
from .crawler import PageFetcher
from .table_parser import parse_endpoint_rows

logger = logging.getLogger(__name__)


@dataclass
class ScrapeStats:
    """Statistics for a scrape run."""
    total_categories: int = 0
    scraped_categories: int = 0
    skipped_categories: List[str] = field(default_factory=list)
    failed_categories: List[str] = field(default_factory=list)
    inserted: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    
    def __post_init__(self):
        if self.start_time is None:
            self.start_time = datetime.now(timezone.utc)
    
    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_time and self.start_time:
            return self.end_time - self.start_time
        return None
    
    def finish(self):
        """Mark run as finished."""
        self.end_time = datetime.now(timezone.utc)


class ScrapePipeline:
    """Replaces the store contents with a fresh scrape of the upstream docs.
    
    Concurrent calls to :meth:`trigger` share one run: a trigger that
    arrives while a run is in flight waits for that run and returns its
    count instead of clearing the store a second time.
    """
    
    def __init__(self, store, fetcher: PageFetcher, upstream_origin: str, categories: List[str]):
        """Initialize pipeline.
        
        Args:
            store: endpoint store (``clear_endpoints``/``insert_endpoint``)
            fetcher: page fetcher bound to an open HTTP session
            upstream_origin: origin the category pages live under
            categories: category slugs, scraped in this order
        """
        self.store = store
        self.fetcher = fetcher
        self.upstream_origin = upstream_origin.rstrip('/')
        self.categories = list(categories)
        self.last_stats: Optional[ScrapeStats] = None
        self._inflight: Optional[asyncio.Task] = None
    
    @property
    def running(self) -> bool:
        return self._inflight is not None and not self._inflight.done()
    
    async def trigger(self) -> int:
        """Run a scrape, or join the one already running. Returns the inserted count."""
        if not self.running:
            self._inflight = asyncio.ensure_future(self.run())
        else:
            logger.info("Scrape already in progress, joining it")
        return await asyncio.shield(self._inflight)
    
    async def cancel(self):
        """Stop the in-flight run, if any, and wait for it to unwind."""
        if not self.running:
            return
        self._inflight.cancel()
        try:
            await self._inflight
        except asyncio.CancelledError:
            logger.info("Scrape cancelled")
    
    async def run(self) -> int:
        """Clear the store and scrape every category once.
        
        Store failures while clearing propagate; everything that goes wrong
        inside a single category is logged and counted as zero rows.
        """
        stats = ScrapeStats(total_categories=len(self.categories))
        logger.info(f"Starting scrape of {len(self.categories)} categories from {self.upstream_origin}")
        
        try:
            await self.store.clear_endpoints()
        except Exception:
            record_scrape_run("error")
            raise
        
        for category in self.categories:
            stats.inserted += await self._scrape_category(category, stats)
        
        stats.finish()
        self.last_stats = stats
        record_scrape_run("success")
        
        logger.info(f"Scrape completed in {stats.duration.total_seconds():.2f}s: {stats.inserted} endpoints from "
                    f"{stats.scraped_categories}/{stats.total_categories} categories "
                    f"({len(stats.skipped_categories)} skipped, {len(stats.failed_categories)} failed)",
                    extra={"inserted": stats.inserted})
        return stats.inserted
    
    async def _scrape_category(self, category: str, stats: ScrapeStats) -> int:
        url = f"{self.upstream_origin}/{category}"
        
        try:
            result = await self.fetcher.fetch(url)
            if result.error:
                logger.error(f"Error scraping {category}: {result.error}", extra={"category": category})
                stats.failed_categories.append(category)
                record_scrape_category(category, 0, reason="fetch_error")
                return 0
            
            if not result.ok:
                logger.warning(f"Skipping {category}: upstream returned {result.status_code}",
                               extra={"category": category, "status_code": result.status_code})
                stats.skipped_categories.append(category)
                record_scrape_category(category, 0, reason="http_status")
                return 0
            
            rows = parse_endpoint_rows(result.content or "")
        except Exception as e:
            logger.error(f"Error scraping {category}: {e}", exc_info=True, extra={"category": category})
            stats.failed_categories.append(category)
            record_scrape_category(category, 0, reason="parse_error")
            return 0
        
        inserts = [
            self.store.insert_endpoint(EndpointRecordInput(
                category=category,
                name=row.name,
                return_type=row.return_type,
                description=row.description,
                parameters=row.parameters,
                link=row.link
            ))
            for row in rows
        ]
        outcomes = await asyncio.gather(*inserts, return_exceptions=True)
        
        inserted = 0
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error(f"Failed to store endpoint in {category}: {outcome}", extra={"category": category})
            else:
                inserted += 1
        
        stats.scraped_categories += 1
        if inserted < len(rows):
            record_scrape_category(category, inserted, reason="store_error")
        else:
            record_scrape_category(category, inserted)
        logger.debug(f"Scraped {inserted} endpoints from {category}",
                     extra={"category": category, "inserted": inserted})
        return inserted
