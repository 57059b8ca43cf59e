"""Pipelines package for Makamesco.

Provides upstream page fetching, documentation table parsing and the
scrape pipeline that rebuilds the endpoint store.
"""

from .crawler import PageFetcher, FetchResult
from .table_parser import EndpointRow, parse_endpoint_rows, parse_parameters, proxy_path
from .scraper import ScrapePipeline, ScrapeStats

__all__ = [
    # Fetching
    'PageFetcher',
    'FetchResult',
    
    # Parsing
    'EndpointRow',
    'parse_endpoint_rows',
    'parse_parameters',
    'proxy_path',
    
    # Scraping
    'ScrapePipeline',
    'ScrapeStats'
]
