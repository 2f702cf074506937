"""
Search service: entry point for both collection modes.

- "category": crawl a catalog URL and its pagination
- "products": scrape a list of product URLs in small concurrent batches
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from prom_parser.config import settings
from prom_parser.errors import ValidationError
from prom_parser.ingest.base import ParseResult, Product, SearchFilters, SearchMode, merge_new
from prom_parser.ingest.category_scanner import CategoryScanner
from prom_parser.ingest.product_scraper import ProductScraper
from prom_parser.ingest.relay_fetcher import RelayFetcher
from prom_parser.logging_config import get_logger

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class SearchService:
    """Dispatches a search to the category crawler or the product scraper."""

    def __init__(
        self,
        fetcher: Optional[RelayFetcher] = None,
        scanner: Optional[CategoryScanner] = None,
        scraper: Optional[ProductScraper] = None,
        batch_size: Optional[int] = None,
    ):
        self.fetcher = fetcher or RelayFetcher()
        self.scanner = scanner or CategoryScanner(fetcher=self.fetcher)
        self.scraper = scraper or ProductScraper(fetcher=self.fetcher)
        self.batch_size = max(1, batch_size or settings.product_batch_size)

    async def close(self):
        await self.fetcher.close()

    async def search(
        self,
        filters: SearchFilters,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ParseResult:
        """
        Run a search.

        Raises:
            ValidationError: If the selected mode has no input URL
            RetrievalError: If the first unit of work could not be retrieved
        """
        mode = SearchMode(filters.mode)
        log = get_logger(__name__, mode=mode.value)
        log.info(f"Starting {mode.value} search")
        if mode is SearchMode.PRODUCTS:
            urls = [u.strip() for u in filters.product_urls if u and u.strip()]
            if not urls:
                raise ValidationError("No product URLs supplied")
            return await self.scrape_products(urls, on_progress)

        shop_url = (filters.shop_url or "").strip()
        if not shop_url:
            raise ValidationError("No category URL supplied")
        return await self.scanner.crawl(shop_url, filters.page_limit, on_progress)

    async def scrape_products(
        self,
        urls: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ParseResult:
        """
        Scrape product URLs in fixed-size batches.

        Items inside a batch run concurrently; a failed item is skipped
        without affecting its siblings. URLs that resolve to an already
        scraped product id are kept once.
        """
        products: List[Product] = []
        total = len(urls)

        for start in range(0, total, self.batch_size):
            batch = urls[start:start + self.batch_size]
            if on_progress:
                end = start + len(batch)
                on_progress(f"Parsing products {start + 1}-{end} of {total}...")
            results = await asyncio.gather(*(self.scraper.scrape(url) for url in batch))
            merge_new(products, [p for p in results if p is not None])

        logger.info(f"Scraped {len(products)}/{total} products")
        return ParseResult(products=products)
