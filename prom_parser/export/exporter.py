"""
Export pipeline: usage check, detail hydration, serialization.

List-view records from a category crawl lack descriptions, attributes and the
full gallery. Before writing a file, every such record is scraped from its
product page and replaced in place.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Sequence

from prom_parser import metrics
from prom_parser.config import settings
from prom_parser.errors import UsageDeniedError, ValidationError
from prom_parser.export.formatters import format_csv, format_yml
from prom_parser.ingest.base import Product, hydrate, upsert_products
from prom_parser.ingest.product_scraper import ProductScraper

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

EXPORT_FORMATS = {
    "csv": ("text/csv", "csv"),
    "xml": ("application/xml", "xml"),
}


class UsageGate(Protocol):
    """Decides whether an export may proceed."""

    item_limit: Optional[int]

    def try_consume(self) -> bool:
        ...


class UnlimitedUsageGate:
    """Gate that always allows exports and never caps them."""

    item_limit: Optional[int] = None

    def try_consume(self) -> bool:
        return True


class Exporter:
    """Hydrates list-view products and serializes them to CSV or YML."""

    def __init__(
        self,
        scraper: Optional[ProductScraper] = None,
        gate: Optional[UsageGate] = None,
        batch_size: Optional[int] = None,
    ):
        self.scraper = scraper or ProductScraper()
        self.gate = gate or UnlimitedUsageGate()
        self.batch_size = max(1, batch_size or settings.hydration_batch_size)

    async def export(
        self,
        products: Sequence[Product],
        fmt: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """
        Produce an export file.

        Args:
            products: Records to export (list-view or detailed)
            fmt: "csv" or "xml"
            on_progress: Optional status message observer

        Returns:
            UTF-8 encoded file content

        Raises:
            ValidationError: Unknown format
            UsageDeniedError: The usage gate refused the export
        """
        fmt = (fmt or "").lower()
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {fmt}")

        if not self.gate.try_consume():
            metrics.record_export(fmt, "denied")
            raise UsageDeniedError("Export limit reached")

        records = list(products)
        limit = getattr(self.gate, "item_limit", None)
        if limit is not None:
            records = records[:limit]

        records = await self.hydrate_products(records, on_progress)

        content = format_csv(records) if fmt == "csv" else format_yml(records)
        metrics.record_export(fmt, "success")
        logger.info(f"Exported {len(records)} products as {fmt}")
        return content.encode("utf-8")

    async def hydrate_products(
        self,
        products: Sequence[Product],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[Product]:
        """
        Replace list-view records with their detailed versions.

        Records that fail to load are kept unchanged.
        """
        result = list(products)
        pending = [p for p in result if not p.details_loaded]
        total = len(pending)
        if not total:
            return result

        logger.info(f"Loading details for {total} products")
        for start in range(0, total, self.batch_size):
            batch = pending[start:start + self.batch_size]
            if on_progress:
                on_progress(f"Loading details {start + len(batch)}/{total}")

            scraped = await asyncio.gather(*(self.scraper.scrape(p.link) for p in batch))

            updates = []
            for partial, full in zip(batch, scraped):
                metrics.record_hydration(full is not None)
                if full is None:
                    logger.warning(f"Keeping list data for {partial.id}: details unavailable")
                    continue
                updates.append(hydrate(partial, full))
            result = upsert_products(result, updates)

        return result
