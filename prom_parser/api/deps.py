"""FastAPI dependencies."""

from typing import Optional

from fastapi import Depends

from prom_parser.export.exporter import Exporter, UnlimitedUsageGate, UsageGate
from prom_parser.ingest.product_scraper import ProductScraper
from prom_parser.ingest.relay_fetcher import RelayFetcher
from prom_parser.search.service import SearchService

# Shared across requests so relay connections are pooled
_fetcher: Optional[RelayFetcher] = None


def get_fetcher() -> RelayFetcher:
    """Dependency for the shared relay fetcher."""
    global _fetcher
    if _fetcher is None:
        _fetcher = RelayFetcher()
    return _fetcher


async def close_fetcher() -> None:
    """Close the shared fetcher's HTTP client, if one was created."""
    global _fetcher
    if _fetcher is not None:
        await _fetcher.close()
        _fetcher = None


def get_search_service() -> SearchService:
    """Dependency for the search service."""
    return SearchService(fetcher=get_fetcher())


def get_usage_gate() -> UsageGate:
    """Dependency for the export usage gate."""
    return UnlimitedUsageGate()


def get_exporter(gate: UsageGate = Depends(get_usage_gate)) -> Exporter:
    """Dependency for the exporter."""
    return Exporter(scraper=ProductScraper(fetcher=get_fetcher()), gate=gate)
