"""Scrape a single product page into a fully detailed product record."""

import logging
import re
import time
from typing import Optional

from selectolax.parser import HTMLParser

from prom_parser import metrics
from prom_parser.config import settings
from prom_parser.errors import RetrievalError
from prom_parser.ingest.base import Product
from prom_parser.ingest.detail_extractor import extract_details
from prom_parser.ingest.json_extractor import extract_structured_product
from prom_parser.ingest.relay_fetcher import RelayFetcher
from prom_parser.ingest.selectors import attr_or_text, node_text, try_selectors
from prom_parser.normalize.processor import parse_price, resolve_product_url

logger = logging.getLogger(__name__)

PRICE_SELECTORS = [
    '[data-qaid="product_price"]',
    '.cs-goods-price__value_type_current',
    '.b-goods-price__value_type_current',
    '.b-product-gallery__current-price',
    '.b-product-cost__price',
]

SELLER_SELECTOR = '[data-qaid="company_name"]'

URL_ID_PATTERNS = [
    re.compile(r"/p(\d+)"),
    re.compile(r"-(\d+)\.html"),
]


def extract_id_from_url(url: str) -> Optional[str]:
    """Numeric product id embedded in a product URL (/p123456-name.html)."""
    for pattern in URL_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def synthetic_id() -> str:
    return str(int(time.time() * 1000))


def parse_product_page(html: str, url: str) -> Product:
    """
    Build a detailed product from product page markup.

    The embedded state payload is preferred; DOM heuristics fill the rest.
    """
    tree = HTMLParser(html)
    structured = extract_structured_product(tree, url)
    details = extract_details(tree, structured)

    title = (structured.title if structured else "") or node_text(tree.css_first("h1")) or "No Title"

    price = structured.price if structured else 0.0
    if not price:
        _, price_elem = try_selectors(tree, PRICE_SELECTORS)
        price = parse_price(attr_or_text(price_elem, "data-qaprice"))

    product_id = (structured.id if structured else "") or extract_id_from_url(url) or synthetic_id()

    return Product(
        id=product_id,
        external_id=product_id,
        title=title,
        price=price,
        old_price=details.old_price,
        currency=settings.currency,
        availability=details.availability,
        link=url,
        seller=node_text(tree.css_first(SELLER_SELECTOR)) or "Seller",
        sku=details.sku,
        all_images=details.all_images,
        description=details.description,
        attributes=details.attributes,
        category_name=details.category_name,
        category_path=details.category_path,
        details_loaded=True,
    )


class ProductScraper:
    """Fetch and parse individual product pages."""

    def __init__(self, fetcher: Optional[RelayFetcher] = None, base_url: Optional[str] = None):
        self.fetcher = fetcher or RelayFetcher()
        self.base_url = base_url or settings.base_url

    async def scrape(self, url: str) -> Optional[Product]:
        """
        Scrape one product page.

        Never raises: any fetch or parse failure is logged and yields None so
        batch callers can skip the item.
        """
        target_url = resolve_product_url(url, self.base_url)
        try:
            html = await self.fetcher.fetch(target_url)
            product = parse_product_page(html, target_url)
        except RetrievalError as e:
            logger.warning(f"Could not retrieve product {target_url}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Failed to parse product {target_url}: {type(e).__name__}: {e}")
            return None

        metrics.record_products("detail", 1)
        logger.debug(f"Scraped product {product.id} ({product.title[:60]}) from {target_url}")
        return product
