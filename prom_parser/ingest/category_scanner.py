"""Category scanner for discovering products from storefront catalog pages."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from selectolax.parser import HTMLParser, Node

from prom_parser import metrics
from prom_parser.config import settings
from prom_parser.errors import RetrievalError
from prom_parser.ingest.base import ParseResult, Product, merge_new
from prom_parser.ingest.relay_fetcher import RelayFetcher
from prom_parser.ingest.selectors import attr_or_text, node_text, select_all, try_selectors
from prom_parser.normalize.processor import (
    absolute_url,
    next_page_url,
    normalize_availability,
    normalize_page_url,
    parse_price,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

# A node matched by several selectors is kept once
CARD_SELECTORS = [
    '[data-qaid="product_block"]',
    '[data-qaid="product-block"]',
    '.cs-product-gallery__item',
    '.b-product-gallery__item',
    '.b-goods-gallery__item',
    '.cs-product-list__item',
    '.cs-product-gallery',
    '.b-product-gallery',
    '.b-product-gallery li',
]

TITLE_SELECTORS = [
    '[data-qaid="product_name"]',
    '.cs-product-gallery__title',
    '.b-product-gallery__title',
    '.b-goods-title',
    '.cs-goods-title-wrap',
    'a.cs-product-gallery__title',
]

PRICE_SELECTORS = [
    '.cs-goods-price__value_type_current',
    '.b-goods-price__value_type_current',
    '.b-product-gallery__current-price',
    '[data-qaid="product_price"]',
    '.b-product-cost__price',
    '.cs-goods-price__value',
    '.b-goods-price__value',
    '.cs-goods-price__major',
]

OLD_PRICE_SELECTORS = [
    '.cs-goods-price__value_type_old',
    '.b-goods-price__value_type_old',
    '.b-product-gallery__old-price',
    '[data-qaid="price_old"]',
    '[data-qaid="old_price"]',
    '.cs-goods-price__old',
    'strike',
    'del',
    '[data-qaid="discount_label"]',
]

STATUS_SELECTORS = [
    '[data-qaid="presence_data"]',
    '.cs-goods-data__state',
    '.b-product-gallery__state',
    '.cs-goods-availability',
    '[data-qaid="product_presence"]',
    '.b-goods-data__state',
]

PRODUCT_ID_ATTRIBUTES = ["data-product-id", "data-qaproductid", "data-id"]

SELLER_SELECTOR = '[data-qaid="company_name"]'

NEXT_LINK_SYMBOLS = {"›", "»", "→"}
NEXT_LINK_TOKENS = ("наступна", "далі")
NEXT_LINK_CLASSES = ("b-pager__link_pos_last", "cs-pager__link_pos_last")
IGNORED_HREFS = {"#", "javascript:void(0)"}


@dataclass
class CategoryPage:
    """Products and pagination link found on one catalog page."""

    products: List[Product] = field(default_factory=list)
    next_url: Optional[str] = None


class PromCategoryParser:
    """Parser for storefront catalog pages of the Prom platform."""

    def __init__(self, currency: Optional[str] = None):
        self.currency = currency or settings.currency

    def parse_category_page(self, html: str, category_url: str) -> CategoryPage:
        """
        Parse a catalog page.

        Args:
            html: Raw HTML content
            category_url: The page URL (base for relative links)

        Returns:
            CategoryPage with list-view products and the discovered next link
        """
        tree = HTMLParser(html)
        cards = select_all(tree, CARD_SELECTORS)
        card_ids = {card.mem_id for card in cards}
        products = []
        for card in cards:
            # Gallery wrappers match too; skip those that hold real cards
            if self._wraps_cards(card, card_ids):
                continue
            try:
                product = self.parse_card(card, category_url)
            except Exception as e:
                logger.debug(f"Failed to parse product card: {e}")
                continue
            if product is not None:
                products.append(product)

        return CategoryPage(
            products=products,
            next_url=self.get_next_page_url(tree, category_url),
        )

    @staticmethod
    def _wraps_cards(card: Node, card_ids: set[int]) -> bool:
        for node in select_all(card, CARD_SELECTORS):
            if node.mem_id != card.mem_id and node.mem_id in card_ids:
                return True
        return False

    def parse_card(self, card: Node, category_url: str) -> Optional[Product]:
        """Build a list-view product from one card; None when title or link is missing."""
        _, title_elem = try_selectors(card, TITLE_SELECTORS)
        link_elem = card.css_first("a[href]")
        if title_elem is None or link_elem is None:
            return None

        link = absolute_url(link_elem.attributes.get("href") or "", category_url)
        title = node_text(title_elem) or "No Title"

        _, price_elem = try_selectors(card, PRICE_SELECTORS)
        price = parse_price(attr_or_text(price_elem, "data-qaprice"))

        _, old_price_elem = try_selectors(card, OLD_PRICE_SELECTORS)
        old_price = None
        if old_price_elem is not None:
            old_price = parse_price(attr_or_text(old_price_elem, "data-qaprice")) or None

        _, status_elem = try_selectors(card, STATUS_SELECTORS)

        product_id = next(
            (card.attributes.get(a) for a in PRODUCT_ID_ATTRIBUTES if card.attributes.get(a)),
            None,
        )

        return Product(
            id=product_id or link,
            external_id=product_id,
            title=title,
            price=price,
            old_price=old_price,
            currency=self.currency,
            availability=normalize_availability(node_text(status_elem)),
            link=link,
            seller=node_text(card.css_first(SELLER_SELECTOR)) or "Seller",
            image=self._card_image(card),
            details_loaded=False,
        )

    @staticmethod
    def _card_image(card: Node) -> str:
        img = card.css_first("img")
        if img is None:
            return ""
        src = img.attributes.get("src") or ""
        if src and not src.startswith("data:"):
            return src
        return img.attributes.get("data-src") or ""

    def get_next_page_url(self, tree: HTMLParser, current_url: str) -> Optional[str]:
        """
        Find an explicit "next page" link.

        Args:
            tree: Parsed current page
            current_url: Current page URL

        Returns:
            Absolute next page URL or None if the page does not link one
        """
        for anchor in tree.css("a[href]"):
            href = (anchor.attributes.get("href") or "").strip()
            if not href or href in IGNORED_HREFS or href.startswith("javascript:"):
                continue
            if not self._is_next_link(anchor):
                continue
            try:
                resolved = absolute_url(href, current_url)
            except ValueError as e:
                logger.debug(f"Skipping malformed pager link {href!r}: {e}")
                continue
            if resolved.rstrip("/") != current_url.rstrip("/"):
                return resolved
        return None

    @staticmethod
    def _is_next_link(anchor: Node) -> bool:
        text = node_text(anchor)
        lower = text.lower()
        classes = anchor.attributes.get("class") or ""
        rel = (anchor.attributes.get("rel") or "").lower().split()
        return (
            text in NEXT_LINK_SYMBOLS
            or any(token in lower for token in NEXT_LINK_TOKENS)
            or lower == "next"
            or anchor.attributes.get("data-qaid") == "next_page"
            or "next" in rel
            or any(cls in classes for cls in NEXT_LINK_CLASSES)
        )


class CategoryScanner:
    """Walks paginated catalog pages and accumulates list-view products."""

    def __init__(
        self,
        fetcher: Optional[RelayFetcher] = None,
        parser: Optional[PromCategoryParser] = None,
        page_delay_seconds: Optional[float] = None,
    ):
        self.fetcher = fetcher or RelayFetcher()
        self.parser = parser or PromCategoryParser()
        self.page_delay_seconds = (
            page_delay_seconds if page_delay_seconds is not None else settings.page_delay_seconds
        )

    async def crawl(
        self,
        start_url: str,
        max_pages: int = 1,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ParseResult:
        """
        Crawl a category and its pagination.

        Stops when max_pages is reached, a page has no product cards, the
        next URL was already visited, or a page cannot be parsed. Products
        collected before the stop are returned.

        Args:
            start_url: First catalog page
            max_pages: Maximum pages to process (clamped to at least 1)
            on_progress: Optional status message observer

        Returns:
            ParseResult with products deduplicated by id

        Raises:
            RetrievalError: If the first page could not be retrieved
        """
        max_pages = max(1, max_pages or 1)
        current_url = start_url.strip()
        products: List[Product] = []
        visited: set[str] = set()

        for page_num in range(1, max_pages + 1):
            page_key = normalize_page_url(current_url)
            if page_key in visited:
                logger.info(f"Pagination loops back to {current_url}, stopping")
                break
            visited.add(page_key)

            if on_progress:
                on_progress(f"Processing page {page_num} of {max_pages}...")
            logger.info(f"Fetching category page {page_num}/{max_pages}: {current_url}")

            try:
                html = await self.fetcher.fetch(current_url)
            except RetrievalError as e:
                metrics.record_page("failed")
                if page_num == 1:
                    raise
                logger.warning(
                    f"Stopping crawl at page {page_num}, returning {len(products)} products: {e}"
                )
                break

            try:
                page = self.parser.parse_category_page(html, current_url)
            except Exception as e:
                metrics.record_page("failed")
                logger.warning(
                    f"Stopping crawl at page {page_num}, unparsable markup at {current_url}, "
                    f"returning {len(products)} products: {type(e).__name__}: {e}"
                )
                break

            added = merge_new(products, page.products)
            metrics.record_page("success" if page.products else "empty")
            metrics.record_products("list", added)
            logger.info(f"Found {len(page.products)} products on page {page_num}, added {added} new")

            # An empty page means we walked past the last real page
            if not page.products:
                break

            if page_num < max_pages:
                current_url = page.next_url or next_page_url(current_url)
                if self.page_delay_seconds > 0:
                    await asyncio.sleep(self.page_delay_seconds)

        logger.info(f"Category crawl complete: {len(products)} products from {start_url}")
        return ParseResult(products=products)
