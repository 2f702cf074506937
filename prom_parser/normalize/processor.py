"""Normalize raw text scraped from storefront pages."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from prom_parser.config import settings
from prom_parser.ingest.base import Availability

logger = logging.getLogger(__name__)

# Checked in order: negative phrases contain the positive ones
# ("нет в наличии" / "в наличии", "unavailable" / "available").
AVAILABILITY_PHRASES = [
    (("немає", "нет в наличии", "unavailable", "out of stock", "not available"), Availability.UNAVAILABLE),
    (("замовлення", "под заказ", "on order", "pre-order", "preorder"), Availability.ON_ORDER),
    (("наявності", "готово", "в наличии", "in stock", "available"), Availability.IN_STOCK),
]

# Platform status codes from the embedded state payload
STATUS_CODES = {
    "available": Availability.IN_STOCK,
    "on_order": Availability.ON_ORDER,
}

SKU_LABEL_RE = re.compile(r"(Код|Артикул|Code|SKU|Article)\s*:", re.IGNORECASE)
IMAGE_SIZE_RE = re.compile(r"_w\d+_h\d+")
PAGE_SEGMENT_RE = re.compile(r"/page_(\d+)")

ROOT_CATEGORY_LABELS = {"Головна", "Каталог товарів", "Каталог", "Home", "Catalog"}


def parse_price(price_text: Optional[str]) -> float:
    """
    Parse a price from display text ("1 299,50 ₴", "1299.50", ...).

    Returns:
        Parsed value, or 0.0 when no number is present
    """
    if not price_text:
        return 0.0
    cleaned = re.sub(r"\s+", "", price_text).replace("&nbsp;", "")
    cleaned = re.sub(r"[^0-9.,]", "", cleaned).replace(",", ".", 1)
    match = re.match(r"\d+(?:\.\d+)?", cleaned)
    if not match:
        return 0.0
    try:
        return float(match.group())
    except ValueError:
        logger.debug("Failed to parse price: %s", price_text)
        return 0.0


def normalize_availability(text: Optional[str]) -> Availability:
    """Map free-form stock text to the four-way status."""
    lower = (text or "").lower()
    if not lower.strip():
        return Availability.UNKNOWN
    for phrases, status in AVAILABILITY_PHRASES:
        if any(phrase in lower for phrase in phrases):
            return status
    return Availability.UNKNOWN


def normalize_status_code(code: Optional[str]) -> Availability:
    """Map a platform status code to the four-way status."""
    if not code:
        return Availability.UNKNOWN
    return STATUS_CODES.get(str(code).lower(), Availability.UNAVAILABLE)


def upscale_image_url(src: str, size_token: Optional[str] = None) -> str:
    """Rewrite thumbnail size tokens (_w200_h200) to the high-resolution variant."""
    return IMAGE_SIZE_RE.sub(size_token or settings.image_size_token, src, count=1)


def strip_sku_label(text: Optional[str]) -> str:
    return SKU_LABEL_RE.sub("", text or "").strip()


def is_root_category(label: str) -> bool:
    return label.strip() in ROOT_CATEGORY_LABELS


def normalize_page_url(url: str) -> str:
    """Drop query string and trailing slash (visited-set key)."""
    return url.split("?", 1)[0].split("#", 1)[0].rstrip("/")


def absolute_url(href: str, base: str) -> str:
    return urljoin(base, href)


def resolve_product_url(url: str, base_url: Optional[str] = None) -> str:
    """Resolve a possibly relative product URL against the platform host."""
    url = url.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return urljoin((base_url or settings.base_url).rstrip("/") + "/", url.lstrip("/"))


def next_page_url(current_url: str) -> str:
    """
    Synthesize the next page URL.

    Increments a /page_N path segment or appends /page_2; query is kept.
    """
    parts = urlsplit(current_url)
    path = parts.path
    match = PAGE_SEGMENT_RE.search(path)
    if match:
        page = int(match.group(1))
        path = path[:match.start()] + f"/page_{page + 1}" + path[match.end():]
    else:
        path = path.rstrip("/") + "/page_2"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
