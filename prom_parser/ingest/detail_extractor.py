"""Heuristic extraction of product details from product page markup.

Every field has an ordered list of strategies, most platform-specific first.
The first strategy that yields a non-empty value wins, except for images,
which are accumulated across all strategies because storefront themes expose
different subsets of the gallery.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from selectolax.parser import HTMLParser

from prom_parser.ingest.base import Availability, Product, ProductAttribute, clean_images
from prom_parser.ingest.selectors import attr_or_text, first_result, inner_html, node_text
from prom_parser.normalize.processor import (
    is_root_category,
    normalize_availability,
    parse_price,
    strip_sku_label,
    upscale_image_url,
)

logger = logging.getLogger(__name__)

DESCRIPTION_SELECTORS = [
    '[data-qaid="descriptions"]',
    '[data-qaid="product_description"]',
    '.b-user-content',
    '.cs-user-content',
]

# Removed from the description container before reading it
DESCRIPTION_NOISE = 'script, style, [data-qaid="attribute_block"]'

IMAGE_SELECTORS = [
    '[data-qaid="image_preview"]',
    '.cs-image-holder img',
    '.b-extra-photos img',
    '.b-pictures img',
    '.cs-images img',
]

ATTRIBUTE_ROW_SELECTORS = [
    '.b-product-info tr',
    '[data-qaid="attribute_block"] tr',
    '.cs-product-info tr',
    '.cs-product-info__row',
]
ATTRIBUTE_CELL_SELECTOR = 'td, .cs-product-info__cell'

SKU_SELECTORS = [
    '[data-qaid="product-sku"]',
    '[data-qaid="product_code"]',
    '.b-product-data__item_type_sku',
    '.cs-product-data__item_type_sku',
]

BREADCRUMB_SELECTORS = [
    '[data-qaid="breadcrumbs_seo"] li a',
    '.b-breadcrumb__item a',
    '.cs-breadcrumb__item a',
]

OLD_PRICE_SELECTORS = [
    '[data-qaid="old_price"]',
    '[data-qaid="old_product_price"]',
    '.b-goods-price__value_type_old',
    '.b-product-gallery__old-price',
    '.b-product-cost__old-price',
    '.b-product-cost__prev',
    '.cs-goods-price__value_type_old',
    '.cs-goods-price__old',
    'strike',
    'del',
]

AVAILABILITY_SELECTORS = [
    '[data-qaid="presence_data"]',
    '[data-qaid="product_presence"]',
    '.b-product-data__item_type_available',
    '.b-goods-data__state',
    '.b-product-status__state',
    '.cs-goods-availability',
    '.cs-goods-data__state',
    '.b-product-gallery__state',
]


@dataclass
class DetailBundle:
    """Detail-page fields that list views do not carry."""

    description: str = ""
    attributes: List[ProductAttribute] = field(default_factory=list)
    all_images: List[str] = field(default_factory=list)
    category_name: str = ""
    category_path: List[str] = field(default_factory=list)
    old_price: Optional[float] = None
    sku: str = ""
    availability: Availability = Availability.UNKNOWN


def _description_strategy(selector: str) -> Callable[[HTMLParser], str]:
    def strategy(tree: HTMLParser) -> str:
        node = tree.css_first(selector)
        if node is None:
            return ""
        # Sanitize a copy so the page tree stays intact for other fields
        fragment = HTMLParser(node.html or "")
        for noise in fragment.css(DESCRIPTION_NOISE):
            noise.decompose()
        return inner_html(fragment.css_first(node.tag))

    strategy.__name__ = f"description[{selector}]"
    return strategy


def _attribute_strategy(selector: str) -> Callable[[HTMLParser], List[ProductAttribute]]:
    def strategy(tree: HTMLParser) -> List[ProductAttribute]:
        attributes = []
        for row in tree.css(selector):
            cells = row.css(ATTRIBUTE_CELL_SELECTOR)
            # Header-only rows have fewer than two data cells
            if len(cells) < 2:
                continue
            name, value = node_text(cells[0]), node_text(cells[1])
            if name and value:
                attributes.append(ProductAttribute(name=name, value=value))
        return attributes

    strategy.__name__ = f"attributes[{selector}]"
    return strategy


def _sku_strategy(selector: str) -> Callable[[HTMLParser], str]:
    def strategy(tree: HTMLParser) -> str:
        return strip_sku_label(node_text(tree.css_first(selector)))

    strategy.__name__ = f"sku[{selector}]"
    return strategy


def _breadcrumb_strategy(selector: str) -> Callable[[HTMLParser], List[str]]:
    def strategy(tree: HTMLParser) -> List[str]:
        path = []
        for anchor in tree.css(selector):
            label = (anchor.attributes.get("title") or node_text(anchor)).strip()
            if label and not is_root_category(label):
                path.append(label)
        return path

    strategy.__name__ = f"breadcrumbs[{selector}]"
    return strategy


def _old_price_strategy(selector: str) -> Callable[[HTMLParser], Optional[float]]:
    def strategy(tree: HTMLParser) -> Optional[float]:
        value = parse_price(attr_or_text(tree.css_first(selector), "data-qaprice"))
        return value if value > 0 else None

    strategy.__name__ = f"old_price[{selector}]"
    return strategy


def _availability_strategy(selector: str) -> Callable[[HTMLParser], Optional[Availability]]:
    def strategy(tree: HTMLParser) -> Optional[Availability]:
        node = tree.css_first(selector)
        if node is None:
            return None
        status = normalize_availability(node_text(node))
        return None if status is Availability.UNKNOWN else status

    strategy.__name__ = f"availability[{selector}]"
    return strategy


DESCRIPTION_STRATEGIES = [_description_strategy(s) for s in DESCRIPTION_SELECTORS]
ATTRIBUTE_STRATEGIES = [_attribute_strategy(s) for s in ATTRIBUTE_ROW_SELECTORS]
SKU_STRATEGIES = [_sku_strategy(s) for s in SKU_SELECTORS]
BREADCRUMB_STRATEGIES = [_breadcrumb_strategy(s) for s in BREADCRUMB_SELECTORS]
OLD_PRICE_STRATEGIES = [_old_price_strategy(s) for s in OLD_PRICE_SELECTORS]
AVAILABILITY_STRATEGIES = [_availability_strategy(s) for s in AVAILABILITY_SELECTORS]


def collect_images(tree: HTMLParser, seed: Optional[List[str]] = None) -> List[str]:
    """Union of gallery images from every known gallery layout, seed images first."""
    images = list(seed or [])
    for selector in IMAGE_SELECTORS:
        try:
            nodes = tree.css(selector)
        except Exception as e:
            logger.debug(f"Image selector error: {selector} - {e}")
            continue
        for img in nodes:
            src = img.attributes.get("data-src") or img.attributes.get("src")
            if not src or src.startswith("data:"):
                continue
            images.append(upscale_image_url(src))
    return clean_images(images)


def extract_details(tree: HTMLParser, seed: Optional[Product] = None) -> DetailBundle:
    """
    Fill detail fields, starting from the structured-state seed when it has them.

    Never raises; fields nobody could find keep their empty defaults.
    """
    description = (seed.description if seed else "") or first_result(
        DESCRIPTION_STRATEGIES, tree, "description"
    ) or ""

    attributes = (list(seed.attributes) if seed else []) or first_result(
        ATTRIBUTE_STRATEGIES, tree, "attributes"
    ) or []

    sku = (seed.sku if seed else "") or first_result(SKU_STRATEGIES, tree, "sku") or ""

    category_path = (list(seed.category_path) if seed else []) or first_result(
        BREADCRUMB_STRATEGIES, tree, "category_path"
    ) or []
    category_name = (seed.category_name if seed else "") or (category_path[-1] if category_path else "")

    old_price = (seed.old_price if seed else None) or first_result(
        OLD_PRICE_STRATEGIES, tree, "old_price"
    )

    availability = seed.availability if seed else Availability.UNKNOWN
    if availability is Availability.UNKNOWN:
        availability = first_result(AVAILABILITY_STRATEGIES, tree, "availability") or Availability.UNKNOWN

    return DetailBundle(
        description=description,
        attributes=attributes,
        all_images=collect_images(tree, seed.all_images if seed else None),
        category_name=category_name,
        category_path=category_path,
        old_price=old_price,
        sku=sku,
        availability=availability,
    )
