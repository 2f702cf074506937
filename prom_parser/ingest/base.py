"""Product records shared by the fetch, extraction and export layers."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple

# Explicit marker for products without any usable image
NO_IMAGE = "no_image"


class Availability(str, Enum):
    """Four-way stock status."""

    IN_STOCK = "In stock"
    ON_ORDER = "On order"
    UNAVAILABLE = "Unavailable"
    UNKNOWN = "Unknown"


class SearchMode(str, Enum):
    CATEGORY = "category"
    PRODUCTS = "products"


@dataclass
class ProductAttribute:
    """A free-form characteristic (name/value pair) of a product."""

    name: str
    value: str


def clean_images(images: Iterable[Optional[str]]) -> List[str]:
    """Drop empty, inline and placeholder entries, keeping first-seen order."""
    seen = set()
    result = []
    for src in images:
        if not src:
            continue
        src = src.strip()
        if not src or src == NO_IMAGE or src.startswith("data:") or src in seen:
            continue
        seen.add(src)
        result.append(src)
    return result


@dataclass
class Product:
    """A product from a catalog listing (partial) or a product page (full)."""

    id: str
    title: str
    price: float
    link: str
    currency: str = "UAH"
    availability: Availability = Availability.UNKNOWN
    old_price: Optional[float] = None
    external_id: Optional[str] = None
    seller: str = "Seller"
    sku: str = ""
    image: str = NO_IMAGE
    all_images: List[str] = field(default_factory=list)
    description: str = ""
    attributes: List[ProductAttribute] = field(default_factory=list)
    category_name: str = ""
    category_path: List[str] = field(default_factory=list)
    details_loaded: bool = False

    def __post_init__(self):
        if not isinstance(self.availability, Availability):
            try:
                self.availability = Availability(self.availability)
            except ValueError:
                self.availability = Availability.UNKNOWN

        # An old price that is not higher than the current one is not a discount
        if self.old_price is not None and not self.old_price > self.price:
            self.old_price = None

        images = clean_images(self.all_images)
        primary = clean_images([self.image])
        if primary and primary[0] not in images:
            images.insert(0, primary[0])
        self.all_images = images
        self.image = images[0] if images else NO_IMAGE

    @property
    def discount(self) -> Optional[float]:
        """Absolute discount in catalog currency."""
        if self.old_price is None:
            return None
        return self.old_price - self.price


@dataclass
class ParseResult:
    """Envelope returned by category crawls and multi-product scrapes."""

    products: List[Product] = field(default_factory=list)


@dataclass(frozen=True)
class SearchFilters:
    """Caller-supplied search input. Read-only to the engine."""

    mode: SearchMode = SearchMode.CATEGORY
    shop_url: str = ""
    product_urls: Tuple[str, ...] = ()
    max_pages: int = 1

    @property
    def page_limit(self) -> int:
        return max(1, self.max_pages or 1)


def hydrate(partial: Product, full: Product) -> Product:
    """Replace a list-view record with its detailed version, keeping the list id."""
    return replace(full, id=partial.id, details_loaded=True)


def merge_new(accumulated: List[Product], products: Iterable[Product]) -> int:
    """
    Append products whose id is not yet present.

    Returns:
        Number of products added
    """
    known = {p.id for p in accumulated}
    added = 0
    for product in products:
        if product.id in known:
            continue
        known.add(product.id)
        accumulated.append(product)
        added += 1
    return added


def upsert_products(products: List[Product], updates: Iterable[Product]) -> List[Product]:
    """
    Overwrite records by id, appending unknown ids.

    A detailed record is never replaced by a list-view one, so
    details_loaded cannot go back from True to False.
    """
    result = list(products)
    index = {p.id: i for i, p in enumerate(result)}
    for update in updates:
        pos = index.get(update.id)
        if pos is None:
            index[update.id] = len(result)
            result.append(update)
            continue
        if result[pos].details_loaded and not update.details_loaded:
            continue
        result[pos] = update
    return result
