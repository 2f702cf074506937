"""Extract product data from the client-side state embedded in product pages."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from selectolax.parser import HTMLParser

from prom_parser.config import settings
from prom_parser.errors import ExtractionFailure
from prom_parser.ingest.base import Product, ProductAttribute
from prom_parser.normalize.processor import is_root_category, normalize_status_code

logger = logging.getLogger(__name__)

STATE_MARKER = "window.ApolloCacheState"
STATE_ASSIGNMENT_RE = re.compile(r"window\.ApolloCacheState\s*=\s*")
PRODUCT_QUERY_PREFIX = "ProductCardPageQuery"


@dataclass
class StateAbsent:
    """The page carries no recognizable state payload."""
    pass


@dataclass
class StateMalformed:
    """A payload was found but could not be decoded into a product."""

    reason: str


@dataclass
class StateProduct:
    """A product decoded from the state payload."""

    product: Product


StructuredState = Union[StateAbsent, StateMalformed, StateProduct]


def extract_apollo_state(html: Union[str, HTMLParser]) -> Optional[Dict[str, Any]]:
    """
    Find the `window.ApolloCacheState = {...}` assignment and decode its object literal.

    Returns:
        The decoded cache, or None when no script carries the assignment

    Raises:
        ExtractionFailure: If the assignment is present but not valid JSON
    """
    tree = html if isinstance(html, HTMLParser) else HTMLParser(html)
    for script in tree.css("script"):
        text = script.text() or ""
        if STATE_MARKER not in text:
            continue
        match = STATE_ASSIGNMENT_RE.search(text)
        if not match:
            continue
        try:
            cache, _ = json.JSONDecoder().raw_decode(text, match.end())
        except json.JSONDecodeError as e:
            raise ExtractionFailure(f"Undecodable state payload: {e}", source=STATE_MARKER) from e
        if not isinstance(cache, dict):
            raise ExtractionFailure("State payload is not an object", source=STATE_MARKER)
        return cache
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(" ", "").replace(",", "."))
    except ValueError:
        return None


def _flatten_images(data: Dict[str, Any]) -> List[str]:
    images = data.get("images")
    if isinstance(images, list):
        urls = []
        for img in images:
            if isinstance(img, dict):
                urls.append(img.get("url") or "")
            elif isinstance(img, str):
                urls.append(img)
        return urls
    if isinstance(data.get("image"), str):
        return [data["image"]]
    return []


def _flatten_breadcrumbs(result: Dict[str, Any]) -> List[str]:
    items = (result.get("breadCrumbs") or {}).get("items") or []
    captions = [
        str(item.get("caption")).strip()
        for item in items
        if isinstance(item, dict) and item.get("caption")
    ]
    # First crumb is the platform root
    return [c for c in captions[1:] if c and not is_root_category(c)]


def _map_attributes(data: Dict[str, Any]) -> List[ProductAttribute]:
    attributes = []
    for attr in data.get("attributes") or []:
        if not isinstance(attr, dict) or not attr.get("name"):
            continue
        values = attr.get("values")
        if isinstance(values, list):
            value = ", ".join(
                str(v.get("value") if isinstance(v, dict) else v)
                for v in values
                if v is not None
            )
        else:
            value = str(attr.get("value") or "")
        attributes.append(ProductAttribute(name=str(attr["name"]).strip(), value=value.strip()))
    return attributes


def product_from_state(cache: Dict[str, Any], canonical_url: str) -> Optional[Product]:
    """Build a product from the product page query result inside the cache."""
    key = next((k for k in cache if k.startswith(PRODUCT_QUERY_PREFIX)), None)
    if key is None or not isinstance(cache[key], dict):
        return None
    result = cache[key].get("result") or {}
    data = result.get("product")
    if not isinstance(data, dict):
        return None

    discounted = _to_float(data.get("discountedPrice"))
    listed = _to_float(data.get("price"))
    price = discounted if discounted and discounted > 0 else (listed or 0.0)

    category_path = _flatten_breadcrumbs(result)
    company = data.get("company") if isinstance(data.get("company"), dict) else {}

    return Product(
        id=str(data["id"]) if data.get("id") is not None else "",
        external_id=str(data["id"]) if data.get("id") is not None else None,
        title=str(data.get("name") or "").strip(),
        price=price,
        old_price=_to_float(data.get("priceOriginal")),
        currency=settings.currency,
        availability=normalize_status_code(data.get("status")),
        link=canonical_url,
        seller=(company.get("name") or "Seller").strip(),
        sku=str(data.get("sku") or "").strip(),
        all_images=_flatten_images(data),
        description=data.get("descriptionFull") or data.get("description") or "",
        attributes=_map_attributes(data),
        category_name=category_path[-1] if category_path else "",
        category_path=category_path,
        details_loaded=True,
    )


def decode_structured_state(html: Union[str, HTMLParser], canonical_url: str) -> StructuredState:
    """
    Decode the embedded state into a tagged result.

    The payload shape is not guaranteed by the site, so every lookup is
    defensive and any failure is reported as StateMalformed.
    """
    try:
        cache = extract_apollo_state(html)
    except ExtractionFailure as e:
        return StateMalformed(reason=str(e))
    if cache is None:
        return StateAbsent()
    try:
        product = product_from_state(cache, canonical_url)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        return StateMalformed(reason=f"{type(e).__name__}: {e}")
    if product is None:
        return StateMalformed(reason=f"No {PRODUCT_QUERY_PREFIX} result in state")
    return StateProduct(product=product)


def extract_structured_product(html: Union[str, HTMLParser], canonical_url: str) -> Optional[Product]:
    """
    Extract a product from the embedded state payload.

    Returns:
        Product with details_loaded=True, or None when the page has no usable payload
    """
    state = decode_structured_state(html, canonical_url)
    if isinstance(state, StateProduct):
        return state.product
    if isinstance(state, StateMalformed):
        logger.debug(f"Structured state unusable for {canonical_url}: {state.reason}")
    return None
