"""Fake relay helpers and storefront markup builders used across tests."""

import json
from typing import Optional
from urllib.parse import urlsplit

import httpx

RELAY_TEMPLATE = "https://relay.test/raw?url={url}"


def relayed_target(request: httpx.Request) -> str:
    """The storefront URL a relay request asks for (cache buster included)."""
    return request.url.params["url"]


def relayed_path(request: httpx.Request) -> str:
    return urlsplit(relayed_target(request)).path


def card_html(
    product_id: str,
    title: str,
    price: str = "1 299 ₴",
    old_price: Optional[str] = None,
    status: str = "В наявності",
    href: Optional[str] = None,
    image: str = "https://images.prom.ua/1_w200_h200_item.jpg",
) -> str:
    old = f'<span class="cs-goods-price__value_type_old">{old_price}</span>' if old_price else ""
    href = href or f"/p{product_id}-item.html"
    return (
        f'<li class="cs-product-gallery__item" data-product-id="{product_id}">'
        f'<a href="{href}"><img src="{image}"></a>'
        f'<a class="cs-product-gallery__title" href="{href}">{title}</a>'
        f'<span class="cs-goods-price__value_type_current">{price}</span>{old}'
        f'<span class="cs-goods-data__state">{status}</span>'
        f"</li>"
    )


def category_html(cards, next_href: Optional[str] = None) -> str:
    pager = f'<a class="cs-pager__link" href="{next_href}">Наступна</a>' if next_href else ""
    return (
        "<html><body><ul class=\"cs-product-gallery\">"
        + "".join(cards)
        + f"</ul><div class=\"cs-pager\">{pager}</div></body></html>"
    )


def state_html(product: dict, breadcrumbs=None, body: str = "") -> str:
    """Product page carrying a client-side state payload."""
    result = {"product": product}
    if breadcrumbs is not None:
        result["breadCrumbs"] = {"items": [{"caption": c} for c in breadcrumbs]}
    cache = {'ProductCardPageQuery({"productId":1})': {"result": result}}
    return (
        "<html><head><script>window.ApolloCacheState = "
        + json.dumps(cache, ensure_ascii=False)
        + ";</script></head><body>"
        + body
        + "</body></html>"
    )
