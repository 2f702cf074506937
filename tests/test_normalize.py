"""Tests for text and URL normalization helpers."""

import pytest

from prom_parser.ingest.base import Availability
from prom_parser.normalize.processor import (
    next_page_url,
    normalize_availability,
    normalize_page_url,
    parse_price,
    resolve_product_url,
    strip_sku_label,
    upscale_image_url,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("1 299 ₴", 1299.0),
        ("1 299,50 грн", 1299.5),
        ("від 45.90", 45.9),
        ("Ціну уточнюйте", 0.0),
        ("", 0.0),
        (None, 0.0),
    ],
)
def test_parse_price(text, expected):
    assert parse_price(text) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("В наявності", Availability.IN_STOCK),
        ("Готово до відправки", Availability.IN_STOCK),
        ("В наличии", Availability.IN_STOCK),
        ("Нет в наличии", Availability.UNAVAILABLE),
        ("Немає в наявності", Availability.UNAVAILABLE),
        ("Out of stock", Availability.UNAVAILABLE),
        ("Під замовлення", Availability.ON_ORDER),
        ("Под заказ", Availability.ON_ORDER),
        ("Уточнюйте", Availability.UNKNOWN),
        ("", Availability.UNKNOWN),
    ],
)
def test_normalize_availability(text, expected):
    assert normalize_availability(text) is expected


def test_next_page_url():
    assert next_page_url("https://shop.prom.ua/g1") == "https://shop.prom.ua/g1/page_2"
    assert next_page_url("https://shop.prom.ua/g1/") == "https://shop.prom.ua/g1/page_2"
    assert next_page_url("https://shop.prom.ua/g1/page_4?sort=price") == (
        "https://shop.prom.ua/g1/page_5?sort=price"
    )


def test_normalize_page_url():
    assert normalize_page_url("https://shop.prom.ua/g1/?a=1#top") == "https://shop.prom.ua/g1"


def test_resolve_product_url():
    assert resolve_product_url("https://x.prom.ua/p1.html") == "https://x.prom.ua/p1.html"
    assert resolve_product_url("/ua/p1.html", "https://prom.ua/") == "https://prom.ua/ua/p1.html"
    assert resolve_product_url("p1.html", "https://prom.ua") == "https://prom.ua/p1.html"


def test_upscale_image_url():
    assert upscale_image_url("https://images.prom.ua/5_w200_h200_a.jpg") == (
        "https://images.prom.ua/5_w640_h640_a.jpg"
    )
    assert upscale_image_url("https://images.prom.ua/5.jpg") == "https://images.prom.ua/5.jpg"


def test_strip_sku_label():
    assert strip_sku_label("Артикул: A-1") == "A-1"
    assert strip_sku_label("Code: 77") == "77"
    assert strip_sku_label("") == ""
