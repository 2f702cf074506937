"""Tests for heuristic product page extraction."""

from selectolax.parser import HTMLParser

from prom_parser.ingest.base import Availability, Product, ProductAttribute
from prom_parser.ingest.detail_extractor import collect_images, extract_details

DOM_PAGE = """
<html><body>
  <ul>
    <li class="b-breadcrumb__item"><a href="/">Головна</a></li>
    <li class="b-breadcrumb__item"><a href="/c1" title="Електроніка">Електр...</a></li>
    <li class="b-breadcrumb__item"><a href="/c2">Навушники</a></li>
  </ul>
  <h1>Wireless Headphones</h1>
  <span data-qaid="product_price" data-qaprice="899">899 ₴</span>
  <span data-qaid="old_price">1 100 ₴</span>
  <span data-qaid="presence_data">Немає в наявності</span>
  <span data-qaid="product-sku">Код: WH-200</span>
  <div class="b-pictures">
    <img src="data:image/gif;base64,AAAA" data-src="https://images.prom.ua/10_w200_h200_wh.jpg">
    <img src="https://images.prom.ua/11_w100_h100_wh.jpg">
  </div>
  <div data-qaid="descriptions">
    <p>Great <b>sound</b></p>
    <script>track()</script>
    <table data-qaid="attribute_block"><tr><td>hidden</td><td>x</td></tr></table>
  </div>
  <table class="b-product-info">
    <tr><th colspan="2">Основні</th></tr>
    <tr><td>Тип</td><td>Бездротові</td></tr>
    <tr><td>Колір</td><td> Чорний </td></tr>
  </table>
</body></html>
"""


class TestExtractDetails:
    """DOM strategies on a page without a state payload."""

    def setup_method(self):
        self.tree = HTMLParser(DOM_PAGE)
        self.details = extract_details(self.tree)

    def test_description_is_sanitized(self):
        assert "Great" in self.details.description
        assert "<b>sound</b>" in self.details.description
        assert "track()" not in self.details.description
        assert "hidden" not in self.details.description

    def test_page_tree_is_left_intact(self):
        assert self.tree.css_first('[data-qaid="descriptions"] script') is not None

    def test_attribute_rows(self):
        assert [(a.name, a.value) for a in self.details.attributes] == [
            ("Тип", "Бездротові"),
            ("Колір", "Чорний"),
        ]

    def test_sku_label_is_stripped(self):
        assert self.details.sku == "WH-200"

    def test_breadcrumbs_skip_root_and_prefer_title(self):
        assert self.details.category_path == ["Електроніка", "Навушники"]
        assert self.details.category_name == "Навушники"

    def test_old_price_and_availability(self):
        assert self.details.old_price == 1100.0
        assert self.details.availability is Availability.UNAVAILABLE

    def test_images_are_upscaled(self):
        assert self.details.all_images == [
            "https://images.prom.ua/10_w640_h640_wh.jpg",
            "https://images.prom.ua/11_w640_h640_wh.jpg",
        ]


def test_seed_values_take_precedence():
    seed = Product(
        id="5",
        title="Seeded",
        price=500.0,
        link="https://prom.ua/p5.html",
        availability=Availability.IN_STOCK,
        sku="SEED-1",
        description="<p>From state</p>",
        attributes=[ProductAttribute(name="Brand", value="Acme")],
        all_images=["https://images.prom.ua/seed.jpg"],
        category_path=["Аудіо"],
        category_name="Аудіо",
    )
    details = extract_details(HTMLParser(DOM_PAGE), seed)

    assert details.description == "<p>From state</p>"
    assert [a.name for a in details.attributes] == ["Brand"]
    assert details.sku == "SEED-1"
    assert details.category_path == ["Аудіо"]
    assert details.availability is Availability.IN_STOCK
    # Seed images come first, DOM gallery images are appended
    assert details.all_images[0] == "https://images.prom.ua/seed.jpg"
    assert len(details.all_images) == 3


def test_empty_page_keeps_defaults():
    details = extract_details(HTMLParser("<html><body></body></html>"))

    assert details.description == ""
    assert details.attributes == []
    assert details.all_images == []
    assert details.old_price is None
    assert details.availability is Availability.UNKNOWN


def test_collect_images_deduplicates_across_galleries():
    html = """
    <div class="cs-image-holder"><img src="https://images.prom.ua/1_w200_h200.jpg"></div>
    <div class="cs-images"><img src="https://images.prom.ua/1_w200_h200.jpg"></div>
    """
    assert collect_images(HTMLParser(html)) == ["https://images.prom.ua/1_w640_h640.jpg"]
