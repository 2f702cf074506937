"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from helpers import card_html, category_html
from prom_parser.api.deps import get_exporter, get_search_service, get_usage_gate
from prom_parser.export.exporter import Exporter
from prom_parser.ingest.base import Product
from prom_parser.ingest.category_scanner import CategoryScanner
from prom_parser.main import app
from prom_parser.search.service import SearchService


class StubScraper:
    async def scrape(self, url):
        return Product(id="1", title="Detailed", price=10.0, link=url, details_loaded=True)


class DenyingGate:
    item_limit = None

    def try_consume(self):
        return False


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def use_pages(pages_fetcher):
    """Serve search requests from a fixed set of catalog pages."""

    def install(pages):
        fetcher = pages_fetcher(pages)
        service = SearchService(
            fetcher=fetcher,
            scanner=CategoryScanner(fetcher=fetcher, page_delay_seconds=0),
        )
        app.dependency_overrides[get_search_service] = lambda: service

    return install


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_category_search(client, use_pages):
    use_pages({"/g1": category_html([card_html("11", "Lamp", price="350 ₴", old_price="400 ₴")])})

    response = client.post(
        "/api/search",
        json={"mode": "category", "shopUrl": "https://shop.prom.ua/g1", "maxPages": 1},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] is None
    product = body["products"][0]
    assert product["id"] == "11"
    assert product["title"] == "Lamp"
    assert product["oldPrice"] == 400.0
    assert product["discount"] == 50.0
    assert product["detailsLoaded"] is False


def test_empty_search_reports_nothing_found(client, use_pages):
    use_pages({"/g1": category_html([])})

    response = client.post("/api/search", json={"shopUrl": "https://shop.prom.ua/g1"})

    assert response.status_code == 200
    assert response.json() == {"products": [], "message": "Nothing found"}


def test_missing_url_is_unprocessable(client, use_pages):
    use_pages({})

    response = client.post("/api/search", json={"mode": "products", "productUrls": []})

    assert response.status_code == 422


def test_unreachable_first_page_is_bad_gateway(client, use_pages):
    use_pages({})

    response = client.post("/api/search", json={"shopUrl": "https://shop.prom.ua/g404"})

    assert response.status_code == 502
    assert "https://shop.prom.ua/g404" in response.json()["detail"]


def test_export_csv_download(client):
    app.dependency_overrides[get_exporter] = lambda: Exporter(scraper=StubScraper())

    response = client.post(
        "/api/export/csv",
        json={"products": [{"id": "1", "title": "Listed", "price": 10, "link": "https://prom.ua/p1"}]},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="prom_export_full_')
    assert disposition.endswith('.csv"')
    assert "Detailed" in response.text


def test_export_xml_media_type(client):
    app.dependency_overrides[get_exporter] = lambda: Exporter(scraper=StubScraper())

    response = client.post(
        "/api/export/xml",
        json={"products": [{"id": "1", "title": "Listed", "price": 10, "link": "https://prom.ua/p1",
                            "detailsLoaded": True}]},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<yml_catalog" in response.text


def test_export_denied_by_gate(client):
    app.dependency_overrides[get_usage_gate] = lambda: DenyingGate()

    response = client.post(
        "/api/export/csv",
        json={"products": [{"id": "1", "title": "Listed", "price": 10, "link": "https://prom.ua/p1"}]},
    )

    assert response.status_code == 403


def test_export_unknown_format(client):
    response = client.post("/api/export/xlsx", json={"products": []})
    assert response.status_code == 422
