"""Shared fixtures: relay fetchers backed by httpx.MockTransport."""

from typing import Callable, Dict

import httpx
import pytest

from prom_parser.ingest.relay_fetcher import RelayFetcher
from helpers import RELAY_TEMPLATE, relayed_path


@pytest.fixture
def make_fetcher():
    """Build a RelayFetcher whose relays are served by a handler function."""

    def factory(handler: Callable[[httpx.Request], httpx.Response], relays=None, **kwargs) -> RelayFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("min_response_length", 0)
        return RelayFetcher(relays=relays or [RELAY_TEMPLATE], client=client, **kwargs)

    return factory


@pytest.fixture
def pages_fetcher(make_fetcher):
    """Fetcher serving a fixed {path: html} map; unknown paths return 404."""

    def factory(pages: Dict[str, str], **kwargs) -> RelayFetcher:
        def handler(request: httpx.Request) -> httpx.Response:
            html = pages.get(relayed_path(request))
            if html is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, text=html)

        return make_fetcher(handler, **kwargs)

    return factory
