"""Fetch page markup through a rotating set of public relay endpoints."""

import logging
import random
import time
from dataclasses import dataclass
from typing import Optional, Sequence
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

import httpx

from prom_parser import metrics
from prom_parser.config import settings
from prom_parser.errors import RetrievalError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayEndpoint:
    """A relay service that fetches a target URL on our behalf."""

    template: str

    @property
    def name(self) -> str:
        """Relay host, used for logs and metric labels."""
        return urlsplit(self.template).netloc or self.template

    def url_for(self, target_url: str) -> str:
        return self.template.format(url=quote(target_url, safe=""))


class BlockedResponseError(RuntimeError):
    """Raised when a relay returned a placeholder or bot-challenge page."""
    pass


def default_headers() -> dict[str, str]:
    """Get default browser-like headers."""
    return {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Accept": "text/html, application/xhtml+xml, application/xml; q=0.9, */*; q=0.8",
        "Accept-Language": "uk-UA, uk; q=0.9, en; q=0.8",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


def detect_block_reason(
    html: str,
    markers: Sequence[str],
    min_length: int,
) -> Optional[str]:
    """Detect truncated or bot-challenge pages."""
    if not html:
        return "Empty response"
    if len(html) < min_length:
        return "Response too short - blocked"
    haystack = html.lower()
    for marker in markers:
        if marker.lower() in haystack:
            return f"Bot challenge detected ({marker})"
    return None


def add_cache_buster(url: str, param: Optional[str] = None) -> str:
    """Append a timestamp query parameter so intermediaries do not serve stale copies."""
    param = param or settings.cache_bust_param
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != param]
    query.append((param, str(int(time.time() * 1000))))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class RelayFetcher:
    """
    Retrieve raw markup through interchangeable relays.

    The relay list is shuffled on every call and tried in order; rotation
    across relays is the only retry mechanism.
    """

    def __init__(
        self,
        relays: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
        min_response_length: Optional[int] = None,
        block_markers: Optional[Sequence[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize relay fetcher.

        Args:
            relays: Relay URL templates containing "{url}" (defaults to config)
            timeout: Per-request timeout in seconds
            min_response_length: Bodies shorter than this are treated as blocked
            block_markers: Case-insensitive bot-challenge markers
            client: Optional pre-built client (tests inject a MockTransport)
        """
        templates = relays if relays is not None else settings.relay_templates
        self.relays = [RelayEndpoint(t) for t in templates]
        self.timeout = timeout if timeout is not None else settings.relay_timeout_seconds
        self.min_response_length = (
            min_response_length if min_response_length is not None else settings.min_response_length
        )
        self.block_markers = list(block_markers if block_markers is not None else settings.block_markers)
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=default_headers(),
            )
        return self._client

    async def close(self):
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def fetch(self, url: str) -> str:
        """
        Fetch markup for a URL.

        Args:
            url: Absolute target URL

        Returns:
            Markup of the first relay response that passed validation

        Raises:
            RetrievalError: If every relay failed or returned a blocked page
        """
        target = add_cache_buster(url)
        relays = list(self.relays)
        random.shuffle(relays)

        client = await self._get_client()
        last_error: Optional[Exception] = None

        for attempt, relay in enumerate(relays, start=1):
            started = time.monotonic()
            try:
                response = await client.get(relay.url_for(target), timeout=self.timeout)
                response.raise_for_status()
                html = response.text
                reason = detect_block_reason(html, self.block_markers, self.min_response_length)
                if reason:
                    raise BlockedResponseError(reason)
            except (httpx.HTTPError, httpx.InvalidURL, BlockedResponseError) as e:
                last_error = e
                metrics.record_relay_request(relay.name, "failed", time.monotonic() - started)
                logger.warning(
                    f"Relay {attempt}/{len(relays)} ({relay.name}) failed for {url}: "
                    f"{type(e).__name__}: {e}"
                )
                continue

            metrics.record_relay_request(relay.name, "success", time.monotonic() - started)
            logger.debug(f"Fetched {url} via {relay.name} ({len(html)} chars)")
            return html

        message = f"All {len(relays)} relays failed for {url}"
        if last_error is not None:
            message += f": {last_error}"
        logger.error(message)
        raise RetrievalError(url, message, attempts=len(relays)) from last_error
