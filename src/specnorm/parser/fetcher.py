"""Fetch externally referenced documents during ``$ref`` resolution.

External references (``common.yaml#/components/schemas/Error`` or
``https://example.com/shared.json#/Pet``) are the only part of a
normalization run that performs I/O.  The resolver does not fetch anything
itself; it asks a :class:`DocumentFetcher` collaborator, which makes the
fetch policy (transport, retries, timeouts, caching) pluggable.

:class:`HttpDocumentFetcher` is the default implementation.  It reads
``http(s)`` URLs with :class:`httpx.AsyncClient`, reads ``file://`` URLs and
plain paths from disk, and can keep fetched documents in a
:class:`DocumentCache` between runs.

Example::

    async with HttpDocumentFetcher(FetchConfig(timeout=10)) as fetcher:
        document = await fetcher.fetch("https://example.com/shared.yaml")
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import diskcache
import httpx

from specnorm.exceptions import MalformedDocumentError, UnresolvableReferenceError
from specnorm.models import CacheConfig, FetchConfig
from specnorm.parser.loader import content_type_hint, parse_content, suffix_hint

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentFetcher(Protocol):
    """Anything that can turn an absolute document URL into a parsed document."""

    async def fetch(self, url: str) -> Any:
        """Return the parsed document at *url*.

        Raises:
            UnresolvableReferenceError: If the document cannot be fetched or
                is not a valid JSON/YAML document.
        """
        ...


class DocumentCache:
    """Disk-backed cache of fetched external documents.

    Entries are keyed by the SHA-256 of the document URL and expire after
    :attr:`~specnorm.models.CacheConfig.ttl_seconds`.  A disabled config
    turns every method into a no-op.

    Args:
        cache_dir: Root directory for the cache.  A ``documents/``
            subdirectory is created inside it.
        config: Cache configuration (``enabled`` flag and ``ttl_seconds``).
    """

    def __init__(self, cache_dir: str | Path, config: CacheConfig) -> None:
        self._config = config
        self._cache_dir = Path(cache_dir)
        self._cache: Optional[diskcache.Cache] = None
        if config.enabled:
            self._cache = diskcache.Cache(str(self._cache_dir / "documents"))

    def get(self, url: str) -> Any:
        """Return the cached document for *url*, or ``None`` on a miss."""
        if self._cache is None:
            return None
        return self._cache.get(self._make_key(url))

    def set(self, url: str, document: Any) -> None:
        """Store *document* under *url* with the configured TTL."""
        if self._cache is None:
            return
        self._cache.set(self._make_key(url), document, expire=self._config.ttl_seconds)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        if self._cache is not None:
            self._cache.clear()

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        if self._cache is not None:
            self._cache.close()

    def _make_key(self, url: str) -> str:
        return hashlib.sha256(url.encode()).hexdigest()


class HttpDocumentFetcher:
    """Default :class:`DocumentFetcher` backed by :class:`httpx.AsyncClient`.

    Can be used as an async context manager, in which case one client is
    shared by every fetch; otherwise a short-lived client is opened per
    fetch.  Connection failures are retried by the transport
    (:attr:`FetchConfig.max_retries`); HTTP error statuses are not.

    Args:
        config: Fetch settings (timeout, retries, redirects, headers).
        cache: Optional document cache consulted before every network fetch.
        transport: Optional custom transport, e.g. :class:`httpx.MockTransport`
            in tests.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        cache: Optional[DocumentCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or FetchConfig()
        self._cache = cache
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> HttpDocumentFetcher:
        self._client = self._build_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> Any:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            return self._read_file(url)

        cached = self._cache.get(url) if self._cache is not None else None
        if cached is not None:
            logger.debug("Document cache hit for %s", url)
            return cached

        if self._client is not None:
            document = await self._fetch_http(self._client, url)
        else:
            async with self._build_client() as client:
                document = await self._fetch_http(client, url)

        if self._cache is not None:
            self._cache.set(url, document)
        return document

    def _build_client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(retries=self._config.max_retries)
        return httpx.AsyncClient(
            transport=transport,
            timeout=self._config.timeout,
            follow_redirects=self._config.follow_redirects,
            headers=self._config.headers,
        )

    async def _fetch_http(self, client: httpx.AsyncClient, url: str) -> Any:
        logger.debug("Fetching external document %s", url)
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UnresolvableReferenceError(
                f"HTTP {exc.response.status_code} fetching referenced document {url}"
            ) from exc
        except httpx.RequestError as exc:
            raise UnresolvableReferenceError(
                f"Failed to fetch referenced document {url}: {exc}"
            ) from exc

        hint = content_type_hint(response.headers.get("content-type", ""))
        if not hint:
            hint = suffix_hint(Path(urlparse(url).path).suffix)
        return _as_document(url, response.text, hint)

    def _read_file(self, url: str) -> Any:
        parsed = urlparse(url)
        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(url)
        logger.debug("Reading external document %s", path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise UnresolvableReferenceError(
                f"Failed to read referenced document {url}: {exc}"
            ) from exc
        return _as_document(url, content, suffix_hint(path.suffix))


def _as_document(url: str, content: str, hint: str) -> Any:
    if hint == "graphql":
        hint = ""
    try:
        document = parse_content(content, hint=hint)
    except MalformedDocumentError as exc:
        raise UnresolvableReferenceError(
            f"Referenced document {url} is not a valid JSON/YAML document: {exc}"
        ) from exc
    if not isinstance(document, (dict, list)):
        raise UnresolvableReferenceError(
            f"Referenced document {url} is not a JSON/YAML object "
            f"(got {type(document).__name__})"
        )
    return document
