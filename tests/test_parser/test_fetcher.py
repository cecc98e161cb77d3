"""Tests for specnorm.parser.fetcher."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from specnorm.exceptions import UnresolvableReferenceError
from specnorm.models import CacheConfig, FetchConfig
from specnorm.parser.fetcher import DocumentCache, DocumentFetcher, HttpDocumentFetcher


def _transport(routes: dict[str, httpx.Response], calls: list[str]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        calls.append(url)
        if url in routes:
            return routes[url]
        return httpx.Response(404, text="missing")

    return httpx.MockTransport(handler)


def _fetch(fetcher: HttpDocumentFetcher, url: str) -> Any:
    async def run() -> Any:
        async with fetcher:
            return await fetcher.fetch(url)

    return asyncio.run(run())


@pytest.fixture()
def cache(tmp_path: Path):
    """An enabled DocumentCache under tmp_path."""
    c = DocumentCache(tmp_path, CacheConfig(enabled=True, ttl_seconds=300))
    yield c
    c.close()


class TestHttpDocumentFetcher:
    def test_is_a_document_fetcher(self) -> None:
        assert isinstance(HttpDocumentFetcher(), DocumentFetcher)

    def test_fetches_json(self) -> None:
        calls: list[str] = []
        transport = _transport(
            {
                "https://x.io/common.json": httpx.Response(
                    200,
                    json={"Error": {"type": "object"}},
                    headers={"content-type": "application/json"},
                )
            },
            calls,
        )

        document = _fetch(HttpDocumentFetcher(transport=transport), "https://x.io/common.json")

        assert document == {"Error": {"type": "object"}}
        assert calls == ["https://x.io/common.json"]

    def test_fetches_yaml_by_extension(self) -> None:
        transport = _transport(
            {"https://x.io/common.yaml": httpx.Response(200, text="Error:\n  type: string\n")},
            [],
        )

        document = _fetch(HttpDocumentFetcher(transport=transport), "https://x.io/common.yaml")

        assert document == {"Error": {"type": "string"}}

    def test_without_context_manager(self) -> None:
        transport = _transport(
            {"https://x.io/a.json": httpx.Response(200, json={"a": 1})}, []
        )
        fetcher = HttpDocumentFetcher(transport=transport)

        assert asyncio.run(fetcher.fetch("https://x.io/a.json")) == {"a": 1}

    def test_sends_configured_headers(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("authorization", ""))
            return httpx.Response(200, json={})

        fetcher = HttpDocumentFetcher(
            FetchConfig(headers={"Authorization": "Bearer t0ken"}),
            transport=httpx.MockTransport(handler),
        )
        _fetch(fetcher, "https://x.io/a.json")

        assert seen == ["Bearer t0ken"]

    def test_http_error_is_unresolvable(self) -> None:
        fetcher = HttpDocumentFetcher(transport=_transport({}, []))
        with pytest.raises(UnresolvableReferenceError, match="HTTP 404"):
            _fetch(fetcher, "https://x.io/missing.json")

    def test_connection_error_is_unresolvable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        fetcher = HttpDocumentFetcher(transport=httpx.MockTransport(handler))
        with pytest.raises(UnresolvableReferenceError, match="Failed to fetch"):
            _fetch(fetcher, "https://x.io/a.json")

    def test_invalid_document_is_unresolvable(self) -> None:
        transport = _transport(
            {"https://x.io/a.json": httpx.Response(200, text="{not json")}, []
        )
        with pytest.raises(UnresolvableReferenceError, match="not a valid"):
            _fetch(HttpDocumentFetcher(transport=transport), "https://x.io/a.json")

    def test_scalar_document_is_unresolvable(self) -> None:
        transport = _transport({"https://x.io/a.json": httpx.Response(200, text="42")}, [])
        with pytest.raises(UnresolvableReferenceError, match="not a JSON/YAML object"):
            _fetch(HttpDocumentFetcher(transport=transport), "https://x.io/a.json")

    def test_reads_local_path(self, tmp_path: Path) -> None:
        shared = tmp_path / "shared.json"
        shared.write_text(json.dumps({"Pet": {"type": "object"}}), encoding="utf-8")

        assert _fetch(HttpDocumentFetcher(), str(shared)) == {"Pet": {"type": "object"}}

    def test_reads_file_url(self, tmp_path: Path) -> None:
        shared = tmp_path / "shared.yaml"
        shared.write_text("Pet:\n  type: object\n", encoding="utf-8")

        assert _fetch(HttpDocumentFetcher(), shared.as_uri()) == {"Pet": {"type": "object"}}

    def test_missing_local_file(self, tmp_path: Path) -> None:
        with pytest.raises(UnresolvableReferenceError, match="Failed to read"):
            _fetch(HttpDocumentFetcher(), str(tmp_path / "nope.json"))


    def test_non_utf8_local_file(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(UnresolvableReferenceError, match="Failed to read"):
            _fetch(HttpDocumentFetcher(), str(bad))


class TestFetcherCache:
    def test_second_fetch_served_from_cache(self, cache: DocumentCache) -> None:
        calls: list[str] = []
        routes = {"https://x.io/a.json": httpx.Response(200, json={"a": 1})}

        first = _fetch(
            HttpDocumentFetcher(cache=cache, transport=_transport(routes, calls)),
            "https://x.io/a.json",
        )
        second = _fetch(
            HttpDocumentFetcher(cache=cache, transport=_transport(routes, calls)),
            "https://x.io/a.json",
        )

        assert first == second == {"a": 1}
        assert calls == ["https://x.io/a.json"]

    def test_failures_are_not_cached(self, cache: DocumentCache) -> None:
        with pytest.raises(UnresolvableReferenceError):
            _fetch(
                HttpDocumentFetcher(cache=cache, transport=_transport({}, [])),
                "https://x.io/a.json",
            )
        assert cache.get("https://x.io/a.json") is None


class TestDocumentCache:
    def test_set_and_get(self, cache: DocumentCache) -> None:
        cache.set("https://x.io/a.json", {"a": 1})
        assert cache.get("https://x.io/a.json") == {"a": 1}

    def test_miss(self, cache: DocumentCache) -> None:
        assert cache.get("https://x.io/other.json") is None

    def test_clear(self, cache: DocumentCache) -> None:
        cache.set("https://x.io/a.json", {"a": 1})
        cache.clear()
        assert cache.get("https://x.io/a.json") is None

    def test_disabled_cache_is_noop(self, tmp_path: Path) -> None:
        disabled = DocumentCache(tmp_path, CacheConfig(enabled=False))
        disabled.set("https://x.io/a.json", {"a": 1})
        assert disabled.get("https://x.io/a.json") is None
        assert not (tmp_path / "documents").exists()
        disabled.close()

    def test_entries_persist_across_instances(self, tmp_path: Path) -> None:
        config = CacheConfig(enabled=True, ttl_seconds=300)
        first = DocumentCache(tmp_path, config)
        first.set("https://x.io/a.json", {"a": 1})
        first.close()

        second = DocumentCache(tmp_path, config)
        assert second.get("https://x.io/a.json") == {"a": 1}
        second.close()
