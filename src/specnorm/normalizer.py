"""Normalization facade -- raw document in, :class:`~specnorm.models.ParsedSpec` out.

This module orchestrates the parser pipeline:

1. Check the declared type and the minimal document shape.
2. Fetch externally referenced documents, if there are any (the only I/O).
3. Resolve ``$ref`` pointers (:mod:`specnorm.parser.resolver`).
4. Extract endpoints, models, auth methods and the base URL
   (:mod:`specnorm.parser.extractor`).

Two calling conventions are offered:

* :func:`parse_spec` / :func:`aparse_spec` return a ``ParsedSpec`` or raise a
  :class:`~specnorm.exceptions.ParseError` subclass.
* :func:`normalize` / :func:`anormalize` never raise a ``ParseError``; they
  return a tagged :class:`~specnorm.models.NormalizationResult`.

The synchronous variants only start an event loop when the document has
external references, so they must not be called from inside a running loop
for such documents -- use the ``a``-prefixed coroutines there.

Each call owns its own resolution state; concurrent runs share nothing.

Example::

    result = normalize(load_document("petstore.yaml"), "openapi", origin="petstore.yaml")
    if result.ok:
        for endpoint in result.spec.endpoints:
            print(endpoint.method.value, endpoint.path)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from specnorm.config import get_cache_dir
from specnorm.exceptions import (
    MalformedDocumentError,
    ParseError,
    StructuralMismatchError,
    UnsupportedSpecTypeError,
)
from specnorm.models import (
    CacheConfig,
    NormalizationFailure,
    NormalizationResult,
    NormalizerConfig,
    ParsedSpec,
    SpecType,
)
from specnorm.parser.extractor import extract_spec
from specnorm.parser.fetcher import DocumentCache, DocumentFetcher, HttpDocumentFetcher
from specnorm.parser.loader import parse_content
from specnorm.parser.resolver import (
    collect_external_urls,
    load_external_documents,
    resolve_refs,
)

logger = logging.getLogger(__name__)


def parse_spec(
    document: Any,
    spec_type: SpecType | str,
    *,
    origin: Optional[str] = None,
    fetcher: Optional[DocumentFetcher] = None,
    config: Optional[NormalizerConfig] = None,
) -> ParsedSpec:
    """Normalize *document* into a :class:`~specnorm.models.ParsedSpec`.

    Args:
        document: The parsed document (dict), or its JSON/YAML text.
        spec_type: Declared type -- ``openapi``, ``swagger`` or ``graphql``.
        origin: URL or file path the document came from; relative external
            ``$ref`` targets are resolved against it.
        fetcher: Collaborator for external documents.  Defaults to an
            :class:`~specnorm.parser.fetcher.HttpDocumentFetcher` built from
            *config*.
        config: Engine configuration; defaults to ``NormalizerConfig()``.

    Raises:
        MalformedDocumentError: If *document* is text that is not JSON/YAML.
        StructuralMismatchError: If the document is not a mapping with a
            ``paths`` section.
        UnresolvableReferenceError: If a ``$ref`` cannot be resolved.
        UnsupportedSpecTypeError: If *spec_type* is not accepted.
    """
    run = _NormalizationRun(document, spec_type, origin, config or NormalizerConfig())
    if run.external_urls:
        asyncio.run(run.fetch_external(fetcher))
    return run.finish()


async def aparse_spec(
    document: Any,
    spec_type: SpecType | str,
    *,
    origin: Optional[str] = None,
    fetcher: Optional[DocumentFetcher] = None,
    config: Optional[NormalizerConfig] = None,
) -> ParsedSpec:
    """Coroutine variant of :func:`parse_spec`.

    External fetches are the only ``await`` points, so cancelling the task
    (e.g. on a request timeout) takes effect while documents are being
    fetched.
    """
    run = _NormalizationRun(document, spec_type, origin, config or NormalizerConfig())
    if run.external_urls:
        await run.fetch_external(fetcher)
    return run.finish()


def normalize(
    document: Any,
    spec_type: SpecType | str,
    *,
    origin: Optional[str] = None,
    fetcher: Optional[DocumentFetcher] = None,
    config: Optional[NormalizerConfig] = None,
) -> NormalizationResult:
    """Normalize *document*, reporting failures as a tagged result instead of raising."""
    try:
        spec = parse_spec(document, spec_type, origin=origin, fetcher=fetcher, config=config)
    except ParseError as exc:
        return _failure(exc)
    return NormalizationResult(spec=spec)


async def anormalize(
    document: Any,
    spec_type: SpecType | str,
    *,
    origin: Optional[str] = None,
    fetcher: Optional[DocumentFetcher] = None,
    config: Optional[NormalizerConfig] = None,
) -> NormalizationResult:
    """Coroutine variant of :func:`normalize`."""
    try:
        spec = await aparse_spec(
            document, spec_type, origin=origin, fetcher=fetcher, config=config
        )
    except ParseError as exc:
        return _failure(exc)
    return NormalizationResult(spec=spec)


def coerce_spec_type(value: SpecType | str) -> SpecType:
    """Turn a declared type (case-insensitive string or enum) into a :class:`SpecType`.

    Raises:
        UnsupportedSpecTypeError: For anything other than openapi, swagger
            or graphql.
    """
    if isinstance(value, SpecType):
        return value
    try:
        return SpecType(str(value).lower())
    except ValueError:
        raise UnsupportedSpecTypeError(f"Unsupported spec type: {value}") from None


def _failure(exc: ParseError) -> NormalizationResult:
    logger.info("Normalization failed (%s): %s", exc.kind.value, exc)
    return NormalizationResult(error=NormalizationFailure(kind=exc.kind, message=str(exc)))


class _NormalizationRun:
    """State of one normalization call, split so the fetch step can be awaited or not."""

    def __init__(
        self,
        document: Any,
        spec_type: SpecType | str,
        origin: Optional[str],
        config: NormalizerConfig,
    ) -> None:
        self.spec_type = coerce_spec_type(spec_type)
        self.origin = origin
        self.config = config
        self.document = document
        self.external: dict[str, Any] = {}
        self.external_urls: set[str] = set()

        if self.spec_type is SpecType.GRAPHQL:
            if config.reject_graphql:
                raise UnsupportedSpecTypeError("GraphQL documents are not supported")
            return

        self.document = _require_structure(document, self.spec_type)
        self.external_urls = collect_external_urls(self.document, origin or "")

    async def fetch_external(self, fetcher: Optional[DocumentFetcher]) -> None:
        max_documents = self.config.fetch.max_documents
        if fetcher is not None:
            self.external = await load_external_documents(
                self.document, self.origin, fetcher, max_documents
            )
            return

        cache = _open_cache(self.config.cache)
        try:
            async with HttpDocumentFetcher(self.config.fetch, cache) as default_fetcher:
                self.external = await load_external_documents(
                    self.document, self.origin, default_fetcher, max_documents
                )
        finally:
            if cache is not None:
                cache.close()

    def finish(self) -> ParsedSpec:
        if self.spec_type is SpecType.GRAPHQL:
            return _graphql_spec(self.document)

        dialect = _dialect(self.document, self.spec_type)
        try:
            resolved = resolve_refs(self.document, self.origin, self.external)
            parsed = extract_spec(resolved, dialect)
        except RecursionError as exc:
            raise StructuralMismatchError("Document is nested too deeply to normalize") from exc

        logger.info(
            "Normalized %s document: %d endpoint(s), %d model(s), %d auth method(s)",
            dialect.value,
            len(parsed.endpoints),
            len(parsed.models),
            len(parsed.auth_methods),
        )
        return parsed


def _require_structure(document: Any, spec_type: SpecType) -> dict[str, Any]:
    """Parse text input and check the minimal OpenAPI/Swagger shape."""
    if isinstance(document, (bytes, bytearray)):
        try:
            document = document.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedDocumentError(f"Document is not valid UTF-8: {exc}") from exc
    if isinstance(document, str):
        document = parse_content(document)

    if not isinstance(document, dict):
        raise StructuralMismatchError(
            f"{spec_type.value} document must be a JSON/YAML object "
            f"(got {type(document).__name__})"
        )
    if not isinstance(document.get("paths"), dict):
        raise StructuralMismatchError(f"{spec_type.value} document has no 'paths' object")
    return document


def _dialect(document: dict[str, Any], declared: SpecType) -> SpecType:
    """The document's own version key wins over the declared type."""
    if "swagger" in document:
        dialect = SpecType.SWAGGER
    elif "openapi" in document:
        dialect = SpecType.OPENAPI
    else:
        dialect = declared
    if dialect is not declared:
        logger.debug("Declared %s but document is %s", declared.value, dialect.value)
    return dialect


def _graphql_spec(document: Any) -> ParsedSpec:
    logger.warning("GraphQL documents are accepted but no endpoints or models are extracted")
    url = document.get("url") if isinstance(document, dict) else None
    return ParsedSpec(base_url=url if isinstance(url, str) else "")


def _open_cache(config: CacheConfig) -> Optional[DocumentCache]:
    if not config.enabled:
        return None
    directory = Path(config.directory) if config.directory else get_cache_dir()
    return DocumentCache(directory, config)
