"""Load API description documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw documents and converting them
into generic Python values (dicts, lists, scalars).  It supports both JSON and
YAML with automatic format detection, and detects which kind of API
description a document is.

The public functions are:

* :func:`load_document` -- Load and parse a document from any supported source.
* :func:`parse_content` -- Parse already-fetched text as JSON or YAML.
* :func:`detect_spec_type` -- Tell OpenAPI 3.x, Swagger 2.0 and GraphQL apart.

After loading, the document should be passed to
:func:`~specnorm.normalizer.parse_spec` or :func:`~specnorm.normalizer.normalize`.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from specnorm.exceptions import MalformedDocumentError, StructuralMismatchError
from specnorm.models import SpecType

logger = logging.getLogger(__name__)

_GRAPHQL_SDL = re.compile(r"^\s*(schema|type|interface|enum|input|union|scalar|directive)\b", re.M)


def load_document(source: str) -> Any:
    """Load a document from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.

    Returns:
        The parsed document.

    Raises:
        MalformedDocumentError: If the source cannot be loaded or parsed.
    """
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source)
    else:
        return _load_from_file(source)


def _load_from_stdin() -> Any:
    """Read a document from stdin and parse it as JSON, then YAML."""
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise MalformedDocumentError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise MalformedDocumentError("No input received from stdin")

    return parse_content(content, hint="stdin")


def _load_from_url(url: str) -> Any:
    """Fetch a document from URL. Supports JSON and YAML responses.

    Raises:
        MalformedDocumentError: If the URL cannot be fetched or content cannot be parsed.
    """
    logger.debug("Fetching document from %s", url)
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise MalformedDocumentError(
            f"HTTP {exc.response.status_code} fetching document from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise MalformedDocumentError(f"Failed to fetch document from {url}: {exc}") from exc

    return parse_content(response.text, hint=content_type_hint(response.headers.get("content-type", "")))


def _load_from_file(path: str) -> Any:
    """Load a document from a local file.

    Supports .json, .yaml, and .yml extensions. Falls back to content-based
    detection if the extension is not recognized.

    Raises:
        MalformedDocumentError: If the file cannot be read or content cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise MalformedDocumentError(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedDocumentError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise MalformedDocumentError(f"Spec file is empty: {path}")

    return parse_content(content, hint=suffix_hint(file_path.suffix))


def suffix_hint(suffix: str) -> str:
    """Map a file extension to a :func:`parse_content` hint."""
    suffix = suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    if suffix in (".graphql", ".gql"):
        return "graphql"
    return ""


def content_type_hint(content_type: str) -> str:
    """Map an HTTP ``Content-Type`` header to a :func:`parse_content` hint."""
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    if "graphql" in content_type:
        return "graphql"
    return ""


def parse_content(content: str, hint: str = "") -> Any:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.
    A ``graphql`` hint returns the text unchanged (SDL is not a data tree).

    Args:
        content: The raw string content.
        hint: Optional format hint ('json', 'yaml' or 'graphql').

    Returns:
        The parsed value.  Any JSON/YAML value is returned; checking that it
        has the right shape is the normalizer's job.

    Raises:
        MalformedDocumentError: If the content cannot be parsed as either format.
    """
    if hint == "graphql":
        return content

    json_error: Exception | None = None

    if hint != "yaml":
        try:
            return json.loads(content)
        except RecursionError as exc:
            raise MalformedDocumentError("Document is nested too deeply to parse") from exc
        except json.JSONDecodeError as exc:
            json_error = exc
            # If the hint was explicitly JSON, don't try YAML
            if hint == "json":
                raise MalformedDocumentError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.safe_load(content)
    except RecursionError as exc:
        raise MalformedDocumentError("Document is nested too deeply to parse") from exc
    except yaml.YAMLError as exc:
        msg = "Failed to parse document as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise MalformedDocumentError(msg) from exc

    if result is None:
        raise MalformedDocumentError("Document is empty")
    return result


def detect_spec_type(document: Any) -> SpecType:
    """Detect whether *document* is OpenAPI 3.x, Swagger 2.0 or GraphQL.

    Args:
        document: A parsed document, or raw GraphQL SDL text.

    Returns:
        The detected :class:`~specnorm.models.SpecType`.

    Raises:
        StructuralMismatchError: If the document matches none of the known shapes.
    """
    if isinstance(document, str):
        if _GRAPHQL_SDL.search(document):
            return SpecType.GRAPHQL
        raise StructuralMismatchError("Text document is not GraphQL SDL")

    if not isinstance(document, dict):
        raise StructuralMismatchError(
            f"Spec must be a JSON/YAML object (got {type(document).__name__})"
        )

    if "swagger" in document:
        return SpecType.SWAGGER
    if "openapi" in document:
        return SpecType.OPENAPI

    data = document.get("data")
    if "__schema" in document or (isinstance(data, dict) and "__schema" in data):
        return SpecType.GRAPHQL

    raise StructuralMismatchError(
        "Missing 'openapi' or 'swagger' field. Is this an API description document?"
    )
