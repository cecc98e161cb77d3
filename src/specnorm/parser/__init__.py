"""API description parser -- load, resolve ``$ref`` pointers, and extract endpoints.

This sub-package does the work behind :mod:`specnorm.normalizer`: turning a
raw OpenAPI 3.x or Swagger 2.0 document (JSON or YAML, local file or remote
URL) into a :class:`~specnorm.models.ParsedSpec`.

Typical usage::

    from specnorm.parser import load_document, detect_spec_type, resolve_refs, extract_spec

    raw = load_document("https://petstore3.swagger.io/api/v3/openapi.json")
    parsed = extract_spec(resolve_refs(raw), detect_spec_type(raw))

Sub-modules:

* :mod:`~specnorm.parser.loader` -- I/O layer (URL, file, stdin), format
  detection and spec-type detection.
* :mod:`~specnorm.parser.fetcher` -- Pluggable fetching of externally
  referenced documents.
* :mod:`~specnorm.parser.resolver` -- Recursive ``$ref`` resolution with
  per-branch cycle truncation.
* :mod:`~specnorm.parser.schema` -- Canonical schema normalization.
* :mod:`~specnorm.parser.parameters` -- Path/operation parameter merging.
* :mod:`~specnorm.parser.content` -- JSON media-type selection.
* :mod:`~specnorm.parser.auth` -- Security scheme mapping.
* :mod:`~specnorm.parser.extractor` -- Walks the resolved tree and builds
  the :class:`~specnorm.models.ParsedSpec`.
"""

from specnorm.parser.extractor import extract_spec
from specnorm.parser.loader import detect_spec_type, load_document, parse_content
from specnorm.parser.resolver import CyclicRef, load_external_documents, resolve_refs
from specnorm.parser.schema import normalize_schema

__all__ = [
    "CyclicRef",
    "detect_spec_type",
    "extract_spec",
    "load_document",
    "load_external_documents",
    "normalize_schema",
    "parse_content",
    "resolve_refs",
]
