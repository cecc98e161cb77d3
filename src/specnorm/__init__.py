"""specnorm -- Normalize OpenAPI 3.x and Swagger 2.0 documents into a canonical API model.

This package turns a machine-written API description into a fully resolved,
cycle-safe and deterministic :class:`~specnorm.models.ParsedSpec`: endpoints
with merged parameters and JSON body schemas, named models, authentication
methods and the base URL.

Typical usage::

    from specnorm import normalize
    from specnorm.parser import load_document

    result = normalize(load_document("openapi.yaml"), "openapi", origin="openapi.yaml")

Modules:
    normalizer: The normalization facade (sync, async, raising and tagged).
    parser: Loader, resolver, schema normalizer and extractors.
    models: Pydantic models shared across the entire package.
    repository: Storage interface for normalized specs.
    config: XDG-aware configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

from specnorm.normalizer import anormalize, aparse_spec, normalize, parse_spec

__version__ = "0.1.0"

__all__ = ["anormalize", "aparse_spec", "normalize", "parse_spec", "__version__"]
