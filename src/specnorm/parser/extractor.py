"""Extract endpoints, models, security schemes and the base URL from resolved documents.

This module walks a fully ``$ref``-resolved OpenAPI 3.x or Swagger 2.0
document and builds a :class:`~specnorm.models.ParsedSpec`.

The single assembly entry point is :func:`extract_spec`.  It delegates to
helpers that each handle one section of the document:

* :func:`extract_endpoints` -- the ``paths`` object, iterating over every
  path + HTTP method combination in document order.
* :func:`extract_models` -- ``components.schemas`` (OpenAPI 3.x) or
  ``definitions`` (Swagger 2.0).
* :func:`extract_auth_methods` -- ``components.securitySchemes`` or
  ``securityDefinitions``.
* :func:`extract_base_url` -- ``servers`` or ``schemes``/``host``/``basePath``.

Every helper tolerates missing or wrongly typed optional fields and falls back
to a default instead of raising.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from specnorm.models import (
    AuthMethod,
    Endpoint,
    HTTPMethod,
    Model,
    ParsedSpec,
    RequestBody,
    Response,
    SpecType,
)
from specnorm.parser.auth import map_auth_methods
from specnorm.parser.content import select_content
from specnorm.parser.parameters import build_parameters, merge_parameters
from specnorm.parser.schema import SchemaNormalizer

logger = logging.getLogger(__name__)

# Path-item keys extracted as endpoints, mapped to their canonical method
_METHODS = {method.value.lower(): method for method in HTTPMethod}

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_DASH_RUN = re.compile(r"-{2,}")
_SERVER_VARIABLE = re.compile(r"\{([^{}]+)\}")

_DEFAULT_MEDIA_TYPES = ["application/json"]


def extract_spec(spec: dict[str, Any], dialect: SpecType = SpecType.OPENAPI) -> ParsedSpec:
    """Build a :class:`~specnorm.models.ParsedSpec` from a resolved document.

    Args:
        spec: The resolved document, as returned by
            :func:`~specnorm.parser.resolver.resolve_refs`.
        dialect: :attr:`SpecType.SWAGGER` for Swagger 2.0 documents,
            :attr:`SpecType.OPENAPI` for OpenAPI 3.x.

    Returns:
        A fully populated :class:`~specnorm.models.ParsedSpec`.
    """
    normalizer = SchemaNormalizer()
    return ParsedSpec(
        endpoints=extract_endpoints(spec, dialect, normalizer),
        models=extract_models(spec, dialect, normalizer),
        auth_methods=extract_auth_methods(spec, dialect),
        base_url=extract_base_url(spec, dialect),
    )


def extract_endpoints(
    spec: dict[str, Any],
    dialect: SpecType = SpecType.OPENAPI,
    normalizer: Optional[SchemaNormalizer] = None,
) -> list[Endpoint]:
    """Extract one :class:`~specnorm.models.Endpoint` per path + method pair.

    Paths and methods are visited in document order; only ``get``, ``post``,
    ``put``, ``patch`` and ``delete`` are extracted.  Endpoint ids are the
    ``operationId`` when one is declared, otherwise a slug derived from the
    method and path (see :func:`endpoint_slug`).  Ids that are already taken
    get a ``-2``, ``-3``, ... suffix, so ids are unique within the result.

    Args:
        spec: The resolved document.
        dialect: Document dialect; Swagger 2.0 bodies live in ``body``
            parameters and response ``schema`` keys.
        normalizer: Shared normalizer of the current run.

    Returns:
        The extracted endpoints.
    """
    normalizer = normalizer or SchemaNormalizer()
    paths = spec.get("paths")
    if not isinstance(paths, dict):
        return []

    ids = _IdAllocator()
    endpoints: list[Endpoint] = []

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue

        # Path-level parameters apply to all operations under this path
        path_params = path_item.get("parameters")

        for key, operation in path_item.items():
            method = _METHODS.get(key) if isinstance(key, str) else None
            if method is None or not isinstance(operation, dict):
                continue

            merged_params = merge_parameters(path_params, operation.get("parameters"))

            if dialect is SpecType.SWAGGER:
                request_body = _swagger_request_body(merged_params, operation, spec, normalizer)
                responses = _extract_responses(
                    operation.get("responses"),
                    normalizer,
                    produces=_media_types(operation, spec, "produces"),
                )
            else:
                request_body = _extract_request_body(operation.get("requestBody"), normalizer)
                responses = _extract_responses(operation.get("responses"), normalizer)

            operation_id = operation.get("operationId")
            if isinstance(operation_id, str) and operation_id:
                candidate = operation_id
            else:
                candidate = endpoint_slug(method.value.lower(), str(path))

            endpoints.append(
                Endpoint(
                    id=ids.allocate(candidate),
                    path=str(path),
                    method=method,
                    summary=_optional_str(operation.get("summary")),
                    description=_optional_str(operation.get("description")),
                    parameters=build_parameters(merged_params, normalizer),
                    request_body=request_body,
                    responses=responses,
                    tags=_tags(operation.get("tags")),
                )
            )

    logger.debug("Extracted %d endpoint(s)", len(endpoints))
    return endpoints


def endpoint_slug(method: str, path: str) -> str:
    """Derive a fallback endpoint id from *method* and *path*.

    Every character outside ``[A-Za-z0-9]`` becomes ``-``; runs of ``-``
    are collapsed and leading or trailing ones stripped, so ``("get", "/users/{id}")``
    gives ``get-users-id``.
    """
    slug = _NON_ALNUM.sub("-", f"{method}-{path}")
    return _DASH_RUN.sub("-", slug).strip("-")


class _IdAllocator:
    """Hands out endpoint ids, suffixing ``-2``, ``-3``, ... on collision."""

    def __init__(self) -> None:
        self._taken: set[str] = set()

    def allocate(self, candidate: str) -> str:
        ident = candidate
        counter = 2
        while ident in self._taken:
            ident = f"{candidate}-{counter}"
            counter += 1
        if ident != candidate:
            logger.debug("Endpoint id %r already taken, using %r", candidate, ident)
        self._taken.add(ident)
        return ident


def _extract_request_body(body: Any, normalizer: SchemaNormalizer) -> Optional[RequestBody]:
    """Build the request body of an OpenAPI 3.x operation.

    Returns ``None`` when the operation declares no body or when no JSON
    media type is available.
    """
    if not isinstance(body, dict):
        return None

    content = select_content(body.get("content"), normalizer)
    if content is None:
        return None

    return RequestBody(
        required=body.get("required") is True,
        description=_optional_str(body.get("description")),
        content=content,
    )


def _swagger_request_body(
    params: list[dict[str, Any]],
    operation: dict[str, Any],
    spec: dict[str, Any],
    normalizer: SchemaNormalizer,
) -> Optional[RequestBody]:
    """Build the request body of a Swagger 2.0 operation from its ``body`` parameter."""
    body_param = next((p for p in reversed(params) if p.get("in") == "body"), None)
    if body_param is None:
        return None

    schema = body_param.get("schema")
    content = {
        media_type: {"schema": schema} for media_type in _media_types(operation, spec, "consumes")
    }
    selected = select_content(content, normalizer)
    if selected is None:
        return None

    return RequestBody(
        required=body_param.get("required") is True,
        description=_optional_str(body_param.get("description")),
        content=selected,
    )


def _extract_responses(
    responses: Any,
    normalizer: SchemaNormalizer,
    produces: Optional[list[str]] = None,
) -> list[Response]:
    """Extract one :class:`~specnorm.models.Response` per declared status code.

    Args:
        responses: The raw ``responses`` map keyed by status code
            (``"200"``, ``"404"``, ``"default"``).
        normalizer: Shared normalizer of the current run.
        produces: Swagger 2.0 only -- media types a response ``schema`` is
            served as.  ``None`` for OpenAPI 3.x ``content`` maps.
    """
    if not isinstance(responses, dict):
        return []

    result: list[Response] = []
    for status_code, response in responses.items():
        if not isinstance(response, dict):
            continue

        if produces is None:
            content = select_content(response.get("content"), normalizer)
        elif "schema" in response:
            content = select_content(
                {media_type: {"schema": response["schema"]} for media_type in produces},
                normalizer,
            )
        else:
            content = None

        result.append(
            Response(
                status_code=str(status_code),
                description=_optional_str(response.get("description")) or "",
                content=content,
            )
        )

    return result


def _media_types(operation: dict[str, Any], spec: dict[str, Any], key: str) -> list[str]:
    """Swagger 2.0 ``consumes``/``produces``: operation first, then document, then JSON."""
    for source in (operation, spec):
        value = source.get(key)
        if isinstance(value, list) and value:
            return [media_type for media_type in value if isinstance(media_type, str)]
    return list(_DEFAULT_MEDIA_TYPES)


def extract_models(
    spec: dict[str, Any],
    dialect: SpecType = SpecType.OPENAPI,
    normalizer: Optional[SchemaNormalizer] = None,
) -> list[Model]:
    """Normalize every named schema into a :class:`~specnorm.models.Model`.

    Reads ``definitions`` for Swagger 2.0 and ``components.schemas`` for
    OpenAPI 3.x.  Models without properties (enums, aliases of primitive
    types) get an empty ``properties`` map.
    """
    normalizer = normalizer or SchemaNormalizer()
    if dialect is SpecType.SWAGGER:
        schemas = spec.get("definitions")
    else:
        schemas = _section(spec, "components").get("schemas")
    if not isinstance(schemas, dict):
        return []

    models: list[Model] = []
    for name, node in schemas.items():
        schema = normalizer.normalize(node)
        models.append(
            Model(
                name=str(name),
                description=schema.description,
                properties=schema.properties or {},
                required=schema.required or [],
            )
        )
    return models


def extract_auth_methods(
    spec: dict[str, Any], dialect: SpecType = SpecType.OPENAPI
) -> list[AuthMethod]:
    """Map ``securityDefinitions`` (Swagger 2.0) or ``components.securitySchemes``."""
    if dialect is SpecType.SWAGGER:
        return map_auth_methods(spec.get("securityDefinitions"))
    return map_auth_methods(_section(spec, "components").get("securitySchemes"))


def extract_base_url(spec: dict[str, Any], dialect: SpecType = SpecType.OPENAPI) -> str:
    """Return the API base URL, or ``""`` when none is declared.

    OpenAPI 3.x uses the first server, with ``{variables}`` replaced by
    their declared defaults.  Swagger 2.0 combines the first of
    ``schemes`` (default ``https``), ``host`` and ``basePath``.
    """
    if dialect is SpecType.SWAGGER:
        host = _optional_str(spec.get("host"))
        base_path = _optional_str(spec.get("basePath")) or ""
        if not host:
            return base_path
        schemes = spec.get("schemes")
        scheme = "https"
        if isinstance(schemes, list) and schemes and isinstance(schemes[0], str):
            scheme = schemes[0]
        return f"{scheme}://{host}{base_path}"

    servers = spec.get("servers")
    if not isinstance(servers, list) or not servers or not isinstance(servers[0], dict):
        return ""
    url = _optional_str(servers[0].get("url"))
    if not url:
        return ""
    return _substitute_variables(url, servers[0].get("variables"))


def _substitute_variables(url: str, variables: Any) -> str:
    if not isinstance(variables, dict):
        return url

    def _default(match: re.Match[str]) -> str:
        variable = variables.get(match.group(1))
        if isinstance(variable, dict) and "default" in variable:
            return str(variable["default"])
        return match.group(0)

    return _SERVER_VARIABLE.sub(_default, url)


def _section(spec: dict[str, Any], key: str) -> dict[str, Any]:
    value = spec.get(key)
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _tags(value: Any) -> Optional[list[str]]:
    if not isinstance(value, list):
        return None
    return [tag for tag in value if isinstance(tag, str)]
