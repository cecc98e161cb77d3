"""Merge path-level and operation-level parameters and convert them to models.

Path-item parameters apply to every operation under that path; an
operation-level parameter with the same ``name`` and ``in`` overrides it.
The override keeps the path-level entry's position in the output (first-seen
position, last-seen content), and the result never holds two parameters with
the same ``(name, in)`` pair.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specnorm.models import Parameter, ParameterLocation
from specnorm.parser.schema import SchemaNormalizer

logger = logging.getLogger(__name__)

_LOCATIONS = {location.value: location for location in ParameterLocation}

# Keys of a Swagger 2.0 non-body parameter that describe its value type.
_INLINE_SCHEMA_KEYS = ("type", "format", "enum", "items")


def merge_parameters(path_params: Any, op_params: Any) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameter lists.

    Both inputs are raw (resolved) lists.  Non-list inputs are treated as
    empty and non-mapping entries, including cyclic placeholders, are
    dropped.

    Args:
        path_params: Parameters declared on the path item.
        op_params: Parameters declared on the operation.

    Returns:
        Raw parameter dicts, unique by ``(name, in)``.

    Example::

        merge_parameters(
            [{"name": "id", "in": "path", "description": "A"}],
            [{"name": "id", "in": "path", "description": "B"}],
        )
        # [{"name": "id", "in": "path", "description": "B"}]
    """
    merged: dict[tuple[str, str], dict[str, Any]] = {}
    for params in (path_params, op_params):
        if not isinstance(params, list):
            continue
        for param in params:
            if not isinstance(param, dict):
                continue
            name, location = param.get("name", ""), param.get("in", "")
            if not isinstance(name, str) or not isinstance(location, str):
                logger.debug("Skipping parameter with non-string name or location: %r", param)
                continue
            # Assigning to an existing key keeps its insertion position.
            merged[(name, location)] = param
    return list(merged.values())


def build_parameters(
    params: list[dict[str, Any]],
    normalizer: Optional[SchemaNormalizer] = None,
) -> list[Parameter]:
    """Convert merged raw parameter dicts into :class:`~specnorm.models.Parameter` models.

    Parameters whose ``in`` is not query, path, header or cookie (for
    instance Swagger 2.0 ``body`` and ``formData``) are skipped.  Path
    parameters are always required.
    """
    normalizer = normalizer or SchemaNormalizer()
    result: list[Parameter] = []

    for param in params:
        location = _LOCATIONS.get(param.get("in", ""))
        if location is None:
            logger.debug(
                "Skipping parameter %r with location %r", param.get("name"), param.get("in")
            )
            continue

        name = param.get("name", "")
        description = param.get("description")
        required = param.get("required") is True or location is ParameterLocation.PATH

        result.append(
            Parameter(
                name=name,
                location=location,
                required=required,
                schema=normalizer.normalize(_parameter_schema(param)),
                description=description if isinstance(description, str) else None,
            )
        )

    return result


def _parameter_schema(param: dict[str, Any]) -> Any:
    """Return the schema node describing a parameter's value.

    OpenAPI 3.x uses a ``schema`` key; Swagger 2.0 puts ``type``, ``format``,
    ``enum`` and ``items`` directly on the parameter.
    """
    if "schema" in param:
        return param["schema"]
    if "type" in param:
        return {key: param[key] for key in _INLINE_SCHEMA_KEYS if key in param}
    return None
