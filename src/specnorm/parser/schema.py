"""Convert resolved schema nodes into canonical :class:`~specnorm.models.Schema` trees.

The normalizer is total: any value found in a resolved document -- a schema
dict, a :class:`~specnorm.parser.resolver.CyclicRef` placeholder, ``None``
for a missing slot, or garbage of the wrong type -- produces a
:class:`~specnorm.models.Schema` without raising.

Rules, applied recursively:

1. A cyclic placeholder becomes an ``object`` with no properties.
2. A missing or non-mapping node becomes ``any``.
3. ``type`` defaults to ``object``; OpenAPI 3.1 type arrays use the first
   non-``null`` entry; unknown types become ``any``.
4. ``description``, ``format`` and ``enum`` are copied when well-typed.
5. ``object`` schemas with ``properties`` get normalized properties and
   ``required`` (absent means empty).
6. ``array`` schemas with ``items`` get normalized items.
"""

from __future__ import annotations

from typing import Any

from specnorm.models import Schema, SchemaKind
from specnorm.parser.resolver import CyclicRef

_KINDS = {kind.value: kind for kind in SchemaKind}


def normalize_schema(node: Any) -> Schema:
    """Normalize a single resolved schema node.

    Example::

        normalize_schema({"properties": {"id": {"type": "integer"}}})
        # Schema(kind=OBJECT, properties={"id": Schema(kind=INTEGER)}, required=[])
    """
    return SchemaNormalizer().normalize(node)


class SchemaNormalizer:
    """Schema normalizer that memoizes shared subtrees.

    The resolver shares cycle-free expansions between every place that
    references them, so one instance per normalization run converts each
    shared node once.
    """

    def __init__(self) -> None:
        self._memo: dict[int, tuple[Any, Schema]] = {}

    def normalize(self, node: Any) -> Schema:
        if isinstance(node, CyclicRef):
            return Schema(kind=SchemaKind.OBJECT)
        if not isinstance(node, dict):
            return Schema(kind=SchemaKind.ANY)

        # Keep the node alive alongside its result so the id cannot be reused.
        cached = self._memo.get(id(node))
        if cached is not None and cached[0] is node:
            return cached[1]

        schema = self._normalize_mapping(node)
        self._memo[id(node)] = (node, schema)
        return schema

    def _normalize_mapping(self, node: dict[str, Any]) -> Schema:
        kind = schema_kind(node.get("type"))
        fields: dict[str, Any] = {"kind": kind}

        for key in ("description", "format"):
            value = node.get(key)
            if isinstance(value, str):
                fields[key] = value
        if isinstance(node.get("enum"), list):
            fields["enum"] = list(node["enum"])

        if kind is SchemaKind.OBJECT and isinstance(node.get("properties"), dict):
            fields["properties"] = {
                str(name): self.normalize(prop) for name, prop in node["properties"].items()
            }
            fields["required"] = _required_names(node.get("required"))

        if kind is SchemaKind.ARRAY and "items" in node:
            fields["items"] = self.normalize(node["items"])

        return Schema(**fields)


def schema_kind(type_value: Any) -> SchemaKind:
    """Map a raw ``type`` value to a :class:`~specnorm.models.SchemaKind`."""
    if type_value is None:
        return SchemaKind.OBJECT

    # OpenAPI 3.1 allows type to be an array (e.g., ["string", "null"])
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        if not non_null:
            return SchemaKind.ANY
        type_value = non_null[0]

    if isinstance(type_value, str):
        return _KINDS.get(type_value, SchemaKind.ANY)
    return SchemaKind.ANY


def _required_names(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    names: list[str] = []
    for name in value:
        if isinstance(name, str) and name not in names:
            names.append(name)
    return names
