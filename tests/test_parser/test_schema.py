"""Tests for specnorm.parser.schema."""

from __future__ import annotations

import pytest

from specnorm.models import Schema, SchemaKind
from specnorm.parser.resolver import CyclicRef, resolve_refs
from specnorm.parser.schema import SchemaNormalizer, normalize_schema, schema_kind


class TestNormalizeSchema:
    def test_type_omitted_is_object(self) -> None:
        schema = normalize_schema({"description": "no type here"})
        assert schema.kind is SchemaKind.OBJECT
        assert schema.description == "no type here"

    def test_missing_node_is_any(self) -> None:
        assert normalize_schema(None).kind is SchemaKind.ANY

    @pytest.mark.parametrize("node", ["string", 42, ["a"], True])
    def test_non_mapping_is_any(self, node: object) -> None:
        assert normalize_schema(node).kind is SchemaKind.ANY

    def test_cyclic_placeholder_is_empty_object(self) -> None:
        schema = normalize_schema(CyclicRef("#/components/schemas/Node"))
        assert schema == Schema(kind=SchemaKind.OBJECT)
        assert schema.properties is None

    def test_primitive_with_format_and_enum(self) -> None:
        schema = normalize_schema(
            {"type": "string", "format": "uuid", "enum": ["a", "b"], "maxLength": 5}
        )
        assert schema == Schema(kind=SchemaKind.STRING, format="uuid", enum=["a", "b"])

    def test_object_properties_and_required(self) -> None:
        schema = normalize_schema(
            {
                "type": "object",
                "required": ["id", "id", 7, "name"],
                "properties": {
                    "id": {"type": "integer"},
                    "name": {"type": "string"},
                    "extra": {},
                },
            }
        )
        assert schema.required == ["id", "name"]
        assert schema.properties is not None
        assert schema.properties["id"].kind is SchemaKind.INTEGER
        assert schema.properties["extra"].kind is SchemaKind.OBJECT

    def test_object_without_required_gets_empty_list(self) -> None:
        schema = normalize_schema({"properties": {"a": {"type": "boolean"}}})
        assert schema.required == []

    def test_object_without_properties(self) -> None:
        schema = normalize_schema({"type": "object", "required": ["a"]})
        assert schema.properties is None
        assert schema.required is None

    def test_properties_ignored_on_non_object(self) -> None:
        schema = normalize_schema({"type": "string", "properties": {"a": {}}})
        assert schema.properties is None

    def test_array_items(self) -> None:
        schema = normalize_schema({"type": "array", "items": {"type": "number"}})
        assert schema.items == Schema(kind=SchemaKind.NUMBER)

    def test_array_without_items(self) -> None:
        assert normalize_schema({"type": "array"}).items is None

    def test_malformed_optional_fields_are_dropped(self) -> None:
        schema = normalize_schema({"description": 5, "format": None, "enum": "x"})
        assert schema == Schema(kind=SchemaKind.OBJECT)

    def test_self_reference_is_bounded(self) -> None:
        spec = {
            "components": {
                "schemas": {
                    "Node": {
                        "type": "object",
                        "properties": {
                            "parent": {"$ref": "#/components/schemas/Node"},
                            "children": {
                                "type": "array",
                                "items": {"$ref": "#/components/schemas/Node"},
                            },
                        },
                    }
                }
            },
            "root": {"$ref": "#/components/schemas/Node"},
        }

        schema = normalize_schema(resolve_refs(spec)["root"])

        assert schema.properties is not None
        parent = schema.properties["parent"]
        assert parent == Schema(kind=SchemaKind.OBJECT)
        children = schema.properties["children"]
        assert children.items == Schema(kind=SchemaKind.OBJECT)

    def test_output_is_a_fixed_point(self) -> None:
        schema = normalize_schema(
            {
                "type": "object",
                "description": "Pet",
                "required": ["id"],
                "properties": {
                    "id": {"type": "integer", "format": "int64"},
                    "tags": {"type": "array", "items": {"type": "string", "enum": ["a"]}},
                    "anything": None,
                },
            }
        )
        assert normalize_schema(schema.to_document()) == schema


class TestSchemaKind:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, SchemaKind.OBJECT),
            ("integer", SchemaKind.INTEGER),
            ("any", SchemaKind.ANY),
            ("null", SchemaKind.ANY),
            ("file", SchemaKind.ANY),
            (["string", "null"], SchemaKind.STRING),
            (["null", "integer"], SchemaKind.INTEGER),
            (["null"], SchemaKind.ANY),
            (3, SchemaKind.ANY),
        ],
    )
    def test_mapping(self, value: object, expected: SchemaKind) -> None:
        assert schema_kind(value) is expected


class TestSchemaNormalizerMemo:
    def test_shared_nodes_normalized_once(self) -> None:
        shared = {"type": "object", "properties": {"a": {"type": "string"}}}
        normalizer = SchemaNormalizer()

        first = normalizer.normalize(shared)
        second = normalizer.normalize(shared)

        assert first is second

    def test_equal_but_distinct_nodes(self) -> None:
        normalizer = SchemaNormalizer()
        assert normalizer.normalize({"type": "string"}) == normalizer.normalize({"type": "string"})
