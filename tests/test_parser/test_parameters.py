"""Tests for specnorm.parser.parameters."""

from __future__ import annotations

from specnorm.models import ParameterLocation, Schema, SchemaKind
from specnorm.parser.parameters import build_parameters, merge_parameters
from specnorm.parser.resolver import CyclicRef


class TestMergeParameters:
    def test_operation_overrides_path_level(self) -> None:
        merged = merge_parameters(
            [{"name": "id", "in": "path", "description": "A"}],
            [{"name": "id", "in": "path", "description": "B"}],
        )
        assert merged == [{"name": "id", "in": "path", "description": "B"}]

    def test_same_name_different_location_kept(self) -> None:
        merged = merge_parameters(
            [{"name": "id", "in": "path"}],
            [{"name": "id", "in": "query"}],
        )
        assert [(p["name"], p["in"]) for p in merged] == [("id", "path"), ("id", "query")]

    def test_override_keeps_first_seen_position(self) -> None:
        merged = merge_parameters(
            [{"name": "a", "in": "query"}, {"name": "b", "in": "query", "v": 1}],
            [{"name": "c", "in": "query"}, {"name": "b", "in": "query", "v": 2}],
        )
        assert [p["name"] for p in merged] == ["a", "b", "c"]
        assert merged[1]["v"] == 2

    def test_duplicates_within_one_list_collapse(self) -> None:
        merged = merge_parameters(
            None,
            [{"name": "q", "in": "query", "v": 1}, {"name": "q", "in": "query", "v": 2}],
        )
        assert merged == [{"name": "q", "in": "query", "v": 2}]

    def test_non_list_inputs_are_empty(self) -> None:
        assert merge_parameters(None, {"name": "x"}) == []

    def test_malformed_entries_dropped(self) -> None:
        merged = merge_parameters(
            ["oops", CyclicRef("#/p"), {"name": ["x"], "in": "query"}],
            [{"name": "ok", "in": "header"}],
        )
        assert merged == [{"name": "ok", "in": "header"}]


class TestBuildParameters:
    def test_openapi_schema(self) -> None:
        [param] = build_parameters(
            [{"name": "limit", "in": "query", "description": "Page size", "schema": {"type": "integer"}}]
        )
        assert param.name == "limit"
        assert param.location is ParameterLocation.QUERY
        assert param.required is False
        assert param.schema_ == Schema(kind=SchemaKind.INTEGER)
        assert param.description == "Page size"

    def test_path_parameters_always_required(self) -> None:
        [param] = build_parameters([{"name": "id", "in": "path", "required": False}])
        assert param.required is True

    def test_required_must_be_true(self) -> None:
        [param] = build_parameters([{"name": "q", "in": "query", "required": "yes"}])
        assert param.required is False

    def test_missing_schema_is_any(self) -> None:
        [param] = build_parameters([{"name": "X-Trace", "in": "header"}])
        assert param.schema_.kind is SchemaKind.ANY

    def test_swagger_inline_type(self) -> None:
        [param] = build_parameters(
            [{"name": "ids", "in": "query", "type": "array", "items": {"type": "string"}, "collectionFormat": "csv"}]
        )
        assert param.schema_ == Schema(kind=SchemaKind.ARRAY, items=Schema(kind=SchemaKind.STRING))

    def test_body_and_form_parameters_skipped(self) -> None:
        params = build_parameters(
            [
                {"name": "payload", "in": "body", "schema": {}},
                {"name": "file", "in": "formData", "type": "file"},
                {"name": "session", "in": "cookie"},
            ]
        )
        assert [(p.name, p.location) for p in params] == [("session", ParameterLocation.COOKIE)]

    def test_document_round_trip(self) -> None:
        [param] = build_parameters(
            [{"name": "id", "in": "path", "schema": {"type": "string", "format": "uuid"}}]
        )
        assert build_parameters([param.to_document()]) == [param]
