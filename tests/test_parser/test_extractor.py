"""Tests for spectool.parser.extractor."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import patch

import pytest

from spectool.models import ParameterLocation
from spectool.parser.extractor import _extract_schema_type, extract_tools
from spectool.parser.resolver import resolve_refs


@pytest.fixture
def petstore_tools(petstore_30_raw: dict[str, Any]):
    resolved, _ = resolve_refs(petstore_30_raw)
    return extract_tools(resolved)


def _tool(result, name: str):
    return next(t for t in result.tools if t.name == name)


def _spec(paths: dict[str, Any], **extra: Any) -> dict[str, Any]:
    spec: dict[str, Any] = {"openapi": "3.0.3", "info": {"title": "T", "version": "1"}, "paths": paths}
    spec.update(extra)
    return spec


class TestToolRecords:
    """One tool per path + method."""

    def test_tool_names_in_document_order(self, petstore_tools) -> None:
        assert [t.name for t in petstore_tools.tools] == [
            "listPets",
            "createPet",
            "getPet",
            "updatePet",
            "delete_pets_petId",
        ]

    def test_descriptions(self, petstore_tools) -> None:
        assert _tool(petstore_tools, "listPets").description == "List all pets"
        assert _tool(petstore_tools, "updatePet").description == "Replace a pet"
        assert _tool(petstore_tools, "delete_pets_petId").description == "DELETE /pets/{petId}"

    def test_base_url_from_servers(self, petstore_tools) -> None:
        template = _tool(petstore_tools, "getPet").request_template
        assert template.url == "https://petstore.example.com/v1/pets/{petId}"
        assert template.method == "GET"

    def test_base_url_override(self, petstore_30_raw: dict[str, Any]) -> None:
        result = extract_tools(petstore_30_raw, base_url="http://localhost:8080/")
        assert result.tools[0].request_template.url == "http://localhost:8080/pets"

    def test_no_servers_gives_relative_url(self) -> None:
        result = extract_tools(_spec({"/ping": {"get": {}}}))
        assert result.tools[0].request_template.url == "/ping"

    def test_duplicate_operation_ids_made_unique(self) -> None:
        result = extract_tools(_spec({
            "/a": {"get": {"operationId": "fetch"}},
            "/b": {"get": {"operationId": "fetch"}},
            "/c": {"get": {"operationId": "fetch"}},
        }))
        assert [t.name for t in result.tools] == ["fetch", "fetch_2", "fetch_3"]

    def test_non_operation_keys_ignored(self) -> None:
        result = extract_tools(_spec({"/a": {"summary": "x", "get": {}, "x-internal": True}}))
        assert len(result.tools) == 1

    def test_methods_in_declaration_order(self) -> None:
        result = extract_tools(_spec({
            "/a": {"post": {"operationId": "first"}, "get": {"operationId": "second"}},
        }))
        assert [t.name for t in result.tools] == ["first", "second"]


class TestArguments:
    """Parameters and request body properties become arguments."""

    def test_query_arguments(self, petstore_tools) -> None:
        args = _tool(petstore_tools, "listPets").arguments
        assert [(a.name, a.position, a.type) for a in args] == [
            ("limit", ParameterLocation.QUERY, "integer"),
            ("status", ParameterLocation.QUERY, "string"),
        ]
        assert args[0].description == "Maximum number of items"
        assert args[1].schema_ == {"type": "string", "enum": ["available", "sold"]}

    def test_path_level_parameters_merged(self, petstore_tools) -> None:
        args = _tool(petstore_tools, "getPet").arguments
        assert [(a.name, a.position) for a in args] == [
            ("petId", ParameterLocation.PATH),
            ("X-Request-Id", ParameterLocation.HEADER),
        ]
        assert args[0].required is True

    def test_operation_parameter_overrides_path_level(self) -> None:
        result = extract_tools(_spec({"/a/{id}": {
            "parameters": [{"name": "id", "in": "path", "description": "path-level"}],
            "get": {"parameters": [{"name": "id", "in": "path", "description": "op-level"}]},
        }}))
        args = result.tools[0].arguments
        assert len(args) == 1
        assert args[0].description == "op-level"

    def test_path_parameters_always_required(self) -> None:
        result = extract_tools(_spec({"/a/{id}": {"get": {
            "parameters": [{"name": "id", "in": "path", "required": False}],
        }}}))
        assert result.tools[0].arguments[0].required is True

    def test_cookie_argument(self, petstore_tools) -> None:
        args = _tool(petstore_tools, "delete_pets_petId").arguments
        assert ("session", ParameterLocation.COOKIE) in [(a.name, a.position) for a in args]

    def test_unknown_location_skipped(self) -> None:
        result = extract_tools(_spec({"/a": {"get": {"parameters": [
            {"name": "weird", "in": "matrix"},
            {"in": "query"},
        ]}}}))
        assert result.tools[0].arguments == []

    def test_object_body_properties(self, petstore_tools) -> None:
        tool = _tool(petstore_tools, "createPet")
        assert [(a.name, a.position, a.required) for a in tool.arguments] == [
            ("name", ParameterLocation.BODY, True),
            ("tag", ParameterLocation.BODY, False),
        ]
        assert [(h.key, h.value) for h in tool.request_template.headers] == [
            ("Content-Type", "application/json")
        ]

    def test_non_object_body_single_argument(self) -> None:
        result = extract_tools(_spec({"/upload": {"post": {"requestBody": {
            "required": True,
            "content": {"application/octet-stream": {"schema": {"type": "string", "format": "binary"}}},
        }}}}))
        args = result.tools[0].arguments
        assert len(args) == 1
        assert args[0].name == "body"
        assert args[0].position == ParameterLocation.BODY
        assert args[0].required is True

    def test_array_body_argument(self) -> None:
        result = extract_tools(_spec({"/bulk": {"post": {"requestBody": {
            "content": {"application/json": {"schema": {"type": "array", "items": {"type": "string"}}}},
        }}}}))
        arg = result.tools[0].arguments[0]
        assert arg.type == "array"
        assert arg.items == {"type": "string"}

    def test_nested_object_property_keeps_properties(self) -> None:
        result = extract_tools(_spec({"/a": {"post": {"requestBody": {
            "content": {"application/json": {"schema": {
                "type": "object",
                "properties": {"address": {"type": "object", "properties": {"city": {"type": "string"}}}},
            }}},
        }}}}))
        arg = result.tools[0].arguments[0]
        assert arg.type == "object"
        assert arg.properties == {"city": {"type": "string"}}


class TestSchemaType:
    """Type extraction from schema objects."""

    @pytest.mark.parametrize(
        ("schema", "expected"),
        [
            ({"type": "integer"}, "integer"),
            ({"type": ["string", "null"]}, "string"),
            ({"type": ["null"]}, "string"),
            ({"properties": {}}, "object"),
            ({"items": {}}, "array"),
            ({}, "string"),
            ("not-a-dict", "string"),
        ],
    )
    def test_extract_schema_type(self, schema: Any, expected: str) -> None:
        assert _extract_schema_type(schema) == expected


class TestResponseTemplate:
    """Success response fields described in prependBody."""

    def test_array_of_objects(self, petstore_tools) -> None:
        prepend = _tool(petstore_tools, "listPets").response_template.prepend_body
        assert prepend is not None
        assert "- **[].id**: string - Unique identifier" in prepend
        assert "- **[].tag**: string" in prepend
        assert prepend.endswith("## Original Response\n\n")

    def test_object_response(self, petstore_tools) -> None:
        prepend = _tool(petstore_tools, "getPet").response_template.prepend_body
        assert "- **name**: string - Pet name" in prepend

    def test_no_schema_no_prepend(self, petstore_tools) -> None:
        assert _tool(petstore_tools, "createPet").response_template.prepend_body is None


class TestSecuritySchemes:
    """components.securitySchemes are extracted in order."""

    def test_schemes(self, petstore_tools) -> None:
        schemes = petstore_tools.server.security_schemes
        assert [s.id for s in schemes] == ["api_key", "bearer"]
        assert schemes[0].param_name == "X-API-Key"
        assert schemes[0].location == "header"
        assert schemes[1].scheme == "bearer"
        assert schemes[1].bearer_format == "JWT"

    def test_server_name_from_title(self, petstore_tools) -> None:
        assert petstore_tools.server.name == "Petstore API"

    def test_no_components(self) -> None:
        assert extract_tools(_spec({})).server.security_schemes == []


class TestMalformedShapes:
    """Fields with the wrong shape degrade instead of aborting the import."""

    def test_null_parameters(self) -> None:
        result = extract_tools(_spec({
            "/a/{id}": {"parameters": None, "get": {"parameters": None}},
        }))
        assert len(result.tools) == 1
        assert result.tools[0].arguments == []

    def test_null_info(self) -> None:
        spec = _spec({"/a": {"get": {}}})
        spec["info"] = None
        result = extract_tools(spec)
        assert result.server.name == ""
        assert len(result.tools) == 1

    def test_numeric_summary_and_descriptions(self) -> None:
        result = extract_tools(_spec({
            "/a": {
                "get": {
                    "summary": 2024,
                    "parameters": [{"name": "q", "in": "query", "description": 7}],
                },
            },
        }))
        tool = result.tools[0]
        assert tool.description == "2024"
        assert tool.arguments[0].description == "7"

    def test_non_mapping_sections(self) -> None:
        spec = _spec(["not", "a", "mapping"])  # type: ignore[arg-type]
        spec["components"] = "nope"
        spec["servers"] = {"url": "http://x"}
        result = extract_tools(spec)
        assert result.tools == []
        assert result.server.security_schemes == []

    def test_bad_content_and_required(self) -> None:
        result = extract_tools(_spec({
            "/a": {
                "post": {
                    "requestBody": {"content": None},
                },
                "put": {
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "required": True,
                                    "properties": {"name": {"type": "string"}},
                                },
                            },
                        },
                    },
                },
            },
        }))
        post, put = result.tools
        assert post.arguments == []
        assert put.arguments[0].name == "name"
        assert put.arguments[0].required is False

    def test_failing_operation_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        spec = _spec({"/a": {"get": {"operationId": "broken"}}, "/b": {"get": {"operationId": "fine"}}})
        with patch(
            "spectool.parser.extractor._extract_request_body",
            side_effect=[ValueError("bad body"), (None, [])],
        ):
            with caplog.at_level(logging.WARNING, logger="spectool.parser.extractor"):
                result = extract_tools(spec)

        assert [t.name for t in result.tools] == ["fine"]
        assert "Skipping GET /a: bad body" in caplog.text


class TestNameCollisions:
    """Parameters and body properties sharing a name."""

    def test_shadowed_parameter_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        spec = _spec({
            "/a": {
                "post": {
                    "parameters": [{"name": "q", "in": "query"}],
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {"type": "object", "properties": {"q": {"type": "string"}}},
                            },
                        },
                    },
                },
            },
        })
        with caplog.at_level(logging.WARNING, logger="spectool.parser.extractor"):
            result = extract_tools(spec)

        assert result.tools[0].args_position() == {"q": ParameterLocation.BODY}
        assert "body property 'q' shadows the query parameter" in caplog.text
