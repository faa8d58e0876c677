"""Tests for spectool.parser.resolver."""

from __future__ import annotations

import copy
from typing import Any
from unittest.mock import patch

import pytest

from spectool.exceptions import SpecParseError
from spectool.models import DiagnosticKind
from spectool.parser.resolver import (
    CIRCULAR_REFERENCE_NODE,
    MAX_REFERENCE_DEPTH,
    resolve,
    resolve_refs,
)


def _schema_chain(length: int) -> dict[str, Any]:
    """Schemas S0 .. S<length> where each one nests a $ref to the next."""
    schemas: dict[str, Any] = {
        f"S{i}": {"properties": {"n": {"$ref": f"#/components/schemas/S{i + 1}"}}}
        for i in range(length)
    }
    schemas[f"S{length}"] = {"type": "string"}
    return {
        "root": {"$ref": "#/components/schemas/S0"},
        "components": {"schemas": schemas},
    }


class TestResolveRefs:
    """Whole-document resolution."""

    def test_expands_internal_reference(self) -> None:
        spec = {
            "paths": {"/pets": {"schema": {"$ref": "#/components/schemas/Pet"}}},
            "components": {"schemas": {"Pet": {"type": "object"}}},
        }
        resolved, diagnostics = resolve_refs(spec)

        assert resolved["paths"]["/pets"]["schema"] == {"type": "object"}
        assert diagnostics == []

    def test_expands_nested_chain(self) -> None:
        spec = {
            "a": {"$ref": "#/defs/B"},
            "defs": {"B": {"inner": {"$ref": "#/defs/C"}}, "C": {"type": "string"}},
        }
        resolved, _ = resolve_refs(spec)
        assert resolved["a"] == {"inner": {"type": "string"}}

    def test_input_is_not_mutated(self) -> None:
        spec = {
            "x": {"$ref": "#/defs/Y"},
            "defs": {"Y": {"type": "integer"}},
        }
        snapshot = copy.deepcopy(spec)
        resolve_refs(spec)
        assert spec == snapshot

    def test_is_deterministic(self) -> None:
        spec = {
            "x": [{"$ref": "#/defs/Y"}, {"$ref": "#/missing"}],
            "defs": {"Y": {"self": {"$ref": "#/defs/Y"}}},
        }
        assert resolve_refs(spec) == resolve_refs(spec)

    def test_already_resolved_document_unchanged(self) -> None:
        spec = {"openapi": "3.0.3", "paths": {"/a": {"get": {"responses": {}}}}, "n": [1, "two", None]}
        resolved, diagnostics = resolve_refs(spec)
        assert resolved == spec
        assert diagnostics == []

    def test_resolving_twice_is_idempotent(self) -> None:
        spec = {"a": {"$ref": "#/defs/B"}, "defs": {"B": {"type": "number"}}}
        once, _ = resolve_refs(spec)
        twice, _ = resolve_refs(once)
        assert once == twice

    def test_sequences_preserve_order(self) -> None:
        spec = {
            "items": [{"$ref": "#/defs/A"}, 3, {"$ref": "#/defs/B"}],
            "defs": {"A": "first", "B": "second"},
        }
        resolved, _ = resolve_refs(spec)
        assert resolved["items"] == ["first", 3, "second"]


class TestCycles:
    """Cyclic pointers terminate with the sentinel node."""

    def test_self_reference(self) -> None:
        spec = {
            "defs": {
                "Node": {
                    "type": "object",
                    "properties": {"child": {"$ref": "#/defs/Node"}},
                }
            },
            "root": {"$ref": "#/defs/Node"},
        }
        resolved, diagnostics = resolve_refs(spec)

        # Entered through the pointer: the first recursion is already cyclic.
        assert resolved["root"]["type"] == "object"
        assert resolved["root"]["properties"]["child"] == CIRCULAR_REFERENCE_NODE

        # Entered directly: one level is expanded before the cycle is hit.
        child = resolved["defs"]["Node"]["properties"]["child"]
        assert child["type"] == "object"
        assert child["properties"]["child"] == CIRCULAR_REFERENCE_NODE
        assert any(d.kind == DiagnosticKind.CIRCULAR_REFERENCE for d in diagnostics)

    def test_mutual_reference(self) -> None:
        spec = {
            "defs": {
                "A": {"b": {"$ref": "#/defs/B"}},
                "B": {"a": {"$ref": "#/defs/A"}},
            },
            "start": {"$ref": "#/defs/A"},
        }
        resolved, _ = resolve_refs(spec)
        assert resolved["start"]["b"]["a"] == CIRCULAR_REFERENCE_NODE

    def test_direct_self_pointer(self) -> None:
        spec = {"loop": {"$ref": "#/loop"}}
        resolved, diagnostics = resolve_refs(spec)
        assert resolved["loop"] == CIRCULAR_REFERENCE_NODE
        assert [d.pointer for d in diagnostics] == ["#/loop"]

    def test_sibling_subtrees_share_pointer_without_false_cycle(self) -> None:
        spec = {
            "left": {"$ref": "#/defs/Leaf"},
            "right": {"$ref": "#/defs/Leaf"},
            "pair": [{"$ref": "#/defs/Leaf"}, {"$ref": "#/defs/Leaf"}],
            "defs": {"Leaf": {"type": "string"}},
        }
        resolved, diagnostics = resolve_refs(spec)

        assert resolved["left"] == {"type": "string"}
        assert resolved["right"] == {"type": "string"}
        assert resolved["pair"] == [{"type": "string"}, {"type": "string"}]
        assert diagnostics == []

    def test_sentinel_is_a_fresh_copy(self) -> None:
        resolved, _ = resolve_refs({"a": {"$ref": "#/a"}, "b": {"$ref": "#/b"}})
        resolved["a"]["error"] = "changed"
        assert resolved["b"] == {"error": "circular reference"}
        assert CIRCULAR_REFERENCE_NODE == {"error": "circular reference"}


class TestUnresolved:
    """Bad pointers degrade to the original node plus a diagnostic."""

    def test_missing_internal_path(self) -> None:
        node = {"$ref": "#/components/schemas/Missing"}
        spec = {"schema": node, "components": {"schemas": {}}}
        resolved, diagnostics = resolve_refs(spec)

        assert resolved["schema"] == node
        assert diagnostics[0].kind == DiagnosticKind.UNRESOLVABLE_REFERENCE
        assert diagnostics[0].pointer == "#/components/schemas/Missing"

    def test_external_reference_passed_through(self) -> None:
        spec = {"schema": {"$ref": "https://example.com/schemas/pet.json"}}
        resolved, diagnostics = resolve_refs(spec)

        assert resolved["schema"] == {"$ref": "https://example.com/schemas/pet.json"}
        assert diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_REFERENCE_KIND

    def test_relative_file_reference_passed_through(self) -> None:
        resolved, diagnostics = resolve_refs({"s": {"$ref": "pet.yaml#/Pet"}})
        assert resolved["s"] == {"$ref": "pet.yaml#/Pet"}
        assert diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_REFERENCE_KIND

    def test_non_string_ref_is_ordinary_key(self) -> None:
        spec = {"properties": {"$ref": {"type": "string"}}}
        resolved, diagnostics = resolve_refs(spec)
        assert resolved == spec
        assert diagnostics == []

    def test_unresolvable_does_not_abort_siblings(self) -> None:
        spec = {
            "bad": {"$ref": "#/nope"},
            "good": {"$ref": "#/defs/Ok"},
            "defs": {"Ok": {"type": "boolean"}},
        }
        resolved, diagnostics = resolve_refs(spec)
        assert resolved["good"] == {"type": "boolean"}
        assert len(diagnostics) == 1

    def test_diagnostic_messages(self) -> None:
        _, diagnostics = resolve_refs({
            "a": {"$ref": "#/a"},
            "b": {"$ref": "#/missing"},
            "c": {"$ref": "other.json"},
        })
        messages = [d.message for d in diagnostics]
        assert "Circular reference: #/a" in messages
        assert "Cannot resolve reference: #/missing" in messages
        assert "Unsupported reference kind: other.json" in messages


class TestPointerSyntax:
    """JSON Pointer escaping and sequence indices."""

    def test_escaped_slash_in_path_key(self) -> None:
        spec: dict[str, Any] = {
            "paths": {"/pets/{id}": {"get": {"summary": "Get pet"}}},
            "alias": {"$ref": "#/paths/~1pets~1{id}/get"},
        }
        resolved, _ = resolve_refs(spec)
        assert resolved["alias"] == {"summary": "Get pet"}

    def test_escaped_tilde(self) -> None:
        spec = {"a~b": {"v": 1}, "x": {"$ref": "#/a~0b"}}
        resolved, _ = resolve_refs(spec)
        assert resolved["x"] == {"v": 1}

    def test_list_index(self) -> None:
        spec = {"list": [{"v": "zero"}, {"v": "one"}], "x": {"$ref": "#/list/1"}}
        resolved, _ = resolve_refs(spec)
        assert resolved["x"] == {"v": "one"}

    def test_list_index_out_of_range(self) -> None:
        spec = {"list": [], "x": {"$ref": "#/list/3"}}
        resolved, diagnostics = resolve_refs(spec)
        assert resolved["x"] == {"$ref": "#/list/3"}
        assert diagnostics[0].kind == DiagnosticKind.UNRESOLVABLE_REFERENCE


class TestResolveNode:
    """The lower-level resolve() entry point."""

    def test_scalars_pass_through(self) -> None:
        assert resolve(42, {}) == 42
        assert resolve("text", {}) == "text"
        assert resolve(None, {}) is None

    def test_visiting_set_triggers_sentinel(self) -> None:
        root = {"defs": {"A": {"type": "string"}}}
        result = resolve({"$ref": "#/defs/A"}, root, frozenset({"#/defs/A"}))
        assert result == CIRCULAR_REFERENCE_NODE

    def test_diagnostics_optional(self) -> None:
        assert resolve({"$ref": "#/missing"}, {}) == {"$ref": "#/missing"}


class TestDeepChains:
    """Long chains of nested references stay bounded."""

    def test_short_chain_fully_expanded(self) -> None:
        resolved, diagnostics = resolve_refs(_schema_chain(30))

        node = resolved["root"]
        for _ in range(30):
            node = node["properties"]["n"]
        assert node == {"type": "string"}
        assert diagnostics == []

    def test_long_chain_stops_at_depth_limit(self) -> None:
        resolved, diagnostics = resolve_refs(_schema_chain(300))

        node = resolved["root"]
        for _ in range(MAX_REFERENCE_DEPTH):
            node = node["properties"]["n"]
        assert node == {"$ref": f"#/components/schemas/S{MAX_REFERENCE_DEPTH}"}
        assert diagnostics
        assert {d.kind for d in diagnostics} == {DiagnosticKind.REFERENCE_TOO_DEEP}

    def test_depth_message(self) -> None:
        _, diagnostics = resolve_refs(_schema_chain(MAX_REFERENCE_DEPTH + 1))
        assert "Reference nesting too deep: #/components/schemas/S64" in [
            d.message for d in diagnostics
        ]

    def test_recursion_error_becomes_parse_error(self) -> None:
        with patch("spectool.parser.resolver.resolve", side_effect=RecursionError):
            with pytest.raises(SpecParseError, match="nested too deeply"):
                resolve_refs({"a": 1})
