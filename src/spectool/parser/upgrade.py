"""Upgrade Swagger 2.0 documents to OpenAPI 3.0.

The operation extractor only understands OpenAPI 3.  Legacy documents are
converted here first; the conversion covers the parts of a description the
extractor reads:

* ``host`` / ``basePath`` / ``schemes`` -- rebuilt as ``servers``.
* ``definitions``, ``parameters``, ``responses``, ``securityDefinitions`` --
  moved under ``components``.
* ``in: body`` and ``in: formData`` parameters -- folded into a
  ``requestBody`` keyed by the operation's ``consumes`` media types.
* Response ``schema`` -- wrapped in ``content`` keyed by ``produces``.
* Leftover ``$ref`` pointers -- rewritten to their ``components`` location.

Vendor extensions (``x-*``) on operations are kept as-is.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from spectool.exceptions import SchemaUpgradeError
from spectool.models import HTTPMethod

logger = logging.getLogger(__name__)

TARGET_VERSION = "3.0.3"

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)

_FORM_URLENCODED = "application/x-www-form-urlencoded"
_MULTIPART = "multipart/form-data"
_JSON = "application/json"

# Parameter keys that describe the value itself and move into ``schema``.
_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "collectionFormat",
    "default",
    "maximum",
    "exclusiveMaximum",
    "minimum",
    "exclusiveMinimum",
    "maxLength",
    "minLength",
    "pattern",
    "maxItems",
    "minItems",
    "uniqueItems",
    "enum",
    "multipleOf",
)

_REF_PREFIXES = {
    "#/definitions/": "#/components/schemas/",
    "#/parameters/": "#/components/parameters/",
    "#/responses/": "#/components/responses/",
}


def upgrade_swagger(spec: dict[str, Any]) -> dict[str, Any]:
    """Convert a Swagger 2.0 document into an OpenAPI 3.0 document.

    Args:
        spec: A decoded Swagger 2.0 document (``$ref`` pointers may already
            be resolved).

    Returns:
        A new OpenAPI 3.0 dictionary.  The input is not mutated.

    Raises:
        SchemaUpgradeError: If the document has an unexpected shape.
    """
    try:
        return _upgrade(copy.deepcopy(spec))
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise SchemaUpgradeError(
            f"Failed to upgrade Swagger {spec.get('swagger')} document: {exc}"
        ) from exc


def _upgrade(spec: dict[str, Any]) -> dict[str, Any]:
    global_consumes = spec.get("consumes") or [_JSON]
    global_produces = spec.get("produces") or [_JSON]

    result: dict[str, Any] = {
        "openapi": TARGET_VERSION,
        "info": spec.get("info") or {"title": "Untitled API", "version": "0.0.0"},
    }

    servers = _convert_servers(spec)
    if servers:
        result["servers"] = servers

    for key in ("tags", "externalDocs", "security"):
        if key in spec:
            result[key] = spec[key]

    result["paths"] = {
        path: _convert_path_item(path_item, global_consumes, global_produces)
        for path, path_item in (spec.get("paths") or {}).items()
        if isinstance(path_item, dict)
    }

    components = _convert_components(spec, global_produces)
    if components:
        result["components"] = components

    for key, value in spec.items():
        if key.startswith("x-"):
            result[key] = value

    return _rewrite_refs(result)


def _convert_servers(spec: dict[str, Any]) -> list[dict[str, Any]]:
    """Build ``servers`` from ``host``, ``basePath`` and ``schemes``."""
    host = spec.get("host")
    base_path = spec.get("basePath", "") or ""
    if base_path == "/":
        base_path = ""

    if not host:
        return [{"url": base_path}] if base_path else []

    schemes = spec.get("schemes") or ["https"]
    return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes]


def _convert_components(
    spec: dict[str, Any], global_produces: list[str]
) -> dict[str, Any]:
    components: dict[str, Any] = {}

    if spec.get("definitions"):
        components["schemas"] = spec["definitions"]

    if spec.get("parameters"):
        components["parameters"] = {
            name: _convert_parameter(param)
            for name, param in spec["parameters"].items()
            if param.get("in") not in ("body", "formData")
        }

    if spec.get("responses"):
        components["responses"] = {
            name: _convert_response(response, global_produces)
            for name, response in spec["responses"].items()
        }

    if spec.get("securityDefinitions"):
        components["securitySchemes"] = {
            name: _convert_security_scheme(scheme)
            for name, scheme in spec["securityDefinitions"].items()
        }

    return components


def _convert_path_item(
    path_item: dict[str, Any],
    global_consumes: list[str],
    global_produces: list[str],
) -> dict[str, Any]:
    """Convert one path item, pushing body/form parameters down to operations."""
    shared_params = path_item.get("parameters") or []
    result: dict[str, Any] = {}

    plain_shared = [p for p in shared_params if p.get("in") not in ("body", "formData")]
    if plain_shared:
        result["parameters"] = [_convert_parameter(p) for p in plain_shared]

    body_shared = [p for p in shared_params if p.get("in") in ("body", "formData")]

    for key, value in path_item.items():
        if key == "parameters":
            continue
        if key in _HTTP_METHODS and isinstance(value, dict):
            result[key] = _convert_operation(
                value, body_shared, global_consumes, global_produces
            )
        else:
            result[key] = value

    return result


def _convert_operation(
    operation: dict[str, Any],
    body_shared: list[dict[str, Any]],
    global_consumes: list[str],
    global_produces: list[str],
) -> dict[str, Any]:
    consumes = operation.get("consumes") or global_consumes
    produces = operation.get("produces") or global_produces

    result = {
        key: value
        for key, value in operation.items()
        if key not in ("parameters", "consumes", "produces", "responses", "schemes")
    }

    params = operation.get("parameters") or []
    plain = [p for p in params if p.get("in") not in ("body", "formData")]
    if plain:
        result["parameters"] = [_convert_parameter(p) for p in plain]

    body_params = [p for p in body_shared + params if p.get("in") == "body"]
    form_params = [p for p in body_shared + params if p.get("in") == "formData"]

    request_body = None
    if body_params:
        request_body = _body_parameter_to_request_body(body_params[-1], consumes)
    elif form_params:
        request_body = _form_parameters_to_request_body(form_params, consumes)
    if request_body is not None:
        result["requestBody"] = request_body

    result["responses"] = {
        str(code): _convert_response(response, produces)
        for code, response in (operation.get("responses") or {}).items()
    }

    return result


def _convert_parameter(param: dict[str, Any]) -> dict[str, Any]:
    """Move value-describing keys of a non-body parameter into ``schema``."""
    if "$ref" in param:
        return param

    result = {k: v for k, v in param.items() if k not in _SCHEMA_KEYS}
    schema = {k: param[k] for k in _SCHEMA_KEYS if k in param and k != "collectionFormat"}
    if schema:
        result["schema"] = schema

    if param.get("collectionFormat") == "multi":
        result["explode"] = True
    elif param.get("type") == "array" and "collectionFormat" in param:
        result["explode"] = False
    return result


def _body_parameter_to_request_body(
    param: dict[str, Any], consumes: list[str]
) -> dict[str, Any]:
    schema = param.get("schema", {})
    media_types = [ct for ct in consumes if ct not in (_FORM_URLENCODED, _MULTIPART)]
    if not media_types:
        media_types = [_JSON]

    request_body: dict[str, Any] = {
        "content": {ct: {"schema": schema} for ct in media_types},
    }
    if param.get("description"):
        request_body["description"] = param["description"]
    if param.get("required"):
        request_body["required"] = True
    return request_body


def _form_parameters_to_request_body(
    params: list[dict[str, Any]], consumes: list[str]
) -> dict[str, Any]:
    has_file = any(p.get("type") == "file" for p in params)
    if has_file or (_MULTIPART in consumes and _FORM_URLENCODED not in consumes):
        content_type = _MULTIPART
    else:
        content_type = _FORM_URLENCODED

    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in params:
        prop = {k: param[k] for k in _SCHEMA_KEYS if k in param and k != "collectionFormat"}
        if prop.get("type") == "file":
            prop = {"type": "string", "format": "binary"}
        if param.get("description"):
            prop["description"] = param["description"]
        properties[param["name"]] = prop
        if param.get("required"):
            required.append(param["name"])

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required

    return {
        "content": {content_type: {"schema": schema}},
        "required": bool(required),
    }


def _convert_response(response: Any, produces: list[str]) -> Any:
    if not isinstance(response, dict) or "$ref" in response:
        return response

    result = {k: v for k, v in response.items() if k not in ("schema", "examples")}
    result.setdefault("description", "")

    if "schema" in response:
        examples = response.get("examples") or {}
        content: dict[str, Any] = {}
        for ct in produces:
            media: dict[str, Any] = {"schema": response["schema"]}
            if ct in examples:
                media["example"] = examples[ct]
            content[ct] = media
        result["content"] = content

    if "headers" in response:
        result["headers"] = {
            name: {
                "description": header.get("description", ""),
                "schema": {k: v for k, v in header.items() if k in _SCHEMA_KEYS},
            }
            for name, header in response["headers"].items()
        }
    return result


def _convert_security_scheme(scheme: dict[str, Any]) -> dict[str, Any]:
    scheme_type = scheme.get("type")
    description = scheme.get("description")

    if scheme_type == "basic":
        result: dict[str, Any] = {"type": "http", "scheme": "basic"}
    elif scheme_type == "apiKey":
        result = {"type": "apiKey", "name": scheme.get("name"), "in": scheme.get("in")}
    elif scheme_type == "oauth2":
        result = {"type": "oauth2", "flows": _convert_oauth2_flow(scheme)}
    else:
        logger.warning("Unknown Swagger security scheme type: %s", scheme_type)
        result = dict(scheme)

    if description:
        result["description"] = description
    return result


def _convert_oauth2_flow(scheme: dict[str, Any]) -> dict[str, Any]:
    flow_names = {
        "implicit": "implicit",
        "password": "password",
        "application": "clientCredentials",
        "accessCode": "authorizationCode",
    }
    flow = scheme.get("flow", "")
    name = flow_names.get(flow)
    if name is None:
        return {}

    converted: dict[str, Any] = {"scopes": scheme.get("scopes", {})}
    if "authorizationUrl" in scheme:
        converted["authorizationUrl"] = scheme["authorizationUrl"]
    if "tokenUrl" in scheme:
        converted["tokenUrl"] = scheme["tokenUrl"]
    return {name: converted}


def _rewrite_refs(node: Any) -> Any:
    """Point leftover Swagger ``$ref`` strings at their ``components`` location."""
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            for old, new in _REF_PREFIXES.items():
                if ref.startswith(old):
                    node = dict(node)
                    node["$ref"] = new + ref[len(old):]
                    break
            return node
        return {key: _rewrite_refs(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_rewrite_refs(item) for item in node]
    return node
