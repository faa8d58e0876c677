"""Extract tool records and security schemes from a normalized OpenAPI 3 document.

This module walks a fully ``$ref``-resolved OpenAPI 3 dictionary (see
:func:`~spectool.parser.normalizer.normalize`) and builds an
:class:`~spectool.models.ExtractionResult`: one
:class:`~spectool.models.ToolRecord` per path + HTTP method, plus the
server-level security schemes.

Each tool carries:

* its arguments, with their placement (``path``, ``query``, ``header``,
  ``cookie`` from the parameter ``in`` field, ``body`` for request body
  properties);
* a base :class:`~spectool.models.RequestTemplate` holding the absolute URL
  with ``{param}`` path segments still in OpenAPI form, the upper-cased
  method, and the request body's ``Content-Type``;
* a base :class:`~spectool.models.ResponseTemplate` describing the success
  response fields, when the document declares them.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they
share the same ``name`` and ``in`` values.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from spectool.models import (
    ExtractedServer,
    ExtractionResult,
    Header,
    HTTPMethod,
    ParameterLocation,
    RequestTemplate,
    ResponseTemplate,
    SecurityScheme,
    ToolArgument,
    ToolRecord,
)

logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)

_REQUEST_LOCATIONS = frozenset(
    loc.value for loc in ParameterLocation if loc != ParameterLocation.BODY
)

_SLUG_RE = re.compile(r"[^A-Za-z0-9]+")


def extract_tools(
    spec: dict[str, Any], base_url: Optional[str] = None
) -> ExtractionResult:
    """Extract an :class:`~spectool.models.ExtractionResult` from a resolved document.

    Fields with the wrong shape (``parameters: null``, a numeric
    ``summary`` ...) are tolerated; an operation that still cannot be turned
    into a tool is logged and skipped so the remaining tools survive.

    Args:
        spec: A normalized OpenAPI 3 dictionary.
        base_url: Prefix for request URLs.  Defaults to the first
            ``servers[].url`` entry, or an empty prefix.

    Returns:
        The ordered tool records and the server's security schemes.

    Example::

        normalized = normalize(text)
        result = extract_tools(normalized.document)
        for tool in result.tools:
            print(tool.name, tool.request_template.url)
    """
    prefix = base_url if base_url is not None else _default_base_url(spec)
    return ExtractionResult(
        tools=_extract_tools(spec, prefix.rstrip("/")),
        server=ExtractedServer(
            name=str(_mapping(spec.get("info")).get("title", "")),
            security_schemes=_extract_security_schemes(spec),
        ),
    )


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _sequence(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _default_base_url(spec: dict[str, Any]) -> str:
    servers = _sequence(spec.get("servers"))
    if servers and isinstance(servers[0], dict):
        return str(servers[0].get("url", ""))
    return ""


def _extract_tools(spec: dict[str, Any], base_url: str) -> list[ToolRecord]:
    """Build one tool per path + method, keeping document order."""
    tools: list[ToolRecord] = []
    used_names: set[str] = set()

    for path, path_item in _mapping(spec.get("paths")).items():
        if not isinstance(path_item, dict):
            continue

        # Path-level parameters apply to all operations under this path
        path_params = _sequence(path_item.get("parameters"))

        for method_str, operation in path_item.items():
            if method_str not in _HTTP_METHODS or not isinstance(operation, dict):
                continue
            try:
                tool = _build_tool(str(path), method_str, operation, path_params, base_url, used_names)
            except ValueError as exc:
                logger.warning("Skipping %s %s: %s", method_str.upper(), path, exc)
                continue
            tools.append(tool)

    return tools


def _build_tool(
    path: str,
    method: str,
    operation: dict[str, Any],
    path_params: list[Any],
    base_url: str,
    used_names: set[str],
) -> ToolRecord:
    merged_params = _merge_parameters(path_params, _sequence(operation.get("parameters")))
    arguments = _extract_parameters(merged_params)

    content_type, body_arguments = _extract_request_body(operation.get("requestBody"))
    _warn_on_shadowed_names(method, path, arguments, body_arguments)
    arguments.extend(body_arguments)

    headers: list[Header] = []
    if content_type:
        headers.append(Header(key="Content-Type", value=content_type))

    record = ToolRecord(
        name=_tool_name(operation, method, path),
        description=_tool_description(operation, method, path),
        arguments=arguments,
        request_template=RequestTemplate(
            url=base_url + path,
            method=method.upper(),
            headers=headers,
        ),
        response_template=_extract_response_template(_mapping(operation.get("responses"))),
    )
    return record.model_copy(update={"name": _unique_name(record.name, used_names)})


def _warn_on_shadowed_names(
    method: str,
    path: str,
    parameters: list[ToolArgument],
    body_arguments: list[ToolArgument],
) -> None:
    # Placement is keyed by name, so the body property wins the collision.
    locations = {arg.name: arg.position.value for arg in parameters}
    for arg in body_arguments:
        if arg.name in locations:
            logger.warning(
                "%s %s: body property %r shadows the %s parameter of the same name",
                method.upper(),
                path,
                arg.name,
                locations[arg.name],
            )


def _tool_name(operation: dict[str, Any], method: str, path: str) -> str:
    operation_id = operation.get("operationId")
    if operation_id:
        return str(operation_id)
    slug = _SLUG_RE.sub("_", path).strip("_")
    return f"{method}_{slug}" if slug else method


def _unique_name(name: str, used: set[str]) -> str:
    candidate = name
    counter = 2
    while candidate in used:
        candidate = f"{name}_{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def _tool_description(operation: dict[str, Any], method: str, path: str) -> str:
    return str(
        operation.get("summary")
        or operation.get("description")
        or f"{method.upper()} {path}"
    )


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.
    """
    op_keys = {_parameter_key(param) for param in op_params if isinstance(param, dict)}

    merged = [
        param
        for param in path_params
        if isinstance(param, dict) and _parameter_key(param) not in op_keys
    ]
    merged.extend(param for param in op_params if isinstance(param, dict))
    return merged


def _parameter_key(param: dict[str, Any]) -> tuple[str, str]:
    return str(param.get("name", "")), str(param.get("in", ""))


def _extract_parameters(params_list: list[dict[str, Any]]) -> list[ToolArgument]:
    """Convert raw OpenAPI parameter dicts into :class:`~spectool.models.ToolArgument` models.

    Parameters with unrecognised ``in`` locations, or without a name, are
    skipped.  Path parameters are always required.
    """
    arguments: list[ToolArgument] = []

    for param in params_list:
        name = param.get("name")
        location_str = str(param.get("in", "query"))
        if not name or location_str not in _REQUEST_LOCATIONS:
            continue

        location = ParameterLocation(location_str)
        schema = param.get("schema")
        if not isinstance(schema, dict):
            schema = {}

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        arguments.append(
            _make_argument(
                name=str(name),
                schema=schema,
                position=location,
                required=required,
                description=_text(param.get("description")),
            )
        )

    return arguments


def _extract_request_body(
    body: Optional[dict[str, Any]],
) -> tuple[Optional[str], list[ToolArgument]]:
    """Turn a ``requestBody`` into a content type and ``body`` arguments.

    The first declared media type wins.  An object schema contributes one
    argument per property; any other schema becomes a single ``body``
    argument.

    Returns:
        A ``(content_type, arguments)`` tuple; ``(None, [])`` when the
        operation has no request body.
    """
    if not isinstance(body, dict):
        return None, []

    content = _mapping(body.get("content"))
    if not content:
        return None, []

    content_type, media = next(iter(content.items()))
    content_type = str(content_type)
    schema = media.get("schema") if isinstance(media, dict) else None
    if not isinstance(schema, dict):
        return content_type, []

    properties = schema.get("properties")
    if _extract_schema_type(schema) == "object" and isinstance(properties, dict):
        required_names = {str(name) for name in _sequence(schema.get("required"))}
        return content_type, [
            _make_argument(
                name=str(prop_name),
                schema=prop_schema if isinstance(prop_schema, dict) else {},
                position=ParameterLocation.BODY,
                required=str(prop_name) in required_names,
                description=(
                    _text(prop_schema.get("description")) if isinstance(prop_schema, dict) else None
                ),
            )
            for prop_name, prop_schema in properties.items()
        ]

    return content_type, [
        _make_argument(
            name="body",
            schema=schema,
            position=ParameterLocation.BODY,
            required=bool(body.get("required", False)),
            description=_text(body.get("description") or schema.get("description")),
        )
    ]


def _make_argument(
    name: str,
    schema: dict[str, Any],
    position: ParameterLocation,
    required: bool,
    description: Optional[str],
) -> ToolArgument:
    properties = schema.get("properties")
    items = schema.get("items")
    return ToolArgument(
        name=name,
        type=_extract_schema_type(schema),
        position=position,
        required=required,
        description=description,
        schema=schema or None,
        properties=properties if isinstance(properties, dict) else None,
        items=items if isinstance(items, dict) else None,
    )


def _extract_schema_type(schema: Any) -> str:
    """Extract the type string from a schema object.

    Handles OpenAPI 3.1 type arrays (e.g., ["string", "null"]) by returning
    the first non-null type.  A schema with ``properties`` but no ``type``
    is an object; otherwise falls back to "string".
    """
    if not isinstance(schema, dict):
        return "string"

    type_value = schema.get("type")
    if type_value is None:
        if "properties" in schema:
            return "object"
        if "items" in schema:
            return "array"
        return "string"

    # OpenAPI 3.1 allows type to be an array (e.g., ["string", "null"])
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return str(non_null[0]) if non_null else "string"

    return str(type_value)


def _extract_response_template(responses: dict[str, Any]) -> ResponseTemplate:
    """Describe the first 2xx response's fields as Markdown for ``prependBody``."""
    for status_code, response in responses.items():
        if not str(status_code).startswith("2") or not isinstance(response, dict):
            continue

        schema = None
        for media in _mapping(response.get("content")).values():
            if isinstance(media, dict) and isinstance(media.get("schema"), dict):
                schema = media["schema"]
                break
        if schema is None:
            return ResponseTemplate()

        lines: list[str] = []
        _describe_schema(schema, "", lines, depth=0)
        if not lines:
            return ResponseTemplate()

        prepend = (
            "# API Response Information\n\n"
            "Below is the response from an API call. "
            "The meaning of each field is described here:\n\n"
            "## Response Structure\n\n" + "\n".join(lines) + "\n\n## Original Response\n\n"
        )
        return ResponseTemplate(prepend_body=prepend)

    return ResponseTemplate()


def _describe_schema(schema: dict[str, Any], prefix: str, lines: list[str], depth: int) -> None:
    # Stop at a fixed depth; schemas cut by the resolver can still be large.
    if depth > 4:
        return

    schema_type = _extract_schema_type(schema)
    if schema_type == "array" and isinstance(schema.get("items"), dict):
        _describe_schema(schema["items"], f"{prefix}[]", lines, depth + 1)
        return

    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return

    for name, prop in properties.items():
        if not isinstance(prop, dict):
            continue
        field = f"{prefix}.{name}" if prefix else name
        prop_type = _extract_schema_type(prop)
        description = prop.get("description")
        line = f"- **{field}**: {prop_type}"
        if description:
            line += f" - {description}"
        lines.append(line)
        if prop_type in ("object", "array"):
            _describe_schema(prop, field, lines, depth + 1)


def _extract_security_schemes(spec: dict[str, Any]) -> list[SecurityScheme]:
    """Extract security scheme definitions from ``components/securitySchemes``.

    Supports all OpenAPI security scheme types: ``apiKey``, ``http``,
    ``oauth2``, and ``openIdConnect``.
    """
    schemes_raw = _mapping(_mapping(spec.get("components")).get("securitySchemes"))
    schemes: list[SecurityScheme] = []

    for name, scheme_data in schemes_raw.items():
        if not isinstance(scheme_data, dict):
            continue

        schemes.append(
            SecurityScheme(
                id=str(name),
                type=str(scheme_data.get("type", "")),
                description=_text(scheme_data.get("description")),
                param_name=_text(scheme_data.get("name")),
                location=_text(scheme_data.get("in")),
                scheme=_text(scheme_data.get("scheme")),
                bearer_format=_text(scheme_data.get("bearerFormat")),
                flows=scheme_data.get("flows") if isinstance(scheme_data.get("flows"), dict) else None,
                openid_connect_url=_text(scheme_data.get("openIdConnectUrl")),
            )
        )

    return schemes
