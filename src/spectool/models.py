"""Canonical Pydantic models shared across all spectool modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig` and :class:`GlobalConfig`.

**Pipeline models** -- produced while turning a raw API description into tools:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`DiagnosticKind`,
    :class:`ResolutionDiagnostic`, :class:`NormalizedDocument`,
    :class:`ToolArgument`, :class:`ToolRecord`, :class:`SecurityScheme`,
    :class:`ExtractedServer`, and :class:`ExtractionResult`.

**Tool specification models** -- the artifact handed to the runtime:
    :class:`Header`, :class:`RequestTemplate`, :class:`ResponseTemplate`,
    :class:`ToolTemplate`, :class:`ToolMeta`, :class:`ToolDefinition`, and
    :class:`ToolSpecification`.

Tool specification models serialise with the camelCase keys the runtime
expects (``requestTemplate``, ``argsToJsonBody`` ...) through field aliases,
while Python code uses snake_case attribute names.
"""

from __future__ import annotations

import enum
import json
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_TEMPLATE_ENGINE = "json-go-template"


# --- Config ---


class OutputConfig(BaseModel):
    """Output format used when neither ``--json`` nor ``--plain`` is given."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/spectool/config.json``.

    Loaded and saved by :func:`~spectool.config.load_global_config` and
    :func:`~spectool.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~spectool.config.resolve_config`
    for the full precedence chain.
    """

    template_engine: str = Field(
        default=DEFAULT_TEMPLATE_ENGINE,
        description="Key under toolsMeta.<tool>.templates for generated templates",
    )
    tools_enabled: bool = Field(
        default=True, description="Initial enabled flag for every imported tool"
    )
    base_url: Optional[str] = Field(
        default=None, description="Prefix for request URLs (overrides servers[0].url)"
    )
    strict_references: bool = Field(
        default=False,
        description="Fail the import when any $ref cannot be resolved",
    )
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Pipeline models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI path-item objects."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Where in an HTTP request an argument's value belongs.

    The first four mirror the OpenAPI ``in`` field; ``body`` marks arguments
    derived from request body properties.
    """

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    BODY = "body"


class DiagnosticKind(str, enum.Enum):
    """Non-fatal problems reported by the reference resolver."""

    UNRESOLVABLE_REFERENCE = "unresolvable_reference"
    CIRCULAR_REFERENCE = "circular_reference"
    UNSUPPORTED_REFERENCE_KIND = "unsupported_reference_kind"
    REFERENCE_TOO_DEEP = "reference_too_deep"


class ResolutionDiagnostic(BaseModel):
    """A single ``$ref`` that could not be expanded inline."""

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    pointer: str

    @property
    def message(self) -> str:
        if self.kind == DiagnosticKind.CIRCULAR_REFERENCE:
            return f"Circular reference: {self.pointer}"
        if self.kind == DiagnosticKind.UNSUPPORTED_REFERENCE_KIND:
            return f"Unsupported reference kind: {self.pointer}"
        if self.kind == DiagnosticKind.REFERENCE_TOO_DEEP:
            return f"Reference nesting too deep: {self.pointer}"
        return f"Cannot resolve reference: {self.pointer}"


class NormalizedDocument(BaseModel):
    """A decoded, ``$ref``-resolved OpenAPI 3 document ready for extraction.

    ``source_version`` is the version marker found in the input (e.g.
    ``"2.0"`` for Swagger or ``"3.0.3"``), while ``document["openapi"]``
    always holds the current-version marker after normalization.
    """

    document: dict[str, Any]
    source_format: str = Field(description="json or yaml")
    source_version: str
    upgraded: bool = False
    diagnostics: list[ResolutionDiagnostic] = Field(default_factory=list)


class ToolArgument(BaseModel):
    """A single argument of a tool, with its placement in the HTTP request."""

    name: str
    type: str = Field(default="string", description="JSON Schema type")
    position: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")
    properties: Optional[dict[str, Any]] = None
    items: Optional[dict[str, Any]] = None

    model_config = {"populate_by_name": True}

    @property
    def json_type(self) -> str:
        """The declared type, falling back to the raw schema's ``type``."""
        if self.type:
            return self.type
        if self.schema_:
            return str(self.schema_.get("type", ""))
        return ""


class Header(BaseModel):
    """One request header line in a :class:`RequestTemplate`."""

    key: str
    value: str = ""


class RequestTemplate(BaseModel):
    """Wire-level request template with ``{{.args.<name>}}`` placeholders.

    The three ``args_to_*`` flags ask the runtime to bulk-encode arguments
    into the query string, a JSON body, or a form body. A literal ``body``
    and the flags are mutually exclusive: whenever ``body`` is set the
    flags are cleared. Flags are ``None`` rather than ``False`` when unset
    so that they disappear from the serialised template.
    """

    url: str = ""
    method: str = "GET"
    headers: list[Header] = Field(default_factory=list)
    body: Optional[str] = None
    args_to_url_param: Optional[bool] = Field(default=None, alias="argsToUrlParam")
    args_to_json_body: Optional[bool] = Field(default=None, alias="argsToJsonBody")
    args_to_form_body: Optional[bool] = Field(default=None, alias="argsToFormBody")

    model_config = {"populate_by_name": True}

    @field_validator("headers", mode="before")
    @classmethod
    def _normalize_headers(cls, value: Any) -> Any:
        # Mapping form {"Content-Type": "..."} becomes an ordered list.
        if value is None:
            return []
        if isinstance(value, dict):
            return [{"key": str(k), "value": str(v)} for k, v in value.items()]
        return value

    @model_validator(mode="after")
    def _body_clears_flags(self) -> "RequestTemplate":
        if self.body is not None:
            self.args_to_url_param = None
            self.args_to_json_body = None
            self.args_to_form_body = None
        return self

    @property
    def has_encoding_flag(self) -> bool:
        return bool(
            self.args_to_url_param or self.args_to_json_body or self.args_to_form_body
        )


class ResponseTemplate(BaseModel):
    """Response shaping instructions for the runtime."""

    body: Optional[str] = None
    prepend_body: Optional[str] = Field(default=None, alias="prependBody")
    append_body: Optional[str] = Field(default=None, alias="appendBody")

    model_config = {"populate_by_name": True}


class ToolRecord(BaseModel):
    """One operation extracted from an API description.

    Produced by :func:`~spectool.parser.extractor.extract_tools` and consumed
    once by the template synthesizer.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    arguments: list[ToolArgument] = Field(default_factory=list)
    request_template: Optional[RequestTemplate] = None
    response_template: Optional[ResponseTemplate] = None

    def args_position(self) -> dict[str, ParameterLocation]:
        """Return the ``name -> placement`` map for this tool's arguments."""
        return {arg.name: arg.position for arg in self.arguments}


class SecurityScheme(BaseModel):
    """An OpenAPI *Security Scheme Object*, keyed by ``id``.

    Only the fields relevant to the scheme ``type`` are populated.
    """

    id: str
    type: str  # apiKey, http, oauth2, openIdConnect
    description: Optional[str] = None
    # apiKey
    param_name: Optional[str] = Field(default=None, alias="name")
    location: Optional[str] = Field(default=None, alias="in")  # header, query, cookie
    # http
    scheme: Optional[str] = None  # bearer, basic
    bearer_format: Optional[str] = Field(default=None, alias="bearerFormat")
    # oauth2
    flows: Optional[dict[str, Any]] = None
    # openIdConnect
    openid_connect_url: Optional[str] = Field(default=None, alias="openIdConnectUrl")

    model_config = {"populate_by_name": True}


class ExtractedServer(BaseModel):
    """Server-level data returned alongside the extracted tools."""

    name: str = ""
    security_schemes: list[SecurityScheme] = Field(
        default_factory=list, alias="securitySchemes"
    )

    model_config = {"populate_by_name": True}


class ExtractionResult(BaseModel):
    """Output of the operation extractor."""

    tools: list[ToolRecord] = Field(default_factory=list)
    server: ExtractedServer = Field(default_factory=ExtractedServer)


# --- Tool specification models ---


class ToolTemplate(BaseModel):
    """Per-engine templates for one tool.

    ``args_position`` is only present when the runtime still needs to know
    where each argument goes in order to build the body.
    """

    request_template: RequestTemplate = Field(alias="requestTemplate")
    response_template: ResponseTemplate = Field(
        default_factory=ResponseTemplate, alias="responseTemplate"
    )
    args_position: Optional[dict[str, ParameterLocation]] = Field(
        default=None, alias="argsPosition"
    )

    model_config = {"populate_by_name": True}


class ToolMeta(BaseModel):
    """Runtime metadata for one tool."""

    enabled: bool = True
    templates: dict[str, ToolTemplate] = Field(default_factory=dict)


class ToolDefinition(BaseModel):
    """The callable surface of a tool: name, description and input schema."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )

    model_config = {"populate_by_name": True}


class ToolSpecification(BaseModel):
    """Complete tool specification handed to the persistence layer.

    See Also:
        :func:`~spectool.synthesis.assembler.assemble`: Builds this model.
    """

    tools: list[ToolDefinition] = Field(default_factory=list)
    tools_meta: dict[str, ToolMeta] = Field(default_factory=dict, alias="toolsMeta")
    security_schemes: list[SecurityScheme] = Field(
        default_factory=list, alias="securitySchemes"
    )

    model_config = {"populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        """Serialise with camelCase keys, dropping unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialise to structured text for storage or transport."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
