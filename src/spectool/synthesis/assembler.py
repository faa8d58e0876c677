"""Assemble extracted tools into a :class:`~spectool.models.ToolSpecification`.

:func:`assemble` runs the template synthesizer over every tool and packages
the results, together with the input schemas and the server's security
schemes, into the structure the persistence layer stores:

.. code-block:: json

    {
      "tools": [{"name": "...", "description": "...", "inputSchema": {...}}],
      "toolsMeta": {
        "<tool>": {
          "enabled": true,
          "templates": {
            "json-go-template": {
              "requestTemplate": {...},
              "responseTemplate": {...},
              "argsPosition": {...}
            }
          }
        }
      },
      "securitySchemes": [...]
    }

:func:`build_tool_specification` is the end-to-end entry point used by the
CLI: raw text in, specification plus resolution diagnostics out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from spectool.models import (
    DEFAULT_TEMPLATE_ENGINE,
    ExtractionResult,
    GlobalConfig,
    NormalizedDocument,
    RequestTemplate,
    ResolutionDiagnostic,
    ResponseTemplate,
    ToolArgument,
    ToolDefinition,
    ToolMeta,
    ToolRecord,
    ToolSpecification,
    ToolTemplate,
)
from spectool.parser.extractor import extract_tools
from spectool.parser.normalizer import normalize
from spectool.synthesis.templates import synthesize

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Everything produced by one import attempt."""

    specification: ToolSpecification
    document: NormalizedDocument
    extraction: ExtractionResult
    diagnostics: list[ResolutionDiagnostic] = field(default_factory=list)


def build_tool_specification(
    text: str, config: Optional[GlobalConfig] = None
) -> ImportResult:
    """Run the whole pipeline over raw API description text.

    Args:
        text: Raw JSON or YAML text of a Swagger 2.0 or OpenAPI 3 document.
        config: Effective configuration; defaults apply when omitted.

    Returns:
        An :class:`ImportResult` with the specification, the normalized
        document, the extracted tools and any resolution diagnostics.

    Raises:
        SpecParseError: If the text cannot be decoded, has no recognizable
            version marker, or (in strict mode) has unresolved references.
    """
    config = config or GlobalConfig()

    document = normalize(text, strict=config.strict_references)
    extraction = extract_tools(document.document, base_url=config.base_url)
    logger.info("Extracted %d tool(s)", len(extraction.tools))

    specification = assemble(
        extraction,
        engine=config.template_engine,
        enabled=config.tools_enabled,
    )
    return ImportResult(
        specification=specification,
        document=document,
        extraction=extraction,
        diagnostics=list(document.diagnostics),
    )


def assemble(
    extraction: ExtractionResult,
    engine: str = DEFAULT_TEMPLATE_ENGINE,
    enabled: bool = True,
) -> ToolSpecification:
    """Package extracted tools into a :class:`~spectool.models.ToolSpecification`.

    Each tool is synthesized independently.  If synthesis fails for one
    tool, a warning is logged and that tool keeps its base request template
    and full placement map; the rest of the batch is unaffected.

    Args:
        extraction: Output of :func:`~spectool.parser.extractor.extract_tools`.
        engine: Key under ``toolsMeta.<tool>.templates``.
        enabled: Initial ``enabled`` flag for every tool.
    """
    tools: list[ToolDefinition] = []
    tools_meta: dict[str, ToolMeta] = {}

    for tool in extraction.tools:
        tools.append(
            ToolDefinition(
                name=tool.name,
                description=tool.description,
                input_schema=build_input_schema(tool.arguments),
            )
        )
        tools_meta[tool.name] = ToolMeta(
            enabled=enabled,
            templates={engine: _tool_template(tool)},
        )

    return ToolSpecification(
        tools=tools,
        tools_meta=tools_meta,
        security_schemes=list(extraction.server.security_schemes),
    )


def _tool_template(tool: ToolRecord) -> ToolTemplate:
    positions = tool.args_position()
    response_template = tool.response_template or ResponseTemplate()

    try:
        result = synthesize(tool, positions, tool.request_template)
    except Exception as exc:
        logger.warning("Template synthesis failed for tool '%s': %s", tool.name, exc)
        # Keep what the extractor produced; the runtime can still use it.
        return ToolTemplate(
            request_template=tool.request_template or RequestTemplate(),
            response_template=response_template,
            args_position=positions,
        )

    return ToolTemplate(
        request_template=result.request_template,
        response_template=response_template,
        args_position=result.args_position,
    )


def build_input_schema(arguments: list[ToolArgument]) -> dict[str, Any]:
    """Build a JSON-schema ``object`` describing a tool's arguments."""
    properties: dict[str, Any] = {}
    for arg in arguments:
        prop: dict[str, Any] = {"type": arg.type}
        if arg.description:
            prop["description"] = arg.description
        if arg.properties is not None:
            prop["properties"] = arg.properties
        if arg.items is not None:
            prop["items"] = arg.items
        if arg.schema_ and "enum" in arg.schema_:
            prop["enum"] = arg.schema_["enum"]
        properties[arg.name] = prop

    return {
        "type": "object",
        "properties": properties,
        "required": [arg.name for arg in arguments if arg.required],
    }
