"""Inspect commands -- examine what an import would produce.

Provides the ``spectool inspect`` sub-command group with read-only
commands for previewing a conversion: the synthesized tools, the ``$ref``
pointers that could not be resolved, and a summary of the source document.
"""

from __future__ import annotations

import typer

from spectool.models import GlobalConfig
from spectool.output import error, format_response, get_output, info
from spectool.synthesis.assembler import ImportResult


inspect_app = typer.Typer(no_args_is_help=True)


def _run_import(source: str) -> tuple[ImportResult, GlobalConfig]:
    """Load *source* and run the conversion pipeline with the effective config.

    Raises:
        typer.Exit: With the error's exit code when the config is invalid or
            the source cannot be read or normalized.
    """
    from spectool.config import resolve_config
    from spectool.exceptions import SpectoolError
    from spectool.parser import load_source
    from spectool.synthesis import build_tool_specification

    try:
        config = resolve_config()
        return build_tool_specification(load_source(source), config), config
    except SpectoolError as exc:
        error(f"Failed to load spec: {exc}")
        raise typer.Exit(code=exc.exit_code) from None


@inspect_app.command("tools")
def inspect_tools(
    source: str = typer.Argument(..., help="OpenAPI/Swagger URL or file path."),
) -> None:
    """List the tools a conversion would produce.

    Shows each tool's method, request URL, how its arguments are encoded,
    and its argument count.

    Example::

        spectool inspect tools petstore.yaml
    """
    from spectool.synthesis.templates import encoding_label

    result, config = _run_import(source)
    spec = result.specification

    rows: list[list[str]] = []
    for tool in spec.tools:
        template = spec.tools_meta[tool.name].templates[config.template_engine]
        request = template.request_template
        rows.append([
            tool.name,
            request.method,
            request.url,
            encoding_label(request),
            str(len(tool.input_schema.get("properties", {}))),
        ])

    get_output().print_table(
        ["Tool", "Method", "URL", "Encoding", "Args"],
        rows,
        title=f"Tools ({len(rows)})",
    )


@inspect_app.command("refs")
def inspect_refs(
    source: str = typer.Argument(..., help="OpenAPI/Swagger URL or file path."),
) -> None:
    """List ``$ref`` pointers that could not be expanded inline.

    Example::

        spectool inspect refs petstore.yaml
    """
    result, _ = _run_import(source)

    if not result.diagnostics:
        info("All references resolved.")
        return

    rows = [[d.kind.value, d.pointer] for d in result.diagnostics]
    get_output().print_table(
        ["Kind", "Pointer"], rows, title=f"Unresolved references ({len(rows)})"
    )


@inspect_app.command("info")
def inspect_info(
    source: str = typer.Argument(..., help="OpenAPI/Swagger URL or file path."),
) -> None:
    """Summarise the source document and the conversion result.

    Example::

        spectool inspect info petstore.yaml
    """
    result, _ = _run_import(source)
    document = result.document
    info_block = document.document.get("info")
    title = info_block.get("title", "-") if isinstance(info_block, dict) else "-"

    format_response({
        "title": title,
        "source_format": document.source_format,
        "source_version": document.source_version,
        "upgraded": document.upgraded,
        "tools": len(result.specification.tools),
        "security_schemes": [s.id for s in result.specification.security_schemes],
        "unresolved_references": len(result.diagnostics),
    })
