"""Convert command -- turn an API description into a tool specification.

Implements the ``spectool convert`` top-level command: read a Swagger 2.0
or OpenAPI 3.x document (URL, local file, or stdin), run the full
normalize -> extract -> synthesize -> assemble pipeline, and emit the
resulting tool specification as JSON on stdout or into a file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from spectool.output import debug, error, info, print_data, success, suggest, warning


def convert_command(
    source: str = typer.Argument(
        ..., help="OpenAPI/Swagger URL or file path (use '-' for stdin)."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Write the specification to this file."
    ),
    engine: Optional[str] = typer.Option(
        None, "--engine", help="Template engine key under toolsMeta templates."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Override the base URL of request templates."
    ),
    disabled: bool = typer.Option(
        False, "--disabled", help="Import every tool as disabled."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Fail when any $ref cannot be resolved."
    ),
    indent: int = typer.Option(2, "--indent", min=0, help="JSON indentation."),
) -> None:
    """Convert an API description into a tool specification.

    Args:
        source: URL, local file path, or ``-`` for stdin.
        output_file: Destination file; stdout when omitted.
        engine: Overrides the configured template engine key.
        base_url: Overrides the configured base URL and ``servers[0].url``.
        disabled: Set ``enabled: false`` on every tool.
        strict: Treat unresolved ``$ref`` pointers as fatal.
        indent: JSON indentation width (``0`` for compact output).

    Raises:
        typer.Exit: With the error's exit code if the source cannot be read
            or normalized, or the configuration is invalid.

    Example::

        spectool convert petstore.yaml
        spectool convert https://example.com/openapi.json -o tools.json
        cat swagger.json | spectool convert - --base-url https://api.internal
    """
    from spectool.config import atomic_write, resolve_config
    from spectool.exceptions import SpecParseError, SpectoolError
    from spectool.parser import load_source
    from spectool.synthesis import build_tool_specification

    try:
        config = resolve_config(
            cli_base_url=base_url,
            cli_engine=engine,
            cli_strict=True if strict else None,
            cli_enabled=False if disabled else None,
        )
        debug(f"Loading API description from {source}")
        text = load_source(source)
        result = build_tool_specification(text, config)
    except SpectoolError as exc:
        error(str(exc))
        if isinstance(exc, SpecParseError):
            suggest("Check that the file is a Swagger 2.0 or OpenAPI 3.x document.")
        raise typer.Exit(code=exc.exit_code) from None

    for diagnostic in result.diagnostics:
        warning(diagnostic.message)
    if result.document.upgraded:
        info(f"Upgraded Swagger {result.document.source_version} document to OpenAPI 3.")

    payload = result.specification.to_json(indent=indent or None)
    tool_count = len(result.specification.tools)

    if output_file:
        atomic_write(Path(output_file), payload + "\n")
        success(f"Wrote {tool_count} tool(s) to {output_file}")
    else:
        print_data(payload)
        info(f"Converted {tool_count} tool(s).")
