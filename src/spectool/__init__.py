"""spectool -- Convert OpenAPI and Swagger descriptions into tool specifications.

This package reads an API description (Swagger 2.0 or OpenAPI 3.x, JSON or
YAML), resolves its ``$ref`` pointers, upgrades legacy documents, and turns
every operation into a callable *tool* with a request template that a
protocol-translation runtime fills in with ``{{.args.<name>}}`` substitution.

Typical workflow::

    spectool convert petstore.yaml -o petstore-tools.json
    spectool inspect tools petstore.yaml

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    parser: Loading, ``$ref`` resolution, version upgrade and extraction.
    synthesis: Request template synthesis and specification assembly.
"""

__version__ = "0.1.0"
