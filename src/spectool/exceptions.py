"""Errors that abort a spectool run.

Each class names the process exit status it maps to (see
:mod:`spectool.exit_codes`); :func:`spectool.app.main` and the command
functions turn a caught :class:`SpectoolError` into that status. Anything
that is not a :class:`SpectoolError` is treated as a bug and gets a crash
log instead.

A dangling ``$ref`` inside an otherwise usable document is not an error:
it becomes a :class:`~spectool.models.ResolutionDiagnostic`, and only turns
into :class:`UnresolvedReferenceError` when strict references are on.

::

    SpectoolError                          1
    +-- ConfigError                        1
    +-- SpecParseError                     7
        +-- InvalidFormatError
        +-- UnrecognizedSchemaVersionError
        +-- SchemaUpgradeError
        +-- UnresolvedReferenceError
"""

from spectool.exit_codes import EXIT_GENERIC_FAILURE, EXIT_SPEC_PARSE_ERROR


class SpectoolError(Exception):
    """Base exception for all spectool errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class SpecParseError(SpectoolError):
    """Raised when an API description cannot be loaded or normalized."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class InvalidFormatError(SpecParseError):
    """Raised when the input is neither a JSON nor a YAML mapping."""


class UnrecognizedSchemaVersionError(SpecParseError):
    """Raised when the document carries neither a ``swagger`` nor a usable ``openapi`` marker."""


class SchemaUpgradeError(SpecParseError):
    """Raised when a Swagger 2.0 document cannot be upgraded to OpenAPI 3."""


class UnresolvedReferenceError(SpecParseError):
    """Raised in strict mode when ``$ref`` resolution produced diagnostics.

    Args:
        message: Human-readable error description.
        diagnostics: The :class:`~spectool.models.ResolutionDiagnostic`
            values that triggered the failure.
    """

    def __init__(self, message: str, diagnostics: list | None = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])


class ConfigError(SpectoolError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
