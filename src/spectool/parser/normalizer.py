"""Turn raw API description text into a resolved OpenAPI 3 document.

:func:`normalize` chains the three steps every import goes through:

1. Decode the text (JSON first, then YAML) --
   :func:`~spectool.parser.loader.parse_document`.
2. Expand internal ``$ref`` pointers against the document itself --
   :func:`~spectool.parser.resolver.resolve_refs`.
3. Classify the version marker and, for Swagger 2.0, upgrade to
   OpenAPI 3 -- :func:`~spectool.parser.loader.detect_version` and
   :func:`~spectool.parser.upgrade.upgrade_swagger`.

Format and version problems are fatal and raised as
:class:`~spectool.exceptions.SpecParseError` subclasses.  Reference
problems are carried on the result as diagnostics unless ``strict`` is set.
"""

from __future__ import annotations

import logging

from spectool.exceptions import UnresolvedReferenceError
from spectool.models import NormalizedDocument
from spectool.parser.loader import VERSION_LEGACY, detect_version, parse_document
from spectool.parser.resolver import resolve_refs
from spectool.parser.upgrade import upgrade_swagger

logger = logging.getLogger(__name__)


def normalize(text: str, strict: bool = False) -> NormalizedDocument:
    """Decode, resolve and upgrade an API description.

    Args:
        text: Raw JSON or YAML text.
        strict: Raise instead of returning diagnostics when any ``$ref``
            could not be expanded.

    Returns:
        A :class:`~spectool.models.NormalizedDocument` whose ``document``
        is an OpenAPI 3 dictionary.

    Raises:
        InvalidFormatError: If the text is neither JSON nor YAML.
        UnrecognizedSchemaVersionError: If no usable version marker exists.
        SchemaUpgradeError: If a Swagger 2.0 document cannot be upgraded.
        UnresolvedReferenceError: In strict mode, if any ``$ref`` was left
            unexpanded.
    """
    raw, source_format = parse_document(text)
    logger.debug("Decoded document as %s", source_format)

    resolved, diagnostics = resolve_refs(raw)
    if diagnostics:
        logger.info("Reference resolution left %d pointer(s) unexpanded", len(diagnostics))
        if strict:
            pointers = ", ".join(d.pointer for d in diagnostics)
            raise UnresolvedReferenceError(
                f"Unresolved $ref pointers: {pointers}", diagnostics
            )

    family, version = detect_version(resolved)
    upgraded = False
    if family == VERSION_LEGACY:
        logger.debug("Upgrading Swagger %s document to OpenAPI 3", version)
        resolved = upgrade_swagger(resolved)
        upgraded = True

    return NormalizedDocument(
        document=resolved,
        source_format=source_format,
        source_version=version,
        upgraded=upgraded,
        diagnostics=diagnostics,
    )
