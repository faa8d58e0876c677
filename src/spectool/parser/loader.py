"""Read an API description and decode it into a mapping.

Reading is the only I/O in an import; everything after :func:`load_source`
works on in-memory data.

* :func:`load_source` -- text from an ``http(s)`` URL, a local path, or
  ``-`` for stdin.
* :func:`parse_document` -- JSON first, YAML second, plus which one matched.
* :func:`detect_version` -- ``swagger: 2.0`` versus ``openapi: 3.x``.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from spectool.exceptions import (
    InvalidFormatError,
    SpecParseError,
    UnrecognizedSchemaVersionError,
)

logger = logging.getLogger(__name__)

FORMAT_JSON = "json"
FORMAT_YAML = "yaml"

VERSION_LEGACY = "swagger"
VERSION_CURRENT = "openapi"

FETCH_TIMEOUT = 30.0


def load_source(source: str) -> str:
    """Return the raw text behind *source*.

    Raises:
        SpecParseError: If nothing could be read, or only whitespace was.
    """
    if source == "-":
        text, origin = _read_stdin(), "stdin"
        if not text.strip():
            raise SpecParseError("No input received from stdin")
    elif source.startswith(("http://", "https://")):
        text, origin = _fetch(source), source
        if not text.strip():
            raise SpecParseError(f"Empty response body from {source}")
    else:
        text, origin = _read_file(Path(source)), source
        if not text.strip():
            raise SpecParseError(f"Spec file is empty: {source}")

    logger.debug("Read %d characters from %s", len(text), origin)
    return text


def _read_stdin() -> str:
    try:
        return sys.stdin.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc


def _fetch(url: str) -> str:
    try:
        response = httpx.get(url, timeout=FETCH_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} while downloading {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Failed to fetch {url}: {exc}") from exc
    return response.text


def _read_file(path: Path) -> str:
    if not path.is_file():
        raise SpecParseError(f"Spec file not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecParseError(f"Cannot read {path}: {exc}") from exc


def parse_document(content: str) -> tuple[dict[str, Any], str]:
    """Decode content as JSON, falling back to YAML.

    JSON is tried first because every JSON document is also YAML, and the
    JSON decoder is stricter and faster.

    Args:
        content: The raw string content.

    Returns:
        A ``(document, format)`` tuple where ``format`` is
        :data:`FORMAT_JSON` or :data:`FORMAT_YAML`.

    Raises:
        InvalidFormatError: If neither decoder yields a mapping.
    """
    try:
        result = json.loads(content)
    except json.JSONDecodeError as exc:
        json_error: Exception = exc
    else:
        if not isinstance(result, dict):
            raise InvalidFormatError(
                f"Spec must be a JSON/YAML object (got {type(result).__name__})"
            )
        return result, FORMAT_JSON

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise InvalidFormatError(
            "Failed to parse spec as JSON or YAML"
            f"\n  JSON error: {json_error}"
            f"\n  YAML error: {exc}"
        ) from exc

    if not isinstance(result, dict):
        # Arbitrary prose decodes as a YAML scalar; treat it as undecodable.
        raise InvalidFormatError(
            "Failed to parse spec as JSON or YAML "
            f"(decoded {type(result).__name__ if result is not None else 'empty document'})"
            f"\n  JSON error: {json_error}"
        )
    return result, FORMAT_YAML


def detect_version(spec: dict[str, Any]) -> tuple[str, str]:
    """Classify the description by its top-level version marker.

    Args:
        spec: The decoded document.

    Returns:
        A ``(family, version)`` tuple where ``family`` is
        :data:`VERSION_LEGACY` (``swagger: "2.0"``) or
        :data:`VERSION_CURRENT` (``openapi: "3.x"``).

    Raises:
        UnrecognizedSchemaVersionError: If neither marker is present, or the
            ``openapi`` marker is not a 3.x version.
    """
    if "swagger" in spec:
        return VERSION_LEGACY, str(spec["swagger"])

    openapi_version = spec.get("openapi")
    if openapi_version is None:
        raise UnrecognizedSchemaVersionError(
            "Missing 'openapi' or 'swagger' field. "
            "Is this an OpenAPI 3.x or Swagger 2.0 document?"
        )

    version_str = str(openapi_version)
    if version_str.startswith("3."):
        return VERSION_CURRENT, version_str

    raise UnrecognizedSchemaVersionError(
        f"Unsupported OpenAPI version: {version_str}. "
        "Only Swagger 2.0 and OpenAPI 3.x are supported."
    )
