"""API description parser -- load, resolve ``$ref`` pointers, upgrade, and extract tools.

This sub-package is responsible for the first half of the spectool pipeline:
turning raw Swagger 2.0 or OpenAPI 3.x text (JSON or YAML, local file or
remote URL) into an :class:`~spectool.models.ExtractionResult` that the
template synthesizer can consume.

Typical usage::

    from spectool.parser import extract_tools, load_source, normalize

    text = load_source("https://petstore3.swagger.io/api/v3/openapi.json")
    normalized = normalize(text)
    result = extract_tools(normalized.document)

Sub-modules:

* :mod:`~spectool.parser.loader` -- I/O layer (URL, file, stdin), format
  detection, and version marker classification.
* :mod:`~spectool.parser.resolver` -- Recursive ``$ref`` resolution with
  circular-reference detection and per-pointer diagnostics.
* :mod:`~spectool.parser.upgrade` -- Swagger 2.0 to OpenAPI 3.0 conversion.
* :mod:`~spectool.parser.normalizer` -- Chains decoding, resolution and
  upgrade into a single :class:`~spectool.models.NormalizedDocument`.
* :mod:`~spectool.parser.extractor` -- Walks the normalized document and
  produces :class:`~spectool.models.ToolRecord` objects.
"""

from spectool.parser.extractor import extract_tools
from spectool.parser.loader import load_source, parse_document
from spectool.parser.normalizer import normalize

__all__ = ["load_source", "parse_document", "normalize", "extract_tools"]
