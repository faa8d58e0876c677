"""Resolve ``$ref`` JSON Reference pointers in API descriptions.

OpenAPI and Swagger documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) to avoid repetition.  This module
performs a recursive traversal of the document, replacing every internal
``$ref`` with the object it points to, so that later stages can work on a
self-contained tree.

Resolution is *total*: it never raises on a bad pointer.  Problems are
recorded as :class:`~spectool.models.ResolutionDiagnostic` values and logged
at WARNING level, and the offending node degrades gracefully:

* a pointer already being expanded on the current path is replaced by the
  sentinel :data:`CIRCULAR_REFERENCE_NODE`;
* an internal pointer whose path does not exist is left as-is;
* an external pointer (file or URL) is left as-is and never fetched;
* a pointer reached through more than :data:`MAX_REFERENCE_DEPTH` nested
  expansions is left as-is.

The public functions are :func:`resolve_refs` (whole document) and
:func:`resolve` (single node against a root).
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from spectool.exceptions import SpecParseError
from spectool.models import DiagnosticKind, ResolutionDiagnostic

logger = logging.getLogger(__name__)

CIRCULAR_REFERENCE_NODE: dict[str, str] = {"error": "circular reference"}
"""Sentinel returned in place of a ``$ref`` that points back into its own expansion."""

MAX_REFERENCE_DEPTH = 64
"""Longest chain of nested ``$ref`` expansions followed on one branch."""

_MISSING = object()


def resolve_refs(
    spec: dict[str, Any],
) -> tuple[dict[str, Any], list[ResolutionDiagnostic]]:
    """Resolve all ``$ref`` pointers in *spec*, using *spec* itself as root.

    Args:
        spec: The decoded API description.

    Returns:
        A ``(resolved, diagnostics)`` tuple.  ``resolved`` is a **new**
        dictionary; the input is never mutated.  ``diagnostics`` lists
        every pointer that could not be expanded, in traversal order.

    Raises:
        SpecParseError: If the document is nested too deeply to walk.

    Example::

        resolved, problems = resolve_refs(raw)
        for problem in problems:
            print(problem.message)
    """
    diagnostics: list[ResolutionDiagnostic] = []
    try:
        root = copy.deepcopy(spec)
        resolved = resolve(root, root, frozenset(), diagnostics)
    except RecursionError as exc:
        raise SpecParseError("Document is nested too deeply to resolve its $ref pointers") from exc
    return resolved, diagnostics


def resolve(
    node: Any,
    root: Any,
    visiting: frozenset[str] = frozenset(),
    diagnostics: Optional[list[ResolutionDiagnostic]] = None,
) -> Any:
    """Recursively resolve all ``$ref`` pointers within *node*.

    Walks mappings and sequences depth-first.  ``visiting`` holds the
    pointers currently being expanded on this branch only; each nested
    expansion receives ``visiting | {pointer}`` so sibling subtrees that
    share a pointer never see each other's state.

    Args:
        node: The current node -- a mapping (possibly a ``$ref``), a
            sequence, or a scalar.
        root: The document used as lookup target for internal pointers.
        visiting: Pointers on the active expansion path.
        diagnostics: Optional list that receives a diagnostic for every
            pointer left unexpanded.

    Returns:
        The resolved node.  Mappings and sequences are new objects;
        scalars are returned as-is.
    """
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            return _resolve_pointer(node, ref, root, visiting, diagnostics)
        return {
            key: resolve(value, root, visiting, diagnostics)
            for key, value in node.items()
        }

    if isinstance(node, list):
        return [resolve(item, root, visiting, diagnostics) for item in node]

    # Scalars pass through unchanged
    return node


def _resolve_pointer(
    node: dict[str, Any],
    ref: str,
    root: Any,
    visiting: frozenset[str],
    diagnostics: Optional[list[ResolutionDiagnostic]],
) -> Any:
    """Expand a single ``$ref`` mapping, or degrade it with a diagnostic."""
    if ref in visiting:
        _report(diagnostics, DiagnosticKind.CIRCULAR_REFERENCE, ref)
        return dict(CIRCULAR_REFERENCE_NODE)

    if not ref.startswith("#/"):
        _report(diagnostics, DiagnosticKind.UNSUPPORTED_REFERENCE_KIND, ref)
        return node

    if len(visiting) >= MAX_REFERENCE_DEPTH:
        _report(diagnostics, DiagnosticKind.REFERENCE_TOO_DEEP, ref)
        return node

    target = _lookup_pointer(root, ref)
    if target is _MISSING:
        _report(diagnostics, DiagnosticKind.UNRESOLVABLE_REFERENCE, ref)
        return node

    # The target may itself contain $refs
    return resolve(target, root, visiting | {ref}, diagnostics)


def _lookup_pointer(root: Any, ref: str) -> Any:
    """Follow an internal ``#/a/b/c`` pointer through *root*.

    Handles RFC 6901 escaping (``~1`` for ``/``, ``~0`` for ``~``) and
    numeric segments into sequences.

    Returns:
        The referenced value, or the ``_MISSING`` marker
        when any segment does not exist.
    """
    current: Any = root
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")

        if isinstance(current, dict):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return _MISSING
        else:
            return _MISSING

    return current


def _report(
    diagnostics: Optional[list[ResolutionDiagnostic]],
    kind: DiagnosticKind,
    ref: str,
) -> None:
    diagnostic = ResolutionDiagnostic(kind=kind, pointer=ref)
    logger.warning("%s", diagnostic.message)
    if diagnostics is not None:
        diagnostics.append(diagnostic)
