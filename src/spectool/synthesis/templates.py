"""Synthesize wire-level request templates from argument placements.

Given one tool, the ``name -> placement`` map of its arguments and the base
:class:`~spectool.models.RequestTemplate` from the extractor,
:func:`synthesize` produces a template the runtime can fill in with
``{{.args.<name>}}`` substitution alone, or, when a literal template cannot
express the request, one that sets an encoding flag telling the runtime to
bulk-encode the arguments itself.

Placement rules, in order:

1. **path** -- every literal ``{name}`` in the URL becomes the placeholder.
   Matching is literal; an unrelated ``{name}`` segment that happens to share
   an argument's name is rewritten too.
2. **query** -- when *every* argument is a query argument the URL is left
   alone and ``argsToUrlParam`` is set; otherwise ``name=<placeholder>``
   pairs are appended with ``?`` or ``&``.
3. **header** -- one header per argument, unless a header with that key
   (case-insensitive) already exists.
4. **cookie** -- all cookie arguments are merged into a single ``Cookie``
   header, appended to an existing one if present.
5. **body** -- see :func:`_plan_body`.

The placement map is returned alongside the template only when the runtime
still needs it to build the body (a JSON flag for complex values, or a form
flag next to arguments placed elsewhere).

:func:`synthesize` is pure: it never mutates its inputs and performs no I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from spectool.models import (
    Header,
    ParameterLocation,
    RequestTemplate,
    ToolArgument,
    ToolRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_JSON_CONTENT_TYPE = "application/json; charset=utf-8"

_FORM_URLENCODED = "application/x-www-form-urlencoded"
_MULTIPART = "multipart/form-data"
_COMPLEX_TYPES = frozenset(("object", "array"))


def placeholder(name: str) -> str:
    """Return the runtime placeholder for argument *name*."""
    return "{{.args." + name + "}}"


# --- Body encoding decisions ---


@dataclass(frozen=True)
class ExplicitBody:
    """A literal body text with placeholders."""

    text: str
    default_content_type: Optional[str] = None


@dataclass(frozen=True)
class JsonFlag:
    """Ask the runtime to encode body arguments as a JSON object."""

    retain_positions: bool = False


@dataclass(frozen=True)
class FormFlag:
    """Ask the runtime to form-encode body arguments."""

    retain_positions: bool = False


@dataclass(frozen=True)
class NoBodyChange:
    """Leave the base template's body handling untouched."""


BodyEncoding = Union[ExplicitBody, JsonFlag, FormFlag, NoBodyChange]


@dataclass(frozen=True)
class SynthesizedTemplate:
    """Result of :func:`synthesize`.

    ``args_position`` is ``None`` when the request template is
    self-describing.
    """

    request_template: RequestTemplate
    args_position: Optional[dict[str, ParameterLocation]] = None


def synthesize(
    tool: ToolRecord,
    args_position: Mapping[str, Union[ParameterLocation, str]],
    base_template: Optional[RequestTemplate],
) -> SynthesizedTemplate:
    """Place every argument of *tool* into a copy of *base_template*.

    Args:
        tool: The tool whose arguments are being placed.  Only the declared
            argument types are read, to decide between a literal JSON body
            and a JSON flag.
        args_position: ``name -> placement`` for each argument.  Unknown
            placements are ignored.
        base_template: The template to start from; ``None`` behaves like an
            empty template.

    Returns:
        The synthesized request template, plus the placement map when the
        runtime still needs it.

    Example::

        result = synthesize(tool, tool.args_position(), tool.request_template)
        result.request_template.url
        # 'https://api.example.com/users/{{.args.id}}'
    """
    base = base_template or RequestTemplate()
    positions = _normalize_positions(args_position)
    arguments = {arg.name: arg for arg in tool.arguments}

    groups: dict[ParameterLocation, list[str]] = {loc: [] for loc in ParameterLocation}
    for name, location in positions.items():
        groups[location].append(name)

    total = len(positions)
    query_args = groups[ParameterLocation.QUERY]
    body_args = groups[ParameterLocation.BODY]
    all_in_query = total > 0 and len(query_args) == total
    all_in_body = total > 0 and len(body_args) == total

    url = _substitute_path(base.url, groups[ParameterLocation.PATH])
    headers = [Header(key=h.key, value=h.value) for h in base.headers]
    body = base.body
    to_url_param = base.args_to_url_param
    to_json_body = base.args_to_json_body
    to_form_body = base.args_to_form_body
    has_explicit = body is not None or base.has_encoding_flag

    if all_in_query:
        to_url_param = True
    elif query_args:
        url = _append_query(url, query_args)

    _add_header_args(headers, groups[ParameterLocation.HEADER])
    _add_cookie_args(headers, groups[ParameterLocation.COOKIE])

    content_type = _content_type(headers)
    retain_positions = False

    plan = _plan_body(body_args, all_in_body, has_explicit, content_type, arguments)
    if isinstance(plan, ExplicitBody):
        body = plan.text
        if plan.default_content_type:
            _ensure_content_type(headers, plan.default_content_type)
    elif isinstance(plan, JsonFlag):
        to_json_body = True
        retain_positions = plan.retain_positions
        _ensure_content_type(headers, DEFAULT_JSON_CONTENT_TYPE)
    elif isinstance(plan, FormFlag):
        to_form_body = True
        retain_positions = plan.retain_positions

    if body is None and body_args and not all_in_body and _FORM_URLENCODED in _content_type(headers):
        # Mixed placement next to a caller-provided flag: the runtime builds
        # the form body and needs to know which arguments belong in it.
        to_form_body = True
        retain_positions = True

    template = RequestTemplate(
        url=url,
        method=base.method,
        headers=headers,
        body=body,
        args_to_url_param=to_url_param,
        args_to_json_body=to_json_body,
        args_to_form_body=to_form_body,
    )

    kept_positions = None
    if retain_positions and not all_in_query and not all_in_body:
        kept_positions = dict(positions)

    return SynthesizedTemplate(request_template=template, args_position=kept_positions)


def _plan_body(
    body_args: list[str],
    all_in_body: bool,
    has_explicit: bool,
    content_type: str,
    arguments: Mapping[str, ToolArgument],
) -> BodyEncoding:
    """Decide how body arguments reach the wire.

    * No body arguments -- nothing changes.
    * All arguments in the body -- a form flag for form content types,
      otherwise a JSON flag.
    * Mixed placement, base template without its own body or flag --
      a literal form body for form-urlencoded; otherwise a JSON flag (with
      the placement map kept) if any body argument is an object or array,
      else a literal JSON object body.
    * Mixed placement with an explicit base body or flag -- nothing changes.
    """
    if not body_args:
        return NoBodyChange()

    if all_in_body:
        if _FORM_URLENCODED in content_type or _MULTIPART in content_type:
            return FormFlag()
        return JsonFlag()

    if has_explicit:
        return NoBodyChange()

    if _FORM_URLENCODED in content_type:
        return ExplicitBody("&".join(f"{name}={placeholder(name)}" for name in body_args))

    if any(_argument_type(arguments, name) in _COMPLEX_TYPES for name in body_args):
        return JsonFlag(retain_positions=True)

    return ExplicitBody(
        _literal_json_body(body_args, arguments),
        default_content_type=DEFAULT_JSON_CONTENT_TYPE,
    )


def _literal_json_body(body_args: list[str], arguments: Mapping[str, ToolArgument]) -> str:
    """Hand-write a JSON object body, quoting placeholders of string arguments."""
    fields = []
    for name in body_args:
        value = placeholder(name)
        if _argument_type(arguments, name) == "string":
            value = f'"{value}"'
        fields.append(f'  "{name}": {value}')
    return "{\n" + ",\n".join(fields) + "\n}"


def _argument_type(arguments: Mapping[str, ToolArgument], name: str) -> str:
    argument = arguments.get(name)
    return argument.json_type if argument is not None else ""


def _normalize_positions(
    args_position: Mapping[str, Union[ParameterLocation, str]],
) -> dict[str, ParameterLocation]:
    positions: dict[str, ParameterLocation] = {}
    for name, location in args_position.items():
        try:
            positions[name] = ParameterLocation(location)
        except ValueError:
            logger.debug("Ignoring argument %r with unknown placement %r", name, location)
    return positions


def _substitute_path(url: str, path_args: list[str]) -> str:
    for name in path_args:
        url = url.replace("{" + name + "}", placeholder(name))
    return url


def _append_query(url: str, query_args: list[str]) -> str:
    pairs = "&".join(f"{name}={placeholder(name)}" for name in query_args)
    connector = "&" if "?" in url else "?"
    return url + connector + pairs


def _find_header(headers: list[Header], key: str) -> Optional[Header]:
    lowered = key.lower()
    for header in headers:
        if header.key.lower() == lowered:
            return header
    return None


def _add_header_args(headers: list[Header], header_args: list[str]) -> None:
    for name in header_args:
        if _find_header(headers, name) is None:
            headers.append(Header(key=name, value=placeholder(name)))


def _add_cookie_args(headers: list[Header], cookie_args: list[str]) -> None:
    if not cookie_args:
        return

    cookie_value = "; ".join(f"{name}={placeholder(name)}" for name in cookie_args)
    existing = _find_header(headers, "Cookie")
    if existing is None:
        headers.append(Header(key="Cookie", value=cookie_value))
    elif existing.value:
        existing.value = f"{existing.value}; {cookie_value}"
    else:
        existing.value = cookie_value


def _content_type(headers: list[Header]) -> str:
    header = _find_header(headers, "Content-Type")
    return header.value.lower() if header is not None else ""


def _ensure_content_type(headers: list[Header], value: str) -> None:
    if _find_header(headers, "Content-Type") is None:
        headers.append(Header(key="Content-Type", value=value))


def encoding_label(template: RequestTemplate) -> str:
    """Short human label for how a template carries its arguments."""
    if template.body is not None:
        return "literal body"
    labels = []
    if template.args_to_url_param:
        labels.append("query params")
    if template.args_to_json_body:
        labels.append("json body")
    if template.args_to_form_body:
        labels.append("form body")
    return ", ".join(labels) or "-"
