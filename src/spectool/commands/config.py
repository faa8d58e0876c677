"""``spectool config`` -- read and edit the user-wide settings file."""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from spectool.config import get_config_dir, load_global_config, save_global_config
from spectool.exit_codes import EXIT_INVALID_USAGE
from spectool.models import GlobalConfig
from spectool.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)

_TRUTHY = {"true", "1", "yes", "on"}
_UNSET = {"", "none", "null"}


def _coerce(current: Any, raw: str) -> Any:
    """Interpret *raw* according to the type of the value it replaces."""
    if isinstance(current, bool):
        return raw.lower() in _TRUTHY
    if current is None and raw.lower() in _UNSET:
        return None
    return raw


def _container_for(data: dict[str, Any], dotted: str) -> tuple[dict[str, Any], str]:
    """Walk *dotted* into *data* and return the parent mapping and leaf key."""
    *parents, leaf = dotted.split(".")
    node = data
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            error(f"Invalid config key: {dotted}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        node = child
    if leaf not in node:
        error(f"Unknown config key: {dotted}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    return node, leaf


@config_app.command("show")
def config_show() -> None:
    """Print the stored configuration.

    Example::

        spectool --json config show
    """
    info(f"Config directory: {get_config_dir()}")
    format_response(load_global_config().model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name; nested keys use dots, e.g. output.format."),
    value: str = typer.Argument(help="New value. Booleans accept true/false; 'none' clears base_url."),
) -> None:
    """Change one setting and save it.

    Example::

        spectool config set base_url https://api.internal
        spectool config set strict_references true
    """
    data = load_global_config().model_dump(mode="json")
    node, leaf = _container_for(data, key)
    node[leaf] = _coerce(node[leaf], value)

    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(updated)
    success(f"Set {key} = {node[leaf]}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Restore every setting to its default."""
    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
