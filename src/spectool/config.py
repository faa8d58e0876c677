"""Where spectool keeps its settings, and how the effective settings are chosen.

Files:

* ``config.json`` in the config directory -- user-wide defaults, a
  serialised :class:`~spectool.models.GlobalConfig`.
* ``spectool.json`` in the current directory -- optional per-project
  overrides using the same keys.
* ``logs/crash-*.log`` in the data directory -- tracebacks written by
  :func:`spectool.app.main` for unexpected failures.

Linux and the BSDs follow the XDG base directory layout
(``~/.config/spectool``, ``~/.local/share/spectool``); other platforms use a
single ``~/.spectool`` tree.

:func:`resolve_config` layers CLI flags over ``SPECTOOL_*`` environment
variables over project config over user config over defaults.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from spectool.exceptions import ConfigError
from spectool.models import GlobalConfig

APP_DIR_NAME = "spectool"
GLOBAL_CONFIG_FILE = "config.json"
PROJECT_CONFIG_FILE = "spectool.json"

ENV_BASE_URL = "SPECTOOL_BASE_URL"
ENV_TEMPLATE_ENGINE = "SPECTOOL_TEMPLATE_ENGINE"


# --- directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _xdg_home(env_var: str, *fallback: str) -> Path:
    value = os.environ.get(env_var)
    return Path(value) if value else Path.home().joinpath(*fallback)


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``; created on first use."""
    if _is_xdg_platform():
        return _ensure_dir(_xdg_home("XDG_CONFIG_HOME", ".config") / APP_DIR_NAME)
    return _ensure_dir(Path.home() / f".{APP_DIR_NAME}")


def get_data_dir() -> Path:
    """Directory for crash logs; created on first use."""
    if _is_xdg_platform():
        return _ensure_dir(_xdg_home("XDG_DATA_HOME", ".local", "share") / APP_DIR_NAME)
    return _ensure_dir(Path.home() / f".{APP_DIR_NAME}")


# --- writing ---


def atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* without ever exposing a partial file.

    The text goes to a temporary sibling first, is fsync'ed, and then
    renamed over *path*. If anything fails the sibling is removed and the
    original file, if any, is left untouched.
    """
    _ensure_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


# --- reading ---


def _read_json_object(path: Path, label: str) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} at {path}: expected a JSON object")
    return data


def load_global_config() -> GlobalConfig:
    """Read the user config, or return defaults when there is none.

    Raises:
        ConfigError: If the file is not valid JSON or fails validation.
    """
    path = get_config_dir() / GLOBAL_CONFIG_FILE
    if not path.is_file():
        return GlobalConfig()
    data = _read_json_object(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    atomic_write(get_config_dir() / GLOBAL_CONFIG_FILE, text)


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./spectool.json`` as a raw mapping, or ``None`` if absent.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / PROJECT_CONFIG_FILE
    if not path.is_file():
        return None
    return _read_json_object(path, "project config")


# --- precedence ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_engine: Optional[str] = None,
    cli_strict: Optional[bool] = None,
    cli_enabled: Optional[bool] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Compute the effective configuration for one command.

    Each layer overrides the ones before it:

    1. built-in defaults
    2. user config (``config.json``)
    3. project config (``./spectool.json``)
    4. ``SPECTOOL_BASE_URL`` / ``SPECTOOL_TEMPLATE_ENGINE``
    5. CLI flags (``None`` means "not given")

    Raises:
        ConfigError: If the user or project config is invalid.
    """
    layered = load_global_config().model_dump(mode="json")

    project = load_project_config()
    if project:
        layered.update(project)

    overrides = {
        "base_url": os.environ.get(ENV_BASE_URL) or None,
        "template_engine": os.environ.get(ENV_TEMPLATE_ENGINE) or None,
    }
    overrides.update({
        key: value
        for key, value in (
            ("base_url", cli_base_url),
            ("template_engine", cli_engine),
            ("strict_references", cli_strict),
            ("tools_enabled", cli_enabled),
        )
        if value is not None
    })
    layered.update({key: value for key, value in overrides.items() if value is not None})
    if cli_format is not None:
        layered["output"] = {**layered.get("output", {}), "format": cli_format}

    try:
        return GlobalConfig.model_validate(layered)
    except ValueError as exc:
        raise ConfigError(f"Invalid project config: {exc}") from exc
