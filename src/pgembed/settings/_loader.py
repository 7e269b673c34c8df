# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""TOML settings file loading, merging, and environment overlays."""

import contextlib
import copy
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import orjson
import platformdirs

from pgembed.exceptions import SettingsLoadError

ENV_PREFIX = "PGEMBED_"
SETTINGS_FILE_NAME = "pgembed.toml"


def get_user_settings_path() -> Path:
    """Get the path to the user-level settings file."""
    return platformdirs.user_config_path("pgembed") / SETTINGS_FILE_NAME


def find_settings_file(start: Path | None = None) -> Path | None:
    """Find the nearest settings file.

    Walks up from `start` (default: the current directory) looking for
    ``pgembed.toml``, then falls back to the user settings file.

    Args:
        start: Directory to start searching from.

    Returns:
        Path to the settings file, or None if there is none.
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / SETTINGS_FILE_NAME
        if candidate.is_file():
            return candidate

    user_path = get_user_settings_path()
    if user_path.is_file():
        return user_path
    return None


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML settings file.

    A file may either hold settings at the top level or nest them under a
    ``[pgembed]`` or ``[tool.pgembed]`` table, so the same loader accepts a
    dedicated ``pgembed.toml`` and a project's ``pyproject.toml``.

    Args:
        path: Path to the TOML file.

    Returns:
        The settings table as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        SettingsLoadError: If the file cannot be parsed.
    """
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file: {e}"
        raise SettingsLoadError(
            msg,
            path=path,
            line=getattr(e, "lineno", None),
            column=getattr(e, "colno", None),
        ) from e

    tool_table = data.get("tool", {})
    if isinstance(tool_table, dict) and isinstance(tool_table.get("pgembed"), dict):
        return tool_table["pgembed"]
    if isinstance(data.get("pgembed"), dict):
        return data["pgembed"]
    return data


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Merge one settings layer over another.

    Tables merge key by key. Any other value in `override`, lists included,
    replaces the value in `base`. Neither input is modified.

    Args:
        base: Lower-precedence layer.
        override: Higher-precedence layer.

    Returns:
        A new merged dictionary.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set a value at a dotted key path, replacing scalars in the way.

    Example:
        >>> d = {}
        >>> set_nested_key(d, "logging.level", "debug")
        >>> d
        {'logging': {'level': 'debug'}}
    """
    *parents, leaf = key_path.split(".")
    table = d
    for part in parents:
        child = table.get(part)
        if not isinstance(child, dict):
            child = table[part] = {}
        table = child
    table[leaf] = value


# Read directly by the logging factory, never merged into settings.
_RESERVED_ENV_KEYS = frozenset({"DEBUG", "LOG_LEVEL"})


def parse_env_vars(
    prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect ``PGEMBED_*`` environment variables into a settings layer.

    A double underscore separates nested keys, so ``PGEMBED_LOGGING__LEVEL``
    sets ``logging.level``. PGEMBED_DEBUG and PGEMBED_LOG_LEVEL are skipped.

    Args:
        prefix: Environment variable prefix.
        environ: Mapping to read instead of ``os.environ``.

    Returns:
        Nested dictionary of typed values.
    """
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for key, raw in (os.environ if environ is None else environ).items():
        name = key.removeprefix(prefix)
        if name == key or not name or name in _RESERVED_ENV_KEYS:
            continue
        set_nested_key(result, name.replace("__", ".").lower(), parse_env_value(raw))
    return result


def parse_env_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Infer the type of an environment variable value.

    ``true`` and ``false`` become booleans, integers and decimals become
    numbers, and a ``{...}`` JSON object becomes a table. Anything else,
    including version constraints, stays a string.
    """
    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    with contextlib.suppress(ValueError):
        return int(value)
    if "." in value:
        with contextlib.suppress(ValueError):
            return float(value)
    if value.startswith("{") and value.endswith("}"):
        with contextlib.suppress(orjson.JSONDecodeError):
            return orjson.loads(value)
    return value
