"""pgembed settings.

This module provides the immutable Settings model and the helpers that load
it from TOML files and ``PGEMBED_*`` environment variables.

Example:
    >>> from pgembed.settings import Settings
    >>> settings = Settings.load(version=">=16,<17")
    >>> settings.shutdown_mode
    <ShutdownMode.FAST: 'fast'>
"""

from pgembed.exceptions import SettingsError, SettingsLoadError

from ._loader import (
    ENV_PREFIX,
    deep_merge,
    find_settings_file,
    get_user_settings_path,
    parse_env_value,
    parse_env_vars,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    DEFAULT_RELEASES_URL,
    LogFormat,
    LoggingSettings,
    LogLevel,
    Settings,
    ShutdownMode,
    default_installation_root,
)

__all__ = [
    "DEFAULT_RELEASES_URL",
    "ENV_PREFIX",
    "LogFormat",
    "LogLevel",
    "LoggingSettings",
    "Settings",
    "SettingsError",
    "SettingsLoadError",
    "ShutdownMode",
    "deep_merge",
    "default_installation_root",
    "find_settings_file",
    "get_user_settings_path",
    "parse_env_value",
    "parse_env_vars",
    "read_toml_file",
    "set_nested_key",
]
