"""Shared utilities for pgembed."""

from ._fs import (
    atomic_copy_file,
    atomic_write_bytes,
    load_json_file,
    remove_tree,
    write_json_file,
)
from ._logging import LogFormatType, create_logger, logger_from_settings
from ._net import can_connect, find_open_port, is_port_in_use

__all__ = [
    "LogFormatType",
    "atomic_copy_file",
    "atomic_write_bytes",
    "can_connect",
    "create_logger",
    "find_open_port",
    "is_port_in_use",
    "load_json_file",
    "logger_from_settings",
    "remove_tree",
    "write_json_file",
]
