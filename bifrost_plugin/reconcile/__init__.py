"""Config reconciliation for Bifrost.

This module provides the format registration system and the two entry
points used by the installer:

- :func:`already_applied` decides whether a fragment is already present
- :func:`apply_config` computes the merged file content

Formats are selected by :func:`detect_format` from the target file name.
Anything without a dedicated handler falls back to plain text.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from pathlib import PurePath
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from bifrost_plugin.config.schemas import InsertType
    from bifrost_plugin.reconcile.base import ConfigFormat

FormatTag = Literal["json", "jsonc", "toml", "yaml", "env", "text"]

_FORMATS: dict[str, type[ConfigFormat]] = {}
_LOADED = False

# Known format modules - add new formats here
_FORMAT_MODULES = [
    "bifrost_plugin.reconcile.envfile",
    "bifrost_plugin.reconcile.structured",
    "bifrost_plugin.reconcile.text",
]

_EXTENSIONS: dict[str, FormatTag] = {
    ".json": "json",
    ".jsonc": "jsonc",
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".env": "env",
}


def register_format(
    name: FormatTag,
) -> Callable[[type[ConfigFormat]], type[ConfigFormat]]:
    """Decorator for format registration.

    Usage:
        @register_format("json")
        class JsonFormat(StructuredFormat):
            ...
    """

    def decorator(cls: type[ConfigFormat]) -> type[ConfigFormat]:
        _FORMATS[name] = cls
        return cls

    return decorator


def _load_formats() -> None:
    """Load all format modules to trigger registration."""
    global _LOADED
    if _LOADED:
        return

    for module_name in _FORMAT_MODULES:
        importlib.import_module(module_name)

    _LOADED = True


def detect_format(target_file: str | PurePath) -> FormatTag:
    """Pick the format tag for a target file.

    ``.env`` has no suffix in path terms, so dotenv files are also
    recognised by name (``.env``, ``.env.local``, ...).
    """
    path = PurePath(target_file)
    tag = _EXTENSIONS.get(path.suffix.lower())
    if tag is not None:
        return tag

    name = path.name.lower()
    if name == ".env" or name.startswith(".env."):
        return "env"

    return "text"


def get_format(name: str) -> ConfigFormat:
    """Get an instantiated format handler by tag.

    Raises:
        ValueError: If the format is not registered
    """
    _load_formats()

    if name not in _FORMATS:
        available = ", ".join(_FORMATS.keys()) or "none"
        raise ValueError(f"Unknown config format: {name}. Available formats: {available}")
    return _FORMATS[name]()


def list_formats() -> list[str]:
    """List all registered format tags."""
    _load_formats()
    return list(_FORMATS.keys())


def already_applied(existing_content: str, fragment: str, target_file: str | PurePath) -> bool:
    """Check whether ``fragment`` is already present in ``existing_content``."""
    return get_format(detect_format(target_file)).is_applied(existing_content, fragment)


def apply_config(
    target_file: str | PurePath,
    existing_content: str,
    fragment: str,
    insert_type: InsertType = "append",
) -> str:
    """Compute the new content of ``target_file`` with ``fragment`` merged in.

    A target that uses CRLF line endings keeps them in the result.

    Raises:
        ReconcileError: If structured content cannot be parsed or serialized
    """
    handler = get_format(detect_format(target_file))
    updated = handler.apply(existing_content, fragment, insert_type)
    if updated == existing_content or "\r\n" not in existing_content:
        return updated
    return updated.replace("\r\n", "\n").replace("\n", "\r\n")
