"""Configuration file parsing utilities."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bifrost_plugin.config.schemas import PluginManifest, ProjectConfig, RegistryEntry, RegistryFile

PROJECT_CONFIG_FILE = "config.bifrost"


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | str | None = None):
        self.path = path
        super().__init__(message)


def load_json(path: Path) -> Any:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON value

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def save_json(path: Path, data: Any, indent: int = 2) -> None:
    """Save data to a JSON file.

    Args:
        path: Path to write to
        data: Data to serialize
        indent: JSON indentation level
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
        f.write("\n")


def load_project_config(project_root: Path) -> ProjectConfig:
    """Load project configuration from config.bifrost.

    Args:
        project_root: Path to the project root directory

    Returns:
        Parsed ProjectConfig

    Raises:
        ConfigError: If the file is missing or invalid
    """
    config_path = project_root / PROJECT_CONFIG_FILE
    data = load_json(config_path)

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid project config: {e}", config_path) from e


def save_project_config(project_root: Path, config: ProjectConfig) -> None:
    """Write project configuration back to config.bifrost.

    Keys the schema doesn't know about are preserved from the file on disk.
    """
    config_path = project_root / PROJECT_CONFIG_FILE
    data: dict[str, Any] = {}
    if config_path.exists():
        existing = load_json(config_path)
        if isinstance(existing, dict):
            data = existing

    data.update(config.model_dump(by_alias=True, exclude_none=True, exclude_unset=True))
    save_json(config_path, data)


def load_registry(registry_path: Path) -> list[RegistryEntry]:
    """Load the plugin registry.

    Args:
        registry_path: Path to registry.bifrost

    Returns:
        Registry entries in file order

    Raises:
        ConfigError: If the file is missing or invalid
    """
    data = load_json(registry_path)

    try:
        return RegistryFile.model_validate(data).root
    except ValidationError as e:
        raise ConfigError(f"Invalid plugin registry: {e}", registry_path) from e


def parse_plugin_manifest(content: str | bytes, source: str | None = None) -> PluginManifest:
    """Parse a plugin manifest (plugin.bifrost) from raw content.

    Args:
        content: Raw JSON text of the manifest
        source: Where the content came from, used in error messages

    Returns:
        Parsed PluginManifest

    Raises:
        ConfigError: If the content is not a valid manifest
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in plugin manifest: {e}", source) from e

    try:
        return PluginManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid plugin manifest: {e}", source) from e
