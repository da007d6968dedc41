"""Pydantic schemas for Bifrost configuration files.

This module defines the data models for:
- config.bifrost (project configuration)
- registry.bifrost (bundled plugin registry)
- plugin.bifrost (remote plugin manifest)

All three files use camelCase keys on the wire; the models expose
snake_case attributes and accept either spelling.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel

# =============================================================================
# Common Types
# =============================================================================

InsertType = Literal["append", "replace", "merge"]

_ALIASED = ConfigDict(populate_by_name=True)


# =============================================================================
# Project Configuration (config.bifrost)
# =============================================================================


class ProjectConfig(BaseModel):
    """Project configuration (config.bifrost) schema."""

    model_config = _ALIASED

    platform: str
    name: str | None = None
    description: str | None = None
    github: str | None = None
    tags: list[str] = Field(default_factory=list)
    post_install: list[str] = Field(default_factory=list, alias="postInstall")
    plugins: list[str] = Field(default_factory=list)


# =============================================================================
# Plugin Registry (registry.bifrost)
# =============================================================================


class RegistryEntry(BaseModel):
    """A single plugin listed in the registry."""

    name: str
    platform: str
    github: str
    description: str = ""


class RegistryFile(RootModel[list[RegistryEntry]]):
    """The registry file is a bare JSON array of entries."""


# =============================================================================
# Plugin Manifest (plugin.bifrost)
# =============================================================================


class PluginFile(BaseModel):
    """A file shipped by a plugin.

    - name: Path of the file under the plugin's ``files/`` directory
    - location: Default destination, relative to the project root
    """

    name: str
    location: str


class ConfigEntry(BaseModel):
    """A configuration fragment to reconcile into an existing project file."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    target_file: str = Field(alias="targetFile")
    config_source: str = Field(alias="configSource")
    insert_type: InsertType = Field(default="append", alias="insertType")


class PluginManifest(BaseModel):
    """Remote plugin manifest (plugin.bifrost) schema."""

    model_config = _ALIASED

    platform: str
    name: str | None = None
    description: str | None = None
    github: str | None = None
    tags: list[str] = Field(default_factory=list)
    files: list[PluginFile] = Field(default_factory=list)
    configs: list[ConfigEntry] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list, alias="devDependencies")
