"""Plugin installation orchestrator.

This module contains the PluginInstaller which installs one plugin into a
project: it fetches the manifest, writes the plugin files, reconciles the
config fragments into existing project files and adds the declared
dependencies. Every change is recorded in an InstallTransaction and undone
if any later step fails.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal

from bifrost_plugin.config.schemas import (
    ConfigEntry,
    PluginFile,
    PluginManifest,
    RegistryEntry,
)
from bifrost_plugin.core.package_manager import (
    PackageManager,
    detect_package_manager,
    run_package_command,
)
from bifrost_plugin.core.project import Project
from bifrost_plugin.core.prompter import AutoPrompter, InstallPrompter
from bifrost_plugin.core.transaction import InstallTransaction, RollbackFailure
from bifrost_plugin.reconcile import already_applied, apply_config
from bifrost_plugin.registry.catalog import PluginRegistry, validate_platform_compatibility
from bifrost_plugin.registry.github import GitHubPluginSource
from bifrost_plugin.utils.filesystem import ensure_directory, read_text_file, write_text_file

logger = logging.getLogger("bifrost_plugin.installer")


class InstallError(Exception):
    """Error during plugin installation."""

    def __init__(self, message: str, plugin_name: str | None = None):
        self.plugin_name = plugin_name
        super().__init__(message)


class PreconditionError(InstallError):
    """The project or plugin does not allow installation to start."""


class PlatformMismatchError(PreconditionError):
    """Plugin targets a different platform than the project."""

    def __init__(
        self, plugin_platform: str, project_platform: str, plugin_name: str | None = None
    ):
        self.plugin_platform = plugin_platform
        self.project_platform = project_platform
        super().__init__(
            f"Platform mismatch: Plugin is for {plugin_platform}, "
            f"but project is {project_platform}",
            plugin_name,
        )


def resolve_plugin(registry: PluginRegistry, name: str, project_platform: str) -> RegistryEntry:
    """Look up a plugin by name and check that it targets the project's platform.

    Raises:
        PreconditionError: If the plugin is not in the registry
        PlatformMismatchError: If the plugin targets another platform
    """
    entry = registry.find(name)
    if entry is None:
        raise PreconditionError(f'Plugin "{name}" not found in registry', name)
    if not validate_platform_compatibility(project_platform, entry.platform):
        raise PlatformMismatchError(entry.platform, project_platform, name)
    return entry


class InstallState(str, Enum):
    """Steps of a single install attempt."""

    FETCHING_MANIFEST = "fetching_manifest"
    VALIDATING_PLATFORM = "validating_platform"
    INSTALLING_FILES = "installing_files"
    PROCESSING_CONFIGS = "processing_configs"
    INSTALLING_DEPENDENCIES = "installing_dependencies"
    INSTALLING_DEV_DEPENDENCIES = "installing_dev_dependencies"
    SUCCEEDED = "succeeded"
    ROLLING_BACK = "rolling_back"
    FAILED = "failed"


ConfigStatus = Literal["applied", "already_applied", "missing_target", "manual", "skipped"]


@dataclass
class ConfigOutcome:
    """What happened to one config entry."""

    entry: ConfigEntry
    status: ConfigStatus


@dataclass
class InstallResult:
    """Result of a plugin installation."""

    repository: str
    state: InstallState = InstallState.FETCHING_MANIFEST
    manifest: PluginManifest | None = None
    files: list[Path] = field(default_factory=list)
    overwritten: list[Path] = field(default_factory=list)
    configs: list[ConfigOutcome] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    dev_dependencies: list[str] = field(default_factory=list)
    rollback_failures: list[RollbackFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == InstallState.SUCCEEDED

    def configs_with_status(self, status: ConfigStatus) -> list[ConfigEntry]:
        return [outcome.entry for outcome in self.configs if outcome.status == status]


SourceFactory = Callable[[str], GitHubPluginSource]
CommandRunner = Callable[[list[str], Path], None]


class PluginInstaller:
    """Installs plugins from GitHub into a project.

    Files and fragments are processed one at a time in manifest order, so
    each step sees the filesystem as the previous steps left it.
    """

    def __init__(
        self,
        project: Project,
        prompter: InstallPrompter | None = None,
        source_factory: SourceFactory | None = None,
        package_manager: PackageManager | None = None,
        run_command: CommandRunner = run_package_command,
    ):
        """Initialize the installer.

        Args:
            project: The project to install plugins into
            prompter: Decision maker for locations and config actions
                (default: accept every default)
            source_factory: Builds a plugin source from an owner/repo string
            package_manager: Package manager to use (default: detected from lockfiles)
            run_command: Runs a package manager command in a directory
        """
        self.project = project
        self.prompter = prompter or AutoPrompter()
        self._source_factory = source_factory or GitHubPluginSource
        self._package_manager = package_manager
        self._run_command = run_command

    @property
    def package_manager(self) -> PackageManager:
        if self._package_manager is None:
            self._package_manager = detect_package_manager(self.project.root)
        return self._package_manager

    def install(self, repository: str) -> InstallResult:
        """Install a plugin.

        Args:
            repository: GitHub owner/repo hosting the plugin

        Returns:
            InstallResult describing what was installed

        Raises:
            Exception: Whatever made the install fail, after all recorded
                changes have been rolled back
        """
        result = InstallResult(repository=repository)
        transaction = InstallTransaction()

        logger.info("Installing plugin from %s", repository)

        try:
            self._set_state(result, InstallState.FETCHING_MANIFEST)
            source = self._source_factory(repository)
            manifest = source.fetch_manifest()
            result.manifest = manifest

            self._set_state(result, InstallState.VALIDATING_PLATFORM)
            if not validate_platform_compatibility(self.project.platform, manifest.platform):
                raise PlatformMismatchError(
                    manifest.platform, self.project.platform, manifest.name
                )

            self._set_state(result, InstallState.INSTALLING_FILES)
            for plugin_file in manifest.files:
                path, replaced = self._install_file(plugin_file, source, transaction)
                result.files.append(path)
                if replaced:
                    result.overwritten.append(path)

            self._set_state(result, InstallState.PROCESSING_CONFIGS)
            for entry in manifest.configs:
                status = self._process_config(entry, source, transaction)
                result.configs.append(ConfigOutcome(entry, status))

            if manifest.dependencies:
                self._set_state(result, InstallState.INSTALLING_DEPENDENCIES)
                self._add_dependencies(manifest.dependencies, False, transaction)
                result.dependencies = list(manifest.dependencies)

            if manifest.dev_dependencies:
                self._set_state(result, InstallState.INSTALLING_DEV_DEPENDENCIES)
                self._add_dependencies(manifest.dev_dependencies, True, transaction)
                result.dev_dependencies = list(manifest.dev_dependencies)

        except (Exception, KeyboardInterrupt) as e:
            logger.error("Plugin installation failed: %s", e)
            self._set_state(result, InstallState.ROLLING_BACK)
            result.rollback_failures = transaction.rollback()
            for failure in result.rollback_failures:
                e.add_note(f"Rollback: {failure}")
            self._set_state(result, InstallState.FAILED)
            raise

        transaction.commit()
        self._set_state(result, InstallState.SUCCEEDED)
        logger.info("Installed plugin from %s", repository)
        return result

    def _set_state(self, result: InstallResult, state: InstallState) -> None:
        logger.debug("Install state: %s -> %s", result.state.value, state.value)
        result.state = state
        self.prompter.state_changed(state)

    def _resolve_target(self, relative: str) -> Path:
        """Resolve a manifest path against the project root.

        Raises:
            InstallError: If the path escapes the project
        """
        target = (self.project.root / relative).resolve()
        if not target.is_relative_to(self.project.root):
            raise InstallError(f"Refusing to write outside the project: {relative}")
        return target

    def _install_file(
        self,
        plugin_file: PluginFile,
        source: GitHubPluginSource,
        transaction: InstallTransaction,
    ) -> tuple[Path, bool]:
        """Fetch one plugin file and write it to its destination.

        Returns:
            The written path, and whether it replaced an existing file
        """
        location = self.prompter.choose_location(plugin_file)
        target = self._resolve_target(location)
        content = source.fetch_file(plugin_file.name)

        previous = read_text_file(target) if target.is_file() else None

        for directory in ensure_directory(target.parent):
            transaction.record_created_directory(directory)

        write_text_file(target, content)
        if previous is None:
            transaction.record_created_file(target)
        else:
            transaction.record_modified_file(target, previous)

        logger.info("Installed %s to %s", plugin_file.name, target)
        return target, previous is not None

    def _process_config(
        self,
        entry: ConfigEntry,
        source: GitHubPluginSource,
        transaction: InstallTransaction,
    ) -> ConfigStatus:
        """Reconcile one config fragment into its target file."""
        fragment = source.fetch_file(entry.config_source)
        target = self._resolve_target(entry.target_file)

        # Config fragments only edit files the project already has
        if not target.is_file():
            logger.warning("Target file %s does not exist, skipping", entry.target_file)
            return "missing_target"

        existing = read_text_file(target)
        if already_applied(existing, fragment, entry.target_file):
            logger.info("Configuration already present in %s", entry.target_file)
            return "already_applied"

        action = self.prompter.choose_config_action(entry, fragment)

        if action == "skip":
            logger.info("Skipped configuration for %s", entry.target_file)
            return "skipped"

        if action == "manual":
            self.prompter.show_manual(entry, fragment)
            return "manual"

        updated = apply_config(entry.target_file, existing, fragment, entry.insert_type)
        if updated != existing:
            write_text_file(target, updated)
            transaction.record_modified_file(target, existing)
        logger.info("Applied configuration to %s", entry.target_file)
        return "applied"

    def _add_dependencies(
        self,
        packages: list[str],
        dev: bool,
        transaction: InstallTransaction,
    ) -> None:
        manager = self.package_manager
        self._run_command(manager.add_command(packages, dev=dev), self.project.root)

        remove_cmd = manager.remove_command(packages)
        transaction.record(
            f"uninstall {' '.join(packages)}",
            lambda: self._run_command(remove_cmd, self.project.root),
        )
