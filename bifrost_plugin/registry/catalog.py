"""The bundled plugin registry (registry.bifrost)."""

import logging
from pathlib import Path

from bifrost_plugin.config.parser import load_registry
from bifrost_plugin.config.schemas import RegistryEntry

logger = logging.getLogger(__name__)

REGISTRY_FILE = "registry.bifrost"

# Ships inside the installed package, not the user's project
DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent.parent / REGISTRY_FILE


def validate_platform_compatibility(project_platform: str, plugin_platform: str) -> bool:
    """Check whether a plugin targets the project's platform."""
    return project_platform == plugin_platform


class PluginRegistry:
    """Name-indexed view over registry entries."""

    def __init__(self, entries: list[RegistryEntry]):
        self._entries = list(entries)

    @classmethod
    def load(cls, path: Path | None = None) -> "PluginRegistry":
        """Load a registry file.

        Args:
            path: Registry file, or None for the bundled registry

        Raises:
            ConfigError: If the file is missing or invalid
        """
        path = DEFAULT_REGISTRY_PATH if path is None else path
        entries = load_registry(path)
        logger.debug("Loaded %d registry entries from %s", len(entries), path)
        return cls(entries)

    @property
    def entries(self) -> list[RegistryEntry]:
        return list(self._entries)

    def find(self, name: str) -> RegistryEntry | None:
        """Find a plugin by exact name."""
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    def compatible(self, platform: str) -> list[RegistryEntry]:
        """List plugins that target ``platform``, in registry order."""
        return [
            entry
            for entry in self._entries
            if validate_platform_compatibility(platform, entry.platform)
        ]

    def __len__(self) -> int:
        return len(self._entries)
