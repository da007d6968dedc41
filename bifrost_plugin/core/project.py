"""Project model representing a Bifrost project."""

from pathlib import Path

from bifrost_plugin.config.parser import (
    PROJECT_CONFIG_FILE,
    load_project_config,
    save_project_config,
)
from bifrost_plugin.config.schemas import ProjectConfig


class Project:
    """Represents a Bifrost project.

    A project is a directory holding a config.bifrost file.
    """

    def __init__(self, root: Path, config: ProjectConfig):
        """Initialize a Project.

        Args:
            root: Path to the project root directory
            config: Parsed project configuration
        """
        self._root = root.resolve()
        self._config = config

    @classmethod
    def load(cls, path: Path | None = None) -> "Project":
        """Load a project from disk.

        Args:
            path: Path to the project root, or None for the current directory

        Returns:
            Loaded Project instance

        Raises:
            FileNotFoundError: If config.bifrost does not exist
            ConfigError: If config.bifrost is invalid
        """
        path = Path.cwd() if path is None else path.resolve()
        if not (path / PROJECT_CONFIG_FILE).exists():
            raise FileNotFoundError(f"{PROJECT_CONFIG_FILE} not found in {path}")

        config = load_project_config(path)
        return cls(path, config)

    def save(self) -> None:
        """Save the project configuration to disk."""
        save_project_config(self._root, self._config)

    @property
    def root(self) -> Path:
        """Get the project root directory."""
        return self._root

    @property
    def platform(self) -> str:
        """Get the project's platform."""
        return self._config.platform

    @property
    def name(self) -> str:
        """Get the project name."""
        return self._config.name or self._root.name

    @property
    def config(self) -> ProjectConfig:
        """Get the underlying configuration."""
        return self._config

    @property
    def plugins(self) -> list[str]:
        """Get the names of plugins recorded in config.bifrost."""
        return list(self._config.plugins)

    def add_plugin(self, name: str) -> bool:
        """Record a plugin in the project configuration.

        Returns:
            True if the plugin was added, False if it was already recorded
        """
        if name in self._config.plugins:
            return False
        # Reassign so pydantic marks the field as set for saving
        self._config.plugins = [*self._config.plugins, name]
        return True

    def __repr__(self) -> str:
        return f"Project(root={self._root!r}, platform={self.platform!r})"
