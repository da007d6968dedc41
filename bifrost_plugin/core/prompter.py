"""Decisions the installer delegates to its caller.

The installer never talks to the terminal. Whenever a step needs a human
decision it asks an :class:`InstallPrompter`. The CLI supplies an
interactive implementation; :class:`AutoPrompter` accepts every default.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal

from bifrost_plugin.config.schemas import ConfigEntry, PluginFile

if TYPE_CHECKING:
    from bifrost_plugin.core.installer import InstallState

ConfigAction = Literal["auto", "manual", "skip"]


class InstallPrompter(ABC):
    """Abstract base class for install-time decisions."""

    @abstractmethod
    def choose_location(self, plugin_file: PluginFile) -> str:
        """Pick the destination of a plugin file.

        Args:
            plugin_file: The file as declared by the manifest

        Returns:
            Destination relative to the project root
        """
        ...

    @abstractmethod
    def choose_config_action(self, entry: ConfigEntry, fragment: str) -> ConfigAction:
        """Decide how to handle a fragment missing from its target file.

        Args:
            entry: The config entry being processed
            fragment: Fetched fragment content

        Returns:
            "auto" to merge it, "manual" to leave it to the user, "skip" to ignore it
        """
        ...

    def show_manual(self, entry: ConfigEntry, fragment: str) -> None:
        """Tell the user to add a fragment by hand. Default does nothing."""

    def state_changed(self, state: "InstallState") -> None:
        """Observe installer progress. Default does nothing."""


class AutoPrompter(InstallPrompter):
    """Non-interactive prompter: default locations, auto-apply everything."""

    def choose_location(self, plugin_file: PluginFile) -> str:
        return plugin_file.location

    def choose_config_action(self, entry: ConfigEntry, fragment: str) -> ConfigAction:
        return "auto"
