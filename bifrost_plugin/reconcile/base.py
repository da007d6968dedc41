"""Abstract base class for config formats."""

from abc import ABC, abstractmethod

from bifrost_plugin.config.schemas import InsertType


class ReconcileError(Exception):
    """Error reconciling a fragment into a file."""

    def __init__(self, message: str, format_name: str | None = None):
        self.format_name = format_name
        super().__init__(message)


class ConfigFormat(ABC):
    """Abstract base class for config formats.

    A format knows how to test whether a fragment is already present in
    a file's content and how to merge the fragment in. Both operations
    are pure: they take and return text.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the format tag (e.g., "json", "env")."""
        ...

    @abstractmethod
    def is_applied(self, existing: str, fragment: str) -> bool:
        """Check whether the fragment is already present.

        Args:
            existing: Current file content
            fragment: Content the plugin wants present

        Returns:
            True if nothing needs to change
        """
        ...

    @abstractmethod
    def apply(self, existing: str, fragment: str, insert_type: InsertType) -> str:
        """Merge the fragment into the existing content.

        Args:
            existing: Current file content
            fragment: Content the plugin wants present
            insert_type: Insertion policy from the plugin manifest

        Returns:
            The new file content
        """
        ...
