"""Free-text files, the fallback for any unrecognised extension."""

import re

from bifrost_plugin.config.schemas import InsertType
from bifrost_plugin.reconcile import register_format
from bifrost_plugin.reconcile.base import ConfigFormat

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(content: str) -> str:
    """Trim and collapse every whitespace run to a single space."""
    return _WHITESPACE.sub(" ", content.strip())


@register_format("text")
class TextFormat(ConfigFormat):
    """Plain text compared modulo whitespace.

    ``replace`` overwrites the file; ``append`` and ``merge`` both add the
    fragment after a blank line.
    """

    @property
    def name(self) -> str:
        return "text"

    def is_applied(self, existing: str, fragment: str) -> bool:
        return normalize_whitespace(fragment) in normalize_whitespace(existing)

    def apply(self, existing: str, fragment: str, insert_type: InsertType) -> str:
        if insert_type == "replace":
            return fragment
        return existing + "\n\n" + fragment
